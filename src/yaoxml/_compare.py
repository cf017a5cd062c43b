"""Structural equality of OME-XML trees.

Two trees are equal when they describe the same dataset: identifiers may
differ, structured annotations are not compared, and references from
`...Settings` elements are followed and their targets compared instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lxml import etree

if TYPE_CHECKING:
    from typing_extensions import TypeAlias

    from yaoxml.ome import OME, OMEMetadata

    Comparable: TypeAlias = etree._Element | etree._ElementTree | OME | OMEMetadata

__all__ = ["ComparisonResult", "TreeComparator", "is_equal"]

logger = logging.getLogger(__name__)

_ALWAYS_EQUAL = frozenset({"StructuredAnnotations"})
_SETTINGS_SUFFIX = "Settings"
_LIGHT_SOURCES = frozenset({"Laser", "Arc", "Filament", "LightEmittingDiode"})


@dataclass
class ComparisonResult:
    """Outcome of `TreeComparator.compare`.

    `path` and `reason` describe the first difference found; both are None
    when the trees are equal.  `reference_errors` lists the `...Settings`
    references that could not be resolved cleanly.
    """

    equal: bool = True
    path: str | None = None
    reason: str | None = None
    reference_errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.equal


class _Unequal(Exception):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def _local(el: etree._Element) -> str:
    return etree.QName(el).localname


def _element_children(el: etree._Element) -> list[etree._Element]:
    # comments and processing instructions have no string tag
    return [c for c in el if isinstance(c.tag, str)]


def _attributes(el: etree._Element) -> dict[str, str]:
    return {etree.QName(k).localname: v for k, v in el.attrib.items()}


def _as_element(obj: Any) -> etree._Element:
    if isinstance(obj, etree._ElementTree):
        return obj.getroot()
    if isinstance(obj, etree._Element):
        return obj
    from yaoxml.ome import OME, OMEMetadata

    if isinstance(obj, OMEMetadata):
        return obj.root.to_xml_element()
    if isinstance(obj, OME):
        return obj.to_xml_element()
    raise TypeError(f"Cannot compare object of type {type(obj).__name__}")


class TreeComparator:
    """Recursive, reference-aware equality of two element trees.

    Examples
    --------
    >>> from lxml import etree
    >>> a = etree.fromstring('<Image ID="Image:0"><Pixels SizeX="512"/></Image>')
    >>> b = etree.fromstring('<Image ID="Image:1"><Pixels SizeX="512"/></Image>')
    >>> TreeComparator().compare(a, b).equal
    True
    """

    def __init__(self) -> None:
        self._visiting: set[tuple[int, int]] = set()
        self._reference_errors: list[str] = []

    def compare(self, a: Comparable, b: Comparable) -> ComparisonResult:
        self._visiting = set()
        self._reference_errors = []
        el_a, el_b = _as_element(a), _as_element(b)
        try:
            self._compare(el_a, el_b, f"/{_local(el_a)}")
        except _Unequal as e:
            logger.debug("Trees differ at %s", e)
            return ComparisonResult(
                False, e.path, e.reason, list(self._reference_errors)
            )
        return ComparisonResult(reference_errors=list(self._reference_errors))

    def _compare(self, a: etree._Element, b: etree._Element, path: str) -> None:
        key = (id(a), id(b))
        if key in self._visiting:
            return
        name_a, name_b = _local(a), _local(b)
        if name_a != name_b:
            raise _Unequal(path, f"element {name_a!r} != {name_b!r}")
        if name_a in _ALWAYS_EQUAL:
            return

        self._visiting.add(key)
        try:
            self._compare_attributes(a, b, path)
            children_a, children_b = _element_children(a), _element_children(b)
            if len(children_a) != len(children_b):
                raise _Unequal(
                    path,
                    f"{len(children_a)} child elements != {len(children_b)}",
                )
            if not children_a:
                text_a, text_b = a.text or "", b.text or ""
                if text_a != text_b:
                    raise _Unequal(path, f"text {text_a!r} != {text_b!r}")
            for i, (ca, cb) in enumerate(zip(children_a, children_b, strict=True)):
                self._compare(ca, cb, f"{path}/{_local(ca)}[{i}]")
        finally:
            self._visiting.discard(key)

    def _compare_attributes(
        self, a: etree._Element, b: etree._Element, path: str
    ) -> None:
        attrs_a, attrs_b = _attributes(a), _attributes(b)
        if len(attrs_a) != len(attrs_b):
            raise _Unequal(path, f"{len(attrs_a)} attributes != {len(attrs_b)}")
        names_a, names_b = set(attrs_a) - {"ID"}, set(attrs_b) - {"ID"}
        if names_a != names_b:
            only = ", ".join(sorted(names_a ^ names_b))
            raise _Unequal(path, f"attributes on one side only: {only}")
        for name, value in attrs_a.items():
            if name == "ID":
                continue
            if attrs_b.get(name) != value:
                raise _Unequal(
                    f"{path}/@{name}", f"{value!r} != {attrs_b.get(name)!r}"
                )
        name = _local(a)
        if name.endswith(_SETTINGS_SUFFIX) and "ID" in attrs_a:
            self._compare_references(a, b, name[: -len(_SETTINGS_SUFFIX)], path)

    def _compare_references(
        self, a: etree._Element, b: etree._Element, kind: str, path: str
    ) -> None:
        ref_path = f"{path}/@ID"
        try:
            target_a = _resolve(a, kind)
            target_b = _resolve(b, kind)
        except LookupError as e:
            self._reference_errors.append(f"{ref_path}: {e}")
            raise _Unequal(ref_path, f"cannot resolve reference: {e}") from e
        if target_a is None and target_b is None:
            return
        if target_a is None or target_b is None:
            raise _Unequal(ref_path, f"only one {kind} reference resolves")
        self._compare(target_a, target_b, f"{ref_path}->{_local(target_a)}")


def _resolve(settings: etree._Element, kind: str) -> etree._Element | None:
    """Find the element a `...Settings` element refers to in its own tree.

    Raises
    ------
    LookupError
        If more than one element carries the referenced identifier.
    """
    ref = settings.get("ID")
    kinds = _LIGHT_SOURCES | {kind} if kind == "LightSource" else {kind}
    root = settings.getroottree().getroot()
    found = [
        el
        for el in root.iter()
        if isinstance(el.tag, str)
        and el is not settings
        and _local(el) in kinds
        and el.get("ID") == ref
    ]
    if len(found) > 1:
        raise LookupError(f"{len(found)} elements with ID {ref!r}")
    return found[0] if found else None


def is_equal(a: Comparable, b: Comparable) -> bool:
    """Shortcut for `TreeComparator().compare(a, b).equal`."""
    return TreeComparator().compare(a, b).equal
