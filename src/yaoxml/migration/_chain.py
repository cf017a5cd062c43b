"""Sequential upgrade of OME-XML documents to the latest schema release.

Each step is an XSLT 1.0 stylesheet that takes a document of one release to
the next.  The four earliest releases share a single step that jumps straight
to 2008-09.  A document of release Vk goes through every step whose target is
newer than Vk, in release order, each step consuming the previous step's
output tree.
"""

from __future__ import annotations

import copy
import functools
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypedDict

from lxml import etree
from typing_extensions import NotRequired

from yaoxml._errors import MigrationStepError, ParseError, UnknownVersionError
from yaoxml._xml import StylesheetCache, apply_transform, parse_to_tree, serialize

from ._versions import SchemaVersion, detect_version, latest_version

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

__all__ = [
    "STEPS",
    "MetadataDocument",
    "MigrationChain",
    "MigrationErrorDetails",
    "MigrationResult",
    "MigrationStep",
    "cleanup_prefixes",
    "default_chain",
    "migrate",
    "normalize_namespace",
    "upgrade_text",
]

logger = logging.getLogger(__name__)

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
_SCHEMA_LOCATION = f"{{{XSI_NAMESPACE}}}schemaLocation"

# prefixes invented by the stylesheets (and by lxml for undeclared namespaces)
_SYNTHETIC_PREFIX = re.compile(r"^ns\d*$")
_ALIAS_PREFIXES = ("ome", "OME")


@dataclass(frozen=True)
class MigrationStep:
    """One authored upgrade: `stylesheet` takes any of `sources` to `target`."""

    name: str
    sources: frozenset[SchemaVersion]
    target: SchemaVersion
    stylesheet: str

    def accepts(self, version: SchemaVersion) -> bool:
        return version in self.sources


V = SchemaVersion
STEPS: tuple[MigrationStep, ...] = (
    MigrationStep(
        "legacy-to-2008-09",
        frozenset({V.V2003_FC, V.V2006_LO, V.V2007_06, V.V2008_02}),
        V.V2008_09,
        "stylesheets/legacy-to-2008-09.xsl",
    ),
    MigrationStep(
        "2008-09-to-2009-09",
        frozenset({V.V2008_09}),
        V.V2009_09,
        "stylesheets/2008-09-to-2009-09.xsl",
    ),
    MigrationStep(
        "2009-09-to-2010-04",
        frozenset({V.V2009_09}),
        V.V2010_04,
        "stylesheets/2009-09-to-2010-04.xsl",
    ),
    MigrationStep(
        "2010-04-to-2010-06",
        frozenset({V.V2010_04}),
        V.V2010_06,
        "stylesheets/2010-04-to-2010-06.xsl",
    ),
    MigrationStep(
        "2010-06-to-2011-06",
        frozenset({V.V2010_06}),
        V.V2011_06,
        "stylesheets/2010-06-to-2011-06.xsl",
    ),
    MigrationStep(
        "2011-06-to-2012-06",
        frozenset({V.V2011_06}),
        V.V2012_06,
        "stylesheets/2011-06-to-2012-06.xsl",
    ),
)
del V


class MetadataDocument:
    """An XML element tree tagged with the schema release it conforms to.

    Migration replaces `root` and `version`; the document object itself keeps
    its identity.
    """

    def __init__(
        self, root: etree._Element, version: SchemaVersion | None = None
    ) -> None:
        self.root = root
        self.version = detect_version(root) if version is None else version

    @classmethod
    def from_text(cls, text: str | bytes) -> MetadataDocument:
        return cls(parse_to_tree(text))

    def to_text(self, pretty: bool = False) -> str:
        return serialize(self.root, pretty=pretty)

    def __repr__(self) -> str:
        name = etree.QName(self.root).localname
        return f"<{type(self).__name__} {self.version} <{name}>>"


class MigrationErrorDetails(TypedDict):
    type: str
    """Identifier of the failure: 'parse', 'unknown_version' or 'step'."""
    loc: tuple[str, ...]
    """Name of the step that failed (empty before any step ran)."""
    msg: str
    """A human readable error message."""
    ctx: NotRequired[dict[str, Any]]


@dataclass
class MigrationResult:
    """Outcome of a migration. Failures are reported here, never raised."""

    document: MetadataDocument | None
    source_version: SchemaVersion | None
    applied: list[str] = field(default_factory=list)
    errors: list[MigrationErrorDetails] = field(default_factory=list)
    text: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def version(self) -> SchemaVersion | None:
        """Release of the document after migration."""
        return None if self.document is None else self.document.version

    def add_error(
        self,
        error_type: str,
        loc: tuple[str, ...],
        msg: str,
        *,
        ctx: dict[str, Any] | None = None,
    ) -> MigrationResult:
        error: MigrationErrorDetails = {"type": error_type, "loc": loc, "msg": msg}
        if ctx is not None:
            error["ctx"] = ctx
        self.errors.append(error)
        return self

    def __bool__(self) -> bool:
        return self.ok


def _adopt(element: etree._Element, namespace: str) -> None:
    """Move `element` and its un-namespaced OME descendants into `namespace`."""
    qname = etree.QName(element)
    if qname.namespace is None:
        element.tag = f"{{{namespace}}}{qname.localname}"
    elif qname.namespace != namespace:
        # foreign content keeps its namespace
        return
    for child in element:
        if isinstance(child.tag, str):
            _adopt(child, namespace)


def normalize_namespace(
    root: etree._Element, namespace: str, step: str
) -> etree._Element:
    """Return a copy of `root` with every OME element in `namespace`.

    Elements in no namespace are moved into `namespace`, and both the default
    namespace and the `ome` prefix are declared for it on the new root.

    Raises
    ------
    MigrationStepError
        If the root element is in some other namespace.
    """
    found = etree.QName(root).namespace
    if found is not None and found != namespace:
        raise MigrationStepError(
            step, f"expected namespace {namespace!r}, found {found!r}"
        )

    tree = copy.deepcopy(root)
    _adopt(tree, namespace)

    nsmap: dict[str | None, str] = {
        k: v
        for k, v in tree.nsmap.items()
        if k is not None and k not in _ALIAS_PREFIXES and v != namespace
    }
    nsmap[None] = namespace
    nsmap["ome"] = namespace

    new_root = etree.Element(tree.tag, attrib=dict(tree.attrib), nsmap=nsmap)
    new_root.text = tree.text
    new_root.extend(list(tree))
    return new_root


def _attribute_namespaces(root: etree._Element) -> dict[str, str]:
    """Prefix → URI for namespaces used by attributes anywhere under `root`."""
    used = {
        etree.QName(name).namespace
        for el in root.iter()
        if isinstance(el.tag, str)
        for name in el.attrib
        if name.startswith("{")
    }
    prefixes: dict[str, str] = {}
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        for prefix, uri in el.nsmap.items():
            if (
                prefix
                and uri in used
                and uri not in prefixes.values()
                and not _SYNTHETIC_PREFIX.match(prefix)
            ):
                prefixes[prefix] = uri
    return prefixes


def _copy_content(src: etree._Element, dst: etree._Element, namespace: str) -> None:
    for name, value in src.attrib.items():
        dst.set(name, value)
    dst.text = src.text
    for child in src:
        if isinstance(child.tag, str):
            child_ns = etree.QName(child).namespace
            nsmap = None
            declared = dst.nsmap.values()
            if child_ns and child_ns != namespace and child_ns not in declared:
                nsmap = {None: child_ns}
            new = etree.SubElement(dst, child.tag, nsmap=nsmap)
            _copy_content(child, new, namespace)
        else:
            new = copy.copy(child)
            dst.append(new)
        new.tail = child.tail


def cleanup_prefixes(root: etree._Element, namespace: str) -> etree._Element:
    """Rebuild `root` so that `namespace` is the default, unprefixed namespace.

    Synthetic prefixes (`ns`, `ns0`, …) and the `ome`/`OME` aliases are
    dropped.  An `xsi:schemaLocation` pointing at another namespace is stale
    and removed.
    """
    nsmap: dict[str | None, str] = {
        p: uri
        for p, uri in _attribute_namespaces(root).items()
        if uri != namespace and p not in _ALIAS_PREFIXES
    }
    nsmap[None] = namespace
    new_root = etree.Element(root.tag, nsmap=nsmap)
    _copy_content(root, new_root, namespace)

    location = new_root.get(_SCHEMA_LOCATION)
    if location is not None and not location.startswith(namespace):
        logger.debug("Dropping stale schemaLocation %r", location)
        del new_root.attrib[_SCHEMA_LOCATION]
    return new_root


class MigrationChain:
    """An ordered set of upgrade steps and the stylesheets they run.

    Parameters
    ----------
    steps : Iterable[MigrationStep]
        Steps to choose from; they are applied in order of their target.
    cache : StylesheetCache, optional
        Where compiled stylesheets are kept.  Defaults to one reading this
        package's bundled stylesheets.
    """

    def __init__(
        self,
        steps: Iterable[MigrationStep] = STEPS,
        cache: StylesheetCache | None = None,
    ) -> None:
        self.steps: tuple[MigrationStep, ...] = tuple(
            sorted(steps, key=lambda s: s.target)
        )
        self.cache = cache or StylesheetCache("yaoxml.migration")

    @property
    def latest(self) -> SchemaVersion:
        return self.steps[-1].target if self.steps else latest_version()

    def steps_for(self, version: SchemaVersion) -> list[MigrationStep]:
        """Steps that take a `version` document to the latest release."""
        return [s for s in self.steps if s.target > version]

    def _run(
        self,
        root: etree._Element,
        version: SchemaVersion,
        steps: Sequence[MigrationStep],
    ) -> tuple[etree._Element, SchemaVersion, list[str]]:
        applied: list[str] = []
        for step in steps:
            if not step.accepts(version):
                raise MigrationStepError(
                    step.name, f"no upgrade step starts from release {version}"
                )
            logger.debug("Applying %s to a %s document", step.name, version)
            root = normalize_namespace(root, version.namespace, step.name)
            try:
                root = apply_transform(root, self.cache.get(step.stylesheet))
            except (etree.XSLTError, ParseError) as e:
                raise MigrationStepError(step.name, str(e)) from e

            found = etree.QName(root).namespace
            if found != step.target.namespace:
                raise MigrationStepError(
                    step.name,
                    f"produced a root in namespace {found!r}, "
                    f"expected {step.target.namespace!r}",
                )
            version = step.target
            applied.append(step.name)
        return cleanup_prefixes(root, version.namespace), version, applied

    def migrate(self, document: MetadataDocument) -> MigrationResult:
        """Bring `document` to the latest release, in place.

        A document that is already current is returned untouched.  On failure
        the document keeps its original tree and the result carries the error.
        """
        result = MigrationResult(document=document, source_version=document.version)
        pending = self.steps_for(document.version)
        if not pending:
            return result

        try:
            root, version, applied = self._run(document.root, document.version, pending)
        except MigrationStepError as e:
            logger.warning("Could not upgrade %s document: %s", document.version, e)
            return result.add_error(
                "step", (e.step,), str(e), ctx={"detail": e.detail}
            )

        document.root = root
        document.version = version
        result.applied = applied
        return result

    def upgrade_text(self, text: str | bytes) -> MigrationResult:
        """Upgrade raw document text.

        On success `result.text` holds the upgraded document, or the original
        text when no step applied.
        """
        try:
            document = MetadataDocument.from_text(text)
        except ParseError as e:
            logger.warning("%s", e)
            return MigrationResult(None, None).add_error("parse", (), str(e))
        except UnknownVersionError as e:
            logger.warning("%s", e)
            return MigrationResult(None, None).add_error(
                "unknown_version", (), str(e), ctx={"namespace": e.namespace}
            )

        result = self.migrate(document)
        if result.ok:
            if result.applied:
                result.text = document.to_text()
            else:
                result.text = text.decode() if isinstance(text, bytes) else text
        return result


@functools.cache
def default_chain() -> MigrationChain:
    """The chain of bundled stylesheets (built once)."""
    return MigrationChain()


def migrate(document: MetadataDocument) -> MigrationResult:
    """Migrate `document` with the default chain. See `MigrationChain.migrate`."""
    return default_chain().migrate(document)


def upgrade_text(text: str | bytes) -> MigrationResult:
    """Upgrade raw text with the default chain."""
    return default_chain().upgrade_text(text)
