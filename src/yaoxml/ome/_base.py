"""Binding between pydantic models and elements of the OME namespace.

Every model field maps to one piece of XML, decided by its annotation:

- a field typed as (a list of / an optional) `OMEElement` is a child element,
  named after the child model;
- a field listed in `xml_text_children` is a child element holding only text
  (e.g. `<Description>`);
- the field named by `xml_content` is the element's own text;
- a field listed in `xml_raw_children` is a child element whose content is
  kept verbatim as an XML string;
- anything else is an attribute, named by the field alias.

Attributes are written in alphabetical order, children in field order.
"""

from __future__ import annotations

import types
from datetime import datetime
from functools import cache
from typing import TYPE_CHECKING, Any, ClassVar, Literal, Union, get_args, get_origin

from lxml import etree

from yaoxml._base import _BaseModel
from yaoxml.migration import SchemaVersion

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["OME_NAMESPACE", "XSI_NAMESPACE", "OMEElement"]

OME_NAMESPACE = SchemaVersion.V2012_06.namespace
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

_FieldKind = Literal["attribute", "element", "text", "content", "raw"]


def _qualify(name: str) -> str:
    return f"{{{OME_NAMESPACE}}}{name}"


def _unwrap(annotation: Any) -> tuple[Any, bool]:
    """Return (inner type, is_list) for `list[T]`, `T | None` and `T`."""
    origin = get_origin(annotation)
    if origin is list:
        return get_args(annotation)[0], True
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return _unwrap(args[0])
    return annotation, False


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class OMEElement(_BaseModel):
    """A model that reads from and writes to one OME-XML element."""

    xml_name: ClassVar[str | None] = None
    xml_text_children: ClassVar[tuple[str, ...]] = ()
    xml_content: ClassVar[str | None] = None
    xml_raw_children: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def xml_tag(cls) -> str:
        return cls.xml_name or cls.__name__

    @classmethod
    def _field_kinds(cls) -> dict[str, tuple[_FieldKind, Any, bool]]:
        return _field_kinds(cls)

    # -- reading --

    @classmethod
    def from_xml_element(cls, element: etree._Element) -> Self:
        """Build a model from `element`, ignoring content it does not model."""
        children: dict[str, list[etree._Element]] = {}
        for child in element:
            if isinstance(child.tag, str):
                name = etree.QName(child).localname
                children.setdefault(name, []).append(child)

        data: dict[str, Any] = {}
        for name, (kind, inner, many) in cls._field_kinds().items():
            alias = cls.model_fields[name].alias or name
            if kind == "attribute":
                if (value := element.get(alias)) is not None:
                    data[name] = value
            elif kind == "content":
                data[name] = element.text
            elif kind == "element":
                found = children.get(inner.xml_tag(), [])
                if many:
                    data[name] = [inner.from_xml_element(c) for c in found]
                elif found:
                    data[name] = inner.from_xml_element(found[0])
            elif found := children.get(alias):
                if kind == "text":
                    data[name] = found[0].text or ""
                else:
                    data[name] = _inner_xml(found[0])
        return cls.model_validate(data)

    @classmethod
    def from_xml(cls, text: str | bytes) -> Self:
        from yaoxml._xml import parse_to_tree

        return cls.from_xml_element(parse_to_tree(text))

    # -- writing --

    def to_xml_element(self, parent: etree._Element | None = None) -> etree._Element:
        """Write this model as a new element (appended to `parent` if given)."""
        tag = _qualify(self.xml_tag())
        if parent is None:
            nsmap = {None: OME_NAMESPACE, "xsi": XSI_NAMESPACE}
            element = etree.Element(tag, nsmap=nsmap)  # type: ignore[arg-type]
        else:
            element = etree.SubElement(parent, tag)

        attributes: dict[str, str] = {}
        for name, (kind, _, many) in self._field_kinds().items():
            value = getattr(self, name)
            if value is None or (many and not value):
                continue
            alias = type(self).model_fields[name].alias or name
            if kind == "attribute":
                attributes[alias] = _format(value)
            elif kind == "content":
                element.text = _format(value)
            elif kind == "element":
                for item in value if many else (value,):
                    item.to_xml_element(element)
            elif kind == "text":
                etree.SubElement(element, _qualify(alias)).text = _format(value)
            else:
                _set_inner_xml(etree.SubElement(element, _qualify(alias)), value)

        for key in sorted(attributes):
            element.set(key, attributes[key])
        return element

    def to_xml(self, pretty: bool = False) -> str:
        from yaoxml._xml import serialize

        return serialize(self.to_xml_element(), pretty=pretty)


@cache
def _field_kinds(cls: type[OMEElement]) -> dict[str, tuple[_FieldKind, Any, bool]]:
    kinds: dict[str, tuple[_FieldKind, Any, bool]] = {}
    for name, info in cls.model_fields.items():
        inner, many = _unwrap(info.annotation)
        kind: _FieldKind
        if isinstance(inner, type) and issubclass(inner, OMEElement):
            kind = "element"
        elif name in cls.xml_text_children:
            kind = "text"
        elif name == cls.xml_content:
            kind = "content"
        elif name in cls.xml_raw_children:
            kind = "raw"
        else:
            kind = "attribute"
        kinds[name] = (kind, inner, many)
    return kinds


def _inner_xml(element: etree._Element) -> str:
    parts = [element.text or ""]
    parts.extend(etree.tostring(c, encoding="unicode", with_tail=True) for c in element)
    return "".join(parts)


def _set_inner_xml(element: etree._Element, xml: str) -> None:
    wrapper = etree.fromstring(f'<wrapper xmlns="{OME_NAMESPACE}">{xml}</wrapper>')
    element.text = wrapper.text
    element.extend(list(wrapper))
