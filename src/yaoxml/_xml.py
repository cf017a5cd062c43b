"""Thin XML service on top of lxml: parse, serialize, transform, validate.

Everything else in yaoxml treats XML through these functions only.
"""

from __future__ import annotations

import logging
import os
from importlib import resources
from typing import TYPE_CHECKING

from lxml import etree

from ._errors import ParseError

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "StylesheetCache",
    "apply_transform",
    "compile_stylesheet",
    "parse_to_tree",
    "register_schema",
    "serialize",
    "validate",
]

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(
    remove_blank_text=True,
    resolve_entities=False,
    no_network=True,
)

_SCHEMAS: dict[str, str] = {}


def parse_to_tree(text: str | bytes) -> etree._Element:
    """Parse an XML document and return its root element.

    Raises
    ------
    ParseError
        If `text` is not well-formed XML.
    """
    if isinstance(text, str):
        # lxml refuses str input that carries an encoding declaration
        text = text.encode("utf-8")
    try:
        return etree.fromstring(text, _PARSER)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML: {e}") from e


def serialize(tree: etree._Element | etree._ElementTree, pretty: bool = False) -> str:
    """Return `tree` as a unicode string (no XML declaration)."""
    return etree.tostring(tree, encoding="unicode", pretty_print=pretty)


def compile_stylesheet(path: str | os.PathLike) -> etree.XSLT:
    """Read and compile an XSLT stylesheet."""
    try:
        doc = etree.parse(os.fspath(path), _PARSER)
        return etree.XSLT(doc)
    except (OSError, etree.XMLSyntaxError) as e:
        raise ParseError(f"Could not read stylesheet {path}: {e}") from e


def apply_transform(tree: etree._Element, stylesheet: etree.XSLT) -> etree._Element:
    """Apply a compiled stylesheet and return the root of the result tree.

    Raises
    ------
    lxml.etree.XSLTApplyError
        If the stylesheet fails or produces no root element.
    """
    result = stylesheet(tree)
    root = result.getroot()
    if root is None:
        raise etree.XSLTApplyError("Stylesheet produced an empty document")
    return root


def register_schema(name: str, path: str | os.PathLike) -> None:
    """Make an XSD available to `validate` under `name`."""
    _SCHEMAS[name] = os.fspath(path)


def validate(text: str | bytes, schema: str) -> bool:
    """Validate a document against a registered schema name or an XSD path.

    Returns False (and logs why) for malformed input or validation errors.
    """
    path = _SCHEMAS.get(schema, schema)
    if not os.path.exists(path):
        raise FileNotFoundError(f"No schema registered as or found at {schema!r}")
    xsd = etree.XMLSchema(etree.parse(path))
    try:
        root = parse_to_tree(text)
    except ParseError as e:
        logger.info("Malformed document: %s", e)
        return False
    if xsd.validate(root):
        return True
    for err in xsd.error_log:
        logger.info("%s:%s: %s", err.line, err.column, err.message)
    return False


class StylesheetCache:
    """Lazily compiled stylesheets, one per key.

    Stylesheets are looked up as package resources of `package` (e.g. a
    `stylesheets` directory).  Two threads asking for the same key at once may
    both compile it; the second result simply replaces the first.
    """

    def __init__(
        self,
        package: str,
        compiler: Callable[[str], etree.XSLT] = compile_stylesheet,
    ) -> None:
        self._package = package
        self._compiler = compiler
        self._compiled: dict[str, etree.XSLT] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._compiled

    def get(self, name: str) -> etree.XSLT:
        if (xslt := self._compiled.get(name)) is None:
            logger.debug("Compiling stylesheet %s", name)
            resource = resources.files(self._package).joinpath(*name.split("/"))
            with resources.as_file(resource) as path:
                xslt = self._compiler(str(path))
            self._compiled[name] = xslt
        return xslt

    def clear(self) -> None:
        self._compiled.clear()
