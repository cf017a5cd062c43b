"""Known OME-XML schema releases and detection of a document's release."""

from __future__ import annotations

import functools
from enum import Enum
from typing import TYPE_CHECKING, Any

from lxml import etree

from yaoxml._errors import UnknownVersionError
from yaoxml._xml import parse_to_tree

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["SchemaVersion", "detect_version", "latest_version"]

_SCHEMA_ROOT = "http://www.openmicroscopy.org/Schemas/OME/"
_FC_NAMESPACE = "http://www.openmicroscopy.org/XMLschemas/OME/FC/ome.xsd"

# namespace declarations that may carry the schema, highest priority first
_VERSION_PREFIXES = (None, "ome", "OME")


@functools.total_ordering
class SchemaVersion(Enum):
    """A named OME-XML release.

    Members compare in release order and round-trip through their token:

    >>> SchemaVersion("2008-09") < SchemaVersion.V2012_06
    True
    >>> SchemaVersion.V2010_04.namespace
    'http://www.openmicroscopy.org/Schemas/OME/2010-04'
    """

    V2003_FC = "2003-FC"
    V2006_LO = "2006-LO"
    V2007_06 = "2007-06"
    V2008_02 = "2008-02"
    V2008_09 = "2008-09"
    V2009_09 = "2009-09"
    V2010_04 = "2010-04"
    V2010_06 = "2010-06"
    V2011_06 = "2011-06"
    V2012_06 = "2012-06"

    @property
    def token(self) -> str:
        return self.value

    @property
    def namespace(self) -> str:
        if self is SchemaVersion.V2003_FC:
            return _FC_NAMESPACE
        return _SCHEMA_ROOT + self.value

    @property
    def schema_location(self) -> str:
        """Value for `xsi:schemaLocation` on a root of this release."""
        return f"{self.namespace} {self.namespace}/ome.xsd"

    @property
    def _rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self._rank < other._rank

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_namespace(cls, namespace: str) -> Self:
        """Return the release a namespace URI belongs to.

        Raises
        ------
        UnknownVersionError
            If the URI does not name a known release.
        """
        if namespace.endswith("ome.xsd"):
            return cls.V2003_FC
        token = namespace.rstrip("/").rsplit("/", 1)[-1]
        try:
            return cls(token)
        except ValueError:
            raise UnknownVersionError(
                f"Unknown OME-XML schema version {token!r} (namespace {namespace!r})",
                namespace=namespace,
            ) from None


def latest_version() -> SchemaVersion:
    """The newest known release."""
    return list(SchemaVersion)[-1]


def _root_namespace(root: etree._Element) -> str | None:
    nsmap = root.nsmap
    for prefix in _VERSION_PREFIXES:
        if uri := nsmap.get(prefix):
            return uri
    return etree.QName(root).namespace


def detect_version(obj: Any) -> SchemaVersion:
    """Return the schema release of a document.

    Parameters
    ----------
    obj : str | bytes | lxml.etree._Element | OME | OMEMetadata
        Raw document text, a parsed root element, or a typed root.  Typed roots
        always hold the latest release.

    Raises
    ------
    ParseError
        If `obj` is text that is not well-formed XML.
    UnknownVersionError
        If the root declares no namespace, or one that is not a known release.
    """
    if isinstance(obj, (str, bytes)):
        obj = parse_to_tree(obj)
    elif isinstance(obj, etree._ElementTree):
        obj = obj.getroot()

    if not isinstance(obj, etree._Element):
        from yaoxml.ome import OME, OMEMetadata

        if isinstance(obj, (OME, OMEMetadata)):
            return latest_version()
        raise TypeError(f"Cannot detect the schema version of {type(obj).__name__}")

    namespace = _root_namespace(obj)
    if not namespace:
        raise UnknownVersionError("Document root declares no OME namespace")
    return SchemaVersion.from_namespace(namespace)
