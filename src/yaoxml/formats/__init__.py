"""Metadata types of the formats yaoxml translates to and from OME-XML."""

from ._fake import FakeMetadata
from ._ics import ICSMetadata

__all__ = ["FakeMetadata", "ICSMetadata"]
