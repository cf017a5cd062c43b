"""OME-XML as a translatable metadata object, and operations on it."""

from __future__ import annotations

import logging
from typing import ClassVar

from lxml import etree
from pydantic import Field, ValidationError

from yaoxml import _xml
from yaoxml._errors import MigrationStepError, MissingFieldError, ParseError
from yaoxml._image import Metadata
from yaoxml.migration import MetadataDocument, migrate

from ._base import OME_NAMESPACE, _qualify
from ._model import (
    OME,
    MetadataOnly,
    StructuredAnnotations,
    XMLAnnotation,
)

__all__ = [
    "ORIGINAL_METADATA_NS",
    "OMEMetadata",
    "add_metadata_only",
    "create_ome_metadata",
    "dump_xml",
    "get_original_metadata",
    "populate_original_metadata",
    "remove_bin_data",
    "remove_channels",
    "validate_omexml",
    "verify_minimum_populated",
]

logger = logging.getLogger(__name__)

ORIGINAL_METADATA_NS = "openmicroscopy.org/OriginalMetadata"


class OMEMetadata(Metadata):
    """An OME-XML document of the latest schema release, as typed models."""

    format_name: ClassVar[str] = "OME-XML"

    root: OME = Field(default_factory=OME)

    @property
    def image_count(self) -> int:
        return self.root.image_count

    def to_xml(self, pretty: bool = False) -> str:
        return self.root.to_xml(pretty=pretty)


def create_ome_metadata(xml: str | bytes | None = None) -> OMEMetadata:
    """Build an `OMEMetadata` from document text of any known release.

    Older documents are upgraded to the latest release first.  With no text,
    an empty document is returned.

    Raises
    ------
    ParseError
        If the text is malformed or does not describe valid OME-XML.
    UnknownVersionError
        If the schema release cannot be determined.
    MigrationStepError
        If the document could not be upgraded.
    """
    if xml is None:
        return OMEMetadata()

    document = MetadataDocument.from_text(xml)
    result = migrate(document)
    if not result.ok:
        error = result.errors[0]
        detail = error.get("ctx", {}).get("detail", error["msg"])
        raise MigrationStepError(error["loc"][0], detail)
    try:
        root = OME.from_xml_element(document.root)
    except ValidationError as e:
        raise ParseError(f"Invalid OME-XML document: {e}") from e
    return OMEMetadata(root=root)


def dump_xml(meta: OMEMetadata | OME, pretty: bool = False) -> str:
    """Serialize an OME root as document text."""
    root = meta.root if isinstance(meta, OMEMetadata) else meta
    return root.to_xml(pretty=pretty)


# ---------------------------------------------------------------------------
# Original metadata
# ---------------------------------------------------------------------------


def populate_original_metadata(meta: OMEMetadata, key: str, value: str) -> None:
    """Record a `key: value` pair of format-native metadata as an annotation."""
    root = meta.root
    if root.structured_annotations is None:
        root.structured_annotations = StructuredAnnotations()
    annotations = root.structured_annotations.xml_annotations

    node = etree.Element(_qualify("OriginalMetadata"), nsmap={None: OME_NAMESPACE})
    etree.SubElement(node, _qualify("Key")).text = key
    etree.SubElement(node, _qualify("Value")).text = value
    annotations.append(
        XMLAnnotation(
            id=f"Annotation:{len(annotations)}",
            namespace=ORIGINAL_METADATA_NS,
            value=etree.tostring(node, encoding="unicode"),
        )
    )


def get_original_metadata(meta: OMEMetadata) -> dict[str, str]:
    """Return the `key: value` pairs stored by `populate_original_metadata`."""
    found: dict[str, str] = {}
    if meta.root.structured_annotations is None:
        return found
    for annotation in meta.root.structured_annotations.xml_annotations:
        if annotation.namespace != ORIGINAL_METADATA_NS:
            continue
        wrapper = etree.fromstring(
            f'<wrapper xmlns="{OME_NAMESPACE}">{annotation.value}</wrapper>'
        )
        for node in wrapper.iter(_qualify("OriginalMetadata"), "OriginalMetadata"):
            parts = {etree.QName(c).localname: c.text or "" for c in node}
            if "Key" in parts:
                found[parts["Key"]] = parts.get("Value", "")
    return found


# ---------------------------------------------------------------------------
# Pruning
# ---------------------------------------------------------------------------


def remove_bin_data(meta: OMEMetadata) -> None:
    """Drop every `BinData` element (pixel data is stored elsewhere)."""
    for image in meta.root.images:
        image.pixels.bin_data = []


def remove_channels(meta: OMEMetadata, image: int, size_c: int) -> None:
    """Keep only the first `size_c` channels of image number `image`."""
    pixels = meta.root.images[image].pixels
    pixels.channels = pixels.channels[:size_c]


def add_metadata_only(meta: OMEMetadata, image: int) -> None:
    """Mark image number `image` as carrying no pixel data."""
    meta.root.images[image].pixels.metadata_only = MetadataOnly()


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def verify_minimum_populated(meta: OMEMetadata, image: int = 0) -> None:
    """Check that image number `image` has every field a reader depends on.

    Raises
    ------
    MissingFieldError
        Naming the first missing field.
    """
    if image >= meta.root.image_count:
        raise MissingFieldError(f"Image #{image} is missing")
    img = meta.root.images[image]
    if not img.id:
        raise MissingFieldError(f"Image ID #{image} is empty")
    pixels = img.pixels
    if not pixels.id:
        raise MissingFieldError(f"Pixels ID #{image} is empty")
    if not pixels.bin_data:
        raise MissingFieldError(f"BigEndian #{image} is missing (no BinData)")
    for c, channel in enumerate(pixels.channels):
        if not channel.id:
            raise MissingFieldError(f"Channel ID #{image}:{c} is empty")


def validate_omexml(xml: str | bytes, schema: str, pixels_hack: bool = False) -> bool:
    """Validate OME-XML text against an XSD (registered name or path).

    With `pixels_hack`, every `Pixels` element without children first gets an
    empty `TiffData`, so that documents stripped of their pixel data still
    validate.
    """
    if pixels_hack:
        try:
            root = _xml.parse_to_tree(xml)
        except ParseError as e:
            logger.info("%s", e)
            return False
        for pixels in root.iter("{*}Pixels"):
            if not any(isinstance(c.tag, str) for c in pixels):
                ns = etree.QName(pixels).namespace
                etree.SubElement(pixels, f"{{{ns}}}TiffData" if ns else "TiffData")
        xml = _xml.serialize(root)
    return _xml.validate(xml, schema)
