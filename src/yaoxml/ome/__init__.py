"""Typed OME-XML (2012-06) models and the OME metadata service."""

from ._base import OME_NAMESPACE, XSI_NAMESPACE, OMEElement
from ._metadata import (
    ORIGINAL_METADATA_NS,
    OMEMetadata,
    add_metadata_only,
    create_ome_metadata,
    dump_xml,
    get_original_metadata,
    populate_original_metadata,
    remove_bin_data,
    remove_channels,
    validate_omexml,
    verify_minimum_populated,
)
from ._model import (
    OME,
    Arc,
    BinData,
    Channel,
    Detector,
    DetectorSettings,
    Filament,
    Image,
    Instrument,
    InstrumentRef,
    Laser,
    LightEmittingDiode,
    LightSourceSettings,
    MetadataOnly,
    Microscope,
    Objective,
    ObjectiveSettings,
    Pixels,
    Plane,
    StructuredAnnotations,
    TiffData,
    XMLAnnotation,
)

__all__ = [
    "OME",
    "OME_NAMESPACE",
    "ORIGINAL_METADATA_NS",
    "XSI_NAMESPACE",
    "Arc",
    "BinData",
    "Channel",
    "Detector",
    "DetectorSettings",
    "Filament",
    "Image",
    "Instrument",
    "InstrumentRef",
    "Laser",
    "LightEmittingDiode",
    "LightSourceSettings",
    "MetadataOnly",
    "Microscope",
    "OMEElement",
    "OMEMetadata",
    "Objective",
    "ObjectiveSettings",
    "Pixels",
    "Plane",
    "StructuredAnnotations",
    "TiffData",
    "XMLAnnotation",
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
