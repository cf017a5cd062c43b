"""Typed models of the 2012-06 OME-XML schema (the subset yaoxml uses)."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import Field, NonNegativeInt, PositiveInt

from yaoxml._types import DimensionOrder, PixelType

from ._base import XSI_NAMESPACE, OMEElement

__all__ = [
    "OME",
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
    "Objective",
    "ObjectiveSettings",
    "Pixels",
    "Plane",
    "StructuredAnnotations",
    "TiffData",
    "XMLAnnotation",
]

# ---------------------------------------------------------------------------
# Instrument
# ---------------------------------------------------------------------------


class _ManufacturerSpec(OMEElement):
    manufacturer: str | None = Field(default=None, alias="Manufacturer")
    model: str | None = Field(default=None, alias="Model")
    serial_number: str | None = Field(default=None, alias="SerialNumber")
    lot_number: str | None = Field(default=None, alias="LotNumber")


class Microscope(_ManufacturerSpec):
    type: str | None = Field(default=None, alias="Type")


class _LightSource(_ManufacturerSpec):
    id: str = Field(alias="ID")
    power: float | None = Field(default=None, alias="Power")


class Laser(_LightSource):
    type: str | None = Field(default=None, alias="Type")
    laser_medium: str | None = Field(default=None, alias="LaserMedium")
    wavelength: PositiveInt | None = Field(default=None, alias="Wavelength")
    frequency_multiplication: PositiveInt | None = Field(
        default=None, alias="FrequencyMultiplication"
    )
    tuneable: bool | None = Field(default=None, alias="Tuneable")
    pulse: str | None = Field(default=None, alias="Pulse")
    pockel_cell: bool | None = Field(default=None, alias="PockelCell")
    repetition_rate: float | None = Field(default=None, alias="RepetitionRate")


class Arc(_LightSource):
    type: str | None = Field(default=None, alias="Type")


class Filament(_LightSource):
    type: str | None = Field(default=None, alias="Type")


class LightEmittingDiode(_LightSource):
    pass


class Detector(_ManufacturerSpec):
    id: str = Field(alias="ID")
    type: str | None = Field(default=None, alias="Type")
    gain: float | None = Field(default=None, alias="Gain")
    offset: float | None = Field(default=None, alias="Offset")
    voltage: float | None = Field(default=None, alias="Voltage")
    zoom: float | None = Field(default=None, alias="Zoom")
    amplification_gain: float | None = Field(default=None, alias="AmplificationGain")


class Objective(_ManufacturerSpec):
    id: str = Field(alias="ID")
    correction: str | None = Field(default=None, alias="Correction")
    immersion: str | None = Field(default=None, alias="Immersion")
    lens_na: float | None = Field(default=None, alias="LensNA")
    nominal_magnification: float | None = Field(
        default=None, alias="NominalMagnification"
    )
    calibrated_magnification: float | None = Field(
        default=None, alias="CalibratedMagnification"
    )
    working_distance: float | None = Field(default=None, alias="WorkingDistance")
    iris: bool | None = Field(default=None, alias="Iris")


class Instrument(OMEElement):
    id: str = Field(alias="ID")
    microscope: Microscope | None = None
    lasers: list[Laser] = Field(default_factory=list)
    arcs: list[Arc] = Field(default_factory=list)
    filaments: list[Filament] = Field(default_factory=list)
    light_emitting_diodes: list[LightEmittingDiode] = Field(default_factory=list)
    detectors: list[Detector] = Field(default_factory=list)
    objectives: list[Objective] = Field(default_factory=list)

    @property
    def light_sources(self) -> list[_LightSource]:
        return [*self.lasers, *self.arcs, *self.filaments, *self.light_emitting_diodes]


# ---------------------------------------------------------------------------
# Image / Pixels
# ---------------------------------------------------------------------------


class InstrumentRef(OMEElement):
    id: str = Field(alias="ID")


class ObjectiveSettings(OMEElement):
    id: str = Field(alias="ID")
    correction_collar: float | None = Field(default=None, alias="CorrectionCollar")
    medium: str | None = Field(default=None, alias="Medium")
    refractive_index: float | None = Field(default=None, alias="RefractiveIndex")


class LightSourceSettings(OMEElement):
    id: str = Field(alias="ID")
    attenuation: float | None = Field(default=None, alias="Attenuation")
    wavelength: PositiveInt | None = Field(default=None, alias="Wavelength")


class DetectorSettings(OMEElement):
    id: str = Field(alias="ID")
    binning: str | None = Field(default=None, alias="Binning")
    gain: float | None = Field(default=None, alias="Gain")
    offset: float | None = Field(default=None, alias="Offset")
    read_out_rate: float | None = Field(default=None, alias="ReadOutRate")
    voltage: float | None = Field(default=None, alias="Voltage")


class Channel(OMEElement):
    id: str = Field(alias="ID")
    name: str | None = Field(default=None, alias="Name")
    samples_per_pixel: PositiveInt | None = Field(default=None, alias="SamplesPerPixel")
    acquisition_mode: str | None = Field(default=None, alias="AcquisitionMode")
    illumination_type: str | None = Field(default=None, alias="IlluminationType")
    contrast_method: str | None = Field(default=None, alias="ContrastMethod")
    fluor: str | None = Field(default=None, alias="Fluor")
    color: int | None = Field(default=None, alias="Color")
    excitation_wavelength: PositiveInt | None = Field(
        default=None, alias="ExcitationWavelength"
    )
    emission_wavelength: PositiveInt | None = Field(
        default=None, alias="EmissionWavelength"
    )
    pinhole_size: float | None = Field(default=None, alias="PinholeSize")
    light_source_settings: LightSourceSettings | None = None
    detector_settings: DetectorSettings | None = None


class BinData(OMEElement):
    """Base64 pixel data; `big_endian` records the byte order of the samples."""

    xml_content: ClassVar[str | None] = "data"

    big_endian: bool = Field(alias="BigEndian")
    length: NonNegativeInt = Field(default=0, alias="Length")
    compression: str | None = Field(default=None, alias="Compression")
    data: str | None = None


class TiffData(OMEElement):
    ifd: NonNegativeInt | None = Field(default=None, alias="IFD")
    first_z: NonNegativeInt | None = Field(default=None, alias="FirstZ")
    first_t: NonNegativeInt | None = Field(default=None, alias="FirstT")
    first_c: NonNegativeInt | None = Field(default=None, alias="FirstC")
    plane_count: NonNegativeInt | None = Field(default=None, alias="PlaneCount")


class MetadataOnly(OMEElement):
    pass


class Plane(OMEElement):
    the_z: NonNegativeInt = Field(alias="TheZ")
    the_c: NonNegativeInt = Field(alias="TheC")
    the_t: NonNegativeInt = Field(alias="TheT")
    delta_t: float | None = Field(default=None, alias="DeltaT")
    exposure_time: float | None = Field(default=None, alias="ExposureTime")
    position_x: float | None = Field(default=None, alias="PositionX")
    position_y: float | None = Field(default=None, alias="PositionY")
    position_z: float | None = Field(default=None, alias="PositionZ")


class Pixels(OMEElement):
    id: str = Field(alias="ID")
    dimension_order: DimensionOrder = Field(alias="DimensionOrder")
    type: PixelType = Field(alias="Type")
    significant_bits: PositiveInt | None = Field(default=None, alias="SignificantBits")
    interleaved: bool | None = Field(default=None, alias="Interleaved")
    size_x: PositiveInt = Field(alias="SizeX")
    size_y: PositiveInt = Field(alias="SizeY")
    size_z: PositiveInt = Field(alias="SizeZ")
    size_c: PositiveInt = Field(alias="SizeC")
    size_t: PositiveInt = Field(alias="SizeT")
    physical_size_x: float | None = Field(default=None, alias="PhysicalSizeX")
    physical_size_y: float | None = Field(default=None, alias="PhysicalSizeY")
    physical_size_z: float | None = Field(default=None, alias="PhysicalSizeZ")
    time_increment: float | None = Field(default=None, alias="TimeIncrement")

    channels: list[Channel] = Field(default_factory=list)
    bin_data: list[BinData] = Field(default_factory=list)
    tiff_data: list[TiffData] = Field(default_factory=list)
    metadata_only: MetadataOnly | None = None
    planes: list[Plane] = Field(default_factory=list)


class Image(OMEElement):
    xml_text_children: ClassVar[tuple[str, ...]] = ("acquisition_date", "description")

    id: str = Field(alias="ID")
    name: str | None = Field(default=None, alias="Name")
    acquisition_date: datetime | None = Field(default=None, alias="AcquisitionDate")
    description: str | None = Field(default=None, alias="Description")
    instrument_ref: InstrumentRef | None = None
    objective_settings: ObjectiveSettings | None = None
    pixels: Pixels


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


class XMLAnnotation(OMEElement):
    """Free-form XML annotation; `value` holds the content of `<Value>`."""

    xml_text_children: ClassVar[tuple[str, ...]] = ("description",)
    xml_raw_children: ClassVar[tuple[str, ...]] = ("value",)

    id: str = Field(alias="ID")
    namespace: str | None = Field(default=None, alias="Namespace")
    description: str | None = Field(default=None, alias="Description")
    value: str = Field(default="", alias="Value")


class StructuredAnnotations(OMEElement):
    xml_annotations: list[XMLAnnotation] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class OME(OMEElement):
    """Root of an OME-XML document.

    Examples
    --------
    >>> from yaoxml.ome import OME, Image, Pixels
    >>> pixels = Pixels(
    ...     id="Pixels:0", dimension_order="XYZCT", type="uint8",
    ...     size_x=64, size_y=64, size_z=1, size_c=1, size_t=1,
    ... )
    >>> root = OME(images=[Image(id="Image:0", pixels=pixels)])
    >>> root.images[0].pixels.size_x
    64
    """

    uuid: str | None = Field(default=None, alias="UUID")
    creator: str | None = Field(default=None, alias="Creator")
    schema_location: str | None = Field(
        default=None, alias=f"{{{XSI_NAMESPACE}}}schemaLocation"
    )
    instruments: list[Instrument] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)
    structured_annotations: StructuredAnnotations | None = None

    @property
    def image_count(self) -> int:
        return len(self.images)

    def instrument(self, instrument_id: str) -> Instrument | None:
        return next((i for i in self.instruments if i.id == instrument_id), None)
