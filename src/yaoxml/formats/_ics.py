"""Image Cytometry Standard (ICS) headers.

An ICS header is a text file of separated lines: a category, one or more key
words, then the values.  The first line declares the field separator.  Only
the keys listed in `ICS_KEYS` are understood; every other line is kept
verbatim in `ICSMetadata.extra`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Literal,
    get_args,
    get_origin,
)

from annotated_types import MinLen
from pydantic import Field, ValidationError

from yaoxml._dimensions import effective_channel_count, plane_index, zct_coords
from yaoxml._errors import PartialFieldError, TranslationError
from yaoxml._image import CanonicalMetadata, ImageMetadata, Metadata
from yaoxml._types import BITS_PER_PIXEL, pixel_type_from_bits
from yaoxml.ome import (
    Detector,
    Image,
    Instrument,
    InstrumentRef,
    Laser,
    Microscope,
    Objective,
    OMEMetadata,
    Plane,
)
from yaoxml.translation._ome import image_from_ome, image_to_ome, set_optional
from yaoxml.translation._registry import Priority, Translator, create_lsid

if TYPE_CHECKING:
    from typing_extensions import Self

    from yaoxml._options import TranslationOptions

__all__ = ["ICS_KEYS", "TRANSLATORS", "ICSMetadata"]

logger = logging.getLogger(__name__)

# ICS key (space separated words) -> ICSMetadata field
ICS_KEYS: dict[str, str] = {
    "layout order": "layout_order",
    "layout sizes": "layout_sizes",
    "representation format": "representation_format",
    "representation sign": "representation_sign",
    "representation byte_order": "byte_order",
    "parameter scale": "parameter_scale",
    "parameter units": "parameter_units",
    "parameter t": "timestamps",
    "history date": "date",
    "history other text": "description",
    "history labels": "channel_names",
    "history microscope": "microscope_model",
    "history manufacturer": "microscope_manufacturer",
    "history laser manufacturer": "laser_manufacturer",
    "history laser model": "laser_model",
    "history laser power": "laser_power",
    "history objective type": "objective_model",
    "history objective immersion": "immersion",
    "history objective na": "lens_na",
    "history objective magnification": "magnification",
    "history objective workingdistance": "working_distance",
    "history camera manufacturer": "detector_manufacturer",
    "history camera model": "detector_model",
    "sensor s_params lambdaex": "ex_waves",
    "sensor s_params lambdaem": "em_waves",
    "sensor s_params pinholeradius": "pinholes",
}
_LONGEST_KEY = max(len(k.split()) for k in ICS_KEYS)
# written by `to_header` but carried by other fields
_STRUCTURAL_KEYS = ("ics_version", "filename")

# ICS axis label -> canonical axis type
_ICS_AXES = {"x": "X", "y": "Y", "z": "Z", "ch": "Channel", "c": "Channel", "t": "Time"}
_AXIS_LABELS = {"X": "x", "Y": "y", "Z": "z", "Channel": "ch", "Time": "t"}

_DATE_FORMATS = ("%Y-%m-%dT%H:%M:%S", "%a %b %d %H:%M:%S %Y", "%d/%m/%Y %H:%M:%S")


class ICSMetadata(Metadata):
    """The header of one ICS dataset (a single image)."""

    format_name: ClassVar[str] = "ICS"

    # the first entry describes the samples ("bits"), the others the axes
    layout_order: Annotated[list[str], MinLen(1)] = Field(
        default_factory=lambda: ["bits", "x", "y"]
    )
    layout_sizes: Annotated[list[int], MinLen(1)] = Field(
        default_factory=lambda: [8, 1, 1]
    )
    representation_format: Literal["integer", "real"] = "integer"
    representation_sign: Literal["signed", "unsigned"] = "unsigned"
    byte_order: list[int] = Field(default_factory=lambda: [1])
    parameter_scale: list[float] | None = None
    parameter_units: list[str] | None = None
    timestamps: list[float] | None = None

    date: str | None = None
    description: str | None = None
    channel_names: list[str] | None = None
    microscope_model: str | None = None
    microscope_manufacturer: str | None = None
    laser_manufacturer: str | None = None
    laser_model: str | None = None
    laser_power: float | None = None
    objective_model: str | None = None
    immersion: str | None = None
    lens_na: float | None = None
    magnification: float | None = None
    working_distance: float | None = None
    detector_manufacturer: str | None = None
    detector_model: str | None = None
    ex_waves: list[int] | None = None
    em_waves: list[int] | None = None
    pinholes: list[float] | None = None

    extra: list[str] = Field(default_factory=list)

    @classmethod
    def from_header(cls, text: str, dataset_name: str | None = None) -> Self:
        """Parse the text of an ICS header.

        Raises
        ------
        ValueError
            If the header is empty.  Malformed values raise pydantic's
            `ValidationError`, itself a `ValueError`.
        """
        lines = text.splitlines()
        if not lines or not lines[0]:
            raise ValueError("Empty ICS header")
        sep = lines[0][0]
        values: dict[str, Any] = {"dataset_name": dataset_name}
        extra: list[str] = []
        for line in lines[1:]:
            tokens = [t for t in line.split(sep) if t.strip()]
            if not tokens:
                continue
            if tokens[0].lower() in _STRUCTURAL_KEYS:
                continue
            field, rest = _match_key(tokens)
            if field is None:
                extra.append(line)
            elif _is_list_field(field):
                values[field] = rest
            else:
                values[field] = " ".join(rest)
        values["extra"] = extra
        return cls.model_validate(values)

    def to_header(self) -> str:
        lines = ["\t", "ics_version\t2.0"]
        if self.dataset_name:
            lines.append(f"filename\t{self.dataset_name}")
        for key, field in ICS_KEYS.items():
            value = getattr(self, field)
            if value is None:
                continue
            if isinstance(value, list):
                value = "\t".join(str(v) for v in value)
            lines.append("\t".join([*key.split(), str(value)]))
        lines.extend(self.extra)
        return "\n".join(lines) + "\n"

    @property
    def bits(self) -> int:
        return self.layout_sizes[0]

    @property
    def little_endian(self) -> bool:
        return not self.byte_order or self.byte_order[0] == 1

    @property
    def pixel_type(self) -> str:
        return pixel_type_from_bits(
            self.bits,
            signed=self.representation_sign == "signed",
            floating=self.representation_format == "real",
        )

    def axis_labels(self) -> list[str]:
        return [label.lower() for label in self.layout_order[1:]]

    def axis_units(self) -> list[str | None]:
        """Unit of each axis, skipping the leading 'bits' entry."""
        labels = self.axis_labels()
        raw: list[str | None] = list(self.parameter_units or [])[1:]
        raw += [None] * (len(labels) - len(raw))
        return [None if u == "undefined" else u for u in raw[: len(labels)]]


def _match_key(tokens: list[str]) -> tuple[str | None, list[str]]:
    for n in range(min(_LONGEST_KEY, len(tokens)), 0, -1):
        key = " ".join(tokens[:n]).lower()
        if key in ICS_KEYS:
            return ICS_KEYS[key], tokens[n:]
    return None, tokens


def _is_list_field(field: str) -> bool:
    annotation = ICSMetadata.model_fields[field].annotation
    return list in (get_origin(annotation), *map(get_origin, get_args(annotation)))


def _parse_date(value: str) -> datetime | None:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    logger.warning("Could not parse ICS date %r", value)
    return None


# ---------------------------------------------------------------------------
# ICS <-> canonical
# ---------------------------------------------------------------------------


def image_from_ics(source: ICSMetadata) -> ImageMetadata:
    """Canonical description of the image an ICS header describes."""
    labels = source.axis_labels()
    sizes = source.layout_sizes[1:]
    if len(sizes) != len(labels):
        raise TranslationError(
            f"ICS layout has {len(labels)} axes but {len(sizes)} sizes"
        )
    scales = list(source.parameter_scale or [])[1:]
    units = source.axis_units()
    try:
        pixel_type = source.pixel_type
    except ValueError as e:
        raise TranslationError(str(e)) from e

    image = ImageMetadata(
        pixel_type=pixel_type,
        bits_per_pixel=source.bits,
        little_endian=source.little_endian,
    )
    try:
        for i, (label, size) in enumerate(zip(labels, sizes, strict=True)):
            image.set_axis(
                _ICS_AXES.get(label, label),
                length=size,
                calibration=scales[i] if i < len(scales) else None,
                unit=units[i],
            )
    except ValidationError as e:
        raise TranslationError(f"Invalid ICS layout {source.layout_sizes}: {e}") from e

    # samples stored before X are the components of each pixel; the axes list
    # them after X and Y like every other channel axis
    if labels and _ICS_AXES.get(labels[0]) == "Channel" and sizes[0] > 1:
        image.rgb = True
        image.interleaved = True
        after = max(image.axis_index("X"), image.axis_index("Y"), 1)
        axes = list(image.axes)
        axes.insert(after, axes.pop(0))
        image.axes = axes
    return image


def ics_from_image(image: ImageMetadata, dest: ICSMetadata) -> None:
    """Write the layout and representation of `image` into `dest`."""
    axes = list(image.axes)
    if image.interleaved and (channel := image.axis("Channel")) is not None:
        axes.remove(channel)
        axes.insert(0, channel)
    dest.layout_order = ["bits", *(_AXIS_LABELS.get(ax.type, ax.type) for ax in axes)]
    dest.layout_sizes = [image.effective_bits_per_pixel, *(ax.length for ax in axes)]
    floating = image.pixel_type in ("float", "double")
    dest.representation_format = "real" if floating else "integer"
    signed = floating or image.pixel_type.startswith("int")
    dest.representation_sign = "signed" if signed else "unsigned"
    order = list(range(1, max(1, BITS_PER_PIXEL[image.pixel_type] // 8) + 1))
    dest.byte_order = order if image.little_endian else order[::-1]
    if any(ax.calibration is not None for ax in axes):
        dest.parameter_scale = [1.0, *(ax.scale for ax in axes)]
        dest.parameter_units = ["bits", *(ax.unit or "undefined" for ax in axes)]
    else:
        dest.parameter_scale = None
        dest.parameter_units = None


class ICSToCanonicalTranslator(Translator[ICSMetadata, CanonicalMetadata]):
    source = ICSMetadata
    dest = CanonicalMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: ICSMetadata,
        dest: CanonicalMetadata,
        options: TranslationOptions,
    ) -> None:
        dest.images = [image_from_ics(source)]
        dest.dataset_name = source.dataset_name


class CanonicalToICSTranslator(Translator[CanonicalMetadata, ICSMetadata]):
    source = CanonicalMetadata
    dest = ICSMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: CanonicalMetadata,
        dest: ICSMetadata,
        options: TranslationOptions,
    ) -> None:
        if not source.images:
            raise TranslationError("An ICS dataset needs an image")
        ics_from_image(source.images[0], dest)
        dest.dataset_name = source.dataset_name


# ---------------------------------------------------------------------------
# ICS <-> OME, carrying the instrument and per-channel details
# ---------------------------------------------------------------------------


def _instrument(source: ICSMetadata) -> Instrument | None:
    instrument = Instrument(id=create_lsid("Instrument", 0))
    if source.microscope_model or source.microscope_manufacturer:
        instrument.microscope = Microscope(
            model=source.microscope_model,
            manufacturer=source.microscope_manufacturer,
        )
    if source.laser_model or source.laser_manufacturer or source.laser_power:
        instrument.lasers = [
            Laser(
                id=create_lsid("LightSource", 0, 0),
                model=source.laser_model,
                manufacturer=source.laser_manufacturer,
                power=source.laser_power,
            )
        ]
    if source.objective_model or source.lens_na or source.magnification:
        instrument.objectives = [
            Objective(
                id=create_lsid("Objective", 0, 0),
                model=source.objective_model,
                immersion=source.immersion,
                lens_na=source.lens_na,
                working_distance=source.working_distance,
                calibrated_magnification=source.magnification,
            )
        ]
    if source.detector_model or source.detector_manufacturer:
        instrument.detectors = [
            Detector(
                id=create_lsid("Detector", 0, 0),
                model=source.detector_model,
                manufacturer=source.detector_manufacturer,
            )
        ]
    if instrument.microscope is None and not (
        instrument.lasers or instrument.objectives or instrument.detectors
    ):
        return None
    return instrument


def _wavelength(field: str, value: int) -> int:
    if value <= 0:
        raise PartialFieldError(field, value, "expected a positive wavelength")
    return value


class ICSToOMETranslator(Translator[ICSMetadata, OMEMetadata]):
    """Write pixels, instrument and channel details straight to OME-XML."""

    source = ICSMetadata
    dest = OMEMetadata
    priority = Priority.HIGH

    def translate(
        self,
        source: ICSMetadata,
        dest: OMEMetadata,
        options: TranslationOptions,
    ) -> None:
        canonical = image_from_ics(source)
        existing = dest.root.images[0] if dest.root.images else None
        image = image_to_ome(
            canonical, 0, options, source.dataset_name, existing=existing
        )
        if source.date and (date := _parse_date(source.date)):
            image.acquisition_date = date

        if not options.minimal:
            image.description = source.description
            if (instrument := _instrument(source)) is not None:
                dest.root.instruments = [instrument]
                image.instrument_ref = InstrumentRef(id=instrument.id)
            _fill_channels(source, image)
            if source.timestamps:
                _fill_delta_t(source.timestamps, canonical, image)

        dest.root.images = [image, *dest.root.images[1:]]
        dest.dataset_name = source.dataset_name


def _fill_channels(source: ICSMetadata, image: Image) -> None:
    for c, channel in enumerate(image.pixels.channels):
        if source.channel_names and c < len(source.channel_names):
            channel.name = source.channel_names[c]
        if source.pinholes and c < len(source.pinholes):
            channel.pinhole_size = source.pinholes[c]
        if source.em_waves and c < len(source.em_waves):
            set_optional(
                channel,
                "emission_wavelength",
                _wavelength,
                "EmissionWavelength",
                source.em_waves[c],
            )
        if source.ex_waves and c < len(source.ex_waves):
            set_optional(
                channel,
                "excitation_wavelength",
                _wavelength,
                "ExcitationWavelength",
                source.ex_waves[c],
            )


def _fill_delta_t(
    timestamps: list[float], canonical: ImageMetadata, image: Image
) -> None:
    px = image.pixels
    order, size_z, size_t = px.dimension_order, px.size_z, px.size_t
    eff_c = effective_channel_count(px.size_c, canonical.rgb_channel_count)
    count = size_z * eff_c * size_t
    if len(px.planes) != count:
        planes = []
        for q in range(count):
            z, c, t = zct_coords(order, size_z, eff_c, size_t, q)
            planes.append(Plane(the_z=z, the_c=c, the_t=t))
        px.planes = planes
    for t, delta in enumerate(timestamps[:size_t]):
        for z in range(size_z):
            for c in range(eff_c):
                q = plane_index(order, size_z, eff_c, size_t, z, c, t)
                px.planes[q].delta_t = delta


class OMEToICSTranslator(Translator[OMEMetadata, ICSMetadata]):
    """Read pixels, instrument and channel details straight from OME-XML."""

    source = OMEMetadata
    dest = ICSMetadata
    priority = Priority.HIGH

    def translate(
        self,
        source: OMEMetadata,
        dest: ICSMetadata,
        options: TranslationOptions,
    ) -> None:
        root = source.root
        if not root.images:
            raise TranslationError("An ICS dataset needs an image")
        img = root.images[0]
        ics_from_image(image_from_ome(img), dest)
        dest.dataset_name = source.dataset_name
        if img.acquisition_date is not None:
            dest.date = img.acquisition_date.strftime(_DATE_FORMATS[0])
        if options.minimal:
            return

        dest.description = img.description
        if root.instruments:
            _read_instrument(root.instruments[0], dest)
        channels = img.pixels.channels
        dest.channel_names = [ch.name for ch in channels if ch.name] or None
        dest.pinholes = [ch.pinhole_size for ch in channels if ch.pinhole_size] or None
        dest.em_waves = [
            ch.emission_wavelength for ch in channels if ch.emission_wavelength
        ] or None
        dest.ex_waves = [
            ch.excitation_wavelength for ch in channels if ch.excitation_wavelength
        ] or None
        planes = img.pixels.planes
        stamps = {p.the_t: p.delta_t for p in planes if p.delta_t is not None}
        dest.timestamps = [stamps[t] for t in sorted(stamps)] or None


def _read_instrument(instrument: Instrument, dest: ICSMetadata) -> None:
    if (scope := instrument.microscope) is not None:
        dest.microscope_model = scope.model
        dest.microscope_manufacturer = scope.manufacturer
    if instrument.lasers:
        laser = instrument.lasers[0]
        dest.laser_model = laser.model
        dest.laser_manufacturer = laser.manufacturer
        dest.laser_power = laser.power
    if instrument.objectives:
        objective = instrument.objectives[0]
        dest.objective_model = objective.model
        dest.immersion = objective.immersion
        dest.lens_na = objective.lens_na
        dest.working_distance = objective.working_distance
        dest.magnification = objective.calibrated_magnification
    if instrument.detectors:
        detector = instrument.detectors[0]
        dest.detector_model = detector.model
        dest.detector_manufacturer = detector.manufacturer


TRANSLATORS: list[Translator] = [
    ICSToCanonicalTranslator(),
    CanonicalToICSTranslator(),
    ICSToOMETranslator(),
    OMEToICSTranslator(),
]
