"""Translators between the canonical model and OME-XML.

The image-level helpers here are shared by every translator that writes or
reads OME-XML pixels, so that all of them agree on identifiers, dimension
order and calibration handling.
"""

from __future__ import annotations

import logging
import os
import warnings
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from yaoxml._dimensions import (
    effective_channel_count,
    populate_dimensions,
    zct_coords,
)
from yaoxml._errors import PartialFieldError, PartialFieldWarning, TranslationError
from yaoxml._formats import default_image_name
from yaoxml._image import CanonicalMetadata, ImageMetadata
from yaoxml._types import BITS_PER_PIXEL, DIMENSION_ORDERS
from yaoxml.ome import BinData, Channel, Image, OMEMetadata, Pixels, Plane

from ._registry import Priority, Translator, create_lsid

if TYPE_CHECKING:
    from yaoxml._options import TranslationOptions

__all__ = [
    "TRANSLATORS",
    "CanonicalToOMETranslator",
    "OMEToCanonicalTranslator",
    "image_from_ome",
    "image_to_ome",
    "set_optional",
    "to_micrometers",
    "to_seconds",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MICROMETERS_PER: dict[str | None, float] = {
    None: 1.0,
    "micrometer": 1.0,
    "angstrom": 1e-4,
    "picometer": 1e-6,
    "nanometer": 1e-3,
    "millimeter": 1e3,
    "centimeter": 1e4,
    "meter": 1e6,
}

_SECONDS_PER: dict[str | None, float] = {
    None: 1.0,
    "second": 1.0,
    "nanosecond": 1e-9,
    "microsecond": 1e-6,
    "millisecond": 1e-3,
    "minute": 60.0,
    "hour": 3600.0,
}

# canonical axis type -> calibrated Pixels attribute
_CALIBRATED_FIELDS = (
    ("X", "physical_size_x"),
    ("Y", "physical_size_y"),
    ("Z", "physical_size_z"),
    ("Time", "time_increment"),
)


def _convert(
    table: dict[str | None, float], field: str, value: float, unit: str | None
) -> float:
    if (factor := table.get(unit)) is None:
        raise PartialFieldError(field, value, f"cannot convert from unit {unit!r}")
    return value * factor


def to_micrometers(field: str, value: float, unit: str | None = None) -> float:
    """Return a positive physical size in micrometers.

    Raises
    ------
    PartialFieldError
        If the value is not positive or the unit is not a length.
    """
    if not value > 0:
        raise PartialFieldError(field, value, "expected a positive value")
    return _convert(_MICROMETERS_PER, field, value, unit)


def to_seconds(field: str, value: float, unit: str | None = None) -> float:
    """Return a time interval in seconds."""
    return _convert(_SECONDS_PER, field, value, unit)


def set_optional(
    target: object, attr: str, compute: Callable[..., T], *args: Any
) -> T | None:
    """Set `target.attr` to `compute(*args)`, skipping (with a warning) bad values."""
    try:
        value = compute(*args)
    except PartialFieldError as e:
        warnings.warn(f"Skipping {attr}: {e}", PartialFieldWarning, stacklevel=3)
        return None
    setattr(target, attr, value)
    return value


def _default_date(dataset_name: str | None) -> datetime:
    if dataset_name and os.path.isfile(dataset_name):
        return datetime.fromtimestamp(os.path.getmtime(dataset_name))
    return datetime.now()


# ---------------------------------------------------------------------------
# canonical image <-> OME image
# ---------------------------------------------------------------------------


def _channels(image: ImageMetadata, index: int, old: list[Channel]) -> list[Channel]:
    spp = image.rgb_channel_count
    channels = []
    for c in range(image.effective_size_c):
        update = {"id": create_lsid("Channel", index, c), "samples_per_pixel": spp}
        if c < len(old):
            channels.append(old[c].model_copy(update=update))
        else:
            channels.append(Channel(**update))
    return channels


def _planes(image: ImageMetadata, pixels: Pixels) -> list[Plane]:
    eff_c = image.effective_size_c
    count = pixels.size_z * eff_c * pixels.size_t
    planes = []
    for q in range(count):
        z, c, t = zct_coords(
            pixels.dimension_order, pixels.size_z, eff_c, pixels.size_t, q
        )
        planes.append(Plane(the_z=z, the_c=c, the_t=t))
    return planes


def image_to_ome(
    image: ImageMetadata,
    index: int,
    options: TranslationOptions,
    dataset_name: str | None = None,
    existing: Image | None = None,
) -> Image:
    """Build the OME `Image` (with its `Pixels`) describing `image`.

    Content of `existing` that the canonical model does not describe
    (descriptions, instrument references, per-channel settings) is kept.
    """
    try:
        eff_c = image.effective_size_c
    except ValueError as e:
        raise TranslationError(f"Image #{index}: {e}") from e

    order = image.dimension_order
    if order not in DIMENSION_ORDERS:
        raise TranslationError(
            f"Image #{index}: OME-XML needs X and Y first, got dimension order {order}"
        )

    pixels = Pixels(
        id=create_lsid("Pixels", index),
        dimension_order=order,
        type=image.pixel_type,
        size_x=image.axis_length("X"),
        size_y=image.axis_length("Y"),
        size_z=image.axis_length("Z"),
        size_c=image.axis_length("Channel"),
        size_t=image.axis_length("Time"),
        bin_data=[BinData(big_endian=not image.little_endian, length=0)],
    )
    old = existing.pixels if existing is not None else None
    pixels.channels = _channels(image, index, old.channels if old else [])
    spp = image.rgb_channel_count
    logger.debug("Image #%d: %d channel(s) of %d sample(s)", index, eff_c, spp)

    if not options.minimal:
        if image.interleaved:
            pixels.interleaved = True
        bits = image.bits_per_pixel
        if bits is not None and bits != BITS_PER_PIXEL[image.pixel_type]:
            pixels.significant_bits = bits
        for axis_type, attr in _CALIBRATED_FIELDS:
            axis = image.axis(axis_type)
            if axis is None or axis.calibration is None:
                continue
            convert = to_seconds if axis_type == "Time" else to_micrometers
            set_optional(pixels, attr, convert, attr, axis.calibration, axis.unit)

    if options.populate_planes:
        pixels.planes = _planes(image, pixels)
    elif old is not None:
        pixels.planes = old.planes

    ome_image = (
        Image(id=create_lsid("Image", index), pixels=pixels)
        if existing is None
        else existing.model_copy(
            update={"id": create_lsid("Image", index), "pixels": pixels}
        )
    )
    ome_image.name = image.name or default_image_name(dataset_name)
    if options.default_creation_date and ome_image.acquisition_date is None:
        ome_image.acquisition_date = _default_date(dataset_name)
    return ome_image


def image_from_ome(img: Image) -> ImageMetadata:
    """Rebuild the canonical description of an OME `Image`."""
    px = img.pixels
    spp = 1
    if px.channels and px.channels[0].samples_per_pixel:
        spp = px.channels[0].samples_per_pixel
    try:
        effective_channel_count(px.size_c, spp)
    except ValueError as e:
        raise TranslationError(f"{img.id}: {e}") from e

    image = ImageMetadata(
        name=img.name,
        pixel_type=px.type,
        bits_per_pixel=px.significant_bits,
        little_endian=not px.bin_data[0].big_endian if px.bin_data else True,
        rgb=spp > 1,
        samples_per_pixel=spp if spp > 1 else None,
        interleaved=bool(px.interleaved),
    )
    populate_dimensions(
        image,
        px.dimension_order,
        px.size_x,
        px.size_y,
        px.size_z,
        px.size_c,
        px.size_t,
    )
    for axis_type, attr in _CALIBRATED_FIELDS:
        if (value := getattr(px, attr)) is not None:
            unit = "second" if axis_type == "Time" else "micrometer"
            image.set_axis(axis_type, calibration=value, unit=unit)
    return image


# ---------------------------------------------------------------------------
# translators
# ---------------------------------------------------------------------------


class CanonicalToOMETranslator(Translator[CanonicalMetadata, OMEMetadata]):
    source = CanonicalMetadata
    dest = OMEMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: CanonicalMetadata,
        dest: OMEMetadata,
        options: TranslationOptions,
    ) -> None:
        old = dest.root.images
        dest.root.images = [
            image_to_ome(
                image,
                i,
                options,
                dataset_name=source.dataset_name,
                existing=old[i] if i < len(old) else None,
            )
            for i, image in enumerate(source.images)
        ]
        dest.dataset_name = source.dataset_name


class OMEToCanonicalTranslator(Translator[OMEMetadata, CanonicalMetadata]):
    source = OMEMetadata
    dest = CanonicalMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: OMEMetadata,
        dest: CanonicalMetadata,
        options: TranslationOptions,
    ) -> None:
        dest.images = [image_from_ome(img) for img in source.root.images]
        dest.dataset_name = source.dataset_name


TRANSLATORS: list[Translator] = [
    CanonicalToOMETranslator(),
    OMEToCanonicalTranslator(),
]
