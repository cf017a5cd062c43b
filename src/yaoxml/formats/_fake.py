"""Synthetic datasets described entirely by their id.

A fake id is a name followed by `&key=value` parameters and the `.fake`
suffix, e.g. ``"testImg&sizeX=512&sizeY=512&pixelType=uint16.fake"``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, PositiveInt

from yaoxml._dimensions import canonicalize_dimension_order, populate_dimensions
from yaoxml._errors import TranslationError
from yaoxml._image import CanonicalMetadata, ImageMetadata, Metadata
from yaoxml._types import PixelType
from yaoxml.translation._registry import Priority, Translator

if TYPE_CHECKING:
    from typing_extensions import Self

    from yaoxml._options import TranslationOptions

__all__ = ["TRANSLATORS", "FakeMetadata"]

logger = logging.getLogger(__name__)

SUFFIX = ".fake"


class FakeMetadata(Metadata):
    """Parameters of a synthetic dataset.

    Field aliases are the parameter names used in fake ids.
    """

    format_name: ClassVar[str] = "Fake"

    name: str = "Fake"
    size_x: PositiveInt = Field(default=512, alias="sizeX")
    size_y: PositiveInt = Field(default=512, alias="sizeY")
    size_z: PositiveInt = Field(default=1, alias="sizeZ")
    size_c: PositiveInt = Field(default=1, alias="sizeC")
    size_t: PositiveInt = Field(default=1, alias="sizeT")
    pixel_type: PixelType = Field(default="uint8", alias="pixelType")
    dimension_order: str = Field(default="XYZCT", alias="dimOrder")
    rgb: PositiveInt = Field(default=1, description="Samples per pixel.")
    little_endian: bool = Field(default=True, alias="little")
    interleaved: bool = False
    indexed: bool = False
    series: PositiveInt = 1
    physical_size_x: float | None = Field(default=None, alias="physicalSizeX")
    physical_size_y: float | None = Field(default=None, alias="physicalSizeY")
    physical_size_z: float | None = Field(default=None, alias="physicalSizeZ")
    time_increment: float | None = Field(default=None, alias="timeIncrement")

    @classmethod
    def from_id(cls, fake_id: str) -> Self:
        """Parse a fake id.  Unknown parameters are logged and ignored."""
        body = fake_id[: -len(SUFFIX)] if fake_id.lower().endswith(SUFFIX) else fake_id
        name, *params = body.split("&")
        known = {f.alias or n for n, f in cls.model_fields.items()}
        values: dict[str, str] = {}
        for param in params:
            key, sep, value = param.partition("=")
            if not sep or key not in known:
                logger.warning("Ignoring fake parameter %r in %r", param, fake_id)
                continue
            values[key] = value
        return cls.model_validate({**values, "name": name, "dataset_name": fake_id})

    def to_id(self) -> str:
        params = self.model_dump(
            exclude_defaults=True, exclude={"name", "dataset_name"}, by_alias=True
        )
        parts = [self.name]
        for key, value in params.items():
            if isinstance(value, bool):
                value = str(value).lower()
            parts.append(f"{key}={value}")
        return "&".join(parts) + SUFFIX


class FakeToCanonicalTranslator(Translator[FakeMetadata, CanonicalMetadata]):
    source = FakeMetadata
    dest = CanonicalMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: FakeMetadata,
        dest: CanonicalMetadata,
        options: TranslationOptions,
    ) -> None:
        order = canonicalize_dimension_order(source.dimension_order)
        calibrations = {
            "X": (source.physical_size_x, "micrometer"),
            "Y": (source.physical_size_y, "micrometer"),
            "Z": (source.physical_size_z, "micrometer"),
            "Time": (source.time_increment, "second"),
        }
        images = []
        for _ in range(source.series):
            image = ImageMetadata(
                name=source.name,
                pixel_type=source.pixel_type,
                little_endian=source.little_endian,
                rgb=source.rgb > 1,
                samples_per_pixel=source.rgb if source.rgb > 1 else None,
                interleaved=source.interleaved,
                indexed=source.indexed,
            )
            populate_dimensions(
                image,
                order,
                source.size_x,
                source.size_y,
                source.size_z,
                source.size_c,
                source.size_t,
            )
            for axis_type, (value, unit) in calibrations.items():
                if value is not None:
                    image.set_axis(axis_type, calibration=value, unit=unit)
            images.append(image)
        dest.images = images
        dest.dataset_name = source.dataset_name or source.to_id()


class CanonicalToFakeTranslator(Translator[CanonicalMetadata, FakeMetadata]):
    source = CanonicalMetadata
    dest = FakeMetadata
    priority = Priority.NORMAL

    def translate(
        self,
        source: CanonicalMetadata,
        dest: FakeMetadata,
        options: TranslationOptions,
    ) -> None:
        if not source.images:
            raise TranslationError("A fake dataset needs at least one image")
        image = source.images[0]
        dest.name = image.name or dest.name
        dest.size_x = image.axis_length("X")
        dest.size_y = image.axis_length("Y")
        dest.size_z = image.axis_length("Z")
        dest.size_c = image.axis_length("Channel")
        dest.size_t = image.axis_length("Time")
        dest.dimension_order = image.dimension_order
        dest.pixel_type = image.pixel_type
        dest.rgb = image.rgb_channel_count
        dest.little_endian = image.little_endian
        dest.interleaved = image.interleaved
        dest.indexed = image.indexed
        dest.series = source.image_count
        for axis_type, attr in (
            ("X", "physical_size_x"),
            ("Y", "physical_size_y"),
            ("Z", "physical_size_z"),
            ("Time", "time_increment"),
        ):
            axis = image.axis(axis_type)
            setattr(dest, attr, axis.calibration if axis else None)
        dest.dataset_name = source.dataset_name or dest.to_id()


TRANSLATORS: list[Translator] = [
    FakeToCanonicalTranslator(),
    CanonicalToFakeTranslator(),
]
