from __future__ import annotations

import copy
from typing import Annotated, ClassVar

from pydantic import AfterValidator, Field, PositiveInt
from typing_extensions import Self

from ._axis import AxisType, CalibratedAxis
from ._base import _BaseModel
from ._dimensions import (
    effective_channel_count,
    find_dimension_order,
    plane_count,
)
from ._types import BITS_PER_PIXEL, PixelType

__all__ = ["CanonicalMetadata", "ImageMetadata", "Metadata"]


def _validate_axes_list(axes: list[CalibratedAxis]) -> list[CalibratedAxis]:
    types = [ax.type for ax in axes]
    if len(types) != len(set(types)):
        raise ValueError(f"Axis types must be unique. Found duplicates in {types}")
    return axes


AxesList = Annotated[list[CalibratedAxis], AfterValidator(_validate_axes_list)]


class ImageMetadata(_BaseModel):
    """Axis-based description of a single image series.

    This is the canonical model every dialect translates to and from.  Axis
    order is significant: it defines the dimension order of the pixel data.

    Examples
    --------
    >>> from yaoxml import CalibratedAxis, ImageMetadata
    >>> img = ImageMetadata(
    ...     axes=[
    ...         CalibratedAxis(type="X", length=512, calibration=0.5),
    ...         CalibratedAxis(type="Y", length=512, calibration=0.5),
    ...         CalibratedAxis(type="Channel", length=3),
    ...     ],
    ...     rgb=True,
    ... )
    >>> img.dimension_order
    'XYCZT'
    >>> img.effective_size_c, img.plane_count
    (1, 1)
    """

    name: str | None = None
    axes: AxesList = Field(default_factory=list)
    pixel_type: PixelType = "uint8"
    bits_per_pixel: int | None = Field(
        default=None,
        description="Significant bits per sample; defaults to the pixel type width.",
    )
    little_endian: bool = True
    rgb: bool = False
    samples_per_pixel: PositiveInt | None = Field(
        default=None,
        description="Samples per pixel of an RGB image; defaults to the channel count.",
    )
    indexed: bool = False
    interleaved: bool = False

    # -- axis access --

    def axis(self, axis_type: AxisType) -> CalibratedAxis | None:
        return next((ax for ax in self.axes if ax.type == axis_type), None)

    def axis_length(self, axis_type: AxisType) -> int:
        """Length of the given axis; missing axes have length 1."""
        ax = self.axis(axis_type)
        return 1 if ax is None else ax.length

    def axis_index(self, axis_type: AxisType) -> int:
        return next((i for i, ax in enumerate(self.axes) if ax.type == axis_type), -1)

    def set_axis(
        self,
        axis_type: AxisType,
        length: int | None = None,
        calibration: float | None = None,
        unit: str | None = None,
    ) -> CalibratedAxis:
        """Add `axis_type` (at the end) or update it in place."""
        axes = list(self.axes)
        idx = self.axis_index(axis_type)
        if idx < 0:
            length = 1 if length is None else length
            axis = CalibratedAxis(type=axis_type, length=length)
            axes.append(axis)
        else:
            axis = axes[idx]
            if length is not None:
                axis.length = length
        if calibration is not None:
            axis.calibration = calibration
        if unit is not None:
            axis.unit = unit
        self.axes = axes
        return axis

    # -- derived values --

    @property
    def dimension_order(self) -> str:
        return find_dimension_order(self)

    @property
    def rgb_channel_count(self) -> int:
        """Samples per pixel: 1 unless the image is RGB."""
        if not self.rgb:
            return 1
        return self.samples_per_pixel or self.axis_length("Channel")

    @property
    def effective_size_c(self) -> int:
        return effective_channel_count(
            self.axis_length("Channel"), self.rgb_channel_count
        )

    @property
    def plane_count(self) -> int:
        return plane_count(self)

    @property
    def effective_bits_per_pixel(self) -> int:
        if self.bits_per_pixel is not None:
            return self.bits_per_pixel
        return BITS_PER_PIXEL[self.pixel_type]


class Metadata(_BaseModel):
    """Base class of every object the translation engine can convert.

    Subclasses are the capability types the translator registry is keyed on.
    """

    format_name: ClassVar[str] = "Metadata"

    dataset_name: str | None = None

    def _restore(self, snapshot: Self) -> None:
        """Reset every field of this object to the values held by `snapshot`."""
        for name in type(self).model_fields:
            setattr(self, name, copy.deepcopy(getattr(snapshot, name)))


class CanonicalMetadata(Metadata):
    """The canonical, axis-based description of a whole dataset.

    This is the hub of the translation engine: every metadata type can be
    translated to and from it.
    """

    format_name: ClassVar[str] = "Canonical"

    images: list[ImageMetadata] = Field(default_factory=list)

    @property
    def image_count(self) -> int:
        return len(self.images)

    def __getitem__(self, index: int) -> ImageMetadata:
        return self.images[index]
