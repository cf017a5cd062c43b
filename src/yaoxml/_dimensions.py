"""Dimension order and plane arithmetic for the canonical axis model.

All plane arithmetic treats the X and Y axes as the plane itself; every other
axis multiplies the number of planes.  When an image is RGB, its channel axis
holds the samples of each pixel, so those samples do not form extra planes.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from ._axis import LETTER_AXES, CalibratedAxis

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._image import ImageMetadata

__all__ = [
    "canonicalize_dimension_order",
    "effective_channel_count",
    "find_dimension_order",
    "plane_count",
    "plane_index",
    "populate_dimensions",
    "zct_coords",
]

# letters are appended in this order when missing from a dimension order
_PREFERRED_ORDER = "XYCZT"
_NOT_AXIS_RE = re.compile(r"[^XYZCT]")


def canonicalize_dimension_order(raw: str | None) -> str:
    """Return a 5-letter permutation of "XYZCT" derived from `raw`.

    The input is upper-cased and every character other than X, Y, Z, C and T is
    removed.  Missing letters are appended in the order X, Y, C, Z, T and only
    the first occurrence of a repeated letter is kept.

    Examples
    --------
    >>> canonicalize_dimension_order("")
    'XYCZT'
    >>> canonicalize_dimension_order("xyzct")
    'XYZCT'
    >>> canonicalize_dimension_order("zzyx")
    'ZYXCT'
    """
    order = _NOT_AXIS_RE.sub("", (raw or "").upper())
    for letter in _PREFERRED_ORDER:
        if letter not in order:
            order += letter
        first = order.index(letter)
        order = order[: first + 1] + order[first + 1 :].replace(letter, "")
    return order


def find_dimension_order(image: ImageMetadata) -> str:
    """Return the canonical dimension order implied by an image's axis order."""
    letters = "".join(ax.letter for ax in image.axes if ax.letter)
    return canonicalize_dimension_order(letters)


def effective_channel_count(total_channels: int, samples_per_pixel: int) -> int:
    """Number of channel planes once `samples_per_pixel` samples are grouped.

    Raises
    ------
    ValueError
        If `samples_per_pixel` is not positive or does not divide
        `total_channels`.
    """
    if samples_per_pixel <= 0:
        raise ValueError(
            f"samples per pixel must be positive, got {samples_per_pixel}"
        )
    eff, rem = divmod(total_channels, samples_per_pixel)
    if rem:
        raise ValueError(
            f"{total_channels} channels cannot be grouped into pixels of "
            f"{samples_per_pixel} samples"
        )
    return eff


def plane_count(image: ImageMetadata) -> int:
    """Number of XY planes described by an image's axes."""
    non_planar = math.prod(
        ax.length for ax in image.axes if ax.type not in ("X", "Y")
    )
    return effective_channel_count(non_planar, image.rgb_channel_count)


def _zct_sizes(order: str, size_z: int, eff_c: int, size_t: int) -> list[int]:
    sizes = {"Z": size_z, "C": eff_c, "T": size_t}
    for letter, size in sizes.items():
        if size <= 0:
            raise ValueError(f"Invalid size for {letter}: {size}")
    return [sizes[letter] for letter in order[2:]]


def zct_coords(
    order: str, size_z: int, eff_c: int, size_t: int, index: int
) -> tuple[int, int, int]:
    """Return the (z, c, t) position of the plane at rasterized `index`.

    `order` must be one of the XY-first dimension orders; the first of the
    remaining letters varies fastest.
    """
    order = order.upper()
    if order[:2] != "XY" or sorted(order[2:]) != sorted("ZCT"):
        raise ValueError(f"Invalid dimension order: {order!r}")
    lengths = _zct_sizes(order, size_z, eff_c, size_t)
    total = math.prod(lengths)
    if not 0 <= index < total:
        raise ValueError(f"Plane index {index} out of range [0, {total})")

    coords: dict[str, int] = {}
    rest = index
    for letter, length in zip(order[2:], lengths, strict=True):
        rest, coords[letter] = divmod(rest, length)
    return coords["Z"], coords["C"], coords["T"]


def plane_index(
    order: str, size_z: int, eff_c: int, size_t: int, z: int, c: int, t: int
) -> int:
    """Inverse of `zct_coords`."""
    order = order.upper()
    if order[:2] != "XY" or sorted(order[2:]) != sorted("ZCT"):
        raise ValueError(f"Invalid dimension order: {order!r}")
    lengths = _zct_sizes(order, size_z, eff_c, size_t)
    pos = {"Z": z, "C": c, "T": t}

    index = 0
    for letter, length in reversed(list(zip(order[2:], lengths, strict=True))):
        if not 0 <= pos[letter] < length:
            raise ValueError(f"{letter} index {pos[letter]} out of range [0, {length})")
        index = index * length + pos[letter]
    return index


def populate_dimensions(
    image: ImageMetadata,
    order: str,
    size_x: int,
    size_y: int,
    size_z: int,
    size_c: int,
    size_t: int,
) -> None:
    """Replace the axes of `image` with X/Y/Z/C/T axes laid out in `order`.

    Calibrations and units already present on the image are kept.
    """
    sizes: Mapping[str, int] = {
        "X": size_x,
        "Y": size_y,
        "Z": size_z,
        "C": size_c,
        "T": size_t,
    }
    existing = {ax.type: ax for ax in image.axes}
    axes = []
    for letter in canonicalize_dimension_order(order):
        axis_type = LETTER_AXES[letter]
        old = existing.get(axis_type)
        axes.append(
            CalibratedAxis(
                type=axis_type,
                length=sizes[letter],
                calibration=old.calibration if old else None,
                unit=old.unit if old else None,
            )
        )
    image.axes = axes
