from __future__ import annotations

from typing import Literal, TypeAlias

from pydantic import Field, PositiveInt, field_validator

from ._base import _BaseModel

__all__ = [
    "AXIS_LETTERS",
    "AxisType",
    "CalibratedAxis",
    "normalize_unit",
]

AxisType: TypeAlias = Literal["X", "Y", "Z", "Channel", "Time"] | str

# single-letter code used in dimension order strings for each known axis type
AXIS_LETTERS: dict[str, str] = {
    "X": "X",
    "Y": "Y",
    "Z": "Z",
    "Channel": "C",
    "Time": "T",
}
LETTER_AXES: dict[str, str] = {v: k for k, v in AXIS_LETTERS.items()}

SPATIAL_AXES = frozenset({"X", "Y", "Z"})

SpaceUnits: TypeAlias = Literal[
    "angstrom",
    "centimeter",
    "meter",
    "micrometer",
    "millimeter",
    "nanometer",
    "picometer",
]

TimeUnits: TypeAlias = Literal[
    "hour",
    "microsecond",
    "millisecond",
    "minute",
    "nanosecond",
    "second",
]

_UNIT_ABBREVIATIONS: dict[str, str] = {
    "a": "angstrom",
    "cm": "centimeter",
    "m": "meter",
    "um": "micrometer",
    "µm": "micrometer",
    "microns": "micrometer",
    "micrometers": "micrometer",
    "mm": "millimeter",
    "nm": "nanometer",
    "pm": "picometer",
    "h": "hour",
    "us": "microsecond",
    "ms": "millisecond",
    "min": "minute",
    "ns": "nanosecond",
    "s": "second",
    "sec": "second",
    "seconds": "second",
}


def normalize_unit(unit: str | None) -> str | None:
    """Return the long unit name for common abbreviations (e.g. 'um', 's')."""
    if unit is None:
        return None
    key = unit.strip()
    return _UNIT_ABBREVIATIONS.get(key.lower(), key) or None


class CalibratedAxis(_BaseModel):
    """A single axis of an image: what it is, how long, and how big a step is.

    `calibration` is the physical size of one step along the axis.  It is
    `None` when the source never stated one; use `scale` for arithmetic, which
    falls back to 1.0.
    """

    type: AxisType = Field(description="The kind of axis (X, Y, Z, Channel, Time).")
    length: PositiveInt = Field(default=1, description="Number of samples.")
    calibration: float | None = Field(
        default=None, description="Physical size of one sample along this axis."
    )
    unit: str | None = Field(default=None, description="Unit of `calibration`.")

    @field_validator("unit", mode="before")
    @classmethod
    def _normalize_unit(cls, v: str | None) -> str | None:
        return normalize_unit(v)

    @property
    def scale(self) -> float:
        """Calibration, defaulting to 1.0 when unset."""
        return 1.0 if self.calibration is None else self.calibration

    @property
    def letter(self) -> str | None:
        """Dimension order letter for this axis, or None for custom axes."""
        return AXIS_LETTERS.get(self.type)

    @property
    def is_spatial(self) -> bool:
        return self.type in SPATIAL_AXES
