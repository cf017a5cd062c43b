from __future__ import annotations

import os
from typing import Literal

from pydantic import Field

from ._base import _BaseModel

__all__ = ["MetadataLevel", "TranslationOptions"]

MetadataLevel = Literal["minimum", "all"]

_FALSE = ("", "0", "false", "no", "off")


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() not in _FALSE


class TranslationOptions(_BaseModel):
    """Switches that change what translators write."""

    metadata_level: MetadataLevel = Field(
        default="all",
        description="'minimum' writes only the fields needed to read the pixels.",
    )
    populate_planes: bool = Field(
        default=False,
        description="Write one Plane element (TheZ/TheC/TheT) per image plane.",
    )
    default_creation_date: bool = Field(
        default=False,
        description="Stamp images that have no acquisition date with the "
        "current time.",
    )

    @property
    def minimal(self) -> bool:
        return self.metadata_level == "minimum"

    @classmethod
    def from_env(cls) -> TranslationOptions:
        """Options from the YAOXML_* environment variables, else defaults."""
        values: dict[str, object] = {}
        if level := os.getenv("YAOXML_METADATA_LEVEL"):
            values["metadata_level"] = level.strip().lower()
        if (flag := _env_flag("YAOXML_POPULATE_PLANES")) is not None:
            values["populate_planes"] = flag
        if (flag := _env_flag("YAOXML_DEFAULT_CREATION_DATE")) is not None:
            values["default_creation_date"] = flag
        return cls.model_validate(values)
