from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ["_BaseModel"]


class _BaseModel(BaseModel):
    """Common configuration of every yaoxml model.

    Fields accept both their python name and their XML name (alias), and
    assignments are validated: translators fill models one field at a time.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        validate_by_name=True,
        serialize_by_alias=True,
    )

    def snapshot(self) -> Self:
        """Return an independent deep copy of this model."""
        return self.model_copy(deep=True)
