"""Exception and warning classes raised by yaoxml."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from yaoxml._image import Metadata

__all__ = [
    "MigrationStepError",
    "MissingFieldError",
    "NoTranslatorError",
    "ParseError",
    "PartialFieldError",
    "PartialFieldWarning",
    "TranslationError",
    "UnknownVersionError",
    "YaoxmlError",
]


class YaoxmlError(Exception):
    """Base class for all errors raised by yaoxml."""


class ParseError(YaoxmlError, ValueError):
    """Raised when a document cannot be parsed as XML."""


class UnknownVersionError(YaoxmlError, ValueError):
    """Raised when the schema version of a document cannot be determined."""

    def __init__(self, msg: str, namespace: str | None = None) -> None:
        super().__init__(msg)
        self.namespace = namespace


class MigrationStepError(YaoxmlError):
    """Raised when a single schema upgrade step fails."""

    def __init__(self, step: str, msg: str) -> None:
        super().__init__(f"{step}: {msg}")
        self.step = step
        self.detail = msg


class NoTranslatorError(YaoxmlError, LookupError):
    """Raised when no translator (direct or via the canonical model) exists.

    The message names the capability pair that could not be resolved.
    """

    def __init__(self, source: type[Metadata], dest: type[Metadata]) -> None:
        super().__init__(
            f"No translator available from {source.__qualname__!r} "
            f"to {dest.__qualname__!r}"
        )
        self.source = source
        self.dest = dest


class TranslationError(YaoxmlError):
    """Raised by a translator to abort a translation."""


class MissingFieldError(TranslationError):
    """A mandatory identifying field is missing from a metadata object."""


class PartialFieldError(TranslationError, ValueError):
    """A single optional value is illegal for the destination.

    Translators catch this per field, report it as a `PartialFieldWarning`, and
    carry on with the remaining fields.
    """

    def __init__(self, field: str, value: object, msg: str) -> None:
        super().__init__(f"{field}={value!r}: {msg}")
        self.field = field
        self.value = value


class PartialFieldWarning(UserWarning):
    """Emitted when a field is skipped during translation."""
