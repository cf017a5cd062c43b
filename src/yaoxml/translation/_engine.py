"""Resolve and run translations between metadata types."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from yaoxml._errors import NoTranslatorError, TranslationError
from yaoxml._image import CanonicalMetadata, Metadata
from yaoxml._options import TranslationOptions

from ._registry import Translator, TranslatorRegistry, default_registry

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = ["TranslationEngine", "TranslationPath", "translate"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationPath:
    """The translators that take `source` to `dest`, applied in order.

    An empty path means a plain copy (canonical to canonical).  A two-step path
    goes through the canonical model.
    """

    source: type[Metadata]
    dest: type[Metadata]
    steps: tuple[Translator, ...]

    def __iter__(self) -> Iterator[Translator]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def via_canonical(self) -> bool:
        return len(self.steps) == 2


class TranslationEngine:
    """Translate any metadata object into any other metadata type.

    A translator registered for the exact (source, dest) pair is used when one
    exists.  Otherwise the source is translated to `CanonicalMetadata` and from
    there to the destination.

    Parameters
    ----------
    registry : TranslatorRegistry, optional
        Where translators are looked up.  Defaults to the builtin registry.
    options : TranslationOptions, optional
        Passed to every translator.  Defaults to `TranslationOptions.from_env()`.
    """

    def __init__(
        self,
        registry: TranslatorRegistry | None = None,
        options: TranslationOptions | None = None,
    ) -> None:
        self.registry = default_registry() if registry is None else registry
        self.options = TranslationOptions.from_env() if options is None else options

    def resolve(self, source: type[Metadata], dest: type[Metadata]) -> TranslationPath:
        """Return the translators that turn a `source` into a `dest`.

        Raises
        ------
        NoTranslatorError
            If neither a direct translator nor a path through the canonical
            model exists.
        """
        if (direct := self.registry.find(source, dest)) is not None:
            return TranslationPath(source, dest, (direct,))
        if source is CanonicalMetadata and dest is CanonicalMetadata:
            return TranslationPath(source, dest, ())

        steps: list[Translator] = []
        for pair in ((source, CanonicalMetadata), (CanonicalMetadata, dest)):
            if pair[0] is pair[1]:
                continue
            if (found := self.registry.find(*pair)) is None:
                raise NoTranslatorError(source, dest)
            steps.append(found)
        return TranslationPath(source, dest, tuple(steps))

    def translate(self, source: Metadata, dest: Metadata) -> bool:
        """Fill `dest` (in place) with the information held by `source`.

        Returns False, with `dest` restored to its prior state, when a
        translator aborts with a `TranslationError`.

        Raises
        ------
        NoTranslatorError
            If the pair of types cannot be resolved.
        """
        path = self.resolve(type(source), type(dest))
        logger.debug(
            "Translating %s -> %s via %s",
            type(source).__name__,
            type(dest).__name__,
            path.steps or "copy",
        )
        snapshot = dest.snapshot()
        try:
            if not path.steps:
                dest._restore(source)
            elif len(path.steps) == 1:
                path.steps[0].translate(source, dest, self.options)
            else:
                first, second = path.steps
                canonical = CanonicalMetadata(dataset_name=source.dataset_name)
                first.translate(source, canonical, self.options)
                second.translate(canonical, dest, self.options)
        except TranslationError as e:
            logger.warning(
                "Translation %s -> %s failed: %s",
                type(source).__name__,
                type(dest).__name__,
                e,
            )
            dest._restore(snapshot)
            return False
        return True


def translate(
    source: Metadata, dest: Metadata, options: TranslationOptions | None = None
) -> bool:
    """Translate `source` into `dest` with the builtin registry."""
    return TranslationEngine(options=options).translate(source, dest)
