"""Translators and the capability-pair registry used to look them up."""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from yaoxml._image import CanonicalMetadata, Metadata

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from yaoxml._options import TranslationOptions

__all__ = [
    "Priority",
    "Translator",
    "TranslatorRegistry",
    "create_lsid",
    "default_registry",
]

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Metadata)
D = TypeVar("D", bound=Metadata)

Pair = tuple[type[Metadata], type[Metadata]]


class Priority(IntEnum):
    """Common translator priorities.  Any int is a valid priority."""

    LOW = -100
    NORMAL = 0
    HIGH = 100


def create_lsid(kind: str, *indices: int) -> str:
    """Return an identifier such as 'Channel:0:2'.

    The result depends only on the arguments, so translating the same object
    twice produces the same identifiers.
    """
    return ":".join([kind, *(str(i) for i in indices)])


class Translator(ABC, Generic[S, D]):
    """Converts one metadata type into another.

    Subclasses set the `source` and `dest` types they handle and optionally a
    `priority`; when several translators handle the same pair, the highest
    priority wins.  Translators hold no state and are shared by every caller.
    """

    source: ClassVar[type[Metadata]]
    dest: ClassVar[type[Metadata]]
    priority: ClassVar[int] = Priority.NORMAL

    @property
    def pair(self) -> Pair:
        return (self.source, self.dest)

    @abstractmethod
    def translate(self, source: S, dest: D, options: TranslationOptions) -> None:
        """Fill `dest` with the information held by `source`.

        Raises
        ------
        TranslationError
            To abort the translation; the caller restores `dest`.
        """

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.source.__name__} -> "
            f"{self.dest.__name__} (priority {int(self.priority)})>"
        )


class TranslatorRegistry:
    """Immutable lookup of translators by (source type, dest type).

    Candidates for a pair are ordered by descending priority; translators of
    equal priority keep their registration order.
    """

    def __init__(self, translators: Iterable[Translator] = ()) -> None:
        table: dict[Pair, list[Translator]] = defaultdict(list)
        for translator in translators:
            table[translator.pair].append(translator)
        self._table: dict[Pair, tuple[Translator, ...]] = {
            pair: tuple(sorted(found, key=lambda t: -t.priority))
            for pair, found in table.items()
        }

    def __iter__(self) -> Iterator[Translator]:
        for found in self._table.values():
            yield from found

    def __len__(self) -> int:
        return sum(len(found) for found in self._table.values())

    def __contains__(self, pair: object) -> bool:
        return pair in self._table

    def candidates(
        self, source: type[Metadata], dest: type[Metadata]
    ) -> tuple[Translator, ...]:
        """Every translator for the pair, best first."""
        return self._table.get((source, dest), ())

    def find(self, source: type[Metadata], dest: type[Metadata]) -> Translator | None:
        """The highest-priority translator for the pair, if any."""
        found = self.candidates(source, dest)
        return found[0] if found else None

    def pairs(self) -> list[Pair]:
        return list(self._table)

    def metadata_types(self) -> set[type[Metadata]]:
        """Every type that appears on either side of a registered pair."""
        return {t for pair in self._table for t in pair}

    def missing_canonical(
        self, types: Iterable[type[Metadata]] | None = None
    ) -> list[str]:
        """Describe the canonical translators lacking for `types`.

        Every metadata type needs a translator to and from `CanonicalMetadata`
        so that any pair can be resolved through it.
        """
        if types is None:
            types = self.metadata_types()
        missing: list[str] = []
        for tp in sorted(types, key=lambda t: t.__qualname__):
            if tp is CanonicalMetadata:
                continue
            if (tp, CanonicalMetadata) not in self._table:
                missing.append(f"{tp.__qualname__} -> Canonical")
            if (CanonicalMetadata, tp) not in self._table:
                missing.append(f"Canonical -> {tp.__qualname__}")
        return missing

    def verify_closure(self, types: Iterable[type[Metadata]] | None = None) -> None:
        """Raise ValueError unless every type can reach the canonical model."""
        if missing := self.missing_canonical(types):
            raise ValueError("Missing canonical translators: " + ", ".join(missing))


def _builtin_translators() -> list[Translator]:
    from yaoxml.formats import _fake, _ics

    from . import _ome

    return [*_ome.TRANSLATORS, *_fake.TRANSLATORS, *_ics.TRANSLATORS]


@functools.cache
def default_registry() -> TranslatorRegistry:
    """The registry of builtin translators, built and checked once."""
    registry = TranslatorRegistry(_builtin_translators())
    registry.verify_closure()
    logger.debug("Registered %d translators", len(registry))
    return registry
