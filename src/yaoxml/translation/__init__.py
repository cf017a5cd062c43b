"""Translate metadata between formats, directly or through the canonical model."""

from ._engine import TranslationEngine, TranslationPath, translate
from ._ome import CanonicalToOMETranslator, OMEToCanonicalTranslator
from ._registry import (
    Priority,
    Translator,
    TranslatorRegistry,
    create_lsid,
    default_registry,
)

__all__ = [
    "CanonicalToOMETranslator",
    "OMEToCanonicalTranslator",
    "Priority",
    "TranslationEngine",
    "TranslationPath",
    "Translator",
    "TranslatorRegistry",
    "create_lsid",
    "default_registry",
    "translate",
]
