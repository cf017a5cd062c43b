"""Upgrade OME-XML documents of any known release to the latest schema."""

from ._chain import (
    STEPS,
    MetadataDocument,
    MigrationChain,
    MigrationResult,
    MigrationStep,
    cleanup_prefixes,
    default_chain,
    migrate,
    normalize_namespace,
    upgrade_text,
)
from ._versions import SchemaVersion, detect_version, latest_version

__all__ = [
    "STEPS",
    "MetadataDocument",
    "MigrationChain",
    "MigrationResult",
    "MigrationStep",
    "SchemaVersion",
    "cleanup_prefixes",
    "default_chain",
    "detect_version",
    "latest_version",
    "migrate",
    "normalize_namespace",
    "upgrade_text",
]
