"""Yet another OME-XML toolkit: schema migration and metadata translation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("yaoxml")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "uninstalled"

from . import formats, migration, ome, translation
from ._axis import CalibratedAxis
from ._compare import ComparisonResult, TreeComparator, is_equal
from ._dimensions import (
    canonicalize_dimension_order,
    effective_channel_count,
    find_dimension_order,
    plane_count,
    plane_index,
    populate_dimensions,
    zct_coords,
)
from ._errors import (
    MigrationStepError,
    MissingFieldError,
    NoTranslatorError,
    ParseError,
    PartialFieldError,
    PartialFieldWarning,
    TranslationError,
    UnknownVersionError,
    YaoxmlError,
)
from ._image import CanonicalMetadata, ImageMetadata, Metadata
from ._options import TranslationOptions
from .formats import FakeMetadata, ICSMetadata
from .migration import SchemaVersion, detect_version, latest_version
from .ome import OMEMetadata, create_ome_metadata
from .translation import TranslationEngine, default_registry, translate

__all__ = [
    "CalibratedAxis",
    "CanonicalMetadata",
    "ComparisonResult",
    "FakeMetadata",
    "ICSMetadata",
    "ImageMetadata",
    "Metadata",
    "MigrationStepError",
    "MissingFieldError",
    "NoTranslatorError",
    "OMEMetadata",
    "ParseError",
    "PartialFieldError",
    "PartialFieldWarning",
    "SchemaVersion",
    "TranslationEngine",
    "TranslationError",
    "TranslationOptions",
    "TreeComparator",
    "UnknownVersionError",
    "YaoxmlError",
    "canonicalize_dimension_order",
    "create_ome_metadata",
    "default_registry",
    "detect_version",
    "effective_channel_count",
    "find_dimension_order",
    "formats",
    "is_equal",
    "latest_version",
    "migration",
    "ome",
    "plane_count",
    "plane_index",
    "populate_dimensions",
    "translate",
    "translation",
    "zct_coords",
]
