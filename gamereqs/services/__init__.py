"""Service layer: parsing, sources, caching, resolution and scoring."""

from .adapters import (
    CatalogAdapter,
    CatalogProvider,
    FallbackAdapter,
    LookupResult,
    LookupStatus,
    SourceAdapter,
)
from .backfill import BackfillStore, RequirementsBackfillJob, needs_requirements
from .cache import FileRequirementsCache, MemoryRequirementsCache, RequirementsCache
from .catalog import JsonCatalog, game_from_dict
from .compatibility import CompatibilityReport, CompatibilityService
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    CacheWriteError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    FileSystemError,
    InvalidGameError,
    NetworkError,
    UserFriendlyError,
    ValidationError,
    get_error_service,
    handle_error,
)
from .fallback import FallbackTable, normalize_name
from .filesystem import FileSystemService
from .http_client import HttpClientService
from .parser import parse_requirement_text
from .providers import RawgProvider, SteamProvider
from .resolver import GameType, RequirementsResolver, classify_game
from .scoring import crude_match, score_compatibility, tier_for_score

__all__ = [
    "AppError",
    "BackfillStore",
    "CacheWriteError",
    "CatalogAdapter",
    "CatalogProvider",
    "CompatibilityReport",
    "CompatibilityService",
    "ConfigurationError",
    "ConfigurationService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "FallbackAdapter",
    "FallbackTable",
    "FileRequirementsCache",
    "FileSystemError",
    "FileSystemService",
    "GameType",
    "HttpClientService",
    "InvalidGameError",
    "JsonCatalog",
    "LookupResult",
    "LookupStatus",
    "MemoryRequirementsCache",
    "NetworkError",
    "RawgProvider",
    "RequirementsBackfillJob",
    "RequirementsCache",
    "RequirementsResolver",
    "SourceAdapter",
    "SteamProvider",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "classify_game",
    "crude_match",
    "game_from_dict",
    "get_error_service",
    "handle_error",
    "needs_requirements",
    "normalize_name",
    "parse_requirement_text",
    "score_compatibility",
    "tier_for_score",
]
