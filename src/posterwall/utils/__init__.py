"""Utility functions and classes."""

from .exceptions import (
    CatalogError,
    CatalogNotFoundError,
    CatalogTransientError,
    ConfigurationError,
    IndexCorruptionError,
    MetadataResolverError,
    OrchestratorError,
    PosterWallError,
    ShareUnavailableError,
)
from .file_utils import get_file_size, get_mod_time, is_hidden_file, to_share_path
from .rate_limiter import RequestPacer
from .release_tags import (
    clean_title,
    find_quality_tag,
    strip_bracketed_noise,
    truncate_at_quality_tag,
)
from .text_utils import calculate_similarity, identity_key, normalize_title, titles_match_exactly

__all__ = [
    "PosterWallError",
    "ConfigurationError",
    "ShareUnavailableError",
    "CatalogError",
    "CatalogNotFoundError",
    "CatalogTransientError",
    "IndexCorruptionError",
    "MetadataResolverError",
    "OrchestratorError",
    "get_file_size",
    "get_mod_time",
    "is_hidden_file",
    "to_share_path",
    "RequestPacer",
    "clean_title",
    "find_quality_tag",
    "strip_bracketed_noise",
    "truncate_at_quality_tag",
    "calculate_similarity",
    "identity_key",
    "normalize_title",
    "titles_match_exactly",
]
