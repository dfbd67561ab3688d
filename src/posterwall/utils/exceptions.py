"""Custom exceptions for the application."""


class PosterWallError(Exception):
    """Base exception for all application errors."""

    pass


class ConfigurationError(PosterWallError):
    """Configuration-related errors."""

    pass


class ShareUnavailableError(PosterWallError):
    """The media share cannot be listed; fatal to the current scan cycle."""

    pass


class CatalogError(PosterWallError):
    """Metadata catalog errors that should not be retried."""

    pass


class CatalogNotFoundError(CatalogError):
    """The catalog has no record for the requested item."""

    pass


class CatalogTransientError(CatalogError):
    """Timeouts, server errors, rate limiting and malformed payloads."""

    pass


class IndexCorruptionError(PosterWallError):
    """A persisted index record could not be decoded."""

    pass


class MetadataResolverError(PosterWallError):
    """Metadata resolver errors."""

    pass


class OrchestratorError(PosterWallError):
    """Orchestrator errors."""

    pass
