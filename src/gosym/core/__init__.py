"""Core module exports."""

from gosym.core.errors import (
    ConfigError,
    ErrorCode,
    GosymError,
    ImportResolutionError,
    InternalError,
    LegacyResolverError,
    NoIdentifierError,
    PackageNotFoundError,
)
from gosym.core.logging import (
    clear_query_id,
    configure_logging,
    get_query_id,
    set_query_id,
)

__all__ = [
    # Errors
    "GosymError",
    "ConfigError",
    "ErrorCode",
    "ImportResolutionError",
    "InternalError",
    "LegacyResolverError",
    "NoIdentifierError",
    "PackageNotFoundError",
    # Logging
    "clear_query_id",
    "configure_logging",
    "get_query_id",
    "set_query_id",
]
