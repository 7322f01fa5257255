"""Config module exports."""

from gosym.config.loader import load_config
from gosym.config.models import (
    CacheConfig,
    GoEnvConfig,
    GosymConfig,
    LoggingConfig,
    ResolverConfig,
)

__all__ = [
    "load_config",
    "GosymConfig",
    "CacheConfig",
    "GoEnvConfig",
    "LoggingConfig",
    "ResolverConfig",
]
