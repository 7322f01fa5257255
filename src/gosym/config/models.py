"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (GOSYM__SECTION__KEY)
3. Global YAML (~/.config/gosym/config.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    GOSYM__<SECTION>__<KEY>=<VALUE>

Examples:
    GOSYM__LOGGING__LEVEL=DEBUG
    GOSYM__CACHE__PATH=/tmp/gosym-cache.yaml
    GOSYM__RESOLVER__LEGACY_RESOLVER=godef.orig

The Go workspace itself is read from the standard GOPATH and GOROOT
variables unless overridden under the ``go`` section.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from gosym.config.constants import CACHE_RETENTION_HOURS, DEFAULT_LEGACY_RESOLVER

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    No outputs by default: stdout carries the answer and stderr the
    failure message, so logs only appear when asked for.

    Env vars:
        GOSYM__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG traces every import and strategy step.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=list)


class CacheConfig(BaseModel):
    """Recent-resolution cache configuration.

    Env vars:
        GOSYM__CACHE__PATH: Cache table location. Empty string disables caching.
        GOSYM__CACHE__RETENTION_HOURS: Entries older than this are evicted.
    """

    path: str = Field(
        default="~/.cache/gosym/cache.yaml",
        description="Persisted cache table. Empty string disables the cache.",
    )
    retention_hours: float = Field(
        default=CACHE_RETENTION_HOURS,
        description="Retention window. Entries older than this are swept on the next record.",
    )

    @field_validator("retention_hours")
    @classmethod
    def validate_retention(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Retention must be positive, got {v}")
        return v

    def resolved_path(self) -> Path | None:
        if not self.path:
            return None
        return Path(self.path).expanduser()


class ResolverConfig(BaseModel):
    """Resolution engine configuration.

    Env vars:
        GOSYM__RESOLVER__LEGACY_RESOLVER: Fallback executable. Empty disables it.
        GOSYM__RESOLVER__INCLUDE_TESTS: Parse _test.go files when querying a test file.
    """

    legacy_resolver: str = Field(
        default=DEFAULT_LEGACY_RESOLVER,
        description="Legacy resolver invoked when no strategy finds a position.",
    )
    include_tests: bool = Field(
        default=True,
        description="Include the package's _test.go files when the queried file is a test.",
    )


def _env_list(name: str) -> list[str]:
    return [p for p in os.environ.get(name, "").split(os.pathsep) if p]


def _default_gopath() -> list[str]:
    return _env_list("GOPATH") or [str(Path("~/go").expanduser())]


class GoEnvConfig(BaseModel):
    """Go workspace layout used by the package locator.

    Env vars:
        GOSYM__GO__GOROOT: Override GOROOT
        GOPATH / GOROOT: Standard Go variables, used when not overridden
    """

    gopath: list[str] = Field(default_factory=_default_gopath)
    goroot: str | None = Field(default_factory=lambda: os.environ.get("GOROOT") or None)


class GosymConfig(BaseModel):
    """Root configuration for gosym.

    All settings can be configured via:
    1. Environment variables: GOSYM__SECTION__KEY
    2. The global YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    go: GoEnvConfig = Field(default_factory=GoEnvConfig)
