"""gosym error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Query
- 4xxx: Package discovery / import resolution
- 5xxx: Cache
- 6xxx: Legacy resolver
- 9xxx: Internal

Only configuration errors ever reach the user as themselves. Everything
else is absorbed by the resolution engine and surfaces as the fixed
godef-compatible failure message.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Query (3xxx)
    NO_IDENTIFIER = 3001
    UNREADABLE_SOURCE = 3002

    # Packages (4xxx)
    PACKAGE_NOT_FOUND = 4001
    IMPORT_FAILED = 4002
    IMPORT_CYCLE = 4003

    # Cache (5xxx)
    CACHE_UNREADABLE = 5001
    CACHE_WRITE_FAILED = 5002

    # Legacy resolver (6xxx)
    LEGACY_FAILED = 6001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class GosymError(Exception):
    """Base error with structured context for logs."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'PACKAGE_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured log events."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(GosymError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class NoIdentifierError(GosymError):
    """The query offset does not land on an identifier token."""

    @classmethod
    def at_offset(cls, path: str, offset: int, reason: str) -> "NoIdentifierError":
        return cls(
            code=ErrorCode.NO_IDENTIFIER,
            message=f"No identifier at {path} offset {offset}: {reason}",
            details={"path": path, "offset": offset, "reason": reason},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "NoIdentifierError":
        return cls(
            code=ErrorCode.UNREADABLE_SOURCE,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class PackageNotFoundError(GosymError):
    """The package locator could not map an import path or file to files."""

    @classmethod
    def for_path(cls, import_path: str, reason: str) -> "PackageNotFoundError":
        return cls(
            code=ErrorCode.PACKAGE_NOT_FOUND,
            message=f"Package {import_path!r} not found: {reason}",
            details={"import_path": import_path, "reason": reason},
        )


class ImportResolutionError(GosymError):
    """An importer could not produce a package. Local to one strategy."""

    @classmethod
    def failed(cls, import_path: str, reason: str) -> "ImportResolutionError":
        return cls(
            code=ErrorCode.IMPORT_FAILED,
            message=f"Cannot import {import_path!r}: {reason}",
            details={"import_path": import_path, "reason": reason},
        )

    @classmethod
    def cycle(cls, import_path: str) -> "ImportResolutionError":
        return cls(
            code=ErrorCode.IMPORT_CYCLE,
            message=f"Import cycle through {import_path!r}",
            details={"import_path": import_path},
        )


class CacheError(GosymError):
    """Recent-resolution cache persistence errors."""

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "CacheError":
        return cls(
            code=ErrorCode.CACHE_UNREADABLE,
            message=f"Cannot load cache {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "CacheError":
        return cls(
            code=ErrorCode.CACHE_WRITE_FAILED,
            message=f"Cannot write cache {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class LegacyResolverError(GosymError):
    """The legacy resolver could not be run or gave no answer."""

    @classmethod
    def unavailable(cls, executable: str, reason: str) -> "LegacyResolverError":
        return cls(
            code=ErrorCode.LEGACY_FAILED,
            message=f"Cannot run {executable}: {reason}",
            details={"executable": executable, "reason": reason},
        )

    @classmethod
    def failed(cls, executable: str, returncode: int, stderr: str) -> "LegacyResolverError":
        return cls(
            code=ErrorCode.LEGACY_FAILED,
            message=f"{executable} exited with status {returncode}",
            details={"executable": executable, "returncode": returncode, "stderr": stderr},
        )


class InternalError(GosymError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
