"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are output-contract constraints shared with godef and implementation details.

For configurable values, see models.py (CacheConfig, ResolverConfig, etc.).
"""

# =============================================================================
# godef Output Contract
# =============================================================================
# Editors switch between godef and gosym without branching on output, so the
# failure message and exit status must match godef byte for byte.

FAILURE_MESSAGE = "godef: no identifier found"
"""Printed to stderr whenever no location can be produced."""

FAILURE_EXIT_CODE = 2
"""Exit status paired with FAILURE_MESSAGE."""

DEFAULT_LEGACY_RESOLVER = "godef.orig"
"""The original godef binary, renamed when gosym is installed in its place."""

# =============================================================================
# Recent-Resolution Cache
# =============================================================================

CACHE_RETENTION_HOURS = 24.0
"""Default age after which a cache entry is swept."""

# =============================================================================
# Syntax
# =============================================================================

IDENTIFIER_NODE_TYPES = frozenset(
    {
        "identifier",
        "type_identifier",
        "field_identifier",
        "package_identifier",
        "label_name",
    }
)
"""tree-sitter-go node types that count as identifier tokens."""

LOG_FILE_PREFIX = "gosym-log."
"""Prefix of the temp file written by -log."""
