"""Definition lookup for one query: loading, strategies, race and cache."""

from gosym.resolve.cache import ResolutionCache, fingerprint, fingerprint_file
from gosym.resolve.context import QueryContext
from gosym.resolve.engine import Resolution, resolve
from gosym.resolve.legacy import LegacyResolver
from gosym.resolve.loader import LoadedQuery, TargetIdentifier, load_query
from gosym.resolve.race import RaceResult, RaceTask, race
from gosym.resolve.strategies import STRATEGIES, two_pass, whole_program

__all__ = [
    "LegacyResolver",
    "LoadedQuery",
    "QueryContext",
    "RaceResult",
    "RaceTask",
    "Resolution",
    "ResolutionCache",
    "STRATEGIES",
    "TargetIdentifier",
    "fingerprint",
    "fingerprint_file",
    "load_query",
    "race",
    "resolve",
    "two_pass",
    "whole_program",
]
