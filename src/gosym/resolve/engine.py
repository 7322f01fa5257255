"""Resolution engine: race the cache and both strategies for one query."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from gosym.analysis.objects import Binding
from gosym.resolve.cache import ResolutionCache
from gosym.resolve.context import QueryContext
from gosym.resolve.loader import LoadedQuery
from gosym.resolve.race import RaceTask, race
from gosym.resolve.strategies import STRATEGIES

log = structlog.get_logger(__name__)

CACHE_TASK = "cache"


@dataclass(frozen=True)
class Resolution:
    """The winning binding and which task produced it."""

    binding: Binding
    source: str


def _cache_task(cache: ResolutionCache, query: LoadedQuery) -> RaceTask:
    def run() -> Binding | None:
        location = cache.lookup(query.key, query.fingerprint)
        if location is None:
            return None
        return Binding(name=query.target.name, kind="cached", package=None, location=location)

    return RaceTask(CACHE_TASK, run)


def resolve(ctx: QueryContext, query: LoadedQuery, cache: ResolutionCache | None = None) -> Resolution | None:
    """Resolve the query's identifier.

    New resolutions that land in a different file than the query are
    recorded in ``cache``. Same-file answers are cheap and never cached.
    """
    tasks = []
    if cache is not None:
        tasks.append(_cache_task(cache, query))
    for name, strategy in STRATEGIES.items():
        tasks.append(RaceTask(name, lambda strategy=strategy: strategy(ctx, query)))

    winner = race(tasks)
    if winner is None:
        log.info("unresolved", target=query.target.name, at=query.key)
        return None

    resolution = Resolution(binding=winner.value, source=winner.name)
    location = resolution.binding.location
    log.info(
        "resolved",
        target=query.target.name,
        winner=winner.name,
        location=str(location) if location else None,
    )
    if (
        cache is not None
        and winner.name != CACHE_TASK
        and location is not None
        and location.path != query.filename
    ):
        cache.record(query.key, query.fingerprint, location)
    return resolution
