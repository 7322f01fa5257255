"""Resolution strategies.

Both strategies take a loaded query and return the ``Binding`` of its
target identifier, or None. Failures are logged and absorbed: one strategy
failing must not stop the other from winning the race.
"""

from __future__ import annotations

import functools
from collections.abc import Callable

import structlog

from gosym.analysis.checker import Checker
from gosym.analysis.importer import Importer, ImporterSpec
from gosym.analysis.objects import Binding
from gosym.analysis.program import WholeProgramBuilder
from gosym.core.errors import GosymError, InternalError
from gosym.resolve.context import QueryContext
from gosym.resolve.loader import LoadedQuery

log = structlog.get_logger(__name__)

Strategy = Callable[[QueryContext, LoadedQuery], Binding | None]


def _absorbing(fn: Strategy) -> Strategy:
    @functools.wraps(fn)
    def wrapper(ctx: QueryContext, query: LoadedQuery) -> Binding | None:
        try:
            return fn(ctx, query)
        except GosymError as e:
            log.debug("strategy_failed", strategy=fn.__name__, **e.to_dict())
            return None
        except Exception as e:
            err = InternalError.unexpected(str(e), exc_type=type(e).__name__)
            log.debug("strategy_failed", strategy=fn.__name__, exc_info=True, **err.to_dict())
            return None

    return wrapper


@_absorbing
def two_pass(ctx: QueryContext, query: LoadedQuery) -> Binding | None:
    """Resolve with interface summaries first, then re-import one package.

    Pass 1 analyzes the target package against metadata imports, which is
    enough to learn which package declares the identifier. If pass 1 already
    has a position (the target package itself) or the object is predeclared,
    that is the answer. Otherwise pass 2 re-analyzes with the declaring
    package imported from source, which gives the declaration a real
    position. A pass 2 answer still without a position is no answer.

    Only uses are consulted: the identifier at a declaration site is not a
    use, so two-pass leaves declarations to the whole-program strategy.
    """
    handle = query.target.handle
    importer = Importer(ctx, ImporterSpec.metadata())
    _, info = Checker(query.package_path, query.files, importer).check()
    obj = info.uses.get(handle)
    if obj is None:
        log.debug("two_pass_unresolved", target=query.target.name)
        return None
    if obj.location is not None or obj.pkg_path is None:
        return Binding.from_obj(obj)

    log.debug("two_pass_second_pass", target=query.target.name, package=obj.pkg_path)
    importer = Importer(ctx, ImporterSpec.hybrid(obj.pkg_path))
    _, info = Checker(query.package_path, query.files, importer).check()
    obj = info.uses.get(handle)
    if obj is None or obj.location is None:
        log.debug("two_pass_no_position", target=query.target.name)
        return None
    return Binding.from_obj(obj)


@_absorbing
def whole_program(ctx: QueryContext, query: LoadedQuery) -> Binding | None:
    """Resolve against the fully loaded program: definitions, then uses."""
    program = WholeProgramBuilder(ctx).build(query)
    obj = program.lookup(query.target.handle)
    return Binding.from_obj(obj) if obj is not None else None


STRATEGIES: dict[str, Strategy] = {
    "two_pass": two_pass,
    "whole_program": whole_program,
}
