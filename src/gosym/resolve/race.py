"""Run resolution tasks concurrently and take the first answer.

Tasks run on daemon threads, so a straggler never keeps the process alive
once a winner has been printed. There is no timeout: a query waits until a
task produces a result or every task has come back empty.
"""

from __future__ import annotations

import contextvars
import queue
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RaceTask:
    name: str
    run: Callable[[], Any]


@dataclass(frozen=True)
class RaceResult:
    name: str
    value: Any


def _run(task: RaceTask, results: queue.SimpleQueue[tuple[str, Any]]) -> None:
    value = None
    try:
        value = task.run()
    except Exception:
        log.debug("race_task_failed", task=task.name, exc_info=True)
    finally:
        results.put((task.name, value))


def race(tasks: Sequence[RaceTask]) -> RaceResult | None:
    """Return the first non-None result in completion order.

    A task that raises counts as an empty result. Each thread runs in a copy
    of the caller's context, so the query id stays bound in its log events.
    """
    results: queue.SimpleQueue[tuple[str, Any]] = queue.SimpleQueue()
    for task in tasks:
        context = contextvars.copy_context()
        threading.Thread(
            target=context.run,
            args=(_run, task, results),
            name=f"gosym-{task.name}",
            daemon=True,
        ).start()

    for _ in tasks:
        name, value = results.get()
        if value is not None:
            log.debug("race_won", task=name)
            return RaceResult(name, value)
        log.debug("race_task_empty", task=name)
    return None
