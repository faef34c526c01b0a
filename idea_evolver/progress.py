"""
Progress reporting.

Observers are consumed, not owned: anything with on_progress / on_complete /
on_error methods can subscribe. A misbehaving observer is logged and
skipped; it never breaks a run.

Observers registered with add_observer() hear every run. Observers bound
with `run_observers(...)` only hear the run started inside that block,
even when several runs share one orchestrator concurrently.
"""

import contextvars
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Protocol, Tuple

from .models import ProgressEvent

logger = logging.getLogger(__name__)


class ProgressObserver(Protocol):
    def on_progress(self, event: ProgressEvent) -> None: ...

    def on_complete(self, results: Any) -> None: ...

    def on_error(self, error: Exception) -> None: ...


_run_observers: contextvars.ContextVar[Tuple[ProgressObserver, ...]] = contextvars.ContextVar(
    "idea_evolver_run_observers", default=()
)


@contextmanager
def run_observers(observers: Iterable[ProgressObserver]) -> Iterator[None]:
    """Bind observers to the current task (and tasks it spawns) for one run."""
    token = _run_observers.set(_run_observers.get() + tuple(observers))
    try:
        yield
    finally:
        _run_observers.reset(token)


def _dispatch(observers: Iterable[ProgressObserver], method: str, payload: Any) -> None:
    targets = list(observers)
    targets.extend(o for o in _run_observers.get() if o not in targets)
    for observer in targets:
        try:
            getattr(observer, method)(payload)
        except Exception as e:
            logger.warning("Progress observer %r failed in %s: %s", observer, method, e)


def notify_progress(
    observers: Iterable[ProgressObserver],
    type: str,
    source: str,
    message: Optional[str] = None,
    error: Optional[str] = None,
) -> ProgressEvent:
    event = ProgressEvent(type=type, source=source, message=message, error=error)
    _dispatch(observers, "on_progress", event)
    return event


def notify_complete(observers: Iterable[ProgressObserver], results: Any) -> None:
    _dispatch(observers, "on_complete", results)


def notify_error(observers: Iterable[ProgressObserver], error: Exception) -> None:
    _dispatch(observers, "on_error", error)


class ProgressRecorder:
    """Observer that keeps everything it is told, in order."""

    def __init__(self):
        self.events: List[ProgressEvent] = []
        self.completed: List[Any] = []
        self.errors: List[Exception] = []

    def on_progress(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def on_complete(self, results: Any) -> None:
        self.completed.append(results)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)
