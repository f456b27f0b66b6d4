"""In-process change notification channel for allocation data."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Callable
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from planner.core.logging import get_logger

logger = get_logger(__name__)

ChangeKind = Literal["allocation.created", "allocation.updated", "allocation.deleted", "project.updated"]


@dataclass(frozen=True, slots=True)
class AllocationChange:
    kind: ChangeKind
    allocation_id: int | None = None
    project_id: int | None = None
    year: int | None = None
    week_number: int | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        return asdict(self)


ChangeListener = Callable[[AllocationChange], None]


class ChangeBus:
    """Fan-out of change events to listeners.

    Listeners may be called from worker threads (store writes run in the
    threadpool); they must hand work back to their own loop themselves.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, change: AllocationChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception as exc:  # pragma: no cover
                logger.warning(
                    "planner.changes.listener_failed kind=%s error_type=%s error=%s",
                    change.kind,
                    exc.__class__.__name__,
                    str(exc),
                )

    async def stream(self) -> AsyncIterator[AllocationChange]:
        """Yield changes on the calling loop until the consumer stops iterating."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[AllocationChange] = asyncio.Queue()
        unsubscribe = self.subscribe(lambda change: loop.call_soon_threadsafe(queue.put_nowait, change))
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()


change_bus = ChangeBus()
