"""Inline cell editing with two commit disciplines.

Day-hour cells commit immediately on blur. Free-text cells (task, comment)
commit after a quiet period, or on blur if that comes first. Both go through
the same single-field commit callable.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from planner.core.config import settings
from planner.core.errors import ValidationError
from planner.core.logging import get_logger
from planner.schemas.allocations import DAY_FIELDS, TEXT_FIELDS
from planner.services.aggregator import format_hours
from planner.services.allocations import parse_hours

logger = get_logger(__name__)

CommitFn = Callable[[int, str, Any], Awaitable[None]]
LocalApplyFn = Callable[[int, str, Any], None]


class EditStrategy(ABC):
    name: str

    @abstractmethod
    def parse(self, text: str) -> Any: ...

    @abstractmethod
    def render(self, value: Any) -> str: ...

    @abstractmethod
    def on_input(self, editor: CellEditor) -> None: ...

    @abstractmethod
    def on_blur(self, editor: CellEditor) -> asyncio.Task[None] | None: ...


class ImmediateCommit(EditStrategy):
    name = "immediate"

    def parse(self, text: str) -> float:
        return parse_hours(text)

    def render(self, value: Any) -> str:
        return format_hours(value)

    def on_input(self, editor: CellEditor) -> None:
        return None

    def on_blur(self, editor: CellEditor) -> asyncio.Task[None] | None:
        return editor.commit()


class DebouncedCommit(EditStrategy):
    name = "debounced"

    def __init__(self, delay: float | None = None):
        self.delay = settings.text_commit_delay_seconds if delay is None else delay

    def parse(self, text: str) -> str:
        return text

    def render(self, value: Any) -> str:
        return "" if value is None else str(value)

    def on_input(self, editor: CellEditor) -> None:
        editor.restart_timer(self.delay)

    def on_blur(self, editor: CellEditor) -> asyncio.Task[None] | None:
        editor.cancel_timer()
        return editor.commit()


def strategy_for_field(field: str, *, text_delay: float | None = None) -> EditStrategy:
    if field in DAY_FIELDS:
        return ImmediateCommit()
    if field in TEXT_FIELDS:
        return DebouncedCommit(text_delay)
    raise ValidationError(f"Field '{field}' is not editable")


class CellEditor:
    """Local buffer for one (allocation, field) cell."""

    def __init__(
        self,
        allocation_id: int,
        field: str,
        committed: Any,
        commit_fn: CommitFn,
        strategy: EditStrategy | None = None,
        *,
        on_commit: LocalApplyFn | None = None,
    ):
        self.allocation_id = allocation_id
        self.field = field
        self.strategy = strategy or strategy_for_field(field)
        self.committed = self.strategy.parse(self.strategy.render(committed))
        self.buffer = self.strategy.render(committed)
        self.focused = False
        self._commit_fn = commit_fn
        self._on_commit = on_commit
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def value(self) -> Any:
        return self.strategy.parse(self.buffer)

    @property
    def dirty(self) -> bool:
        return self.value != self.committed

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def focus(self) -> None:
        self.focused = True

    def input(self, text: str) -> None:
        self.buffer = text
        self.strategy.on_input(self)

    def blur(self) -> asyncio.Task[None] | None:
        self.focused = False
        return self.strategy.on_blur(self)

    def restart_timer(self, delay: float) -> None:
        self.cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.commit()

    def commit(self) -> asyncio.Task[None] | None:
        """Send the buffer if it differs from the last committed value.

        The local apply hook runs before the store call is scheduled.
        """
        value = self.value
        if value == self.committed:
            return None
        if self.strategy.name == "immediate":
            self.buffer = self.strategy.render(value)
        # Baseline matches the rendered buffer.
        self.committed = self.strategy.parse(self.strategy.render(value))
        if self._on_commit is not None:
            self._on_commit(self.allocation_id, self.field, value)
        task = asyncio.get_running_loop().create_task(self._commit_fn(self.allocation_id, self.field, value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def sync_from_server(self, value: Any) -> None:
        """Take a refetched value; a pending local edit keeps its buffer until blur."""
        rendered = self.strategy.render(value)
        keep_buffer = self.dirty and (self.focused or self.timer_pending)
        self.committed = self.strategy.parse(rendered)
        if not keep_buffer:
            self.buffer = rendered

    async def flush(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
