"""Bounded FIFO queue for coroutine tasks sharing one event loop."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


@dataclass(slots=True)
class QueueEntry:
    """Queued task and the future handed back to its submitter."""

    task: Task[Any]
    future: asyncio.Future[Any]


class BoundedTaskQueue:
    """Run submitted tasks in FIFO selection order with at most ``max_workers`` in flight.

    Submission never blocks and is always accepted.  A task that raises only
    rejects its own future; the queue keeps going with the rest of the list.
    Tasks may enqueue further tasks while they run, and ``drain`` keeps waiting
    until both the pending list and the active count are empty.
    """

    def __init__(self, max_workers: int) -> None:
        if max_workers <= 0:
            raise ValueError(f"max_workers must be > 0, got {max_workers!r}")
        self._max_workers = max_workers
        self._pending: deque[QueueEntry] = deque()
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._runners: set[asyncio.Task[None]] = set()

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, task: Task[T]) -> asyncio.Future[T]:
        """Append ``task`` and return a future settled with the task's own outcome."""

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending.append(QueueEntry(task=task, future=future))
        self._idle.clear()
        self._dispatch()
        return future

    async def drain(self) -> None:
        """Wait until no task is pending and none is running."""

        while self._pending or self._active:
            await self._idle.wait()

    def _dispatch(self) -> None:
        while self._pending and self._active < self._max_workers:
            entry = self._pending.popleft()
            self._active += 1
            runner = asyncio.ensure_future(self._run(entry))
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)

    async def _run(self, entry: QueueEntry) -> None:
        try:
            result = await entry.task()
        except asyncio.CancelledError:
            entry.future.cancel()
            raise
        except Exception as error:  # noqa: BLE001
            logger.debug("Queued task failed: %s", error)
            if not entry.future.done():
                entry.future.set_exception(error)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._active -= 1
            self._dispatch()
            if not self._pending and self._active == 0:
                self._idle.set()
