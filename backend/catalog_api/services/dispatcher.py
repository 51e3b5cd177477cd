"""Bounded-concurrency dispatcher shared by every upstream call.

Units are thunks returning an awaitable. At most ``capacity`` units run at once; the rest
wait in submission order. A unit that fails only fails its own future. Units submitted
from inside a running unit of the same dispatcher run immediately within the caller's
slot, so nested calls cannot starve a small pool.
"""
from __future__ import annotations

import asyncio
import contextvars
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Thunk = Callable[[], Awaitable[T]]

_running_in: contextvars.ContextVar["RequestDispatcher | None"] = contextvars.ContextVar(
    "running_in_dispatcher", default=None
)


@dataclass(slots=True)
class _Unit(Generic[T]):
    thunk: Thunk[T]
    future: "asyncio.Future[T]"


class Cohort(Generic[T]):
    """A group of submitted units whose joint completion can be awaited."""

    def __init__(self, futures: list["asyncio.Future[T]"]) -> None:
        self._futures = futures

    def __len__(self) -> int:
        return len(self._futures)

    async def drained(self) -> list[T | BaseException]:
        """Wait until every unit finished; failures are returned in place of results."""

        if not self._futures:
            return []
        return await asyncio.gather(*self._futures, return_exceptions=True)


class RequestDispatcher:
    """FIFO worker pool bounding the number of in-flight upstream calls."""

    def __init__(self, capacity: int = 45) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._pending: deque[_Unit[Any]] = deque()
        self._active = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, thunk: Thunk[T]) -> "asyncio.Future[T]":
        """Queue a unit and return the future resolving to its outcome."""

        loop = asyncio.get_running_loop()
        if _running_in.get() is self:
            return asyncio.ensure_future(thunk())

        future: asyncio.Future[T] = loop.create_future()
        self._pending.append(_Unit(thunk, future))
        self._pump()
        return future

    async def run(self, thunk: Thunk[T]) -> T:
        """Submit a unit and wait for its result."""

        return await self.submit(thunk)

    def submit_cohort(self, thunks: Iterable[Thunk[T]]) -> Cohort[T]:
        """Submit several units together so callers can wait for all of them."""

        return Cohort([self.submit(thunk) for thunk in thunks])

    def _pump(self) -> None:
        while self._active < self.capacity and self._pending:
            unit = self._pending.popleft()
            self._active += 1
            task = asyncio.ensure_future(self._execute(unit))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _execute(self, unit: _Unit[Any]) -> None:
        _running_in.set(self)
        try:
            result = await unit.thunk()
        except asyncio.CancelledError:
            unit.future.cancel()
            raise
        except Exception as exc:
            logger.debug("Dispatcher unit failed: %s", exc)
            if not unit.future.done():
                unit.future.set_exception(exc)
        else:
            if not unit.future.done():
                unit.future.set_result(result)
        finally:
            self._active -= 1
            self._pump()
