from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        ...


class LoopScheduler:
    """Timers and background writes on the running asyncio loop.

    Callbacks run on the loop thread, so a timer never interleaves with a
    field edit that is being handled.
    """

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(coro)
