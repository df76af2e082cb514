# body_shape_engine/shape_engine/capture/scheduling.py
import asyncio
import functools
from typing import Awaitable, Callable, Coroutine, Generic, Optional, Set, TypeVar
from ..common.logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def spawn(coro: Coroutine, pending: Set[asyncio.Task], name: str) -> asyncio.Task:
    """
    Schedules ``coro`` on the running loop and holds the task in ``pending``
    until it finishes. A failure is logged rather than left unretrieved.
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    pending.add(task)
    task.add_done_callback(functools.partial(_on_done, pending, name))
    return task


def _on_done(pending: Set[asyncio.Task], name: str, task: asyncio.Task):
    pending.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Task '%s' failed: %s", name, error)


class LatestValue(Generic[T]):
    """
    Single-writer, single-reader cell holding only the most recent value.
    Readers call ``get()`` at the moment of use instead of holding on to an
    earlier value.
    """

    def __init__(self, value: Optional[T] = None):
        self._value = value
        self._version = 0

    def set(self, value: Optional[T]):
        self._value = value
        self._version += 1

    def get(self) -> Optional[T]:
        return self._value

    def clear(self):
        self.set(None)

    @property
    def version(self) -> int:
        return self._version


class PeriodicTask:
    """
    Fires ``callback`` every ``interval`` seconds on the running event loop.

    Ticks do not wait for the previous callback to finish; each invocation
    runs as its own task, so overlap has to be guarded by the callback.
    ``stop`` cancels the timer but leaves in-flight invocations to complete.
    """

    def __init__(self, interval: float, callback: Callable[[], Awaitable[None]], name: str = "periodic"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self._callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> "PeriodicTask":
        if self.running:
            return self
        self._timer = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("Periodic task '%s' started (%.3fs)", self.name, self.interval)
        return self

    def stop(self):
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            logger.debug("Periodic task '%s' stopped", self.name)

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            spawn(self._callback(), self._in_flight, self.name)
