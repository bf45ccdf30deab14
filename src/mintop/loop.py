"""
Refresh loop for mintop.

A single coroutine races a fixed-period ticker against a stream of key
events: ticks trigger a redraw, a quit key ends the loop. Both sources are
injected so the loop can be driven by fakes.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 1.0
QUIT_KEYS = frozenset({"q", "ctrl+c"})


class LoopState(Enum):
    """Lifecycle of the refresh loop."""

    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


class TickSource(Protocol):
    async def wait(self) -> None:
        """Return at the next tick."""


class EventSource(Protocol):
    async def get(self) -> str:
        """Return the identifier of the next input event."""


class Ticker:
    """
    Fixed-period timer anchored to a monotonic clock.

    Deadlines are ``start + n * period`` so render time does not make ticks
    drift. Deadlines that passed while nobody was waiting (a slow draw) are
    dropped, not delivered in a burst.
    """

    def __init__(
        self,
        period: float = REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._period = period
        self._clock = clock
        self._sleep = sleep
        self._deadline: float | None = None
        self._dropped = 0

    @property
    def period(self) -> float:
        """Get the tick period in seconds."""
        return self._period

    @property
    def dropped(self) -> int:
        """Number of ticks skipped because the previous one was handled late."""
        return self._dropped

    def start(self) -> None:
        """Anchor the first deadline one period from now."""
        self._deadline = self._clock() + self._period

    async def wait(self) -> None:
        """Sleep until the next deadline, then schedule the one after it."""
        if self._deadline is None:
            self.start()
        assert self._deadline is not None

        delay = self._deadline - self._clock()
        if delay > 0:
            await self._sleep(delay)

        late = self._clock() - self._deadline
        missed = int(late // self._period) if late > 0 else 0
        if missed:
            self._dropped += missed
            logger.debug("Dropped %d tick(s) while a draw was in flight", missed)
        self._deadline += (missed + 1) * self._period


class KeyEventSource:
    """Queue of key identifiers fed by the terminal backend."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    def put(self, key: str) -> None:
        """Push a key identifier (e.g. ``"q"`` or ``"ctrl+c"``)."""
        self._queue.put_nowait(key)

    async def get(self) -> str:
        return await self._queue.get()


class EventLoop:
    """
    Multiplexes the ticker and the key event source.

    The first draw happens immediately, then every tick redraws until a quit
    key arrives. If a tick and a key are ready at the same time, the key is
    handled first.
    """

    def __init__(
        self,
        draw: Callable[[], None],
        ticker: TickSource,
        events: EventSource,
        quit_keys: Iterable[str] = QUIT_KEYS,
    ) -> None:
        self._draw = draw
        self._ticker = ticker
        self._events = events
        self._quit_keys = frozenset(quit_keys)
        self._state = LoopState.IDLE

    @property
    def state(self) -> LoopState:
        """Get the current loop state."""
        return self._state

    async def run(self) -> None:
        """Run until a quit key is received."""
        self._draw()
        self._state = LoopState.RUNNING

        tick_task: asyncio.Task[None] | None = None
        key_task: asyncio.Task[str] | None = None
        try:
            while True:
                if tick_task is None:
                    tick_task = asyncio.create_task(self._ticker.wait())
                if key_task is None:
                    key_task = asyncio.create_task(self._events.get())

                done, _ = await asyncio.wait(
                    {tick_task, key_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if key_task in done:
                    key = key_task.result()
                    key_task = None
                    if key in self._quit_keys:
                        logger.debug("Quit key %r received", key)
                        return

                if tick_task in done:
                    tick_task.result()
                    tick_task = None
                    self._draw()
        finally:
            self._state = LoopState.TERMINATED
            for task in (tick_task, key_task):
                if task is not None and not task.done():
                    task.cancel()
