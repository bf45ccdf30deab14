"""Tests for the refresh loop."""

import asyncio

import pytest

from mintop.loop import QUIT_KEYS, EventLoop, KeyEventSource, LoopState, Ticker


class FakeClock:
    """Monotonic clock whose sleep just advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


class ManualTicker:
    """Tick source that only fires when the test says so."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[None] = asyncio.Queue()

    def tick(self) -> None:
        self._queue.put_nowait(None)

    async def wait(self) -> None:
        await self._queue.get()


class DrawCounter:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


async def settle() -> None:
    """Let pending tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)


class TestTicker:
    """Tests for the fixed-period Ticker."""

    def test_rejects_non_positive_period(self):
        """Test a zero period is rejected."""
        with pytest.raises(ValueError):
            Ticker(period=0)

    def test_default_period(self):
        """Test the default period is one second."""
        assert Ticker().period == 1.0

    @pytest.mark.asyncio
    async def test_period_does_not_drift_with_draw_time(self):
        """Test ticks stay on the start + n * period grid."""
        clock = FakeClock()
        ticker = Ticker(period=1.0, clock=clock, sleep=clock.sleep)

        await ticker.wait()
        assert clock.now == 1.0

        clock.now += 0.3  # draw
        await ticker.wait()
        assert clock.now == pytest.approx(2.0)
        assert ticker.dropped == 0

    @pytest.mark.asyncio
    async def test_drops_ticks_missed_during_slow_draw(self):
        """Test ticks missed while a draw ran long are dropped, not queued."""
        clock = FakeClock()
        ticker = Ticker(period=1.0, clock=clock, sleep=clock.sleep)

        await ticker.wait()
        clock.now += 2.5  # very slow draw, deadline 2.0 and 3.0 pass

        await ticker.wait()  # late tick for 3.0 fires immediately
        assert clock.sleeps == [1.0]
        assert ticker.dropped == 1

        await ticker.wait()
        assert clock.now == pytest.approx(4.0)


class TestKeyEventSource:
    """Tests for KeyEventSource."""

    @pytest.mark.asyncio
    async def test_keys_delivered_in_order(self):
        """Test keys come out in the order they were pushed."""
        events = KeyEventSource()
        events.put("a")
        events.put("q")

        assert await events.get() == "a"
        assert await events.get() == "q"


class TestEventLoop:
    """Tests for the EventLoop transition table."""

    def test_default_quit_keys(self):
        """Test q and Ctrl-C are the quit keys."""
        assert QUIT_KEYS == {"q", "ctrl+c"}

    def test_initial_state(self):
        """Test the loop is idle before run()."""
        loop = EventLoop(DrawCounter(), ManualTicker(), KeyEventSource())
        assert loop.state is LoopState.IDLE

    @pytest.mark.asyncio
    async def test_draws_immediately(self):
        """Test the first frame is drawn before any tick."""
        draw = DrawCounter()
        events = KeyEventSource()
        loop = EventLoop(draw, ManualTicker(), events)

        task = asyncio.create_task(loop.run())
        await settle()

        assert draw.count == 1
        assert loop.state is LoopState.RUNNING

        events.put("q")
        await task

    @pytest.mark.asyncio
    async def test_tick_triggers_draw(self):
        """Test every tick redraws and keeps the loop running."""
        draw = DrawCounter()
        ticker = ManualTicker()
        events = KeyEventSource()
        loop = EventLoop(draw, ticker, events)

        task = asyncio.create_task(loop.run())
        await settle()
        ticker.tick()
        await settle()
        ticker.tick()
        await settle()

        assert draw.count == 3
        assert loop.state is LoopState.RUNNING

        events.put("q")
        await task

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["q", "ctrl+c"])
    async def test_quit_key_terminates(self, key):
        """Test q and Ctrl-C end the loop."""
        events = KeyEventSource()
        loop = EventLoop(DrawCounter(), ManualTicker(), events)

        task = asyncio.create_task(loop.run())
        await settle()
        events.put(key)
        await asyncio.wait_for(task, timeout=1.0)

        assert loop.state is LoopState.TERMINATED

    @pytest.mark.asyncio
    async def test_other_keys_ignored(self):
        """Test non-quit keys neither draw nor stop the loop."""
        draw = DrawCounter()
        events = KeyEventSource()
        loop = EventLoop(draw, ManualTicker(), events)

        task = asyncio.create_task(loop.run())
        await settle()
        for key in ("a", "Q", "escape", "ctrl+d"):
            events.put(key)
        await settle()

        assert not task.done()
        assert draw.count == 1
        assert loop.state is LoopState.RUNNING

        events.put("q")
        await task

    @pytest.mark.asyncio
    async def test_custom_quit_keys(self):
        """Test quit keys can be overridden."""
        events = KeyEventSource()
        loop = EventLoop(DrawCounter(), ManualTicker(), events, quit_keys={"x"})

        task = asyncio.create_task(loop.run())
        await settle()
        events.put("q")
        await settle()
        assert not task.done()

        events.put("x")
        await asyncio.wait_for(task, timeout=1.0)

    @pytest.mark.asyncio
    async def test_terminated_on_cancel(self):
        """Test an externally cancelled loop still ends TERMINATED."""
        loop = EventLoop(DrawCounter(), ManualTicker(), KeyEventSource())

        task = asyncio.create_task(loop.run())
        await settle()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert loop.state is LoopState.TERMINATED

    @pytest.mark.asyncio
    async def test_draw_error_propagates(self):
        """Test an exception in draw stops the loop."""

        def broken_draw():
            raise RuntimeError("render failed")

        loop = EventLoop(broken_draw, ManualTicker(), KeyEventSource())

        with pytest.raises(RuntimeError):
            await loop.run()

    @pytest.mark.asyncio
    async def test_real_ticker_redraws(self):
        """Test the loop redraws on a real short-period ticker."""
        draw = DrawCounter()
        events = KeyEventSource()
        loop = EventLoop(draw, Ticker(period=0.05), events)

        task = asyncio.create_task(loop.run())
        await asyncio.sleep(0.3)
        events.put("ctrl+c")
        await asyncio.wait_for(task, timeout=1.0)

        assert draw.count >= 3
        assert loop.state is LoopState.TERMINATED
