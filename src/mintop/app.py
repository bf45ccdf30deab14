"""mintop - Main Textual application."""

import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.logging import TextualHandler
from textual.widgets import Static

from mintop.formatters import ErrorPolicy, get_battery_usage, get_cpu_usage, get_memory_usage
from mintop.loop import REFRESH_INTERVAL, EventLoop, KeyEventSource, Ticker
from mintop.models import BatteryReport
from mintop.samplers import (
    enumerate_batteries,
    prime_cpu_sampler,
    sample_cpu_percpu,
    sample_virtual_memory,
)

logger = logging.getLogger(__name__)


class MintopApp(App):
    """Full-screen CPU, memory and battery readout."""

    TITLE = "mintop"
    SUB_TITLE = "Minimal System Monitor"

    CSS = """
    Screen {
        overflow: hidden;
    }

    #stats {
        border: none;
        padding: 0;
    }
    """

    # Quit keys are forwarded to the refresh loop rather than handled here, so
    # the loop owns the decision to stop.
    BINDINGS = [
        Binding("q", "forward_key('q')", "Quit", priority=True),
        Binding("ctrl+c", "forward_key('ctrl+c')", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        refresh_interval: float = REFRESH_INTERVAL,
        cpu_sampler: Callable[[], Sequence[float]] = sample_cpu_percpu,
        memory_sampler: Callable[[], Any] = sample_virtual_memory,
        battery_sampler: Callable[[], BatteryReport] = enumerate_batteries,
        policy: ErrorPolicy = ErrorPolicy.DEGRADE,
    ) -> None:
        """
        Initialize the MintopApp.

        Args:
            refresh_interval: Seconds between redraws. Default 1.0s.
            cpu_sampler: Returns per-core CPU percentages.
            memory_sampler: Returns an object with ``total``, ``used`` and ``percent``.
            battery_sampler: Returns a BatteryReport.
            policy: What the formatters do when a sampler fails.
        """
        super().__init__()
        self._cpu_sampler = cpu_sampler
        self._memory_sampler = memory_sampler
        self._battery_sampler = battery_sampler
        self._policy = policy
        self._key_events = KeyEventSource()
        self._refresh_ticker = Ticker(period=refresh_interval)
        self._refresh_loop = EventLoop(self.draw, self._refresh_ticker, self._key_events)
        self._frame = ""
        if cpu_sampler is sample_cpu_percpu:
            prime_cpu_sampler()

    @property
    def refresh_loop(self) -> EventLoop:
        """Get the refresh loop."""
        return self._refresh_loop

    @property
    def frame(self) -> str:
        """Get the text of the last drawn frame."""
        return self._frame

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(id="stats", markup=False)

    def on_mount(self) -> None:
        """Start the refresh loop once the terminal is up."""
        self.run_worker(self._run_loop(), name="refresh-loop", exclusive=True)

    async def _run_loop(self) -> None:
        await self._refresh_loop.run()
        self.exit(return_code=0)

    def on_key(self, event: events.Key) -> None:
        """Forward every other key to the refresh loop, which ignores it."""
        self._key_events.put(event.key)

    def action_forward_key(self, key: str) -> None:
        """Forward a bound key to the refresh loop."""
        self._key_events.put(key)

    def compose_text(self) -> str:
        """Sample every metric and return the full display text."""
        cpu = get_cpu_usage(self._cpu_sampler, self._policy)
        memory = get_memory_usage(self._memory_sampler, self._policy)
        battery = get_battery_usage(self._battery_sampler, self._policy)
        return cpu + memory + battery

    def draw(self) -> None:
        """Repaint the whole screen with a fresh readout."""
        text = self.compose_text()
        width, height = self.size
        stats = self.query_one("#stats", Static)
        stats.styles.width = width
        stats.styles.height = height
        stats.update(text)
        self._frame = text


def main() -> None:
    """Entry point for mintop application."""
    logging.basicConfig(level=logging.INFO, handlers=[TextualHandler()])

    app = MintopApp()
    try:
        app.run()
    except Exception:
        logger.critical("failed to initialize terminal", exc_info=True)
        sys.exit(1)

    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
