"""Session timer driven by an asyncio task.

Hey future me - rules of this clock:

- At most ONE ticking task per timer. resume() while running is a no-op.
- tick() is synchronous: elapsed moves and on_tick(before, after) runs in the
  same instant, so the overtime check can never see a half-applied tick.
- Cancellation only ever lands on the sleep between ticks. pause(), reset()
  and aclose() leave elapsed_seconds at a well defined value.
- elapsed is base + ticks * interval (rounded), not a running float sum, so
  600 ticks of 0.1s is exactly 60.0 and not 59.99999999.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from practicesync.application.state.observable import Observable

logger = logging.getLogger(__name__)

TickCallback = Callable[[float, float], None]


class SessionTimer:
    """Pausable elapsed-time clock with an overtime alert flag."""

    def __init__(
        self, interval: float = 0.1, on_tick: TickCallback | None = None
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.on_tick = on_tick
        self.has_triggered_overtime_alert = False
        self.elapsed: Observable[float] = Observable(0.0, name="timer")
        self._base_seconds = 0.0
        self._ticks = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed.value

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def seed(self, seconds: float) -> None:
        """Set elapsed time (resuming a partially practiced item)."""
        self._base_seconds = max(0.0, seconds)
        self._ticks = 0
        self.elapsed.set(self._base_seconds)

    def tick(self) -> None:
        """Advance by one interval and run the tick callback."""
        before = self.elapsed_seconds
        self._ticks += 1
        after = round(self._base_seconds + self._ticks * self.interval, 6)
        self.elapsed.set(after)
        if self.on_tick is not None:
            self.on_tick(before, after)

    def resume(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def pause(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def toggle(self) -> None:
        if self.is_running:
            self.pause()
        else:
            self.resume()

    def reset(self) -> None:
        """Stop, zero the clock and re-arm the overtime alert."""
        self.pause()
        self.has_triggered_overtime_alert = False
        self.seed(0.0)

    async def aclose(self) -> None:
        """Stop and wait for the ticking task to finish."""
        task = self._task
        self.pause()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception:
                logger.exception("Timer tick callback failed")
