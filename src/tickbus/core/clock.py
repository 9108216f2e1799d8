from __future__ import annotations

import asyncio
import datetime as _dt
import inspect
import time
from typing import Any, Callable, Optional

from tickbus.core import log
from tickbus.core.contracts import FailurePolicy, TimedNotification
from tickbus.core.metrics import inc, observe_hist

DEFAULT_INTERVAL = 1.0

Publish = Callable[[Any], Any]


class Ticker:
    """
    Periodic driver: build a notification from the current time, hand it to
    ``publish`` and wait for it to finish, then sleep ``interval`` seconds.

    Publish-then-delay: a slow publish stretches the period instead of
    overlapping the next tick. The stop event is honoured at the top of the
    loop and during the delay, never in the middle of a publish.

    Usage:
        ticker = Ticker(mediator.publish)
        await ticker.run(stop_event)
    """

    def __init__(
        self,
        publish: Publish,
        *,
        interval: float = DEFAULT_INTERVAL,
        policy: FailurePolicy | str = FailurePolicy.PROPAGATE,
        now: Callable[[], _dt.datetime] = _dt.datetime.now,
        notification_factory: Callable[[_dt.datetime], Any] = TimedNotification.at,
        name: str = "ticker",
    ):
        self.interval = float(interval)
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        self.publish = publish
        self.policy = FailurePolicy(policy)
        self.now = now
        self.notification_factory = notification_factory
        self.name = name
        self.l = log.get(name)
        self.ticks = 0
        self._stop = asyncio.Event()

    def stop(self) -> None:
        """Ask a running loop to end before its next tick."""
        self._stop.set()

    async def run(self, stop: Optional[asyncio.Event] = None, max_ticks: Optional[int] = None) -> int:
        """Tick until ``stop`` (or stop()) is set, or ``max_ticks`` ran. Returns ticks run."""
        if max_ticks is not None and max_ticks < 0:
            raise ValueError("max_ticks must be >= 0")
        stop = stop or self._stop
        self.l.info("ticker start interval=%.3fs policy=%s", self.interval, self.policy.value)
        try:
            while not (stop.is_set() or self._stop.is_set()):
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                t0 = time.perf_counter()
                await self._tick()
                observe_hist("clock_loop_ms", (time.perf_counter() - t0) * 1000.0, clock=self.name)
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                await self._delay(stop)
        finally:
            self.l.info("ticker stop ticks=%d", self.ticks)
        return self.ticks

    async def _tick(self) -> None:
        notification = self.notification_factory(self.now())
        self.ticks += 1
        inc("ticker_ticks_total", 1, clock=self.name)
        try:
            result = self.publish(notification)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            inc("ticker_errors_total", 1, clock=self.name)
            if self.policy is FailurePolicy.PROPAGATE:
                self.l.debug("tick %d failed, stopping: %s", self.ticks, e)
                raise
            self.l.error("tick %d failed: %s", self.ticks, e, exc_info=True)

    async def _delay(self, stop: asyncio.Event) -> None:
        waiters = {asyncio.ensure_future(stop.wait())}
        if stop is not self._stop:
            waiters.add(asyncio.ensure_future(self._stop.wait()))
        try:
            await asyncio.wait(waiters, timeout=self.interval, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for w in waiters:
                w.cancel()
