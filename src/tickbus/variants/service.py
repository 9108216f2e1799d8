# src/tickbus/variants/service.py
from __future__ import annotations

import asyncio
import datetime as _dt
from typing import Callable, Optional

from tickbus.console import Console
from tickbus.core.clock import DEFAULT_INTERVAL, Ticker
from tickbus.core.contracts import FailurePolicy, TickerEventArgs, format_long_time
from tickbus.core.events import EventHandler
from tickbus.host import BackgroundService


class TickerService:
    """
    Singleton that raises ``ticked`` once per tick. Its two subscribers are
    its own methods, wired in the constructor; adding a subscriber means
    editing this class.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.ticked: EventHandler[TickerEventArgs] = EventHandler("ticked")
        self.ticked += self.on_every_one_second
        self.ticked += self.on_every_five_second

    def on_every_one_second(self, sender, args: TickerEventArgs) -> None:
        self.console.write_line(format_long_time(args.time))

    def on_every_five_second(self, sender, args: TickerEventArgs) -> None:
        if args.time.second % 5 == 0:
            self.console.write_line(format_long_time(args.time))

    def on_tick(self, time: _dt.time) -> None:
        self.ticked.invoke(self, TickerEventArgs(time))


class TickerBackgroundService(BackgroundService):
    """Calls TickerService.on_tick with the wall-clock time every interval."""

    name = "ticker-service"

    def __init__(
        self,
        ticker_service: TickerService,
        *,
        interval: float = DEFAULT_INTERVAL,
        policy: FailurePolicy | str = FailurePolicy.PROPAGATE,
        max_ticks: Optional[int] = None,
        now: Callable[[], _dt.datetime] = _dt.datetime.now,
    ):
        self.ticker_service = ticker_service
        self.max_ticks = max_ticks
        self.ticker = Ticker(
            self.ticker_service.on_tick,
            interval=interval,
            policy=policy,
            now=now,
            notification_factory=lambda when: when.time().replace(microsecond=0),
            name="ticker.service",
        )

    async def execute(self, stop: asyncio.Event) -> None:
        await self.ticker.run(stop, max_ticks=self.max_ticks)
