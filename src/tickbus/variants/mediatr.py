# src/tickbus/variants/mediatr.py
from __future__ import annotations

import asyncio
import datetime as _dt
import uuid
from typing import Callable, Optional

from tickbus.console import Console
from tickbus.core.clock import DEFAULT_INTERVAL, Ticker
from tickbus.core.contracts import FailurePolicy, TimedNotification, format_long_time
from tickbus.core.mediator import Mediator
from tickbus.host import BackgroundService


class TransientGuidService:
    """Holds one random identifier, chosen when the service is built."""

    def __init__(self):
        self.guid = uuid.uuid4()


class EverySecondHandler:
    """Prints the identifier of the guid service it was built with."""

    def __init__(self, guid_service: TransientGuidService, console: Console):
        self._guid_service = guid_service
        self._console = console

    @property
    def guid(self) -> uuid.UUID:
        return self._guid_service.guid

    async def handle(self, notification: TimedNotification) -> None:
        self._console.write_line(self._guid_service.guid)


class EveryFiveSecondsHandler:
    def __init__(self, console: Console):
        self._console = console

    async def handle(self, notification: TimedNotification) -> None:
        if notification.second % 5 == 0:
            self._console.write_line(format_long_time(notification.time))


class EverySecondTimeHandler:
    def __init__(self, console: Console):
        self._console = console

    async def handle(self, notification: TimedNotification) -> None:
        self._console.write_line(format_long_time(notification.time))


def build_mediator(
    console: Optional[Console] = None,
    *,
    policy: FailurePolicy | str = FailurePolicy.PROPAGATE,
    with_time_handler: bool = False,
) -> Mediator:
    """Wire the guid and five-second handlers (and optionally the time printer)."""
    mediator = Mediator(policy=policy)
    mediator.services.add_instance(Console, console or Console())
    mediator.services.add_transient(TransientGuidService)
    mediator.add_notification_handler(TimedNotification, EverySecondHandler)
    mediator.add_notification_handler(TimedNotification, EveryFiveSecondsHandler)
    if with_time_handler:
        mediator.add_notification_handler(TimedNotification, EverySecondTimeHandler)
    return mediator


class MediatorTickerService(BackgroundService):
    """Publishes a TimedNotification through the mediator every interval."""

    name = "ticker-mediator"

    def __init__(
        self,
        mediator: Mediator,
        *,
        interval: float = DEFAULT_INTERVAL,
        policy: FailurePolicy | str = FailurePolicy.PROPAGATE,
        max_ticks: Optional[int] = None,
        now: Callable[[], _dt.datetime] = _dt.datetime.now,
    ):
        self.mediator = mediator
        self.max_ticks = max_ticks
        self.ticker = Ticker(mediator.publish, interval=interval, policy=policy, now=now, name="ticker.mediator")

    async def execute(self, stop: asyncio.Event) -> None:
        await self.ticker.run(stop, max_ticks=self.max_ticks)
