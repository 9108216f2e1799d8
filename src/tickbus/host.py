# src/tickbus/host.py
from __future__ import annotations

import asyncio
import signal
from typing import List, Optional

from tickbus.core import log

l = log.get("host")


class BackgroundService:
    """Long-running unit of work started by a Host. Override execute()."""

    name = "service"

    async def execute(self, stop: asyncio.Event) -> None:
        raise NotImplementedError


class Host:
    """
    Runs background services as asyncio tasks until the stop event is set
    (SIGINT/SIGTERM where the loop supports signal handlers) or until every
    service returns. The first service to fail stops the others and its error
    is re-raised from run().
    """

    def __init__(self, services: Optional[List[BackgroundService]] = None, *, handle_signals: bool = True):
        self.services: List[BackgroundService] = list(services or [])
        self.handle_signals = handle_signals
        self.stop_event = asyncio.Event()

    def add(self, service: BackgroundService) -> "Host":
        self.services.append(service)
        return self

    def stop(self) -> None:
        self.stop_event.set()

    def _install_signals(self, loop: asyncio.AbstractEventLoop) -> List[signal.Signals]:
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError, ValueError):
                continue
            installed.append(sig)
        return installed

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        installed = self._install_signals(loop) if self.handle_signals else []
        tasks = {
            asyncio.create_task(s.execute(self.stop_event), name=getattr(s, "name", type(s).__name__)): s
            for s in self.services
        }
        l.info("host start services=%s", [t.get_name() for t in tasks])
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
                failed = [t for t in done if not t.cancelled() and t.exception() is not None]
                if failed:
                    self.stop()
                    for t in pending:
                        t.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    err = failed[0].exception()
                    l.error("service %s failed, host stopping: %s", failed[0].get_name(), err)
                    raise err
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            l.info("host stop")
