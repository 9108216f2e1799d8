import asyncio
import logging
import signal

import pytest

from tickbus.host import BackgroundService, Host


class Waiter(BackgroundService):
    name = "waiter"

    def __init__(self):
        self.stopped = False

    async def execute(self, stop):
        await stop.wait()
        self.stopped = True


class Crasher(BackgroundService):
    name = "crasher"

    async def execute(self, stop):
        await asyncio.sleep(0.01)
        raise RuntimeError("service crashed")


class Quick(BackgroundService):
    async def execute(self, stop):
        return None


@pytest.mark.asyncio
async def test_host_returns_when_all_services_finish():
    await asyncio.wait_for(Host([Quick(), Quick()], handle_signals=False).run(), timeout=1.0)


@pytest.mark.asyncio
async def test_host_stop_releases_waiting_services():
    w = Waiter()
    host = Host([w], handle_signals=False)
    task = asyncio.create_task(host.run())
    await asyncio.sleep(0.01)
    host.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert w.stopped


@pytest.mark.asyncio
async def test_failing_service_stops_host_and_surfaces_error():
    w = Waiter()
    host = Host(handle_signals=False).add(w).add(Crasher())
    with pytest.raises(RuntimeError, match="service crashed"):
        await asyncio.wait_for(host.run(), timeout=1.0)
    assert host.stop_event.is_set()


@pytest.mark.asyncio
async def test_signal_handlers_are_installed_and_removed():
    host = Host([Quick()])
    await host.run()
    loop = asyncio.get_running_loop()
    assert loop.remove_signal_handler(signal.SIGTERM) is False


@pytest.mark.asyncio
async def test_failing_service_is_logged_as_error_once(caplog):
    host = Host([Crasher()], handle_signals=False)
    with pytest.raises(RuntimeError):
        await asyncio.wait_for(host.run(), timeout=1.0)
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert [r.name for r in errors] == ["tickbus.host"]
