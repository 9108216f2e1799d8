import asyncio
import os

from tickbus.core import log
from tickbus.core.metrics import emit, start_exporter, stop_exporter
from tickbus.host import Host
from tickbus.variants.mediatr import MediatorTickerService, build_mediator


async def main():
    os.environ.setdefault("LOG_LEVEL", "INFO")
    os.environ.setdefault("METRICS_INTERVAL", "5.0")
    log.setup()
    lg = log.get("demo.mediatr")

    start_exporter(interval_sec=float(os.getenv("METRICS_INTERVAL", "5.0")))

    # guid + five-second handlers plus the plain time printer
    mediator = build_mediator(with_time_handler=True, policy=os.getenv("POLICY", "propagate"))
    seconds = float(os.getenv("DEMO_SECONDS", "12"))
    host = Host([MediatorTickerService(mediator, max_ticks=int(seconds))])

    lg.info("demo start: ~%.0fs, Ctrl-C to stop early", seconds)
    try:
        await host.run()
    finally:
        emit(lg)
        stop_exporter()


if __name__ == "__main__":
    asyncio.run(main())
