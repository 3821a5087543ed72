"""
Reliability service entrypoint.
Runs the scheduled fetch-reconcile-persist cycle; degrades gracefully on source failure.
"""
from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path

# Ensure backend root is on path when run as python -m reliability.main
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from reliability.config import get_reliability_settings
from reliability.cycle import build_adapters, run_cycle_loop
from reliability.orchestrator import FixtureIngestor
from reliability.repository import FixtureRepository

logger = get_logger(__name__)


async def main() -> None:
    setup_logging("reliability")
    settings = get_settings()
    reliability_settings = get_reliability_settings()

    db = DatabaseManager(settings)
    try:
        await db.connect()
        await db.create_schema()
    except Exception as e:
        logger.exception("startup_connect_failed", error=str(e))
        raise

    start_metrics_server()
    ingestor = await FixtureIngestor.create(FixtureRepository(db), reliability_settings)
    adapters = build_adapters(reliability_settings)
    loop_task = asyncio.create_task(run_cycle_loop(ingestor, adapters, reliability_settings))

    shutdown = asyncio.Event()

    def on_signal() -> None:
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            asyncio.get_running_loop().add_signal_handler(sig, on_signal)
        except NotImplementedError:
            pass

    logger.info(
        "reliability_started",
        sources=[a.name for a in adapters],
        days_ahead=reliability_settings.days_ahead,
    )
    await shutdown.wait()

    loop_task.cancel()
    try:
        await loop_task
    except asyncio.CancelledError:
        pass

    for adapter in adapters:
        await adapter.close()
    await db.disconnect()
    logger.info("reliability_stopped")


if __name__ == "__main__":
    asyncio.run(main())
