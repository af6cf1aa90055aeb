"""Periodic producers: the routine scheduler and the status reconciler.

Both run as interval loops in one process. A failed tick is logged and the
loop carries on at the next interval.

Modes:
- default: enqueue into Temporal (workers consume with workers/worker.py)
- --local: enqueue into an in-memory bus consumed in this same process
- --once: run a single tick of each producer and exit
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from afd_import.scheduler import RoutineScheduler
from afd_import.services import get_services
from core.observability.logging import configure_logging, get_logger
from core.workflow.bus import InMemoryMessageBus, MessageBus
from notifications.reconciliation import StatusReconciler
from workers.local_runner import LocalQueueRunner

logger = get_logger(__name__)


async def run_periodically(name: str, interval_seconds: float, tick: Callable[[], Awaitable]):
    """Call `tick` every `interval_seconds`, surviving failed ticks."""
    logger.info(f"Starting {name} loop (every {interval_seconds:g}s)")
    while True:
        try:
            await tick()
        except Exception as e:
            logger.error(f"{name} tick failed: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)


async def build_bus(local: bool) -> MessageBus:
    if local:
        return InMemoryMessageBus()

    from temporal_client import get_temporal_client
    from core.workflow.temporal_bus import TemporalMessageBus

    client = await get_temporal_client()
    logger.info(f"Connected to Temporal: {client.namespace}")
    return TemporalMessageBus(client)


async def run_producers(local: bool = False, once: bool = False):
    configure_logging()
    services = get_services()

    try:
        bus = await build_bus(local)
        scheduler = RoutineScheduler(
            bus, services.catalog, settle_delay_seconds=services.settings.settle_delay_seconds,
        )
        reconciler = StatusReconciler(services.imports, bus)

        runner = None
        if local:
            runner = LocalQueueRunner(bus, services.pipeline, services.notification_processor())

        if once:
            routine = await scheduler.tick()
            reconciliation = await reconciler.tick()
            if runner is not None:
                await runner.run_once()
            logger.info(
                f"Single pass done: {len(routine.enqueued)} import(s), "
                f"{len(reconciliation.enqueued)} notification check(s) queued"
            )
            return

        loops = [
            run_periodically("routine", services.settings.routine_interval_seconds, scheduler.tick),
            run_periodically("reconciliation", services.settings.reconcile_interval_seconds, reconciler.tick),
        ]
        if runner is not None:
            loops.append(runner.run_forever())
        await asyncio.gather(*loops)
    finally:
        await services.close()


def main():
    parser = argparse.ArgumentParser(description="AFD import producers (routine + reconciliation)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Use an in-process queue instead of Temporal"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one tick of each producer and exit"
    )
    args = parser.parse_args()

    try:
        asyncio.run(run_producers(local=args.local, once=args.once))
    except KeyboardInterrupt:
        logger.info("Producers stopped")


if __name__ == "__main__":
    main()
