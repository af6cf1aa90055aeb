"""Enqueue the periodic AFD import routine on Temporal.

Starts one AfdImportWorkflow per mapped device (two for mirrored companies)
for the given reference date. Jobs already open for the same device, company
and day are left alone.
"""

import asyncio
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporal_client import get_temporal_client
from afd_import.naming import parse_reference_date
from afd_import.scheduler import RoutineScheduler
from core.config import Settings
from core.mapping.equipment import EquipmentCatalog
from core.observability.logging import configure_logging, get_logger
from core.workflow.temporal_bus import TemporalMessageBus


logger = get_logger(__name__)


async def enqueue_routine(reference_date: Optional[date] = None) -> dict:
    """Run one routine tick against Temporal and return its summary."""
    client = await get_temporal_client()
    logger.info(f"Connected to Temporal: {client.namespace}")

    settings = Settings.from_env()
    scheduler = RoutineScheduler(
        TemporalMessageBus(client),
        EquipmentCatalog(),
        settle_delay_seconds=settings.settle_delay_seconds,
    )
    tick = await scheduler.tick(reference_date)
    return tick.to_dict()


def main():
    """Entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Enqueue the AFD import routine")
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Reference date YYYY-MM-DD (default: today, UTC)"
    )
    args = parser.parse_args()
    configure_logging()

    try:
        result = asyncio.run(enqueue_routine(parse_reference_date(args.date)))
        print("\n=== ROUTINE ===")
        for key, value in result.items():
            print(f"  {key}: {value}")
        print("===============\n")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
