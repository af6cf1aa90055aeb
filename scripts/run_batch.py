"""Run the synchronous AFD batch import from the command line.

Same operation as POST /dp-rh/importacao-batidas/processar, without the API.
"""

import asyncio
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from afd_import.naming import parse_reference_date
from afd_import.services import build_services
from core.models.attendance import BatchReport
from core.observability.logging import configure_logging


async def run_batch(device_ids=None, reference_date=None) -> BatchReport:
    services = build_services()
    try:
        return await services.batch().run(device_ids=device_ids, reference_date=reference_date)
    finally:
        await services.close()


def main():
    """Entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run the AFD batch import now")
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Reference date YYYY-MM-DD (default: today, UTC)"
    )
    parser.add_argument(
        "--device",
        type=int,
        action="append",
        dest="devices",
        help="Device id to import (repeatable; default: every mapped device)"
    )
    args = parser.parse_args()
    configure_logging()

    try:
        report = asyncio.run(run_batch(args.devices, parse_reference_date(args.date)))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"\n=== BATCH {report.reference_date} ===")
    print(f"  total: {report.total}  successes: {report.successes}  failures: {report.failures}")
    for result in report.results:
        mark = "OK  " if result.success else "FAIL"
        print(f"  [{mark}] {result.equipment_id} {result.equipment_name} ({result.stage.value}): {result.message}")
    print("=========================\n")
    return 0 if report.failures == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
