"""Worker for the AFD import pipeline.

Connects to Temporal, listens for tasks and executes workflows/activities.

Each durable queue is its own task queue with its own worker:
- afd-import: AfdImportWorkflow and the import activities (RHiD, storage, ERP)
- afd-notification: NotificationWorkflow and the notification activity

Run with --queue <name> to specify which queue to poll.
Run with --all to poll all queues (for local development).
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporal_client import get_temporal_client
from activities.import_afd import (
    lookup_device,
    download_and_save_afd,
    trigger_erp_import,
    correlate_erp_job,
)
from activities.notify import process_notification
from afd_import.services import get_services
from core.observability.logging import configure_logging, get_logger
from core.workflow.base import IMPORT_QUEUE, NOTIFICATION_QUEUE, ALL_QUEUES
from workflows.afd_import_workflow import AfdImportWorkflow
from workflows.notification_workflow import NotificationWorkflow


logger = get_logger(__name__)

# =============================================================================
# Workflow/Activity Groupings by Task Queue
# =============================================================================

IMPORT_QUEUE_ACTIVITIES = [
    lookup_device,
    download_and_save_afd,
    trigger_erp_import,
    correlate_erp_job,
]

NOTIFICATION_QUEUE_ACTIVITIES = [
    process_notification,
]

QUEUE_REGISTRY = {
    IMPORT_QUEUE: ([AfdImportWorkflow], IMPORT_QUEUE_ACTIVITIES),
    NOTIFICATION_QUEUE: ([NotificationWorkflow], NOTIFICATION_QUEUE_ACTIVITIES),
}


def build_worker(client, task_queue: str) -> Worker:
    """Create the worker for one task queue."""
    workflows, activities = QUEUE_REGISTRY[task_queue]
    return Worker(
        client,
        task_queue=task_queue,
        workflows=workflows,
        activities=activities,
    )


async def run_worker(queue: str = None, all_queues: bool = False):
    """Start worker(s) listening on task queue(s).

    Args:
        queue: Specific queue to poll (afd-import, afd-notification)
        all_queues: If True, poll every queue (local dev mode)

    Raises:
        Exception: If connection to Temporal fails
    """
    configure_logging()
    client = None
    services = None

    try:
        client = await get_temporal_client()
        logger.info(f"Connected to Temporal: {client.namespace}")

        # Fail fast on missing configuration, before polling anything
        services = get_services()

        queues = ALL_QUEUES if all_queues else [queue or IMPORT_QUEUE]
        if NOTIFICATION_QUEUE in queues:
            services.notification_processor()

        workers = [build_worker(client, task_queue) for task_queue in queues]
        for task_queue in queues:
            workflows, activities = QUEUE_REGISTRY[task_queue]
            logger.info(f"Worker created for queue '{task_queue}':")
            logger.info(f"  - Workflows: {len(workflows)}")
            logger.info(f"  - Activities: {len(activities)}")

        logger.info("Worker(s) running... (Ctrl+C to stop)")
        await asyncio.gather(*[w.run() for w in workers])

    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        raise
    finally:
        if services is not None:
            await services.close()


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="AFD Import Temporal Worker")
    parser.add_argument(
        "--queue", "-q",
        choices=ALL_QUEUES,
        default=IMPORT_QUEUE,
        help="Task queue to poll (default: afd-import)"
    )
    parser.add_argument(
        "--all", "-a",
        action="store_true",
        dest="all_queues",
        help="Poll all queues (local development mode)"
    )

    args = parser.parse_args()
    asyncio.run(run_worker(queue=args.queue, all_queues=args.all_queues))


if __name__ == "__main__":
    main()
