"""In-process queue consumer for local runs without a Temporal server.

Drains an InMemoryMessageBus with the same handlers the Temporal
activities use. Retries wait for the bus backoff.
"""

import asyncio
from typing import Any, Dict

from afd_import.pipeline import AfdImportPipeline
from core.models.attendance import ImportJob
from core.models.records import NotificationJob
from core.observability.logging import get_logger
from core.workflow.base import IMPORT_QUEUE, NOTIFICATION_QUEUE
from core.workflow.bus import InMemoryMessageBus
from notifications.processor import NotificationProcessor

logger = get_logger(__name__)


class LocalQueueRunner:
    """Consumes both queues of an InMemoryMessageBus.

    Args:
        bus: Bus the producers enqueue into
        pipeline: Import pipeline used for afd-import jobs
        notifications: Processor used for afd-notification jobs
        poll_interval_seconds: Pause between drains when nothing is ready
    """

    def __init__(
        self,
        bus: InMemoryMessageBus,
        pipeline: AfdImportPipeline,
        notifications: NotificationProcessor,
        poll_interval_seconds: float = 1.0,
    ):
        self.bus = bus
        self.pipeline = pipeline
        self.notifications = notifications
        self.poll_interval_seconds = poll_interval_seconds

    async def handle_import(self, payload: Dict[str, Any]):
        await self.pipeline.process_job(ImportJob.model_validate(payload))

    async def handle_notification(self, payload: Dict[str, Any]):
        await self.notifications.process(NotificationJob.model_validate(payload))

    async def run_once(self) -> int:
        """Process every delivery ready now on both queues."""
        processed = await self.bus.drain(IMPORT_QUEUE, self.handle_import)
        processed += await self.bus.drain(NOTIFICATION_QUEUE, self.handle_notification)
        return processed

    async def run_forever(self):
        logger.info("Local queue runner started")
        while True:
            processed = await self.run_once()
            if not processed:
                await asyncio.sleep(self.poll_interval_seconds)
