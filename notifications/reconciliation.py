"""Status reconciliation: queue a notification check for every pending record."""

from dataclasses import dataclass, field
from typing import List

from core.models.records import NotificationJob
from core.observability.logging import get_logger
from core.workflow.base import NOTIFICATION_QUEUE
from core.workflow.bus import MessageBus
from storage.repository import ImportRepository

logger = get_logger(__name__)


@dataclass
class ReconciliationTick:
    """Summary of one reconciliation pass."""
    found: int = 0
    enqueued: List[str] = field(default_factory=list)
    coalesced: List[str] = field(default_factory=list)


class StatusReconciler:
    """Selects un-notified records whose ERP job may still change state."""

    def __init__(self, imports: ImportRepository, bus: MessageBus):
        self.imports = imports
        self.bus = bus

    async def tick(self) -> ReconciliationTick:
        records = self.imports.list_pending_notifications()
        tick = ReconciliationTick(found=len(records))
        logger.info(f"Found {len(records)} import record(s) to check")

        for record in records:
            job = NotificationJob(job_id=record.job_id, last_status=record.status)
            if await self.bus.enqueue(NOTIFICATION_QUEUE, job.key, job.model_dump(mode="json")):
                tick.enqueued.append(job.key)
            else:
                tick.coalesced.append(job.key)

        return tick
