"""Routine scheduler: turns the equipment catalog into queued import jobs."""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from afd_import.naming import today_utc
from core.mapping.equipment import EquipmentCatalog
from core.models.attendance import ImportJob
from core.observability.logging import get_logger
from core.workflow.base import IMPORT_QUEUE
from core.workflow.bus import MessageBus

logger = get_logger(__name__)


@dataclass
class RoutineTick:
    """Summary of one scheduling pass."""
    reference_date: date
    enqueued: List[str] = field(default_factory=list)
    coalesced: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.enqueued) + len(self.coalesced)

    def to_dict(self) -> dict:
        return {
            "reference_date": self.reference_date.isoformat(),
            "enqueued": len(self.enqueued),
            "coalesced": len(self.coalesced),
            "keys": self.enqueued + self.coalesced,
        }


class RoutineScheduler:
    """Enqueues one import job per mapping, plus one per mirrored company."""

    def __init__(self, bus: MessageBus, catalog: EquipmentCatalog, settle_delay_seconds: float = 5.0):
        self.bus = bus
        self.catalog = catalog
        self.settle_delay_seconds = settle_delay_seconds

    def jobs_for(self, reference_date: date) -> List[ImportJob]:
        return [
            ImportJob(
                equipment=mapping,
                reference_date=reference_date,
                settle_delay_seconds=self.settle_delay_seconds,
            )
            for mapping in self.catalog.worklist()
        ]

    async def tick(self, reference_date: Optional[date] = None) -> RoutineTick:
        """Enqueue the worklist for `reference_date` (default: today, UTC)."""
        tick = RoutineTick(reference_date=reference_date or today_utc())

        for job in self.jobs_for(tick.reference_date):
            created = await self.bus.enqueue(IMPORT_QUEUE, job.key, job.model_dump(mode="json"))
            if created:
                logger.info(
                    f"Queued import of device {job.equipment.id} for company {job.equipment.company_code}: {job.key}"
                )
                tick.enqueued.append(job.key)
            else:
                tick.coalesced.append(job.key)

        logger.info(
            f"Routine tick for {tick.reference_date}: {len(tick.enqueued)} queued, {len(tick.coalesced)} coalesced"
        )
        return tick
