"""Attendance import domain models.

These models describe terminals, import jobs and per-device processing results.
They are independent of the RHiD and TOTVS wire formats, which live in
/connectors/.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


DEVICE_STATUS_OK = "OK"


class ProcessingStage(str, Enum):
    """Furthest stage reached by a per-device import."""
    LOOKUP = "lookup"
    DOWNLOAD = "download"
    SAVE = "save"
    IMPORT = "import"
    COMPLETE = "complete"


class EquipmentMapping(BaseModel):
    """Organizational coordinates of a biometric terminal.

    Attributes:
        id: Terminal id in the RHiD catalog
        company_code: ERP company (coligada) the punches belong to
        branch_code: ERP branch (filial)
        terminal_code: ERP collection terminal code
    """
    model_config = ConfigDict(frozen=True)

    id: int
    company_code: int
    branch_code: int
    terminal_code: int

    def with_company(self, company_code: int) -> "EquipmentMapping":
        """Copy of this mapping booked against another company."""
        return self.model_copy(update={"company_code": company_code})


class RemoteDevice(BaseModel):
    """A terminal as reported by the terminal-management API."""
    id: int
    name: str
    status: str

    @property
    def is_healthy(self) -> bool:
        return self.status == DEVICE_STATUS_OK


def day_epoch(reference_date: date) -> int:
    """Seconds since the Unix epoch at UTC midnight of `reference_date`."""
    midnight = datetime(reference_date.year, reference_date.month, reference_date.day, tzinfo=timezone.utc)
    return int(midnight.timestamp())


def import_job_key(device_id: int, company_code: int, reference_date: date) -> str:
    """Idempotency key shared by every enqueue of the same import."""
    return f"importacao-{device_id}-{company_code}-{day_epoch(reference_date)}"


class ImportJob(BaseModel):
    """Queue message asking for one device/company/day import.

    `settle_delay_seconds` travels with the message so the worker waits the
    delay configured on the producer side. It is not part of the key.
    """
    equipment: EquipmentMapping
    reference_date: date
    settle_delay_seconds: float = 5.0

    @property
    def key(self) -> str:
        return import_job_key(self.equipment.id, self.equipment.company_code, self.reference_date)


SUCCESS_MESSAGE = "Processamento concluído com sucesso"


class ProcessingResult(BaseModel):
    """Outcome of one per-device pipeline run."""
    equipment_id: int
    equipment_name: str
    success: bool
    stage: ProcessingStage
    message: str
    artifact_url: Optional[str] = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BatchReport(BaseModel):
    """Aggregated outcome of a synchronous batch run."""
    reference_date: date
    total: int
    successes: int
    failures: int
    results: List[ProcessingResult] = Field(default_factory=list)
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_results(cls, reference_date: date, results: List[ProcessingResult]) -> "BatchReport":
        successes = sum(1 for r in results if r.success)
        return cls(
            reference_date=reference_date,
            total=len(results),
            successes=successes,
            failures=len(results) - successes,
            results=results,
        )
