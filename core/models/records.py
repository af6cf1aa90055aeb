"""Persisted import records and ERP job read models."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class ErpJobStatus(IntEnum):
    """Execution status codes of an ERP job."""
    NOT_EXECUTED = 0
    RUNNING = 1
    FINISHED = 2
    CANCELLED = 3
    INTERRUPTED = 4
    ERROR = 5
    FINISHED_WITH_WARNINGS = 6
    SERVER_FAILURE = 7
    SUSPENDED = 8
    NO_JOBSERVER = 9


STATUS_TEXTS = {
    ErpJobStatus.NOT_EXECUTED: "O job ainda não foi executado",
    ErpJobStatus.RUNNING: "O job está em execução",
    ErpJobStatus.FINISHED: "O job terminou normalmente a sua execução",
    ErpJobStatus.CANCELLED: "A execução do job foi cancelada",
    ErpJobStatus.INTERRUPTED: "A execução do job começou e foi interrompida",
    ErpJobStatus.ERROR: "Erro na execução do job",
    ErpJobStatus.FINISHED_WITH_WARNINGS: "O job foi executado com avisos",
    ErpJobStatus.SERVER_FAILURE: (
        "Houve uma falha no servidor durante a execução do job e a mesma não terminou corretamente"
    ),
    ErpJobStatus.SUSPENDED: "A execução do job está suspensa até ele ser habilitado novamente",
    ErpJobStatus.NO_JOBSERVER: (
        "Não foi possível executar o job por não encontrar um jobserver com afinidade disponível"
    ),
}

UNKNOWN_STATUS_TEXT = "Job programado para executar, conforme data programada"

# Statuses that call for an operator notification
NOTIFY_STATUS_MIN = 3
NOTIFY_STATUS_MAX = 9

# Finished normally: never polled again and never notified
SETTLED_STATUS = ErpJobStatus.FINISHED

PENDING_NOTIFICATION_STATUSES = tuple(s.value for s in ErpJobStatus if s is not SETTLED_STATUS)


def status_text(status: int) -> str:
    """Operator-facing text for an ERP status code."""
    try:
        return STATUS_TEXTS[ErpJobStatus(status)]
    except ValueError:
        return UNKNOWN_STATUS_TEXT


def requires_notification(status: Optional[int]) -> bool:
    return status is not None and NOTIFY_STATUS_MIN <= status <= NOTIFY_STATUS_MAX


class ErpJob(BaseModel):
    """An ERP job as seen in the ERP job tables."""
    job_id: int
    status: Optional[int] = None
    created_by: str
    created_at: datetime


class ErpJobLog(BaseModel):
    """An execution log attached to an ERP job."""
    log_name: str
    content: str


class ImportRecord(BaseModel):
    """Local record tying an ERP job to the AFD import that created it."""
    job_id: int
    company_code: int
    device_name: str
    status: Optional[int] = None
    artifact_url: Optional[str] = Field(default=None, description="Primary AFD artifact location")
    archive_url: Optional[str] = Field(default=None, description="Object-store copy of the AFD feed")
    notified: bool = False
    created_by: str
    created_at: datetime


class ImportLogRecord(BaseModel):
    """An archived ERP execution log, unique per (job_id, log_name)."""
    job_id: int
    log_name: str
    location_url: str


class NotificationJob(BaseModel):
    """Queue message asking to re-check an ERP job and notify if needed."""
    job_id: int
    last_status: Optional[int] = None

    @property
    def key(self) -> str:
        return notification_job_key(self.job_id)


def notification_job_key(job_id: int) -> str:
    return f"notificacao-job-{job_id}"
