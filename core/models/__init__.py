"""Core data models for the AFD import pipeline."""

from core.models.attendance import (
    DEVICE_STATUS_OK,
    ProcessingStage,
    EquipmentMapping,
    RemoteDevice,
    ImportJob,
    ProcessingResult,
    BatchReport,
    day_epoch,
    import_job_key,
)
from core.models.records import (
    ErpJobStatus,
    ErpJob,
    ErpJobLog,
    ImportRecord,
    ImportLogRecord,
    NotificationJob,
    PENDING_NOTIFICATION_STATUSES,
    notification_job_key,
    requires_notification,
    status_text,
)
from core.models.refs import StoredObject

__all__ = [
    # Attendance
    "DEVICE_STATUS_OK",
    "ProcessingStage",
    "EquipmentMapping",
    "RemoteDevice",
    "ImportJob",
    "ProcessingResult",
    "BatchReport",
    "day_epoch",
    "import_job_key",
    # Records
    "ErpJobStatus",
    "ErpJob",
    "ErpJobLog",
    "ImportRecord",
    "ImportLogRecord",
    "NotificationJob",
    "PENDING_NOTIFICATION_STATUSES",
    "notification_job_key",
    "requires_notification",
    "status_text",
    # Refs
    "StoredObject",
]
