"""Activity definitions module."""

from activities.import_afd import (
    lookup_device,
    download_and_save_afd,
    trigger_erp_import,
    correlate_erp_job,
    ImportJobInput,
    DeviceLookupOutput,
    SaveAfdInput,
    SaveAfdOutput,
    TriggerImportInput,
    CorrelateInput,
    CorrelateOutput,
)
from activities.notify import process_notification, NotificationInput

__all__ = [
    # Import activities
    "lookup_device",
    "download_and_save_afd",
    "trigger_erp_import",
    "correlate_erp_job",
    "ImportJobInput",
    "DeviceLookupOutput",
    "SaveAfdInput",
    "SaveAfdOutput",
    "TriggerImportInput",
    "CorrelateInput",
    "CorrelateOutput",
    # Notification activity
    "process_notification",
    "NotificationInput",
]
