"""
Notification worker logic

For one ERP job: read its live status, keep the local record in sync and,
once the job reaches a status that needs the operator's attention, archive
its execution logs and post one chat message.

Delivery is at-least-once: the notified flag (and its audit row) is written
after the message is delivered, so a crash in between resends it.
"""

from enum import Enum
from typing import List

from connectors.chat.webhook import ChatWebhookClient
from connectors.erp_base import ErpJobReader
from core.errors import ImportRecordNotFoundError, LogHarvestError
from core.models.records import ImportLogRecord, NotificationJob, requires_notification
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import record_notification
from core.storage.artifacts import ObjectStore
from afd_import.naming import log_archive_key
from notifications.messages import compose_message
from storage.repository import ImportRepository

logger = get_logger(__name__)


class NotificationOutcome(str, Enum):
    NO_STATUS = "no_status"
    NOT_NOTIFIABLE = "not_notifiable"
    ALREADY_NOTIFIED = "already_notified"
    SENT = "sent"


class NotificationProcessor:
    """Processes NotificationJobs.

    Args:
        imports: Local import records
        erp_jobs: ERP job read model (live status and execution logs)
        store: Object store for harvested logs
        chat: Chat webhook client
        archive_bucket: Bucket harvested logs are written to
    """

    def __init__(
        self,
        imports: ImportRepository,
        erp_jobs: ErpJobReader,
        store: ObjectStore,
        chat: ChatWebhookClient,
        archive_bucket: str = "afd-archive",
    ):
        self.imports = imports
        self.erp_jobs = erp_jobs
        self.store = store
        self.chat = chat
        self.archive_bucket = archive_bucket

    async def process(self, job: NotificationJob) -> NotificationOutcome:
        """Check one ERP job and notify if needed.

        Raises:
            ImportRecordNotFoundError: The local record is missing
            NotificationDeliveryError: The chat webhook failed
        """
        with with_correlation(erp_job_id=job.job_id, job_key=job.key):
            status = self.erp_jobs.get_status(job.job_id)
            if status is None:
                logger.warning(f"No ERP status found for job {job.job_id}, skipping")
                record_notification("skipped")
                return NotificationOutcome.NO_STATUS

            record = self.imports.get_import_record(job.job_id)
            if record is None:
                raise ImportRecordNotFoundError(f"Import record for job {job.job_id} not found")

            logger.info(f"Job {job.job_id} status: old={job.last_status}, new={status}")
            if status != job.last_status or status != record.status:
                if not self.imports.update_status(job.job_id, status):
                    raise ImportRecordNotFoundError(f"Import record for job {job.job_id} not found")

            if not requires_notification(status):
                logger.info(f"Status {status} does not require a notification")
                record_notification("skipped")
                return NotificationOutcome.NOT_NOTIFIABLE

            if record.notified:
                logger.info(f"Job {job.job_id} already notified")
                record_notification("skipped")
                return NotificationOutcome.ALREADY_NOTIFIED

            logs = await self.harvest_logs(job.job_id)
            message = compose_message(record, status, logs)

            try:
                await self.chat.send(message)
            except Exception:
                record_notification("failed")
                raise
            logger.info(f"Notification for job {job.job_id} sent")

            self.imports.mark_notified(job.job_id, status)
            record_notification("sent")
            return NotificationOutcome.SENT

    async def harvest_logs(self, job_id: int) -> List[ImportLogRecord]:
        """Archive ERP execution logs not archived yet. Never raises.

        Returns:
            Every archived log of the job, previously archived ones included
        """
        try:
            archived = set(self.imports.list_archived_log_names(job_id))
            for log in self.erp_jobs.list_logs(job_id):
                if log.log_name in archived:
                    continue
                stored = await self.store.put(
                    self.archive_bucket,
                    log_archive_key(job_id, log.log_name),
                    log.content,
                    content_type="text/plain",
                    overwrite=False,
                )
                self.imports.insert_import_log(ImportLogRecord(
                    job_id=job_id,
                    log_name=log.log_name,
                    location_url=stored.location_url,
                ))
                archived.add(log.log_name)
        except Exception as e:
            error = LogHarvestError(f"Failed to archive logs of job {job_id}: {e}")
            logger.error(str(error), exc_info=True)

        try:
            return self.imports.list_import_logs(job_id)
        except Exception as e:
            logger.error(f"Failed to list archived logs of job {job_id}: {e}")
            return []
