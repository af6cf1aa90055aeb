"""Notification activity."""

from dataclasses import dataclass
from typing import Optional

from temporalio import activity

from activities.import_afd import to_application_error
from afd_import.services import get_services
from core.errors import PipelineError
from core.models.records import NotificationJob
from core.observability.logging import with_correlation


@dataclass
class NotificationInput:
    """Queue payload of a notification job.

    Attributes:
        job_id: ERP job id
        last_status: Status known when the job was queued
    """
    job_id: int
    last_status: Optional[int] = None


@activity.defn
async def process_notification(input: NotificationInput) -> str:
    """Sync the ERP status of one job and notify the operators if needed.

    Returns:
        The NotificationOutcome value
    """
    processor = get_services().notification_processor()
    info = activity.info()

    with with_correlation(workflow_id=info.workflow_id, activity_name=info.activity_type, task_queue=info.task_queue):
        try:
            outcome = await processor.process(NotificationJob(job_id=input.job_id, last_status=input.last_status))
        except PipelineError as e:
            raise to_application_error(e) from e

    activity.logger.info(f"Notification job {input.job_id}: {outcome.value}")
    return outcome.value
