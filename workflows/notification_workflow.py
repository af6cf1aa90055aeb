"""
Notification Workflow

One execution per ERP job check; the workflow id is
`notificacao-job-<jobId>`. Retries (3 attempts, 10s exponential backoff)
come from the RetryPolicy the execution was started with.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from activities.notify import NotificationInput, process_notification
    from core.workflow.base import SINGLE_ATTEMPT, as_workflow_failure


@workflow.defn(name="NotificationWorkflow")
class NotificationWorkflow:
    @workflow.run
    async def run(self, input: NotificationInput) -> str:
        workflow.logger.info(f"Processing notification for ERP job {input.job_id}")
        try:
            return await workflow.execute_activity(
                process_notification,
                input,
                start_to_close_timeout=timedelta(minutes=2),
                retry_policy=SINGLE_ATTEMPT,
            )
        except ActivityError as e:
            workflow.logger.error(f"Notification for ERP job {input.job_id} failed: {e.cause or e}")
            raise as_workflow_failure(e) from e
