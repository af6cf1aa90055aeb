"""Temporal workflows on a time-skipping test server with stub activities."""

import uuid
from datetime import timedelta

import pytest
from temporalio import activity
from temporalio.api.enums.v1 import EventType
from temporalio.client import WorkflowFailureError
from temporalio.common import RetryPolicy
from temporalio.exceptions import ApplicationError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from activities.import_afd import (
    CorrelateInput,
    CorrelateOutput,
    DeviceLookupOutput,
    ImportJobInput,
    SaveAfdInput,
    SaveAfdOutput,
    TriggerImportInput,
)
from activities.notify import NotificationInput
from conftest import DEVICE_6
from core.models.attendance import SUCCESS_MESSAGE
from core.workflow.base import IMPORT_QUEUE_POLICY
from workflows import AfdImportWorkflow, NotificationWorkflow


ARTIFACT_URL = "https://s3/afd/01-03-2024%20REP%20Portaria.txt"


class StubActivities:
    """Activities registered under the production names, recording calls."""

    def __init__(self):
        self.calls = []
        self.download_error = None
        self.trigger_error = None
        self.notification_error = None

    @activity.defn(name="lookup_device")
    async def lookup_device(self, input: ImportJobInput) -> DeviceLookupOutput:
        self.calls.append("lookup_device")
        return DeviceLookupOutput(device_id=input.equipment["id"], name="REP Portaria", status="OK")

    @activity.defn(name="download_and_save_afd")
    async def download_and_save_afd(self, input: SaveAfdInput) -> SaveAfdOutput:
        self.calls.append("download_and_save_afd")
        if self.download_error:
            raise self.download_error
        return SaveAfdOutput(bucket="afd", key="01-03-2024 REP Portaria.txt", location_url=ARTIFACT_URL)

    @activity.defn(name="trigger_erp_import")
    async def trigger_erp_import(self, input: TriggerImportInput) -> str:
        self.calls.append("trigger_erp_import")
        if self.trigger_error:
            raise self.trigger_error
        return "1"

    @activity.defn(name="correlate_erp_job")
    async def correlate_erp_job(self, input: CorrelateInput) -> CorrelateOutput:
        self.calls.append("correlate_erp_job")
        return CorrelateOutput(registered=True, job_id=41, status=1)

    @activity.defn(name="process_notification")
    async def process_notification(self, input: NotificationInput) -> str:
        self.calls.append("process_notification")
        if self.notification_error:
            raise self.notification_error
        return "sent"

    def all(self):
        return [
            self.lookup_device,
            self.download_and_save_afd,
            self.trigger_erp_import,
            self.correlate_erp_job,
            self.process_notification,
        ]


@pytest.fixture
async def env():
    async with await WorkflowEnvironment.start_time_skipping() as env:
        yield env


@pytest.fixture
def stubs():
    return StubActivities()


@pytest.fixture
async def worker(env, stubs):
    async with Worker(
        env.client,
        task_queue=f"test-{uuid.uuid4()}",
        workflows=[AfdImportWorkflow, NotificationWorkflow],
        activities=stubs.all(),
    ) as worker:
        yield worker


def import_input(settle_delay_seconds=5.0) -> ImportJobInput:
    return ImportJobInput(
        equipment=DEVICE_6.model_dump(),
        reference_date="2024-03-01",
        settle_delay_seconds=settle_delay_seconds,
    )


async def start_import(env, worker, retry_policy=None, settle_delay_seconds=5.0):
    return await env.client.start_workflow(
        AfdImportWorkflow.run,
        import_input(settle_delay_seconds),
        id=f"importacao-6-1-{uuid.uuid4()}",
        task_queue=worker.task_queue,
        retry_policy=retry_policy,
    )


async def timeline(handle):
    """Scheduled activities and started timers, in history order."""
    history = await handle.fetch_history()
    steps = []
    for event in history.events:
        if event.event_type == EventType.EVENT_TYPE_ACTIVITY_TASK_SCHEDULED:
            steps.append(event.activity_task_scheduled_event_attributes.activity_type.name)
        elif event.event_type == EventType.EVENT_TYPE_TIMER_STARTED:
            timeout = event.timer_started_event_attributes.start_to_fire_timeout.ToTimedelta()
            steps.append(f"timer {timeout.total_seconds():g}s")
    return steps


class TestAfdImportWorkflow:
    async def test_successful_run_returns_processing_result(self, env, worker, stubs):
        handle = await start_import(env, worker)

        result = await handle.result()

        assert result["equipment_id"] == 6
        assert result["equipment_name"] == "REP Portaria"
        assert result["success"] is True
        assert result["stage"] == "complete"
        assert result["message"] == SUCCESS_MESSAGE
        assert result["artifact_url"] == ARTIFACT_URL
        assert result["processed_at"]
        assert await handle.query(AfdImportWorkflow.current_stage) == "complete"

    async def test_settle_timers_surround_the_trigger(self, env, worker, stubs):
        handle = await start_import(env, worker, settle_delay_seconds=7.0)
        await handle.result()

        assert await timeline(handle) == [
            "lookup_device",
            "download_and_save_afd",
            "timer 7s",
            "trigger_erp_import",
            "timer 7s",
            "correlate_erp_job",
        ]

    async def test_rejected_trigger_is_correlated_and_not_retried(self, env, worker, stubs):
        stubs.trigger_error = ApplicationError(
            'TOTVS returned "0"', "import", type="ImportRejectedError", non_retryable=True,
        )
        handle = await start_import(env, worker, retry_policy=IMPORT_QUEUE_POLICY.to_retry_policy())

        with pytest.raises(WorkflowFailureError) as exc_info:
            await handle.result()

        error = exc_info.value.cause
        assert isinstance(error, ApplicationError)
        assert error.type == "ImportRejectedError"
        assert error.non_retryable
        assert stubs.calls == [
            "lookup_device",
            "download_and_save_afd",
            "trigger_erp_import",
            "correlate_erp_job",
        ]

        stage, result = error.details
        assert stage == "import"
        assert result["success"] is False
        assert result["stage"] == "import"
        assert result["message"] == 'TOTVS returned "0"'
        assert result["artifact_url"] == ARTIFACT_URL
        assert result["processed_at"]

    async def test_retryable_failure_reruns_the_job(self, env, worker, stubs):
        stubs.download_error = ApplicationError("502 Bad Gateway", "download", type="DownloadError")
        policy = RetryPolicy(initial_interval=timedelta(seconds=1), maximum_attempts=2)
        handle = await start_import(env, worker, retry_policy=policy)

        with pytest.raises(WorkflowFailureError) as exc_info:
            await handle.result()

        error = exc_info.value.cause
        assert error.type == "DownloadError"
        assert not error.non_retryable
        assert stubs.calls.count("download_and_save_afd") == 2
        assert "trigger_erp_import" not in stubs.calls
        assert "correlate_erp_job" not in stubs.calls

    async def test_save_failure_reports_save_stage(self, env, worker, stubs):
        stubs.download_error = ApplicationError("Failed to archive AFD: S3 down", "save", type="ArchiveError")
        handle = await start_import(env, worker)

        with pytest.raises(WorkflowFailureError) as exc_info:
            await handle.result()

        _, result = exc_info.value.cause.details
        assert result["stage"] == "save"
        assert result["artifact_url"] is None


class TestNotificationWorkflow:
    async def test_returns_outcome(self, env, worker, stubs):
        outcome = await env.client.execute_workflow(
            NotificationWorkflow.run,
            NotificationInput(job_id=41, last_status=1),
            id=f"notificacao-job-{uuid.uuid4()}",
            task_queue=worker.task_queue,
        )

        assert outcome == "sent"
        assert stubs.calls == ["process_notification"]

    async def test_failure_keeps_error_type(self, env, worker, stubs):
        stubs.notification_error = ApplicationError(
            "No import record for ERP job 41", "notify", type="ImportRecordNotFoundError",
        )

        with pytest.raises(WorkflowFailureError) as exc_info:
            await env.client.execute_workflow(
                NotificationWorkflow.run,
                NotificationInput(job_id=41),
                id=f"notificacao-job-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert exc_info.value.cause.type == "ImportRecordNotFoundError"
        assert not exc_info.value.cause.non_retryable
