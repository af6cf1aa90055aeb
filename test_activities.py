"""Temporal activities: payload mapping and typed failures."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from temporalio.exceptions import ApplicationError
from temporalio.testing import ActivityEnvironment

from activities.import_afd import (
    CorrelateInput,
    ImportJobInput,
    SaveAfdInput,
    TriggerImportInput,
    correlate_erp_job,
    download_and_save_afd,
    lookup_device,
    trigger_erp_import,
)
from activities.notify import NotificationInput, process_notification
from afd_import.services import set_services
from conftest import DEVICE_6, REFERENCE_DATE
from core.errors import (
    ArchiveError,
    ImportRecordNotFoundError,
    ImportRejectedError,
    UnhealthyDeviceError,
)
from core.models.attendance import RemoteDevice
from core.models.records import NotificationJob
from core.models.refs import StoredObject
from notifications.processor import NotificationOutcome


EQUIPMENT = DEVICE_6.model_dump()


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.authenticate = AsyncMock()
    pipeline.lookup = AsyncMock(return_value=RemoteDevice(id=6, name="REP Portaria", status="OK"))
    pipeline.download = AsyncMock(return_value="0000000011")
    pipeline.save = AsyncMock(return_value=StoredObject(
        bucket="afd", key="01-03-2024 REP Portaria.txt", location_url="https://s3/afd/01-03-2024%20REP%20Portaria.txt",
    ))
    pipeline.trigger = AsyncMock(return_value="1")
    pipeline.correlate = AsyncMock(return_value=None)
    return pipeline


@pytest.fixture
def processor():
    processor = MagicMock()
    processor.process = AsyncMock(return_value=NotificationOutcome.SENT)
    return processor


@pytest.fixture(autouse=True)
def services(pipeline, processor):
    set_services(SimpleNamespace(pipeline=pipeline, notification_processor=lambda: processor))
    yield
    set_services(None)


@pytest.fixture
def env():
    return ActivityEnvironment()


class TestImportActivities:
    async def test_lookup_device(self, env, pipeline):
        output = await env.run(lookup_device, ImportJobInput(equipment=EQUIPMENT, reference_date="2024-03-01"))

        assert output.device_id == 6
        assert output.name == "REP Portaria"
        pipeline.authenticate.assert_awaited_once()
        assert pipeline.lookup.await_args.args[0] == DEVICE_6

    async def test_lookup_failure_is_typed(self, env, pipeline):
        pipeline.lookup.side_effect = UnhealthyDeviceError("Device 6 (REP Portaria) has invalid status: ERRO")

        with pytest.raises(ApplicationError) as exc_info:
            await env.run(lookup_device, ImportJobInput(equipment=EQUIPMENT, reference_date="2024-03-01"))

        error = exc_info.value
        assert error.type == "UnhealthyDeviceError"
        assert error.details == ("lookup",)
        assert not error.non_retryable

    async def test_download_and_save(self, env, pipeline):
        output = await env.run(
            download_and_save_afd,
            SaveAfdInput(equipment=EQUIPMENT, reference_date="2024-03-01", device_name="REP Portaria"),
        )

        assert output.key == "01-03-2024 REP Portaria.txt"
        pipeline.download.assert_awaited_once_with(DEVICE_6, REFERENCE_DATE)
        pipeline.save.assert_awaited_once_with("REP Portaria", REFERENCE_DATE, "0000000011")

    async def test_save_failure_reports_stage(self, env, pipeline):
        pipeline.save.side_effect = ArchiveError("bucket unavailable")

        with pytest.raises(ApplicationError) as exc_info:
            await env.run(
                download_and_save_afd,
                SaveAfdInput(equipment=EQUIPMENT, reference_date="2024-03-01", device_name="REP Portaria"),
            )
        assert exc_info.value.details == ("save",)

    async def test_rejected_import_is_non_retryable(self, env, pipeline):
        pipeline.trigger.side_effect = ImportRejectedError("TOTVS returned 0", response_body="0")

        with pytest.raises(ApplicationError) as exc_info:
            await env.run(
                trigger_erp_import,
                TriggerImportInput(equipment=EQUIPMENT, reference_date="2024-03-01", file_name="a.txt"),
            )

        assert exc_info.value.type == "ImportRejectedError"
        assert exc_info.value.non_retryable

    async def test_trigger_passes_file_name(self, env, pipeline):
        result = await env.run(
            trigger_erp_import,
            TriggerImportInput(
                equipment=DEVICE_6.with_company(5).model_dump(),
                reference_date="2024-03-01",
                file_name="01-03-2024 REP Portaria.txt",
            ),
        )

        assert result == "1"
        equipment, file_name, reference_date = pipeline.trigger.await_args.args
        assert equipment.company_code == 5
        assert file_name == "01-03-2024 REP Portaria.txt"
        assert reference_date == REFERENCE_DATE

    async def test_correlation_never_fails(self, env, pipeline):
        output = await env.run(
            correlate_erp_job,
            CorrelateInput(
                equipment=EQUIPMENT,
                device_name="REP Portaria",
                artifact={"bucket": "afd", "key": "a.txt", "location_url": "https://s3/afd/a.txt"},
            ),
        )

        assert not output.registered
        assert pipeline.correlate.await_args.args[2].key == "a.txt"


class TestNotificationActivity:
    async def test_returns_outcome(self, env, processor):
        result = await env.run(process_notification, NotificationInput(job_id=41, last_status=1))

        assert result == "sent"
        processor.process.assert_awaited_once_with(NotificationJob(job_id=41, last_status=1))

    async def test_missing_record_is_retryable(self, env, processor):
        processor.process.side_effect = ImportRecordNotFoundError("Import record for job 41 not found")

        with pytest.raises(ApplicationError) as exc_info:
            await env.run(process_notification, NotificationInput(job_id=41))

        assert exc_info.value.type == "ImportRecordNotFoundError"
        assert not exc_info.value.non_retryable


class TestWorkerRegistry:
    def test_every_queue_has_a_worker(self):
        from core.workflow.base import ALL_QUEUES
        from workers.worker import QUEUE_REGISTRY

        assert set(QUEUE_REGISTRY) == set(ALL_QUEUES)

    def test_import_queue_runs_every_stage(self):
        from core.workflow.base import IMPORT_QUEUE
        from workers.worker import QUEUE_REGISTRY
        from workflows.afd_import_workflow import AfdImportWorkflow

        workflows, activities = QUEUE_REGISTRY[IMPORT_QUEUE]
        assert workflows == [AfdImportWorkflow]
        assert activities == [lookup_device, download_and_save_afd, trigger_erp_import, correlate_erp_job]
