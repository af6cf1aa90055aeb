"""
AFD Import Workflow

One execution per import job; the workflow id is the job key
(`importacao-<deviceId>-<companyCode>-<epoch>`), so a second start for the
same key while this one runs is rejected by Temporal.

    lookup → download/save → (settle) → import → (settle) → correlate

Activities run once; the job-level RetryPolicy the execution was started
with retries the whole workflow (3 attempts, 60s exponential backoff).

The result is a ProcessingResult as JSON. A failed run raises the
activity's typed ApplicationError with the failed ProcessingResult appended
to its details.
"""

import asyncio
from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio import workflow
from temporalio.exceptions import ActivityError, ApplicationError

with workflow.unsafe.imports_passed_through():
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
    from core.models.attendance import SUCCESS_MESSAGE, ProcessingResult, ProcessingStage
    from core.workflow.base import SINGLE_ATTEMPT, as_workflow_failure


@workflow.defn(name="AfdImportWorkflow")
class AfdImportWorkflow:
    def __init__(self):
        self.stage = ProcessingStage.LOOKUP

    @workflow.query
    def current_stage(self) -> str:
        return self.stage.value

    @workflow.run
    async def run(self, input: ImportJobInput) -> Dict[str, Any]:
        equipment_id = input.equipment.get("id")
        workflow.logger.info(
            f"Starting import of device {equipment_id} "
            f"(company {input.equipment.get('company_code')}) for {input.reference_date}"
        )

        activity_options = {
            "start_to_close_timeout": timedelta(minutes=3),
            "retry_policy": SINGLE_ATTEMPT,
        }

        saved = None
        device_name = f"Equipamento {equipment_id}"
        trigger_attempted = False

        try:
            device = await workflow.execute_activity(lookup_device, input, **activity_options)
            device_name = device.name

            self.stage = ProcessingStage.DOWNLOAD
            saved = await workflow.execute_activity(
                download_and_save_afd,
                SaveAfdInput(
                    equipment=input.equipment,
                    reference_date=input.reference_date,
                    device_name=device_name,
                ),
                **activity_options,
            )

            self.stage = ProcessingStage.IMPORT
            await asyncio.sleep(input.settle_delay_seconds)
            trigger_attempted = True
            await workflow.execute_activity(
                trigger_erp_import,
                TriggerImportInput(
                    equipment=input.equipment,
                    reference_date=input.reference_date,
                    file_name=saved.key,
                ),
                **activity_options,
            )
        except ActivityError as e:
            if trigger_attempted:
                await self._correlate(input, device_name, saved)
            self.stage = _failed_stage(e, self.stage)
            result = ProcessingResult(
                equipment_id=equipment_id,
                equipment_name=device_name,
                success=False,
                stage=self.stage,
                message=_failure_message(e),
                artifact_url=saved.location_url if saved else None,
                processed_at=workflow.now(),
            )
            workflow.logger.error(f"Import of device {equipment_id} failed at {self.stage.value}: {result.message}")
            raise as_workflow_failure(e, result.model_dump(mode="json")) from e

        correlated = await self._correlate(input, device_name, saved)
        if correlated is not None and correlated.registered:
            workflow.logger.info(f"Device {device_name} registered under ERP job {correlated.job_id}")

        self.stage = ProcessingStage.COMPLETE
        workflow.logger.info(f"Device {device_name} processed successfully")
        return ProcessingResult(
            equipment_id=equipment_id,
            equipment_name=device_name,
            success=True,
            stage=self.stage,
            message=SUCCESS_MESSAGE,
            artifact_url=saved.location_url,
            processed_at=workflow.now(),
        ).model_dump(mode="json")

    async def _correlate(self, input: ImportJobInput, device_name: str, saved):
        await asyncio.sleep(input.settle_delay_seconds)
        try:
            return await workflow.execute_activity(
                correlate_erp_job,
                CorrelateInput(
                    equipment=input.equipment,
                    device_name=device_name,
                    artifact={
                        "bucket": saved.bucket,
                        "key": saved.key,
                        "location_url": saved.location_url,
                    },
                ),
                start_to_close_timeout=timedelta(minutes=2),
                retry_policy=SINGLE_ATTEMPT,
            )
        except ActivityError as e:
            workflow.logger.error(f"ERP job correlation failed: {e.cause or e}")
            return None


def _failed_stage(error: ActivityError, current: ProcessingStage) -> ProcessingStage:
    """Stage named by the activity's error, falling back to the current one.

    download_and_save_afd covers two stages; its error says which failed.
    """
    cause = error.cause
    if isinstance(cause, ApplicationError) and cause.details:
        stage = cause.details[0]
        if stage in {s.value for s in ProcessingStage}:
            return ProcessingStage(stage)
    return current


def _failure_message(error: ActivityError) -> str:
    cause = error.cause
    if isinstance(cause, ApplicationError):
        return cause.message
    return str(cause or error)
