"""AFD import activities.

One activity per pipeline stage group so the workflow can place the settle
delay between them as a durable timer:

- lookup_device: session check + device discovery (stage lookup)
- download_and_save_afd: download + archive (stages download, save).
  The feed never travels through workflow history.
- trigger_erp_import: start the ERP import process (stage import)
- correlate_erp_job: best-effort ERP job correlation and ImportRecord upsert

Pipeline errors are re-raised as ApplicationError typed with the error class
name. ImportRejectedError is non-retryable.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from temporalio import activity
from temporalio.exceptions import ApplicationError

from afd_import.naming import parse_reference_date
from afd_import.services import get_services
from core.errors import PipelineError
from core.models.attendance import EquipmentMapping
from core.models.refs import StoredObject
from core.observability.logging import with_correlation


# =============================================================================
# Activity Input/Output Models
# =============================================================================

@dataclass
class ImportJobInput:
    """Queue payload of an import job (see core.models.ImportJob).

    Attributes:
        equipment: EquipmentMapping fields
        reference_date: ISO date of the day to import
        settle_delay_seconds: Wait before the ERP trigger and the correlation
    """
    equipment: Dict[str, Any]
    reference_date: str
    settle_delay_seconds: float = 5.0


@dataclass
class DeviceLookupOutput:
    device_id: int
    name: str
    status: str


@dataclass
class SaveAfdInput:
    equipment: Dict[str, Any]
    reference_date: str
    device_name: str


@dataclass
class SaveAfdOutput:
    """Where the primary artifact was stored."""
    bucket: str
    key: str
    location_url: str


@dataclass
class TriggerImportInput:
    equipment: Dict[str, Any]
    reference_date: str
    file_name: str


@dataclass
class CorrelateInput:
    equipment: Dict[str, Any]
    device_name: str
    artifact: Dict[str, Any]


@dataclass
class CorrelateOutput:
    registered: bool
    job_id: Optional[int] = None
    status: Optional[int] = None


# =============================================================================
# Helpers
# =============================================================================

def to_application_error(error: PipelineError) -> ApplicationError:
    """Typed ApplicationError carrying the failing stage as its detail."""
    return ApplicationError(
        str(error),
        error.stage,
        type=type(error).__name__,
        non_retryable=not error.retryable,
    )


def _equipment(data: Dict[str, Any]) -> EquipmentMapping:
    return EquipmentMapping.model_validate(data)


def _correlation(equipment: EquipmentMapping) -> dict:
    info = activity.info()
    return {
        "device_id": equipment.id,
        "company_code": equipment.company_code,
        "workflow_id": info.workflow_id,
        "workflow_run_id": info.workflow_run_id,
        "activity_name": info.activity_type,
        "task_queue": info.task_queue,
    }


# =============================================================================
# Activities
# =============================================================================

@activity.defn
async def lookup_device(input: ImportJobInput) -> DeviceLookupOutput:
    """Ensure the RHiD session and resolve the device (status must be OK)."""
    pipeline = get_services().pipeline
    equipment = _equipment(input.equipment)

    with with_correlation(stage="lookup", **_correlation(equipment)):
        activity.logger.info(f"Looking up device {equipment.id}")
        try:
            await pipeline.authenticate()
            device = await pipeline.lookup(equipment)
        except PipelineError as e:
            raise to_application_error(e) from e

    return DeviceLookupOutput(device_id=device.id, name=device.name, status=device.status)


@activity.defn
async def download_and_save_afd(input: SaveAfdInput) -> SaveAfdOutput:
    """Download the day's feed and archive it under its dated file name."""
    pipeline = get_services().pipeline
    equipment = _equipment(input.equipment)
    reference_date = parse_reference_date(input.reference_date)

    with with_correlation(stage="download", **_correlation(equipment)):
        try:
            content = await pipeline.download(equipment, reference_date)
            stored = await pipeline.save(input.device_name, reference_date, content)
        except PipelineError as e:
            raise to_application_error(e) from e

    activity.logger.info(f"AFD saved: {stored.location_url}")
    return SaveAfdOutput(bucket=stored.bucket, key=stored.key, location_url=stored.location_url)


@activity.defn
async def trigger_erp_import(input: TriggerImportInput) -> str:
    """Start the ERP import of an archived AFD."""
    pipeline = get_services().pipeline
    equipment = _equipment(input.equipment)

    with with_correlation(stage="import", **_correlation(equipment)):
        try:
            return await pipeline.trigger(equipment, input.file_name, parse_reference_date(input.reference_date))
        except PipelineError as e:
            raise to_application_error(e) from e


@activity.defn
async def correlate_erp_job(input: CorrelateInput) -> CorrelateOutput:
    """Register the ERP job created by the import. Never fails."""
    pipeline = get_services().pipeline
    equipment = _equipment(input.equipment)

    with with_correlation(stage="import", **_correlation(equipment)):
        record = await pipeline.correlate(
            equipment,
            input.device_name,
            StoredObject.model_validate(input.artifact),
        )

    if record is None:
        return CorrelateOutput(registered=False)
    return CorrelateOutput(registered=True, job_id=record.job_id, status=record.status)
