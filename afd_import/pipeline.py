"""
Per-device AFD import pipeline

    lookup → download → save → import → complete

Each stage raises its own PipelineError subclass. After the ERP trigger has
been attempted, a best-effort correlation step locates the ERP job it
created, archives a copy of the feed under the job id and persists the
ImportRecord. That step never fails the import.
"""

import asyncio
import time
from datetime import date
from typing import Awaitable, Callable, Optional

from connectors.erp_base import ErpImportConnector, ErpJobReader
from connectors.rhid.client import RhidClient
from connectors.rhid.discovery import DeviceDiscovery
from connectors.totvs.descriptor import PROCESS_SERVER_NAME
from core.errors import (
    ArchiveError,
    CorrelationLookupError,
    DeviceNotFoundError,
    DownloadError,
    ErpTransportError,
    PipelineError,
    UnhealthyDeviceError,
)
from core.models.attendance import (
    EquipmentMapping,
    ImportJob,
    ProcessingResult,
    ProcessingStage,
    RemoteDevice,
    SUCCESS_MESSAGE,
)
from core.models.records import ImportRecord
from core.models.refs import StoredObject
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import record_import_result
from core.storage.artifacts import ObjectStore
from afd_import.naming import afd_file_name, archive_key, normalize_feed
from storage.repository import ImportRepository

logger = get_logger(__name__)


class AfdImportPipeline:
    """Runs the import stages for one device at a time.

    Args:
        rhid: Terminal API client (its session is shared by every run)
        discovery: Device lookup over the terminal catalog
        store: Object store for the primary artifact and the job archive
        erp: ERP import trigger
        imports: Local import records
        erp_jobs: ERP job read model used for correlation
        afd_bucket: Bucket of the primary AFD artifacts
        archive_bucket: Bucket of the per-job archive
        erp_process_user: ERP user the import process runs as
        settle_delay_seconds: Wait before triggering the ERP and before
            correlating its job
        sleep: Coroutine used for the settle delay
    """

    def __init__(
        self,
        rhid: RhidClient,
        discovery: DeviceDiscovery,
        store: ObjectStore,
        erp: ErpImportConnector,
        imports: ImportRepository,
        erp_jobs: ErpJobReader,
        afd_bucket: str = "afd",
        archive_bucket: str = "afd-archive",
        erp_process_user: str = "PortalMatriculaInt",
        settle_delay_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rhid = rhid
        self.discovery = discovery
        self.store = store
        self.erp = erp
        self.imports = imports
        self.erp_jobs = erp_jobs
        self.afd_bucket = afd_bucket
        self.archive_bucket = archive_bucket
        self.erp_process_user = erp_process_user
        self.settle_delay_seconds = settle_delay_seconds
        self._sleep = sleep

    # =========================================================================
    # Stages
    # =========================================================================

    async def authenticate(self):
        """Make sure the terminal API session holds a valid token."""
        await self.rhid.auth.get_token()

    async def lookup(self, equipment: EquipmentMapping) -> RemoteDevice:
        """Resolve the device and require status OK."""
        result = await self.discovery.discover([equipment.id])
        if equipment.id in result.healthy:
            return result.healthy[equipment.id]
        if equipment.id in result.unhealthy:
            device = result.unhealthy[equipment.id]
            raise UnhealthyDeviceError(f"Device {device.id} ({device.name}) has invalid status: {device.status}")
        raise DeviceNotFoundError(f"Device {equipment.id} not found in RHiD API")

    async def download(self, equipment: EquipmentMapping, reference_date: date) -> str:
        """Download the feed for [reference_date, reference_date].

        Any failure here, a token refresh included, fails at `download`.
        """
        try:
            return await self.rhid.download_afd(equipment.id, reference_date, reference_date)
        except Exception as e:
            raise DownloadError(f"Failed to download AFD: {e}") from e

    async def save(self, device_name: str, reference_date: date, content: str) -> StoredObject:
        """Archive the feed under its dated file name, replacing any previous copy."""
        file_name = afd_file_name(reference_date, device_name)
        try:
            return await self.store.put(
                self.afd_bucket,
                file_name,
                normalize_feed(content),
                content_type="text/plain",
                overwrite=True,
            )
        except Exception as e:
            raise ArchiveError(f"Failed to save AFD {file_name}: {e}") from e

    async def trigger(self, equipment: EquipmentMapping, file_name: str, reference_date: date) -> str:
        """Start the ERP import of the archived file."""
        try:
            return await self.erp.trigger_import(equipment, file_name, reference_date)
        except PipelineError:
            raise
        except Exception as e:
            raise ErpTransportError(f"TOTVS import failed: {e}") from e

    async def correlate(
        self,
        equipment: EquipmentMapping,
        device_name: str,
        artifact: StoredObject,
    ) -> Optional[ImportRecord]:
        """Find the ERP job the trigger created and persist its ImportRecord.

        Best effort: failures are logged and None is returned.
        """
        try:
            job = self.erp_jobs.find_latest_job(self.erp_process_user, PROCESS_SERVER_NAME)
            if job is None:
                raise CorrelationLookupError("No ERP import job found to register")

            with with_correlation(erp_job_id=job.job_id):
                content = await self.store.get(artifact.bucket, artifact.key)
                archived = await self.store.put(
                    self.archive_bucket,
                    archive_key(job.job_id, artifact.key),
                    content,
                    content_type="text/plain",
                    overwrite=True,
                )
                record = self.imports.upsert_import_record(ImportRecord(
                    job_id=job.job_id,
                    company_code=equipment.company_code,
                    device_name=device_name,
                    status=job.status,
                    artifact_url=artifact.location_url,
                    archive_url=archived.location_url,
                    created_by=job.created_by,
                    created_at=job.created_at,
                ))
                logger.info(f"Import record registered for ERP job {job.job_id}")
                return record
        except Exception as e:
            logger.error(f"Failed to register ERP import job: {e}", exc_info=True)
            return None

    # =========================================================================
    # Whole run
    # =========================================================================

    async def process_job(self, job: ImportJob, raise_on_failure: bool = True) -> ProcessingResult:
        return await self.process_device(job.equipment, job.reference_date, raise_on_failure=raise_on_failure)

    async def process_device(
        self,
        equipment: EquipmentMapping,
        reference_date: date,
        device: Optional[RemoteDevice] = None,
        raise_on_failure: bool = True,
    ) -> ProcessingResult:
        """Run every stage for one device.

        Args:
            equipment: Mapping to import (natural or mirrored company)
            reference_date: Day to import
            device: Already-discovered device; when None the session is
                checked and the device looked up first
            raise_on_failure: Re-raise the stage error after building the
                failed result (queue mode). The error carries the result in
                its `result` attribute.

        Returns:
            ProcessingResult for the furthest stage reached
        """
        job_key = ImportJob(equipment=equipment, reference_date=reference_date).key
        started = time.monotonic()

        with with_correlation(device_id=equipment.id, company_code=equipment.company_code, job_key=job_key):
            stage = ProcessingStage.LOOKUP
            device_name = device.name if device else f"Equipamento {equipment.id}"
            artifact: Optional[StoredObject] = None
            trigger_attempted = False

            try:
                if device is None:
                    await self.authenticate()
                    device = await self.lookup(equipment)
                device_name = device.name
                logger.info(f"Processing device {device_name} (ID: {equipment.id})")

                stage = ProcessingStage.DOWNLOAD
                content = await self.download(equipment, reference_date)

                stage = ProcessingStage.SAVE
                artifact = await self.save(device_name, reference_date, content)
                logger.info(f"AFD saved: {artifact.location_url}")

                stage = ProcessingStage.IMPORT
                await self._sleep(self.settle_delay_seconds)
                trigger_attempted = True
                await self.trigger(equipment, artifact.key, reference_date)

            except Exception as e:
                failed_stage = ProcessingStage(e.stage) if isinstance(e, PipelineError) and e.stage in _STAGES else stage
                if trigger_attempted:
                    await self._settle_and_correlate(equipment, device_name, artifact)

                result = ProcessingResult(
                    equipment_id=equipment.id,
                    equipment_name=device_name,
                    success=False,
                    stage=failed_stage,
                    message=str(e),
                    artifact_url=artifact.location_url if artifact else None,
                )
                logger.error(f"Device {device_name} failed at {failed_stage.value}: {e}")
                record_import_result(failed_stage.value, False, (time.monotonic() - started) * 1000)

                if raise_on_failure:
                    e.result = result
                    raise
                return result

            await self._settle_and_correlate(equipment, device_name, artifact)

            logger.info(f"Device {device_name} processed successfully")
            record_import_result(ProcessingStage.COMPLETE.value, True, (time.monotonic() - started) * 1000)
            return ProcessingResult(
                equipment_id=equipment.id,
                equipment_name=device_name,
                success=True,
                stage=ProcessingStage.COMPLETE,
                message=SUCCESS_MESSAGE,
                artifact_url=artifact.location_url,
            )

    async def _settle_and_correlate(
        self,
        equipment: EquipmentMapping,
        device_name: str,
        artifact: Optional[StoredObject],
    ):
        if artifact is None:
            return
        await self._sleep(self.settle_delay_seconds)
        await self.correlate(equipment, device_name, artifact)


_STAGES = {stage.value for stage in ProcessingStage}
