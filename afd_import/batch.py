"""Synchronous batch import: the whole pipeline over a device set, in-request."""

from datetime import date
from typing import Iterable, List, Optional

from afd_import.naming import today_utc
from afd_import.pipeline import AfdImportPipeline
from core.mapping.equipment import EquipmentCatalog
from core.models.attendance import BatchReport, ProcessingResult, ProcessingStage
from core.observability.logging import get_logger

logger = get_logger(__name__)


class BatchOrchestrator:
    """Authenticates once, discovers once, then imports each device in turn.

    Failures of one device never stop the others. Only an authentication or
    discovery failure aborts the batch.
    """

    def __init__(self, pipeline: AfdImportPipeline, catalog: EquipmentCatalog):
        self.pipeline = pipeline
        self.catalog = catalog

    async def run(
        self,
        device_ids: Optional[Iterable[int]] = None,
        reference_date: Optional[date] = None,
    ) -> BatchReport:
        """Import `device_ids` (default: every mapped device) for `reference_date` (default: today)."""
        reference_date = reference_date or today_utc()
        requested: List[int] = self.catalog.ids if device_ids is None else list(dict.fromkeys(device_ids))

        logger.info(f"Starting batch import for {len(requested)} device(s), reference date {reference_date}")
        if not requested:
            return BatchReport.from_results(reference_date, [])

        await self.pipeline.authenticate()

        mapped = [self.catalog.get(device_id) for device_id in requested if device_id in self.catalog]
        discovery = await self.pipeline.discovery.discover([m.id for m in mapped])
        logger.info(f"{len(discovery.healthy)} valid device(s) found")

        results: List[ProcessingResult] = []
        for device_id in requested:
            mapping = self.catalog.get(device_id)
            if mapping is None:
                logger.warning(f"Device {device_id} is not mapped")
                results.append(_lookup_failure(device_id, f"Equipamento {device_id}", "Equipamento não mapeado"))
                continue

            if device_id in discovery.unhealthy:
                device = discovery.unhealthy[device_id]
                results.append(_lookup_failure(device_id, device.name, f"Status inválido: {device.status}"))
                continue

            device = discovery.healthy.get(device_id)
            if device is None:
                results.append(_lookup_failure(device_id, f"Equipamento {device_id}", "Equipamento não encontrado na API RHiD"))
                continue

            results.append(await self.pipeline.process_device(
                mapping, reference_date, device=device, raise_on_failure=False,
            ))

        report = BatchReport.from_results(reference_date, results)
        logger.info(f"Batch import finished: total={report.total}, successes={report.successes}, failures={report.failures}")
        if report.failures:
            failed = ", ".join(f"{r.equipment_name} ({r.message})" for r in report.results if not r.success)
            logger.warning(f"Devices with failures: {failed}")
        return report


def _lookup_failure(device_id: int, name: str, message: str) -> ProcessingResult:
    return ProcessingResult(
        equipment_id=device_id,
        equipment_name=name,
        success=False,
        stage=ProcessingStage.LOOKUP,
        message=message,
    )
