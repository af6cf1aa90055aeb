"""AFD import triggers.

- POST /dp-rh/importacao-batidas/processar - run the synchronous batch now
- POST /dp-rh/importacao-batidas/rotina - enqueue the periodic routine now
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_bus, get_services, get_settings
from api.security import require_api_key
from afd_import.scheduler import RoutineScheduler
from afd_import.services import Services
from core.config import Settings
from core.errors import AuthenticationError, DeviceDiscoveryError
from core.models.attendance import BatchReport
from core.observability.logging import get_logger
from core.workflow.bus import MessageBus


logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_api_key)])


class BatchRequest(BaseModel):
    """Body of a synchronous batch run."""
    model_config = ConfigDict(populate_by_name=True)

    reference_date: Optional[date] = Field(
        None, alias="dataReferencia", description="Day to import (default: today, UTC)"
    )
    device_ids: Optional[List[int]] = Field(
        None, alias="equipamentosIds", description="Devices to import (default: every mapped device)"
    )


class RoutineRequest(BaseModel):
    """Body of a routine trigger."""
    model_config = ConfigDict(populate_by_name=True)

    reference_date: Optional[date] = Field(None, alias="dataReferencia")


class RoutineResponse(BaseModel):
    reference_date: date
    enqueued: int
    coalesced: int
    keys: List[str] = []


@router.post("/processar", response_model=BatchReport)
async def run_batch(
    request: Optional[BatchRequest] = None,
    services: Services = Depends(get_services),
) -> BatchReport:
    """Run the whole import in-request and return the aggregated report."""
    request = request or BatchRequest()
    try:
        return await services.batch().run(
            device_ids=request.device_ids,
            reference_date=request.reference_date,
        )
    except (AuthenticationError, DeviceDiscoveryError) as e:
        logger.error(f"Batch import aborted: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/rotina", response_model=RoutineResponse, status_code=202)
async def enqueue_routine(
    request: Optional[RoutineRequest] = None,
    services: Services = Depends(get_services),
    bus: MessageBus = Depends(get_bus),
    settings: Settings = Depends(get_settings),
) -> RoutineResponse:
    """Queue one import job per mapped device (and mirrored company)."""
    request = request or RoutineRequest()
    scheduler = RoutineScheduler(bus, services.catalog, settle_delay_seconds=settings.settle_delay_seconds)
    tick = await scheduler.tick(request.reference_date)
    return RoutineResponse(**tick.to_dict())
