"""Shared pytest fixtures."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from connectors.erp_base import ErpImportConnector
from connectors.rhid.discovery import DiscoveryResult
from connectors.totvs.descriptor import PROCESS_SERVER_NAME
from core.mapping.equipment import EquipmentCatalog
from core.models.attendance import EquipmentMapping
from core.observability.metrics import MetricsCollector
from core.storage.artifacts import LocalObjectStore
from storage.repository import ErpJobRepository, ImportRepository


REFERENCE_DATE = date(2024, 3, 1)

DEVICE_6 = EquipmentMapping(id=6, company_code=1, branch_code=2, terminal_code=9006)


@pytest.fixture(autouse=True)
def reset_metrics():
    MetricsCollector.instance().reset()
    yield
    MetricsCollector.instance().reset()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "afd_import.db"


@pytest.fixture
def imports(db_path):
    return ImportRepository(db_path)


@pytest.fixture
def erp_jobs(db_path):
    return ErpJobRepository(db_path)


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "objects")


@pytest.fixture
def single_device_catalog():
    """Catalog holding only device 6, without mirroring."""
    return EquipmentCatalog([DEVICE_6], mirrors={})


@pytest.fixture
def chat():
    client = MagicMock()
    client.send = AsyncMock(return_value={})
    return client


# =============================================================================
# Fakes
# =============================================================================

FEED = "0000000011\\r\\n0000000023\\r\\n"


class FakeErp(ErpImportConnector):
    """ERP stand-in: records each trigger and creates the job the ERP would."""

    def __init__(self, erp_jobs, error=None, creates_job=True):
        self.erp_jobs = erp_jobs
        self.error = error
        self.creates_job = creates_job
        self.calls = []

    async def trigger_import(self, equipment, file_name, reference_date):
        self.calls.append((equipment, file_name, reference_date))
        if self.creates_job:
            self.erp_jobs.create_job(PROCESS_SERVER_NAME, "PortalMatriculaInt", status=1)
        if self.error is not None:
            raise self.error
        return "1"


def discovery_with(healthy=(), unhealthy=(), missing=()):
    discovery = MagicMock()
    discovery.discover = AsyncMock(return_value=DiscoveryResult(
        healthy={d.id: d for d in healthy},
        unhealthy={d.id: d for d in unhealthy},
        missing=list(missing),
    ))
    return discovery


def rhid_with(feed=FEED, download_error=None):
    rhid = MagicMock()
    rhid.auth.get_token = AsyncMock(return_value="tok-1")
    rhid.download_afd = AsyncMock(return_value=feed, side_effect=download_error)
    return rhid
