"""Service wiring shared by workers, producers, the API and scripts.

One `Services` instance per process: the RHiD session it holds is shared by
every concurrent activity, which is what makes token refresh single-flight.
"""

from dataclasses import dataclass, field
from typing import Optional

from afd_import.batch import BatchOrchestrator
from afd_import.pipeline import AfdImportPipeline
from connectors.chat.webhook import ChatWebhookClient
from connectors.erp_base import ErpImportConnector, ErpJobReader
from connectors.rhid.client import RhidClient
from connectors.rhid.discovery import DeviceDiscovery
from connectors.totvs.job_reader import TotvsJobReader
from connectors.totvs.process_client import TotvsProcessClient
from core.config import Settings
from core.mapping.equipment import EquipmentCatalog
from core.observability.logging import get_logger
from core.storage.artifacts import LocalObjectStore, ObjectStore
from core.storage.s3 import S3ObjectStore
from notifications.processor import NotificationProcessor
from storage.repository import ErpJobRepository, ImportRepository

logger = get_logger(__name__)


def build_object_store(settings: Settings) -> ObjectStore:
    if settings.object_store_backend == "local":
        return LocalObjectStore(settings.local_storage_path)
    return S3ObjectStore(
        endpoint_url=settings.s3_endpoint_url,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        region_name=settings.s3_region,
    )


def build_erp_job_reader(settings: Settings) -> ErpJobReader:
    """The ERP job tables the correlation and notification steps read.

    With ERP_DATABASE_URL set they are read from the ERP database itself.
    Without it the SQLite copy in DATABASE_PATH stands in, which only sees
    jobs something has written there (local runs, tests).
    """
    if settings.erp_database_url:
        return TotvsJobReader(settings.erp_database_url, schema=settings.erp_database_schema)
    logger.warning(
        "ERP_DATABASE_URL not set, reading ERP jobs from the local database",
        extra_fields={"database_path": str(settings.database_path)},
    )
    return ErpJobRepository(settings.database_path, initialize=False)


@dataclass
class Services:
    settings: Settings
    catalog: EquipmentCatalog
    rhid: RhidClient
    discovery: DeviceDiscovery
    store: ObjectStore
    erp: ErpImportConnector
    imports: ImportRepository
    erp_jobs: ErpJobReader
    pipeline: AfdImportPipeline
    _notifications: Optional[NotificationProcessor] = field(default=None, repr=False)

    def batch(self) -> BatchOrchestrator:
        return BatchOrchestrator(self.pipeline, self.catalog)

    def notification_processor(self) -> NotificationProcessor:
        """Built on first use, so import-only processes don't need the webhook.

        Raises:
            ConfigurationError: GOOGLE_CHAT_SPACE_WEBHOOK is not set
        """
        if self._notifications is None:
            chat = ChatWebhookClient(
                self.settings.require_chat_webhook(),
                timeout_seconds=self.settings.http_timeout_seconds,
            )
            self._notifications = NotificationProcessor(
                self.imports,
                self.erp_jobs,
                self.store,
                chat,
                archive_bucket=self.settings.archive_bucket,
            )
        return self._notifications

    async def close(self):
        await self.rhid.close()
        await self.erp.close()
        self.erp_jobs.close()


def build_services(settings: Optional[Settings] = None) -> Services:
    """Wire every component from settings (default: the environment)."""
    settings = settings or Settings.from_env()

    rhid = RhidClient(
        settings.rhid_api_url,
        settings.rhid_username,
        settings.rhid_password,
        timeout_seconds=settings.http_timeout_seconds,
        token_ttl_seconds=settings.rhid_token_ttl_seconds,
    )
    discovery = DeviceDiscovery(rhid)
    store = build_object_store(settings)
    erp = TotvsProcessClient(
        settings.totvs_api_url,
        settings.totvs_basic_auth,
        settings.totvs_import_path,
        user=settings.erp_process_user,
        timeout_seconds=settings.http_timeout_seconds,
    )
    imports = ImportRepository(settings.database_path)
    erp_jobs = build_erp_job_reader(settings)

    pipeline = AfdImportPipeline(
        rhid=rhid,
        discovery=discovery,
        store=store,
        erp=erp,
        imports=imports,
        erp_jobs=erp_jobs,
        afd_bucket=settings.afd_bucket,
        archive_bucket=settings.archive_bucket,
        erp_process_user=settings.erp_process_user,
        settle_delay_seconds=settings.settle_delay_seconds,
    )

    return Services(
        settings=settings,
        catalog=EquipmentCatalog(),
        rhid=rhid,
        discovery=discovery,
        store=store,
        erp=erp,
        imports=imports,
        erp_jobs=erp_jobs,
        pipeline=pipeline,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Process-wide services, built from the environment on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]):
    """Replace (or clear, with None) the process-wide services."""
    global _services
    _services = services
