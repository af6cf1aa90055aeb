"""Application settings loaded from the environment.

A `.env` file at the repository root is loaded first if it exists, the same
way temporal_client.py does it.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError


REPO_ROOT = Path(__file__).resolve().parents[1]

_env_path = REPO_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _required(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes:
        rhid_api_url: Base URL of the terminal-management API
        rhid_username: Login e-mail for the terminal API
        rhid_password: Login password for the terminal API
        totvs_api_url: Base URL of the ERP REST host
        totvs_basic_auth: Pre-encoded Basic credentials for the ERP
        totvs_import_path: Directory prefix the ERP reads AFD files from
        erp_process_user: ERP user the import process runs as
        database_path: SQLite database file
        erp_database_url: SQLAlchemy URL of the ERP database holding the job
            tables; unset reads the local SQLite copy instead
        erp_database_schema: Database/owner of the ERP job tables
        object_store_backend: "s3" or "local"
        afd_bucket: Bucket/folder for the primary AFD artifacts
        archive_bucket: Bucket for job archives and harvested logs
        chat_webhook_url: Chat space webhook for operator notifications
        api_key: Shared secret required by the HTTP triggers
    """
    rhid_api_url: str
    rhid_username: str
    rhid_password: str
    totvs_api_url: str
    totvs_basic_auth: str
    totvs_import_path: str
    erp_process_user: str = "PortalMatriculaInt"
    rhid_token_ttl_seconds: float = 3600.0
    database_path: Path = REPO_ROOT / "afd_import.db"
    erp_database_url: Optional[str] = None
    erp_database_schema: str = "corpore_erp_manutencao.dbo"

    object_store_backend: str = "s3"
    afd_bucket: str = "afd"
    archive_bucket: str = "afd-archive"
    s3_endpoint_url: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_region: Optional[str] = None
    local_storage_path: Path = REPO_ROOT / "artifacts"

    chat_webhook_url: Optional[str] = None
    api_key: Optional[str] = None

    http_timeout_seconds: float = 60.0
    settle_delay_seconds: float = 5.0
    routine_interval_seconds: float = 7200.0
    reconcile_interval_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing
        """
        backend = os.getenv("OBJECT_STORE_BACKEND", "s3").lower()
        if backend not in ("s3", "local"):
            raise ConfigurationError(f"OBJECT_STORE_BACKEND must be 's3' or 'local', got {backend!r}")

        return cls(
            rhid_api_url=_required("RHID_API_URL").rstrip("/"),
            rhid_username=_required("RHID_API_USERNAME"),
            rhid_password=_required("RHID_API_PASSWORD"),
            totvs_api_url=_required("URL_API_TOTVS").rstrip("/"),
            totvs_basic_auth=_required("TOKEN_API_TOTVS"),
            totvs_import_path=_required("PATH_IMPORTACAO_TOTVS"),
            erp_process_user=os.getenv("ERP_PROCESS_USER", "PortalMatriculaInt"),
            rhid_token_ttl_seconds=_float("RHID_TOKEN_TTL_SECONDS", 3600.0),
            database_path=Path(os.getenv("DATABASE_PATH", str(REPO_ROOT / "afd_import.db"))),
            erp_database_url=os.getenv("ERP_DATABASE_URL") or None,
            erp_database_schema=os.getenv("ERP_DATABASE_SCHEMA", "corpore_erp_manutencao.dbo"),
            object_store_backend=backend,
            afd_bucket=os.getenv("AFD_BUCKET", "afd"),
            archive_bucket=os.getenv("ARCHIVE_BUCKET", "afd-archive"),
            s3_endpoint_url=os.getenv("S3_ENDPOINT_URL"),
            s3_access_key_id=os.getenv("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=os.getenv("S3_SECRET_ACCESS_KEY"),
            s3_region=os.getenv("S3_REGION"),
            local_storage_path=Path(os.getenv("LOCAL_STORAGE_PATH", str(REPO_ROOT / "artifacts"))),
            chat_webhook_url=os.getenv("GOOGLE_CHAT_SPACE_WEBHOOK"),
            api_key=os.getenv("API_KEY"),
            http_timeout_seconds=_float("HTTP_TIMEOUT_SECONDS", 60.0),
            settle_delay_seconds=_float("SETTLE_DELAY_SECONDS", 5.0),
            routine_interval_seconds=_float("ROUTINE_INTERVAL_SECONDS", 7200.0),
            reconcile_interval_seconds=_float("RECONCILE_INTERVAL_SECONDS", 10.0),
        )

    def require_chat_webhook(self) -> str:
        """Return the chat webhook URL or fail if it is not configured."""
        if not self.chat_webhook_url:
            raise ConfigurationError("Missing required environment variable: GOOGLE_CHAT_SPACE_WEBHOOK")
        return self.chat_webhook_url
