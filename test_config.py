"""Settings, naming helpers and Temporal connection options."""

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from temporalio.service import TLSConfig

from afd_import.naming import (
    afd_file_name,
    archive_key,
    format_file_date,
    log_archive_key,
    normalize_feed,
    parse_reference_date,
)
from afd_import.services import build_erp_job_reader
from connectors.totvs.job_reader import TotvsJobReader
from core.config import Settings
from core.errors import ConfigurationError
from storage.repository import ErpJobRepository
from temporal_client import build_tls_config


REQUIRED_ENV = {
    "RHID_API_URL": "https://rhid.example.com/api/",
    "RHID_API_USERNAME": "integracao@example.com",
    "RHID_API_PASSWORD": "secret",
    "URL_API_TOTVS": "https://totvs.example.com/",
    "TOKEN_API_TOTVS": "dXNlcjpwYXNz",
    "PATH_IMPORTACAO_TOTVS": "\\\\fileserver\\afd\\",
}

OPTIONAL_ENV = [
    "ERP_PROCESS_USER", "RHID_TOKEN_TTL_SECONDS", "DATABASE_PATH", "OBJECT_STORE_BACKEND",
    "AFD_BUCKET", "ARCHIVE_BUCKET", "S3_ENDPOINT_URL", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY",
    "S3_REGION", "LOCAL_STORAGE_PATH", "GOOGLE_CHAT_SPACE_WEBHOOK", "API_KEY", "HTTP_TIMEOUT_SECONDS",
    "SETTLE_DELAY_SECONDS", "ROUTINE_INTERVAL_SECONDS", "RECONCILE_INTERVAL_SECONDS",
    "ERP_DATABASE_URL", "ERP_DATABASE_SCHEMA",
]


@pytest.fixture
def env(monkeypatch):
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


class TestSettings:
    def test_defaults(self, env):
        settings = Settings.from_env()

        assert settings.rhid_api_url == "https://rhid.example.com/api"
        assert settings.totvs_api_url == "https://totvs.example.com"
        assert settings.erp_process_user == "PortalMatriculaInt"
        assert settings.object_store_backend == "s3"
        assert settings.afd_bucket == "afd"
        assert settings.archive_bucket == "afd-archive"
        assert settings.settle_delay_seconds == 5.0
        assert settings.routine_interval_seconds == 7200.0
        assert settings.reconcile_interval_seconds == 10.0
        assert settings.chat_webhook_url is None
        assert settings.erp_database_url is None
        assert settings.erp_database_schema == "corpore_erp_manutencao.dbo"

    def test_overrides(self, env):
        env.setenv("OBJECT_STORE_BACKEND", "LOCAL")
        env.setenv("LOCAL_STORAGE_PATH", "/tmp/afd")
        env.setenv("SETTLE_DELAY_SECONDS", "0.5")
        env.setenv("API_KEY", "k")

        settings = Settings.from_env()

        assert settings.object_store_backend == "local"
        assert settings.local_storage_path == Path("/tmp/afd")
        assert settings.settle_delay_seconds == 0.5
        assert settings.api_key == "k"

    @pytest.mark.parametrize("name", sorted(REQUIRED_ENV))
    def test_missing_required_variable(self, env, name):
        env.delenv(name)
        with pytest.raises(ConfigurationError, match=name):
            Settings.from_env()

    def test_bad_number(self, env):
        env.setenv("HTTP_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError, match="HTTP_TIMEOUT_SECONDS"):
            Settings.from_env()

    def test_unknown_backend(self, env):
        env.setenv("OBJECT_STORE_BACKEND", "gcs")
        with pytest.raises(ConfigurationError, match="OBJECT_STORE_BACKEND"):
            Settings.from_env()

    def test_erp_job_reader_follows_database_url(self, env, tmp_path):
        env.setenv("DATABASE_PATH", str(tmp_path / "afd_import.db"))
        assert isinstance(build_erp_job_reader(Settings.from_env()), ErpJobRepository)

        env.setenv("ERP_DATABASE_URL", f"sqlite:///{tmp_path / 'erp.db'}")
        env.setenv("ERP_DATABASE_SCHEMA", "main")
        reader = build_erp_job_reader(Settings.from_env())

        assert isinstance(reader, TotvsJobReader)
        assert reader.tables.jobs.schema == "main"
        reader.close()

    def test_chat_webhook_required_on_demand(self, env):
        settings = Settings.from_env()
        with pytest.raises(ConfigurationError, match="GOOGLE_CHAT_SPACE_WEBHOOK"):
            settings.require_chat_webhook()

        env.setenv("GOOGLE_CHAT_SPACE_WEBHOOK", "https://chat.example.com/hook")
        assert Settings.from_env().require_chat_webhook() == "https://chat.example.com/hook"


class TestNaming:
    def test_file_name(self):
        assert format_file_date(date(2024, 3, 1)) == "01-03-2024"
        assert afd_file_name(date(2024, 3, 1), "REP Portaria") == "01-03-2024 REP Portaria.txt"

    def test_archive_keys(self):
        assert archive_key(41, "01-03-2024 REP Portaria.txt") == "importacoes/41/01-03-2024 REP Portaria.txt"
        assert log_archive_key(41, "log_41.txt") == "importacoes/41/logs/log_41.txt"

    def test_normalize_feed(self):
        assert normalize_feed("0000000011\\r\\n0000000023\\r\\n") == "0000000011\n0000000023\n"
        assert normalize_feed("already\nclean") == "already\nclean"

    def test_parse_reference_date(self):
        assert parse_reference_date("2024-03-01") == date(2024, 3, 1)
        assert parse_reference_date(date(2024, 3, 1)) == date(2024, 3, 1)
        assert parse_reference_date("2024-03-01T23:30:00Z") == date(2024, 3, 1)

    def test_parse_converts_offsets_to_utc(self):
        assert parse_reference_date("2024-03-01T22:00:00-03:00") == date(2024, 3, 2)
        brt = timezone(timedelta(hours=-3))
        assert parse_reference_date(datetime(2024, 3, 1, 22, 0, tzinfo=brt)) == date(2024, 3, 2)

    def test_none_is_today(self):
        assert parse_reference_date(None) == datetime.now(timezone.utc).date()

    def test_invalid_date(self):
        with pytest.raises(ValueError):
            parse_reference_date("01/03/2024")


class TestTemporalTls:
    def test_plaintext_without_credentials(self):
        assert build_tls_config(None, None) is False

    def test_api_key_enables_tls(self):
        assert build_tls_config("key", None) is True

    def test_client_certificate(self, tmp_path):
        pem = tmp_path / "client.pem"
        pem.write_bytes(b"-----BEGIN CERTIFICATE-----\n")

        tls = build_tls_config(None, str(pem))

        assert isinstance(tls, TLSConfig)
        assert tls.client_cert == pem.read_bytes()
        assert tls.client_private_key == pem.read_bytes()
