"""HTTP triggers: API key guard, synchronous batch and routine enqueue."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_bus, get_services, get_settings
from api.server import create_app
from core.config import Settings
from core.errors import AuthenticationError
from core.mapping.equipment import EQUIPMENT_MAPPINGS, EquipmentCatalog
from core.models.attendance import BatchReport, ProcessingResult, ProcessingStage
from core.workflow.base import IMPORT_QUEUE
from core.workflow.bus import InMemoryMessageBus


BATCH_URL = "/dp-rh/importacao-batidas/processar"
ROUTINE_URL = "/dp-rh/importacao-batidas/rotina"


def make_settings(api_key="s3cret", settle_delay_seconds=5.0) -> Settings:
    return Settings(
        rhid_api_url="http://rhid.local",
        rhid_username="ops@example.com",
        rhid_password="secret",
        totvs_api_url="http://totvs.local",
        totvs_basic_auth="dXNlcjpwYXNz",
        totvs_import_path="C:\\TOTVS\\AFD\\",
        api_key=api_key,
        settle_delay_seconds=settle_delay_seconds,
    )


def sample_report() -> BatchReport:
    return BatchReport.from_results(date(2024, 3, 1), [
        ProcessingResult(
            equipment_id=6,
            equipment_name="REP Portaria",
            success=True,
            stage=ProcessingStage.COMPLETE,
            message="Processamento concluído com sucesso",
        ),
    ])


@pytest.fixture
def batch_run():
    return AsyncMock(return_value=sample_report())


@pytest.fixture
def bus():
    return InMemoryMessageBus()


@pytest.fixture
def app_factory(batch_run, bus):
    def factory(api_key="s3cret", settle_delay_seconds=5.0):
        services = MagicMock()
        services.catalog = EquipmentCatalog()
        services.batch.return_value.run = batch_run

        app = create_app()
        app.dependency_overrides[get_settings] = lambda: make_settings(api_key, settle_delay_seconds)
        app.dependency_overrides[get_services] = lambda: services
        app.dependency_overrides[get_bus] = lambda: bus
        return app
    return factory


@pytest.fixture
def client(app_factory):
    return TestClient(app_factory())


class TestApiKey:
    def test_missing_header(self, client, batch_run):
        response = client.post(BATCH_URL, json={})
        assert response.status_code == 401
        batch_run.assert_not_awaited()

    def test_wrong_key(self, client):
        response = client.post(ROUTINE_URL, headers={"x-api-key": "nope"})
        assert response.status_code == 401

    def test_unset_key_rejects_everything(self, app_factory):
        client = TestClient(app_factory(api_key=None))
        response = client.post(BATCH_URL, json={}, headers={"x-api-key": ""})
        assert response.status_code == 401

    def test_health_is_open(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestBatchEndpoint:
    def test_runs_batch_with_request_filters(self, client, batch_run):
        response = client.post(
            BATCH_URL,
            json={"dataReferencia": "2024-03-01", "equipamentosIds": [6, 9]},
            headers={"x-api-key": "s3cret"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["successes"] == 1
        assert body["results"][0]["stage"] == "complete"
        batch_run.assert_awaited_once_with(device_ids=[6, 9], reference_date=date(2024, 3, 1))

    def test_defaults(self, client, batch_run):
        response = client.post(BATCH_URL, headers={"x-api-key": "s3cret"})

        assert response.status_code == 200
        batch_run.assert_awaited_once_with(device_ids=None, reference_date=None)

    def test_empty_device_list_is_passed_through(self, client, batch_run):
        response = client.post(BATCH_URL, json={"equipamentosIds": []}, headers={"x-api-key": "s3cret"})

        assert response.status_code == 200
        batch_run.assert_awaited_once_with(device_ids=[], reference_date=None)

    def test_authentication_failure(self, client, batch_run):
        batch_run.side_effect = AuthenticationError("RHiD login failed: 401")

        response = client.post(BATCH_URL, json={}, headers={"x-api-key": "s3cret"})

        assert response.status_code == 502
        assert "RHiD login failed" in response.json()["detail"]


class TestRoutineEndpoint:
    def test_enqueues_routine(self, client, bus):
        response = client.post(ROUTINE_URL, json={"dataReferencia": "2024-03-01"}, headers={"x-api-key": "s3cret"})

        assert response.status_code == 202
        body = response.json()
        assert body["enqueued"] == 2 * len(EQUIPMENT_MAPPINGS)
        assert "importacao-6-1-1709251200" in body["keys"]

    def test_second_trigger_coalesces(self, client):
        headers = {"x-api-key": "s3cret"}
        client.post(ROUTINE_URL, json={"dataReferencia": "2024-03-01"}, headers=headers)
        response = client.post(ROUTINE_URL, json={"dataReferencia": "2024-03-01"}, headers=headers)

        assert response.json()["enqueued"] == 0
        assert response.json()["coalesced"] == 2 * len(EQUIPMENT_MAPPINGS)

    def test_jobs_carry_configured_settle_delay(self, app_factory, bus):
        client = TestClient(app_factory(settle_delay_seconds=0.5))

        client.post(ROUTINE_URL, json={"dataReferencia": "2024-03-01"}, headers={"x-api-key": "s3cret"})

        payloads = [m.payload for m in bus.messages(IMPORT_QUEUE)]
        assert payloads
        assert {p["settle_delay_seconds"] for p in payloads} == {0.5}
