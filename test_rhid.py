"""RHiD session, HTTP client and device discovery."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp import test_utils
from jose import jwt

from connectors.rhid.auth import RhidSession, token_expiry
from connectors.rhid.client import RhidApiError, RhidClient
from connectors.rhid.discovery import DeviceDiscovery
from connectors.rhid.models import RhidDevice, RhidDevicesResponse
from conftest import REFERENCE_DATE
from core.errors import AuthenticationError, DeviceDiscoveryError


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def counting_login(*tokens, delay: float = 0.01):
    """Login coroutine handing out `tokens` in order."""
    issued = iter(tokens)

    async def login():
        login.calls += 1
        await asyncio.sleep(delay)
        return next(issued)

    login.calls = 0
    return login


class TestRhidSession:
    """Single-flight token refresh."""

    async def test_concurrent_callers_share_one_login(self):
        login = counting_login("tok-1")
        session = RhidSession(login)

        tokens = await asyncio.gather(*[session.get_token() for _ in range(10)])

        assert tokens == ["tok-1"] * 10
        assert login.calls == 1

    async def test_login_failure_reaches_every_waiter(self):
        calls = []

        async def login():
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("connection reset")

        session = RhidSession(login)
        results = await asyncio.gather(*[session.get_token() for _ in range(5)], return_exceptions=True)

        assert len(calls) == 1
        assert all(isinstance(r, AuthenticationError) for r in results)
        assert "connection reset" in str(results[0])
        assert session.token is None

    async def test_next_call_after_failure_retries(self):
        outcomes = [RuntimeError("down"), "tok-2"]

        async def login():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        session = RhidSession(login)
        with pytest.raises(AuthenticationError):
            await session.get_token()
        assert await session.get_token() == "tok-2"

    async def test_token_reused_until_safety_margin(self):
        clock = FakeClock()
        login = counting_login("tok-1", "tok-2", delay=0)
        session = RhidSession(login, ttl_seconds=3600, margin_seconds=60, clock=clock)

        assert await session.get_token() == "tok-1"
        clock.now += 3600 - 61
        assert await session.get_token() == "tok-1"
        clock.now += 1
        assert await session.get_token() == "tok-2"
        assert login.calls == 2

    async def test_invalidate_forces_refresh(self):
        login = counting_login("tok-1", "tok-2", delay=0)
        session = RhidSession(login)

        await session.get_token()
        session.invalidate("some-other-token")
        assert await session.get_token() == "tok-1"

        session.invalidate("tok-1")
        assert await session.get_token() == "tok-2"

    def test_expiry_from_jwt_claim(self):
        token = jwt.encode({"sub": "svc", "exp": 5_000}, "secret", algorithm="HS256")
        assert token_expiry(token, obtained_at=1_000, ttl_seconds=3600) == 5_000

    def test_expiry_falls_back_to_ttl(self):
        assert token_expiry("opaque-token", obtained_at=1_000, ttl_seconds=3600) == 4_600


# =============================================================================
# HTTP client against a local server
# =============================================================================

def rhid_app(state: dict) -> web.Application:
    async def login(request):
        body = await request.json()
        if body.get("password") != "secret":
            return web.Response(status=401, text="bad credentials")
        state["logins"] += 1
        return web.json_response({"accessToken": f"tok-{state['logins']}"})

    async def devices(request):
        state["device_queries"].append(dict(request.query))
        return web.json_response({
            "totalRecords": 1,
            "records": [{"id": 6, "name": "REP Portaria", "status": "OK"}],
        })

    async def download(request):
        state["downloads"].append(dict(request.query))
        if request.headers.get("Authorization") == "Bearer tok-1" and state.get("expire_first"):
            return web.Response(status=401, text="expired")
        return web.Response(text="0000000011\\r\\n0000000023")

    app = web.Application()
    app.router.add_post("/login", login)
    app.router.add_get("/device", devices)
    app.router.add_get("/report/afd/download", download)
    return app


@pytest.fixture
def rhid_state():
    return {"logins": 0, "device_queries": [], "downloads": []}


class TestRhidClient:
    async def test_list_devices(self, rhid_state):
        async with test_utils.TestServer(rhid_app(rhid_state)) as server:
            async with RhidClient(f"http://{server.host}:{server.port}/", "ops@example.com", "secret") as client:
                page = await client.list_devices(start=0, length=100)

        assert page.total_records == 1
        assert page.records[0].name == "REP Portaria"
        assert rhid_state["device_queries"] == [{"start": "0", "length": "100"}]
        assert rhid_state["logins"] == 1

    async def test_download_uses_report_date_format(self, rhid_state):
        async with test_utils.TestServer(rhid_app(rhid_state)) as server:
            async with RhidClient(f"http://{server.host}:{server.port}", "ops@example.com", "secret") as client:
                body = await client.download_afd(6, REFERENCE_DATE, REFERENCE_DATE)

        assert body.startswith("0000000011")
        assert rhid_state["downloads"] == [
            {"idEquipamento": "6", "dataIni": "03/01/2024", "dataFinal": "03/01/2024"},
        ]

    async def test_401_refreshes_token_and_retries_once(self, rhid_state):
        rhid_state["expire_first"] = True
        async with test_utils.TestServer(rhid_app(rhid_state)) as server:
            async with RhidClient(f"http://{server.host}:{server.port}", "ops@example.com", "secret") as client:
                await client.download_afd(6, REFERENCE_DATE, REFERENCE_DATE)
                assert client.auth.token.access_token == "tok-2"

        assert rhid_state["logins"] == 2
        assert len(rhid_state["downloads"]) == 2

    async def test_bad_credentials(self, rhid_state):
        async with test_utils.TestServer(rhid_app(rhid_state)) as server:
            async with RhidClient(f"http://{server.host}:{server.port}", "ops@example.com", "wrong") as client:
                with pytest.raises(AuthenticationError):
                    await client.list_devices()


# =============================================================================
# Discovery
# =============================================================================

def device_page(devices, total):
    return RhidDevicesResponse(
        records=[RhidDevice(id=i, name=f"REP {i}", status=s) for i, s in devices],
        total_records=total,
    )


class TestDeviceDiscovery:
    async def test_pages_until_every_target_seen(self):
        client = MagicMock()
        client.list_devices = AsyncMock(side_effect=[
            device_page([(i, "OK") for i in range(100, 200)], total=250),
            device_page([(6, "OK"), (9, "ERRO")] + [(i, "OK") for i in range(300, 398)], total=250),
            device_page([(7, "OK")], total=250),
        ])

        result = await DeviceDiscovery(client).discover([6, 9, 42])

        assert list(result.healthy) == [6]
        assert result.unhealthy[9].status == "ERRO"
        assert result.missing == [42]
        assert [c.kwargs["start"] for c in client.list_devices.await_args_list] == [0, 100, 200]
        assert all(c.kwargs["length"] == 100 for c in client.list_devices.await_args_list)

    async def test_stops_once_targets_found(self):
        client = MagicMock()
        client.list_devices = AsyncMock(return_value=device_page([(6, "OK")], total=500))

        devices = await DeviceDiscovery(client).find_healthy([6])

        assert [d.id for d in devices] == [6]
        assert client.list_devices.await_count == 1

    async def test_stops_on_empty_page(self):
        client = MagicMock()
        client.list_devices = AsyncMock(return_value=device_page([], total=1000))

        result = await DeviceDiscovery(client).discover([6])

        assert result.missing == [6]
        assert client.list_devices.await_count == 1

    async def test_page_errors_become_discovery_errors(self):
        client = MagicMock()
        client.list_devices = AsyncMock(side_effect=RhidApiError("boom", 500))

        with pytest.raises(DeviceDiscoveryError):
            await DeviceDiscovery(client).discover([6])

    async def test_authentication_errors_pass_through(self):
        client = MagicMock()
        client.list_devices = AsyncMock(side_effect=AuthenticationError("denied"))

        with pytest.raises(AuthenticationError):
            await DeviceDiscovery(client).discover([6])
