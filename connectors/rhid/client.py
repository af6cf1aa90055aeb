"""RHiD HTTP Client.

Low-level client for the three RHiD endpoints the import pipeline uses:
login, the paginated device catalog and the AFD download.
"""

from datetime import date
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from connectors.rhid.auth import RhidSession
from connectors.rhid.models import RhidDevicesResponse, RhidLoginResponse
from core.errors import AuthenticationError
from core.observability.logging import get_logger

logger = get_logger(__name__)


class RhidApiError(Exception):
    """Non-success answer from the RHiD API."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


def format_rhid_date(value: date) -> str:
    """RHiD report dates are MM/DD/YYYY."""
    return value.strftime("%m/%d/%Y")


class RhidClient:
    """HTTP client for the RHiD API.

    Usage:
        client = RhidClient(base_url, username, password)
        async with client:
            page = await client.list_devices(start=0, length=100)
            afd = await client.download_afd(6, date(2024, 3, 1), date(2024, 3, 1))
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout_seconds: float = 60.0,
        token_ttl_seconds: float = 3600.0,
        session: Optional[RhidSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.auth = session or RhidSession(self.login, ttl_seconds=token_ttl_seconds)
        self._http: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "RhidClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def connect(self):
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        if self._http is not None:
            await self._http.close()
            self._http = None

    async def _client(self) -> aiohttp.ClientSession:
        await self.connect()
        return self._http

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def login(self) -> str:
        """POST /login and return the access token.

        Raises:
            AuthenticationError: On a non-2xx answer or a malformed body
        """
        http = await self._client()
        async with http.post(
            f"{self.base_url}/login",
            json={"email": self.username, "password": self.password},
        ) as response:
            body = await response.text()
            if response.status >= 400:
                raise AuthenticationError(f"RHiD login failed: {response.status} - {body}")
            try:
                return RhidLoginResponse.model_validate_json(body).access_token
            except ValidationError as e:
                raise AuthenticationError(f"Unexpected RHiD login response: {e}") from e

    async def list_devices(self, start: int = 0, length: int = 100) -> RhidDevicesResponse:
        """GET /device page."""
        body = await self._authorized_get("/device", {"start": start, "length": length})
        try:
            return RhidDevicesResponse.model_validate_json(body)
        except ValidationError as e:
            raise RhidApiError(f"Unexpected RHiD device page: {e}", response_body=body) from e

    async def download_afd(self, device_id: int, start_date: date, end_date: date) -> str:
        """GET /report/afd/download for a device and an inclusive date window."""
        return await self._authorized_get(
            "/report/afd/download",
            {
                "idEquipamento": device_id,
                "dataIni": format_rhid_date(start_date),
                "dataFinal": format_rhid_date(end_date),
            },
        )

    # =========================================================================
    # Request helpers
    # =========================================================================

    async def _authorized_get(self, path: str, params: Dict[str, Any]) -> str:
        """GET with the session token; a 401 refreshes the token and retries once."""
        http = await self._client()
        url = f"{self.base_url}{path}"

        for attempt in range(2):
            token = await self.auth.get_token()
            async with http.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            ) as response:
                body = await response.text()

                if response.status == 401 and attempt == 0:
                    logger.warning(f"Got 401 from {path}, refreshing token...")
                    self.auth.invalidate(token)
                    continue

                if response.status >= 400:
                    raise RhidApiError(
                        f"RHiD API error {response.status} on {path}: {body}",
                        response.status,
                        body,
                    )
                return body

        raise RhidApiError(f"RHiD API rejected refreshed token on {path}", 401)
