"""TOTVS RM REST process client."""

import asyncio
import json
from datetime import date, datetime, timezone
from typing import Callable, Optional

import aiohttp

from connectors.erp_base import ErpImportConnector, is_success_sentinel
from connectors.totvs.descriptor import PROCESS_SERVER_NAME, build_import_descriptor
from core.errors import ErpTransportError, ImportRejectedError
from core.models.attendance import EquipmentMapping
from core.observability.logging import get_logger

logger = get_logger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


class TotvsProcessClient(ErpImportConnector):
    """Starts `PtoProcImportacaoBatidas` through the RM REST API.

    Args:
        base_url: RM REST host
        basic_auth: Pre-encoded Basic credentials
        import_path: Directory prefix the RM server reads AFD files from
        user: RM user the process runs as
        timeout_seconds: Total request timeout
    """

    def __init__(
        self,
        base_url: str,
        basic_auth: str,
        import_path: str,
        user: str = "PortalMatriculaInt",
        timeout_seconds: float = 60.0,
        today: Callable[[], date] = _today,
    ):
        self.base_url = base_url.rstrip("/")
        self.basic_auth = basic_auth
        self.import_path = import_path
        self.user = user
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._today = today
        self._http: Optional[aiohttp.ClientSession] = None

    @property
    def process_url(self) -> str:
        return f"{self.base_url}/rest/restprocess/executeprocess/{PROCESS_SERVER_NAME}"

    def file_path(self, file_name: str) -> str:
        return f"{self.import_path}{file_name}"

    async def close(self):
        if self._http is not None:
            await self._http.close()
            self._http = None

    async def trigger_import(
        self,
        equipment: EquipmentMapping,
        file_name: str,
        reference_date: date,
    ) -> str:
        descriptor = build_import_descriptor(
            equipment,
            file_path=self.file_path(file_name),
            reference_date=reference_date,
            system_date=self._today(),
            user=self.user,
        )

        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(timeout=self.timeout)

        logger.info(f"Triggering TOTVS import for company {equipment.company_code}: {file_name}")
        try:
            async with self._http.post(
                self.process_url,
                data=json.dumps(descriptor),
                headers={
                    "Authorization": f"Basic {self.basic_auth}",
                    "Content-Type": "text/plain",
                },
            ) as response:
                body = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ErpTransportError(f"TOTVS import request failed: {e}") from e

        logger.info(f"TOTVS response ({status}): {body}")

        if status >= 400:
            raise ErpTransportError(f"TOTVS import request failed: {status} - {body}")

        if not is_success_sentinel(_decode(body)):
            raise ImportRejectedError(
                f'TOTVS import returned a status other than "1": {body}',
                response_body=body,
            )
        return body


def _decode(body: str):
    """The endpoint answers `1`, `"1"` or plain `1` text; decode JSON when possible."""
    try:
        return json.loads(body)
    except ValueError:
        return body
