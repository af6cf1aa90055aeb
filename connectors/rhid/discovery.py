"""Device discovery over the paginated RHiD catalog."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from connectors.rhid.client import RhidClient
from core.errors import AuthenticationError, DeviceDiscoveryError
from core.models.attendance import RemoteDevice
from core.observability.logging import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 100


@dataclass
class DiscoveryResult:
    """Outcome of a discovery pass.

    Attributes:
        healthy: Target devices with status OK, by id
        unhealthy: Target devices returned with any other status, by id
        missing: Target ids the API never returned
    """
    healthy: Dict[int, RemoteDevice] = field(default_factory=dict)
    unhealthy: Dict[int, RemoteDevice] = field(default_factory=dict)
    missing: List[int] = field(default_factory=list)

    @property
    def devices(self) -> List[RemoteDevice]:
        return list(self.healthy.values())


class DeviceDiscovery:
    """Looks up terminals by id, keeping only healthy ones."""

    def __init__(self, client: RhidClient, page_size: int = PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    async def discover(self, device_ids: Iterable[int]) -> DiscoveryResult:
        """Page through GET /device until every target id has been seen.

        Raises:
            AuthenticationError: If the session cannot be established
            DeviceDiscoveryError: If a page cannot be fetched
        """
        targets = list(dict.fromkeys(device_ids))
        wanted = set(targets)
        result = DiscoveryResult()
        start = 0

        while wanted:
            try:
                page = await self.client.list_devices(start=start, length=self.page_size)
            except AuthenticationError:
                raise
            except Exception as e:
                raise DeviceDiscoveryError(f"Failed to list RHiD devices: {e}") from e

            for record in page.records:
                if record.id not in wanted:
                    continue
                wanted.discard(record.id)
                device = record.to_remote()
                if device.is_healthy:
                    result.healthy[device.id] = device
                else:
                    logger.warning(f"Device {device.id} ({device.name}) has invalid status: {device.status}")
                    result.unhealthy[device.id] = device

            start += self.page_size
            if not page.records or start >= page.total_records:
                break

        result.missing = [device_id for device_id in targets if device_id in wanted]
        if result.missing:
            logger.warning(f"Devices not found in RHiD API: {', '.join(str(i) for i in result.missing)}")

        return result

    async def find_healthy(self, device_ids: Iterable[int]) -> List[RemoteDevice]:
        """The matched subset: target devices whose status is OK."""
        return (await self.discover(device_ids)).devices
