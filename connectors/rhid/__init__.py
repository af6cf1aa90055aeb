"""RHiD terminal-management API connector."""

from connectors.rhid.auth import RhidSession, RhidToken
from connectors.rhid.client import RhidApiError, RhidClient
from connectors.rhid.discovery import DeviceDiscovery, DiscoveryResult
from connectors.rhid.models import RhidDevicesResponse, RhidLoginResponse

__all__ = [
    "RhidSession",
    "RhidToken",
    "RhidClient",
    "RhidApiError",
    "DeviceDiscovery",
    "DiscoveryResult",
    "RhidDevicesResponse",
    "RhidLoginResponse",
]
