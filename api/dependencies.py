"""FastAPI dependency providers.

Routes depend on these instead of module globals so tests can swap them with
`app.dependency_overrides`.
"""

import asyncio
from typing import Optional

from afd_import.services import Services, get_services as _get_services
from core.config import Settings
from core.workflow.bus import MessageBus


_bus: Optional[MessageBus] = None
_bus_lock = asyncio.Lock()


def get_services() -> Services:
    return _get_services()


def get_settings() -> Settings:
    return get_services().settings


async def get_bus() -> MessageBus:
    """Temporal-backed bus, connected on first use."""
    global _bus
    async with _bus_lock:
        if _bus is None:
            from temporal_client import get_temporal_client
            from core.workflow.temporal_bus import TemporalMessageBus

            _bus = TemporalMessageBus(await get_temporal_client())
    return _bus
