"""Incoming-webhook client for the operators' chat space."""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from core.errors import NotificationDeliveryError
from core.observability.logging import get_logger

logger = get_logger(__name__)


class ChatWebhookClient:
    """Posts `{"text": ...}` messages to a chat space webhook."""

    def __init__(self, webhook_url: str, timeout_seconds: float = 60.0):
        self.webhook_url = webhook_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def send(self, text: str) -> Dict[str, Any]:
        """Deliver one message.

        Raises:
            NotificationDeliveryError: Non-2xx answer or transport failure
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    self.webhook_url,
                    json={"text": text},
                    headers={"Content-Type": "application/json; charset=UTF-8"},
                ) as response:
                    body = await response.text()
                    if response.status >= 400:
                        raise NotificationDeliveryError(
                            f"Chat webhook answered {response.status}: {body}",
                            status_code=response.status,
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationDeliveryError(f"Chat webhook request failed: {e}") from e

        logger.info("Chat notification delivered")
        return _parse(body)


def _parse(body: str) -> Dict[str, Any]:
    try:
        parsed: Optional[Any] = json.loads(body) if body else {}
    except ValueError:
        return {"raw": body}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}
