"""Shared-secret guard for the import triggers."""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException

from api.dependencies import get_settings
from core.config import Settings


async def require_api_key(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless `x-api-key` matches API_KEY.

    With API_KEY unset every request is rejected.
    """
    expected = settings.api_key
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
