"""RHiD session management.

The RHiD API hands out a bearer token on login. One `RhidSession` is shared
by every concurrent request of a worker process: the first caller that finds
the token missing or expired starts a refresh, and every other caller waits
for that same refresh and gets its outcome (token or error).
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from jose import JWTError, jwt

from core.errors import AuthenticationError
from core.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RhidToken:
    """Bearer token with expiration tracking."""
    access_token: str
    expires_at: float

    def is_expired(self, now: float, margin_seconds: float = 60.0) -> bool:
        """Expired, or expiring within `margin_seconds`."""
        return now >= self.expires_at - margin_seconds

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


def token_expiry(access_token: str, obtained_at: float, ttl_seconds: float) -> float:
    """Expiration time of a token: its JWT `exp` claim, else obtained_at + ttl."""
    try:
        claims = jwt.get_unverified_claims(access_token)
    except JWTError:
        return obtained_at + ttl_seconds
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return float(exp)
    return obtained_at + ttl_seconds


class RhidSession:
    """Single-flight token holder.

    Args:
        login: Coroutine function performing the login call and returning
            the raw access token
        ttl_seconds: Lifetime assumed for tokens without an `exp` claim
        margin_seconds: Refresh this long before the token expires
        clock: Returns the current Unix time
    """

    def __init__(
        self,
        login: Callable[[], Awaitable[str]],
        ttl_seconds: float = 3600.0,
        margin_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self._login = login
        self.ttl_seconds = ttl_seconds
        self.margin_seconds = margin_seconds
        self._clock = clock
        self._token: Optional[RhidToken] = None
        self._lock = asyncio.Lock()
        self._refresh: Optional[asyncio.Future] = None

    @property
    def token(self) -> Optional[RhidToken]:
        return self._token

    def _valid_token(self) -> Optional[RhidToken]:
        token = self._token
        if token is not None and not token.is_expired(self._clock(), self.margin_seconds):
            return token
        return None

    async def get_token(self) -> str:
        """Return a non-expired access token, logging in if needed.

        Raises:
            AuthenticationError: If the login fails
        """
        token = self._valid_token()
        if token is not None:
            return token.access_token

        async with self._lock:
            token = self._valid_token()
            if token is not None:
                return token.access_token
            if self._refresh is None:
                self._refresh = asyncio.ensure_future(self._do_refresh())
            refresh = self._refresh

        # Shielded so a cancelled waiter does not cancel the shared refresh
        return await asyncio.shield(refresh)

    async def _do_refresh(self) -> str:
        try:
            logger.info("Authenticating against RHiD API...")
            try:
                access_token = await self._login()
            except AuthenticationError:
                raise
            except Exception as e:
                raise AuthenticationError(f"RHiD authentication failed: {e}") from e

            obtained_at = self._clock()
            self._token = RhidToken(
                access_token=access_token,
                expires_at=token_expiry(access_token, obtained_at, self.ttl_seconds),
            )
            logger.info("RHiD authentication succeeded")
            return access_token
        finally:
            self._refresh = None

    def invalidate(self, access_token: Optional[str] = None):
        """Drop the cached token (only if it is still `access_token`, when given)."""
        if self._token is None:
            return
        if access_token is None or self._token.access_token == access_token:
            self._token = None
