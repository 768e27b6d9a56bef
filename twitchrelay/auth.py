from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .config import Config, OAUTH_RENEW_SECS
from .errors import AuthError, RequestError
from .http import request


@dataclass(frozen=True)
class Token:
    value: str
    expires_at: float

    def needs_renewal(self, now: float, margin: float = OAUTH_RENEW_SECS) -> bool:
        return now >= self.expires_at - margin


def _parse_expires_in(raw) -> int:
    # Twitch sends an integer; be lenient about it arriving as a string
    if isinstance(raw, bool):
        raise ValueError(f"expires_in is not a number: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(f"expires_in is not a whole number of seconds: {raw!r}")
        return int(raw)
    if isinstance(raw, str):
        return int(raw.strip())
    raise ValueError(f"expires_in is not an integer: {raw!r}")


async def get_oauth(
    session: aiohttp.ClientSession,
    client_id: str,
    secret: str,
    url: str = Config.TWITCH_AUTH_URL,
    now: Optional[float] = None,
) -> Token:
    """Exchange the client id and secret for an app access token.

    Keeps no state: the caller decides when a token needs renewing.
    """
    try:
        data = await request(
            session,
            url,
            client_id,
            "",
            "POST",
            {
                "client_id": client_id,
                "client_secret": secret,
                "grant_type": "client_credentials",
            },
        )
    except RequestError as e:
        raise AuthError(f"requesting OAuth token: {e}") from e

    if not isinstance(data, dict) or not data.get("access_token"):
        raise AuthError("OAuth response has no access_token")
    try:
        expires_in = _parse_expires_in(data.get("expires_in"))
    except ValueError as e:
        raise AuthError(f"decoding expiry time: {e}") from e

    if now is None:
        now = time.time()
    return Token(value=data["access_token"], expires_at=now + expires_in)
