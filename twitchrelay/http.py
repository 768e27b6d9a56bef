from __future__ import annotations

import asyncio
from typing import Any, Dict

import aiohttp

from .config import Config, RES_BUFLEN
from .errors import DecodeError, RateLimited, TransportError, UpstreamError


def build_headers(client_id: str = "", oauth: str = "") -> Dict[str, str]:
    h = {
        "accept": "application/json",
        "content-type": "application/x-www-form-urlencoded",
    }
    if client_id:
        h["Client-ID"] = client_id
    if oauth:
        h["Authorization"] = f"Bearer {oauth}"
    return h


def make_session(timeout_secs: float = Config.HTTP_TIMEOUT) -> aiohttp.ClientSession:
    timeout = aiohttp.ClientTimeout(total=timeout_secs)
    return aiohttp.ClientSession(
        timeout=timeout,
        trust_env=True,
    )


async def _read_prefix(r: aiohttp.ClientResponse, limit: int) -> bytes:
    # StreamReader.read(n) may return a short chunk before EOF
    body = b""
    while len(body) < limit:
        chunk = await r.content.read(limit - len(body))
        if not chunk:
            break
        body += chunk
    return body


async def request(
    session: aiohttp.ClientSession,
    url: str,
    client_id: str,
    oauth: str,
    method: str,
    params: Dict[str, str],
) -> Any:
    """Send a request to the Twitch API and return the decoded JSON body.

    GET parameters go in the query string, POST parameters are form-encoded
    in the body. Raises RateLimited on 429, UpstreamError on any other
    non-2xx status, DecodeError on a malformed body and TransportError when
    the request never completes. Retrying is left to the caller.
    """
    if method == "GET":
        kwargs: Dict[str, Any] = {"params": params}
    elif method == "POST":
        kwargs = {"data": params}
    else:
        raise ValueError(f"unsupported method {method}")

    try:
        async with session.request(method, url, headers=build_headers(client_id, oauth), **kwargs) as r:
            if r.status == 429:
                raise RateLimited(url)
            if not 200 <= r.status < 300:
                body = await _read_prefix(r, RES_BUFLEN)
                raise UpstreamError(url, r.status, r.reason or "", body.decode("utf-8", errors="replace"))
            try:
                return await r.json(content_type=None)
            except ValueError as e:
                raise DecodeError(f"unmarshalling response from {url}: {e}") from e
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"{method} request to {url}: {e!r}") from e
