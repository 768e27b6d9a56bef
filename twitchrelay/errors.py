from __future__ import annotations

from typing import List, Tuple


class TwitchRelayError(Exception):
    """Base class for every error raised by twitchrelay."""


class ConfigError(TwitchRelayError):
    """Missing or invalid startup configuration. Always fatal."""


class RequestError(TwitchRelayError):
    """A Twitch API call failed. Raised by http.request, never logged there."""


class RateLimited(RequestError):
    def __init__(self, url: str) -> None:
        super().__init__(f"HTTP requests to {url} are being made too frequently")
        self.url = url


class UpstreamError(RequestError):
    def __init__(self, url: str, status: int, reason: str, body: str = "") -> None:
        msg = f"non-OK response {status} {reason}".rstrip()
        if body:
            msg += f": {body!r}"
        super().__init__(msg)
        self.url = url
        self.status = status
        self.reason = reason
        self.body = body


class DecodeError(RequestError):
    pass


class TransportError(RequestError):
    pass


class AuthError(TwitchRelayError):
    """Getting an OAuth token failed."""


class GameNotFound(TwitchRelayError):
    def __init__(self, name: str) -> None:
        super().__init__(f"no ID found for game {name!r}")
        self.name = name


class AmbiguousGame(TwitchRelayError):
    def __init__(self, name: str, candidates: List[Tuple[str, str]]) -> None:
        super().__init__(f"found {len(candidates)} possible game IDs for {name!r}")
        self.name = name
        # (id, name) pairs in the order Twitch returned them
        self.candidates = candidates


class ProtocolViolation(TwitchRelayError):
    """The remote side answered in a way its documented protocol does not allow."""
