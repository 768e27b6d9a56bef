"""Twitch game stream relay.

Watches Twitch for live streams of one game and posts each new one to a
Discord webhook. Modules:
- config: environment, CLI-independent settings and logging
- errors: exception hierarchy
- http: session and Twitch request helpers
- auth: OAuth client-credentials token
- api: Twitch Helix surface (games, streams)
- state: seen-stream LRU set
- formatting: message building utilities
- notify: Discord webhook delivery
- watchers: poll loop
- app: CLI parsing and bootstrap
"""

from .config import Config, Settings, settings_from_env, read_secret, OAUTH_RENEW_SECS, CACHE_LEN, STREAMS_PAGE_SIZE
from .errors import (
    TwitchRelayError,
    ConfigError,
    RequestError,
    RateLimited,
    UpstreamError,
    DecodeError,
    TransportError,
    AuthError,
    GameNotFound,
    AmbiguousGame,
    ProtocolViolation,
)
from .http import make_session, request, build_headers
from .auth import Token, get_oauth
from .api import GameRef, Stream, get_games, resolve_game, get_game_by_id, get_streams
from .state import SeenStreams
from .formatting import fmt_stream_message, fmt_game_table
from .notify import DiscordNotifier, parse_retry_after
from .watchers import StreamWatcher
from .app import main, parse_args, find_game, run

__all__ = [
    # Config / errors
    "Config", "Settings", "settings_from_env", "read_secret", "OAUTH_RENEW_SECS", "CACHE_LEN", "STREAMS_PAGE_SIZE",
    "TwitchRelayError", "ConfigError", "RequestError", "RateLimited", "UpstreamError", "DecodeError",
    "TransportError", "AuthError", "GameNotFound", "AmbiguousGame", "ProtocolViolation",
    # HTTP / Twitch
    "make_session", "request", "build_headers", "Token", "get_oauth",
    "GameRef", "Stream", "get_games", "resolve_game", "get_game_by_id", "get_streams",
    # Dedup / Discord
    "SeenStreams", "fmt_stream_message", "fmt_game_table", "DiscordNotifier", "parse_retry_after",
    # Loop / App
    "StreamWatcher", "main", "parse_args", "find_game", "run",
]
