import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


# Load env early
load_dotenv()

# Logging configuration
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, log_level, logging.INFO),
)
logger = logging.getLogger("twitchrelay")

# Reduce noisy libraries
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
logging.getLogger("aiohttp.client").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)


# Renew the OAuth token this many seconds before it expires
OAUTH_RENEW_SECS = 60
# Bytes of a non-OK response body kept for diagnostics
RES_BUFLEN = 256
# Number of seen stream IDs remembered
CACHE_LEN = 10240
# Streams requested per poll; Helix caps a page at 100
STREAMS_PAGE_SIZE = 100


class Config:
    """Environment-derived defaults. CLI flags override these in app.parse_args."""

    # Twitch application credentials
    TWITCH_CLIENT_ID: str = os.getenv("TWITCH_CLIENT_ID", "").strip()
    TWITCH_SECRET: str = os.getenv("TWITCH_SECRET", "").strip()
    TWITCH_SECRET_FILE: str = os.getenv("TWITCH_SECRET_FILE", ".twitchrelay.secret")

    # What to watch and where to send it
    GAME_NAME: str = os.getenv("GAME_NAME", "").strip()
    GAME_ID: str = os.getenv("GAME_ID", "").strip()
    DISCORD_WEBHOOK_URL: str = os.getenv("DISCORD_WEBHOOK_URL", "").strip()

    POLL_SECS: float = float(os.getenv("POLL_SECS", "30"))
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "25"))

    # API Endpoint Configuration
    TWITCH_AUTH_URL: str = os.getenv("TWITCH_AUTH_URL", "https://id.twitch.tv/oauth2/token").strip()
    TWITCH_API_URL: str = os.getenv("TWITCH_API_URL", "https://api.twitch.tv/helix").strip()


@dataclass
class Settings:
    client_id: str
    webhook_url: str
    game_name: str = ""
    game_id: str = ""
    poll_secs: float = Config.POLL_SECS
    secret: str = ""
    secret_file: str = Config.TWITCH_SECRET_FILE
    auth_url: str = Config.TWITCH_AUTH_URL
    api_url: str = Config.TWITCH_API_URL
    http_timeout: float = Config.HTTP_TIMEOUT

    def validate(self) -> None:
        if not self.client_id:
            raise ConfigError("Please specify a Twitch Client ID (--twitch-id or TWITCH_CLIENT_ID)")
        if not self.webhook_url:
            raise ConfigError("Please specify a Discord webhook URL (--discord or DISCORD_WEBHOOK_URL)")
        if not self.game_id and not self.game_name:
            raise ConfigError("Need either a game ID (--game-id) or a game name (--game-name)")
        if self.poll_secs <= 0:
            raise ConfigError(f"Poll interval must be positive, got {self.poll_secs}")


def read_secret(settings: Settings) -> str:
    """Return the Twitch client secret.

    A secret set directly (TWITCH_SECRET) wins; otherwise it is read from
    settings.secret_file and surrounding whitespace is stripped.
    """
    if settings.secret:
        return settings.secret

    try:
        with open(settings.secret_file, "r") as f:
            secret = f.read().strip()
    except OSError as e:
        raise ConfigError(f"Error reading Twitch API secret from {settings.secret_file}: {e}") from e
    if not secret:
        raise ConfigError(f"No Twitch API secret read from {settings.secret_file}")
    logger.info(f"Read Twitch API secret from {settings.secret_file}")
    return secret


def settings_from_env(**overrides: Optional[object]) -> Settings:
    values = dict(
        client_id=Config.TWITCH_CLIENT_ID,
        webhook_url=Config.DISCORD_WEBHOOK_URL,
        game_name=Config.GAME_NAME,
        game_id=Config.GAME_ID,
        poll_secs=Config.POLL_SECS,
        secret=Config.TWITCH_SECRET,
        secret_file=Config.TWITCH_SECRET_FILE,
        auth_url=Config.TWITCH_AUTH_URL,
        api_url=Config.TWITCH_API_URL,
        http_timeout=Config.HTTP_TIMEOUT,
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
