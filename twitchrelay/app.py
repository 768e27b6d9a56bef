from __future__ import annotations

import argparse
import asyncio
import functools
import sys
from typing import List, Optional

import aiohttp

from .api import GameRef, get_game_by_id, resolve_game
from .auth import Token, get_oauth
from .config import Config, Settings, logger, read_secret, settings_from_env
from .errors import AmbiguousGame, AuthError, ConfigError, ProtocolViolation, TwitchRelayError
from .formatting import fmt_game_table
from .http import make_session
from .notify import DiscordNotifier
from .state import SeenStreams
from .watchers import StreamWatcher


def parse_args(argv: Optional[List[str]] = None) -> Settings:
    parser = argparse.ArgumentParser(
        description=(
            "Polls Twitch for streams for a specific game, specified either by game name "
            "or game ID, and when a new stream is started reports it to a Discord webhook."
        ),
    )
    parser.add_argument("--game-name", default=None, metavar="NAME", help="Twitch game name")
    parser.add_argument("--game-id", default=None, metavar="ID", help="Twitch game ID")
    parser.add_argument("--discord", default=None, metavar="URL", help="Discord webhook URL")
    parser.add_argument("--twitch-id", default=None, metavar="ID", help="Twitch client ID")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECS",
        help=f"Twitch poll interval in seconds (default: {Config.POLL_SECS:g})",
    )
    parser.add_argument(
        "--secret",
        default=None,
        metavar="FILE",
        help=f"Twitch secret file (default: {Config.TWITCH_SECRET_FILE})",
    )
    args = parser.parse_args(argv)
    return settings_from_env(
        client_id=args.twitch_id,
        webhook_url=args.discord,
        game_name=args.game_name,
        game_id=args.game_id,
        poll_secs=args.interval,
        secret_file=args.secret,
    )


async def find_game(session: aiohttp.ClientSession, settings: Settings, token: Token) -> GameRef:
    """Work out which game to watch, exiting with status 1 on an ambiguous name."""
    if settings.game_id:
        if settings.game_name:
            return GameRef(name=settings.game_name, id=settings.game_id)
        try:
            return await get_game_by_id(session, settings.client_id, token.value, settings.game_id, settings.api_url)
        except TwitchRelayError as e:
            logger.warning(f"Could not look up name for game ID {settings.game_id}: {e}")
            return GameRef(name=settings.game_id, id=settings.game_id)

    try:
        game = await resolve_game(session, settings.client_id, token.value, settings.game_name, settings.api_url)
    except AmbiguousGame as e:
        print(fmt_game_table(e.name, e.candidates))
        raise SystemExit(1)
    logger.info(f"Game ID: {game.id}")
    return game


async def run(settings: Settings, secret: str) -> None:
    async with make_session(settings.http_timeout) as session:
        token_source = functools.partial(get_oauth, session, settings.client_id, secret, settings.auth_url)

        try:
            token = await token_source()
        except AuthError as e:
            logger.critical(f"Error getting OAuth token: {e}")
            raise SystemExit(1)
        logger.info("Got initial Twitch OAuth token")

        try:
            game = await find_game(session, settings, token)
        except TwitchRelayError as e:
            logger.critical(f"Error getting game ID for {settings.game_name!r}: {e}")
            raise SystemExit(1)

        notifier = DiscordNotifier(session, settings.webhook_url, game.name, SeenStreams())
        watcher = StreamWatcher(
            session,
            settings.client_id,
            game,
            notifier,
            token_source,
            poll_secs=settings.poll_secs,
            api_url=settings.api_url,
            token=token,
        )
        try:
            await watcher.run()
        except ProtocolViolation as e:
            logger.critical(f"Discord protocol violation: {e}")
            raise SystemExit(1)


def main(argv: Optional[List[str]] = None) -> None:
    settings = parse_args(argv)
    try:
        settings.validate()
        secret = read_secret(settings)
    except ConfigError as e:
        logger.critical(str(e))
        raise SystemExit(1)

    try:
        asyncio.run(run(settings, secret))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        sys.exit(0)
