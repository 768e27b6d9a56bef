from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

import aiohttp

from .api import GameRef, Stream, get_streams
from .auth import Token
from .config import Config, STREAMS_PAGE_SIZE, logger
from .errors import AuthError, RateLimited, RequestError
from .notify import DiscordNotifier


TokenSource = Callable[[], Awaitable[Token]]


class StreamWatcher:
    """Polls Twitch for live streams of one game and hands them to the notifier.

    The watcher is the only reader and writer of the current token. It asks
    token_source for a new one when the clock enters the renewal margin.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        client_id: str,
        game: GameRef,
        notifier: DiscordNotifier,
        token_source: TokenSource,
        poll_secs: float = Config.POLL_SECS,
        api_url: str = Config.TWITCH_API_URL,
        token: Optional[Token] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.session = session
        self.client_id = client_id
        self.game = game
        self.notifier = notifier
        self.token_source = token_source
        self.poll_secs = poll_secs
        self.api_url = api_url
        self.token = token
        self.clock = clock
        self.warned_about_max_streams = False
        self.stop_event = asyncio.Event()

    async def ensure_token(self) -> bool:
        if self.token is not None and not self.token.needs_renewal(self.clock()):
            return True
        try:
            self.token = await self.token_source()
        except AuthError as e:
            logger.error(f"Error getting OAuth token: {e}")
            return False
        logger.info("Got new OAuth token")
        return True

    def check_page_limit(self, count: int) -> None:
        if count < STREAMS_PAGE_SIZE or self.warned_about_max_streams:
            return
        self.warned_about_max_streams = True
        logger.warning(f"Got {count} streams, but there may be more than one page can show")

    async def poll_once(self) -> Optional[List[Stream]]:
        """Run one fetch-and-dispatch cycle. Returns None when the cycle was skipped."""
        if not await self.ensure_token():
            return None

        try:
            streams = await get_streams(
                self.session, self.client_id, self.token.value, self.game.id, self.api_url
            )
        except RateLimited:
            logger.warning("Rate-limiting in effect: increase the poll interval (--interval)")
            return None
        except RequestError as e:
            logger.error(f"Error getting streams list: {e}")
            return None

        logger.debug(f"Fetched {len(streams)} streams for game {self.game.id}")
        self.notifier.dispatch(streams)
        self.check_page_limit(len(streams))
        return streams

    def stop(self) -> None:
        self.stop_event.set()

    async def _sleep(self) -> None:
        # Wake early on stop or when the notifier has failed fatally
        waiters = [
            asyncio.create_task(self.stop_event.wait()),
            asyncio.create_task(self.notifier.failed.wait()),
        ]
        try:
            await asyncio.wait(waiters, timeout=self.poll_secs, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                task.cancel()

    async def run(self) -> None:
        """Poll until stopped. Raises the notifier's ProtocolViolation if one occurs."""
        logger.info(f"Watching Twitch for {self.game.name} streams (game ID {self.game.id}) every {self.poll_secs}s")
        while not self.stop_event.is_set():
            await self.poll_once()
            await self._sleep()
            if self.notifier.fatal_error is not None:
                raise self.notifier.fatal_error
        logger.info("Stream watcher stopped")
