from __future__ import annotations

import asyncio
import json
import math
from typing import Iterable, List, Optional, Set

import aiohttp

from .api import Stream
from .config import logger
from .errors import ProtocolViolation
from .formatting import fmt_stream_message
from .state import SeenStreams


def parse_retry_after(body: bytes) -> float:
    """Return the wait in milliseconds from a Discord 429 body.

    Anything other than a non-negative number (or a string holding one)
    means Discord changed its rate-limit format, which is not retried.
    """
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ProtocolViolation(f"Error parsing Discord rate-limiting message {body[:200]!r}: {e}") from e
    if not isinstance(payload, dict) or "retry_after" not in payload:
        raise ProtocolViolation(f"Discord rate-limiting message has no retry_after: {body[:200]!r}")

    raw = payload["retry_after"]
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ProtocolViolation(f"Error parsing Discord rate-limit wait time {raw!r}")
    try:
        wait = float(raw)
    except ValueError as e:
        raise ProtocolViolation(f"Error parsing Discord rate-limit wait time {raw!r}: {e}") from e
    if math.isnan(wait) or math.isinf(wait) or wait < 0:
        raise ProtocolViolation(f"Discord rate-limit wait time out of range: {raw!r}")
    return wait


class DiscordNotifier:
    """Announces new streams to a Discord webhook.

    Every POST to the webhook happens while holding self.lock, so Discord
    never sees more than one request at a time from this process. A
    malformed 429 response is fatal: it is stored in fatal_error and the
    failed event is set for the watcher to act on.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        webhook_url: str,
        game_name: str,
        seen: SeenStreams,
        lock: Optional[asyncio.Lock] = None,
    ) -> None:
        self.session = session
        self.webhook_url = webhook_url
        self.game_name = game_name
        self.seen = seen
        self.lock = lock or asyncio.Lock()
        self.failed = asyncio.Event()
        self.fatal_error: Optional[ProtocolViolation] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def new_streams(self, streams: Iterable[Stream]) -> List[Stream]:
        return [s for s in streams if not self.seen.check_and_mark(s.id)]

    def dispatch(self, streams: Iterable[Stream]) -> List[asyncio.Task]:
        """Start one delivery task per stream not seen before.

        All dedup checks finish before the first task is created. The
        returned tasks are also tracked for wait_idle.
        """
        fresh = self.new_streams(streams)
        tasks: List[asyncio.Task] = []
        for stream in fresh:
            logger.info(
                f"New Stream: [Game:{self.game_name}] [ID:{stream.id}] "
                f"[User:{stream.broadcaster_name!r}] [Title:{stream.title!r}]"
            )
            task = asyncio.create_task(self.send(stream))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
            tasks.append(task)
        return tasks

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if isinstance(exc, ProtocolViolation):
            if self.fatal_error is None:
                self.fatal_error = exc
            self.failed.set()
            return
        logger.error(f"Discord delivery task crashed: {exc!r}", exc_info=exc)

    async def send(self, stream: Stream) -> bool:
        """Deliver one stream, retrying for as long as Discord asks us to wait.

        Returns True once Discord accepts the message and False when it is
        abandoned after a network error or an unexpected status.
        """
        content = fmt_stream_message(self.game_name, stream)

        async with self.lock:
            delay_ms = 0.0
            while True:
                if delay_ms:
                    await asyncio.sleep(delay_ms / 1000)
                try:
                    async with self.session.post(self.webhook_url, data={"content": content}) as r:
                        if 200 <= r.status < 300:
                            logger.debug(f"Sent stream {stream.id} to Discord")
                            return True
                        if r.status == 429:
                            delay_ms = parse_retry_after(await r.read())
                            logger.info(f"Discord rate limit hit, retrying stream {stream.id} in {delay_ms:.0f}ms")
                            continue
                        logger.warning(f"Unexpected Discord response for stream {stream.id}: {r.status} {r.reason}")
                        return False
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.error(f"Error sending stream {stream.id} to Discord: {e!r}")
                    return False
