from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import aiohttp

from .config import Config, STREAMS_PAGE_SIZE
from .errors import AmbiguousGame, DecodeError, GameNotFound
from .http import request


@dataclass(frozen=True)
class GameRef:
    name: str
    id: str


@dataclass(frozen=True)
class Stream:
    id: str
    broadcaster_name: str
    title: str
    language: str
    broadcaster_login: str = ""

    @classmethod
    def from_helix(cls, item: Dict[str, Any]) -> "Stream":
        return cls(
            id=str(item.get("id", "")),
            broadcaster_name=item.get("user_name") or "",
            title=item.get("title") or "",
            language=item.get("language") or "",
            broadcaster_login=item.get("user_login") or "",
        )

    @property
    def url(self) -> str:
        return f"https://twitch.tv/{self.broadcaster_login or self.broadcaster_name}"


def _data(body: Any, url: str) -> List[Dict[str, Any]]:
    if not isinstance(body, dict) or not isinstance(body.get("data", []), list):
        raise DecodeError(f"unexpected response shape from {url}")
    data = body.get("data", [])
    for item in data:
        if not isinstance(item, dict):
            raise DecodeError(f"unexpected item {item!r} in response from {url}")
    return data


async def get_games(
    session: aiohttp.ClientSession,
    client_id: str,
    oauth: str,
    params: Dict[str, str],
    base: str = Config.TWITCH_API_URL,
) -> List[GameRef]:
    url = f"{base}/games"
    body = await request(session, url, client_id, oauth, "GET", params)
    return [GameRef(name=d.get("name", ""), id=str(d.get("id", ""))) for d in _data(body, url)]


async def resolve_game(
    session: aiohttp.ClientSession,
    client_id: str,
    oauth: str,
    name: str,
    base: str = Config.TWITCH_API_URL,
) -> GameRef:
    """Map a game name to its Twitch game.

    Raises GameNotFound on no match and AmbiguousGame on more than one;
    the caller shows the candidates to a human instead of guessing.
    """
    games = await get_games(session, client_id, oauth, {"name": name}, base)
    if not games:
        raise GameNotFound(name)
    if len(games) == 1:
        return games[0]
    raise AmbiguousGame(name, [(g.id, g.name) for g in games])


async def get_game_by_id(
    session: aiohttp.ClientSession,
    client_id: str,
    oauth: str,
    game_id: str,
    base: str = Config.TWITCH_API_URL,
) -> GameRef:
    games = await get_games(session, client_id, oauth, {"id": game_id}, base)
    if not games:
        raise GameNotFound(game_id)
    return games[0]


async def get_streams(
    session: aiohttp.ClientSession,
    client_id: str,
    oauth: str,
    game_id: str,
    base: str = Config.TWITCH_API_URL,
) -> List[Stream]:
    url = f"{base}/streams"
    body = await request(
        session,
        url,
        client_id,
        oauth,
        "GET",
        {"game_id": game_id, "first": str(STREAMS_PAGE_SIZE)},
    )
    return [Stream.from_helix(item) for item in _data(body, url)]
