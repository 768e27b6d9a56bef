"""Fake Twitch and Discord endpoints served by a local aiohttp test server."""

import asyncio
import contextlib
from typing import Any, Dict, List, Tuple

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@contextlib.asynccontextmanager
async def serve(app: web.Application):
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


def make_stream(stream_id: str, user: str = "", title: str = "", language: str = "en") -> Dict[str, Any]:
    user = user or f"user_{stream_id}"
    return {
        "id": stream_id,
        "user_name": user,
        "user_login": user.lower(),
        "title": title or f"Playing with {user}",
        "language": language,
    }


class FakeTwitch:
    """Token, games and streams endpoints with scripted answers."""

    def __init__(self) -> None:
        self.access_token = "tok-1"
        self.expires_in: Any = 3600
        self.token_status = 200
        self.games: List[Dict[str, str]] = []
        # one list per poll; the last one repeats
        self.stream_pages: List[List[Dict[str, Any]]] = [[]]
        self.streams_status = 200
        self.token_requests: List[Dict[str, str]] = []
        self.games_requests: List[Dict[str, str]] = []
        self.streams_requests: List[Tuple[Dict[str, str], Dict[str, str]]] = []

    async def token(self, request: web.Request) -> web.Response:
        self.token_requests.append(dict(await request.post()))
        if self.token_status != 200:
            return web.Response(status=self.token_status, text="invalid client")
        return web.json_response({"access_token": self.access_token, "expires_in": self.expires_in})

    async def get_games(self, request: web.Request) -> web.Response:
        self.games_requests.append(dict(request.query))
        return web.json_response({"data": self.games})

    async def get_streams(self, request: web.Request) -> web.Response:
        self.streams_requests.append((dict(request.query), dict(request.headers)))
        if self.streams_status != 200:
            return web.Response(status=self.streams_status, text="slow down")
        idx = min(len(self.streams_requests), len(self.stream_pages)) - 1
        return web.json_response({"data": self.stream_pages[idx]})

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/oauth2/token", self.token)
        app.router.add_get("/helix/games", self.get_games)
        app.router.add_get("/helix/streams", self.get_streams)
        return app

    @contextlib.asynccontextmanager
    async def serve(self):
        async with serve(self.app()) as server:
            yield str(server.make_url("/oauth2/token")), str(server.make_url("/helix"))


class FakeDiscord:
    """Webhook that answers from a script of (status, body) pairs, then 204s."""

    def __init__(self) -> None:
        self.script: List[Tuple[int, str]] = []
        self.posts: List[Tuple[float, str]] = []
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def webhook(self, request: web.Request) -> web.Response:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            form = await request.post()
            self.posts.append((asyncio.get_running_loop().time(), form.get("content", "")))
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.script:
                status, body = self.script.pop(0)
                return web.Response(status=status, text=body, content_type="application/json")
            return web.Response(status=204)
        finally:
            self.in_flight -= 1

    @property
    def contents(self) -> List[str]:
        return [content for _, content in self.posts]

    @contextlib.asynccontextmanager
    async def serve(self):
        app = web.Application()
        app.router.add_post("/api/webhooks/1/abc", self.webhook)
        async with serve(app) as server:
            yield str(server.make_url("/api/webhooks/1/abc"))


@pytest.fixture
def fake_twitch() -> FakeTwitch:
    return FakeTwitch()


@pytest.fixture
def fake_discord() -> FakeDiscord:
    return FakeDiscord()
