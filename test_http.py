import logging

import pytest
from aiohttp import web
from aiohttp.test_utils import unused_port

from twitchrelay import (
    DecodeError,
    RateLimited,
    TransportError,
    UpstreamError,
    build_headers,
    make_session,
    request,
)
from twitchrelay.config import RES_BUFLEN

from conftest import serve


def echo_app() -> web.Application:
    async def echo(req: web.Request) -> web.Response:
        form = dict(await req.post()) if req.method == "POST" else {}
        return web.json_response({
            "method": req.method,
            "query": dict(req.query),
            "form": form,
            "client_id": req.headers.get("Client-ID"),
            "authorization": req.headers.get("Authorization"),
        })

    async def limited(req: web.Request) -> web.Response:
        return web.Response(status=429, text='{"message": "Too Many Requests"}')

    async def huge(req: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse(status=502)
        await resp.prepare(req)
        await resp.write(b"y" * 10)
        await resp.write(b"z" * (2 * 1024 * 1024))
        await resp.write_eof()
        return resp

    async def broken(req: web.Request) -> web.Response:
        return web.Response(status=500, text="x" * 1000)

    async def empty_error(req: web.Request) -> web.Response:
        return web.Response(status=404)

    async def garbage(req: web.Request) -> web.Response:
        return web.Response(status=200, text="{not json", content_type="application/json")

    app = web.Application()
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/limited", limited)
    app.router.add_get("/broken", broken)
    app.router.add_get("/huge", huge)
    app.router.add_get("/missing", empty_error)
    app.router.add_get("/garbage", garbage)
    return app


def test_build_headers_only_sets_supplied_credentials():
    h = build_headers()
    assert "Client-ID" not in h
    assert "Authorization" not in h

    h = build_headers("cid", "tok")
    assert h["Client-ID"] == "cid"
    assert h["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_get_sends_params_in_query_string():
    async with serve(echo_app()) as server, make_session() as session:
        body = await request(session, str(server.make_url("/echo")), "cid", "tok", "GET", {"name": "Chess", "first": "100"})

    assert body["method"] == "GET"
    assert body["query"] == {"name": "Chess", "first": "100"}
    assert body["form"] == {}
    assert body["client_id"] == "cid"
    assert body["authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_post_form_encodes_params_in_body():
    async with serve(echo_app()) as server, make_session() as session:
        body = await request(session, str(server.make_url("/echo")), "cid", "", "POST", {"grant_type": "client_credentials"})

    assert body["method"] == "POST"
    assert body["query"] == {}
    assert body["form"] == {"grant_type": "client_credentials"}
    assert body["authorization"] is None


@pytest.mark.asyncio
async def test_429_is_rate_limited():
    async with serve(echo_app()) as server, make_session() as session:
        with pytest.raises(RateLimited):
            await request(session, str(server.make_url("/limited")), "cid", "tok", "GET", {})


@pytest.mark.asyncio
async def test_other_status_is_upstream_error_with_truncated_body():
    async with serve(echo_app()) as server, make_session() as session:
        with pytest.raises(UpstreamError) as exc_info:
            await request(session, str(server.make_url("/broken")), "cid", "tok", "GET", {})

    err = exc_info.value
    assert err.status == 500
    assert err.reason == "Internal Server Error"
    assert err.body == "x" * RES_BUFLEN
    assert "500" in str(err)


@pytest.mark.asyncio
async def test_upstream_error_without_body():
    async with serve(echo_app()) as server, make_session() as session:
        with pytest.raises(UpstreamError) as exc_info:
            await request(session, str(server.make_url("/missing")), "cid", "tok", "GET", {})

    assert exc_info.value.body == ""
    assert str(exc_info.value) == "non-OK response 404 Not Found"


@pytest.mark.asyncio
async def test_malformed_json_is_decode_error():
    async with serve(echo_app()) as server, make_session() as session:
        with pytest.raises(DecodeError):
            await request(session, str(server.make_url("/garbage")), "cid", "tok", "GET", {})


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error():
    async with make_session() as session:
        with pytest.raises(TransportError):
            await request(session, f"http://127.0.0.1:{unused_port()}/echo", "cid", "tok", "GET", {})


@pytest.mark.asyncio
async def test_unsupported_method():
    async with make_session() as session:
        with pytest.raises(ValueError):
            await request(session, "http://127.0.0.1/echo", "cid", "tok", "DELETE", {})


@pytest.mark.asyncio
async def test_large_error_body_keeps_only_prefix():
    async with serve(echo_app()) as server, make_session() as session:
        with pytest.raises(UpstreamError) as exc_info:
            await request(session, str(server.make_url("/huge")), "cid", "tok", "GET", {})

    err = exc_info.value
    assert err.status == 502
    assert err.body == "y" * 10 + "z" * (RES_BUFLEN - 10)


@pytest.mark.asyncio
async def test_request_client_does_not_log(caplog):
    async with serve(echo_app()) as server, make_session() as session:
        with caplog.at_level(logging.DEBUG, logger="twitchrelay"):
            await request(session, str(server.make_url("/echo")), "cid", "tok", "GET", {"name": "Chess"})
            with pytest.raises(UpstreamError):
                await request(session, str(server.make_url("/broken")), "cid", "tok", "GET", {})

    assert [r for r in caplog.records if r.name.startswith("twitchrelay")] == []
