import asyncio
import json

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

PRIME_HITS = web.AppKey("prime_hits", list)


async def rpc_handler(request: web.Request) -> web.Response:
    payload = await request.json()
    method = payload.get("method")

    if method == "fail":
        return web.json_response(
            {"jsonrpc": "2.0", "id": payload.get("id"), "error": {"code": -32000, "message": "boom"}},
            status=500,
        )
    if method == "list":
        return web.json_response([1, 2, 3])

    return web.json_response({
        "jsonrpc": "2.0",
        "id": payload.get("id"),
        "result": {
            "method": method,
            "params": payload.get("params"),
            "authorization": request.headers.get("Authorization"),
            "session": request.cookies.get("session"),
            "query": dict(request.query),
        },
    })


async def prime_handler(request: web.Request) -> web.Response:
    request.app[PRIME_HITS][0] += 1
    response = web.Response(text="primed")
    response.set_cookie("session", "abc123")
    return response


async def slow_handler(request: web.Request) -> web.Response:
    await asyncio.sleep(2)
    return web.json_response({"result": "late"})


async def text_handler(request: web.Request) -> web.Response:
    return web.Response(text="not json", status=502)


async def echo_headers_handler(request: web.Request) -> web.Response:
    return web.Response(text=json.dumps(dict(request.headers)), content_type="application/json")


def build_app() -> web.Application:
    app = web.Application()
    app[PRIME_HITS] = [0]
    app.router.add_post("/rpc", rpc_handler)
    app.router.add_get("/rpc", prime_handler)
    app.router.add_post("/slow", slow_handler)
    app.router.add_get("/slow", slow_handler)
    app.router.add_post("/slow-prime", rpc_handler)
    app.router.add_get("/slow-prime", slow_handler)
    app.router.add_post("/text", text_handler)
    app.router.add_get("/headers", echo_headers_handler)
    return app


@pytest_asyncio.fixture
async def rpc_server():
    """Local JSON-RPC endpoint on 127.0.0.1."""
    server = TestServer(build_app())
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def prime_hits(rpc_server):
    """Single-item list counting credential pre-flights seen by the server."""
    return rpc_server.app[PRIME_HITS]
