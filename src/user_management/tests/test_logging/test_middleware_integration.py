import uuid

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from user_management.core.logging.filters import get_request_id
from user_management.core.logging.middleware import RequestIDMiddleware


def make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/echo")
    async def echo():
        return {"request_id": get_request_id()}

    return app


async def call(headers: dict | None = None):
    transport = ASGITransport(app=make_app())
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.get("/echo", headers=headers or {})


async def test_generates_request_id_and_sets_context():
    resp = await call()

    rid = resp.headers["X-Request-ID"]
    assert uuid.UUID(rid)
    assert resp.json()["request_id"] == rid


async def test_reuses_incoming_request_id():
    resp = await call({"X-Request-ID": "upstream-42"})

    assert resp.headers["X-Request-ID"] == "upstream-42"
    assert resp.json()["request_id"] == "upstream-42"


async def test_replaces_unsafe_incoming_request_id():
    resp = await call({"X-Request-ID": "bad id with spaces"})

    rid = resp.headers["X-Request-ID"]
    assert rid != "bad id with spaces"
    assert uuid.UUID(rid)


async def test_context_is_cleared_after_request():
    await call({"X-Request-ID": "upstream-43"})
    assert get_request_id() is None
