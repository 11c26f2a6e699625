import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.config import Settings
from gateway.main import create_app
from gateway.routers.proxy import get_http_client


class TrackingStream(httpx.AsyncByteStream):
    """Upstream body that records whether the proxy closed it."""

    def __init__(self, chunks, fail_after=None):
        self.chunks = chunks
        self.fail_after = fail_after
        self.closed = False

    async def __aiter__(self):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise httpx.ReadError("connection reset by peer")
            yield chunk

    async def aclose(self):
        self.closed = True


class EndlessStream(TrackingStream):
    """Upstream page that never finishes; only the proxy closing it ends the body."""

    def __init__(self):
        super().__init__([])

    async def __aiter__(self):
        yield b"<html><head></head><body>"
        while True:
            await asyncio.sleep(0)
            yield b"<p>row</p>"


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def app(settings):
    app = create_app(settings)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def make_client(app):
    """Builds a TestClient whose upstream traffic is answered by `handler`."""
    def _make(handler):
        upstream = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_http_client] = lambda: upstream
        return TestClient(app)
    return _make


@pytest.fixture
def make_asgi_app(app):
    """Like make_client but returns the bare ASGI app, for driving receive/send by hand."""
    def _make(handler):
        upstream = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_http_client] = lambda: upstream
        return app
    return _make
