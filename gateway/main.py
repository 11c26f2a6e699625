"""
Embedding Proxy Gateway: FastAPI application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse

from gateway.config import Settings
from gateway.errors import GatewayError
from gateway.routers.proxy import router as proxy_router

logger = logging.getLogger("gateway")

DEBUG_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>Debug</title>
</head>
<body>
    <h1>Hello</h1>
</body>
</html>
"""


def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        # One pooled client for every proxied request
        app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout())
        logger.info(f"Proxy gateway ready (debounce={settings.scroll_debounce_ms}ms)")
        yield
        await app.state.http_client.aclose()
        logger.info("Proxy gateway stopped")

    app = FastAPI(
        title="Embedding Proxy Gateway",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    app.include_router(proxy_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Proxy Server is running"

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "embedding-proxy-gateway"}

    @app.get("/debug-html", response_class=HTMLResponse)
    async def debug_html():
        """Static page for checking <base>/script injection through /proxy by hand."""
        return DEBUG_HTML

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
