"""
Proxy Router: embeds third-party pages in dashboard iframes.
Strips X-Frame-Options / Content-Security-Policy, injects a <base> tag so
relative assets resolve against the real origin, and injects the scroll
synchronization script. Bodies are streamed, never buffered.
"""

import logging
from typing import Optional

import anyio
import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from gateway.config import Settings
from gateway.errors import MissingParameter, UpstreamFetchFailure
from gateway.services.header_filter import filter_raw_headers
from gateway.services.metadata import MetadataExtractor
from gateway.services.script_injector import ScriptInjector, is_html_content_type
from gateway.services.urls import normalize_url

logger = logging.getLogger("proxy")

router = APIRouter(prefix="/proxy", tags=["proxy"])


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


async def _open_upstream(client: httpx.AsyncClient, url: str, settings: Settings) -> httpx.Response:
    """Sends the upstream GET in streaming mode. The caller owns the returned response."""
    try:
        upstream_request = client.build_request(
            "GET",
            url,
            headers=settings.upstream_headers(),
            timeout=settings.upstream_timeout(),
        )
        upstream = await client.send(upstream_request, stream=True, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise UpstreamFetchFailure(url, e) from e

    try:
        upstream.raise_for_status()
    except httpx.HTTPStatusError as e:
        await upstream.aclose()
        raise UpstreamFetchFailure(url, e) from e
    return upstream


class UpstreamStreamingResponse(StreamingResponse):
    """
    StreamingResponse that owns the upstream httpx response it relays.
    The upstream is closed once the ASGI call ends, however it ends:
    body complete, client gone (either disconnect style), or an error.
    """

    def __init__(self, content, upstream: httpx.Response, **kwargs):
        super().__init__(content, **kwargs)
        self.upstream = upstream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.upstream.aclose()


@router.get("")
async def proxy_page(
    url: Optional[str] = Query(None, description="Absolute URL of the page to embed"),
    window_id: Optional[str] = Query(None, alias="windowId", description="Dashboard window correlation id"),
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    if not url:
        raise MissingParameter("url")

    target_url = normalize_url(url)
    logger.info(f"Proxying {target_url} (window={window_id})")

    try:
        upstream = await _open_upstream(client, target_url, settings)
    except UpstreamFetchFailure as e:
        logger.warning(f"Upstream fetch failed for {target_url}: {e.cause}")
        raise

    # Until the response object takes ownership, any failure here must release the upstream
    try:
        # Post-redirect URL so relative links resolve against the page actually served
        effective_origin = str(upstream.url) if upstream.url else target_url
        content_type = upstream.headers.get("content-type")
        logger.info(f"Upstream {upstream.status_code} {content_type or '-'} from {effective_origin}")

        if is_html_content_type(content_type):
            injector = ScriptInjector(
                window_id,
                effective_origin,
                debounce_ms=settings.scroll_debounce_ms,
                lookbehind=settings.lookbehind_bytes,
            )
            body = injector.transform(upstream.aiter_bytes())
        else:
            body = upstream.aiter_bytes()

        async def stream_body():
            try:
                async for chunk in body:
                    yield chunk
            except httpx.HTTPError:
                # Headers and part of the page are already out; abort the connection
                logger.exception(f"Upstream stream for {target_url} failed mid-response")
                raise
            finally:
                await upstream.aclose()

        response = UpstreamStreamingResponse(
            stream_body(),
            upstream=upstream,
            status_code=upstream.status_code,
        )
        # Raw bytes: header values are not guaranteed to be latin-1 text
        response.raw_headers.extend(filter_raw_headers(upstream.headers.raw, settings.headers_to_remove))
        del response.headers["X-Frame-Options"]
        del response.headers["Content-Security-Policy"]
    except BaseException:
        await upstream.aclose()
        raise
    return response


@router.get("/metadata")
async def proxy_metadata(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    urls = request.query_params.getlist("url")
    if len(urls) != 1 or not urls[0]:
        return JSONResponse(status_code=400, content={"error": "Missing URL parameter"})

    metadata = await MetadataExtractor(client, settings).fetch(urls[0])
    return metadata.to_payload()
