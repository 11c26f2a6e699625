"""
Metadata Extractor: best-effort page title lookup for window captions.

Titles are cosmetic: every failure is downgraded to PageMetadata(title=None,
error=...) and logged here, never raised to the caller.
"""

import html
import logging
import re
from typing import Optional

import httpx
from pydantic import BaseModel

from gateway.config import Settings

logger = logging.getLogger("metadata")

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class PageMetadata(BaseModel):
    title: Optional[str] = None
    error: Optional[str] = None

    def to_payload(self) -> dict:
        payload = {"title": self.title}
        if self.error is not None:
            payload["error"] = self.error
        return payload


def extract_title(document: str) -> Optional[str]:
    match = _TITLE_RE.search(document)
    if not match:
        return None
    title = html.unescape(match.group(1)).strip()
    return title or None


class MetadataExtractor:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def fetch(self, url: str) -> PageMetadata:
        try:
            response = await self.client.get(
                url,
                headers={"User-Agent": self.settings.user_agent},
                follow_redirects=True,
                timeout=self.settings.metadata_timeout,
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Metadata fetch failed for {url}: {e}")
            return PageMetadata(title=None, error=str(e))

        return PageMetadata(title=extract_title(response.text))
