"""
Script Injector: streaming HTML rewriter for proxied pages.

Inserts two pieces of markup while the body is still streaming:
  * <base href="..."> right after <head ...> (or right before </head>) so the
    embedded page resolves relative links against its real origin;
  * the scroll synchronization <script> right before </body>.

The document is never buffered. Each chunk is inspected on its own; the only
state carried between chunks is the pair of injection flags and, when
lookbehind > 0, a short tail that might be the start of a marker split across
two network reads (e.g. b"...</bo" + b"dy>..."). Chunks that end in anything
else are forwarded immediately and byte-identical.
"""

import html
import json
import logging
import re
from string import Template
from typing import AsyncIterator, Optional

from gateway.services.scroll_protocol import MessageType

logger = logging.getLogger("script_injector")

_HEAD_OPEN_RE = re.compile(rb"<head(?:\s[^>]*)?>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(rb"</head>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(rb"</body>", re.IGNORECASE)

_HEAD_MARKERS = (b"<head>", b"</head>")
_BODY_MARKERS = (b"</body>",)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

_SCRIPT_TEMPLATE = Template("""<script>
(function() {
  var scrollTimeout = null;
  var windowId = $window_id;

  window.addEventListener('scroll', function() {
    if (scrollTimeout) clearTimeout(scrollTimeout);
    scrollTimeout = setTimeout(function() {
      scrollTimeout = null;
      if (!windowId) return;
      window.parent.postMessage({
        type: '$scroll_update',
        windowId: windowId,
        scrollX: window.scrollX,
        scrollY: window.scrollY
      }, '*');
    }, $debounce_ms);
  });

  window.addEventListener('message', function(e) {
    var data = e.data;
    if (!data || data.type !== '$restore_scroll') return;
    if (data.windowId && !windowId) windowId = data.windowId;
    window.scrollTo(data.scrollX || 0, data.scrollY || 0);
  });

  window.parent.postMessage({ type: '$frame_ready' }, '*');
})();
</script>""")


def is_html_content_type(content_type: Optional[str]) -> bool:
    """Missing content types are treated as HTML; the markers decide the rest."""
    if not content_type:
        return True
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime in HTML_CONTENT_TYPES


def _js_string(value: Optional[str]) -> str:
    if value is None:
        return "null"
    return json.dumps(value).replace("</", "<\\/")


def build_sync_script(window_id: Optional[str], debounce_ms: int = 100) -> str:
    return _SCRIPT_TEMPLATE.substitute(
        window_id=_js_string(window_id),
        debounce_ms=int(debounce_ms),
        scroll_update=MessageType.SCROLL_UPDATE.value,
        restore_scroll=MessageType.RESTORE_SCROLL.value,
        frame_ready=MessageType.PROXY_FRAME_READY.value,
    )


def build_base_tag(origin_url: str) -> str:
    return f'<base href="{html.escape(origin_url, quote=True)}">'


class ScriptInjector:
    """One instance per proxied response; never shared between requests."""

    def __init__(
        self,
        window_id: Optional[str],
        origin_url: str,
        debounce_ms: int = 100,
        lookbehind: int = 64,
    ):
        self.window_id = window_id
        self.origin_url = origin_url
        self.lookbehind = lookbehind
        self.base_injected = False
        self.script_injected = False
        self._base_tag = build_base_tag(origin_url).encode("utf-8")
        self._script = build_sync_script(window_id, debounce_ms).encode("utf-8")
        self._pending = b""

    @property
    def done(self) -> bool:
        return self.base_injected and self.script_injected

    def _pending_markers(self):
        markers = ()
        if not self.base_injected:
            markers += _HEAD_MARKERS
        if not self.script_injected:
            markers += _BODY_MARKERS
        return markers

    def _split_tail(self, data: bytes):
        """Splits off a trailing fragment that could still grow into a marker."""
        if not self.lookbehind or self.done:
            return data, b""
        start = data.rfind(b"<", max(0, len(data) - self.lookbehind))
        if start == -1:
            return data, b""

        tail = data[start:].lower()
        for marker in self._pending_markers():
            if len(tail) < len(marker) and marker.startswith(tail):
                return data[:start], data[start:]

        # <head lang="en" ... still waiting for its ">"
        if (
            not self.base_injected
            and tail.startswith(b"<head")
            and b">" not in tail
            and (len(tail) == 5 or tail[5:6].isspace())
        ):
            return data[:start], data[start:]

        return data, b""

    def _inject(self, data: bytes) -> bytes:
        if not data:
            return data

        if not self.base_injected:
            match = _HEAD_OPEN_RE.search(data)
            if match:
                data = data[:match.end()] + self._base_tag + data[match.end():]
                self.base_injected = True
                logger.debug(f"Injected <base> after <head> for {self.origin_url}")
            else:
                match = _HEAD_CLOSE_RE.search(data)
                if match:
                    data = data[:match.start()] + self._base_tag + data[match.start():]
                    self.base_injected = True
                    logger.debug(f"Injected <base> before </head> for {self.origin_url}")

        if not self.script_injected:
            match = _BODY_CLOSE_RE.search(data)
            if match:
                data = data[:match.start()] + self._script + data[match.start():]
                self.script_injected = True
                logger.debug(f"Injected sync script for window {self.window_id}")

        return data

    def feed(self, chunk: bytes) -> bytes:
        """Rewrites one chunk. May return b"" while a split marker is held back."""
        if self._pending:
            data = self._pending + chunk
            self._pending = b""
        else:
            data = chunk
        data, self._pending = self._split_tail(data)
        return self._inject(data)

    def flush(self) -> bytes:
        """Releases whatever is still held back at end of stream."""
        data, self._pending = self._pending, b""
        return self._inject(data)

    async def transform(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in chunks:
            out = self.feed(chunk)
            if out:
                yield out
        tail = self.flush()
        if tail:
            yield tail
