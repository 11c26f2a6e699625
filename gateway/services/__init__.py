"""
Embedding Proxy Gateway: core services.
Header filtering, streaming HTML injection, title lookup and the
cross-frame scroll protocol used by the /proxy routes.
"""

from gateway.services.header_filter import filter_headers, filter_header_items, filter_raw_headers
from gateway.services.metadata import MetadataExtractor, PageMetadata
from gateway.services.script_injector import ScriptInjector
from gateway.services.scroll_protocol import ScrollSyncHub, parse_message

__all__ = [
    "filter_headers",
    "filter_header_items",
    "filter_raw_headers",
    "MetadataExtractor",
    "PageMetadata",
    "ScriptInjector",
    "ScrollSyncHub",
    "parse_message",
]
