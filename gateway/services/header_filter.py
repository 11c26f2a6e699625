"""
Header Filter: decides which upstream response headers may reach the iframe.

Pure functions: they never touch a response object, so the proxy route sets
the result on its own StreamingResponse.
"""

from typing import Iterable, List, Mapping, Tuple, Union

from gateway.config import HEADERS_TO_REMOVE

HeaderSource = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def _items(headers: HeaderSource) -> Iterable[Tuple[str, str]]:
    if hasattr(headers, "multi_items"):  # httpx.Headers keeps repeated names
        return headers.multi_items()
    if isinstance(headers, Mapping):
        return headers.items()
    return headers


def filter_header_items(
    headers: HeaderSource,
    denylist: Iterable[str] = HEADERS_TO_REMOVE,
) -> List[Tuple[str, str]]:
    """Like filter_headers() but keeps every (name, value) pair, e.g. repeated set-cookie."""
    blocked = {name.lower() for name in denylist}
    return [(k, v) for k, v in _items(headers) if k.lower() not in blocked]


def filter_raw_headers(
    raw: Iterable[Tuple[bytes, bytes]],
    denylist: Iterable[str] = HEADERS_TO_REMOVE,
) -> List[Tuple[bytes, bytes]]:
    """
    Byte-level variant for forwarding to the ASGI server. Values are passed
    through undecoded, so non latin-1 text from the upstream survives as-is.
    Names come back lowercased as ASGI expects.
    """
    blocked = {name.lower().encode("latin-1") for name in denylist}
    return [(k.lower(), v) for k, v in raw if k.lower() not in blocked]


def filter_headers(
    headers: HeaderSource,
    denylist: Iterable[str] = HEADERS_TO_REMOVE,
) -> dict:
    """
    Returns the headers cleared for forwarding.
    Names are matched case-insensitively against the denylist; kept names
    retain the case they were received with, values are untouched.
    """
    return dict(filter_header_items(headers, denylist))
