import httpx

from gateway.config import HEADERS_TO_REMOVE
from gateway.services.header_filter import filter_header_items, filter_headers, filter_raw_headers

UPSTREAM_HEADERS = {
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "frame-ancestors 'none'",
    "content-security-policy-report-only": "default-src 'self'",
    "Frame-Options": "SAMEORIGIN",
    "Content-Encoding": "gzip",
    "CONTENT-LENGTH": "1234",
    "Transfer-Encoding": "chunked",
    "Content-Type": "text/html; charset=utf-8",
    "Cache-Control": "no-cache",
    "X-Custom-Header": "Value With Case",
}


def test_denylisted_headers_removed():
    result = filter_headers(UPSTREAM_HEADERS)
    lowered = {k.lower() for k in result}
    for name in HEADERS_TO_REMOVE:
        assert name not in lowered


def test_other_headers_kept_with_original_case_and_value():
    result = filter_headers(UPSTREAM_HEADERS)
    assert result == {
        "Content-Type": "text/html; charset=utf-8",
        "Cache-Control": "no-cache",
        "X-Custom-Header": "Value With Case",
    }


def test_idempotent_and_order_independent():
    once = filter_headers(UPSTREAM_HEADERS)
    assert filter_headers(once) == once
    reversed_items = list(reversed(list(UPSTREAM_HEADERS.items())))
    assert filter_headers(reversed_items) == once


def test_input_not_mutated():
    headers = dict(UPSTREAM_HEADERS)
    filter_headers(headers)
    assert headers == UPSTREAM_HEADERS


def test_custom_denylist():
    result = filter_headers({"X-Powered-By": "php", "Server": "nginx"}, denylist=["x-powered-by"])
    assert result == {"Server": "nginx"}


def test_repeated_headers_kept_as_items():
    headers = httpx.Headers([
        ("set-cookie", "a=1"),
        ("set-cookie", "b=2"),
        ("x-frame-options", "DENY"),
    ])
    assert filter_header_items(headers) == [("set-cookie", "a=1"), ("set-cookie", "b=2")]


def test_raw_headers_keep_undecodable_values():
    title = "Café 日本".encode("utf-8")
    raw = [
        (b"X-Page-Title", title),
        (b"X-Frame-Options", b"DENY"),
        (b"Set-Cookie", b"a=1"),
        (b"Set-Cookie", b"b=2"),
    ]
    assert filter_raw_headers(raw) == [
        (b"x-page-title", title),
        (b"set-cookie", b"a=1"),
        (b"set-cookie", b"b=2"),
    ]
