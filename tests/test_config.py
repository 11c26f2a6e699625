import httpx
import pytest
from pydantic import ValidationError

from gateway.config import HEADERS_TO_REMOVE, Settings
from gateway.services.urls import normalize_url


def test_defaults():
    settings = Settings()
    assert settings.port == 3001
    assert settings.cors_origins == ["*"]
    assert settings.scroll_debounce_ms == 100
    assert settings.headers_to_remove == HEADERS_TO_REMOVE
    assert settings.upstream_headers()["User-Agent"] == settings.user_agent


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.scroll_debounce_ms = 5


def test_from_env(monkeypatch):
    monkeypatch.setenv("GATEWAY_PORT", "8088")
    monkeypatch.setenv("GATEWAY_SCROLL_DEBOUNCE_MS", "250")
    monkeypatch.setenv("GATEWAY_CORS_ORIGINS", "http://localhost:5173, https://dash.example.com")
    monkeypatch.setenv("GATEWAY_LOOKBEHIND_BYTES", "0")
    settings = Settings.from_env()
    assert settings.port == 8088
    assert settings.scroll_debounce_ms == 250
    assert settings.cors_origins == ["http://localhost:5173", "https://dash.example.com"]
    assert settings.lookbehind_bytes == 0


def test_upstream_timeout():
    timeout = Settings(connect_timeout=2, read_timeout=7).upstream_timeout()
    assert isinstance(timeout, httpx.Timeout)
    assert timeout.connect == 2
    assert timeout.read == 7


@pytest.mark.parametrize("settings", [Settings(scroll_debounce_ms=400)])
def test_debounce_setting_reaches_proxied_page(make_client):
    client = make_client(
        lambda request: httpx.Response(200, headers={"content-type": "text/html"}, content=b"<body></body>")
    )
    resp = client.get("/proxy", params={"url": "https://example.com"})
    assert "}, 400);" in resp.text


@pytest.mark.parametrize("raw,expected", [
    ("example.com", "https://example.com"),
    ("  https://example.com/a  ", "https://example.com/a"),
    ("http://localhost:8080", "http://localhost:8080"),
    ("", ""),
])
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected
