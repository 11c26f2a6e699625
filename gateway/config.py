"""
Gateway configuration.

Built once at process startup and handed to each component explicitly.
Values come from GATEWAY_* environment variables (optionally from a .env file).

Environment variables:
  GATEWAY_HOST / GATEWAY_PORT      : bind address for `python -m gateway.main`
  GATEWAY_CORS_ORIGINS             : comma-separated list, "*" by default
  GATEWAY_USER_AGENT               : browser user-agent sent upstream
  GATEWAY_SCROLL_DEBOUNCE_MS       : debounce for SCROLL_UPDATE messages
  GATEWAY_CONNECT_TIMEOUT          : upstream connect timeout (seconds)
  GATEWAY_READ_TIMEOUT             : upstream idle-read timeout (seconds)
  GATEWAY_METADATA_TIMEOUT         : total timeout for title lookups (seconds)
  GATEWAY_LOOKBEHIND_BYTES         : max tag fragment carried across chunks (0 disables)
  GATEWAY_LOG_LEVEL                : logging level name
"""

import os
from typing import Dict, List, Tuple

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

# Headers that block framing, restrict scripts, or describe the original
# (decoded and re-chunked) body.
HEADERS_TO_REMOVE: Tuple[str, ...] = (
    "x-frame-options",
    "content-security-policy",
    "content-security-policy-report-only",
    "frame-options",
    "content-encoding",
    "content-length",
    "transfer-encoding",
)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: Dict[str, str] = Field(default_factory=lambda: {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    })
    headers_to_remove: Tuple[str, ...] = HEADERS_TO_REMOVE
    scroll_debounce_ms: int = Field(100, ge=0)
    connect_timeout: float = Field(10.0, gt=0)
    read_timeout: float = Field(30.0, gt=0)
    metadata_timeout: float = Field(10.0, gt=0)
    lookbehind_bytes: int = Field(64, ge=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        values = {}
        env_map = {
            "host": "GATEWAY_HOST",
            "port": "GATEWAY_PORT",
            "user_agent": "GATEWAY_USER_AGENT",
            "scroll_debounce_ms": "GATEWAY_SCROLL_DEBOUNCE_MS",
            "connect_timeout": "GATEWAY_CONNECT_TIMEOUT",
            "read_timeout": "GATEWAY_READ_TIMEOUT",
            "metadata_timeout": "GATEWAY_METADATA_TIMEOUT",
            "lookbehind_bytes": "GATEWAY_LOOKBEHIND_BYTES",
            "log_level": "GATEWAY_LOG_LEVEL",
        }
        for field, env_name in env_map.items():
            raw = os.getenv(env_name)
            if raw is not None and raw.strip():
                values[field] = raw.strip()

        origins = os.getenv("GATEWAY_CORS_ORIGINS", "").strip()
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        return cls(**values)

    def upstream_headers(self) -> Dict[str, str]:
        """Headers sent with every upstream fetch."""
        return {"User-Agent": self.user_agent, **self.default_headers}

    def upstream_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.read_timeout, connect=self.connect_timeout)
