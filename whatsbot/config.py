"""Configuration and shared state."""

__version__ = "2.0.0"

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

BROADCAST_SENDER_ID = "status@broadcast"
WHATSAPP_WEB_URL = "https://web.whatsapp.com"

# Launch flags for headless Chromium on small dynos / containers
CHROMIUM_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast=float):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default!r}")
        return default
    if value < 0:
        _stderr_print(f"Negative {name}={raw!r}, falling back to {default!r}")
        return default
    return value


FALLBACK_PROBABILITY = _env_number("FALLBACK_PROBABILITY", 0.3)
if FALLBACK_PROBABILITY > 1:
    _stderr_print(f"FALLBACK_PROBABILITY={FALLBACK_PROBABILITY!r} is above 1, falling back to 0.3")
    FALLBACK_PROBABILITY = 0.3

CONFIG: Dict[str, Any] = {
    "port": _env_number("PORT", 3000, int),
    "version": __version__,
    "platform": "Heroku",
    "app_name": os.getenv("HEROKU_APP_NAME") or os.getenv("APP_NAME") or "Heroku",
    # Chat id notified once the client is ready, e.g. "15551234567@c.us"
    "admin_number": os.getenv("ADMIN_NUMBER", "").strip(),
    # Browser
    "chromium_path": os.getenv("CHROMIUM_PATH", "").strip(),
    "auth_data_path": os.getenv("WWEBJS_AUTH_PATH", "./.wwebjs_auth"),
    "headless": _env_flag("HEADLESS", True),
    # Reconnect / retry glue
    "reconnect_delay_seconds": _env_number("RECONNECT_DELAY_SECONDS", 5.0),
    "init_retry_delay_seconds": _env_number("INIT_RETRY_DELAY_SECONDS", 10.0),
    "poll_interval_seconds": _env_number("POLL_INTERVAL_SECONDS", 2.0),
    "qr_timeout_seconds": _env_number("QR_TIMEOUT_SECONDS", 120.0),
    # Only answer this share of unrecognised messages (noise control in groups)
    "fallback_probability": FALLBACK_PROBABILITY,
}


# ── Typed config ──────────────────────────────────────


@dataclass
class BrowserConfig:
    chromium_path: str = ""
    auth_data_path: str = "./.wwebjs_auth"
    headless: bool = True
    args: List[str] = field(default_factory=lambda: list(CHROMIUM_ARGS))
    poll_interval_seconds: float = 2.0
    qr_timeout_seconds: float = 120.0


@dataclass
class AppConfig:
    """Typed configuration built from CONFIG."""

    port: int = 3000
    version: str = __version__
    platform: str = "Heroku"
    app_name: str = "Heroku"
    admin_number: str = ""
    reconnect_delay_seconds: float = 5.0
    init_retry_delay_seconds: float = 10.0
    fallback_probability: float = 0.3
    browser: BrowserConfig = field(default_factory=BrowserConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        return cls(
            port=CONFIG["port"],
            version=CONFIG["version"],
            platform=CONFIG["platform"],
            app_name=CONFIG["app_name"],
            admin_number=CONFIG["admin_number"],
            reconnect_delay_seconds=CONFIG["reconnect_delay_seconds"],
            init_retry_delay_seconds=CONFIG["init_retry_delay_seconds"],
            fallback_probability=CONFIG["fallback_probability"],
            browser=BrowserConfig(
                chromium_path=CONFIG["chromium_path"],
                auth_data_path=CONFIG["auth_data_path"],
                headless=CONFIG["headless"],
                poll_interval_seconds=CONFIG["poll_interval_seconds"],
                qr_timeout_seconds=CONFIG["qr_timeout_seconds"],
            ),
        )
