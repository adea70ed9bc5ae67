"""Process uptime helpers."""

import time

_STARTED_AT = time.monotonic()

_DAY = 24 * 60 * 60
_HOUR = 60 * 60


def process_uptime() -> float:
    """Seconds since this module was first imported."""
    return time.monotonic() - _STARTED_AT


def format_uptime(seconds: float) -> str:
    """Render seconds as '<d>d <h>h <m>m', dropping leftover seconds."""
    seconds = max(int(seconds), 0)
    days, seconds = divmod(seconds, _DAY)
    hours, seconds = divmod(seconds, _HOUR)
    minutes = seconds // 60
    return f"{days}d {hours}h {minutes}m"
