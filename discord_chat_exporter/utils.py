"""Small formatting helpers shared by the renderers and the converter."""

from datetime import datetime, timezone
from typing import Any, Optional

import dateparser


DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp, falling back to natural language display text.

    Discord's <time> elements carry an ISO datetime attribute; older saved
    pages sometimes only have "Today at 3:45 PM" style text. Aware results
    are converted to naive UTC.
    """
    if not timestamp_str:
        return None
    try:
        dt = datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    except ValueError:
        dateparser_settings: Any = {"TIMEZONE": "UTC", "RETURN_AS_TIMEZONE_AWARE": False}
        dt = dateparser.parse(timestamp_str, settings=dateparser_settings)
        if dt is None:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_timestamp(timestamp_str: Optional[str]) -> str:
    """Format a timestamp for display; text that does not parse is kept as is."""
    if timestamp_str is None:
        return ""
    dt = parse_timestamp(timestamp_str)
    if dt is None:
        return timestamp_str
    return dt.strftime(DISPLAY_FORMAT)


def format_export_date(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(DISPLAY_FORMAT)


def export_filename(extension: str, now: Optional[datetime] = None) -> str:
    """discord-export-<ISO timestamp>.<extension>, safe on every filesystem."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    stamp = now.isoformat(timespec="milliseconds") + "Z"
    return f"discord-export-{stamp.replace(':', '-').replace('.', '-')}.{extension}"


def avatar_initial(username: str) -> str:
    return (username or "U")[0].upper()
