"""HTML utilities for the print-ready export document."""

import functools
import html
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..utils import avatar_initial, format_timestamp


# -- HTML Utilities -----------------------------------------------------------


def escape_html(text: str) -> str:
    """Escape HTML special characters in text.

    Also normalizes line endings (CRLF -> LF).
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return html.escape(normalized)


def style_color(property_name: str, color: str | None) -> str:
    """Inline style declaration for a color, or "" when there is none."""
    if not color:
        return ""
    return f"{property_name}: {escape_html(color)};"


# -- Template Environment -----------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_template_environment() -> Environment:
    """Get cached Jinja2 template environment for HTML rendering.

    Creates a Jinja2 environment configured with:
    - Template loading from the templates directory
    - HTML auto-escaping (the stylesheet is included verbatim)
    - format_timestamp filter and avatar_initial global

    Returns:
        Configured Jinja2 Environment (cached after first call)
    """
    templates_dir = Path(__file__).parent / "templates"
    env = Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["format_timestamp"] = format_timestamp
    env.globals["avatar_initial"] = avatar_initial  # type: ignore[index]
    return env
