"""HTML rendering package.

Re-exports the formatters and template helpers used by PdfHtmlRenderer.
"""

from .formatters import (
    format_embed,
    format_embed_field,
    format_image,
    format_reaction,
)
from .utils import escape_html, get_template_environment, style_color

__all__ = [
    # Formatters
    "format_embed",
    "format_embed_field",
    "format_image",
    "format_reaction",
    # Utilities
    "escape_html",
    "get_template_environment",
    "style_color",
]
