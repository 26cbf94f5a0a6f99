"""Format-neutral rendering stage.

Collected messages are first turned into RenderItems, which carry the
header-collapsing decision, and then handed to a format-specific Renderer.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .models import ExportOptions, Message
from .settings import DEFAULT_SETTINGS, ExportSettings

logger = logging.getLogger(__name__)


class RenderItem(BaseModel):
    """A message plus what the renderer should show around it."""

    model_config = ConfigDict(frozen=True)

    message: Message
    show_header: bool
    has_reply: bool
    new_author: bool = True  # author differs from the previous item


def generate_render_items(messages: list[Message]) -> list[RenderItem]:
    """Decide, per message, whether its author header is shown.

    Consecutive messages from one author collapse under a single header.
    A reply always gets its header back, and an empty username never
    counts as the same author.
    """
    items: list[RenderItem] = []
    last_username = ""

    for message in messages:
        same_user = bool(message.username) and message.username == last_username
        has_reply = message.has_reply
        items.append(
            RenderItem(
                message=message,
                show_header=not same_user or has_reply,
                has_reply=has_reply,
                new_author=not same_user,
            )
        )
        last_username = message.username

    return items


# -- Renderer Classes ---------------------------------------------------------


class Renderer:
    """Base class for export renderers.

    Message parts (ImageRef, Embed, Reaction, ...) are formatted through a
    format_{ClassName} dispatcher; subclasses provide the methods for the
    parts their format supports.
    """

    extension = ""

    def __init__(
        self,
        options: Optional[ExportOptions] = None,
        settings: ExportSettings = DEFAULT_SETTINGS,
    ):
        self.options = options or ExportOptions()
        self.settings = settings

    def _dispatch_format(self, obj: Any) -> str:
        """Dispatch to format_{ClassName} method based on object type."""
        for cls in type(obj).__mro__:
            if cls is object:
                break
            if method := getattr(self, f"format_{cls.__name__}", None):
                return method(obj)
        return ""

    def format_parts(self, parts: list[Any], separator: str = "") -> str:
        return separator.join(self._dispatch_format(part) for part in parts)

    # -------------------------------------------------------------------------
    # Format Method Stubs (override in subclasses)
    # -------------------------------------------------------------------------
    # def format_ImageRef(self, image: "ImageRef") -> str: ...
    # def format_Embed(self, embed: "Embed") -> str: ...
    # def format_EmbedField(self, field: "EmbedField") -> str: ...
    # def format_Reaction(self, reaction: "Reaction") -> str: ...
    # def format_ReplyRef(self, reply: "ReplyRef") -> str: ...

    # -------------------------------------------------------------------------
    # Rendering Entry Points
    # -------------------------------------------------------------------------

    def render(
        self,
        items: list[RenderItem],
        channel_name: str,
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Serialize prepared items. Subclasses override."""
        return ""

    async def generate(
        self,
        messages: list[Message],
        channel_name: str,
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Generate the output document for a list of collected messages."""
        items = generate_render_items(messages)
        logger.debug("Rendering %d messages as %s", len(items), self.extension)
        return self.render(items, channel_name, exported_at)


def get_renderer(
    format: str,
    options: Optional[ExportOptions] = None,
    settings: ExportSettings = DEFAULT_SETTINGS,
    **kwargs: Any,
) -> Renderer:
    """Get a renderer instance for the specified format.

    Args:
        format: "pdf" or "html" for the print-ready document, "md" or
            "markdown" for Markdown.
        kwargs: Passed to the renderer (e.g. image_resolver for HTML).

    Raises:
        ValueError: If the format is not supported.
    """
    if format in ("pdf", "html"):
        from .html.renderer import PdfHtmlRenderer

        return PdfHtmlRenderer(options, settings, **kwargs)
    if format in ("md", "markdown"):
        from .markdown.renderer import MarkdownRenderer

        return MarkdownRenderer(options, settings)
    raise ValueError(f"Unsupported format: {format}")
