"""Print-ready HTML renderer (the input for PDF output)."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..image_cache import ImageCache, ImageResolver, collect_image_urls
from ..models import Embed, ExportOptions, ImageRef, Message, Reaction, ReplyRef
from ..progress import ProgressReporter
from ..renderer import Renderer, RenderItem, generate_render_items
from ..settings import DEFAULT_SETTINGS, ExportSettings
from .formatters import format_embed, format_image, format_reaction
from .utils import get_template_environment

logger = logging.getLogger(__name__)


@dataclass
class MessageView:
    """Template-facing view of one rendered message."""

    username: str
    color: Optional[str]
    timestamp: Optional[str]
    show_header: bool
    reply: Optional[ReplyRef]
    avatar_kind: str  # "image", "placeholder", "spacer" or ""
    avatar_src: Optional[str]
    content_html: str
    images_html: str
    embeds_html: str
    reactions_html: str


class PdfHtmlRenderer(Renderer):
    """Self-contained dark-theme HTML document with inlined images.

    The image resolver owns the cache that format methods read from. When
    none is given, one is created (and closed) per `generate` call.
    """

    extension = "html"

    def __init__(
        self,
        options: Optional[ExportOptions] = None,
        settings: ExportSettings = DEFAULT_SETTINGS,
        image_resolver: Optional[ImageResolver] = None,
        progress: Optional[ProgressReporter] = None,
    ):
        super().__init__(options, settings)
        self.image_resolver = image_resolver
        self.progress = progress or ProgressReporter()
        self._cache = image_resolver.cache if image_resolver else ImageCache(
            settings.image_cache_size
        )

    # -------------------------------------------------------------------------
    # Message Parts
    # -------------------------------------------------------------------------

    def format_ImageRef(self, image: ImageRef) -> str:
        return format_image(image, self._cache)

    def format_Embed(self, embed: Embed) -> str:
        return format_embed(embed, self._cache)

    def format_Reaction(self, reaction: Reaction) -> str:
        return format_reaction(reaction)

    def _avatar(self, item: RenderItem) -> tuple[str, Optional[str]]:
        if not item.show_header:
            return "spacer", None
        if not self.options.include_avatars:
            return "", None
        if src := self._cache.get(item.message.author.avatar_url):
            return "image", src
        return "placeholder", None

    def _message_view(self, item: RenderItem) -> MessageView:
        message = item.message
        options = self.options
        avatar_kind, avatar_src = self._avatar(item)

        images_html = ""
        if options.include_images and message.attachments:
            images_html = f"<div class='images'>{self.format_parts(message.attachments)}</div>"
        reactions_html = ""
        if options.include_reactions and message.reactions:
            reactions_html = f"<div class='reactions'>{self.format_parts(message.reactions)}</div>"

        return MessageView(
            username=message.username,
            color=message.author.color,
            timestamp=message.timestamp if options.include_timestamps else None,
            show_header=item.show_header,
            reply=message.reply_ref if item.has_reply else None,
            avatar_kind=avatar_kind,
            avatar_src=avatar_src,
            content_html=message.content.html,
            images_html=images_html,
            embeds_html=self.format_parts(message.embeds),
            reactions_html=reactions_html,
        )

    def _render_document(self, views: list[MessageView], channel_name: str) -> str:
        template = get_template_environment().get_template("export.html")
        return template.render(channel_name=channel_name, messages=views)

    # -------------------------------------------------------------------------
    # Rendering Entry Points
    # -------------------------------------------------------------------------

    def render(
        self,
        items: list[RenderItem],
        channel_name: str,
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Render from whatever is already cached; never fetches."""
        return self._render_document([self._message_view(item) for item in items], channel_name)

    async def generate(
        self,
        messages: list[Message],
        channel_name: str,
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Prefetch every image, then render the document.

        The cache is cleared before and after, so nothing from one export
        leaks into the next.
        """
        resolver = self.image_resolver or ImageResolver(self._cache, settings=self.settings)
        self._cache = resolver.cache
        self._cache.clear()
        try:
            urls = collect_image_urls(messages, self.options)
            logger.info("Prefetching %d images", len(urls))
            await resolver.prefetch(urls, self.progress)

            items = generate_render_items(messages)
            total = len(items)
            batch_size = max(1, self.settings.render_batch_size)
            views: list[MessageView] = []
            for index, item in enumerate(items):
                views.append(self._message_view(item))
                if index > 0 and index % batch_size == 0:
                    await asyncio.sleep(self.settings.render_yield_delay)
                    self.progress.report(
                        80 + (index * 20) // total,
                        f"Generating PDF... ({index}/{total})",
                    )
            return self._render_document(views, channel_name)
        finally:
            self._cache.clear()
            if self.image_resolver is None:
                await resolver.aclose()
