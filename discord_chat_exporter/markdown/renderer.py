"""Markdown renderer for exported Discord channels."""

import re
from datetime import datetime
from typing import Optional

from ..extraction.content import fragment_text
from ..models import Embed, ImageRef, Reaction, ReplyRef
from ..renderer import Renderer, RenderItem
from ..utils import format_export_date, format_timestamp

UNKNOWN_USER = "Unknown"

_MARKDOWN_SPECIAL = re.compile(r"([\\`*_\[\]()#<>])")


class MarkdownRenderer(Renderer):
    """Plain Markdown document: one block per message, separated by rules.

    Links point at the original CDN URLs; nothing is inlined.
    """

    extension = "md"

    # -------------------------------------------------------------------------
    # Private Utility Methods
    # -------------------------------------------------------------------------

    def _quote(self, text: str) -> str:
        """Prefix each line with '> ' to create a blockquote."""
        return "\n".join(f"> {line}" for line in text.split("\n"))

    def _escape(self, text: str) -> str:
        """Backslash-escape characters that Markdown would read as syntax.

        Covers emphasis, code spans, links, headings and inline HTML, so
        user-controlled text such as `[x](https://evil)` stays literal.
        """
        return _MARKDOWN_SPECIAL.sub(r"\\\1", text)

    def _escape_url(self, url: str) -> str:
        """Keep a URL from closing the surrounding (...) early."""
        return url.replace(" ", "%20").replace("(", "%28").replace(")", "%29")

    def _strong(self, text: str) -> str:
        return f"**{self._escape(text)}**"

    # -------------------------------------------------------------------------
    # Message Parts
    # -------------------------------------------------------------------------

    def format_ReplyRef(self, reply: ReplyRef) -> str:
        name = self._strong(reply.username or UNKNOWN_USER)
        preview = self._escape(" ".join(reply.content_preview.split()))
        return f"> ↩ Replying to {name}: {preview}\n\n"

    def format_ImageRef(self, image: ImageRef) -> str:
        url = self._escape_url(image.url)
        if image.is_animated:
            static = self._escape_url(image.static_preview_url)
            return (
                "🎬 **GIF**\n\n"
                f"[![GIF preview]({static})]({url})\n\n"
                f"> Original link: {image.url}\n\n"
            )
        return f"![image]({url})\n\n"

    def format_Embed(self, embed: Embed) -> str:
        lines = ["📎 **[Embed]**"]
        if embed.author:
            lines.append(f"👤 {self._escape(embed.author)}")
        if embed.title:
            lines.append(self._strong(embed.title))
        if embed.description:
            lines.append(fragment_text(embed.description))
        if embed.fields:
            lines.append("")
            for field in embed.fields:
                value = fragment_text(field.value)
                lines.append(f"• {self._strong(field.name)}: {value}")
        if embed.thumbnail_url:
            lines.extend(["", f"🖼️ Thumbnail: ![thumbnail]({self._escape_url(embed.thumbnail_url)})"])
        if embed.image_url:
            lines.extend(["", f"![embed image]({self._escape_url(embed.image_url)})"])
        if embed.footer:
            lines.append(f"_{self._escape(embed.footer)}_")
        return self._quote("\n".join(lines)).replace("> \n", ">\n") + "\n\n"

    def format_Reaction(self, reaction: Reaction) -> str:
        if reaction.is_image:
            symbol = self._escape(fragment_text(reaction.symbol))
            if not symbol:
                symbol = f"![emoji]({self._escape_url(reaction.image_url or '')})"
        else:
            symbol = self._escape(reaction.symbol)
        return f"{symbol} ({reaction.count})"

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _render_header(self, item: RenderItem) -> str:
        message = item.message
        header = self._strong(message.username or UNKNOWN_USER)
        if self.options.include_timestamps and message.timestamp:
            header += f" - {format_timestamp(message.timestamp)}"
        return header + "\n\n"

    def _render_message(self, item: RenderItem) -> str:
        message = item.message
        options = self.options
        parts: list[str] = []

        if item.has_reply and message.reply_ref is not None:
            parts.append(self.format_ReplyRef(message.reply_ref))
        if item.show_header:
            parts.append(self._render_header(item))
        if message.content.text:
            parts.append(message.content.text + "\n\n")
        if options.include_images:
            parts.append(self.format_parts(message.attachments))
        parts.append(self.format_parts(message.embeds))
        if item.new_author and options.include_avatars and message.author.avatar_url:
            parts.append(f"> Avatar: {message.author.avatar_url}\n\n")
        if options.include_reactions and message.reactions:
            parts.append(f"> Reactions: {self.format_parts(message.reactions, ' ')}\n\n")

        parts.append("---\n\n")
        return "".join(parts)

    def render(
        self,
        items: list[RenderItem],
        channel_name: str,
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Generate the Markdown document."""
        header = (
            f"# {channel_name}\n\n"
            f"*Exported on {format_export_date(exported_at)}*\n\n"
            "---\n\n"
        )
        return header + "".join(self._render_message(item) for item in items)
