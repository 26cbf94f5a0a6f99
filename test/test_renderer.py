"""Tests for header grouping and the Markdown and HTML renderers."""

import base64
from datetime import datetime

import pytest

from conftest import PNG_BYTES
from discord_chat_exporter.extraction.content import emoji_fragment
from discord_chat_exporter.html.renderer import PdfHtmlRenderer
from discord_chat_exporter.image_cache import ImageCache, ImageResolver
from discord_chat_exporter.markdown.renderer import MarkdownRenderer
from discord_chat_exporter.models import (
    Author,
    Embed,
    EmbedField,
    ExportOptions,
    ImageRef,
    Message,
    MessageContent,
    Reaction,
    ReplyRef,
)
from discord_chat_exporter.progress import ProgressReporter
from discord_chat_exporter.renderer import generate_render_items, get_renderer

EXPORTED_AT = datetime(2024, 3, 1, 12, 0, 0)
AVATAR = "https://cdn.discordapp.com/avatars/1/alice.png?size=128"
GIF = ImageRef(
    url="https://cdn.discordapp.com/attachments/1/2/dance.gif",
    is_animated=True,
    static_preview_url="https://cdn.discordapp.com/attachments/1/2/dance.png?format=png",
)


def make_message(
    index: int,
    username: str = "alice",
    text: str = "",
    reply: ReplyRef | None = None,
    **kwargs,
) -> Message:
    return Message(
        id=f"chat-messages-1-{index}",
        author=kwargs.pop("author", Author(username=username)),
        timestamp=kwargs.pop("timestamp", "2024-03-01T10:00:00.000Z"),
        content=MessageContent(html=text, text=text),
        reply_ref=reply,
        **kwargs,
    )


def _rule_lines(document: str) -> int:
    return sum(1 for line in document.split("\n") if line == "---")


class TestRenderItems:
    def test_header_rule(self):
        """Same-author runs collapse; replies and unknown authors keep a header."""
        messages = [
            make_message(0, "alice"),
            make_message(1, "alice"),
            make_message(2, "alice", reply=ReplyRef(username="bob", content_preview="?")),
            make_message(3, "bob"),
            make_message(4, ""),
            make_message(5, ""),
        ]
        items = generate_render_items(messages)

        assert [item.show_header for item in items] == [True, False, True, True, True, True]
        assert [item.new_author for item in items] == [True, False, False, True, True, True]
        assert [item.has_reply for item in items] == [False, False, True, False, False, False]

    def test_empty_reply_is_not_a_reply(self):
        messages = [make_message(0), make_message(1, reply=ReplyRef())]
        assert generate_render_items(messages)[1].show_header is False


class TestGetRenderer:
    def test_formats(self):
        assert isinstance(get_renderer("md"), MarkdownRenderer)
        assert isinstance(get_renderer("markdown"), MarkdownRenderer)
        assert isinstance(get_renderer("pdf"), PdfHtmlRenderer)
        assert isinstance(get_renderer("html"), PdfHtmlRenderer)

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            get_renderer("docx")


class TestMarkdownRenderer:
    def _render(self, messages, options=None) -> str:
        renderer = MarkdownRenderer(options)
        return renderer.render(generate_render_items(messages), "general", EXPORTED_AT)

    def test_document_header(self):
        document = self._render([])
        assert document == "# general\n\n*Exported on 2024-03-01 12:00:00*\n\n---\n\n"

    def test_grouped_messages(self):
        """Three messages from one author share a header and an avatar line."""
        messages = [
            make_message(0, author=Author(username="alice", avatar_url=AVATAR), text="one"),
            make_message(1, author=Author(username="alice", avatar_url=AVATAR), text="two"),
            make_message(2, author=Author(username="alice", avatar_url=AVATAR), text="three"),
        ]
        document = self._render(messages)

        assert document.count("**alice**") == 1
        assert "**alice** - 2024-03-01 10:00:00\n\none\n\n" in document
        assert document.count(f"> Avatar: {AVATAR}") == 1
        assert _rule_lines(document) == 4

    def test_reply_line(self):
        messages = [
            make_message(0, "bob", text="yes", reply=ReplyRef(username="alice", content_preview="ready?")),
        ]
        document = self._render(messages)
        assert "> ↩ Replying to **alice**: ready?\n\n**bob**" in document

    def test_escapes_emphasis(self):
        document = self._render([make_message(0, "a*b", text="hi")])
        assert "**a\\*b**" in document

    def test_unknown_author(self):
        assert "**Unknown**" in self._render([make_message(0, "", text="hi")])

    def test_gif_notice(self):
        document = self._render([make_message(0, text="look", attachments=[GIF])])
        assert "🎬 **GIF**" in document
        assert f"[![GIF preview]({GIF.static_preview_url})]({GIF.url})" in document
        assert f"> Original link: {GIF.url}" in document

    def test_still_image(self):
        image = ImageRef(url="https://x.test/cat.png", static_preview_url="https://x.test/cat.png")
        document = self._render([make_message(0, attachments=[image])])
        assert "![image](https://x.test/cat.png)" in document

    def test_embed_block(self):
        embed = Embed(
            title="Release",
            description="New <b>things</b>",
            fields=[EmbedField(name="Version", value="2.0")],
            footer="bot_footer",
        )
        document = self._render([make_message(0, embeds=[embed])])

        assert "> 📎 **[Embed]**\n> **Release**\n> New things\n>\n> • **Version**: 2.0" in document
        assert "> _bot\\_footer_" in document

    def test_reactions(self):
        reactions = [
            Reaction(
                symbol=emoji_fragment("https://cdn.discordapp.com/emojis/1.png", ":fire:"),
                count="3",
                image_url="https://cdn.discordapp.com/emojis/1.png",
            ),
            Reaction(symbol="👍", count="2"),
        ]
        document = self._render([make_message(0, text="nice", reactions=reactions)])
        assert "> Reactions: :fire: (3) 👍 (2)\n\n" in document

    def test_escapes_link_syntax_in_username(self):
        """A display name shaped like a link stays literal text."""
        document = self._render([make_message(0, "[x](https://evil)", text="hi")])
        assert "**\\[x\\]\\(https://evil\\)**" in document
        assert "[x](https://evil)" not in document

    def test_escapes_reply_preview(self):
        reply = ReplyRef(username="a_b", content_preview="# `code` <b>")
        document = self._render([make_message(0, "bob", text="ok", reply=reply)])
        assert "> ↩ Replying to **a\\_b**: \\# \\`code\\` \\<b\\>\n\n" in document

    def test_escapes_embed_text(self):
        embed = Embed(author="[bot](x)", title="**big**", footer="a#b")
        document = self._render([make_message(0, embeds=[embed])])

        assert "> 👤 \\[bot\\]\\(x\\)\n" in document
        assert "> **\\*\\*big\\*\\***\n" in document
        assert "> _a\\#b_" in document

    def test_escapes_reaction_text(self):
        reactions = [
            Reaction(symbol="`#`", count="1"),
            Reaction(
                symbol=emoji_fragment("https://cdn.discordapp.com/emojis/2.png", ":party_parrot:"),
                count="4",
                image_url="https://cdn.discordapp.com/emojis/2.png",
            ),
        ]
        document = self._render([make_message(0, text="nice", reactions=reactions)])
        assert "> Reactions: \\`\\#\\` (1) :party\\_parrot: (4)\n\n" in document

    def test_options_hide_parts(self):
        options = ExportOptions(
            include_images=False,
            include_avatars=False,
            include_timestamps=False,
            include_reactions=False,
        )
        message = make_message(
            0,
            author=Author(username="alice", avatar_url=AVATAR),
            text="hi",
            attachments=[GIF],
            reactions=[Reaction(symbol="👍", count="2")],
        )
        document = self._render([message], options)

        assert "**alice**\n\nhi" in document
        assert "GIF" not in document
        assert "Avatar:" not in document
        assert "Reactions:" not in document

    @pytest.mark.asyncio
    async def test_generate(self):
        document = await MarkdownRenderer().generate([make_message(0, text="hello")], "general")
        assert document.startswith("# general\n\n*Exported on ")
        assert "hello" in document


class TestPdfHtmlRenderer:
    PNG_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

    def _renderer(self, image_client, cache: ImageCache | None = None, options=None) -> PdfHtmlRenderer:
        resolver = ImageResolver(cache, client=image_client)
        return PdfHtmlRenderer(options, image_resolver=resolver)

    def _render(self, renderer: PdfHtmlRenderer, messages) -> str:
        return renderer.render(generate_render_items(messages), "general")

    def test_document_shell(self, image_client):
        html = self._render(self._renderer(image_client), [make_message(0, text="hi")])
        assert "<title>general</title>" in html
        assert "<h1>general</h1>" in html
        assert "<style>" in html

    def test_grouped_messages_get_spacer(self, image_client):
        html = self._render(
            self._renderer(image_client),
            [make_message(0, text="one"), make_message(1, text="two")],
        )
        assert html.count('class="avatar-spacer"') == 1
        assert html.count('class="message-header"') == 1

    def test_placeholder_initial(self, image_client):
        """Uncached avatars fall back to the author's initial."""
        html = self._render(
            self._renderer(image_client),
            [make_message(0, "alice", text="a"), make_message(1, "", text="b")],
        )
        assert '<div class="avatar-placeholder">A</div>' in html
        assert '<div class="avatar-placeholder">U</div>' in html

    def test_cached_avatar(self, image_client):
        cache = ImageCache()
        cache.put(AVATAR, self.PNG_URI)
        html = self._render(
            self._renderer(image_client, cache),
            [make_message(0, author=Author(username="alice", avatar_url=AVATAR), text="hi")],
        )
        assert f'<img class="avatar" src="{self.PNG_URI}" alt="avatar">' in html

    def test_no_avatars(self, image_client):
        html = self._render(
            self._renderer(image_client, options=ExportOptions(include_avatars=False)),
            [make_message(0, text="hi")],
        )
        assert 'class="avatar-placeholder"' not in html

    def test_escapes_username(self, image_client):
        html = self._render(self._renderer(image_client), [make_message(0, "<b>eve</b>", text="x")])
        assert "&lt;b&gt;eve&lt;/b&gt;" in html
        assert "<b>eve</b>" not in html

    def test_username_color(self, image_client):
        message = make_message(0, author=Author(username="alice", color="rgb(88, 101, 242)"), text="x")
        html = self._render(self._renderer(image_client), [message])
        assert 'style="color: rgb(88, 101, 242)"' in html

    def test_reply_info(self, image_client):
        message = make_message(0, "bob", text="yes", reply=ReplyRef(content_preview="ready?"))
        html = self._render(self._renderer(image_client), [message])
        assert '<span class="reply-username">Unknown</span>' in html
        assert '<span class="reply-content">ready?</span>' in html

    def test_content_fragment_is_inserted(self, image_client):
        message = make_message(0)
        message = message.model_copy(
            update={"content": MessageContent(html="Hello <strong>world</strong>", text="Hello world")}
        )
        html = self._render(self._renderer(image_client), [message])
        assert '<div class="content">Hello <strong>world</strong></div>' in html

    def test_embed_border(self, image_client):
        embed = Embed(title="Card", accent_color="rgb(255, 0, 0)", fields=[EmbedField(name="a&b", value="1")])
        html = self._render(self._renderer(image_client), [make_message(0, embeds=[embed])])
        assert 'style="border-left-color: rgb(255, 0, 0);"' in html
        assert "<div class='embed-field-name'>a&amp;b</div>" in html

    def test_gif_badge(self, image_client):
        cache = ImageCache()
        cache.put(GIF.static_preview_url, self.PNG_URI)
        html = self._render(self._renderer(image_client, cache), [make_message(0, attachments=[GIF])])
        assert "<span class='gif-badge'>GIF</span>" in html
        assert f"class='gif-link' target='_blank'>{GIF.url}</a>" in html

    def test_uncached_image_is_left_out(self, image_client):
        html = self._render(self._renderer(image_client), [make_message(0, attachments=[GIF])])
        assert "gif-badge'>" not in html

    def test_reactions(self, image_client):
        reactions = [Reaction(symbol="<3", count="2")]
        html = self._render(self._renderer(image_client), [make_message(0, reactions=reactions)])
        assert "<span class='reaction'>&lt;3<span class='reaction-count'>2</span></span>" in html

    @pytest.mark.asyncio
    async def test_generate_inlines_images(self, image_client, fast_settings):
        """Images are fetched up front, inlined, and the cache is emptied afterwards."""
        resolver = ImageResolver(client=image_client, settings=fast_settings)
        renderer = PdfHtmlRenderer(settings=fast_settings, image_resolver=resolver)
        messages = [
            make_message(0, author=Author(username="alice", avatar_url=AVATAR), text="hi"),
            make_message(1, "bob", author=Author(username="bob", avatar_url="https://x.test/missing.png")),
        ]

        html = await renderer.generate(messages, "general")

        assert f'<img class="avatar" src="{self.PNG_URI}"' in html
        assert '<div class="avatar-placeholder">B</div>' in html
        assert len(resolver.cache) == 0

    @pytest.mark.asyncio
    async def test_generate_reports_progress(self, image_client, fast_settings):
        reports: list[tuple[int, str]] = []
        settings = fast_settings.model_copy(update={"render_batch_size": 2})
        renderer = PdfHtmlRenderer(
            settings=settings,
            image_resolver=ImageResolver(client=image_client, settings=settings),
            progress=ProgressReporter(lambda p, t: reports.append((p, t))),
        )

        await renderer.generate([make_message(i, text=str(i)) for i in range(5)], "general")

        assert reports == [
            (88, "Generating PDF... (2/5)"),
            (96, "Generating PDF... (4/5)"),
        ]
