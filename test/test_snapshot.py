"""Tests for the saved-page surface and document-level lookups."""

import pytest
from bs4 import BeautifulSoup

from discord_chat_exporter.item_view import channel_name_from_document, channel_name_from_path
from discord_chat_exporter.snapshot import StaticSurface


def _ids(items) -> list[str]:
    return [item.message_id for item in items]


class TestChannelName:
    def test_from_path(self):
        assert channel_name_from_path("/channels/123/456") == "Channel 456"
        assert channel_name_from_path("/channels/@me/789") == "Channel 789"
        assert channel_name_from_path("/app") == "Discord Chat Export"

    def test_from_document(self, page_html):
        soup = BeautifulSoup(page_html([], title="announcements"), "html.parser")
        assert channel_name_from_document(soup, "/channels/1/2") == "announcements"

    def test_document_without_title(self):
        soup = BeautifulSoup("<main></main>", "html.parser")
        assert channel_name_from_document(soup, "/channels/1/2") == "Channel 2"

    @pytest.mark.asyncio
    async def test_surface_uses_url(self):
        surface = StaticSurface(
            '<div id="chat-messages-1-1">x</div>', url="https://discord.com/channels/123/456"
        )
        assert await surface.channel_name() == "Channel 456"


class TestStaticSurface:
    @pytest.mark.asyncio
    async def test_unwindowed(self, numbered_surface):
        surface = numbered_surface(4)
        metrics = await surface.metrics()

        assert len(await surface.mounted_items()) == 4
        assert metrics.scroll_height == metrics.client_height == 240

    @pytest.mark.asyncio
    async def test_window_follows_scroll(self, numbered_surface):
        surface = numbered_surface(20, window=5)

        await surface.set_scroll_top(240)
        assert _ids(await surface.mounted_items()) == [f"chat-messages-1-{i}" for i in range(4, 9)]

        await surface.set_scroll_top(99_999)
        assert surface.scroll_top == 900
        assert _ids(await surface.mounted_items())[-1] == "chat-messages-1-19"

    @pytest.mark.asyncio
    async def test_scroll_into_view_needs_mounted_item(self, numbered_surface):
        """Only mounted items can be found by id, like the live client."""
        surface = numbered_surface(20, window=5)

        assert not await surface.scroll_into_view("chat-messages-1-10")
        assert await surface.scroll_into_view("chat-messages-1-3")
        assert surface.scroll_top == 180

    @pytest.mark.asyncio
    async def test_locate_scroller(self, page_html):
        assert await StaticSurface(page_html([])).locate_scroller()
        assert not await StaticSurface("<p>nothing</p>").locate_scroller()

    def test_from_file(self, saved_page):
        surface = StaticSurface.from_file(saved_page, window=2)
        assert len(surface.items) == 3
        assert surface.window == 2
