"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from discord_chat_exporter.settings import ExportSettings
from discord_chat_exporter.snapshot import StaticSurface


AVATAR_URL = "https://cdn.discordapp.com/avatars/11/alice.png?size=80"
PNG_BYTES = b"\x89PNG\r\n\x1a\n"


def message_item(
    index: int,
    author: Optional[str] = None,
    content: str = "",
    color: Optional[str] = None,
    avatar: Optional[str] = None,
    timestamp: Optional[str] = "2024-03-01T10:00:00.000Z",
    reply: Optional[tuple[str, str]] = None,
    body: str = "",
) -> str:
    """HTML for one item of the chat list, shaped like Discord's markup."""
    parts = [
        f'<li id="chat-messages-1-{index}" class="messageListItem">'
        '<div class="cozyMessage"><div class="contents">'
    ]
    if reply is not None:
        parts.append(
            '<div class="repliedMessage">'
            f'<span class="username">{reply[0]}</span>'
            f'<div class="repliedTextContent">{reply[1]}</div>'
            "</div>"
        )
    if author is not None:
        if avatar:
            parts.append(f'<img class="avatar" src="{avatar}" alt="">')
        style = f' style="color: {color}"' if color else ""
        parts.append(f'<h3 class="header"><span class="username"{style}>{author}</span>')
        if timestamp:
            parts.append(f'<time datetime="{timestamp}">Today at 10:00</time>')
        parts.append("</h3>")
    elif timestamp:
        parts.append(f'<time datetime="{timestamp}">10:00</time>')
    if content:
        parts.append(f'<div class="messageContent">{content}</div>')
    parts.append(body)
    parts.append("</div></div></li>")
    return "".join(parts)


def channel_page(items: list[str], title: str = "general") -> str:
    """A saved channel page around the given items."""
    return (
        "<html><body><div class='chatContent'>"
        f"<h2 class='title_1a channel_2b'>{title}</h2>"
        "<div class='messagesWrapper'><div class='scroller'><ol class='scrollerInner'>"
        + "".join(items)
        + "</ol></div></div></div></body></html>"
    )


def numbered_page(count: int, author: str = "alice") -> str:
    """`count` messages from one author, the first one with a header."""
    items = [message_item(0, author=author, content="message 0", avatar=AVATAR_URL)]
    items += [message_item(i, content=f"message {i}", timestamp=None) for i in range(1, count)]
    return channel_page(items)


@pytest.fixture
def fast_settings() -> ExportSettings:
    """Settings with no settle delay."""
    return ExportSettings(scroll_delay=0.0, render_yield_delay=0.0)


@pytest.fixture
def item_html() -> Callable[..., str]:
    return message_item


@pytest.fixture
def page_html() -> Callable[..., str]:
    return channel_page


@pytest.fixture
def numbered_surface() -> Callable[..., StaticSurface]:
    """Factory for a virtualized surface over `count` numbered messages."""

    def make(count: int, window: Optional[int] = None) -> StaticSurface:
        return StaticSurface(numbered_page(count), window=window)

    return make


@pytest.fixture
def saved_page(tmp_path: Path) -> Path:
    """A small saved channel page on disk."""
    page = channel_page(
        [
            message_item(1, author="alice", content="Hello <strong>everyone</strong>", avatar=AVATAR_URL),
            message_item(2, content="second line", timestamp=None),
            message_item(3, author="bob", content="hi alice", reply=("alice", "Hello everyone")),
        ]
    )
    path = tmp_path / "channel.html"
    path.write_text(page, encoding="utf-8")
    return path


@pytest.fixture
def image_client() -> httpx.AsyncClient:
    """HTTP client that serves a tiny PNG for every URL except */missing*."""

    def handler(request: httpx.Request) -> httpx.Response:
        if "missing" in request.url.path:
            return httpx.Response(404)
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
