"""ScrollSurface over a saved copy of a channel page.

A saved page has every captured message in the document at once. The
surface can still emulate a virtualized list: give it a `window` and only
that many consecutive items are reported as mounted, positioned by the
current scroll offset, the way the live client behaves.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .collector import ScrollMetrics
from .item_view import (
    SCROLLER_SELECTORS,
    SoupItemView,
    channel_name_from_document,
    items_from_soup,
)

logger = logging.getLogger(__name__)


class StaticSurface:
    """Scrollable view over a parsed HTML document.

    Every item is `item_height` pixels tall. Without a window the whole
    list is mounted and the view is always at the bottom.
    """

    def __init__(
        self,
        html: str,
        url: str = "",
        window: Optional[int] = None,
        item_height: int = 60,
    ):
        self.soup = BeautifulSoup(html, "html.parser")
        self.items = items_from_soup(self.soup)
        self.url = url
        self.window = window if window is not None else max(1, len(self.items))
        self.item_height = item_height
        self.scroll_top = 0.0
        logger.debug("Loaded %d message items from snapshot", len(self.items))

    @classmethod
    def from_file(cls, path: Path, url: str = "", **kwargs) -> "StaticSurface":
        return cls(path.read_text(encoding="utf-8"), url, **kwargs)

    @property
    def _max_scroll_top(self) -> float:
        return max(0, (len(self.items) - self.window) * self.item_height)

    def _first_mounted(self) -> int:
        return int(self.scroll_top // self.item_height)

    async def locate_scroller(self) -> bool:
        if self.items:
            return True
        return any(self.soup.select_one(selector) for selector in SCROLLER_SELECTORS)

    async def metrics(self) -> ScrollMetrics:
        return ScrollMetrics(
            scroll_top=self.scroll_top,
            client_height=self.window * self.item_height,
            scroll_height=len(self.items) * self.item_height,
        )

    async def set_scroll_top(self, value: float) -> None:
        self.scroll_top = min(max(0.0, value), self._max_scroll_top)

    async def scroll_into_view(self, item_id: str) -> bool:
        """Align a mounted item with the top of the view."""
        for item in await self.mounted_items():
            if item.message_id == item_id:
                await self.set_scroll_top(item.position * self.item_height)
                return True
        return False

    async def mounted_items(self) -> list[SoupItemView]:
        first = self._first_mounted()
        return self.items[first : first + self.window]

    async def channel_name(self) -> str:
        return channel_name_from_document(self.soup, urlparse(self.url).path)
