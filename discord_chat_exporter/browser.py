"""Live ScrollSurface backed by a Playwright page.

Scrolling and measuring happen in the page. Item queries do not: on every
call the mounted window is serialized (after computed colors are stamped
into data attributes) and parsed with BeautifulSoup, so the extractor sees
the same SoupItemView it sees for saved pages.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
from urllib.parse import urlparse

from playwright.async_api import BrowserContext, Page, async_playwright

from .collector import ScrollMetrics
from .item_view import (
    BORDER_COLOR_ATTR,
    CHANNEL_NAME_SELECTORS,
    COLOR_ATTR,
    SCROLLER_SELECTORS,
    SELECTORS,
    SoupItemView,
    channel_name_from_path,
    parse_items,
)

logger = logging.getLogger(__name__)

SCROLLER_ATTR = "data-export-scroller"
DISCORD_APP_URL = "https://discord.com/channels/@me"

_LOCATE_SCROLLER_JS = """
([selectors, marker]) => {
  for (const selector of selectors) {
    const el = document.querySelector(selector);
    if (el) {
      el.setAttribute(marker, '1');
      return true;
    }
  }
  return false;
}
"""

_METRICS_JS = """
(marker) => {
  const s = document.querySelector(`[${marker}]`);
  return { scrollTop: s.scrollTop, clientHeight: s.clientHeight, scrollHeight: s.scrollHeight };
}
"""

_SET_SCROLL_TOP_JS = """
([marker, value]) => { document.querySelector(`[${marker}]`).scrollTop = value; }
"""

_SCROLL_INTO_VIEW_JS = """
(id) => {
  const el = document.getElementById(id);
  if (!el) return false;
  el.scrollIntoView({ behavior: 'instant', block: 'start' });
  return true;
}
"""

_SNAPSHOT_JS = """
([marker, usernameSelector, embedSelector, colorAttr, borderAttr]) => {
  const scroller = document.querySelector(`[${marker}]`);
  for (const el of scroller.querySelectorAll(usernameSelector)) {
    el.setAttribute(colorAttr, el.style.color || getComputedStyle(el).color);
  }
  for (const el of scroller.querySelectorAll(embedSelector)) {
    el.setAttribute(borderAttr, el.style.borderLeftColor || getComputedStyle(el).borderLeftColor);
  }
  return scroller.outerHTML;
}
"""

_CHANNEL_NAME_JS = """
(selectors) => {
  for (const selector of selectors) {
    const el = document.querySelector(selector);
    if (el && el.textContent.trim()) return el.textContent.trim();
  }
  return '';
}
"""


class PlaywrightSurface:
    """ScrollSurface driving the chat scroller of an open Discord tab."""

    def __init__(self, page: Page):
        self.page = page

    async def locate_scroller(self) -> bool:
        found = await self.page.evaluate(_LOCATE_SCROLLER_JS, [SCROLLER_SELECTORS, SCROLLER_ATTR])
        return bool(found)

    async def metrics(self) -> ScrollMetrics:
        data = await self.page.evaluate(_METRICS_JS, SCROLLER_ATTR)
        return ScrollMetrics(
            scroll_top=data["scrollTop"],
            client_height=data["clientHeight"],
            scroll_height=data["scrollHeight"],
        )

    async def set_scroll_top(self, value: float) -> None:
        await self.page.evaluate(_SET_SCROLL_TOP_JS, [SCROLLER_ATTR, value])

    async def scroll_into_view(self, item_id: str) -> bool:
        return bool(await self.page.evaluate(_SCROLL_INTO_VIEW_JS, item_id))

    async def mounted_items(self) -> list[SoupItemView]:
        html = await self.page.evaluate(
            _SNAPSHOT_JS,
            [
                SCROLLER_ATTR,
                SELECTORS["username"],
                SELECTORS["embed_wrapper"],
                COLOR_ATTR,
                BORDER_COLOR_ATTR,
            ],
        )
        return parse_items(html)

    async def channel_name(self) -> str:
        name = await self.page.evaluate(_CHANNEL_NAME_JS, CHANNEL_NAME_SELECTORS)
        return name or channel_name_from_path(urlparse(self.page.url).path)


@asynccontextmanager
async def open_channel(
    url: str, user_data_dir: Path, headless: bool = False
) -> AsyncIterator[tuple[BrowserContext, Page]]:
    """Open a channel in a persistent Chromium profile.

    The profile keeps the Discord login between runs; on first use, log in
    in the opened window (headless mode cannot do that).
    """
    async with async_playwright() as p:
        context = await p.chromium.launch_persistent_context(
            str(user_data_dir), headless=headless
        )
        try:
            page = context.pages[0] if context.pages else await context.new_page()
            logger.info("Navigating to %s", url)
            await page.goto(url or DISCORD_APP_URL)
            # A visible window waits for however long the login takes
            timeout = 60_000 if headless else 0
            await page.wait_for_selector(SELECTORS["message"], timeout=timeout)
            yield context, page
        finally:
            await context.close()


async def print_to_pdf(context: BrowserContext, html: str, output_path: Path) -> None:
    """Print an export document to PDF with Chromium."""
    page = await context.new_page()
    try:
        await page.set_content(html, wait_until="load")
        await page.emulate_media(media="print")
        await page.pdf(path=str(output_path), format="A4", print_background=True)
    finally:
        await page.close()


@asynccontextmanager
async def pdf_printer(headless: bool = True) -> AsyncIterator[BrowserContext]:
    """Throwaway Chromium context for printing documents made offline."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            yield await browser.new_context()
        finally:
            await browser.close()
