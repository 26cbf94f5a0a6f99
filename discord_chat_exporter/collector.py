"""Scroll-driven collection over a virtualized message list.

The chat view only keeps a window of messages mounted. The controller
scrolls it from the start boundary (or the very top) downwards, extracting
every item it has not seen yet, until the end boundary shows up or the
stall heuristic decides there is nothing left to load.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .exceptions import ContainerNotFound
from .extraction import MessageExtractor
from .item_view import ItemView
from .models import ExportOptions, Message, SelectionRange
from .progress import ProgressReporter
from .settings import DEFAULT_SETTINGS, ExportSettings
from .user_cache import UserContextCache

logger = logging.getLogger(__name__)


# -- Surface ------------------------------------------------------------------


@dataclass(frozen=True)
class ScrollMetrics:
    scroll_top: float
    client_height: float
    scroll_height: float


class ScrollSurface(Protocol):
    """What the controller needs from a scrollable message list."""

    async def locate_scroller(self) -> bool: ...

    async def metrics(self) -> ScrollMetrics: ...

    async def set_scroll_top(self, value: float) -> None: ...

    async def scroll_into_view(self, item_id: str) -> bool: ...

    async def mounted_items(self) -> Sequence[ItemView]: ...

    async def channel_name(self) -> str: ...


# -- Store and termination policy ---------------------------------------------


class CollectionStore:
    """Messages in encounter order, keyed by id. The first occurrence wins."""

    def __init__(self) -> None:
        self._messages: "OrderedDict[str, Message]" = OrderedDict()

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: Message) -> bool:
        if message.id in self._messages:
            return False
        self._messages[message.id] = message
        return True

    def messages(self) -> list[Message]:
        return list(self._messages.values())


class StallTracker:
    """Decides when scrolling has stopped making progress.

    Two independent limits: a short one when the view is confirmed at the
    bottom and nothing changed, a longer one when the scroll position is
    stuck somewhere else (usually while older history is still loading).
    """

    def __init__(self, settings: ExportSettings = DEFAULT_SETTINGS):
        self.settings = settings
        self.count = 0

    def observe(
        self,
        before: ScrollMetrics,
        after: ScrollMetrics,
        new_messages: bool,
    ) -> bool:
        """Record one scroll step. Returns True when collection should stop."""
        s = self.settings
        at_bottom = (
            after.scroll_top + after.client_height
            >= after.scroll_height - s.bottom_tolerance_px
        )
        scroll_stuck = abs(after.scroll_top - before.scroll_top) < s.stuck_delta_px
        no_new_messages = not new_messages
        height_unchanged = after.scroll_height == before.scroll_height

        if at_bottom and scroll_stuck and no_new_messages and height_unchanged:
            self.count += 1
            logger.debug("At bottom check: %d/%d", self.count, s.stall_limit_at_bottom)
            return self.count >= s.stall_limit_at_bottom
        if scroll_stuck and no_new_messages:
            self.count += 1
            return self.count >= s.stall_limit_stuck
        self.count = 0
        return False


# -- Controller ---------------------------------------------------------------


@dataclass
class _Boundaries:
    start_id: Optional[str]
    end_id: Optional[str]
    found_start: bool = False
    found_end: bool = False


class CollectionController:
    """Drives a ScrollSurface and accumulates extracted messages."""

    def __init__(
        self,
        surface: ScrollSurface,
        settings: ExportSettings = DEFAULT_SETTINGS,
        progress: Optional[ProgressReporter] = None,
        user_cache: Optional[UserContextCache] = None,
    ):
        self.surface = surface
        self.settings = settings
        self.progress = progress or ProgressReporter()
        self.user_cache = user_cache if user_cache is not None else UserContextCache()
        self.iterations = 0

    async def _settle(self, factor: float = 1.0) -> None:
        await asyncio.sleep(self.settings.scroll_delay * factor)

    async def collect(
        self,
        start_id: Optional[str] = None,
        end_id: Optional[str] = None,
        options: Optional[ExportOptions] = None,
    ) -> list[Message]:
        """Collect messages between two optional, inclusive boundaries.

        Raises:
            ContainerNotFound: if the surface has no scrollable message list.
        """
        if not await self.surface.locate_scroller():
            raise ContainerNotFound()

        self.user_cache.reset()
        self.iterations = 0
        extractor = MessageExtractor(options, self.user_cache, self.settings)
        store = CollectionStore()
        bounds = _Boundaries(start_id, end_id, found_start=start_id is None)

        if start_id is None:
            await self._seek_top()
            bounds.found_start = True
        elif await self.surface.scroll_into_view(start_id):
            await self._settle()
            bounds.found_start = True
        else:
            logger.warning("Start message %s not found by id", start_id)

        await self._collect_loop(extractor, store, bounds)

        if start_id is not None and not bounds.found_start:
            logger.warning("Start message not found, collecting all visible messages")
            for item in await self.surface.mounted_items():
                self._add(item, extractor, store)

        logger.info("Collected %d messages in %d iterations", len(store), self.iterations)
        return store.messages()

    async def collect_range(
        self,
        selection: Optional[SelectionRange] = None,
        options: Optional[ExportOptions] = None,
    ) -> list[Message]:
        selection = selection or SelectionRange()
        return await self.collect(selection.start_id, selection.end_id, options)

    async def _seek_top(self) -> None:
        s = self.settings
        label = "Scrolling to top..."
        self.progress.report(5, label)

        attempts = 0
        last_top = (await self.surface.metrics()).scroll_top
        while attempts < s.max_top_scroll_attempts:
            await self.surface.set_scroll_top(0)
            await self._settle()

            top = (await self.surface.metrics()).scroll_top
            if top == 0 or abs(top - last_top) < s.stuck_delta_px:
                # Double check that older history did not just load in
                await self._settle()
                if (await self.surface.metrics()).scroll_top < s.top_threshold_px:
                    break

            last_top = top
            attempts += 1
            self.progress.report(min(15, 5 + attempts), label)

        await self._settle(2)

    async def _collect_loop(
        self,
        extractor: MessageExtractor,
        store: CollectionStore,
        bounds: _Boundaries,
    ) -> None:
        s = self.settings
        stall = StallTracker(s)
        last_size = len(store)

        while self.iterations < s.max_iterations:
            self.iterations += 1

            items = await self.surface.mounted_items()
            if self._scan(items, extractor, store, bounds):
                break
            # Compared across scans: nothing is scanned within one scroll step
            new_messages = len(store) != last_size
            last_size = len(store)

            before = await self.surface.metrics()
            await self.surface.set_scroll_top(
                before.scroll_top + before.client_height * s.scroll_step_ratio
            )
            await self._settle()
            after = await self.surface.metrics()

            if stall.observe(before, after, new_messages):
                logger.info("Scroll stalled, stopping collection")
                break

            self.progress.report(
                min(55, 20 + self.iterations * 35 / s.max_iterations),
                f"Loading messages... ({len(store)} found)",
            )

    def _scan(
        self,
        items: Sequence[ItemView],
        extractor: MessageExtractor,
        store: CollectionStore,
        bounds: _Boundaries,
    ) -> bool:
        """Extract the mounted window. Returns True once the end is reached."""
        start_item = end_item = None
        for item in items:
            if bounds.start_id and item.message_id == bounds.start_id:
                start_item = item
            if bounds.end_id and item.message_id == bounds.end_id:
                end_item = item

        for item in items:
            message_id = item.message_id
            if not message_id:
                continue

            if bounds.end_id and message_id == bounds.end_id:
                self._add(item, extractor, store)
                bounds.found_end = True
                return True

            if end_item is not None and item.position > end_item.position:
                bounds.found_end = True
                return True

            if bounds.start_id:
                if message_id == bounds.start_id:
                    bounds.found_start = True
                    self._add(item, extractor, store)
                    continue
                if start_item is not None:
                    if item.position <= start_item.position:
                        continue
                elif not bounds.found_start:
                    continue

            self._add(item, extractor, store)
        return False

    @staticmethod
    def _add(item: ItemView, extractor: MessageExtractor, store: CollectionStore) -> None:
        message_id = item.message_id
        if not message_id or message_id in store:
            return
        if message := extractor.extract(item):
            store.add(message)
