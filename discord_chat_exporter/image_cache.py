"""Image fetching and the bounded data-URI cache used by the PDF renderer.

The print-ready document must not depend on the network, so every image it
references is fetched up front and inlined as a data URI. Fetching is the
only part of rendering that awaits; the template stage reads the cache
synchronously.
"""

import asyncio
import base64
import logging
import mimetypes
from collections import OrderedDict
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx

from .exceptions import AssetFetchFailure
from .models import ExportOptions, Message
from .progress import ProgressReporter
from .settings import DEFAULT_SETTINGS, ExportSettings

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/png"


class ImageCache:
    """URL -> data URI map with first-in-first-out eviction."""

    def __init__(self, max_size: int = DEFAULT_SETTINGS.image_cache_size):
        self.max_size = max_size
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, url: Optional[str]) -> Optional[str]:
        if not url:
            return None
        return self._entries.get(url)

    def put(self, url: str, data_uri: str) -> None:
        if url in self._entries:
            # Overwrite in place; insertion order is what decides eviction
            self._entries[url] = data_uri
            return
        while len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from image cache", evicted)
        self._entries[url] = data_uri

    def clear(self) -> None:
        self._entries.clear()


def media_type_for(url: str, content_type: Optional[str] = None) -> str:
    """Pick the media type from the response header, the URL, or a default."""
    if content_type:
        media_type = content_type.split(";", 1)[0].strip()
        if media_type:
            return media_type
    guessed, _ = mimetypes.guess_type(urlparse(url).path)
    return guessed or DEFAULT_MEDIA_TYPE


def to_data_uri(content: bytes, media_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def collect_image_urls(
    messages: Iterable[Message], options: Optional[ExportOptions] = None
) -> list[str]:
    """Every image URL the PDF renderer will ask for, first-seen order.

    Embed images are always included: embeds are rendered regardless of
    the image option, which only filters message attachments.
    """
    options = options or ExportOptions()
    urls: dict[str, None] = {}

    for message in messages:
        if options.include_avatars and message.author.avatar_url:
            urls.setdefault(message.author.avatar_url)
        if options.include_images:
            for image in message.attachments:
                urls.setdefault(image.static_preview_url)
        for embed in message.embeds:
            if embed.thumbnail_url:
                urls.setdefault(embed.thumbnail_url)
            if embed.image_url:
                urls.setdefault(embed.image_url)

    return list(urls)


class ImageResolver:
    """Fetches images into an ImageCache.

    Pass an `httpx.AsyncClient` to control transport (tests use
    `httpx.MockTransport`); otherwise one is created and owned here.
    Use as an async context manager, or call `aclose()`.
    """

    def __init__(
        self,
        cache: Optional[ImageCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: ExportSettings = DEFAULT_SETTINGS,
    ):
        self.cache = cache if cache is not None else ImageCache(settings.image_cache_size)
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.fetch_timeout, follow_redirects=True
        )

    async def __aenter__(self) -> "ImageResolver":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _fetch(self, url: str) -> str:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AssetFetchFailure(url, str(exc) or type(exc).__name__) from exc
        media_type = media_type_for(url, response.headers.get("content-type"))
        return to_data_uri(response.content, media_type)

    async def resolve(self, url: Optional[str]) -> Optional[str]:
        """Return the image as a data URI, or None if it cannot be fetched."""
        if not url:
            return None
        if url.startswith("data:"):
            return url
        if (cached := self.cache.get(url)) is not None:
            return cached

        try:
            data_uri = await self._fetch(url)
        except AssetFetchFailure as exc:
            logger.warning("%s", exc)
            return None

        self.cache.put(url, data_uri)
        return data_uri

    async def prefetch(
        self, urls: list[str], progress: Optional[ProgressReporter] = None
    ) -> None:
        """Resolve urls in small concurrent batches, reporting progress."""
        total = len(urls)
        batch_size = max(1, self.settings.prefetch_batch_size)

        for start in range(0, total, batch_size):
            batch = urls[start : start + batch_size]
            await asyncio.gather(*(self.resolve(url) for url in batch))
            if progress is not None:
                done = min(start + batch_size, total)
                progress.report(
                    50 + (start * 30) // total,
                    f"Prefetching images... ({done}/{total})",
                )
        logger.debug("Prefetched %d images, %d cached", total, len(self.cache))
