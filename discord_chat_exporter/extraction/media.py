"""Image classification and URL normalisation.

Discord serves resized copies of attachments from media.discordapp.net; the
originals live on cdn.discordapp.com. These helpers turn whatever URL the
view happened to render into the best one to export.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..item_view import ImageNode
from ..models import ImageRef


CDN_HOST = "cdn.discordapp.com"
MEDIA_HOST = "media.discordapp.net"
RESIZE_PARAMS = frozenset({"width", "height", "size", "quality"})

_EMOJI_SRC_MARKERS = ("cdn.discordapp.com/emojis", "discord.com/assets", "twemoji")
_AVATAR_SRC_MARKERS = ("cdn.discordapp.com/avatars", "discord.com/avatars", "/avatars/")
_DECORATION_SRC_MARKERS = ("avatar-decoration", "avatar_decoration")
_DECORATION_CLASS_MARKERS = ("avatarDecoration", "avatar-decoration", "decoration")
_ATTACHMENT_PATHS = (f"{CDN_HOST}/attachments", f"{MEDIA_HOST}/attachments")
_SIZE_PARAM = re.compile(r"\?size=\d+")
_EMOJI_MAX_PX = 48


def is_discord_cdn(url: str) -> bool:
    return CDN_HOST in url or MEDIA_HOST in url


def is_emoji_image(node: ImageNode) -> bool:
    """Guess whether an <img> is an emoji rather than a picture."""
    return (
        any(marker in node.src for marker in _EMOJI_SRC_MARKERS)
        or "emoji" in node.class_name
        or node.data_type == "emoji"
        or node.aria_label.startswith(":")
        or bool(
            node.width
            and node.width <= _EMOJI_MAX_PX
            and node.height
            and node.height <= _EMOJI_MAX_PX
        )
    )


def is_avatar_image(node: ImageNode) -> bool:
    return "/avatars/" in node.src or "avatar" in node.class_name


def looks_like_avatar(node: ImageNode) -> bool:
    """Looser avatar test used when no avatar container matched."""
    return any(marker in node.src for marker in _AVATAR_SRC_MARKERS) or (
        "avatar" in node.class_name
    )


def is_avatar_decoration(node: ImageNode) -> bool:
    """Profile decorations are drawn over the avatar as a second image."""
    return (
        node.in_decoration
        or any(marker in node.src for marker in _DECORATION_SRC_MARKERS)
        or any(marker in node.class_name for marker in _DECORATION_CLASS_MARKERS)
    )


def normalize_avatar_url(url: str, size: int) -> str:
    """Ask the CDN for a fixed avatar size."""
    if "?size=" in url:
        return _SIZE_PARAM.sub(f"?size={size}", url, count=1)
    if "?" not in url:
        return f"{url}?size={size}"
    return url


def strip_resize_params(url: str) -> str:
    parts = urlsplit(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in RESIZE_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def full_resolution_url(node: ImageNode) -> Optional[str]:
    """Resolve an <img> to the URL of its unscaled original."""
    if node.original_src:
        return node.original_src

    src = node.src
    if not src:
        return None

    if is_discord_cdn(src):
        src = strip_resize_params(src).replace(MEDIA_HOST, CDN_HOST)

    href = node.anchor_href
    if href and any(path in href for path in _ATTACHMENT_PATHS):
        return href.replace(MEDIA_HOST, CDN_HOST)

    return src


def is_animated_url(url: Optional[str]) -> bool:
    if not url:
        return False
    lowered = url.lower()
    return ".gif" in lowered or "format=gif" in lowered


def static_preview_url(url: str) -> str:
    """Return a URL for the first frame of an animated image."""
    if not url:
        return url

    if is_discord_cdn(url):
        parts = urlsplit(url)
        path = parts.path
        if path.endswith(".gif"):
            path = path.replace(".gif", ".png", 1)
        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key != "format"
        ]
        query.append(("format", "png"))
        return urlunsplit(parts._replace(path=path, query=urlencode(query)))

    if "tenor.com" in url:
        return url.replace(".gif", ".png", 1)

    return url


def image_ref(url: str) -> ImageRef:
    animated = is_animated_url(url)
    return ImageRef(
        url=url,
        is_animated=animated,
        static_preview_url=static_preview_url(url) if animated else url,
    )


def extract_attachments(nodes: list[ImageNode]) -> list[ImageRef]:
    """Attachment images of an item, skipping avatars and emoji."""
    refs: list[ImageRef] = []
    for node in nodes:
        url = full_resolution_url(node)
        if url and not is_avatar_image(node) and not is_emoji_image(node):
            refs.append(image_ref(url))
    return refs
