"""Avatar resolution as an ordered list of strategies.

Like authors, avatars are only drawn on the first message of a group.
Strategies in order:

1. LocalAvatarStrategy   - the item's own avatar image
2. CachedAvatarStrategy  - the avatar recorded for this author earlier
3. SiblingAvatarStrategy - the nearest earlier item that shows an avatar

Decorations (profile frames drawn over the avatar) and avatars inside
reply previews never count.
"""

from typing import Optional, Protocol, Sequence

from ..item_view import ImageNode, ItemView
from ..user_cache import UserContextCache
from .media import is_avatar_decoration, looks_like_avatar, normalize_avatar_url


class AvatarStrategy(Protocol):
    def resolve(
        self, item: ItemView, username: str, cache: UserContextCache
    ) -> Optional[str]: ...


def _first_avatar(nodes: list[ImageNode]) -> Optional[str]:
    for node in nodes:
        if node.src and not is_avatar_decoration(node):
            return node.src
    return None


class LocalAvatarStrategy:
    def __init__(self, size: int = 128):
        self.size = size

    def resolve(
        self, item: ItemView, username: str, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[str]:
        src = _first_avatar(item.find_avatar_images())
        if src is None:
            src = _first_avatar(
                [node for node in item.find_all_images() if looks_like_avatar(node)]
            )
        return normalize_avatar_url(src, self.size) if src else None


class CachedAvatarStrategy:
    def resolve(
        self, item: ItemView, username: str, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[str]:
        return cache.get_avatar(username) if username else None


class SiblingAvatarStrategy:
    def __init__(self, depth: int = 20, size: int = 128):
        self.depth = depth
        self.size = size

    def resolve(
        self, item: ItemView, username: str, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[str]:
        if not username:
            return None
        for sibling in item.preceding_siblings(self.depth):
            if src := _first_avatar(sibling.find_avatar_images()):
                return normalize_avatar_url(src, self.size)
        return None


def default_avatar_strategies(size: int = 128, sibling_depth: int = 20) -> list[AvatarStrategy]:
    return [
        LocalAvatarStrategy(size),
        CachedAvatarStrategy(),
        SiblingAvatarStrategy(sibling_depth, size),
    ]


def resolve_avatar(
    item: ItemView,
    username: str,
    cache: UserContextCache,
    strategies: Sequence[AvatarStrategy],
) -> Optional[str]:
    for strategy in strategies:
        if url := strategy.resolve(item, username, cache):
            cache.set_avatar(username, url)
            return url
    return None
