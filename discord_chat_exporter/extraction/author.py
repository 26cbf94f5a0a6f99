"""Author resolution as an ordered list of strategies.

Grouped messages have no header of their own, so the author has to be
inherited. Strategies are tried in order and the first one that returns a
name wins:

1. LocalHeaderStrategy     - the item's own header
2. LastKnownAuthorStrategy - the previous author seen in this run
3. SiblingHeaderStrategy   - the nearest earlier item that shows a header
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ..item_view import ItemView, StyledText
from ..user_cache import UserContextCache


# Computed colors that mean "no role color".
UNSET_COLORS = frozenset({"rgb(255, 255, 255)", "rgba(0, 0, 0, 0)"})


@dataclass(frozen=True)
class ResolvedAuthor:
    username: str
    color: Optional[str] = None


def clean_color(color: Optional[str]) -> Optional[str]:
    if not color or color.strip() in UNSET_COLORS:
        return None
    return color.strip()


def _from_styled(styled: Optional[StyledText]) -> Optional[ResolvedAuthor]:
    if styled is None or not styled.text:
        return None
    return ResolvedAuthor(username=styled.text, color=clean_color(styled.color))


class AuthorStrategy(Protocol):
    def resolve(
        self, item: ItemView, cache: UserContextCache
    ) -> Optional[ResolvedAuthor]: ...


class LocalHeaderStrategy:
    def resolve(
        self, item: ItemView, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[ResolvedAuthor]:
        return _from_styled(item.find_username())


class LastKnownAuthorStrategy:
    def resolve(
        self, item: ItemView, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[ResolvedAuthor]:
        if not cache.last_username:
            return None
        return ResolvedAuthor(
            username=cache.last_username,
            color=cache.get_color(cache.last_username),
        )


class SiblingHeaderStrategy:
    def __init__(self, depth: int = 10):
        self.depth = depth

    def resolve(
        self, item: ItemView, cache: UserContextCache  # noqa: ARG002
    ) -> Optional[ResolvedAuthor]:
        for sibling in item.preceding_siblings(self.depth):
            if found := _from_styled(sibling.find_username()):
                return found
        return None


def default_author_strategies(sibling_depth: int = 10) -> list[AuthorStrategy]:
    return [
        LocalHeaderStrategy(),
        LastKnownAuthorStrategy(),
        SiblingHeaderStrategy(sibling_depth),
    ]


def resolve_author(
    item: ItemView,
    cache: UserContextCache,
    strategies: Sequence[AuthorStrategy],
) -> ResolvedAuthor:
    """Run the strategies and record the outcome in the user cache.

    Returns an author with an empty username if nothing matched.
    """
    resolved = ResolvedAuthor(username="")
    for strategy in strategies:
        if found := strategy.resolve(item, cache):
            resolved = found
            break

    if not resolved.username:
        return resolved

    cache.last_username = resolved.username
    if resolved.color:
        cache.set_color(resolved.username, resolved.color)
        return resolved
    return ResolvedAuthor(
        username=resolved.username, color=cache.get_color(resolved.username)
    )
