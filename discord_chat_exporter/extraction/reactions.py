"""Reaction extraction."""

import re

from ..item_view import ReactionNode
from ..models import Reaction
from .content import emoji_fragment


_TRAILING_COUNT = re.compile(r"\d+$")


def extract_reactions(nodes: list[ReactionNode]) -> list[Reaction]:
    """Turn reaction pills into Reactions, one per (emoji, count) pair.

    The reaction markup nests, so one visual pill can match more than once;
    pairs already seen are dropped.
    """
    reactions: list[Reaction] = []
    seen: set[tuple[str, str]] = set()

    for node in nodes:
        image_url = None
        if node.image is not None:
            key = node.image.src or node.image.alt
            symbol = emoji_fragment(node.image.src, node.image.alt)
            image_url = node.image.src or None
        else:
            symbol = _TRAILING_COUNT.sub("", node.text).strip()
            key = symbol

        count = node.count or "1"
        if not symbol or (key, count) in seen:
            continue
        seen.add((key, count))
        reactions.append(Reaction(symbol=symbol, count=count, image_url=image_url))

    return reactions
