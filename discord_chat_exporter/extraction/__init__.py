"""Extraction of Message records from item views."""

from .author import (
    # Author fallback chain
    LastKnownAuthorStrategy,
    LocalHeaderStrategy,
    SiblingHeaderStrategy,
    default_author_strategies,
    resolve_author,
)
from .avatar import (
    # Avatar fallback chain
    CachedAvatarStrategy,
    LocalAvatarStrategy,
    SiblingAvatarStrategy,
    default_avatar_strategies,
    resolve_avatar,
)
from .content import fragment_text, sanitize_html
from .embeds import create_embed, extract_embeds
from .media import (
    extract_attachments,
    full_resolution_url,
    is_animated_url,
    normalize_avatar_url,
    static_preview_url,
)
from .message_factory import MessageExtractor
from .reactions import extract_reactions

__all__ = [
    # Author fallback chain
    "LocalHeaderStrategy",
    "LastKnownAuthorStrategy",
    "SiblingHeaderStrategy",
    "default_author_strategies",
    "resolve_author",
    # Avatar fallback chain
    "LocalAvatarStrategy",
    "CachedAvatarStrategy",
    "SiblingAvatarStrategy",
    "default_avatar_strategies",
    "resolve_avatar",
    # Body
    "sanitize_html",
    "fragment_text",
    "create_embed",
    "extract_embeds",
    "extract_attachments",
    "extract_reactions",
    # URL helpers
    "full_resolution_url",
    "is_animated_url",
    "normalize_avatar_url",
    "static_preview_url",
    # Entry point
    "MessageExtractor",
]
