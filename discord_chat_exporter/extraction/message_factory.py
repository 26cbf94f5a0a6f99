"""Factory for creating Message records from mounted items.

This is the single entry point the collector calls for each item. It runs
the author and avatar fallback chains, sanitizes the body and gathers
attachments, embeds and reactions according to the export options.
"""

import logging
from typing import Optional, Sequence

from ..exceptions import ExtractionAmbiguity
from ..item_view import ItemView
from ..models import Author, ExportOptions, Message, MessageContent
from ..settings import DEFAULT_SETTINGS, ExportSettings
from ..user_cache import UserContextCache
from .author import AuthorStrategy, default_author_strategies, resolve_author
from .avatar import AvatarStrategy, default_avatar_strategies, resolve_avatar
from .content import sanitize_html
from .embeds import extract_embeds
from .media import extract_attachments
from .reactions import extract_reactions

logger = logging.getLogger(__name__)


class MessageExtractor:
    """Converts one item view into a Message, consulting the user cache.

    Items must be passed in encounter order; grouped messages inherit their
    author from whatever was extracted before them.
    """

    def __init__(
        self,
        options: Optional[ExportOptions] = None,
        user_cache: Optional[UserContextCache] = None,
        settings: ExportSettings = DEFAULT_SETTINGS,
        author_strategies: Optional[Sequence[AuthorStrategy]] = None,
        avatar_strategies: Optional[Sequence[AvatarStrategy]] = None,
    ):
        self.options = options or ExportOptions()
        self.user_cache = user_cache if user_cache is not None else UserContextCache()
        self.author_strategies = (
            list(author_strategies)
            if author_strategies is not None
            else default_author_strategies(settings.author_sibling_depth)
        )
        self.avatar_strategies = (
            list(avatar_strategies)
            if avatar_strategies is not None
            else default_avatar_strategies(
                settings.avatar_size, settings.avatar_sibling_depth
            )
        )

    def extract(self, item: ItemView) -> Optional[Message]:
        """Build a Message from an item, or None if there is nothing to keep."""
        message_id = item.message_id
        if message_id is None:
            return None

        options = self.options
        author = resolve_author(item, self.user_cache, self.author_strategies)
        if not author.username:
            logger.debug("%s", ExtractionAmbiguity(message_id, "author"))

        avatar_url = None
        if options.include_avatars:
            avatar_url = resolve_avatar(
                item, author.username, self.user_cache, self.avatar_strategies
            )
            if avatar_url is None and author.username:
                logger.debug("%s", ExtractionAmbiguity(message_id, "avatar"))

        fragment = item.find_content()
        content = sanitize_html(fragment.html) if fragment else MessageContent()

        message = Message(
            id=message_id,
            author=Author(
                username=author.username,
                color=author.color,
                avatar_url=avatar_url,
            ),
            timestamp=item.find_timestamp() if options.include_timestamps else None,
            content=content,
            attachments=(
                extract_attachments(item.find_media_images())
                if options.include_images
                else []
            ),
            embeds=extract_embeds(item.find_embeds(), options.include_images),
            reactions=(
                extract_reactions(item.find_reactions())
                if options.include_reactions
                else []
            ),
            reply_ref=item.find_reply(),
        )

        if message.is_empty:
            logger.debug("Dropping empty item %s", message_id)
            return None
        return message
