"""Embed extraction."""

from typing import Optional

from ..item_view import EmbedNode
from ..models import Embed, EmbedField
from .content import sanitize_html
from .media import full_resolution_url


TRANSPARENT = "rgba(0, 0, 0, 0)"


def create_embed(node: EmbedNode, include_images: bool = True) -> Optional[Embed]:
    """Build an Embed from a view node, or None if it carries no content.

    Thumbnails and images are only resolved when images are exported.
    """
    description = (
        sanitize_html(node.description_html).html if node.description_html else None
    )
    fields = [
        EmbedField(
            name=field.name or "",
            value=sanitize_html(field.value_html).html if field.value_html else "",
        )
        for field in node.fields
    ]

    thumbnail_url = image_url = None
    if include_images:
        if node.thumbnail is not None:
            thumbnail_url = full_resolution_url(node.thumbnail)
        if node.image is not None:
            image_url = full_resolution_url(node.image)

    accent = node.border_color.strip() if node.border_color else None
    embed = Embed(
        title=node.title or None,
        description=description or None,
        author=node.author or None,
        fields=fields,
        footer=node.footer or None,
        thumbnail_url=thumbnail_url,
        image_url=image_url,
        accent_color=accent if accent and accent != TRANSPARENT else None,
    )
    return None if embed.is_empty else embed


def extract_embeds(nodes: list[EmbedNode], include_images: bool = True) -> list[Embed]:
    return [
        embed
        for node in nodes
        if (embed := create_embed(node, include_images)) is not None
    ]
