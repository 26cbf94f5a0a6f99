"""HTML formatters for the parts of a message below its header.

Rich fragments (message content, embed descriptions and field values,
image reaction symbols) were sanitized at extraction time and are inserted
as they are. Everything else is escaped. Images are only emitted when the
cache holds their data URI, so the document never references the network
for pictures.
"""

from typing import Optional

from ..image_cache import ImageCache
from ..models import Embed, EmbedField, ImageRef, Reaction
from .utils import escape_html, style_color


# -- Attachments --------------------------------------------------------------


def format_image(image: ImageRef, cache: ImageCache) -> str:
    """Format one attachment; animated images get a badge and the original link."""
    data_uri = cache.get(image.static_preview_url)
    if data_uri is None:
        return ""
    if image.is_animated:
        url = escape_html(image.url)
        return (
            "<div class='image-container gif-container'>"
            f"<img src=\"{data_uri}\" alt='GIF'>"
            "<span class='gif-badge'>GIF</span>"
            f"<a href=\"{url}\" class='gif-link' target='_blank'>{url}</a>"
            "</div>"
        )
    return f"<img src=\"{data_uri}\" alt='image'>"


# -- Embeds -------------------------------------------------------------------


def _cached_img(cache: ImageCache, url: Optional[str], css_class: str, alt: str) -> str:
    data_uri = cache.get(url)
    if data_uri is None:
        return ""
    return f"<img class='{css_class}' src=\"{data_uri}\" alt='{alt}'>"


def format_embed_field(field: EmbedField) -> str:
    html_parts = ["<div class='embed-field'>"]
    if field.name:
        html_parts.append(f"<div class='embed-field-name'>{escape_html(field.name)}</div>")
    if field.value:
        html_parts.append(f"<div class='embed-field-value'>{field.value}</div>")
    html_parts.append("</div>")
    return "".join(html_parts)


def format_embed(embed: Embed, cache: ImageCache) -> str:
    """Format an embed card with its accent color as the left border."""
    style = style_color("border-left-color", embed.accent_color)
    html_parts = [f"<div class='embed' style=\"{style}\">"]
    html_parts.append(_cached_img(cache, embed.thumbnail_url, "embed-thumbnail", "thumbnail"))
    if embed.author:
        html_parts.append(f"<div class='embed-author'>{escape_html(embed.author)}</div>")
    if embed.title:
        html_parts.append(f"<div class='embed-title'>{escape_html(embed.title)}</div>")
    if embed.description:
        html_parts.append(f"<div class='embed-description'>{embed.description}</div>")
    if embed.fields:
        html_parts.append("<div class='embed-fields'>")
        html_parts.extend(format_embed_field(field) for field in embed.fields)
        html_parts.append("</div>")
    html_parts.append(_cached_img(cache, embed.image_url, "embed-image", "embed image"))
    if embed.footer:
        html_parts.append(f"<div class='embed-footer'>{escape_html(embed.footer)}</div>")
    html_parts.append("</div>")
    return "".join(html_parts)


# -- Reactions ----------------------------------------------------------------


def format_reaction(reaction: Reaction) -> str:
    symbol = reaction.symbol if reaction.is_image else escape_html(reaction.symbol)
    count = escape_html(reaction.count)
    return f"<span class='reaction'>{symbol}<span class='reaction-count'>{count}</span></span>"
