"""Read-only, role-scoped views over one message item of the chat list.

The extractor never touches a live document. It asks an ItemView for the
parts it needs (header, avatar candidates, content region, ...) and applies
its own normalisation policy to the answers. SoupItemView answers those
queries from a BeautifulSoup snapshot of the message list; the browser
surface stamps computed colors into data attributes before taking the
snapshot, so nothing here needs a rendering engine.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol, Sequence

from bs4 import BeautifulSoup, Tag

from .models import ReplyRef


MESSAGE_ID_PREFIX = "chat-messages-"

SELECTORS = {
    "message": f'[id^="{MESSAGE_ID_PREFIX}"]',
    "content": '[class*="messageContent"]',
    "username": '[class*="username"]',
    "timestamp": "time",
    "avatar": '[class*="avatar"] img, [class*="avatarWrapper"] img, img[class*="avatar"]',
    "avatar_wrapper": '[class*="avatar"]',
    "header": '[class*="header"]',
    "replied_message": '[class*="repliedMessage"]',
    "replied_text": '[class*="repliedTextContent"]',
    "media_images": (
        '[class*="imageWrapper"] img, [class*="embedImage"] img, '
        '[class*="mediaAttachment"] img'
    ),
    "reactions": '[class*="reactions"]',
    "reaction_items": ':scope > [class*="reaction"], :scope > * > [class*="reaction"]',
    "reaction_count": '[class*="reactionCount"]',
    "embed_wrapper": '[class*="embedWrapper"], [class*="embed-"]',
    "embed_title": '[class*="embedTitle"]',
    "embed_description": '[class*="embedDescription"]',
    "embed_field": '[class*="embedField"]',
    "embed_field_name": '[class*="embedFieldName"]',
    "embed_field_value": '[class*="embedFieldValue"]',
    "embed_author": '[class*="embedAuthor"]',
    "embed_footer": '[class*="embedFooter"]',
    "embed_thumbnail": '[class*="embedThumbnail"] img',
    "embed_image": '[class*="embedImage"] img, [class*="embedMedia"] img',
}

# Tried in order against the whole document.
CHANNEL_NAME_SELECTORS = [
    '[class*="title"][class*="channel"]',
    '[class*="channelName"]',
    'h1[class*="title"]',
    '[class*="header"] [class*="title"]',
    '[class*="chat"] [class*="title"]',
]

SCROLLER_SELECTORS = [
    '[class*="messagesWrapper"] [class*="scroller"]',
    '[class*="chatContent"] [class*="scroller"]',
    'main [class*="scroller"]',
]

DEFAULT_CHANNEL_NAME = "Discord Chat Export"

# Attributes written by the browser snapshot script.
COLOR_ATTR = "data-export-color"
BORDER_COLOR_ATTR = "data-export-border-color"

# Reply previews live inside the item but belong to another message.
_REPLY_FRAGMENTS = ("repliedMessage", "repliedTextContent", "replyBar")
# A single embed field, not the fields container or the name/value parts.
_EMBED_FIELD_CLASS = re.compile(r"embedField(?![A-Za-z])")
_CHANNEL_PATH = re.compile(r"/channels/[^/]+/(\d+)")


# -- Node records -------------------------------------------------------------


@dataclass(frozen=True)
class StyledText:
    text: str
    color: Optional[str] = None


@dataclass(frozen=True)
class ImageNode:
    """The attributes of an <img> that the extraction policy looks at."""

    src: str = ""
    alt: str = ""
    class_name: str = ""
    aria_label: str = ""
    data_type: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    original_src: Optional[str] = None
    anchor_href: Optional[str] = None
    in_decoration: bool = False
    outer_html: str = ""


@dataclass(frozen=True)
class ContentFragment:
    html: str


@dataclass(frozen=True)
class EmbedFieldNode:
    name: Optional[str]
    value_html: Optional[str]


@dataclass(frozen=True)
class EmbedNode:
    author: Optional[str] = None
    title: Optional[str] = None
    description_html: Optional[str] = None
    fields: list[EmbedFieldNode] = field(default_factory=list)
    footer: Optional[str] = None
    thumbnail: Optional[ImageNode] = None
    image: Optional[ImageNode] = None
    border_color: Optional[str] = None


@dataclass(frozen=True)
class ReactionNode:
    image: Optional[ImageNode]
    text: str
    count: Optional[str]


# -- Interface ----------------------------------------------------------------


class ItemView(Protocol):
    """Role-scoped queries over one mounted message item."""

    @property
    def message_id(self) -> Optional[str]: ...

    @property
    def position(self) -> int: ...

    def find_username(self) -> Optional[StyledText]: ...

    def find_avatar_images(self) -> list[ImageNode]: ...

    def find_all_images(self) -> list[ImageNode]: ...

    def find_content(self) -> Optional[ContentFragment]: ...

    def find_media_images(self) -> list[ImageNode]: ...

    def find_embeds(self) -> list[EmbedNode]: ...

    def find_reactions(self) -> list[ReactionNode]: ...

    def find_reply(self) -> Optional[ReplyRef]: ...

    def find_timestamp(self) -> Optional[str]: ...

    def preceding_siblings(self, limit: int) -> Iterator["ItemView"]: ...


# -- Helpers ------------------------------------------------------------------


def _class_str(tag: Tag) -> str:
    classes = tag.get("class")
    if isinstance(classes, list):
        return " ".join(classes)
    return classes or ""


def _closest(tag: Tag, fragments: Sequence[str], root: Optional[Tag] = None) -> bool:
    """True if tag or an ancestor (up to root) has a class containing a fragment."""
    node: Optional[Tag] = tag
    while node is not None and isinstance(node, Tag):
        class_str = _class_str(node)
        if any(fragment in class_str for fragment in fragments):
            return True
        if node is root:
            break
        node = node.parent
    return False


def _text(tag: Optional[Tag]) -> str:
    return tag.get_text().strip() if tag is not None else ""


def _int_attr(tag: Tag, name: str) -> Optional[int]:
    value = tag.get(name)
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _style_value(tag: Tag, *properties: str) -> Optional[str]:
    style = tag.get("style")
    if not isinstance(style, str):
        return None
    declarations = {}
    for declaration in style.split(";"):
        if ":" in declaration:
            key, _, value = declaration.partition(":")
            declarations[key.strip().lower()] = value.strip()
    for prop in properties:
        if declarations.get(prop):
            return declarations[prop]
    return None


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def image_node(img: Tag, root: Optional[Tag] = None) -> ImageNode:
    """Snapshot the attributes of an <img> tag."""
    original = (
        _attr(img, "data-original-src")
        or _attr(img, "data-src")
        or _attr(img, "data-safe-src")
        or None
    )
    anchor = img.find_parent("a")
    anchor_href = _attr(anchor, "href") if anchor is not None else ""
    return ImageNode(
        src=_attr(img, "src"),
        alt=_attr(img, "alt"),
        class_name=_class_str(img),
        aria_label=_attr(img, "aria-label"),
        data_type=_attr(img, "data-type"),
        width=_int_attr(img, "width"),
        height=_int_attr(img, "height"),
        original_src=original,
        anchor_href=anchor_href or None,
        in_decoration=_closest(img, ("decoration", "Decoration"), root),
        outer_html=str(img),
    )


# -- BeautifulSoup implementation ---------------------------------------------


class SoupItemView:
    """ItemView backed by a BeautifulSoup element."""

    def __init__(self, tag: Tag, position: int = -1):
        self._tag = tag
        self._position = position

    def __repr__(self) -> str:
        return f"SoupItemView({self.message_id!r}, position={self._position})"

    @property
    def tag(self) -> Tag:
        return self._tag

    @property
    def message_id(self) -> Optional[str]:
        item_id = self._tag.get("id")
        if isinstance(item_id, str) and item_id.startswith(MESSAGE_ID_PREFIX):
            return item_id
        return None

    @property
    def position(self) -> int:
        return self._position

    def _outside_reply(self, tag: Tag) -> bool:
        return not _closest(tag, _REPLY_FRAGMENTS, self._tag)

    # Author

    def _styled(self, tag: Tag) -> StyledText:
        color = _attr(tag, COLOR_ATTR) or _style_value(tag, "color")
        return StyledText(text=_text(tag), color=color or None)

    def find_username(self) -> Optional[StyledText]:
        for header in self._tag.select(SELECTORS["header"]):
            if not self._outside_reply(header):
                continue
            username = header.select_one(SELECTORS["username"])
            if username is not None and _text(username):
                return self._styled(username)
            break

        for username in self._tag.select(SELECTORS["username"]):
            if self._outside_reply(username) and _text(username):
                return self._styled(username)
        return None

    # Images

    def find_avatar_images(self) -> list[ImageNode]:
        """Avatar candidates outside reply previews, most specific first."""
        seen: set[int] = set()
        nodes: list[ImageNode] = []

        def add(img: Tag) -> None:
            if id(img) not in seen and self._outside_reply(img):
                seen.add(id(img))
                nodes.append(image_node(img, self._tag))

        for img in self._tag.select(SELECTORS["avatar"]):
            add(img)
        for wrapper in self._tag.select(SELECTORS["avatar_wrapper"]):
            if "decoration" in _class_str(wrapper).lower():
                continue
            img = wrapper.find("img")
            if isinstance(img, Tag):
                add(img)
        return nodes

    def find_all_images(self) -> list[ImageNode]:
        return [
            image_node(img, self._tag)
            for img in self._tag.find_all("img")
            if self._outside_reply(img)
        ]

    def find_media_images(self) -> list[ImageNode]:
        return [
            image_node(img, self._tag)
            for img in self._tag.select(SELECTORS["media_images"])
        ]

    # Body

    def find_content(self) -> Optional[ContentFragment]:
        for region in self._tag.select(SELECTORS["content"]):
            if self._outside_reply(region):
                return ContentFragment(html=region.decode_contents())
        return None

    def find_embeds(self) -> list[EmbedNode]:
        return [self._embed(wrapper) for wrapper in self._tag.select(SELECTORS["embed_wrapper"])]

    def _embed(self, wrapper: Tag) -> EmbedNode:
        def first(key: str) -> Optional[Tag]:
            return wrapper.select_one(SELECTORS[key])

        fields: list[EmbedFieldNode] = []
        for field_tag in wrapper.select(SELECTORS["embed_field"]):
            if not _EMBED_FIELD_CLASS.search(_class_str(field_tag)):
                continue
            name = field_tag.select_one(SELECTORS["embed_field_name"])
            value = field_tag.select_one(SELECTORS["embed_field_value"])
            if name is None and value is None:
                continue
            fields.append(
                EmbedFieldNode(
                    name=_text(name) if name is not None else None,
                    value_html=value.decode_contents() if value is not None else None,
                )
            )

        description = first("embed_description")
        thumbnail = first("embed_thumbnail")
        image = first("embed_image")
        border = _attr(wrapper, BORDER_COLOR_ATTR) or _style_value(
            wrapper, "border-left-color", "border-color"
        )
        return EmbedNode(
            author=_text(first("embed_author")) or None,
            title=_text(first("embed_title")) or None,
            description_html=description.decode_contents() if description else None,
            fields=fields,
            footer=_text(first("embed_footer")) or None,
            thumbnail=image_node(thumbnail, wrapper) if thumbnail else None,
            image=image_node(image, wrapper) if image else None,
            border_color=border or None,
        )

    def find_reactions(self) -> list[ReactionNode]:
        container = self._tag.select_one(SELECTORS["reactions"])
        if container is None:
            return []

        matches = container.select(SELECTORS["reaction_items"])
        matched_ids = {id(tag) for tag in matches}
        nodes: list[ReactionNode] = []
        for reaction in matches:
            # Skip the inner parts of a reaction that was already matched
            if any(id(parent) in matched_ids for parent in _parents_until(reaction, container)):
                continue
            img = reaction.find("img")
            count = reaction.select_one(SELECTORS["reaction_count"])
            nodes.append(
                ReactionNode(
                    image=image_node(img, reaction) if isinstance(img, Tag) else None,
                    text=_text(reaction),
                    count=_text(count) or None,
                )
            )
        return nodes

    def find_reply(self) -> Optional[ReplyRef]:
        replied = self._tag.select_one(SELECTORS["replied_message"])
        if replied is None:
            return None
        return ReplyRef(
            username=_text(replied.select_one(SELECTORS["username"])),
            content_preview=_text(replied.select_one(SELECTORS["replied_text"])),
        )

    def find_timestamp(self) -> Optional[str]:
        time_tag = self._tag.select_one(SELECTORS["timestamp"])
        if time_tag is None:
            return None
        return _attr(time_tag, "datetime") or _text(time_tag) or None

    # Neighbours

    def preceding_siblings(self, limit: int) -> Iterator["SoupItemView"]:
        """Yield earlier message items among the first `limit` preceding siblings."""
        for steps, sibling in enumerate(self._tag.find_previous_siblings()):
            if steps >= limit:
                break
            view = SoupItemView(sibling)
            if view.message_id is not None:
                yield view


def _parents_until(tag: Tag, stop: Tag) -> Iterator[Tag]:
    for parent in tag.parents:
        if parent is stop:
            return
        yield parent


# -- Document-level queries ---------------------------------------------------


def parse_items(html: str) -> list[SoupItemView]:
    """Parse a snapshot of the message list into ordered item views."""
    soup = BeautifulSoup(html, "html.parser")
    return items_from_soup(soup)


def items_from_soup(soup: BeautifulSoup | Tag) -> list[SoupItemView]:
    return [
        SoupItemView(tag, position)
        for position, tag in enumerate(soup.select(SELECTORS["message"]))
    ]


def channel_name_from_path(path: str) -> str:
    match = _CHANNEL_PATH.search(path or "")
    return f"Channel {match.group(1)}" if match else DEFAULT_CHANNEL_NAME


def channel_name_from_document(soup: BeautifulSoup, path: str = "") -> str:
    """Find the channel title in a page, falling back to the URL path."""
    for selector in CHANNEL_NAME_SELECTORS:
        tag = soup.select_one(selector)
        if tag is not None and _text(tag):
            return _text(tag)
    return channel_name_from_path(path)
