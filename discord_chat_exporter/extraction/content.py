"""Sanitizing of rich message fragments.

Discord renders every emoji twice, once as an image and once as hidden text
for screen readers, and sprinkles UI hints into the markup. Exporting the
raw fragment would duplicate emoji and leak those hints, so the fragment is
cleaned before it is stored.
"""

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from ..item_view import image_node
from ..models import MessageContent
from .media import is_emoji_image


ACCESSIBILITY_SELECTORS = ", ".join(
    [
        '[class*="visuallyHidden"]',
        '[class*="hiddenVisually"]',
        '[class*="srOnly"]',
        '[class*="screenReaderOnly"]',
        '[class*="emojiText"]',
        '[class*="accessibilityText"]',
        ".sr-only",
        '[aria-hidden="true"]:not(img)',
    ]
)

# UI hint phrases that Discord injects next to links and spoilers.
HINT_PATTERNS = [
    re.compile(re.escape("按一下以了解更多")),
    re.compile(re.escape("Click to learn more"), re.IGNORECASE),
    re.compile(re.escape("click to see more"), re.IGNORECASE),
]

EMOJI_STYLE = (
    "display: inline; width: 1.375em; height: 1.375em; "
    "vertical-align: -0.4em; object-fit: contain"
)

_EMOJI_CODE_ONLY = re.compile(r"^:[a-zA-Z0-9_]+:$")
_STRAY_EMOJI_CODE = re.compile(r"(?<![:\w]):[a-zA-Z0-9_]+:(?![:\w])")
_ACCESSIBLE_PARENT_MARKERS = ("emoji", "accessib", "hidden")
_CLICK_HINT_TITLE = "按一下"


def _class_str(tag: Tag) -> str:
    classes = tag.get("class")
    return " ".join(classes) if isinstance(classes, list) else (classes or "")


def _is_accessibility_label(parent: Tag) -> bool:
    title = parent.get("title")
    return (
        any(marker in _class_str(parent) for marker in _ACCESSIBLE_PARENT_MARKERS)
        or bool(parent.get("aria-label"))
        or (isinstance(title, str) and _CLICK_HINT_TITLE in title)
    )


def _remove_accessibility_nodes(root: Tag) -> None:
    for tag in root.select(ACCESSIBILITY_SELECTORS):
        if tag.decomposed or tag.name == "img":
            continue
        tag.decompose()


def _clean_text_nodes(root: Tag) -> None:
    for text_node in list(root.find_all(string=True)):
        if isinstance(text_node, Comment):
            text_node.extract()
            continue

        text = str(text_node)
        parent = text_node.parent
        if (
            _EMOJI_CODE_ONLY.match(text.strip())
            and isinstance(parent, Tag)
            and _is_accessibility_label(parent)
        ):
            text_node.extract()
            continue

        cleaned = text
        for pattern in HINT_PATTERNS:
            cleaned = pattern.sub("", cleaned)
        cleaned = _STRAY_EMOJI_CODE.sub("", cleaned)
        if cleaned != text:
            text_node.replace_with(NavigableString(cleaned))


def _mark_emoji_images(root: Tag) -> list[Tag]:
    emoji: list[Tag] = []
    for img in root.find_all("img"):
        if not is_emoji_image(image_node(img)):
            continue
        classes = img.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        if "emoji" not in classes:
            classes.append("emoji")
        img["class"] = classes
        img["data-type"] = "emoji"
        for attr in ("width", "height", "aria-label", "title"):
            if attr in img.attrs:
                del img[attr]
        img["style"] = EMOJI_STYLE
        emoji.append(img)
    return emoji


def _next_element_sibling(tag: Tag) -> Tag | None:
    """Next sibling, skipping whitespace-only text."""
    node = tag.next_sibling
    while isinstance(node, NavigableString) and not str(node).strip():
        node = node.next_sibling
    return node if isinstance(node, Tag) else None


def _collapse_duplicate_emoji(emoji: list[Tag]) -> None:
    for img in emoji:
        if img.decomposed:
            continue
        following = _next_element_sibling(img)
        while following is not None and following.name == "img" and str(following) == str(img):
            following.decompose()
            following = _next_element_sibling(img)


def _plain_text(root: Tag) -> str:
    parts: list[str] = []
    for node in root.descendants:
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif isinstance(node, Tag):
            if node.name == "br":
                parts.append("\n")
            elif node.name == "img" and node.get("data-type") == "emoji":
                alt = node.get("alt")
                if isinstance(alt, str):
                    parts.append(alt)
    return "".join(parts).strip()


def sanitize_html(fragment: str) -> MessageContent:
    """Clean a rich fragment and derive its plain-text projection."""
    soup = BeautifulSoup(fragment or "", "html.parser")
    _remove_accessibility_nodes(soup)
    _clean_text_nodes(soup)
    _collapse_duplicate_emoji(_mark_emoji_images(soup))
    html = soup.decode().strip()
    return MessageContent(html=html, text=_plain_text(soup))


def fragment_text(fragment: str) -> str:
    """Plain text of an already sanitized fragment (emoji as their alt text)."""
    return _plain_text(BeautifulSoup(fragment or "", "html.parser"))


def emoji_fragment(src: str, alt: str = "") -> str:
    """Build a standalone inline emoji <img> for reaction pills."""
    soup = BeautifulSoup("", "html.parser")
    img = soup.new_tag(
        "img",
        attrs={
            "class": "emoji",
            "data-type": "emoji",
            "src": src,
            "alt": alt,
            "style": "width: 1em; height: 1em; vertical-align: middle; object-fit: contain",
        },
    )
    return str(img)
