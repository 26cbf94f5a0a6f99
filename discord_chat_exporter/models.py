"""Pydantic models for exported chat messages.

These are the format-neutral records produced by the extractor and consumed
by the renderers. Every record is frozen: a Message is built once, while its
item is mounted, and never touched again.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# Message Parts
# =============================================================================


class Author(_Record):
    """Who wrote a message.

    `username` is empty when no fallback could resolve it. `color` is a CSS
    color string and `avatar_url` is already normalised to the avatar size.
    """

    username: str = ""
    color: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.username


class ImageRef(_Record):
    """An attached image, resolved to its highest-resolution URL."""

    url: str
    is_animated: bool = False
    static_preview_url: str


class EmbedField(_Record):
    name: str = ""
    value: str = ""  # sanitized HTML fragment


class Embed(_Record):
    """A rich embed block (bot cards, link previews)."""

    title: Optional[str] = None
    description: Optional[str] = None  # sanitized HTML fragment
    author: Optional[str] = None
    fields: list[EmbedField] = Field(default_factory=list)
    footer: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image_url: Optional[str] = None
    accent_color: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """An embed without title, description, fields and image says nothing."""
        return not (self.title or self.description or self.fields or self.image_url)


class Reaction(_Record):
    """A reaction pill under a message.

    `symbol` is either an inline emoji <img> fragment or literal text.
    """

    symbol: str
    count: str = "1"
    image_url: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.image_url is not None


class ReplyRef(_Record):
    """The quoted message a reply points at."""

    username: str = ""
    content_preview: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.username or self.content_preview)


class MessageContent(_Record):
    """Sanitized rich fragment plus its plain-text projection."""

    html: str = ""
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.html.strip()


# =============================================================================
# Message
# =============================================================================


class Message(_Record):
    """One chat message as captured from the view."""

    id: str
    author: Author = Field(default_factory=Author)
    timestamp: Optional[str] = None  # ISO-8601 or raw display text
    content: MessageContent = Field(default_factory=MessageContent)
    attachments: list[ImageRef] = Field(default_factory=list)
    embeds: list[Embed] = Field(default_factory=list)
    reactions: list[Reaction] = Field(default_factory=list)
    reply_ref: Optional[ReplyRef] = None

    @property
    def username(self) -> str:
        return self.author.username

    @property
    def has_reply(self) -> bool:
        return self.reply_ref is not None and not self.reply_ref.is_empty

    @property
    def is_empty(self) -> bool:
        """True when the message carries nothing worth exporting."""
        return (
            self.content.is_empty
            and not self.attachments
            and not self.embeds
            and self.author.is_empty
        )


# =============================================================================
# Run Inputs and Outputs
# =============================================================================


class ExportOptions(_Record):
    """What to include in an export.

    Accepts the camelCase keys of the external options record as well as
    snake_case field names. Anything left out defaults to True.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    include_images: bool = Field(default=True, alias="includeImages")
    include_avatars: bool = Field(default=True, alias="includeAvatars")
    include_timestamps: bool = Field(default=True, alias="includeTimestamps")
    include_reactions: bool = Field(default=True, alias="includeReactions")

    @classmethod
    def merge(cls, overrides: Optional[Mapping[str, Any]] = None) -> "ExportOptions":
        """Merge a partial options record over the defaults."""
        return cls.model_validate(dict(overrides or {}))

    def as_record(self) -> dict[str, bool]:
        """Return the camelCase record form."""
        return self.model_dump(by_alias=True)


class SelectionRange(_Record):
    """Inclusive boundaries chosen by the user; either end may be open."""

    start_id: Optional[str] = None
    end_id: Optional[str] = None


class ExportResult(_Record):
    """Outcome handed to the completion sink."""

    success: bool
    message_count: Optional[int] = None
    error: Optional[str] = None
    output: Optional[str] = None  # rendered document on success

    @classmethod
    def ok(cls, message_count: int, output: str) -> "ExportResult":
        return cls(success=True, message_count=message_count, output=output)

    @classmethod
    def failed(cls, error: str) -> "ExportResult":
        return cls(success=False, error=error)
