"""Per-run memory of authors seen so far.

Discord groups consecutive messages from one author and only renders the
header (name, color, avatar) on the first of them. The extractor fills the
gaps from this cache, so items must be fed to it in the order they appear.
"""

from typing import Optional


class UserContextCache:
    """username -> avatar/color, plus the last author seen."""

    def __init__(self) -> None:
        self.avatars: dict[str, str] = {}
        self.colors: dict[str, str] = {}
        self.last_username = ""

    def reset(self) -> None:
        self.avatars.clear()
        self.colors.clear()
        self.last_username = ""

    def set_avatar(self, username: str, url: Optional[str]) -> None:
        if username and url:
            self.avatars[username] = url

    def get_avatar(self, username: str) -> Optional[str]:
        return self.avatars.get(username)

    def set_color(self, username: str, color: Optional[str]) -> None:
        if username and color:
            self.colors[username] = color

    def get_color(self, username: str) -> Optional[str]:
        return self.colors.get(username)
