"""Reply types produced by the conversation core for the chat transport."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Button:
    """An inline button: label shown to the user and payload sent back."""

    text: str
    payload: str


@dataclass
class Reply:
    """One outbound message.

    ``text`` is Telegram HTML. ``edit`` asks the transport to replace the
    message whose button produced this reply instead of sending a new one.
    """

    text: str
    buttons: List[List[Button]] = field(default_factory=list)
    force_reply: bool = False
    placeholder: Optional[str] = None
    edit: bool = False
    document: Optional[bytes] = None
    filename: Optional[str] = None

    @property
    def payloads(self) -> List[str]:
        return [b.payload for row in self.buttons for b in row]
