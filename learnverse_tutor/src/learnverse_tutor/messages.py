"""
Conversation Message Model

Defines the Message dataclass and the helpers that turn a message log into the
role-tagged transcript sent to the chat backend.
"""

import itertools
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional


class Sender(Enum):
    """Who authored a conversational turn."""
    USER = "user"
    AGENT = "agent"


# Process-wide sequence so ids stay ordered even within the same millisecond
_sequence = itertools.count(1)


def new_message_id() -> str:
    """Opaque id that sorts in creation order."""
    return f"{int(time.time() * 1000)}-{next(_sequence):06d}"


@dataclass
class Message:
    """One conversational turn."""
    content: str
    sender: Sender
    agent: Optional[str] = None
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=datetime.now)
    is_error: bool = False  # Synthetic reply produced from a failed request
    show_welcome_audio: bool = False  # Only rendering flag that may change after creation

    @property
    def role(self) -> str:
        """Neutral role tag used by chat completion APIs."""
        return "user" if self.sender is Sender.USER else "assistant"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender.value,
            "timestamp": self.timestamp.isoformat(),
            "agent": self.agent,
            "isError": self.is_error,
        }


def to_transcript(messages: Iterable[Message], window: int) -> List[Dict[str, str]]:
    """
    Translate the last `window` messages into role-tagged turns.

    Args:
        messages: Message log in insertion order
        window: Maximum number of turns to keep

    Returns:
        List of {"role", "content"} dicts, oldest first
    """
    log = list(messages)
    if window <= 0:
        return []
    return [{"role": m.role, "content": m.content} for m in log[-window:]]


def role_for_sender(sender: Optional[str]) -> str:
    """Map a wire `sender` value onto a chat role."""
    return "user" if sender == Sender.USER.value else "assistant"
