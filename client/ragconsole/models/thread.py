"""
Pydantic models for backend-persisted conversation threads.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field

from ragconsole.models.base import WireModel
from ragconsole.models.chat import Message, utcnow

ThreadRole = Literal["USER", "ASSISTANT", "SYSTEM"]


class ThreadStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"

    def can_transition_to(self, target: "ThreadStatus") -> bool:
        """Lifecycle only moves forward; DELETED is terminal."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS = {
    ThreadStatus.ACTIVE: {ThreadStatus.ARCHIVED, ThreadStatus.DELETED},
    ThreadStatus.ARCHIVED: {ThreadStatus.DELETED},
    ThreadStatus.DELETED: set(),
}


class ThreadMessage(WireModel):
    """A message as stored inside a thread record."""

    id: str = ""
    content: str
    role: ThreadRole
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> Message:
        return Message(role=self.role.lower(), content=self.content, timestamp=self.timestamp)


class ConversationThread(WireModel):
    """Client-side mirror of a backend thread record."""

    id: str
    title: str
    description: str | None = None
    session_id: str = ""
    messages: list[ThreadMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status: ThreadStatus = ThreadStatus.ACTIVE
    metadata: dict[str, Any] = Field(default_factory=dict)


class CreateThreadRequest(WireModel):
    title: str = Field(..., min_length=1)
    description: str | None = None


class AddMessageRequest(WireModel):
    content: str
    role: ThreadRole = "USER"


class UpdateTitleRequest(WireModel):
    title: str = Field(..., min_length=1)
