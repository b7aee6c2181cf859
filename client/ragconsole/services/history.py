"""
Session-scoped conversation history kept by the backend.

The history endpoint returns plain text, one turn per line, prefixed with
the speaker. Lines with an unknown prefix are dropped.
"""

import logging

from ragconsole.models.chat import Message
from ragconsole.services.backend import BackendClient

logger = logging.getLogger(__name__)

USER_PREFIXES = ("사용자:", "user:")
ASSISTANT_PREFIXES = ("AI:", "assistant:")


def parse_history(text: str) -> list[Message]:
    messages = []
    for line in text.splitlines():
        stripped = line.strip()
        role = None
        for prefixes, candidate in ((USER_PREFIXES, "user"), (ASSISTANT_PREFIXES, "assistant")):
            prefix = next((p for p in prefixes if stripped.startswith(p)), None)
            if prefix is not None:
                role, stripped = candidate, stripped[len(prefix):].strip()
                break
        if role is not None:
            messages.append(Message(role=role, content=stripped))
    return messages


class HistoryService:
    """Client for ``/history``."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    async def fetch(self, session_id: str) -> list[Message]:
        response = await self._backend.request(
            "GET",
            "/history",
            params={"sessionId": session_id},
            session_id=session_id,
        )
        messages = parse_history(response.text)
        logger.info("Loaded %d history messages for session %s", len(messages), session_id)
        return messages

    async def clear(self, session_id: str) -> None:
        await self._backend.delete(
            "/history",
            params={"sessionId": session_id},
            session_id=session_id,
        )
