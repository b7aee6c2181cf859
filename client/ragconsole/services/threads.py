"""
Conversation thread store.

Mirrors the backend's thread records for one session. The local list is a
cache: every mutating call is followed by a fresh listing rather than an
in-place patch, since ordering and message counts are computed server side.
"""

import logging
from typing import Any

from ragconsole.core.errors import InvalidThreadTransitionError, MalformedResponseError
from ragconsole.models.chat import Message
from ragconsole.models.thread import (
    AddMessageRequest,
    ConversationThread,
    CreateThreadRequest,
    ThreadRole,
    ThreadStatus,
    UpdateTitleRequest,
)
from ragconsole.services.backend import BackendClient

logger = logging.getLogger(__name__)


def _parse_thread(payload: Any) -> ConversationThread:
    return ConversationThread.from_wire(payload)


class ConversationThreadStore:
    """CRUD over backend threads, scoped by session id."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend
        self._threads: list[ConversationThread] = []
        self._statuses: dict[str, ThreadStatus] = {}

    @property
    def threads(self) -> tuple[ConversationThread, ...]:
        return tuple(self._threads)

    def status_of(self, thread_id: str) -> ThreadStatus | None:
        """Last known lifecycle status, or None if never seen."""
        return self._statuses.get(thread_id)

    async def create(
        self,
        title: str,
        description: str | None = None,
        *,
        session_id: str | None,
    ) -> ConversationThread:
        request = CreateThreadRequest(title=title, description=description)
        thread = _parse_thread(
            await self._backend.post_json("/threads", request.to_wire(), session_id=session_id)
        )
        self._remember(thread)
        logger.info("Created thread %s (%s)", thread.id, thread.title)
        await self.list_for_session(session_id)
        return thread

    async def get(self, thread_id: str, *, session_id: str | None) -> ConversationThread:
        thread = _parse_thread(
            await self._backend.get_json(f"/threads/{thread_id}", session_id=session_id)
        )
        self._remember(thread)
        return thread

    async def list_for_session(self, session_id: str | None) -> list[ConversationThread]:
        """Fetch the session's threads and replace the local cache."""
        payload = await self._backend.get_json("/threads", session_id=session_id)
        if not isinstance(payload, list):
            raise MalformedResponseError("Thread list response is not a list")
        threads = [_parse_thread(item) for item in payload]
        for thread in threads:
            self._remember(thread)
        self._threads = threads
        logger.debug("Loaded %d threads for session %s", len(threads), session_id)
        return list(threads)

    async def append_message(
        self,
        thread_id: str,
        content: str,
        role: ThreadRole = "USER",
        *,
        session_id: str | None,
    ) -> ConversationThread:
        self._ensure_not_deleted(thread_id)
        request = AddMessageRequest(content=content, role=role)
        thread = _parse_thread(
            await self._backend.post_json(
                f"/threads/{thread_id}/messages", request.to_wire(), session_id=session_id
            )
        )
        self._remember(thread)
        await self.list_for_session(session_id)
        return thread

    async def update_title(
        self,
        thread_id: str,
        title: str,
        *,
        session_id: str | None,
    ) -> ConversationThread:
        self._ensure_not_deleted(thread_id)
        request = UpdateTitleRequest(title=title)
        thread = _parse_thread(
            await self._backend.put_json(
                f"/threads/{thread_id}/title", request.to_wire(), session_id=session_id
            )
        )
        self._remember(thread)
        await self.list_for_session(session_id)
        return thread

    async def archive(self, thread_id: str, *, session_id: str | None) -> None:
        self._ensure_transition(thread_id, ThreadStatus.ARCHIVED)
        await self._backend.request(
            "POST", f"/threads/{thread_id}/archive", json={}, session_id=session_id
        )
        self._statuses[thread_id] = ThreadStatus.ARCHIVED
        logger.info("Archived thread %s", thread_id)
        await self.list_for_session(session_id)

    async def delete(self, thread_id: str, *, session_id: str | None) -> None:
        self._ensure_transition(thread_id, ThreadStatus.DELETED)
        await self._backend.delete(f"/threads/{thread_id}", session_id=session_id)
        self._statuses[thread_id] = ThreadStatus.DELETED
        logger.info("Deleted thread %s", thread_id)
        await self.list_for_session(session_id)

    async def activate(self, thread_id: str, *, session_id: str | None) -> list[Message]:
        """Load a thread's messages in the orchestrator's message shape."""
        self._ensure_not_deleted(thread_id)
        thread = await self.get(thread_id, session_id=session_id)
        return [message.to_message() for message in thread.messages]

    def _remember(self, thread: ConversationThread) -> None:
        known = self._statuses.get(thread.id)
        if known is None or known == thread.status or known.can_transition_to(thread.status):
            self._statuses[thread.id] = thread.status
            return
        logger.warning(
            "Ignoring backward status %s for thread %s (known %s)",
            thread.status.value,
            thread.id,
            known.value,
        )
        thread.status = known

    def _ensure_not_deleted(self, thread_id: str) -> None:
        if self._statuses.get(thread_id) == ThreadStatus.DELETED:
            raise InvalidThreadTransitionError(f"Thread {thread_id} is deleted")

    def _ensure_transition(self, thread_id: str, target: ThreadStatus) -> None:
        known = self._statuses.get(thread_id)
        if known is not None and not known.can_transition_to(target):
            raise InvalidThreadTransitionError(
                f"Thread {thread_id} cannot move from {known.value} to {target.value}"
            )
