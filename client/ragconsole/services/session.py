"""
Session identifier ownership.

The id is loaded or created once at startup, persisted across runs, and
handed to every consumer by parameter.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    def read(self) -> str | None: ...

    def write(self, session_id: str) -> None: ...


class FileSessionStorage:
    """Stores the session id in a small JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def read(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None
        session_id = payload.get("sessionId") if isinstance(payload, dict) else None
        return session_id if isinstance(session_id, str) and session_id else None

    def write(self, session_id: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"sessionId": session_id}), encoding="utf-8")


class MemorySessionStorage:
    """Non-persistent storage, for tests and throwaway consoles."""

    def __init__(self, session_id: str | None = None) -> None:
        self.value = session_id

    def read(self) -> str | None:
        return self.value

    def write(self, session_id: str) -> None:
        self.value = session_id


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionStore:
    """Owns the lifetime of the session identifier."""

    def __init__(self, storage: SessionStorage) -> None:
        self._storage = storage
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def load_or_create(self) -> str:
        """Reuse the persisted id, creating and persisting one if absent."""
        session_id = self._storage.read()
        if session_id is None:
            session_id = new_session_id()
            self._storage.write(session_id)
            logger.info("Created new session %s", session_id)
        else:
            logger.info("Resumed session %s", session_id)
        self._session_id = session_id
        return session_id

    def refresh(self, session_id: str | None) -> None:
        """Adopt a backend-rotated id."""
        if not session_id or session_id == self._session_id:
            return
        logger.info("Session rotated by backend: %s -> %s", self._session_id, session_id)
        self._session_id = session_id
        self._storage.write(session_id)

    def reset(self) -> str:
        """Discard the current id and start a new session."""
        session_id = new_session_id()
        logger.info("Session reset: %s -> %s", self._session_id, session_id)
        self._session_id = session_id
        self._storage.write(session_id)
        return session_id
