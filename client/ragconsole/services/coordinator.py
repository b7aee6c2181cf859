"""
Request coordination for the send path.

Only one send is current at a time. Starting a new one cancels the previous
token, and a finishing request clears the slot only if it still owns it, so a
stale completion can never release a newer request.
"""

import asyncio
import itertools
import logging

logger = logging.getLogger(__name__)

_token_ids = itertools.count(1)


class CancellationToken:
    """Cooperative cancellation signal passed into every backend call."""

    def __init__(self) -> None:
        self.id = next(_token_ids)
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken {self.id} {state}>"


class RequestCoordinator:
    """Holds zero or one current cancellation token."""

    def __init__(self) -> None:
        self._current: CancellationToken | None = None

    @property
    def busy(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> CancellationToken | None:
        return self._current

    def begin_request(self) -> CancellationToken:
        """Cancel whatever is current and install a fresh token."""
        if self._current is not None:
            logger.debug("Superseding %r", self._current)
            self._current.cancel()
        self._current = CancellationToken()
        return self._current

    def cancel(self) -> None:
        """Cancel the current token, if any, and go idle."""
        if self._current is not None:
            logger.debug("Cancelling %r", self._current)
            self._current.cancel()
            self._current = None

    def is_current(self, token: CancellationToken) -> bool:
        return self._current is token and not token.cancelled

    def finish(self, token: CancellationToken) -> None:
        """Release the slot if ``token`` still owns it."""
        if self._current is token:
            self._current = None
