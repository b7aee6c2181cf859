"""
HTTP transport for the RAG backend.

Wraps ``httpx.AsyncClient`` with the session correlation header, the error
taxonomy in ``ragconsole.core.errors`` and token-driven abort of in-flight
calls.
"""

import asyncio
import logging
from typing import Any

import httpx

from ragconsole.core.config import Settings
from ragconsole.core.errors import (
    BackendError,
    MalformedResponseError,
    RequestCancelledError,
    TransportError,
)
from ragconsole.services.coordinator import CancellationToken

logger = logging.getLogger(__name__)


def error_message(response: httpx.Response) -> str:
    """Extract a readable failure reason from a non-success response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value

    text = response.text.strip()
    if text:
        return f"HTTP {response.status_code}: {text}"
    return f"HTTP {response.status_code}"


def decode_json(response: httpx.Response) -> Any:
    """Decode a JSON body, treating empty or malformed bodies as failures."""
    text = response.text
    if not text or not text.strip():
        raise MalformedResponseError(f"Empty response from {response.request.url.path}")
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"Invalid JSON response: {text[:200]}") from exc


class BackendClient:
    """Thin async client over the backend's HTTP surface."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def session_headers(self, session_id: str | None) -> dict[str, str]:
        """Correlation header for ``session_id``; empty when there is none."""
        if not session_id:
            return {}
        return {self._settings.session_header: session_id}

    async def request(
        self,
        method: str,
        path: str,
        *,
        session_id: str | None = None,
        token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send one request and return the response if it succeeded.

        Args:
            method: HTTP method.
            path: Path relative to the configured base URL.
            session_id: Attached as the correlation header when present.
            token: Cancelling it aborts the call mid-flight.
            **kwargs: Passed through to ``httpx.AsyncClient.request``.

        Raises:
            RequestCancelledError: ``token`` was cancelled before completion.
            TransportError: No response was received.
            BackendError: The response status was not a success.
        """
        if token is not None and token.cancelled:
            raise RequestCancelledError(f"{method} {path} cancelled before sending")

        headers = {**kwargs.pop("headers", {}), **self.session_headers(session_id)}
        call = self._client.request(method, path, headers=headers, **kwargs)

        try:
            response = await self._abortable(call, token)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            message = error_message(response)
            logger.warning("%s %s returned %d: %s", method, path, response.status_code, message)
            raise BackendError(response.status_code, message, response.text)
        return response

    async def get_json(self, path: str, **kwargs: Any) -> Any:
        return decode_json(await self.request("GET", path, **kwargs))

    async def post_json(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return decode_json(await self.request("POST", path, json=body, **kwargs))

    async def put_json(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return decode_json(await self.request("PUT", path, json=body, **kwargs))

    async def delete(self, path: str, **kwargs: Any) -> None:
        await self.request("DELETE", path, **kwargs)

    @staticmethod
    async def _abortable(call, token: CancellationToken | None) -> httpx.Response:
        """Race ``call`` against ``token``; cancelling the token aborts the call."""
        if token is None:
            return await call

        request_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not request_task.done():
                request_task.cancel()
                await asyncio.wait({request_task})

        if token.cancelled:
            if request_task.done() and not request_task.cancelled() and request_task.exception() is None:
                await request_task.result().aclose()
            raise RequestCancelledError("Request cancelled")
        return request_task.result()
