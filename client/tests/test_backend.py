"""
Unit tests for the HTTP transport: headers, error mapping and abort.
"""

import asyncio

import httpx
import pytest

from fake_backend import mock_backend
from ragconsole.core.errors import (
    BackendError,
    MalformedResponseError,
    RequestCancelledError,
    TransportError,
)
from ragconsole.services.coordinator import CancellationToken


@pytest.mark.asyncio
async def test_session_header_attached(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json={"ok": True})

    backend = mock_backend(settings, handler)
    assert await backend.get_json("/threads", session_id="abc") == {"ok": True}
    assert seen["x-session-id"] == "abc"


@pytest.mark.asyncio
async def test_no_session_header_without_session(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json=[])

    backend = mock_backend(settings, handler)
    await backend.get_json("/threads", session_id=None)
    assert "x-session-id" not in seen


@pytest.mark.asyncio
async def test_paths_are_relative_to_base_url(settings):
    settings = settings.model_copy(update={"backend_base_url": "http://backend/api/"})
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={})

    backend = mock_backend(settings, handler)
    await backend.post_json("/ask", {"query": "q"})
    assert seen["url"] == "http://backend/api/ask"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(400, json={"message": "query too long"}), "query too long"),
        (httpx.Response(404, json={"detail": "Thread t1 not found"}), "Thread t1 not found"),
        (httpx.Response(502, text="bad gateway"), "HTTP 502: bad gateway"),
        (httpx.Response(500), "HTTP 500"),
    ],
)
async def test_backend_error_message(settings, response, message):
    backend = mock_backend(settings, lambda request: response)
    with pytest.raises(BackendError) as excinfo:
        await backend.get_json("/documents")
    assert excinfo.value.status_code == response.status_code
    assert excinfo.value.message == message


@pytest.mark.asyncio
async def test_transport_failure(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = mock_backend(settings, handler)
    with pytest.raises(TransportError, match="connection refused"):
        await backend.post_json("/ask", {"query": "q"})


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"", b"   ", b"{not json"])
async def test_malformed_body(settings, body):
    backend = mock_backend(settings, lambda request: httpx.Response(200, content=body))
    with pytest.raises(MalformedResponseError):
        await backend.post_json("/ask", {"query": "q"})


@pytest.mark.asyncio
async def test_cancelling_token_aborts_call(settings):
    started = asyncio.Event()
    state = {"aborted": False}

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            state["aborted"] = True
            raise
        return httpx.Response(200, json={})

    backend = mock_backend(settings, handler)
    token = CancellationToken()
    call = asyncio.create_task(backend.post_json("/chat", {"query": "q"}, token=token))
    await asyncio.wait_for(started.wait(), timeout=1)
    token.cancel()

    with pytest.raises(RequestCancelledError):
        await asyncio.wait_for(call, timeout=1)
    assert state["aborted"] is True


@pytest.mark.asyncio
async def test_cancelled_token_sends_nothing(settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    backend = mock_backend(settings, handler)
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RequestCancelledError):
        await backend.post_json("/ask", {"query": "q"}, token=token)
    assert calls == []
