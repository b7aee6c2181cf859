"""
Unit tests for request coordination.
"""

import asyncio

import pytest

from ragconsole.services.coordinator import CancellationToken, RequestCoordinator


class TestRequestCoordinator:
    def test_starts_idle(self):
        assert RequestCoordinator().busy is False

    def test_begin_request_cancels_previous(self):
        coordinator = RequestCoordinator()
        first = coordinator.begin_request()
        second = coordinator.begin_request()
        assert first.cancelled
        assert not second.cancelled
        assert coordinator.current is second
        assert not coordinator.is_current(first)
        assert coordinator.is_current(second)

    def test_stale_finish_does_not_clear_newer_token(self):
        coordinator = RequestCoordinator()
        first = coordinator.begin_request()
        second = coordinator.begin_request()
        coordinator.finish(first)
        assert coordinator.current is second
        coordinator.finish(second)
        assert coordinator.busy is False

    def test_cancel_goes_idle(self):
        coordinator = RequestCoordinator()
        token = coordinator.begin_request()
        coordinator.cancel()
        assert token.cancelled
        assert coordinator.busy is False

    def test_cancel_when_idle_is_harmless(self):
        coordinator = RequestCoordinator()
        coordinator.cancel()
        assert coordinator.current is None


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)
        assert token.cancelled

    def test_tokens_are_distinct(self):
        assert CancellationToken().id != CancellationToken().id
