"""
Retrieval clients.

``RetrievalService`` fetches the passages used for a RAG answer from the
vector search endpoint. ``AdvancedSearchService`` drives the paged search
endpoint with filters and sorting.
"""

import logging
from typing import Any

from ragconsole.core.errors import LocalValidationError, MalformedResponseError
from ragconsole.core.telemetry import get_tracer
from ragconsole.models.chat import RAGConfig, SearchResult
from ragconsole.models.search import (
    AdvancedSearchRequest,
    AdvancedSearchResponse,
    SearchHistoryEntry,
)
from ragconsole.services.backend import BackendClient
from ragconsole.services.coordinator import CancellationToken

logger = logging.getLogger(__name__)


def parse_search_results(payload: Any) -> list[SearchResult]:
    """Normalise a raw retrieval payload; anything but a list is empty."""
    if not isinstance(payload, list):
        return []
    return [
        SearchResult.from_raw(item, index)
        for index, item in enumerate(payload)
        if isinstance(item, dict)
    ]


class RetrievalService:
    """Client for ``POST /embeddings/search``."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend
        self._tracer = get_tracer()

    async def search(
        self,
        query: str,
        config: RAGConfig,
        *,
        session_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> list[SearchResult]:
        """
        Retrieve passages for ``query``.

        Args:
            query: The user's natural language query.
            config: Supplies ``top_k`` and ``threshold``.
            session_id: Correlation id for the request.
            token: Cancels the call when triggered.

        Returns:
            List of SearchResult in backend order.
        """
        return await self._search({"query": query}, config, session_id, token)

    async def search_by_embedding(
        self,
        embedding: list[float],
        config: RAGConfig,
        *,
        session_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> list[SearchResult]:
        """
        Retrieve passages nearest to a precomputed embedding vector.

        Raises:
            LocalValidationError: ``embedding`` is empty; nothing is sent.
        """
        if not embedding:
            raise LocalValidationError("Embedding vector is empty")
        return await self._search(
            {"embedding": [float(value) for value in embedding]}, config, session_id, token
        )

    async def _search(
        self,
        body: dict[str, Any],
        config: RAGConfig,
        session_id: str | None,
        token: CancellationToken | None,
    ) -> list[SearchResult]:
        with self._tracer.start_as_current_span("retrieval.search") as span:
            span.set_attribute("retrieval.top_k", config.top_k)
            span.set_attribute("retrieval.threshold", config.threshold)
            span.set_attribute("retrieval.by_embedding", "embedding" in body)

            payload = await self._backend.post_json(
                "/embeddings/search",
                {**body, "topK": config.top_k, "threshold": config.threshold},
                session_id=session_id,
                token=token,
            )
            results = parse_search_results(payload)

            span.set_attribute("retrieval.results_count", len(results))
            logger.info("Vector search returned %d results (top_k=%d)", len(results), config.top_k)
            return results


class AdvancedSearchService:
    """Client for the paged ``/advanced-search`` endpoint and its history."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend
        self._tracer = get_tracer()

    async def search(
        self,
        request: AdvancedSearchRequest,
        *,
        token: CancellationToken | None = None,
    ) -> AdvancedSearchResponse:
        with self._tracer.start_as_current_span("search.advanced") as span:
            span.set_attribute("search.type", request.search_type)
            span.set_attribute("search.page", request.page)

            payload = await self._backend.post_json(
                "/advanced-search",
                request.to_wire(),
                session_id=request.session_id,
                token=token,
            )
            response = AdvancedSearchResponse.from_wire(payload)

            logger.info(
                "Advanced %s search page %d: %d of %d results",
                request.search_type,
                response.page,
                len(response.results),
                response.total_elements,
            )
            return response

    async def search_history(self, session_id: str) -> list[SearchHistoryEntry]:
        payload = await self._backend.get_json(
            "/search-history",
            params={"sessionId": session_id},
            session_id=session_id,
        )
        if not isinstance(payload, list):
            raise MalformedResponseError("Search history response is not a list")
        return [SearchHistoryEntry.from_wire(item) for item in payload]

    async def clear_search_history(self, session_id: str) -> None:
        await self._backend.delete(
            "/search-history",
            params={"sessionId": session_id},
            session_id=session_id,
        )
