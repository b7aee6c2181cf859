"""
Answer generation client.

Calls the backend's direct answer (``/ask``) and retrieval-augmented answer
(``/chat``) endpoints and measures the round trip.
"""

import logging
import time
from typing import Any

from ragconsole.core.errors import MalformedResponseError
from ragconsole.core.telemetry import get_tracer
from ragconsole.models.chat import GenerationResult, RAGConfig, SearchResult
from ragconsole.services.backend import BackendClient
from ragconsole.services.coordinator import CancellationToken

logger = logging.getLogger(__name__)


def parse_generation(payload: Any, elapsed_ms: float) -> GenerationResult:
    """
    Build a GenerationResult; a bare string body is taken as the answer.

    Raises:
        MalformedResponseError: No string content, or a field of the wrong
            type such as non-numeric ``tokens``.
    """
    if isinstance(payload, str):
        return GenerationResult(content=payload, processing_time_ms=elapsed_ms)
    if not isinstance(payload, dict) or not isinstance(payload.get("content"), str):
        raise MalformedResponseError("Answer response has no content")

    return GenerationResult.from_wire(
        {
            "content": payload["content"],
            "session_id": payload.get("sessionId") or None,
            "model": payload.get("model") or "unknown",
            "tokens": payload.get("tokens") or 0,
            "processing_time_ms": elapsed_ms,
        }
    )


class GenerationService:
    """Wrapper around the backend's answer endpoints."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend
        self._tracer = get_tracer()

    async def ask(
        self,
        query: str,
        config: RAGConfig,
        *,
        session_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> GenerationResult:
        """
        Ask the model directly, without retrieval.

        Args:
            query: The prompt to answer.
            config: Generation parameters.
            session_id: Correlation id, also sent in the body.
            token: Cancels the call when triggered.
        """
        body = {"query": query, "config": config.to_wire()}
        if session_id:
            body["sessionId"] = session_id
        return await self._generate("/ask", body, session_id, token)

    async def chat(
        self,
        query: str,
        search_results: list[SearchResult],
        config: RAGConfig,
        *,
        session_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> GenerationResult:
        """
        Ask the model to answer from the given passages.

        Args:
            query: The prompt to answer.
            search_results: Passages retrieved for this query.
            config: Generation parameters.
            session_id: Correlation id, also sent in the body.
            token: Cancels the call when triggered.
        """
        body = {
            "query": query,
            "searchResults": [result.to_wire() for result in search_results],
            "config": config.to_wire(),
        }
        if session_id:
            body["sessionId"] = session_id
        return await self._generate("/chat", body, session_id, token)

    async def _generate(
        self,
        path: str,
        body: dict[str, Any],
        session_id: str | None,
        token: CancellationToken | None,
    ) -> GenerationResult:
        with self._tracer.start_as_current_span(f"generation{path.replace('/', '.')}") as span:
            span.set_attribute("generation.query_length", len(body["query"]))
            started = time.perf_counter()

            payload = await self._backend.post_json(path, body, session_id=session_id, token=token)
            result = parse_generation(payload, (time.perf_counter() - started) * 1000)

            span.set_attribute("generation.model", result.model)
            span.set_attribute("generation.tokens", result.tokens)
            logger.info(
                "%s answered by %s: %d tokens in %.0f ms",
                path,
                result.model,
                result.tokens,
                result.processing_time_ms,
            )
            return result
