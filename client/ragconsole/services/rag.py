"""
RAG orchestrator: the core send loop.

Coordinates one question through the backend:
1. Record the user message.
2. Supersede any in-flight request.
3. Retrieve passages (chat mode only).
4. Render the prompt from the selected template.
5. Call the answer endpoint.
6. Record the answer, or the failure, if the request is still current.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from ragconsole.core.errors import RAGClientError, RequestCancelledError
from ragconsole.core.telemetry import get_tracer
from ragconsole.models.chat import (
    ChatMode,
    Feedback,
    Message,
    MessageMetadata,
    QualityReport,
    RAGConfig,
    SearchResult,
)
from ragconsole.models.prompt import PromptContext
from ragconsole.services.coordinator import CancellationToken, RequestCoordinator
from ragconsole.services.generation import GenerationService
from ragconsole.services.history import HistoryService
from ragconsole.services.prompt import PromptEngine
from ragconsole.services.quality import SearchQualityEvaluator
from ragconsole.services.search import RetrievalService
from ragconsole.services.session import SessionStore

logger = logging.getLogger(__name__)

CUSTOM_PROMPT_ID = "custom"


class RAGOrchestrator:
    """Owns the conversation, retrieval state and config of one console."""

    def __init__(
        self,
        retrieval: RetrievalService,
        generation: GenerationService,
        history: HistoryService,
        prompts: PromptEngine,
        sessions: SessionStore,
        *,
        coordinator: RequestCoordinator | None = None,
        evaluator: SearchQualityEvaluator | None = None,
        config: RAGConfig | None = None,
    ) -> None:
        self._retrieval = retrieval
        self._generation = generation
        self._history = history
        self._prompts = prompts
        self._sessions = sessions
        self._coordinator = coordinator or RequestCoordinator()
        self._evaluator = evaluator or SearchQualityEvaluator()
        self._config = config or RAGConfig()
        self._messages: list[Message] = []
        self._search_results: list[SearchResult] = []
        self._tracer = get_tracer()

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def search_results(self) -> tuple[SearchResult, ...]:
        return tuple(self._search_results)

    @property
    def config(self) -> RAGConfig:
        return self._config

    @property
    def loading(self) -> bool:
        return self._coordinator.busy

    async def send_message(
        self,
        content: str,
        mode: ChatMode = "chat",
        *,
        replace_in_flight: bool = False,
    ) -> Message | None:
        """
        Send one user message and record the reply.

        Args:
            content: The user's message.
            mode: ``chat`` retrieves passages first; ``ask`` does not.
            replace_in_flight: Supersede a running request instead of
                ignoring this call.

        Returns:
            The assistant message appended (an error message on failure), or
            None when nothing was sent: blank content, or a request already
            in flight.

        Raises:
            RequestCancelledError: The request was cancelled or superseded
                before its reply was recorded. Nothing is appended for it.
        """
        if mode not in ("ask", "chat"):
            raise ValueError(f"Unknown mode: {mode}")
        if not content.strip():
            return None
        if self.loading and not replace_in_flight:
            logger.info("Ignoring message while a request is in flight")
            return None

        history = list(self._messages)
        self._messages.append(Message.user(content))
        token = self._coordinator.begin_request()

        with self._tracer.start_as_current_span("rag.send") as span:
            span.set_attribute("rag.mode", mode)
            span.set_attribute("rag.query_length", len(content))
            try:
                reply, session_id = await self._answer(content, mode, history, token)
            except RequestCancelledError:
                logger.info("Request %r cancelled; result discarded", token)
                span.set_attribute("rag.outcome", "cancelled")
                raise
            except (RAGClientError, ValidationError) as exc:
                if not self._coordinator.is_current(token):
                    logger.info("Superseded request %r failed: %s", token, exc)
                    span.set_attribute("rag.outcome", "cancelled")
                    raise RequestCancelledError("Request superseded") from exc
                logger.warning("%s request failed: %s", mode, exc)
                span.set_attribute("rag.outcome", "error")
                failure = Message.failure(str(exc) or type(exc).__name__)
                self._messages.append(failure)
                return failure
            finally:
                self._coordinator.finish(token)

            if token.cancelled:
                logger.info("Request %r completed after cancellation; result discarded", token)
                span.set_attribute("rag.outcome", "cancelled")
                raise RequestCancelledError("Request cancelled before its reply was recorded")

            self._sessions.refresh(session_id)
            self._messages.append(reply)
            span.set_attribute("rag.outcome", "ok")
            return reply

    async def _answer(
        self,
        content: str,
        mode: ChatMode,
        history: list[Message],
        token: CancellationToken,
    ) -> tuple[Message, str | None]:
        session_id = self._sessions.session_id
        results: list[SearchResult] = []

        if mode == "chat":
            results = await self._retrieval.search(
                content, self._config, session_id=session_id, token=token
            )
            if token.cancelled:
                raise RequestCancelledError("Request superseded after retrieval")
            self._search_results = results

        prompt = self._prompts.render_prompt(
            PromptContext(user_query=content, search_results=results, conversation_history=history)
        )

        if mode == "chat":
            answer = await self._generation.chat(
                prompt, results, self._config, session_id=session_id, token=token
            )
        else:
            answer = await self._generation.ask(
                prompt, self._config, session_id=session_id, token=token
            )

        metadata = MessageMetadata(
            model=answer.model,
            tokens=answer.tokens,
            processing_time_ms=answer.processing_time_ms,
            search_result_count=len(results) if mode == "chat" else None,
            prompt_template=self._template_label(),
            session_id=answer.session_id or session_id,
        )
        return Message.assistant(answer.content, metadata), answer.session_id

    def _template_label(self) -> str:
        if self._prompts.custom_prompt.strip():
            return CUSTOM_PROMPT_ID
        return self._prompts.selected_template_id

    def cancel(self) -> None:
        """Abort the in-flight request; it will not append anything."""
        self._coordinator.cancel()

    async def aclose(self) -> None:
        """Retire the orchestrator, cancelling any in-flight request."""
        self.cancel()

    def update_config(self, **updates: Any) -> RAGConfig:
        """Merge ``updates`` over the current config; rejected updates change nothing."""
        self._config = self._config.merge(updates)
        logger.info("RAG config updated: %s", self._config.to_wire())
        return self._config

    def evaluate_search_quality(self) -> QualityReport:
        return self._evaluator.evaluate(self._search_results)

    def apply_feedback(self, feedback: Feedback) -> RAGConfig:
        proposal = self._evaluator.optimize(self._search_results, feedback, self._config)
        if proposal:
            return self.update_config(**proposal)
        return self._config

    def replace_messages(self, messages: Iterable[Message]) -> None:
        """Swap in a whole conversation, e.g. when activating a thread."""
        self.cancel()
        self._messages = list(messages)
        self._search_results = []

    async def clear_messages(self) -> None:
        """Clear local state, then best-effort clear the backend history."""
        self.replace_messages([])
        session_id = self._sessions.session_id
        if not session_id:
            return
        try:
            await self._history.clear(session_id)
        except RAGClientError as exc:
            logger.warning("Could not clear server history for session %s: %s", session_id, exc)

    async def load_history(self) -> list[Message]:
        """Replace local messages with the backend's history for this session."""
        session_id = self._sessions.session_id
        if not session_id:
            return []
        messages = await self._history.fetch(session_id)
        self.replace_messages(messages)
        return messages

    def reset_session(self) -> str:
        """Start a new session; backend threads and documents are untouched."""
        self.replace_messages([])
        return self._sessions.reset()
