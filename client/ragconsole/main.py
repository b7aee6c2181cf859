"""
Console construction point.

Builds every service once, wires them together, and hands them out as one
bundle. Nothing here is global; callers own the bundle's lifetime.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from ragconsole.core.config import Settings, get_settings
from ragconsole.services.backend import BackendClient
from ragconsole.services.documents import DocumentUploadCoordinator
from ragconsole.services.generation import GenerationService
from ragconsole.services.history import HistoryService
from ragconsole.services.prompt import PromptEngine
from ragconsole.services.rag import RAGOrchestrator
from ragconsole.services.search import AdvancedSearchService, RetrievalService
from ragconsole.services.session import FileSessionStorage, SessionStorage, SessionStore
from ragconsole.services.threads import ConversationThreadStore

logger = logging.getLogger(__name__)


@dataclass
class Console:
    """Every service one operator console needs."""

    settings: Settings
    backend: BackendClient
    sessions: SessionStore
    prompts: PromptEngine
    orchestrator: RAGOrchestrator
    retrieval: RetrievalService
    threads: ConversationThreadStore
    documents: DocumentUploadCoordinator
    advanced_search: AdvancedSearchService

    @property
    def session_id(self) -> str | None:
        return self.sessions.session_id

    async def aclose(self) -> None:
        await self.orchestrator.aclose()
        await self.backend.aclose()


def build_console(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    session_storage: SessionStorage | None = None,
) -> Console:
    """
    Create the service graph.

    Args:
        settings: Defaults to values loaded from the environment.
        http_client: Injected transport; owned by the caller when given.
        session_storage: Defaults to the JSON file named in settings.
    """
    settings = settings or get_settings()
    backend = BackendClient(settings, http_client)
    sessions = SessionStore(session_storage or FileSessionStorage(settings.session_file))
    prompts = PromptEngine()

    retrieval = RetrievalService(backend)
    orchestrator = RAGOrchestrator(
        retrieval,
        GenerationService(backend),
        HistoryService(backend),
        prompts,
        sessions,
    )

    return Console(
        settings=settings,
        backend=backend,
        sessions=sessions,
        prompts=prompts,
        orchestrator=orchestrator,
        retrieval=retrieval,
        threads=ConversationThreadStore(backend),
        documents=DocumentUploadCoordinator(backend, settings.max_upload_bytes),
        advanced_search=AdvancedSearchService(backend),
    )


@asynccontextmanager
async def open_console(settings: Settings | None = None, **kwargs) -> AsyncIterator[Console]:
    """Build a console, load or create its session, and close it on exit."""
    console = build_console(settings, **kwargs)
    console.sessions.load_or_create()
    logger.info("RAG console ready against %s", console.settings.base_url)
    try:
        yield console
    finally:
        await console.aclose()
        logger.info("RAG console closed.")
