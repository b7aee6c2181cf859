"""
In-process stand-in for the RAG backend.

A small FastAPI app with the same HTTP surface as the real backend,
served to the client through ``httpx.ASGITransport``.
"""

import itertools
import json
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse

from ragconsole.core.config import Settings
from ragconsole.services.backend import BackendClient


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeBackend:
    """Backend state plus the ASGI app that serves it."""

    def __init__(self) -> None:
        self.threads: dict[str, dict] = {}
        self.documents: dict[str, dict] = {}
        self.history: dict[str, list[str]] = {}
        self.passages: list[dict] = []
        self.search_history: dict[str, list[dict]] = {}
        self.last_search: dict = {}
        self.seen_sessions: list[str | None] = []
        self.upload_status = "COMPLETED"
        self.upload_errors: list[str] = []
        self.uploaded_bytes = b""
        self.upload_metadata: dict = {}
        self.fail_history_clear = False
        self._ids = itertools.count(1)
        self.app = self._build_app()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _thread(self, thread_id: str) -> dict:
        thread = self.threads.get(thread_id)
        if thread is None:
            raise HTTPException(status_code=404, detail=f"Thread {thread_id} not found")
        return thread

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.middleware("http")
        async def record_session(request: Request, call_next):
            self.seen_sessions.append(request.headers.get("x-session-id"))
            return await call_next(request)

        # -- answers -------------------------------------------------------

        @app.post("/embeddings/search")
        async def search(body: dict):
            self.last_search = body
            return self.passages[: body.get("topK", 10)]

        @app.post("/ask")
        async def ask(body: dict):
            return {"content": f"direct: {body['query']}", "model": "fake-llm", "tokens": 7}

        @app.post("/chat")
        async def chat(body: dict):
            count = len(body.get("searchResults", []))
            return {
                "content": f"grounded in {count} passages",
                "model": "fake-llm",
                "tokens": 11,
                "sessionId": body.get("sessionId"),
            }

        # -- history -------------------------------------------------------

        @app.get("/history")
        async def get_history(sessionId: str):
            return PlainTextResponse("\n".join(self.history.get(sessionId, [])))

        @app.delete("/history")
        async def clear_history(sessionId: str):
            if self.fail_history_clear:
                raise HTTPException(status_code=503, detail="history store unavailable")
            self.history.pop(sessionId, None)
            return Response(status_code=204)

        # -- threads -------------------------------------------------------

        @app.post("/threads")
        async def create_thread(body: dict, request: Request):
            thread_id = self._next_id("thread")
            self.threads[thread_id] = {
                "id": thread_id,
                "title": body["title"],
                "description": body.get("description"),
                "sessionId": request.headers.get("x-session-id", ""),
                "messages": [],
                "createdAt": _now(),
                "updatedAt": _now(),
                "status": "ACTIVE",
            }
            return self.threads[thread_id]

        @app.get("/threads")
        async def list_threads(request: Request):
            session_id = request.headers.get("x-session-id", "")
            return [t for t in self.threads.values() if t["sessionId"] == session_id]

        @app.get("/threads/{thread_id}")
        async def get_thread(thread_id: str):
            return self._thread(thread_id)

        @app.post("/threads/{thread_id}/messages")
        async def add_message(thread_id: str, body: dict):
            thread = self._thread(thread_id)
            thread["messages"].append(
                {
                    "id": self._next_id("msg"),
                    "content": body["content"],
                    "role": body["role"],
                    "timestamp": _now(),
                }
            )
            thread["updatedAt"] = _now()
            return thread

        @app.put("/threads/{thread_id}/title")
        async def update_title(thread_id: str, body: dict):
            thread = self._thread(thread_id)
            thread["title"] = body["title"]
            return thread

        @app.post("/threads/{thread_id}/archive")
        async def archive_thread(thread_id: str):
            self._thread(thread_id)["status"] = "ARCHIVED"
            return Response(status_code=200)

        @app.delete("/threads/{thread_id}")
        async def delete_thread(thread_id: str):
            self._thread(thread_id)
            del self.threads[thread_id]
            return Response(status_code=204)

        # -- documents -----------------------------------------------------

        @app.post("/documents/upload")
        async def upload(file: UploadFile = File(...), metadata: str = Form(...)):
            self.uploaded_bytes = await file.read()
            self.upload_metadata = json.loads(metadata)
            document_id = self._next_id("doc")
            if self.upload_status == "COMPLETED":
                self.documents[document_id] = {
                    "id": document_id,
                    "title": self.upload_metadata["title"],
                    "description": self.upload_metadata.get("description", ""),
                    "category": self.upload_metadata.get("category", ""),
                    "totalChunks": 3,
                    "uploadedAt": _now(),
                }
            return {
                "documentId": document_id,
                "title": self.upload_metadata["title"],
                "status": self.upload_status,
                "totalChunks": 3,
                "processedChunks": 3,
                "uploadedAt": _now(),
                "errors": self.upload_errors,
            }

        @app.get("/documents")
        async def list_documents():
            return list(self.documents.values())

        @app.get("/documents/{document_id}")
        async def get_document(document_id: str):
            if document_id not in self.documents:
                raise HTTPException(status_code=404, detail="Document not found")
            return self.documents[document_id]

        @app.delete("/documents/{document_id}")
        async def delete_document(document_id: str):
            self.documents.pop(document_id, None)
            return Response(status_code=204)

        # -- advanced search -----------------------------------------------

        @app.post("/advanced-search")
        async def advanced_search(body: dict):
            page, size = body.get("page", 0), body.get("size", 10)
            matches = [p for p in self.passages if body["query"].lower() in p["content"].lower()]
            window = matches[page * size : (page + 1) * size]
            total_pages = (len(matches) + size - 1) // size
            if body.get("sessionId"):
                self.search_history.setdefault(body["sessionId"], []).append(
                    {"query": body["query"], "resultCount": len(matches), "timestamp": _now()}
                )
            return {
                "results": window,
                "page": page,
                "size": size,
                "totalElements": len(matches),
                "totalPages": total_pages,
                "searchType": body["searchType"],
                "hasNext": page + 1 < total_pages,
                "hasPrevious": page > 0,
            }

        @app.get("/search-history")
        async def search_history(sessionId: str):
            return list(self.search_history.get(sessionId, []))

        @app.delete("/search-history")
        async def clear_search_history(sessionId: str):
            self.search_history.pop(sessionId, None)
            return Response(status_code=204)

        return app


def mock_backend(settings: Settings, handler) -> BackendClient:
    """BackendClient whose transport is a plain request handler."""
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=settings.base_url,
    )
    return BackendClient(settings, http_client)
