"""
Reference document uploads.

Validates a file locally, transfers it with its metadata as one multipart
request, and mirrors the session's document list after each change.
"""

import io
import json
import logging
from collections.abc import Callable

from ragconsole.core.config import MAX_UPLOAD_BYTES
from ragconsole.core.errors import (
    DocumentUploadFailedError,
    MalformedResponseError,
    RAGClientError,
    UnsupportedDocumentError,
    UploadInProgressError,
)
from ragconsole.core.telemetry import get_tracer
from ragconsole.models.document import (
    SUPPORTED_CONTENT_TYPES,
    DocumentFile,
    DocumentInfo,
    DocumentUploadRequest,
    DocumentUploadResponse,
)
from ragconsole.services.backend import BackendClient, decode_json
from ragconsole.services.coordinator import CancellationToken

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class _ProgressReader(io.BytesIO):
    """In-memory file that reports how much of itself has been read."""

    def __init__(self, data: bytes, report: ProgressCallback) -> None:
        super().__init__(data)
        self._total = len(data)
        self._report = report

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if chunk and self._total:
            self._report(self.tell() / self._total)
        return chunk


class DocumentUploadCoordinator:
    """Manages one upload at a time and the session's document cache."""

    def __init__(self, backend: BackendClient, max_upload_bytes: int = MAX_UPLOAD_BYTES) -> None:
        self._backend = backend
        self._max_upload_bytes = max_upload_bytes
        self._uploading = False
        self._documents: list[DocumentInfo] = []
        self._tracer = get_tracer()

    @property
    def uploading(self) -> bool:
        return self._uploading

    @property
    def documents(self) -> tuple[DocumentInfo, ...]:
        return tuple(self._documents)

    def validate(self, file: DocumentFile) -> None:
        """
        Reject files the backend cannot take.

        Raises:
            UnsupportedDocumentError: The file is too large or of an
                unsupported content type.
        """
        if file.size > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes / (1024 * 1024)
            raise UnsupportedDocumentError(
                f"{file.filename} is too large ({file.size} bytes); the limit is {limit_mb:g} MB."
            )
        content_type = file.content_type.split(";", 1)[0].strip().lower()
        if content_type not in SUPPORTED_CONTENT_TYPES:
            raise UnsupportedDocumentError(
                f"{file.filename} has unsupported type {content_type or 'unknown'}; "
                "only PDF, DOCX, DOC, TXT and MD files can be uploaded."
            )

    async def upload(
        self,
        file: DocumentFile,
        request: DocumentUploadRequest,
        *,
        session_id: str | None,
        on_progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> DocumentInfo:
        """
        Upload ``file`` and return the stored document.

        Progress is reported as a non-decreasing fraction in [0, 1].

        Raises:
            UnsupportedDocumentError: Local validation failed; nothing was sent.
            UploadInProgressError: Another upload is still running.
            MalformedResponseError: The response body was empty or not JSON.
            DocumentUploadFailedError: The backend did not complete the upload.
        """
        self.validate(file)
        if self._uploading:
            raise UploadInProgressError("An upload is already in progress")

        progress = 0.0

        def report(value: float) -> None:
            nonlocal progress
            value = min(max(value, progress), 1.0)
            if value != progress or value == 0.0:
                progress = value
                if on_progress is not None:
                    on_progress(value)

        if session_id and not request.session_id:
            request = request.model_copy(update={"session_id": session_id})

        self._uploading = True
        try:
            with self._tracer.start_as_current_span("documents.upload") as span:
                span.set_attribute("documents.size", file.size)
                span.set_attribute("documents.content_type", file.content_type)
                report(0.0)

                response = await self._backend.request(
                    "POST",
                    "/documents/upload",
                    files={"file": (file.filename, _ProgressReader(file.data, report), file.content_type)},
                    data={"metadata": json.dumps(request.to_wire())},
                    session_id=session_id,
                    token=token,
                )
                payload = decode_json(response)
                result = DocumentUploadResponse.from_wire(payload)
                report(1.0)

                span.set_attribute("documents.status", result.status)
                if result.status != "COMPLETED":
                    logger.warning("Upload of %s ended as %s: %s", file.filename, result.status, result.errors)
                    raise DocumentUploadFailedError(result.status, result.errors)

                span.set_attribute("documents.total_chunks", result.total_chunks)
                logger.info("Uploaded %s as %s (%d chunks)", file.filename, result.document_id, result.total_chunks)
        finally:
            self._uploading = False

        document = DocumentInfo(
            id=result.document_id,
            title=result.title or request.title,
            description=request.description or "",
            category=request.category or "",
            total_chunks=result.total_chunks,
            uploaded_at=result.uploaded_at,
        )
        try:
            await self.list_documents(session_id)
        except RAGClientError as exc:
            logger.warning("Document list refresh after upload failed: %s", exc)
        return document

    async def list_documents(self, session_id: str | None) -> list[DocumentInfo]:
        payload = await self._backend.get_json("/documents", session_id=session_id)
        if not isinstance(payload, list):
            raise MalformedResponseError("Document list response is not a list")
        self._documents = [DocumentInfo.from_wire(item) for item in payload]
        return list(self._documents)

    async def get_document(self, document_id: str, *, session_id: str | None) -> DocumentInfo:
        payload = await self._backend.get_json(f"/documents/{document_id}", session_id=session_id)
        return DocumentInfo.from_wire(payload)

    async def delete_document(self, document_id: str, *, session_id: str | None) -> None:
        await self._backend.delete(f"/documents/{document_id}", session_id=session_id)
        logger.info("Deleted document %s", document_id)
        await self.list_documents(session_id)
