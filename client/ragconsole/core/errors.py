"""
Client-side exceptions.

Transport, backend and payload failures are raised by the services and
recovered by the orchestrator into error messages. Local validation
failures are raised synchronously to the caller before any network call.
"""


class RAGClientError(Exception):
    """Base class for every error raised by the console client."""


class TransportError(RAGClientError):
    """The request never produced an HTTP response (network, timeout)."""


class BackendError(RAGClientError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, message: str, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.body = body


class MalformedResponseError(RAGClientError):
    """The response body was empty or could not be decoded."""


class RequestCancelledError(RAGClientError):
    """The request was cancelled through its cancellation token."""


class LocalValidationError(RAGClientError, ValueError):
    """Input rejected locally; nothing was sent or mutated."""


class EmptyPromptError(LocalValidationError):
    """A prompt or message was empty or whitespace only."""


class UnsupportedDocumentError(LocalValidationError):
    """A file is too large or has a content type outside the allow-list."""


class ConfigValidationError(LocalValidationError):
    """A RAG config update contained an invalid or unknown field."""


class InvalidThreadTransitionError(LocalValidationError):
    """A thread status change that the lifecycle does not allow."""


class InvalidTemplateError(LocalValidationError):
    """A prompt template declares variables missing from its text."""


class UploadInProgressError(RAGClientError):
    """A second upload was started while one is still transferring."""


class DocumentUploadFailedError(RAGClientError):
    """The backend finished an upload in a status other than COMPLETED."""

    def __init__(self, status: str, errors: list[str] | None = None) -> None:
        self.status = status
        self.errors = list(errors or [])
        detail = ", ".join(self.errors) if self.errors else "unknown error"
        super().__init__(f"Document upload ended with status {status}: {detail}")
