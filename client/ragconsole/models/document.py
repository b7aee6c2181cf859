"""
Pydantic models for reference document uploads.
"""

import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from ragconsole.models.base import WireModel

UploadStatus = Literal["UPLOADING", "PROCESSING", "COMPLETED", "FAILED"]

# Types the backend can chunk
SUPPORTED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "text/plain",
        "text/markdown",
    }
)

mimetypes.add_type("text/markdown", ".md")


class DocumentFile(BaseModel):
    """A file selected for upload, held fully in memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def stem(self) -> str:
        return Path(self.filename).stem

    @classmethod
    def from_path(cls, path: str | Path) -> "DocumentFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content_type=content_type or "application/octet-stream",
            data=path.read_bytes(),
        )


class DocumentUploadRequest(WireModel):
    """Metadata blob sent alongside the file."""

    title: str = Field(..., min_length=1)
    description: str | None = None
    category: str | None = None
    metadata: dict[str, Any] | None = None
    session_id: str | None = None


class DocumentUploadResponse(WireModel):
    document_id: str = ""
    title: str = ""
    status: UploadStatus
    total_chunks: int = 0
    processed_chunks: int = 0
    uploaded_at: datetime | None = None
    errors: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentInfo(WireModel):
    """A document the backend has finished chunking."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    total_chunks: int = 0
    uploaded_at: datetime | None = None
