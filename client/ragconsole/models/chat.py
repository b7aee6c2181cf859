"""
Pydantic models for chat messages, retrieval results and RAG parameters.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, Field, ValidationError

from ragconsole.core.errors import ConfigValidationError
from ragconsole.models.base import WireModel

Role = Literal["user", "assistant", "system"]
ChatMode = Literal["ask", "chat"]
Feedback = Literal["positive", "negative"]
QualityRating = Literal["poor", "fair", "good", "excellent"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchMode(str, Enum):
    SIMILARITY = "similarity"
    MMR = "mmr"
    HYBRID = "hybrid"


class SearchResult(WireModel):
    """A single passage returned by the retrieval endpoint."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Passage identifier")
    content: str = Field("", description="Passage text")
    score: float = Field(0.0, description="Similarity score reported by the index")
    metadata: dict[str, Any] = Field(default_factory=dict)
    source: str = Field("Unknown", description="Origin of the passage")

    @classmethod
    def from_raw(cls, item: Mapping[str, Any], index: int) -> "SearchResult":
        """
        Normalise one raw retrieval item, filling the backend's alternate keys.

        Raises:
            MalformedResponseError: A field has a value of the wrong type,
                e.g. a non-numeric score.
        """
        content = item.get("content") or item.get("text") or ""
        if not isinstance(content, str):
            content = str(content)
        return cls.from_wire(
            {
                "id": str(item.get("id") or f"result_{index}"),
                "content": content,
                "score": item.get("score") or item.get("similarity") or 0.0,
                "metadata": item.get("metadata") or {},
                "source": str(item.get("source") or item.get("url") or "Unknown"),
            }
        )


class MessageMetadata(WireModel):
    """Details attached to a successful assistant message."""

    model_config = ConfigDict(frozen=True)

    model: str = "unknown"
    tokens: int = 0
    processing_time_ms: float = 0.0
    search_result_count: int | None = None
    prompt_template: str | None = None
    session_id: str | None = None


class Message(WireModel):
    """One entry of the conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Message role: 'user', 'assistant' or 'system'")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: MessageMetadata | None = None
    error: bool = Field(False, description="True when produced from a failed request")

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, metadata: MessageMetadata | None = None) -> "Message":
        return cls(role="assistant", content=content, metadata=metadata)

    @classmethod
    def failure(cls, reason: str) -> "Message":
        return cls(role="assistant", content=reason, error=True)


class RAGConfig(WireModel):
    """Retrieval and generation parameters sent with every request."""

    model_config = ConfigDict(frozen=True)

    top_k: int = Field(10, ge=1, description="Maximum passages to retrieve")
    threshold: float = Field(0.7, ge=0.0, le=1.0, description="Minimum similarity score")
    max_tokens: int = Field(4000, gt=0)
    temperature: float = Field(0.7, ge=0.0)
    search_mode: SearchMode = SearchMode.SIMILARITY

    def merge(self, updates: Mapping[str, Any]) -> "RAGConfig":
        """
        Return a new config with ``updates`` applied over this one.

        Field names may be given in snake_case or the backend's camelCase.
        The whole update is rejected if any key is unknown or any value is
        out of range; this config is never modified.
        """
        by_alias = {field.alias: name for name, field in RAGConfig.model_fields.items()}
        data = self.model_dump()
        unknown = []
        for key, value in updates.items():
            name = key if key in RAGConfig.model_fields else by_alias.get(key)
            if name is None:
                unknown.append(key)
                continue
            data[name] = value
        if unknown:
            raise ConfigValidationError(f"Unknown config fields: {', '.join(sorted(unknown))}")

        try:
            return RAGConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigValidationError(str(exc)) from exc


class GenerationResult(WireModel):
    """Parsed response of the /ask and /chat endpoints."""

    content: str
    session_id: str | None = None
    model: str = "unknown"
    tokens: int = 0
    processing_time_ms: float = 0.0


class QualityReport(WireModel):
    """Coarse quality classification of one retrieval batch."""

    average_score: float = 0.0
    high_quality_count: int = 0
    quality_rating: QualityRating = "poor"
