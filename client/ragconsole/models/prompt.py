"""
Pydantic models for prompt templates and their rendering context.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from ragconsole.models.base import WireModel
from ragconsole.models.chat import Message, SearchResult, utcnow

TemplateCategory = Literal["general", "rag", "analysis", "creative"]


class PromptTemplate(WireModel):
    """A named template with ``{variable}`` placeholders."""

    id: str
    name: str
    description: str = ""
    template: str
    variables: list[str] = Field(default_factory=list, description="Declared variable names, in order")
    version: str = "1.0.0"
    category: TemplateCategory = "general"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("variables")
    @classmethod
    def _dedupe_variables(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class PromptContext(WireModel):
    """Inputs available to a template at render time."""

    user_query: str
    search_results: list[SearchResult] = Field(default_factory=list)
    conversation_history: list[Message] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)


class PromptValidation(WireModel):
    """Outcome of validating a user-supplied prompt."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
