"""
Pydantic models for the paged advanced search endpoint.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from ragconsole.models.base import WireModel
from ragconsole.models.chat import SearchResult

SearchType = Literal["SEMANTIC", "KEYWORD", "HYBRID"]
FilterOperator = Literal[
    "EQUALS", "NOT_EQUALS", "GREATER_THAN", "LESS_THAN", "BETWEEN", "CONTAINS", "IN"
]


class SearchFilter(WireModel):
    field: str
    operator: FilterOperator
    value: Any
    value2: Any | None = None


class SearchSort(WireModel):
    field: str
    direction: Literal["ASC", "DESC"] = "DESC"


class AdvancedSearchRequest(WireModel):
    query: str = Field(..., min_length=1)
    search_type: SearchType = "SEMANTIC"
    filters: list[SearchFilter] | None = None
    sort: SearchSort | None = None
    page: int = Field(0, ge=0)
    size: int = Field(10, ge=1)
    session_id: str | None = None


class AdvancedSearchResponse(WireModel):
    results: list[SearchResult] = Field(default_factory=list)
    page: int = 0
    size: int = 0
    total_elements: int = 0
    total_pages: int = 0
    search_type: str = ""
    has_next: bool = False
    has_previous: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchHistoryEntry(WireModel):
    query: str
    result_count: int = 0
    timestamp: datetime | None = None
