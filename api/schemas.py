from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    selected_entity: str = "All"
    selected_candidates: List[str] = Field(default_factory=list)
    search_query: str = ""
    sort_field: str = "date"
    sort_ascending: bool = False
    top_n: int = 10


class MetaListResponse(BaseModel):
    values: List[str]


class ErrorResponse(BaseModel):
    error: str
    type: str
    dataset: str | None = None
    kind: str | None = None
