from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.normalize import normalize_name

SORTABLE_FIELDS = (
    "date",
    "amount",
    "receiving_entity",
    "payer_name",
    "payer_first_name",
    "candidate",
    "support_oppose",
    "description",
    "form_type",
    "id",
)


@dataclass(frozen=True)
class DashboardFilters:
    selected_entity: str = "All"
    selected_candidates: List[str] = field(default_factory=list)
    search_query: str = ""
    sort_field: str = "date"
    sort_ascending: bool = False
    top_n: int = 10


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def normalize_filters(raw: dict, *, available_entities: Optional[List[str]] = None) -> DashboardFilters:
    raw = raw or {}

    selected_entity = str(raw.get("selected_entity") or "All").strip() or "All"
    if available_entities is not None and selected_entity != "All":
        known = {normalize_name(e) for e in available_entities}
        if normalize_name(selected_entity) not in known:
            selected_entity = "All"

    selected_candidates = [c for c in _as_str_list(raw.get("selected_candidates")) if c != "All"]
    search_query = (raw.get("search_query") or "").strip()

    sort_field = str(raw.get("sort_field") or "date").strip()
    if sort_field not in SORTABLE_FIELDS:
        sort_field = "date"
    sort_ascending = bool(raw.get("sort_ascending", False))

    top_n = raw.get("top_n", 10)
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        top_n = 10
    top_n = max(1, min(200, top_n))

    return DashboardFilters(
        selected_entity=selected_entity,
        selected_candidates=selected_candidates,
        search_query=search_query,
        sort_field=sort_field,
        sort_ascending=sort_ascending,
        top_n=top_n,
    )
