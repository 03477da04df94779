from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.aggregate import (
    aggregate,
    entity_key,
    entity_name,
    entries_to_records,
    support_oppose_totals,
    top_n,
    total_amount,
)
from core.charts import ranked_bar_chart, support_oppose_chart
from core.config import Settings, load_settings
from core.filters import DashboardFilters
from core.normalize import normalize_name

ITEMIZED_COLUMNS = ["receiving_entity", "date", "description", "amount", "candidate", "support_oppose"]


def compute_expenditures(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    settings: Settings = ctx.get("settings") or load_settings()
    all_rows: pd.DataFrame = ctx.get("expenditures", pd.DataFrame())
    df: pd.DataFrame = ctx.get("filtered_expenditures", pd.DataFrame()).copy()

    candidates = support_oppose_totals(df, settings.election.candidate_names)
    colors = {c.name: c.color for c in settings.election.candidates}
    for row in candidates:
        row["color"] = colors.get(row["name"])

    charts: Dict[str, Any] = {}
    if not df.empty:
        charts["candidate_support_oppose"] = support_oppose_chart(candidates)

    # Top spenders are ranked across every organization, independent of the selected one.
    top_spenders: List[Dict[str, Any]] = []
    if filters.selected_entity in {"", "All"} and not all_rows.empty:
        entries = aggregate(all_rows, entity_key, name_fn=entity_name)
        top_spenders = entries_to_records(top_n(entries, filters.top_n))
        if top_spenders:
            charts["top_spenders"] = ranked_bar_chart(top_spenders, title="Organization")

    table = df[[c for c in ITEMIZED_COLUMNS if c in df.columns]] if not df.empty else pd.DataFrame(columns=ITEMIZED_COLUMNS)
    return {
        "filters": asdict(filters),
        "kpis": {
            "total_spending": total_amount(df),
            "transactions": int(len(df)),
            "organizations": int(df["receiving_entity"].apply(normalize_name).nunique()) if not df.empty else 0,
        },
        "candidates": candidates,
        "top_spenders": top_spenders,
        "charts": charts,
        "table": table.to_dict(orient="records"),
    }
