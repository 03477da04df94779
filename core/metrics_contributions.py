from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregate import (
    aggregate,
    committee_key_fn,
    contributor_key,
    contributor_name,
    entries_to_records,
    top_n,
    total_amount,
)
from core.charts import ranked_bar_chart
from core.data import payer_full_names
from core.dedupe import duplicate_count
from core.filters import DashboardFilters

ITEMIZED_COLUMNS = ["id", "date", "contributor", "receiving_entity", "amount", "form_type", "rec_type"]


def compute_contributions(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    raw: pd.DataFrame = ctx.get("contributions_raw", pd.DataFrame())
    deduped: pd.DataFrame = ctx.get("contributions", pd.DataFrame())
    df: pd.DataFrame = ctx.get("filtered_contributions", pd.DataFrame()).copy()
    overrides = ctx.get("merge_overrides") or {}

    if df.empty:
        return {
            "filters": asdict(filters),
            "kpis": {
                "total_raised": 0.0,
                "contributions": 0,
                "contributors": 0,
                "duplicates_removed": duplicate_count(raw, deduped),
            },
            "top_contributors": [],
            "top_committees": [],
            "committees": [],
            "charts": {},
            "table": [],
        }

    contributors = aggregate(df, contributor_key, name_fn=contributor_name)
    committee_key, committee_name = committee_key_fn(overrides)
    committees = aggregate(df, committee_key, name_fn=committee_name)

    top_contributors = entries_to_records(top_n(contributors, filters.top_n))
    top_committees = entries_to_records(top_n(committees, filters.top_n))
    charts: Dict[str, Any] = {}
    if top_contributors:
        charts["top_contributors"] = ranked_bar_chart(top_contributors, title="Contributor")
    if top_committees:
        charts["top_committees"] = ranked_bar_chart(top_committees, title="Committee")

    table = df.assign(contributor=payer_full_names(df))
    table = table[[c for c in ITEMIZED_COLUMNS if c in table.columns]]
    return {
        "filters": asdict(filters),
        "kpis": {
            "total_raised": total_amount(df),
            "contributions": int(len(df)),
            "contributors": len(contributors),
            "duplicates_removed": duplicate_count(raw, deduped),
        },
        "top_contributors": top_contributors,
        "top_committees": top_committees,
        "committees": entries_to_records(committees),
        "charts": charts,
        "table": table.to_dict(orient="records"),
    }
