from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.data import date_text, iter_transactions
from core.dedupe import duplicate_count
from core.filters import DashboardFilters


def _field_checks(df: pd.DataFrame) -> Dict[str, int]:
    if df.empty:
        return {"unparsable_amounts": 0, "unparsable_dates": 0, "blank_entities": 0}
    return {
        "unparsable_amounts": int((~df["amount_valid"].astype(bool)).sum()),
        "unparsable_dates": int((~df["date_valid"].astype(bool)).sum()),
        "blank_entities": int(df["receiving_entity"].astype(str).str.strip().eq("").sum()),
    }


def compute_debug(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    expenditures: pd.DataFrame = ctx.get("expenditures", pd.DataFrame())
    contributions_raw: pd.DataFrame = ctx.get("contributions_raw", pd.DataFrame())
    contributions: pd.DataFrame = ctx.get("contributions", pd.DataFrame())
    dq: Dict[str, Dict[str, int]] = ctx.get("dq", {}) or {}

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "row_counts": {
            "expenditure_rows": int(len(expenditures)),
            "contribution_rows": int(len(contributions_raw)),
            "contribution_rows_deduped": int(len(contributions)),
            "ballot_primary_rows": int(len(ctx.get("ballots_primary", pd.DataFrame()))),
            "ballot_runoff_rows": int(len(ctx.get("ballots_runoff", pd.DataFrame()))),
        },
        "cleaning_checks": {
            "contributions_excluded_form_type": int(dq.get("contributions", {}).get("excluded_rows", 0) or 0),
            "contributions_duplicates_removed": duplicate_count(contributions_raw, contributions),
            "expenditures": _field_checks(expenditures),
            "contributions": _field_checks(contributions_raw),
        },
        "load_errors": {
            name: {"kind": exc.kind, "message": exc.message} for name, exc in (ctx.get("errors") or {}).items()
        },
        "merge_overrides": sorted({ov.label for ov in (ctx.get("merge_overrides") or {}).values()}),
        "unparsable_samples": [],
    }

    samples = []
    for name, df in (("expenditures", expenditures), ("contributions", contributions_raw)):
        if df.empty:
            continue
        bad = df[~(df["amount_valid"].astype(bool) & df["date_valid"].astype(bool))]
        for tx in iter_transactions(bad.head(20)):
            samples.append(
                {
                    "dataset": name,
                    "id": tx.id,
                    "date": date_text(tx.date),
                    "amount": tx.amount,
                    "entity": tx.receiving_entity,
                }
            )
    payload["unparsable_samples"] = samples
    return payload
