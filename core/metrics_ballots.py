from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from core.alignment import align_series, comparison_records
from core.charts import batch_delta_chart, turnout_comparison_chart
from core.config import Settings, load_settings
from core.filters import DashboardFilters
from core.timeseries import SnapshotStats, compute_batch_deltas, compute_current_stats, deltas_frame, snapshots_from_frame

SERIES_PRIMARY = "Primary"
SERIES_RUNOFF = "Runoff"


def _stats_payload(stats: Optional[SnapshotStats]) -> Optional[Dict[str, Any]]:
    return asdict(stats) if stats is not None else None


def compute_ballot_returns(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    settings: Settings = ctx.get("settings") or load_settings()
    primary = snapshots_from_frame(ctx.get("ballots_primary", pd.DataFrame()))
    runoff = snapshots_from_frame(ctx.get("ballots_runoff", pd.DataFrame()))

    runoff_stats = compute_current_stats(runoff)
    primary_stats = compute_current_stats(primary)
    runoff_deltas = compute_batch_deltas(runoff)
    primary_deltas = compute_batch_deltas(primary)

    aligned = align_series(
        {
            SERIES_PRIMARY: (primary, settings.election.primary_date),
            SERIES_RUNOFF: (runoff, settings.election.runoff_date),
        }
    )
    rows = comparison_records(aligned)

    charts: Dict[str, Any] = {}
    if runoff_deltas:
        charts["runoff_batches"] = batch_delta_chart(deltas_frame(runoff_deltas))
    if any(r["has_data"] for r in rows):
        charts["turnout_comparison"] = turnout_comparison_chart(rows)

    series: Dict[str, List[Optional[Dict[str, Any]]]] = {
        name: [asdict(p) if p is not None else None for p in pts] for name, pts in aligned.series.items()
    }
    return {
        "filters": asdict(filters),
        "election": {
            "name": settings.election.name,
            "runoff_date": settings.election.runoff_date,
            "primary_date": settings.election.primary_date,
        },
        "available": runoff_stats is not None,
        "stats": {"runoff": _stats_payload(runoff_stats), "primary": _stats_payload(primary_stats)},
        "batches": {
            "runoff": [asdict(d) for d in runoff_deltas],
            "primary": [asdict(d) for d in primary_deltas],
        },
        "comparison": {"offsets": aligned.offsets, "series": series},
        "comparison_rows": rows,
        "charts": charts,
    }
