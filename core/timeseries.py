"""Ballot-return snapshot statistics.

A snapshot sequence is ordered: index 0 is the registration baseline (total
eligible voters), every later row is a cumulative count of returned ballots.
Percentages that cannot be computed are ``None``, never NaN or zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

PARTIES = ("dem", "rep", "other")


@dataclass(frozen=True)
class Snapshot:
    label: str
    date: Optional[date]
    total: int
    dem: int = 0
    rep: int = 0
    other: int = 0

    @property
    def party_breakdown(self) -> Dict[str, int]:
        return {p: getattr(self, p) for p in PARTIES}


@dataclass(frozen=True)
class SnapshotStats:
    as_of: str
    as_of_date: Optional[date]
    registered: int
    returned: int
    turnout_rate: Optional[float]
    party_share: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchDelta:
    label: str
    date: Optional[date]
    total_change: int
    party_change: Dict[str, int]
    party_share_of_change: Dict[str, Optional[float]]


def percent(part: float, whole: float) -> Optional[float]:
    if not whole:
        return None
    return float(part) / float(whole) * 100.0


def party_shares(counts: Dict[str, int], total: float) -> Dict[str, Optional[float]]:
    return {p: percent(counts.get(p, 0), total) for p in PARTIES}


def snapshots_from_frame(df: pd.DataFrame) -> List[Snapshot]:
    """Build snapshots from a normalized ballot-returns frame (row order kept)."""
    if df.empty:
        return []
    out: List[Snapshot] = []
    for rec in df.to_dict(orient="records"):
        snap_date = rec.get("date")
        if snap_date is None or (not isinstance(snap_date, date) and pd.isna(snap_date)):
            snap_date = None
        out.append(
            Snapshot(
                label=str(rec.get("description") or ""),
                date=snap_date,
                total=int(rec.get("total") or 0),
                dem=int(rec.get("dem") or 0),
                rep=int(rec.get("rep") or 0),
                other=int(rec.get("other") or 0),
            )
        )
    return out


def compute_current_stats(snapshots: Sequence[Snapshot]) -> Optional[SnapshotStats]:
    """Turnout and party share for the latest batch; ``None`` when there is no batch yet."""
    if len(snapshots) < 2:
        return None
    baseline = snapshots[0]
    latest = snapshots[-1]
    return SnapshotStats(
        as_of=latest.label,
        as_of_date=latest.date,
        registered=baseline.total,
        returned=latest.total,
        turnout_rate=percent(latest.total, baseline.total),
        party_share=party_shares(latest.party_breakdown, latest.total),
    )


def compute_batch_deltas(snapshots: Sequence[Snapshot]) -> List[BatchDelta]:
    """Per-batch increments.

    The first entry carries the first batch's absolute counts; each later
    entry is the difference to the previous snapshot. Needs a baseline and at
    least two batches, otherwise the result is empty.
    """
    if len(snapshots) < 3:
        return []
    first = snapshots[1]
    deltas = [
        BatchDelta(
            label=first.label,
            date=first.date,
            total_change=first.total,
            party_change=first.party_breakdown,
            party_share_of_change=party_shares(first.party_breakdown, first.total),
        )
    ]
    for prev, cur in zip(snapshots[1:-1], snapshots[2:]):
        total_change = cur.total - prev.total
        change = {p: cur.party_breakdown[p] - prev.party_breakdown[p] for p in PARTIES}
        deltas.append(
            BatchDelta(
                label=cur.label,
                date=cur.date,
                total_change=total_change,
                party_change=change,
                party_share_of_change=party_shares(change, total_change),
            )
        )
    return deltas


def deltas_frame(deltas: Sequence[BatchDelta]) -> pd.DataFrame:
    rows = []
    for d in deltas:
        row = {"label": d.label, "date": d.date, "total_change": d.total_change}
        for p in PARTIES:
            row[f"{p}_change"] = d.party_change[p]
            row[f"{p}_pct"] = d.party_share_of_change[p]
        rows.append(row)
    return pd.DataFrame(rows)
