"""Day-aligned comparison of ballot-return series from different elections."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.timeseries import PARTIES, Snapshot, party_shares, percent

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class AlignedPoint:
    days_before: int
    label: str
    turnout_rate: Optional[float]
    party_share: Dict[str, Optional[float]]


@dataclass(frozen=True)
class AlignedComparison:
    offsets: List[int] = field(default_factory=list)
    series: Dict[str, List[Optional[AlignedPoint]]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.offsets)


def _as_datetime(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def days_before(election_date: date, snapshot_date: date) -> int:
    """Whole days from the snapshot to election day, rounded up."""
    delta = _as_datetime(election_date) - _as_datetime(snapshot_date)
    return int(math.ceil(delta.total_seconds() / _SECONDS_PER_DAY))


def series_points(snapshots: Sequence[Snapshot], election_date: date) -> List[AlignedPoint]:
    """Turnout/party share per dated batch, relative to the series' own baseline.

    When two batches land on the same offset the later one is kept.
    """
    if len(snapshots) < 2:
        return []
    baseline = snapshots[0]
    by_offset: Dict[int, AlignedPoint] = {}
    for snap in snapshots[1:]:
        if snap.date is None:
            logger.warning("Skipping undated ballot snapshot %r", snap.label)
            continue
        offset = days_before(election_date, snap.date)
        by_offset[offset] = AlignedPoint(
            days_before=offset,
            label=snap.label,
            turnout_rate=percent(snap.total, baseline.total),
            party_share=party_shares(snap.party_breakdown, snap.total),
        )
    return sorted(by_offset.values(), key=lambda p: p.days_before, reverse=True)


def align_series(series: Mapping[str, Tuple[Sequence[Snapshot], date]]) -> AlignedComparison:
    """Reindex every series onto one dense, descending days-before axis.

    Offsets missing from a series hold ``None`` (no data), which is distinct
    from a 0% value.
    """
    points = {name: series_points(snaps, election) for name, (snaps, election) in series.items()}
    all_offsets = [p.days_before for pts in points.values() for p in pts]
    if not all_offsets:
        return AlignedComparison(offsets=[], series={name: [] for name in series})

    dense = list(range(max(all_offsets), min(all_offsets) - 1, -1))
    aligned: Dict[str, List[Optional[AlignedPoint]]] = {}
    for name, pts in points.items():
        indexed = pd.Series({p.days_before: p for p in pts}, dtype=object)
        reindexed = indexed.reindex(dense)
        aligned[name] = [p if isinstance(p, AlignedPoint) else None for p in reindexed.tolist()]
    return AlignedComparison(offsets=dense, series=aligned)


def comparison_records(aligned: AlignedComparison) -> List[Dict[str, Any]]:
    """Long-form rows (one per offset and series) for tables and charts."""
    rows: List[Dict[str, Any]] = []
    for name, pts in aligned.series.items():
        for offset, point in zip(aligned.offsets, pts):
            row: Dict[str, Any] = {
                "series": name,
                "days_before": offset,
                "has_data": point is not None,
                "label": point.label if point else None,
                "turnout_rate": point.turnout_rate if point else None,
            }
            for p in PARTIES:
                row[f"{p}_pct"] = point.party_share[p] if point else None
            rows.append(row)
    return rows
