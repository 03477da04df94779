from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.normalize import CommitteeMergeOverride, display_name, full_name, normalize_name, resolve_committee

UNKNOWN_LABEL = "(Unknown)"
DEFAULT_TOP_N = 10

SEARCH_FIELDS: Tuple[str, ...] = (
    "payer_name",
    "payer_first_name",
    "receiving_entity",
    "candidate",
    "description",
)
NUMERIC_FIELDS = {"amount"}
DATE_FIELDS = {"date"}

KeyFn = Callable[[pd.Series], str]


@dataclass(frozen=True)
class AggregateEntry:
    name: str
    key: str
    total_amount: float
    count: int


# ---------------- Key / label functions ----------------
def entity_key(row: pd.Series) -> str:
    return normalize_name(row.get("receiving_entity", ""))


def entity_name(row: pd.Series) -> str:
    return display_name(row.get("receiving_entity", ""))


def contributor_key(row: pd.Series) -> str:
    return normalize_name(full_name(row.get("payer_first_name", ""), row.get("payer_name", "")))


def contributor_name(row: pd.Series) -> str:
    return display_name(full_name(row.get("payer_first_name", ""), row.get("payer_name", "")), title_case=True)


def committee_key_fn(overrides: Optional[Mapping[str, CommitteeMergeOverride]] = None) -> Tuple[KeyFn, KeyFn]:
    """(key_fn, name_fn) for receiving committees with explicit merge overrides applied."""

    def _name(row: pd.Series) -> str:
        return resolve_committee(row.get("receiving_entity", ""), row.get("filer_id", ""), overrides)

    def _key(row: pd.Series) -> str:
        return normalize_name(_name(row))

    return _key, _name


# ---------------- Grouping ----------------
def _first_label(values: pd.Series) -> str:
    return next((str(v) for v in values if v), "")


def aggregate(
    transactions: pd.DataFrame,
    key_fn: KeyFn,
    *,
    name_fn: Optional[KeyFn] = None,
) -> List[AggregateEntry]:
    """Sum ``amount`` per entity key, largest first.

    Ties keep first-seen order. Rows with an empty key are grouped together
    under ``UNKNOWN_LABEL`` so the grand total is conserved.
    """
    if transactions.empty:
        return []
    keys = transactions.apply(key_fn, axis=1).astype(str)
    if name_fn is None:
        names = keys
    else:
        names = transactions.apply(name_fn, axis=1).astype(str)
    work = pd.DataFrame(
        {
            "key": keys,
            "name": names,
            "amount": pd.to_numeric(transactions["amount"], errors="coerce").fillna(0.0),
        },
        index=transactions.index,
    )
    grouped = (
        work.groupby("key", sort=False)
        .agg(name=("name", _first_label), total_amount=("amount", "sum"), count=("amount", "size"))
        .reset_index()
        .sort_values("total_amount", ascending=False, kind="mergesort")
    )
    return [
        AggregateEntry(
            name=str(r["name"]) or UNKNOWN_LABEL,
            key=str(r["key"]),
            total_amount=float(r["total_amount"]),
            count=int(r["count"]),
        )
        for r in grouped.to_dict(orient="records")
    ]


def top_n(entries: Sequence[AggregateEntry], n: int = DEFAULT_TOP_N) -> List[AggregateEntry]:
    return list(entries[: max(0, n)])


def grouped_map(entries: Iterable[AggregateEntry]) -> Dict[str, AggregateEntry]:
    return {e.key: e for e in entries}


def entries_to_records(entries: Iterable[AggregateEntry]) -> List[Dict[str, Any]]:
    return [
        {"rank": i, "name": e.name, "total_amount": e.total_amount, "count": e.count}
        for i, e in enumerate(entries, start=1)
    ]


def total_amount(transactions: pd.DataFrame) -> float:
    if transactions.empty or "amount" not in transactions.columns:
        return 0.0
    return float(pd.to_numeric(transactions["amount"], errors="coerce").fillna(0.0).sum())


# ---------------- Filtering / sorting ----------------
def filter_transactions(
    transactions: pd.DataFrame,
    *,
    entity: Optional[str] = None,
    entity_field: str = "receiving_entity",
    query: str = "",
    search_fields: Iterable[str] = SEARCH_FIELDS,
) -> pd.DataFrame:
    df = transactions
    if df.empty:
        return df.copy()
    if entity and entity != "All" and entity_field in df.columns:
        target = normalize_name(entity)
        df = df[df[entity_field].apply(normalize_name) == target]
    q = (query or "").strip().casefold()
    if q and not df.empty:
        mask = pd.Series(False, index=df.index)
        for col in search_fields:
            if col in df.columns:
                mask |= df[col].astype(str).str.casefold().str.contains(q, regex=False, na=False)
        df = df[mask]
    return df.copy()


def _date_sort_key(value: object) -> Tuple[int, Any]:
    # Parsed dates sort chronologically; verbatim strings sort after them.
    if isinstance(value, date):
        return 0, value.toordinal()
    return 1, str(value or "").casefold()


def _amount_sort_key(value: object) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _text_sort_key(value: object) -> str:
    return str(value or "").casefold()


def sort_key_for(field: str) -> Callable[[object], Any]:
    if field in DATE_FIELDS:
        return _date_sort_key
    if field in NUMERIC_FIELDS:
        return _amount_sort_key
    return _text_sort_key


def sort_transactions(transactions: pd.DataFrame, field: str, *, ascending: bool = True) -> pd.DataFrame:
    """Stable sort on one column with date- and number-aware comparison."""
    if transactions.empty or field not in transactions.columns:
        return transactions.copy()
    key = sort_key_for(field)
    values = [key(v) for v in transactions[field]]
    order = sorted(range(len(values)), key=values.__getitem__, reverse=not ascending)
    return transactions.iloc[order].copy()


def support_oppose_totals(transactions: pd.DataFrame, candidates: Iterable[str]) -> List[Dict[str, Any]]:
    """Support/oppose spending per candidate."""
    out: List[Dict[str, Any]] = []
    df = transactions
    has_data = not df.empty and {"candidate", "support_oppose", "amount"}.issubset(df.columns)
    if has_data:
        cand_keys = df["candidate"].apply(normalize_name)
        stance = df["support_oppose"].astype(str).str.strip().str.casefold()
        amounts = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
    for name in candidates:
        support = oppose = 0.0
        if has_data:
            mine = cand_keys == normalize_name(name)
            support = float(amounts[mine & stance.eq("support")].sum())
            oppose = float(amounts[mine & stance.eq("oppose")].sum())
        out.append({"name": name, "support": support, "oppose": oppose, "total": support + oppose})
    return out
