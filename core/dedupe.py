from __future__ import annotations

from typing import List

import pandas as pd

from core.data import TRANSACTION_DEFAULTS, date_text, ensure_columns, payer_full_names

IDENTITY_COLUMNS: List[str] = ["_date_key", "_payer_key", "_amount_key"]


def identity_keys(df: pd.DataFrame) -> pd.DataFrame:
    """Composite identity of a transaction: (date, trimmed full payer name, amount)."""
    return pd.DataFrame(
        {
            "_date_key": df["date"].apply(date_text),
            "_payer_key": payer_full_names(df),
            "_amount_key": pd.to_numeric(df["amount"], errors="coerce").fillna(0.0).round(2),
        },
        index=df.index,
    )


def dedupe(transactions: pd.DataFrame) -> pd.DataFrame:
    """Collapse rows sharing an identity key into one representative.

    A row with a non-empty ``id`` beats one without; among rows with ids the
    first in input order wins. Survivors are ordered by where their key first
    appeared. Coincidentally identical but distinct transactions are merged too.
    """
    if transactions.empty:
        return transactions.copy()

    df = ensure_columns(transactions, TRANSACTION_DEFAULTS).reset_index(drop=True)
    keys = identity_keys(df)
    work = pd.concat([df, keys], axis=1)
    work["_pos"] = range(len(work))
    work["_no_id"] = work["id"].fillna("").astype(str).str.strip().eq("").astype(int)
    work["_first_pos"] = work.groupby(IDENTITY_COLUMNS, sort=False)["_pos"].transform("min")

    survivors = (
        work.sort_values(["_no_id", "_pos"], kind="mergesort")
        .drop_duplicates(subset=IDENTITY_COLUMNS, keep="first")
        .sort_values("_first_pos", kind="mergesort")
    )
    helper_cols = IDENTITY_COLUMNS + ["_pos", "_no_id", "_first_pos"]
    return survivors.drop(columns=helper_cols).reset_index(drop=True)


def duplicate_count(before: pd.DataFrame, after: pd.DataFrame) -> int:
    return max(0, int(len(before)) - int(len(after)))
