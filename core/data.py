from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime
from functools import lru_cache
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import pandas as pd

from core.config import MERGE_OVERRIDES_FILE, Settings, load_settings
from core.filters import DashboardFilters, normalize_filters
from core.normalize import (
    DEFAULT_MERGE_OVERRIDES,
    CommitteeMergeOverride,
    clean_whitespace,
    display_name,
    full_name,
    merge_override_index,
    normalize_name,
)

logger = logging.getLogger(__name__)

DateValue = Union[date, str]

EXPENDITURE_COLUMNS = {
    "Entity": "receiving_entity",
    "Date": "date_raw",
    "Description": "description",
    "Amount": "amount_raw",
    "Candidate": "candidate",
    "Oppose/Support": "support_oppose",
    "Support/Oppose": "support_oppose",
}

CONTRIBUTION_COLUMNS = {
    "Tran_ID": "id",
    "Tran_Date": "date_raw",
    "Amount": "amount_raw",
    "Form_Type": "form_type",
    "Rec_Type": "rec_type",
    "Entity_Nam L": "payer_name",
    "Entity_Nam F": "payer_first_name",
    "Filer_Nam L": "receiving_entity",
    "Filer_ID": "filer_id",
}

BALLOT_COLUMNS = {
    "Description": "description",
    "Date": "date_raw",
    "Total": "total",
    "Dem": "dem",
    "Rep": "rep",
    "Other (Not DEM or REP)": "other",
    "Other": "other",
}

TEXT_FIELDS = [
    "id",
    "payer_name",
    "payer_first_name",
    "receiving_entity",
    "filer_id",
    "form_type",
    "rec_type",
    "candidate",
    "support_oppose",
    "description",
]


class DataLoadError(Exception):
    """A dataset could not be fetched or parsed; the load for it is aborted."""

    def __init__(self, dataset: str, kind: str, message: str):
        super().__init__(f"{dataset}: {message}")
        self.dataset = dataset
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class Transaction:
    """One contribution or expenditure row after field-level normalization."""

    id: str = ""
    date: DateValue = ""
    amount: float = 0.0
    payer_name: str = ""
    payer_first_name: str = ""
    receiving_entity: str = ""
    filer_id: str = ""
    form_type: str = ""
    rec_type: str = ""
    candidate: str = ""
    support_oppose: str = ""
    description: str = ""
    amount_valid: bool = True
    date_valid: bool = True

    @property
    def payer_full_name(self) -> str:
        return full_name(self.payer_first_name, self.payer_name)


TRANSACTION_COLUMNS = [f.name for f in fields(Transaction)]
TRANSACTION_DEFAULTS: Dict[str, Any] = {f.name: f.default for f in fields(Transaction)}


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = [asdict(t) for t in transactions]
    if not rows:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def iter_transactions(df: pd.DataFrame) -> Iterator[Transaction]:
    df = ensure_columns(df, TRANSACTION_DEFAULTS)
    for rec in df[TRANSACTION_COLUMNS].to_dict(orient="records"):
        yield Transaction(**rec)


def ensure_columns(df: pd.DataFrame, defaults: Dict[str, Any]) -> pd.DataFrame:
    missing = [c for c in defaults if c not in df.columns]
    if not missing:
        return df
    df = df.copy()
    for col in missing:
        df[col] = defaults[col]
    return df


def payer_full_names(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=object, index=df.index)
    first = df.get("payer_first_name", pd.Series("", index=df.index))
    last = df.get("payer_name", pd.Series("", index=df.index))
    return pd.Series([full_name(f, l) for f, l in zip(first, last)], index=df.index, dtype=object)


# ---------------- Field parsers ----------------
_AMOUNT_STRIP_RE = re.compile(r"[^0-9.]+")
_DATE_IN_TEXT_RE = re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2})")
DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%b %d, %Y", "%B %d, %Y", "%m-%d-%Y")


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_amount(value: object) -> Tuple[float, bool]:
    """Currency value -> (amount, parsed_ok). Unparsable or non-finite amounts become 0.0."""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0, False
    if isinstance(value, (int, float)):
        out = float(value)
        return (out, True) if math.isfinite(out) else (0.0, False)
    s = str(value).strip()
    if not s:
        return 0.0, False
    negative = s.startswith("-") or (s.startswith("(") and s.endswith(")")) or s.startswith("$-")
    digits = _AMOUNT_STRIP_RE.sub("", s)
    if not digits or digits == ".":
        return 0.0, False
    try:
        out = float(digits)
    except ValueError:
        return 0.0, False
    if not math.isfinite(out):
        return 0.0, False
    return (-out if negative else out), True


def parse_date(value: object) -> Tuple[DateValue, bool]:
    """Locale date string -> (date, True), or (original string, False) when unparsable."""
    if isinstance(value, datetime):
        return value.date(), True
    if isinstance(value, date):
        return value, True
    if _is_missing(value):
        return "", False
    original = str(value)
    s = original.strip()
    if not s:
        return original, False
    if re.match(r"^[A-Za-z]", s):
        first = s
    else:
        first = s.split()[0].split("T", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(first, fmt).date(), True
        except ValueError:
            continue
    return original, False


def parse_count(value: object) -> int:
    if _is_missing(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(float(value)) else 0
    s = re.sub(r"[,\s]", "", str(value))
    try:
        return int(float(s))
    except ValueError:
        return 0


def date_in_text(value: object) -> Optional[date]:
    match = _DATE_IN_TEXT_RE.search(str(value or ""))
    if not match:
        return None
    parsed, ok = parse_date(match.group(1))
    return parsed if ok else None


def date_text(value: object) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return clean_whitespace(value)


def format_currency_0(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"${float(value):,.0f}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if value is None or pd.isna(value):
        return "-"
    return f"{float(value):.{decimals}f}%"


# ---------------- Fetch / parse ----------------
def read_csv_text(path: Path, dataset: str) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise DataLoadError(dataset, "fetch", f"file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DataLoadError(dataset, "fetch", f"could not read {path}: {exc}") from exc


def parse_csv_text(text: str, dataset: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DataLoadError(dataset, "parse", f"CSV parsing error: {exc}") from exc
    df.columns = [str(c).strip() for c in df.columns]
    df = df.loc[:, ~df.columns.duplicated()]
    # Drop rows where every field is blank.
    if not df.empty:
        blank = df.apply(lambda col: col.astype(str).str.strip().eq("")).all(axis=1)
        df = df[~blank].reset_index(drop=True)
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].apply(clean_whitespace).astype(object)
    return df


def _rename(df: pd.DataFrame, mapping: Dict[str, str]) -> pd.DataFrame:
    df = df.rename(columns=mapping)
    return df.loc[:, ~df.columns.duplicated()]


# ---------------- Normalizers ----------------
def normalize_transactions(raw: pd.DataFrame, columns: Dict[str, str], dataset: str) -> pd.DataFrame:
    df = _rename(raw, columns)
    df = ensure_columns(df, {"date_raw": "", "amount_raw": "", **{c: "" for c in TEXT_FIELDS}})
    df = coerce_str_safe(df, TEXT_FIELDS)

    amounts = [parse_amount(v) for v in df["amount_raw"]]
    dates = [parse_date(v) for v in df["date_raw"]]
    df["amount"] = pd.Series([a for a, _ in amounts], index=df.index, dtype=float)
    df["amount_valid"] = [ok for _, ok in amounts]
    df["date"] = pd.Series([d for d, _ in dates], index=df.index, dtype=object)
    df["date_valid"] = [ok for _, ok in dates]

    bad_amounts = int((~df["amount_valid"]).sum()) if not df.empty else 0
    bad_dates = int((~df["date_valid"]).sum()) if not df.empty else 0
    if bad_amounts or bad_dates:
        logger.warning(
            "%s: %d row(s) with unparsable amount (set to 0), %d with unparsable date (kept verbatim)",
            dataset,
            bad_amounts,
            bad_dates,
        )
    return df[TRANSACTION_COLUMNS].reset_index(drop=True)


def normalize_expenditures(raw: pd.DataFrame) -> pd.DataFrame:
    return normalize_transactions(raw, EXPENDITURE_COLUMNS, "expenditures")


def normalize_contributions(raw: pd.DataFrame, excluded_form_types: Iterable[str] = ("F497P2",)) -> Tuple[pd.DataFrame, int]:
    """Normalize contribution rows, dropping excluded reporting forms first."""
    excluded = {f.strip().upper() for f in excluded_form_types}
    df = raw
    excluded_rows = 0
    if excluded and "Form_Type" in df.columns:
        mask = df["Form_Type"].astype(str).str.strip().str.upper().isin(excluded)
        excluded_rows = int(mask.sum())
        df = df[~mask]
    return normalize_transactions(df, CONTRIBUTION_COLUMNS, "contributions"), excluded_rows


BALLOT_FRAME_COLUMNS = ["description", "date", "total", "dem", "rep", "other"]
TRANSACTION_DATASETS = ("expenditures", "contributions")


def normalize_ballot_returns(raw: pd.DataFrame) -> pd.DataFrame:
    df = _rename(raw, BALLOT_COLUMNS)
    df = ensure_columns(df, {"description": "", "date_raw": "", "total": "", "dem": "", "rep": "", "other": ""})
    df = coerce_str_safe(df, ["description"])
    for col in ["total", "dem", "rep", "other"]:
        df[col] = df[col].apply(parse_count).astype(int)

    def _row_date(raw_date: object, description: str) -> Optional[date]:
        parsed, ok = parse_date(raw_date)
        if ok:
            return parsed
        return date_in_text(description)

    df["date"] = pd.Series(
        [_row_date(d, desc) for d, desc in zip(df["date_raw"], df["description"])],
        index=df.index,
        dtype=object,
    )
    return df[BALLOT_FRAME_COLUMNS].reset_index(drop=True)


def parse_merge_overrides(raw: pd.DataFrame) -> Tuple[CommitteeMergeOverride, ...]:
    if raw.empty or not {"Filer_ID", "Canonical_Name"}.issubset(raw.columns):
        return ()
    df = coerce_str_safe(raw.copy(), ["Filer_ID", "Canonical_Name", "Label"])
    if "Label" not in df.columns:
        df["Label"] = df["Canonical_Name"]
    out: List[CommitteeMergeOverride] = []
    for name, group in df[df["Filer_ID"] != ""].groupby("Canonical_Name", sort=False):
        label = next((x for x in group["Label"] if x), name)
        out.append(CommitteeMergeOverride(label=label, filer_ids=tuple(group["Filer_ID"]), canonical_name=name))
    return tuple(out)


# ---------------- Loaders ----------------
@lru_cache(maxsize=16)
def _load_dataset_cached(dataset: str, path: str, mtime: float, excluded_form_types: Tuple[str, ...]) -> Dict[str, Any]:
    text = read_csv_text(Path(path), dataset)
    raw = parse_csv_text(text, dataset)
    if dataset == "expenditures":
        frame = normalize_expenditures(raw)
        out = {"frame": frame, "excluded_rows": 0}
    elif dataset == "contributions":
        frame, excluded_rows = normalize_contributions(raw, excluded_form_types)
        out = {"frame": frame, "excluded_rows": excluded_rows}
    else:
        frame = normalize_ballot_returns(raw)
        out = {"frame": frame, "excluded_rows": 0}
    out["raw_rows"] = int(len(raw))
    logger.info("Loaded %s: %d row(s) from %s", dataset, len(frame), path)
    return out


def load_dataset(dataset: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Load one dataset; raises ``DataLoadError`` on fetch/parse failure."""
    settings = settings or load_settings()
    path = settings.path_for(dataset)
    if not path.exists():
        raise DataLoadError(dataset, "fetch", f"file not found: {path}")
    return _load_dataset_cached(dataset, str(path), path.stat().st_mtime, settings.election.excluded_form_types)


def load_merge_overrides(settings: Optional[Settings] = None) -> Tuple[CommitteeMergeOverride, ...]:
    settings = settings or load_settings()
    path = settings.data_dir / MERGE_OVERRIDES_FILE
    if not path.exists():
        return DEFAULT_MERGE_OVERRIDES
    raw = parse_csv_text(read_csv_text(path, "merge_overrides"), "merge_overrides")
    return DEFAULT_MERGE_OVERRIDES + parse_merge_overrides(raw)


def load_dashboard_data(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Load every dataset, recording per-dataset failures instead of raising.

    Each dashboard page checks ``errors`` for the datasets it needs.
    """
    settings = settings or load_settings()
    ctx: Dict[str, Any] = {"settings": settings, "errors": {}, "files": [], "dq": {}}
    for dataset in settings.files:
        try:
            loaded = load_dataset(dataset, settings)
        except DataLoadError as exc:
            logger.error("Could not load %s (%s): %s", dataset, exc.kind, exc.message)
            ctx["errors"][dataset] = exc
            ctx[dataset] = transactions_frame([]) if dataset in TRANSACTION_DATASETS else pd.DataFrame(columns=BALLOT_FRAME_COLUMNS)
            continue
        ctx[dataset] = loaded["frame"]
        ctx["files"].append(settings.files[dataset])
        ctx["dq"][dataset] = {"raw_rows": loaded["raw_rows"], "excluded_rows": loaded["excluded_rows"]}
    try:
        ctx["merge_overrides"] = merge_override_index(load_merge_overrides(settings))
    except DataLoadError as exc:
        logger.error("Ignoring committee merge overrides: %s", exc.message)
        ctx["merge_overrides"] = merge_override_index(DEFAULT_MERGE_OVERRIDES)
    return ctx


def require_datasets(data_ctx: Dict[str, Any], datasets: Iterable[str]) -> None:
    errors = data_ctx.get("errors", {})
    for dataset in datasets:
        if dataset in errors:
            raise errors[dataset]


def available_entities(data_ctx: Dict[str, Any]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for dataset in ("expenditures", "contributions"):
        df: pd.DataFrame = data_ctx.get(dataset, pd.DataFrame())
        if df.empty or "receiving_entity" not in df.columns:
            out[dataset] = []
            continue
        seen: Dict[str, str] = {}
        for name in df["receiving_entity"]:
            key = normalize_name(name)
            if key and key not in seen:
                seen[key] = display_name(name)
        out[dataset] = sorted(seen.values(), key=str.casefold)
    return out


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Apply the shared filter selection to every loaded dataset."""
    from core.aggregate import filter_transactions, sort_transactions
    from core.dedupe import dedupe

    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)
    settings: Settings = data_ctx.get("settings") or load_settings()

    expenditures: pd.DataFrame = data_ctx.get("expenditures", pd.DataFrame())
    contributions_raw: pd.DataFrame = data_ctx.get("contributions", pd.DataFrame())
    contributions = dedupe(contributions_raw) if not contributions_raw.empty else contributions_raw

    entity = None if filt.selected_entity in {"", "All"} else filt.selected_entity

    filtered_expenditures = expenditures
    if not filtered_expenditures.empty:
        filtered_expenditures = filter_transactions(filtered_expenditures, entity=entity, query=filt.search_query)
        cands = {normalize_name(c) for c in filt.selected_candidates if c and c != "All"}
        if cands:
            cand_keys = filtered_expenditures["candidate"].apply(normalize_name)
            filtered_expenditures = filtered_expenditures[cand_keys.isin(cands)]
        filtered_expenditures = sort_transactions(filtered_expenditures, filt.sort_field, ascending=filt.sort_ascending)

    filtered_contributions = contributions
    if not filtered_contributions.empty:
        filtered_contributions = filter_transactions(filtered_contributions, entity=entity, query=filt.search_query)
        filtered_contributions = sort_transactions(filtered_contributions, filt.sort_field, ascending=filt.sort_ascending)

    return {
        "filters": filt,
        "settings": settings,
        "expenditures": expenditures,
        "filtered_expenditures": filtered_expenditures,
        "contributions_raw": contributions_raw,
        "contributions": contributions,
        "filtered_contributions": filtered_contributions,
        "ballots_primary": data_ctx.get("ballots_primary", pd.DataFrame()),
        "ballots_runoff": data_ctx.get("ballots_runoff", pd.DataFrame()),
        "merge_overrides": data_ctx.get("merge_overrides", {}),
        "dq": data_ctx.get("dq", {}),
        "errors": data_ctx.get("errors", {}),
    }
