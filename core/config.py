from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple


REPO_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = REPO_DIR / "data"

DATASET_FILES: Dict[str, str] = {
    "expenditures": "expenditures.csv",
    "contributions": "contributions.csv",
    "ballots_primary": "ballot_returns_primary.csv",
    "ballots_runoff": "ballot_returns_runoff.csv",
}
MERGE_OVERRIDES_FILE = "committee_merge_overrides.csv"


@dataclass(frozen=True)
class Candidate:
    name: str
    party: str
    color: str


@dataclass(frozen=True)
class ElectionSettings:
    name: str = "San Diego County Supervisor District 1 Runoff"
    runoff_date: date = date(2025, 7, 1)
    primary_date: date = date(2025, 4, 8)
    candidates: Tuple[Candidate, ...] = (
        Candidate("Paloma Aguirre", "dem", "#2E86C1"),
        Candidate("John McCann", "rep", "#C0392B"),
    )
    excluded_form_types: Tuple[str, ...] = ("F497P2",)
    top_n: int = 10

    @property
    def candidate_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.candidates)


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    files: Dict[str, str] = field(default_factory=lambda: dict(DATASET_FILES))
    election: ElectionSettings = field(default_factory=ElectionSettings)
    log_level: str = "INFO"

    def path_for(self, dataset: str) -> Path:
        if dataset not in self.files:
            raise KeyError(f"unknown dataset: {dataset!r}")
        return self.data_dir / self.files[dataset]


def _env_date(name: str, default: date) -> date:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return date.fromisoformat(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring %s=%r (expected YYYY-MM-DD)", name, raw)
        return default


def load_settings() -> Settings:
    """Build settings from defaults plus ``DASHBOARD_*`` environment overrides.

    Read on every call so tests and long-running processes pick up changes.
    """
    data_dir = Path(os.getenv("DASHBOARD_DATA_DIR") or DEFAULT_DATA_DIR)
    defaults = ElectionSettings()
    election = ElectionSettings(
        runoff_date=_env_date("DASHBOARD_RUNOFF_DATE", defaults.runoff_date),
        primary_date=_env_date("DASHBOARD_PRIMARY_DATE", defaults.primary_date),
    )
    log_level = (os.getenv("DASHBOARD_LOG_LEVEL") or "INFO").strip().upper()
    return Settings(data_dir=data_dir, election=election, log_level=log_level)


_LOGGING_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a single stream handler for entrypoints (API / Streamlit). Idempotent."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    level_name = (level or load_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    _LOGGING_CONFIGURED = True
