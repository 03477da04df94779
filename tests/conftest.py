"""Shared fixtures: small CSV snapshots written to a per-test data directory.

The loader reads ``DASHBOARD_DATA_DIR`` on every call, so pointing it at the
test's temporary directory keeps tests hermetic.
"""

from __future__ import annotations

import os
import textwrap
from pathlib import Path
from typing import Dict

import pytest


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


EXPENDITURES_CSV = _dedent(
    """
    Entity,Date,Description,Amount,Candidate,Oppose/Support
    "Lincoln Club of San Diego County, The",06/01/2025,Mailer,"$10,000.00",John McCann,Support
    THE LINCOLN CLUB OF SAN DIEGO COUNTY,06/05/2025,Digital ads,"$5,500.50",Paloma Aguirre,Oppose
    Working Families Council,06/02/2025,Canvassing,"$8,000",Paloma Aguirre,Support
    Working Families Council,not a date,Phone bank,abc,Paloma Aguirre,Support
    """
)

CONTRIBUTIONS_CSV = _dedent(
    """
    Tran_ID,Tran_Date,Amount,Form_Type,Rec_Type,Entity_Nam L,Entity_Nam F,Filer_Nam L,Filer_ID
    ,06/01/2025,100,A,IND,Doe,Jane,Aguirre for Supervisor 2025,1470001
    T1,06/01/2025,100,A,IND,Doe,Jane,Aguirre for Supervisor 2025,1470001
    T2,06/03/2025,"1,500.00",A,COM,Lincoln Club of San Diego County,,McCann for Supervisor 2025,1470002
    T3,06/04/2025,250,F497P2,IND,Smith,John,McCann for Supervisor 2025,1470002
    T4,06/05/2025,500,A,IND,Smith,John,McCann for Supervisor 2025,1470002
    T5,06/06/2025,300,A,IND,DOE,JANE,Aguirre for Supervisor 2025,1470001
    """
)

BALLOTS_PRIMARY_CSV = _dedent(
    """
    Description,Total,Dem,Rep,Other (Not DEM or REP)
    Registration,"10,000","4,000","3,500","2,500"
    Returns as of 04/01/2025,"1,000",400,350,250
    Returns as of 04/04/2025,"2,000",800,700,500
    Returns as of 04/07/2025,"3,000","1,200","1,050",750
    """
)

BALLOTS_RUNOFF_CSV = _dedent(
    """
    Description,Total,Dem,Rep,Other (Not DEM or REP)
    Registration,"10,000","4,000","3,500","2,500"
    Returns as of 06/24/2025,"1,500",600,500,400
    Returns as of 06/26/2025,"2,500","1,000",900,600
    """
)

SAMPLE_FILES: Dict[str, str] = {
    "expenditures.csv": EXPENDITURES_CSV,
    "contributions.csv": CONTRIBUTIONS_CSV,
    "ballot_returns_primary.csv": BALLOTS_PRIMARY_CSV,
    "ballot_returns_runoff.csv": BALLOTS_RUNOFF_CSV,
}


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write the sample snapshots and point the loader at them."""
    root = tmp_path / "data"
    root.mkdir(parents=True, exist_ok=True)
    for name, text in SAMPLE_FILES.items():
        (root / name).write_text(text, encoding="utf-8")
    monkeypatch.setenv("DASHBOARD_DATA_DIR", os.fspath(root))
    monkeypatch.setenv("DASHBOARD_RUNOFF_DATE", "2025-07-01")
    monkeypatch.setenv("DASHBOARD_PRIMARY_DATE", "2025-04-08")
    return root
