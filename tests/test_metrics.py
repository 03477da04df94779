from datetime import date

import pytest

from core.data import available_entities, load_dashboard_data, prepare_context
from core.filters import normalize_filters
from core.metrics_ballots import compute_ballot_returns
from core.metrics_contributions import compute_contributions
from core.metrics_debug import compute_debug
from core.metrics_expenditures import compute_expenditures


def _page(compute, raw_filters=None):
    filters = normalize_filters(raw_filters or {})
    ctx = prepare_context(filters, load_dashboard_data())
    return compute(filters, ctx)


def test_expenditures_kpis_and_candidates(data_dir):
    out = _page(compute_expenditures)
    assert out["kpis"]["total_spending"] == pytest.approx(23500.5)
    assert out["kpis"]["transactions"] == 4
    assert out["kpis"]["organizations"] == 2
    aguirre, mccann = out["candidates"]
    assert aguirre["name"] == "Paloma Aguirre"
    assert aguirre["support"] == pytest.approx(8000.0)
    assert aguirre["oppose"] == pytest.approx(5500.5)
    assert mccann["support"] == pytest.approx(10000.0)
    assert mccann["oppose"] == 0.0
    assert mccann["color"] == "#C0392B"
    assert "candidate_support_oppose" in out["charts"]


def test_expenditures_top_spenders_merge_name_variants(data_dir):
    out = _page(compute_expenditures)
    assert [(r["rank"], r["name"], r["total_amount"]) for r in out["top_spenders"]] == [
        (1, "Lincoln Club of San Diego County", 15500.5),
        (2, "Working Families Council", 8000.0),
    ]


def test_expenditures_entity_filter_hides_ranking(data_dir):
    out = _page(compute_expenditures, {"selected_entity": "Working Families Council"})
    assert out["top_spenders"] == []
    assert out["kpis"]["transactions"] == 2
    assert out["kpis"]["total_spending"] == pytest.approx(8000.0)


def test_expenditures_search_and_sort(data_dir):
    out = _page(compute_expenditures, {"search_query": "MAILER"})
    assert [r["description"] for r in out["table"]] == ["Mailer"]

    out = _page(compute_expenditures, {"sort_field": "amount", "sort_ascending": True})
    assert [r["amount"] for r in out["table"]] == [0.0, 5500.5, 8000.0, 10000.0]

    out = _page(compute_expenditures, {"sort_field": "date", "sort_ascending": True})
    assert [r["date"] for r in out["table"]] == [
        date(2025, 6, 1),
        date(2025, 6, 2),
        date(2025, 6, 5),
        "not a date",
    ]


def test_expenditures_candidate_filter(data_dir):
    out = _page(compute_expenditures, {"selected_candidates": ["John McCann"]})
    assert out["kpis"]["transactions"] == 1
    assert out["kpis"]["total_spending"] == pytest.approx(10000.0)


def test_contributions_dedupe_and_rankings(data_dir):
    out = _page(compute_contributions)
    kpis = out["kpis"]
    assert kpis["contributions"] == 4
    assert kpis["duplicates_removed"] == 1
    assert kpis["total_raised"] == pytest.approx(2400.0)
    assert kpis["contributors"] == 3
    assert [(r["name"], r["total_amount"]) for r in out["top_contributors"]] == [
        ("Lincoln Club of San Diego County", 1500.0),
        ("John Smith", 500.0),
        ("Jane Doe", 400.0),
    ]
    assert [(r["name"], r["total_amount"]) for r in out["committees"]] == [
        ("McCann for Supervisor 2025", 2000.0),
        ("Aguirre for Supervisor 2025", 400.0),
    ]
    assert sorted(r["id"] for r in out["table"]) == ["T1", "T2", "T4", "T5"]
    assert {"top_contributors", "top_committees"} <= set(out["charts"])


def test_contributions_top_n_truncates_rankings_only(data_dir):
    out = _page(compute_contributions, {"top_n": 1})
    assert len(out["top_contributors"]) == 1
    assert len(out["committees"]) == 2


def test_contributions_merge_override_from_data_dir(data_dir):
    (data_dir / "committee_merge_overrides.csv").write_text(
        "Filer_ID,Canonical_Name,Label\n"
        "1470001,Supervisor Race Committees,All committees\n"
        "1470002,Supervisor Race Committees,\n",
        encoding="utf-8",
    )
    out = _page(compute_contributions)
    assert [(r["name"], r["total_amount"]) for r in out["committees"]] == [("Supervisor Race Committees", 2400.0)]


def test_contributions_empty_filter_result(data_dir):
    out = _page(compute_contributions, {"search_query": "nobody at all"})
    assert out["kpis"]["contributions"] == 0
    assert out["kpis"]["duplicates_removed"] == 1
    assert out["top_contributors"] == []
    assert out["table"] == []


def test_ballot_returns_stats_batches_and_alignment(data_dir):
    out = _page(compute_ballot_returns)
    assert out["available"] is True
    runoff = out["stats"]["runoff"]
    assert runoff["registered"] == 10000
    assert runoff["returned"] == 2500
    assert runoff["turnout_rate"] == pytest.approx(25.0)
    assert runoff["party_share"]["dem"] == pytest.approx(40.0)
    assert out["stats"]["primary"]["turnout_rate"] == pytest.approx(30.0)

    batches = out["batches"]["runoff"]
    assert [b["total_change"] for b in batches] == [1500, 1000]
    assert batches[1]["party_change"] == {"dem": 400, "rep": 400, "other": 200}

    assert out["comparison"]["offsets"] == [7, 6, 5, 4, 3, 2, 1]
    runoff_series = out["comparison"]["series"]["Runoff"]
    assert [p is not None for p in runoff_series] == [True, False, True, False, False, False, False]
    assert {"runoff_batches", "turnout_comparison"} <= set(out["charts"])


def test_ballot_returns_without_batches_is_unavailable(data_dir):
    (data_dir / "ballot_returns_runoff.csv").write_text(
        'Description,Total,Dem,Rep,Other (Not DEM or REP)\nRegistration,"10,000","4,000","3,500","2,500"\n',
        encoding="utf-8",
    )
    out = _page(compute_ballot_returns)
    assert out["available"] is False
    assert out["stats"]["runoff"] is None
    assert out["batches"]["runoff"] == []


def test_debug_cleaning_checks(data_dir):
    out = _page(compute_debug)
    assert out["row_counts"] == {
        "expenditure_rows": 4,
        "contribution_rows": 5,
        "contribution_rows_deduped": 4,
        "ballot_primary_rows": 4,
        "ballot_runoff_rows": 3,
    }
    checks = out["cleaning_checks"]
    assert checks["contributions_excluded_form_type"] == 1
    assert checks["contributions_duplicates_removed"] == 1
    assert checks["expenditures"] == {"unparsable_amounts": 1, "unparsable_dates": 1, "blank_entities": 0}
    assert out["load_errors"] == {}
    assert out["unparsable_samples"] == [
        {"dataset": "expenditures", "id": "", "date": "not a date", "amount": 0.0, "entity": "Working Families Council"}
    ]


def test_debug_reports_load_errors(data_dir):
    (data_dir / "ballot_returns_primary.csv").unlink()
    out = _page(compute_debug)
    assert out["load_errors"]["ballots_primary"]["kind"] == "fetch"
    assert out["row_counts"]["ballot_primary_rows"] == 0


def test_available_entities_collapse_variants(data_dir):
    entities = available_entities(load_dashboard_data())
    assert entities["expenditures"] == ["Lincoln Club of San Diego County", "Working Families Council"]
    assert entities["contributions"] == ["Aguirre for Supervisor 2025", "McCann for Supervisor 2025"]


def test_candidate_filter_matches_card_spelling_variants(data_dir):
    with (data_dir / "expenditures.csv").open("a", encoding="utf-8") as fh:
        fh.write("Neighbors PAC,06/10/2025,Mailer,$250,PALOMA AGUIRRE,Support\n")
    everyone = _page(compute_expenditures)
    card = next(c for c in everyone["candidates"] if c["name"] == "Paloma Aguirre")

    out = _page(compute_expenditures, {"selected_candidates": ["Paloma Aguirre"]})
    assert out["kpis"]["transactions"] == 4
    assert out["kpis"]["total_spending"] == pytest.approx(card["total"])
    assert out["kpis"]["total_spending"] == pytest.approx(13750.5)
