from core.filters import DashboardFilters, normalize_filters


def test_defaults():
    f = normalize_filters({})
    assert f == DashboardFilters()
    assert f.sort_field == "date"
    assert f.sort_ascending is False
    assert f.top_n == 10


def test_unknown_entity_falls_back_to_all():
    f = normalize_filters({"selected_entity": "Nobody PAC"}, available_entities=["Working Families Council"])
    assert f.selected_entity == "All"


def test_entity_variant_is_accepted():
    f = normalize_filters(
        {"selected_entity": "THE LINCOLN CLUB OF SAN DIEGO COUNTY"},
        available_entities=["Lincoln Club of San Diego County"],
    )
    assert f.selected_entity == "THE LINCOLN CLUB OF SAN DIEGO COUNTY"


def test_sort_field_and_top_n_are_sanitized():
    f = normalize_filters({"sort_field": "DROP TABLE", "top_n": "9999", "sort_ascending": True})
    assert f.sort_field == "date"
    assert f.top_n == 200
    assert f.sort_ascending is True
    assert normalize_filters({"top_n": 0}).top_n == 1
    assert normalize_filters({"top_n": "ten"}).top_n == 10


def test_candidate_and_query_cleanup():
    f = normalize_filters({"selected_candidates": ["All", " John McCann ", ""], "search_query": "  mailer "})
    assert f.selected_candidates == ["John McCann"]
    assert f.search_query == "mailer"
    assert normalize_filters({"selected_candidates": "Paloma Aguirre"}).selected_candidates == ["Paloma Aguirre"]
