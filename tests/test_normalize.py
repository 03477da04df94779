import pytest

from core.normalize import (
    CommitteeMergeOverride,
    clean_whitespace,
    display_name,
    full_name,
    merge_override_index,
    normalize_name,
    resolve_committee,
)


@pytest.mark.parametrize(
    "variant",
    [
        "Working Families Council",
        "  working   families council ",
        "WORKING FAMILIES COUNCIL.",
        "working families, council",
    ],
)
def test_case_punctuation_whitespace_variants_share_key(variant):
    assert normalize_name(variant) == "WORKING FAMILIES COUNCIL"


def test_leading_and_trailing_article_collapse():
    a = normalize_name("Lincoln Club of San Diego County, The")
    b = normalize_name("THE LINCOLN CLUB OF SAN DIEGO COUNTY")
    assert a == b == "LINCOLN CLUB OF SAN DIEGO COUNTY"


def test_known_variants_map_to_one_key_and_label():
    assert normalize_name("Democratic Party of San Diego County") == normalize_name("SD County Democratic Party")
    assert display_name("democratic party of san diego county") == "San Diego County Democratic Party"
    assert display_name("THE LINCOLN CLUB OF SAN DIEGO COUNTY") == "Lincoln Club of San Diego County"


def test_empty_and_none_are_total():
    assert normalize_name("") == ""
    assert normalize_name(None) == ""
    assert normalize_name("   ") == ""
    assert display_name(None) == ""


def test_display_name_title_case_keeps_acronyms():
    assert display_name("SAN DIEGO FIREFIGHTERS PAC", title_case=True) == "San Diego Firefighters PAC"
    assert display_name("jane   doe", title_case=True) == "Jane Doe"
    # Display differs cosmetically but the key is shared.
    assert normalize_name("SAN DIEGO FIREFIGHTERS PAC") == normalize_name("San Diego Firefighters PAC")


def test_clean_whitespace_and_full_name():
    assert clean_whitespace("  a \t b\n c ") == "a b c"
    assert full_name(" Jane ", "Doe") == "Jane Doe"
    assert full_name("", "Lincoln Club") == "Lincoln Club"
    assert full_name(None, None) == ""


def test_resolve_committee_applies_named_override_only_on_filer_id_match():
    override = CommitteeMergeOverride(
        label="McCann committees",
        filer_ids=("1470002", "1470003"),
        canonical_name="McCann for Supervisor 2025",
    )
    index = merge_override_index([override])
    assert resolve_committee("Taxpayers for McCann", "1470003", index) == "McCann for Supervisor 2025"
    assert resolve_committee("Taxpayers for McCann", "9999999", index) == "Taxpayers for McCann"
    assert resolve_committee("Taxpayers for McCann", "", index) == "Taxpayers for McCann"
    assert resolve_committee("Taxpayers for McCann", "1470003", None) == "Taxpayers for McCann"


@pytest.mark.parametrize(
    "a, b",
    [
        ("Co-op Alliance", "Coop Alliance"),
        ("A/B PAC", "AB PAC"),
        ("Yes_On_A", "YesOnA"),
    ],
)
def test_joining_punctuation_is_stripped_from_key(a, b):
    assert normalize_name(a) == normalize_name(b)
