"""Name canonicalization for contributors, committees and spending organizations.

Two modes are kept separate:

- ``normalize_name`` produces the grouping key used for every equality check.
- ``display_name`` produces the label shown to users.

All cosmetic variants of one entity share a key; their labels may differ.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Tuple

_WS_RE = re.compile(r"\s+")
_JOINER_RE = re.compile(r"[-/_]+")
_PUNCT_RE = re.compile(r"[^\w\s]")
_LEADING_ARTICLE_RE = re.compile(r"^THE\s+")
_TRAILING_ARTICLE_RE = re.compile(r"\s+THE$")

# Canonical display -> spellings seen in filings.
KNOWN_NAME_VARIANTS: Dict[str, Tuple[str, ...]] = {
    "Lincoln Club of San Diego County": (
        "Lincoln Club of San Diego County, The",
        "The Lincoln Club of San Diego County",
        "Lincoln Club of SD County",
        "Lincoln Club of San Diego Co.",
    ),
    "San Diego County Democratic Party": (
        "Democratic Party of San Diego County",
        "San Diego County Democratic Party",
        "SD County Democratic Party",
    ),
    "Republican Party of San Diego County": (
        "San Diego County Republican Party",
        "Republican Party of San Diego County",
        "SD County Republican Party",
    ),
}

_ACRONYMS = {"PAC", "LLC", "LP", "SD", "CA", "USA", "II", "III", "IV", "IBEW", "SEIU", "UFCW", "IE", "AFSCME"}
_MINOR_WORDS = {"of", "the", "and", "for", "in", "on", "a", "an", "to"}


def clean_whitespace(raw: object) -> str:
    if raw is None:
        return ""
    return _WS_RE.sub(" ", str(raw)).strip()


def _base_key(raw: object) -> str:
    s = clean_whitespace(raw).upper()
    s = _JOINER_RE.sub("", s)
    s = _PUNCT_RE.sub("", s)
    s = _WS_RE.sub(" ", s).strip()
    s = _LEADING_ARTICLE_RE.sub("", s)
    s = _TRAILING_ARTICLE_RE.sub("", s)
    return s


def _build_variant_index(variants: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for canonical, spellings in variants.items():
        index[_base_key(canonical)] = canonical
        for spelling in spellings:
            index[_base_key(spelling)] = canonical
    return index


_VARIANT_INDEX = _build_variant_index(KNOWN_NAME_VARIANTS)


def normalize_name(raw: object) -> str:
    """Grouping key: punctuation stripped, whitespace collapsed, upper-cased.

    A leading "The" and a trailing ", The" are dropped, and spellings from
    ``KNOWN_NAME_VARIANTS`` collapse onto their canonical entity.
    """
    key = _base_key(raw)
    canonical = _VARIANT_INDEX.get(key)
    if canonical is not None:
        return _base_key(canonical)
    return key


def _title_word(word: str, first: bool) -> str:
    bare = _PUNCT_RE.sub("", word).upper()
    if bare in _ACRONYMS:
        return word.upper()
    lower = word.lower()
    if not first and lower in _MINOR_WORDS:
        return lower
    return "-".join(part[:1].upper() + part[1:] for part in lower.split("-"))


def display_name(raw: object, *, title_case: bool = False) -> str:
    cleaned = clean_whitespace(raw)
    if not cleaned:
        return ""
    canonical = _VARIANT_INDEX.get(_base_key(cleaned))
    if canonical is not None:
        return canonical
    if not title_case:
        return cleaned
    words = cleaned.split(" ")
    return " ".join(_title_word(w, i == 0) for i, w in enumerate(words))


def full_name(first: object, last: object) -> str:
    parts = [clean_whitespace(first), clean_whitespace(last)]
    return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class CommitteeMergeOverride:
    """Two or more filer IDs that report as one committee."""

    label: str
    filer_ids: Tuple[str, ...]
    canonical_name: str


DEFAULT_MERGE_OVERRIDES: Tuple[CommitteeMergeOverride, ...] = ()


def merge_override_index(overrides: Iterable[CommitteeMergeOverride]) -> Dict[str, CommitteeMergeOverride]:
    index: Dict[str, CommitteeMergeOverride] = {}
    for ov in overrides:
        for fid in ov.filer_ids:
            fid = clean_whitespace(fid)
            if fid:
                index[fid] = ov
    return index


def resolve_committee(
    name: object,
    filer_id: object = None,
    overrides: Optional[Mapping[str, CommitteeMergeOverride]] = None,
) -> str:
    """Display name for a receiving committee, honouring explicit merge overrides."""
    fid = clean_whitespace(filer_id)
    if overrides and fid and fid in overrides:
        return overrides[fid].canonical_name
    return display_name(name)
