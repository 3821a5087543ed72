"""
Unit tests for team name slugs, Nairobi date keys and identity grouping.

Run: pytest backend/tests/test_identity.py -v
"""
from __future__ import annotations

from datetime import datetime, timezone

from reliability.identity import (
    IdentityResolver,
    group_by_identity,
    identity_of,
    nairobi_date_key,
    slugify,
)
from shared.models.enums import SourceIdentity
from tests.conftest import make_report


# ── slugify ─────────────────────────────────────────────────────────────

def test_slugify_strips_suffix_noise() -> None:
    assert slugify("Arsenal FC") == "arsenal"
    assert slugify("Bournemouth AFC") == "bournemouth"


def test_slugify_strips_prefix_noise() -> None:
    assert slugify("Real Madrid") == "madrid"
    assert slugify("St. Mirren") == "mirren"
    assert slugify("Saint Etienne") == "etienne"


def test_slugify_keeps_words_that_contain_noise() -> None:
    assert slugify("Scunthorpe") == "scunthorpe"
    assert slugify("Stoke") == "stoke"


def test_slugify_folds_diacritics_and_punctuation() -> None:
    assert slugify("Atlético  Madrid") == "atletico-madrid"
    assert slugify("Brighton & Hove Albion") == "brighton-and-hove-albion"


def test_slugify_all_noise_name_is_not_empty() -> None:
    assert slugify("Real") == "real"


# ── Nairobi date key ────────────────────────────────────────────────────

def test_nairobi_date_key_crosses_utc_midnight() -> None:
    # 22:30 UTC is 01:30 the next day in Nairobi (UTC+3)
    assert nairobi_date_key(datetime(2024, 5, 11, 22, 30, tzinfo=timezone.utc)) == "2024-05-12"
    assert nairobi_date_key(datetime(2024, 5, 11, 20, 59, tzinfo=timezone.utc)) == "2024-05-11"


def test_nairobi_date_key_naive_is_utc() -> None:
    assert nairobi_date_key(datetime(2024, 5, 11, 21, 0)) == "2024-05-12"


# ── identity_of / grouping ──────────────────────────────────────────────

def test_identity_key_format() -> None:
    report = make_report(home="Arsenal FC", away="Chelsea FC")
    assert identity_of(report) == "arsenal-vs-chelsea-2024-05-11"


def test_name_variants_collapse_to_one_identity() -> None:
    reports = [
        make_report(SourceIdentity.BBC_SPORT, home="Arsenal FC", away="Chelsea FC"),
        make_report(SourceIdentity.BESOCCER, home="Arsenal", away="Chelsea"),
    ]
    groups = group_by_identity(reports)
    assert list(groups) == ["arsenal-vs-chelsea-2024-05-11"]
    assert len(groups["arsenal-vs-chelsea-2024-05-11"]) == 2


def test_grouping_preserves_first_seen_order() -> None:
    reports = [
        make_report(home="Everton", away="Fulham"),
        make_report(home="Arsenal", away="Chelsea"),
        make_report(SourceIdentity.FLASHSCORE, home="Everton", away="Fulham"),
    ]
    groups = group_by_identity(reports)
    assert list(groups) == ["everton-vs-fulham-2024-05-11", "arsenal-vs-chelsea-2024-05-11"]
    assert [r.source for r in groups["everton-vs-fulham-2024-05-11"]] == [
        SourceIdentity.BBC_SPORT,
        SourceIdentity.FLASHSCORE,
    ]


def test_builtin_alias_merges_abbreviation() -> None:
    resolver = IdentityResolver()
    a = make_report(home="Man Utd", away="Chelsea")
    b = make_report(home="Manchester United", away="Chelsea")
    assert resolver.identity_of(a) == resolver.identity_of(b) == "manchester-vs-chelsea-2024-05-11"


def test_stored_alias_overrides_builtin() -> None:
    resolver = IdentityResolver({"spurs": "tottenham", "tottenham-hotspur": "tottenham"})
    a = make_report(home="Spurs", away="Arsenal")
    b = make_report(home="Tottenham Hotspur", away="Arsenal")
    assert resolver.identity_of(a) == resolver.identity_of(b) == "tottenham-vs-arsenal-2024-05-11"


def test_unknown_variants_stay_separate() -> None:
    groups = IdentityResolver().group([
        make_report(home="Wolverhampton", away="Leeds"),
        make_report(home="Wanderers", away="Leeds"),
    ])
    assert len(groups) == 2
