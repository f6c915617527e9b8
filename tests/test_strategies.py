"""Tests for strategies.py -- tiered strategy generation."""

from tagfixer.models import SearchType, StrategyType
from tagfixer.strategies import (
    TIER_BASE_TITLE,
    TIER_DIRECT,
    TIER_SWAP,
    TIER_TYPO_FIX,
    drop_typo_fix_tier,
    generate_strategies,
)


class TestDirectTier:
    def test_first_four_shapes(self):
        strategies = generate_strategies("Prodigy", "Firestarter")
        first = strategies[:4]
        assert [(s.type, s.artist, s.title, s.search_type) for s in first] == [
            (StrategyType.QUERY, "", "Prodigy - Firestarter", SearchType.ALL),
            (StrategyType.QUERY, "", "Prodigy Firestarter", SearchType.ALL),
            (StrategyType.TRACK, "Prodigy", "Firestarter", SearchType.ALL),
            (StrategyType.RELEASE, "Prodigy", "Firestarter", SearchType.MASTER),
        ]
        assert all(s.tier == TIER_DIRECT for s in first)

    def test_typo_fix_follows_direct(self):
        strategies = generate_strategies("Prodigy", "Firestarter")
        typo = [s for s in strategies if s.tier == TIER_TYPO_FIX]
        assert typo
        assert typo[0].title == "Prodigie Firestarter"
        assert min(s.priority for s in typo) > max(s.priority for s in strategies[:4])


class TestOrdering:
    def test_priorities_strictly_increasing(self):
        strategies = generate_strategies("Prodigy", "Firestarter (Remix)")
        priorities = [s.priority for s in strategies]
        assert priorities == sorted(priorities)
        assert len(set(priorities)) == len(priorities)

    def test_no_duplicate_keys(self):
        strategies = generate_strategies("DJ Karrion", "Rock This Place (H.Seral V.)")
        keys = [s.dedup_key for s in strategies]
        assert len(keys) == len(set(keys))

    def test_expected_count(self):
        # 4 direct + 3 typo-fix + 2 artist + 2 master + 4 broad + 2 release + 1 swap
        assert len(generate_strategies("Prodigy", "Firestarter")) == 18

    def test_swap_is_last(self):
        last = generate_strategies("Prodigy", "Firestarter (Remix)")[-1]
        assert last.type == StrategyType.SWAP
        assert last.tier == TIER_SWAP
        assert last.artist == "Firestarter"
        assert last.title == "Prodigy"


class TestBaseTitleTier:
    def test_present_when_title_has_mix(self):
        strategies = generate_strategies("Prodigy", "Firestarter (Remix)")
        base = [s for s in strategies if s.tier == TIER_BASE_TITLE]
        assert [s.title for s in base[:2]] == ["Prodigy - Firestarter", "Prodigy Firestarter"]

    def test_absent_for_plain_title(self):
        strategies = generate_strategies("Prodigy", "Firestarter")
        assert not [s for s in strategies if s.tier == TIER_BASE_TITLE]


class TestPartialInput:
    def test_both_empty(self):
        assert generate_strategies("", "") == []
        assert generate_strategies("  ", "") == []

    def test_title_only(self):
        strategies = generate_strategies("", "Firestarter")
        assert [(s.type, s.title) for s in strategies] == [
            (StrategyType.TRACK, "Firestarter"),
            (StrategyType.QUERY, "Firestarter"),
        ]

    def test_artist_only_never_empty(self):
        strategies = generate_strategies("Prodigy", "")
        assert strategies
        assert all(s.artist or s.title for s in strategies)
        assert not [s for s in strategies if s.type == StrategyType.SWAP]


class TestSources:
    def test_each_strategy_per_source(self):
        strategies = generate_strategies("Prodigy", "Firestarter", ("discogs", "musicbrainz"))
        assert len(strategies) == 36
        assert (strategies[0].source, strategies[1].source) == ("discogs", "musicbrainz")
        assert strategies[0].title == strategies[1].title


class TestDropTypoFixTier:
    def test_removes_tier_without_renumbering(self):
        strategies = generate_strategies("Prodigy", "Firestarter")
        kept = drop_typo_fix_tier(strategies)
        assert not [s for s in kept if s.tier == TIER_TYPO_FIX]
        assert len(kept) == len(strategies) - 3
        # Priorities keep their original values, leaving a gap
        assert kept[4].priority == strategies[7].priority
