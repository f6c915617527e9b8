"""Relevance scoring of provider candidates against the searched artist/title.

Points:
    artist       0-60  normalized similarity, fuzzy-variant probing below 0.7
    title        0-30  against the parenthesis-stripped search title
    rescue        +40  search artist matches the candidate *title*
    bonus        0-18  year, master, cover, electronic genre, strong artist

Scores are not clamped; values above 100 are valid.
"""

import math
import re
from dataclasses import dataclass

from loguru import logger

from .models import ELECTRONIC_GENRES, Candidate
from .normalize import (
    calculate_string_similarity,
    extract_parenthesis_info,
    generate_fuzzy_variants,
    normalize_artist_for_comparison,
)

log = logger.bind(stage="scoring")

RESCUE_THRESHOLD = 0.8
RESCUE_BONUS = 40

_MULTI_TITLE_SPLIT_RE = re.compile(r"[/+]|\s+&\s+|\s+and\s+")


@dataclass
class ResultScore:
    """Per-component breakdown of one candidate's score."""

    artist_similarity: float = 0.0
    artist_points: int = 0
    title_points: float = 0.0
    rescued: bool = False
    bonus: int = 0

    @property
    def total(self) -> int:
        raw = self.artist_points + self.title_points + self.bonus
        if self.rescued:
            raw += RESCUE_BONUS
        # Round half up
        return math.floor(raw + 0.5)


def artist_similarity(search_artist: str, result_artist: str) -> float:
    """Normalized artist similarity, probing fuzzy variants when below 0.7."""
    best = calculate_string_similarity(
        normalize_artist_for_comparison(result_artist),
        normalize_artist_for_comparison(search_artist),
    )
    if best >= 0.7 or not search_artist or not result_artist:
        return best

    result_variants = [
        normalize_artist_for_comparison(v) for v in generate_fuzzy_variants(result_artist)
    ]
    for sv in generate_fuzzy_variants(search_artist):
        sv_norm = normalize_artist_for_comparison(sv)
        for rv_norm in result_variants:
            sim = calculate_string_similarity(sv_norm, rv_norm)
            if sim > best:
                best = sim
    return best


def _artist_points(similarity: float) -> int:
    if similarity >= 0.85:
        return 60
    if similarity >= 0.7:
        return 50
    if similarity >= 0.5:
        return 30
    if similarity >= 0.4:
        return 15
    if similarity >= 0.3:
        return 5
    return 0


def _significant_words(text: str) -> list[str]:
    return [w for w in text.split() if len(w) > 2]


def _title_points(result_title: str, base_title: str, full_title: str) -> float:
    if not base_title or not result_title:
        return 0.0

    if result_title == base_title:
        return 30.0

    # "Track A / Track B" style double A-sides
    parts = [p.strip() for p in _MULTI_TITLE_SPLIT_RE.split(result_title)]
    if any(p == base_title or p == full_title for p in parts):
        return 30.0

    if base_title in result_title:
        return 25.0
    if result_title in base_title:
        return 20.0

    search_words = _significant_words(base_title)
    if not search_words:
        return 0.0
    result_words = result_title.split()
    matched = sum(
        1 for sw in search_words if any(rw in sw or sw in rw for rw in result_words)
    )
    return matched / len(search_words) * 15


def explain_score(candidate: Candidate, search_artist: str, search_title: str) -> ResultScore:
    """Score one candidate and return the component breakdown."""
    result = ResultScore()

    result.artist_similarity = artist_similarity(search_artist, candidate.artist or "")
    result.artist_points = _artist_points(result.artist_similarity)

    base_title = extract_parenthesis_info(search_title or "").base.lower()
    result_title = (candidate.title or "").lower()
    title_points = _title_points(result_title, base_title, (search_title or "").lower())

    # Cross-field rescue: the "artist" was really a release name that the
    # candidate carries as its title ("Release - Track" misparse)
    cross = calculate_string_similarity(
        normalize_artist_for_comparison(search_artist or ""),
        normalize_artist_for_comparison(candidate.title or ""),
    )
    result.rescued = cross >= RESCUE_THRESHOLD

    if not result.rescued:
        sim = result.artist_similarity
        if sim < 0.3:
            title_points = min(title_points, 3)
        elif sim < 0.5:
            title_points = min(title_points, 8)
        # Short, generic titles need strong artist confirmation
        if len(_significant_words(base_title)) <= 2 and sim < 0.6:
            title_points = min(title_points, 2)
    result.title_points = title_points

    bonus = 0
    if candidate.year:
        bonus += 2
    if candidate.type == "master":
        bonus += 2
    if candidate.cover_present:
        bonus += 1
    tags = {g.lower() for g in [*candidate.genres, *candidate.styles]}
    if tags & ELECTRONIC_GENRES:
        bonus += 3
    if result.artist_similarity >= 0.7 and base_title and base_title in result_title:
        bonus += 5
    if result.artist_similarity >= 0.85:
        bonus += 5
    result.bonus = bonus

    return result


def score_candidate(candidate: Candidate, search_artist: str, search_title: str) -> int:
    """Integer relevance score of one candidate (no upper clamp)."""
    return explain_score(candidate, search_artist, search_title).total


def score_results(
    candidates: list[Candidate],
    search_artist: str,
    search_title: str,
) -> list[Candidate]:
    """Score each candidate in place. Returns them sorted by score, descending."""
    log.debug(
        f"Scoring {len(candidates)} candidates against "
        f"artist={search_artist!r} title={search_title!r}"
    )

    for c in candidates:
        c.score = score_candidate(c, search_artist, search_title)

    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)

    if ranked:
        best = ranked[0]
        log.debug(f"Best match: {best.artist!r} - {best.title!r} score={best.score}")

    return ranked
