"""Track matching within a chosen release's tracklist.

Each track is scored twice: once treating the searched title as the track
name, and once treating the searched *artist* as the track name (swapped
orientation, for files named "Release - Track"). The swapped score wins
only when it is higher and above SWAP_MIN_SCORE.
"""

import re

from loguru import logger

from .models import MIN_TRACK_SCORE, RankedTrack, ScoreBreakdown, TrackCandidate
from .normalize import (
    calculate_string_similarity,
    extract_parenthesis_info,
    normalize_title_for_matching,
)

log = logger.bind(stage="tracks")

SWAP_MIN_SCORE = 20

_VERSION_PUNCT_RE = re.compile(r"[.\-_]")


def parse_duration(text: str | None) -> int:
    """Parse "M:SS" or "H:MM:SS" into seconds. Returns 0 when unparseable."""
    if not text:
        return 0
    parts = text.strip().split(":")
    if len(parts) not in (2, 3):
        return 0
    try:
        values = [int(p) for p in parts]
    except ValueError:
        return 0
    if any(v < 0 for v in values):
        return 0
    seconds = 0
    for v in values:
        seconds = seconds * 60 + v
    return seconds


def _normalize_version(version: str) -> str:
    return " ".join(_VERSION_PUNCT_RE.sub("", version).split())


def _title_score(search_base: str, track_base: str) -> float:
    search_norm = normalize_title_for_matching(search_base)
    track_norm = normalize_title_for_matching(track_base)
    if not search_norm or not track_norm:
        return 0.0
    if search_norm == track_norm:
        return 40.0
    if search_norm in track_norm or track_norm in search_norm:
        return 30.0
    return calculate_string_similarity(search_norm, track_norm) * 25


def _version_score(search_version: str, track_version: str) -> float:
    if search_version and track_version:
        ns = _normalize_version(search_version)
        nt = _normalize_version(track_version)
        if ns == nt:
            return 50.0
        if ns in nt or nt in ns:
            return 40.0
        sim = calculate_string_similarity(ns, nt)
        return sim * 30 if sim > 0.5 else 0.0
    if search_version:
        return -10.0
    if track_version:
        return -5.0
    return 0.0


def _duration_score(duration_seconds: float | None, track_duration: str) -> float:
    if not duration_seconds or not track_duration:
        return 0.0
    track_seconds = parse_duration(track_duration)
    if track_seconds <= 0:
        return 0.0
    diff = abs(duration_seconds - track_seconds)
    if diff <= 3:
        return 10.0
    if diff <= 10:
        return 7.0
    if diff <= 20:
        return 4.0
    if diff <= 30:
        return 2.0
    return 0.0


def score_track(
    track: TrackCandidate,
    search_base: str,
    search_version: str,
    duration_seconds: float | None = None,
) -> ScoreBreakdown:
    """Score one track against a base title and version string."""
    parsed = extract_parenthesis_info(track.title)
    return ScoreBreakdown(
        title_score=_title_score(search_base, parsed.base),
        version_score=_version_score(search_version.lower(), parsed.mix_info.lower()),
        duration_score=_duration_score(duration_seconds, track.duration),
    )


def is_real_track(track: TrackCandidate) -> bool:
    """True for playable tracks (not headings/index entries) with title and position.

    A track with an empty position is skipped even when its type is "track",
    so a release whose only track lacks a position selects nothing.
    """
    return track.type == "track" and bool(track.title) and bool(track.position)


def rank_tracks(
    artist: str,
    title: str,
    tracklist: list[TrackCandidate],
    duration_seconds: float | None = None,
) -> list[RankedTrack]:
    """Score every real track of a release. Returns them best first."""
    search_title = extract_parenthesis_info(title or "")
    search_artist = extract_parenthesis_info(artist or "")

    ranked: list[RankedTrack] = []
    for track in tracklist:
        if not is_real_track(track):
            continue

        breakdown = score_track(
            track, search_title.base, search_title.mix_info, duration_seconds
        )

        if search_artist.base:
            swapped = score_track(
                track, search_artist.base, search_artist.mix_info, duration_seconds
            )
            if swapped.total > breakdown.total and swapped.total > SWAP_MIN_SCORE:
                log.debug(
                    f"Track {track.position} {track.title!r}: swapped orientation "
                    f"wins ({swapped.total:.1f} > {breakdown.total:.1f})"
                )
                breakdown = swapped

        ranked.append(RankedTrack(track=track, score=breakdown.total, breakdown=breakdown))

    # Stable sort: equal scores keep tracklist order
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked


def select_track(
    artist: str,
    title: str,
    tracklist: list[TrackCandidate],
    duration_seconds: float | None = None,
) -> RankedTrack | None:
    """Pick the track to apply, or None when nothing is convincing.

    A release with exactly one real track is selected regardless of score.
    """
    ranked = rank_tracks(artist, title, tracklist, duration_seconds)
    if not ranked:
        return None

    if len(ranked) == 1:
        log.debug(f"Single-track release, selecting {ranked[0].title!r}")
        return ranked[0]

    best = ranked[0]
    if best.score >= MIN_TRACK_SCORE:
        return best

    log.debug(
        f"No track above {MIN_TRACK_SCORE} (best {best.title!r} = {best.score:.1f})"
    )
    return None
