"""Core enums, constants, and data types for the match engine.

Enums:
    StrategyType   -- Shape of one search attempt (release, track, query, ...).
    SearchType     -- Catalog scope for a search (master, release, all).
    ErrorCategory  -- Provider failure classification (transient, permanent).

Dataclasses:
    SearchStrategy -- One parametrized query attempt against one provider.
    Candidate      -- A release returned by a provider, with its relevance score.
    TrackCandidate -- One entry of a release tracklist.
    RankedTrack    -- A TrackCandidate with its match score and breakdown.
    SearchRun      -- Summary of one orchestrator run.
"""

from dataclasses import dataclass, field
from enum import StrEnum


class StrategyType(StrEnum):
    RELEASE = "release"
    TRACK = "track"
    QUERY = "query"
    EXACT = "exact"
    FUZZY = "fuzzy"
    SWAP = "swap"


class SearchType(StrEnum):
    MASTER = "master"
    RELEASE = "release"
    ALL = "all"


class ErrorCategory(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


# Provider ids
DISCOGS = "discogs"
MUSICBRAINZ = "musicbrainz"
KNOWLEDGE = "knowledge"

# Orchestrator limits. BATCH_SIZE is tied to the provider rate budget
# (60 requests/minute), not a tuning knob.
MAX_STRATEGIES = 15
BATCH_SIZE = 4
DEFAULT_BATCH_DELAY = 4.0

# Early-stop thresholds
EXCELLENT_SCORE = 90
STRONG_SCORE = 70
GOOD_SCORE = 50
MIN_RESULTS_FOR_GOOD = 3

# External confidence at or above which the typo-fix tier is skipped
HIGH_CONFIDENCE = 0.8

# Track selection floor
MIN_TRACK_SCORE = 30

ELECTRONIC_GENRES: frozenset[str] = frozenset(
    {
        "electronic",
        "techno",
        "house",
        "trance",
        "dance",
        "hardcore",
        "gabber",
        "makina",
    }
)


@dataclass(frozen=True)
class SearchStrategy:
    """One search attempt. Priority is fixed at generation time."""

    type: StrategyType
    artist: str
    title: str
    search_type: SearchType
    description: str
    priority: int
    source: str = DISCOGS
    tier: int = 0

    @property
    def dedup_key(self) -> str:
        return f"{self.type}:{self.artist}:{self.title}:{self.search_type}:{self.source}"


@dataclass
class TrackCandidate:
    position: str
    title: str
    duration: str = ""
    artists: list[str] = field(default_factory=list)
    type: str = "track"


@dataclass
class ScoreBreakdown:
    title_score: float = 0.0
    version_score: float = 0.0
    duration_score: float = 0.0

    @property
    def total(self) -> float:
        return self.title_score + self.version_score + self.duration_score


@dataclass
class RankedTrack:
    track: TrackCandidate
    score: float
    breakdown: ScoreBreakdown

    @property
    def position(self) -> str:
        return self.track.position

    @property
    def title(self) -> str:
        return self.track.title

    def to_dict(self) -> dict:
        return {
            "position": self.track.position,
            "title": self.track.title,
            "duration": self.track.duration,
            "artists": list(self.track.artists),
            "score": round(self.score, 2),
            "scoreBreakdown": {
                "titleScore": round(self.breakdown.title_score, 2),
                "versionScore": round(self.breakdown.version_score, 2),
                "durationScore": round(self.breakdown.duration_score, 2),
            },
        }


@dataclass
class Candidate:
    """A release record returned by a provider.

    ``id`` is only unique within ``source``; use ``key`` for identity.
    """

    id: str
    title: str
    artist: str = ""
    source: str = DISCOGS
    year: int | None = None
    type: str | None = None
    cover_present: bool = False
    genres: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    tracklist: list[TrackCandidate] | None = None
    score: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.id)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "source": self.source,
            "year": self.year,
            "type": self.type,
            "coverPresent": self.cover_present,
            "genres": list(self.genres),
            "styles": list(self.styles),
            "score": self.score,
        }
        if self.tracklist is not None:
            data["tracklist"] = [
                {
                    "position": t.position,
                    "title": t.title,
                    "duration": t.duration,
                    "artists": list(t.artists),
                    "type": t.type,
                }
                for t in self.tracklist
            ]
        return data


@dataclass
class SearchRun:
    """Result summary from one orchestrator run."""

    candidates: list[Candidate] = field(default_factory=list)
    strategies_run: int = 0
    batches_run: int = 0
    failures: int = 0
    stopped_early: bool = False

    @property
    def top_score(self) -> int:
        return self.candidates[0].score if self.candidates else 0
