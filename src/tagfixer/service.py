"""Match service: the entry point tying heuristics, search, and AI together.

find_matches flow:
    1. resolve_input     -- combine tag hints with the parsed filename
    2. knowledge lookup  -- a confirmed prior correction short-circuits
    3. orchestrator run  -- batched strategy search, ranked candidates
    4. AI fallback       -- once, when the heuristics or the results are weak;
                            a confident answer reruns the search and merges
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from loguru import logger

from . import ai
from .api.base import ProviderAdapter
from .config import MatcherConfig
from .errors import ConfigError
from .filename import HeuristicResult, detect_garbage, parse_filename, resolve_input
from .knowledge import KnowledgeLookup
from .models import DISCOGS, MUSICBRAINZ, Candidate, RankedTrack, SearchRun, TrackCandidate
from .orchestrator import SearchOrchestrator
from .tracks import rank_tracks, select_track

log = logger.bind(stage="service")


@dataclass
class MatchReport:
    """Everything one find_matches call produced, for callers that want more than the list."""

    candidates: list[Candidate] = field(default_factory=list)
    heuristic: HeuristicResult | None = None
    knowledge_hit: bool = False
    ai_parse: ai.AiParse | None = None
    runs: list[SearchRun] = field(default_factory=list)


def merge_candidates(*groups: list[Candidate]) -> list[Candidate]:
    """Concatenate, rank by score, and keep the best copy of each (source, id)."""
    merged = sorted(
        (c for group in groups for c in group), key=lambda c: c.score, reverse=True
    )
    seen: set[tuple[str, str]] = set()
    unique = []
    for c in merged:
        if c.key in seen:
            continue
        seen.add(c.key)
        unique.append(c)
    return unique


def build_providers(config: MatcherConfig) -> dict[str, ProviderAdapter]:
    """Instantiate a client for every configured source, in configured order."""
    from .api.discogs import DiscogsClient
    from .api.musicbrainz import MusicBrainzClient

    providers: dict[str, ProviderAdapter] = {}
    for source in config.source_list:
        if source == DISCOGS:
            providers[source] = DiscogsClient(
                token=config.discogs_token,
                consumer_key=config.discogs_consumer_key,
                consumer_secret=config.discogs_consumer_secret,
                user_agent=config.user_agent,
                timeout=config.provider_timeout,
            )
        elif source == MUSICBRAINZ:
            providers[source] = MusicBrainzClient(
                user_agent=config.user_agent,
                contact=config.musicbrainz_contact,
                timeout=config.provider_timeout,
            )
        else:
            raise ConfigError(f"Unknown source {source!r} (expected discogs or musicbrainz)")

    if not providers:
        raise ConfigError("No sources configured")
    return providers


class MatchService:
    """Find catalog matches for noisy artist/title input, and rank release tracks.

    ``knowledge`` and ``garbage_detector`` are optional collaborators; pass
    ``garbage_detector=lambda text: False`` to turn garbage detection off.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderAdapter],
        config: MatcherConfig | None = None,
        knowledge: KnowledgeLookup | None = None,
        ai_client=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        garbage_detector: Callable[[str], bool] = detect_garbage,
    ) -> None:
        self.config = config or MatcherConfig()
        self.providers = dict(providers)
        self.knowledge = knowledge
        self.garbage_detector = garbage_detector
        self.ai_client = ai_client
        self.orchestrator = SearchOrchestrator(
            self.providers,
            batch_delay=self.config.batch_delay,
            provider_timeout=self.config.provider_timeout,
            sleep=sleep,
        )

    @classmethod
    def from_config(
        cls,
        config: MatcherConfig,
        knowledge: KnowledgeLookup | None = None,
        garbage_detector: Callable[[str], bool] = detect_garbage,
    ) -> "MatchService":
        ai_client = None
        if config.ai_fallback:
            ai_client = ai.get_client(config.llm_base_url, config.llm_api_key)
        return cls(
            build_providers(config),
            config,
            knowledge=knowledge,
            ai_client=ai_client,
            garbage_detector=garbage_detector,
        )

    async def aclose(self) -> None:
        for provider in self.providers.values():
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "MatchService":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def match(
        self,
        artist: str = "",
        title: str = "",
        filename_hint: str = "",
        duration_seconds: float | None = None,
        external_confidence: float | None = None,
    ) -> MatchReport:
        """Run the full match flow and return the detailed report."""
        report = MatchReport()

        heuristic = resolve_input(filename_hint, artist, title, self.garbage_detector)
        report.heuristic = heuristic
        log.info(
            f"Input {filename_hint or f'{artist} - {title}'!r} -> "
            f"{heuristic.artist!r} - {heuristic.title!r} "
            f"(confidence {heuristic.confidence}, garbage={heuristic.has_garbage})"
        )
        if duration_seconds:
            log.debug(f"File duration: {duration_seconds:.0f}s")

        if not heuristic.artist and not heuristic.title:
            log.info("No artist or title could be resolved, skipping search")
            return report

        if self.knowledge is not None:
            hit = self.knowledge.lookup(heuristic.artist, heuristic.title, filename_hint)
            if hit is not None:
                report.knowledge_hit = True
                report.candidates = [hit]
                return report

        run = await self.orchestrator.run(
            heuristic.artist, heuristic.title, external_confidence
        )
        report.runs.append(run)
        report.candidates = run.candidates

        if self._should_try_ai(heuristic, run):
            parsed = await asyncio.to_thread(
                ai.parse_filename,
                self.ai_client,
                self.config.llm_model,
                filename_hint,
                heuristic.artist,
                heuristic.title,
            )
            report.ai_parse = parsed
            if parsed and parsed.confidence > ai.MIN_AI_CONFIDENCE and parsed.artist and parsed.title:
                log.info(
                    f"AI suggests {parsed.artist!r} - {parsed.title!r} "
                    f"(confidence {parsed.confidence:.2f}), searching again"
                )
                ai_run = await self.orchestrator.run(
                    parsed.artist, parsed.title, parsed.confidence
                )
                report.runs.append(ai_run)
                report.candidates = merge_candidates(run.candidates, ai_run.candidates)
            elif parsed:
                log.info(f"AI answer not confident enough ({parsed.confidence:.2f}), ignored")

        return report

    def _should_try_ai(self, heuristic: HeuristicResult, run: SearchRun) -> bool:
        if self.ai_client is None or not self.config.ai_fallback:
            return False
        if not ai.needs_fallback(heuristic.confidence, heuristic.has_garbage, run.candidates):
            return False
        # Every call failed: the providers are down, a new query will not help
        if run.strategies_run and run.failures == run.strategies_run:
            log.warning("Skipping AI fallback: every provider call failed")
            return False
        log.info(
            f"Triggering AI fallback: confidence={heuristic.confidence} "
            f"garbage={heuristic.has_garbage} best={run.top_score}"
        )
        return True

    async def find_matches(
        self,
        artist: str = "",
        title: str = "",
        filename_hint: str = "",
        duration_seconds: float | None = None,
        external_confidence: float | None = None,
    ) -> list[Candidate]:
        """Ranked, deduplicated candidates for one file. Empty input gives []."""
        report = await self.match(
            artist, title, filename_hint, duration_seconds, external_confidence
        )
        return report.candidates

    def _track_query(self, artist: str, title: str, filename_hint: str) -> tuple[str, str]:
        # A clean filename parse beats tags that may still carry "(A2)" or dates
        if filename_hint:
            parsed_artist, parsed_title = parse_filename(filename_hint)
            if parsed_artist and parsed_title:
                log.debug(
                    f"Track query {artist!r} - {title!r} refined to "
                    f"{parsed_artist!r} - {parsed_title!r}"
                )
                return parsed_artist, parsed_title
        return artist, title

    def rank_tracks(
        self,
        artist: str,
        title: str,
        tracklist: list[TrackCandidate],
        duration_seconds: float | None = None,
        filename_hint: str = "",
    ) -> list[RankedTrack]:
        """Rank a release's tracks against the file, best first."""
        artist, title = self._track_query(artist, title, filename_hint)
        return rank_tracks(artist, title, tracklist, duration_seconds)

    def select_track(
        self,
        artist: str,
        title: str,
        tracklist: list[TrackCandidate],
        duration_seconds: float | None = None,
        filename_hint: str = "",
    ) -> RankedTrack | None:
        artist, title = self._track_query(artist, title, filename_hint)
        return select_track(artist, title, tracklist, duration_seconds)

    async def get_release(self, source: str, release_id: str, kind: str = "release") -> Candidate | None:
        """Fetch one release with its tracklist from the named provider."""
        provider = self.providers.get(source)
        if provider is None:
            raise ConfigError(f"Source {source!r} is not configured")
        return await provider.get_release(release_id, kind)
