"""Batched, rate-limited execution of search strategies.

Strategies run in fixed-size batches. Calls inside a batch are concurrent;
the batch is joined before any result is scored, so the candidate list is
only ever mutated between batches. After each batch the run may stop early
on a strong enough top score; otherwise it sleeps before the next batch to
stay inside the provider request budget.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable, Mapping, Sequence

from loguru import logger

from .api.base import ProviderAdapter
from .errors import ProviderError
from .models import (
    BATCH_SIZE,
    DEFAULT_BATCH_DELAY,
    DISCOGS,
    ErrorCategory,
    EXCELLENT_SCORE,
    GOOD_SCORE,
    HIGH_CONFIDENCE,
    MAX_STRATEGIES,
    MIN_RESULTS_FOR_GOOD,
    STRONG_SCORE,
    Candidate,
    SearchRun,
    SearchStrategy,
)
from .scoring import score_candidate
from .strategies import drop_typo_fix_tier, generate_strategies

log = logger.bind(stage="orchestrator")


def should_stop(candidates: list[Candidate]) -> str | None:
    """Early-stop reason for a ranked candidate list, or None to keep going."""
    if not candidates:
        return None
    top = candidates[0].score
    if top >= EXCELLENT_SCORE:
        return f"excellent match (score {top})"
    if top >= STRONG_SCORE:
        return f"strong match (score {top})"
    if len(candidates) >= MIN_RESULTS_FOR_GOOD and top >= GOOD_SCORE:
        return f"{len(candidates)} results with good top match (score {top})"
    return None


class SearchOrchestrator:
    """Runs generated strategies against providers and ranks the merged results.

    ``providers`` maps a source id ("discogs", "musicbrainz") to an adapter.
    Strategies are generated once per source in mapping order. ``sleep`` is
    injectable so tests can run without real delays.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderAdapter],
        batch_delay: float = DEFAULT_BATCH_DELAY,
        provider_timeout: float = 15.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.providers = dict(providers)
        self.batch_delay = batch_delay
        self.provider_timeout = provider_timeout
        self._sleep = sleep

    @property
    def sources(self) -> list[str]:
        return list(self.providers) or [DISCOGS]

    def plan(
        self,
        artist: str,
        title: str,
        external_confidence: float | None = None,
    ) -> list[SearchStrategy]:
        """The capped strategy list a run would execute."""
        strategies = generate_strategies(artist, title, self.sources)
        if external_confidence is not None and external_confidence >= HIGH_CONFIDENCE:
            before = len(strategies)
            strategies = drop_typo_fix_tier(strategies)
            log.debug(
                f"External confidence {external_confidence:.2f}: "
                f"dropped {before - len(strategies)} typo-fix strategies"
            )
        return strategies[:MAX_STRATEGIES]

    async def _execute(self, strategy: SearchStrategy) -> list[Candidate] | None:
        """Run one strategy. Returns None on failure (logged, never raised)."""
        provider = self.providers.get(strategy.source)
        try:
            if provider is None:
                raise ProviderError(strategy.source, "no provider configured")
            return await asyncio.wait_for(
                provider.search(strategy), timeout=self.provider_timeout
            )
        except asyncio.TimeoutError:
            log.warning(
                f"[{strategy.source}] {strategy.description}: timed out after "
                f"{self.provider_timeout:.0f}s ({ErrorCategory.TRANSIENT})"
            )
        except ProviderError as e:
            log.warning(f"[{strategy.source}] {strategy.description}: {e} ({e.category})")
        except Exception as e:
            log.warning(
                f"[{strategy.source}] {strategy.description}: "
                f"{type(e).__name__}: {e}"
            )
        return None

    async def run(
        self,
        artist: str,
        title: str,
        external_confidence: float | None = None,
    ) -> SearchRun:
        """Execute the strategy plan for one artist/title pair.

        Returns every unique candidate found, ranked by score descending.
        """
        artist = (artist or "").strip()
        title = (title or "").strip()
        result = SearchRun()

        strategies = self.plan(artist, title, external_confidence)
        if not strategies:
            log.info("Nothing to search: artist and title are both empty")
            return result

        batches = _batched(strategies, BATCH_SIZE)
        log.info(
            f"Searching {artist!r} - {title!r}: {len(strategies)} strategies "
            f"in {len(batches)} batches"
        )

        seen: set[tuple[str, str]] = set()
        for idx, batch in enumerate(batches):
            for s in batch:
                log.debug(f"Batch {idx + 1}: {s.description} [{s.source}]")

            outcomes = await asyncio.gather(*(self._execute(s) for s in batch))
            result.batches_run += 1
            result.strategies_run += len(batch)

            added = 0
            for found in outcomes:
                if found is None:
                    result.failures += 1
                    continue
                for candidate in found:
                    if candidate.key in seen:
                        continue
                    seen.add(candidate.key)
                    candidate.score = score_candidate(candidate, artist, title)
                    result.candidates.append(candidate)
                    added += 1

            result.candidates.sort(key=lambda c: c.score, reverse=True)
            log.debug(
                f"Batch {idx + 1}/{len(batches)}: +{added} candidates, "
                f"{len(result.candidates)} total, top score {result.top_score}"
            )

            reason = should_stop(result.candidates)
            if reason:
                result.stopped_early = idx < len(batches) - 1
                log.info(f"Stopping after batch {idx + 1}: {reason}")
                break

            if idx < len(batches) - 1:
                await self._sleep(self.batch_delay)

        log.info(
            f"Search done: {len(result.candidates)} candidates, "
            f"{result.strategies_run} strategies, {result.failures} failures"
        )
        return result


def _batched(items: Sequence[SearchStrategy], size: int) -> list[list[SearchStrategy]]:
    count = math.ceil(len(items) / size)
    return [list(items[i * size:(i + 1) * size]) for i in range(count)]
