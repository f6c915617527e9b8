"""Search strategy generation: many ordered query attempts from one noisy input.

Strategies are built in fixed priority tiers. Every tier is appended before
the next one begins, and priority is simply the index in that single build
pass, so a strategy's priority never depends on how many came before it in
some other code path.

Tiers:
    1 direct       -- "A - T" / "A T" queries, exact track, exact master
    2 typo-fix     -- fuzzy artist variants x original title
    3 base title   -- tier-1 shapes with the parenthesis-stripped title
    4 artist names -- normalized artist variants x base title (track)
    5 masters      -- artist variants x title variants (master)
    6 broad        -- title only, artist only
    7 releases     -- artist variants x title variants (plain release)
    8 swap         -- base title as artist, artist as title
"""

from collections.abc import Sequence

from loguru import logger

from .models import DISCOGS, SearchStrategy, SearchType, StrategyType
from .normalize import (
    extract_parenthesis_info,
    generate_fuzzy_variants,
    normalize_artist_name,
    normalize_title_for_search,
)

log = logger.bind(stage="strategies")

TIER_DIRECT = 1
TIER_TYPO_FIX = 2
TIER_BASE_TITLE = 3
TIER_ARTIST_VARIANTS = 4
TIER_MASTER_VARIANTS = 5
TIER_BROAD = 6
TIER_RELEASE_FALLBACK = 7
TIER_SWAP = 8

# (type, artist, title, search_type, description, tier)
_Plan = tuple[StrategyType, str, str, SearchType, str, int]


def _direct_shapes(artist: str, title: str, tier: int, label: str) -> list[_Plan]:
    """The four shapes shared by the direct and base-title tiers."""
    return [
        (StrategyType.QUERY, "", f"{artist} - {title}", SearchType.ALL,
         f'{label}: "{artist} - {title}"', tier),
        (StrategyType.QUERY, "", f"{artist} {title}", SearchType.ALL,
         f'{label} query: "{artist} {title}"', tier),
        (StrategyType.TRACK, artist, title, SearchType.ALL,
         f'{label} track: "{artist}" - "{title}"', tier),
        (StrategyType.RELEASE, artist, title, SearchType.MASTER,
         f'{label} master: "{artist}" - "{title}"', tier),
    ]


def _plan(artist: str, title: str) -> list[_Plan]:
    plan: list[_Plan] = []

    artist_variants = normalize_artist_name(artist)
    title_variants = normalize_title_for_search(title)
    base = extract_parenthesis_info(title).base if title else ""

    if artist and title:
        plan.extend(_direct_shapes(artist, title, TIER_DIRECT, "Direct"))

    if artist:
        fuzzy = [v for v in generate_fuzzy_variants(artist) if v != artist][:4]
        for v in fuzzy:
            query = f"{v} {title}".strip()
            plan.append((StrategyType.QUERY, "", query, SearchType.ALL,
                         f'Typo fix query: "{query}"', TIER_TYPO_FIX))
            if title:
                plan.append((StrategyType.FUZZY, v, title, SearchType.ALL,
                             f'Typo fix track: "{v}" - "{title}"', TIER_TYPO_FIX))
            plan.append((StrategyType.RELEASE, v, "", SearchType.MASTER,
                         f'Typo fix artist: "{v}"', TIER_TYPO_FIX))

    if artist and base != title and len(base) > 2:
        plan.extend(_direct_shapes(artist, base, TIER_BASE_TITLE, "Base"))

    if base:
        for a in artist_variants[1:4]:
            plan.append((StrategyType.TRACK, a, base, SearchType.ALL,
                         f'Track: "{a}" - "{base}"', TIER_ARTIST_VARIANTS))

    for a in artist_variants[1:3]:
        for t in title_variants[:2]:
            plan.append((StrategyType.RELEASE, a, t, SearchType.MASTER,
                         f'Master: "{a}" - "{t}"', TIER_MASTER_VARIANTS))

    if base:
        plan.append((StrategyType.TRACK, "", base, SearchType.ALL,
                     f'Track any artist: "{base}"', TIER_BROAD))
        plan.append((StrategyType.QUERY, "", base, SearchType.ALL,
                     f'Query title only: "{base}"', TIER_BROAD))
    for a in artist_variants[:2]:
        plan.append((StrategyType.RELEASE, a, "", SearchType.MASTER,
                     f'Artist only: "{a}"', TIER_BROAD))

    for a in artist_variants[:2]:
        for t in title_variants[:2]:
            plan.append((StrategyType.RELEASE, a, t, SearchType.RELEASE,
                         f'Release: "{a}" - "{t}"', TIER_RELEASE_FALLBACK))

    # Recovers "Release Name - Track" filenames parsed as artist/title
    if artist and title and artist != title:
        plan.append((StrategyType.SWAP, base, artist, SearchType.ALL,
                     f'Swapped: "{base}" - "{artist}"', TIER_SWAP))

    return plan


def generate_strategies(
    artist: str,
    title: str,
    sources: Sequence[str] = (DISCOGS,),
) -> list[SearchStrategy]:
    """Build the ordered, deduplicated strategy list for one artist/title pair.

    Each planned strategy is emitted once per source, in source order.
    Returns [] when both artist and title are empty.
    """
    artist = (artist or "").strip()
    title = (title or "").strip()
    if not artist and not title:
        log.debug("generate_strategies: empty artist and title, nothing to search")
        return []

    expanded = [
        (entry, source)
        for entry in _plan(artist, title)
        if entry[1] or entry[2]
        for source in sources
    ]

    built = [
        SearchStrategy(
            type=type_,
            artist=a,
            title=t,
            search_type=search_type,
            description=description,
            priority=idx,
            source=source,
            tier=tier,
        )
        for idx, ((type_, a, t, search_type, description, tier), source) in enumerate(expanded)
    ]

    seen: set[str] = set()
    strategies = []
    for s in sorted(built, key=lambda s: s.priority):
        if s.dedup_key in seen:
            continue
        seen.add(s.dedup_key)
        strategies.append(s)

    log.debug(
        f"Generated {len(strategies)} strategies for {artist!r} - {title!r} "
        f"({len(built) - len(strategies)} duplicates dropped)"
    )
    return strategies


def drop_typo_fix_tier(strategies: list[SearchStrategy]) -> list[SearchStrategy]:
    """Remove typo-fix strategies, keeping the remaining priorities as they are."""
    return [s for s in strategies if s.tier != TIER_TYPO_FIX]
