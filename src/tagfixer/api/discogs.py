"""Discogs database search client.

Maps each search strategy onto one ``/database/search`` call and converts
the raw results into Candidates. Release lookups try the requested kind
(master or release) first and fall back to the other kind on 400/404,
since search results do not always say which namespace an id lives in.
"""

import re

import httpx
from loguru import logger

from ..errors import ProviderError
from ..models import DISCOGS, Candidate, SearchStrategy, SearchType, StrategyType, TrackCandidate
from ..normalize import format_artist_name
from .base import request_json

log = logger.bind(stage="discogs")

API_BASE_URL = "https://api.discogs.com"
PER_PAGE = 25

_TRACK_TYPES = {StrategyType.TRACK, StrategyType.FUZZY, StrategyType.SWAP}
_QUERY_TYPES = {StrategyType.QUERY, StrategyType.EXACT}


def _to_int(value) -> int | None:
    try:
        year = int(value)
    except (TypeError, ValueError):
        return None
    return year or None


def parse_search_result(raw: dict) -> Candidate:
    """Convert one ``/database/search`` hit into a Candidate.

    Search titles come back as "Artist - Title"; the first segment is the
    artist and the rest the release title.
    """
    full_title = raw.get("title") or ""
    if " - " in full_title:
        artist, _, title = full_title.partition(" - ")
    else:
        artist, title = "", full_title

    return Candidate(
        id=str(raw.get("id", "")),
        title=title,
        artist=artist,
        source=DISCOGS,
        year=_to_int(raw.get("year")),
        type=raw.get("type"),
        cover_present=bool(raw.get("cover_image") or raw.get("thumb")),
        genres=list(raw.get("genre") or []),
        styles=list(raw.get("style") or []),
    )


def parse_release_detail(raw: dict, kind: str) -> Candidate:
    """Convert a ``/releases/{id}`` or ``/masters/{id}`` payload into a Candidate."""
    tracklist = [
        TrackCandidate(
            position=t.get("position", "") or "",
            title=t.get("title", "") or "",
            duration=t.get("duration", "") or "",
            artists=[
                re.sub(r"\s*\(\d+\)$", "", a.get("name", ""))
                for a in (t.get("artists") or [])
            ],
            type=t.get("type_", "track") or "track",
        )
        for t in (raw.get("tracklist") or [])
    ]

    return Candidate(
        id=str(raw.get("id", "")),
        title=raw.get("title", "") or "",
        artist=format_artist_name(raw.get("artists")),
        source=DISCOGS,
        year=_to_int(raw.get("year")),
        type=kind,
        cover_present=bool(raw.get("images") or raw.get("thumb")),
        genres=list(raw.get("genres") or []),
        styles=list(raw.get("styles") or []),
        tracklist=tracklist,
    )


def build_search_params(strategy: SearchStrategy) -> dict[str, str] | None:
    """Query parameters for one strategy, or None when there is nothing to send."""
    params: dict[str, str] = {"per_page": str(PER_PAGE)}

    if strategy.type in _QUERY_TYPES:
        query = strategy.title.strip()
        if len(query) < 2:
            return None
        params["q"] = query
    elif strategy.type in _TRACK_TYPES:
        if not strategy.title:
            return None
        params["track"] = strategy.title
        if strategy.artist:
            params["artist"] = strategy.artist
    else:
        if not strategy.artist and not strategy.title:
            return None
        if strategy.artist:
            params["artist"] = strategy.artist
        if strategy.title:
            params["release_title"] = strategy.title

    if strategy.search_type != SearchType.ALL:
        params["type"] = str(strategy.search_type)
    return params


class DiscogsClient:
    """Async Discogs client. Close with ``aclose()`` or use as a context manager."""

    def __init__(
        self,
        token: str = "",
        consumer_key: str = "",
        consumer_secret: str = "",
        user_agent: str = "TagFixer/1.0",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._user_agent = user_agent
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not token and not (consumer_key and consumer_secret):
            log.warning("Discogs credentials not configured, requests will be unauthenticated")

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent, "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Discogs token={self._token}"
        elif self._consumer_key and self._consumer_secret:
            headers["Authorization"] = (
                f"Discogs key={self._consumer_key}, secret={self._consumer_secret}"
            )
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=API_BASE_URL,
                headers=self._headers(),
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DiscogsClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def search(self, strategy: SearchStrategy) -> list[Candidate]:
        params = build_search_params(strategy)
        if params is None:
            return []

        log.debug(f"Discogs search [{strategy.type}]: {params}")
        data = await request_json(self._get_client(), DISCOGS, "/database/search", params)

        results = [parse_search_result(r) for r in (data.get("results") or [])]
        log.debug(f"Discogs results: {len(results)} for {strategy.description}")
        return results

    async def get_release(self, release_id: str, kind: str = "release") -> Candidate | None:
        """Fetch a master or release with its tracklist.

        Returns None when neither namespace knows the id.
        """
        order = ["master", "release"] if kind == "master" else ["release", "master"]
        client = self._get_client()

        for attempt in order:
            path = f"/{attempt}s/{release_id}"
            try:
                data = await request_json(client, DISCOGS, path)
            except ProviderError as e:
                if e.status_code in (400, 404):
                    log.debug(f"Discogs {attempt}/{release_id} not found, trying fallback")
                    continue
                raise
            if attempt != order[0]:
                log.info(f"Discogs id {release_id} resolved as {attempt}")
            return parse_release_detail(data, attempt)

        log.warning(f"Discogs id {release_id} not found as master or release")
        return None
