"""MusicBrainz release search client (ws/2, JSON).

Fielded strategies become Lucene phrase queries
(``artist:"..." AND release:"..."``); free-text query strategies are sent
as-is. MusicBrainz has no master concept, so every candidate is a release.
"""

import httpx
from loguru import logger

from ..errors import ProviderError
from ..models import MUSICBRAINZ, Candidate, SearchStrategy, StrategyType, TrackCandidate
from .base import request_json

log = logger.bind(stage="musicbrainz")

API_BASE_URL = "https://musicbrainz.org/ws/2"
SEARCH_LIMIT = 15
RELEASE_INC = "recordings+artist-credits+labels+release-groups+media"


def escape_phrase(text: str) -> str:
    """Quote a value as a Lucene phrase."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_query(strategy: SearchStrategy) -> str:
    if strategy.type in (StrategyType.QUERY, StrategyType.EXACT):
        return strategy.title.strip()

    parts = []
    if strategy.artist:
        parts.append(f"artist:{escape_phrase(strategy.artist)}")
    if strategy.title:
        parts.append(f"release:{escape_phrase(strategy.title)}")
    return " AND ".join(parts)


def format_length(ms: int | None) -> str:
    """Format a track length in milliseconds as M:SS."""
    if not ms:
        return ""
    total = int(ms) // 1000
    return f"{total // 60}:{total % 60:02d}"


def _credit_name(credits: list[dict] | None) -> str:
    # Each credit carries its own joinphrase (" & ", " feat. ")
    return "".join(
        (c.get("name") or "") + (c.get("joinphrase") or "") for c in (credits or [])
    ).strip()


def _year(date: str | None) -> int | None:
    if date and date[:4].isdigit():
        return int(date[:4])
    return None


def parse_release(raw: dict, detailed: bool = False) -> Candidate:
    """Convert a MusicBrainz release payload into a Candidate."""
    candidate = Candidate(
        id=raw.get("id", ""),
        title=raw.get("title", "") or "",
        artist=_credit_name(raw.get("artist-credit")),
        source=MUSICBRAINZ,
        year=_year(raw.get("date")),
        type="release",
        cover_present=bool((raw.get("cover-art-archive") or {}).get("front")),
        genres=[g.get("name", "") for g in (raw.get("genres") or []) if g.get("name")],
        styles=[t.get("name", "") for t in (raw.get("tags") or []) if t.get("name")],
    )

    if detailed:
        tracklist = []
        for medium in raw.get("media") or []:
            for t in medium.get("tracks") or []:
                tracklist.append(
                    TrackCandidate(
                        position=str(t.get("number") or t.get("position") or ""),
                        title=t.get("title", "") or "",
                        duration=format_length(t.get("length")),
                        artists=[
                            c.get("name", "") for c in (t.get("artist-credit") or [])
                        ],
                    )
                )
        candidate.tracklist = tracklist

    return candidate


class MusicBrainzClient:
    """Async MusicBrainz client. Close with ``aclose()`` or use as a context manager."""

    def __init__(
        self,
        user_agent: str = "TagFixer/1.0",
        contact: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # MusicBrainz rejects anonymous clients; "App/Version ( contact )"
        self._user_agent = f"{user_agent} ( {contact} )" if contact else user_agent
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=API_BASE_URL,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MusicBrainzClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def search(self, strategy: SearchStrategy) -> list[Candidate]:
        query = build_query(strategy)
        if not query:
            return []

        log.debug(f"MusicBrainz search: {query}")
        data = await request_json(
            self._get_client(),
            MUSICBRAINZ,
            "/release",
            {"query": query, "fmt": "json", "limit": str(SEARCH_LIMIT)},
        )
        results = [parse_release(r) for r in (data.get("releases") or [])]
        log.debug(f"MusicBrainz results: {len(results)} for {strategy.description}")
        return results

    async def get_release(self, release_id: str, kind: str = "release") -> Candidate | None:
        """Fetch a release with its tracklist, or None when the MBID is unknown."""
        try:
            data = await request_json(
                self._get_client(),
                MUSICBRAINZ,
                f"/release/{release_id}",
                {"inc": RELEASE_INC, "fmt": "json"},
            )
        except ProviderError as e:
            if e.status_code in (400, 404):
                log.warning(f"MusicBrainz release {release_id} not found")
                return None
            raise
        return parse_release(data, detailed=True)
