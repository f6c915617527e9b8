"""Tests for api/musicbrainz.py -- Lucene queries, parsing, and HTTP behavior."""

import httpx
import pytest

from tagfixer.api.musicbrainz import (
    MusicBrainzClient,
    build_query,
    escape_phrase,
    format_length,
    parse_release,
)
from tagfixer.errors import ProviderError
from tagfixer.models import SearchStrategy, SearchType, StrategyType

RELEASE = {
    "id": "9f2c-mbid",
    "title": "Firestarter",
    "date": "1996-03-18",
    "artist-credit": [
        {"name": "The Prodigy", "joinphrase": " feat. "},
        {"name": "Maxim"},
    ],
    "cover-art-archive": {"front": True},
    "genres": [{"name": "electronic"}],
    "tags": [{"name": "big beat"}],
    "media": [
        {
            "tracks": [
                {"number": "1", "title": "Firestarter", "length": 280400},
                {
                    "number": "2",
                    "title": "Firestarter (Empirion Mix)",
                    "length": 350000,
                    "artist-credit": [{"name": "Empirion"}],
                },
            ]
        }
    ],
}


def _strategy(type_, artist, title):
    return SearchStrategy(type_, artist, title, SearchType.ALL, "test", 0, source="musicbrainz")


class TestBuildQuery:
    def test_fielded(self):
        query = build_query(_strategy(StrategyType.TRACK, "Prodigy", "Firestarter"))
        assert query == 'artist:"Prodigy" AND release:"Firestarter"'

    def test_title_only(self):
        assert build_query(_strategy(StrategyType.RELEASE, "", "Firestarter")) == 'release:"Firestarter"'

    def test_free_text_query(self):
        assert build_query(_strategy(StrategyType.QUERY, "", "Prodigy Firestarter")) == "Prodigy Firestarter"

    def test_escaping(self):
        assert escape_phrase('Say "Hi"') == '"Say \\"Hi\\""'


class TestParsing:
    def test_format_length(self):
        assert format_length(280400) == "4:40"
        assert format_length(59000) == "0:59"
        assert format_length(None) == ""

    def test_summary(self):
        c = parse_release(RELEASE)
        assert c.source == "musicbrainz"
        assert c.artist == "The Prodigy feat. Maxim"
        assert c.year == 1996
        assert c.type == "release"
        assert c.cover_present
        assert c.genres == ["electronic"]
        assert c.styles == ["big beat"]
        assert c.tracklist is None

    def test_detailed_tracklist(self):
        c = parse_release(RELEASE, detailed=True)
        assert [(t.position, t.duration) for t in c.tracklist] == [("1", "4:40"), ("2", "5:50")]
        assert c.tracklist[1].artists == ["Empirion"]

    def test_missing_date(self):
        assert parse_release({"id": "x", "title": "T"}).year is None


class TestMusicBrainzClient:
    @pytest.mark.asyncio
    async def test_search_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"releases": [RELEASE]})

        client = MusicBrainzClient(
            user_agent="TagFixer/1.0",
            contact="me@example.com",
            transport=httpx.MockTransport(handler),
        )
        async with client:
            results = await client.search(_strategy(StrategyType.TRACK, "Prodigy", "Firestarter"))

        assert [c.id for c in results] == ["9f2c-mbid"]
        request = seen[0]
        assert request.url.path == "/ws/2/release"
        assert request.url.params["query"] == 'artist:"Prodigy" AND release:"Firestarter"'
        assert request.url.params["fmt"] == "json"
        assert request.url.params["limit"] == "15"
        assert request.headers["User-Agent"] == "TagFixer/1.0 ( me@example.com )"

    @pytest.mark.asyncio
    async def test_get_release(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=RELEASE)

        async with MusicBrainzClient(transport=httpx.MockTransport(handler)) as client:
            release = await client.get_release("9f2c-mbid")
        assert seen[0].url.path == "/ws/2/release/9f2c-mbid"
        assert "recordings" in seen[0].url.params["inc"]
        assert len(release.tracklist) == 2

    @pytest.mark.asyncio
    async def test_get_release_unknown(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(404))
        async with MusicBrainzClient(transport=transport) as client:
            assert await client.get_release("nope") is None

    @pytest.mark.asyncio
    async def test_service_unavailable(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(503))
        async with MusicBrainzClient(transport=transport) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.search(_strategy(StrategyType.QUERY, "", "Firestarter"))
        assert exc_info.value.source == "musicbrainz"
        assert exc_info.value.status_code == 503
