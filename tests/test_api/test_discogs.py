"""Tests for api/discogs.py -- param mapping, parsing, and HTTP behavior."""

import httpx
import pytest

from tagfixer.api.base import ProviderAdapter
from tagfixer.api.discogs import (
    DiscogsClient,
    build_search_params,
    parse_release_detail,
    parse_search_result,
)
from tagfixer.errors import ProviderError
from tagfixer.models import ErrorCategory, SearchStrategy, SearchType, StrategyType


def _strategy(type_, artist, title, search_type=SearchType.ALL):
    return SearchStrategy(type_, artist, title, search_type, "test", 0)


def _client(handler, **kwargs):
    return DiscogsClient(transport=httpx.MockTransport(handler), **kwargs)


RELEASE_PAYLOAD = {
    "id": 249504,
    "title": "Firestarter",
    "year": 1996,
    "artists": [{"name": "The Prodigy", "join": ""}],
    "genres": ["Electronic"],
    "styles": ["Breakbeat"],
    "images": [{"uri": "https://img"}],
    "tracklist": [
        {"position": "", "title": "Side A", "type_": "heading"},
        {"position": "A1", "title": "Firestarter (Original Mix)", "duration": "4:40", "type_": "track"},
        {
            "position": "A2",
            "title": "Firestarter (Empirion Mix)",
            "duration": "5:50",
            "type_": "track",
            "artists": [{"name": "Empirion (2)"}],
        },
    ],
}


class TestBuildSearchParams:
    def test_query(self):
        params = build_search_params(_strategy(StrategyType.QUERY, "", "Prodigy - Firestarter"))
        assert params == {"per_page": "25", "q": "Prodigy - Firestarter"}

    def test_short_query_skipped(self):
        assert build_search_params(_strategy(StrategyType.QUERY, "", "x")) is None

    def test_track(self):
        params = build_search_params(_strategy(StrategyType.TRACK, "Prodigy", "Firestarter"))
        assert params["track"] == "Firestarter"
        assert params["artist"] == "Prodigy"
        assert "type" not in params

    def test_track_needs_title(self):
        assert build_search_params(_strategy(StrategyType.FUZZY, "Prodigy", "")) is None

    def test_release_with_type(self):
        params = build_search_params(
            _strategy(StrategyType.RELEASE, "Prodigy", "Firestarter", SearchType.MASTER)
        )
        assert params == {
            "per_page": "25",
            "artist": "Prodigy",
            "release_title": "Firestarter",
            "type": "master",
        }

    def test_swap_is_track_search(self):
        params = build_search_params(_strategy(StrategyType.SWAP, "Firestarter", "Prodigy"))
        assert params["track"] == "Prodigy"
        assert params["artist"] == "Firestarter"


class TestParsing:
    def test_search_result_title_split(self):
        c = parse_search_result(
            {
                "id": 11,
                "title": "The Prodigy - Firestarter",
                "year": "1996",
                "type": "master",
                "thumb": "https://thumb",
                "genre": ["Electronic"],
                "style": ["Big Beat"],
            }
        )
        assert (c.id, c.artist, c.title) == ("11", "The Prodigy", "Firestarter")
        assert c.year == 1996
        assert c.type == "master"
        assert c.cover_present
        assert c.genres == ["Electronic"]
        assert c.styles == ["Big Beat"]

    def test_search_result_without_separator(self):
        c = parse_search_result({"id": 1, "title": "Firestarter", "year": ""})
        assert c.artist == ""
        assert c.title == "Firestarter"
        assert c.year is None
        assert not c.cover_present

    def test_release_detail(self):
        c = parse_release_detail(RELEASE_PAYLOAD, "release")
        assert c.artist == "The Prodigy"
        assert c.type == "release"
        assert c.cover_present
        assert [t.type for t in c.tracklist] == ["heading", "track", "track"]
        assert c.tracklist[2].artists == ["Empirion"]


class TestDiscogsClient:
    def test_is_provider(self):
        assert isinstance(DiscogsClient(), ProviderAdapter)

    @pytest.mark.asyncio
    async def test_search_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={"results": [{"id": 5, "title": "The Prodigy - Firestarter", "type": "master"}]},
            )

        async with _client(handler, token="secret", user_agent="TagFixer/9.9") as client:
            results = await client.search(
                _strategy(StrategyType.RELEASE, "Prodigy", "Firestarter", SearchType.MASTER)
            )

        assert [c.id for c in results] == ["5"]
        request = seen[0]
        assert request.url.path == "/database/search"
        assert request.url.params["release_title"] == "Firestarter"
        assert request.url.params["type"] == "master"
        assert request.headers["Authorization"] == "Discogs token=secret"
        assert request.headers["User-Agent"] == "TagFixer/9.9"

    @pytest.mark.asyncio
    async def test_consumer_key_auth(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        async with _client(handler, consumer_key="k", consumer_secret="s") as client:
            await client.search(_strategy(StrategyType.QUERY, "", "Firestarter"))
        assert seen[0].headers["Authorization"] == "Discogs key=k, secret=s"

    @pytest.mark.asyncio
    async def test_skipped_strategy_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            assert await client.search(_strategy(StrategyType.QUERY, "", "x")) == []

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        async with _client(lambda r: httpx.Response(429)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.search(_strategy(StrategyType.QUERY, "", "Firestarter"))
        assert exc_info.value.status_code == 429
        assert exc_info.value.category == ErrorCategory.TRANSIENT

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with _client(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(ProviderError, match="invalid JSON"):
                await client.search(_strategy(StrategyType.QUERY, "", "Firestarter"))

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ProviderError, match="failed"):
                await client.search(_strategy(StrategyType.QUERY, "", "Firestarter"))


class TestGetRelease:
    @pytest.mark.asyncio
    async def test_requested_kind_first(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json=RELEASE_PAYLOAD)

        async with _client(handler) as client:
            release = await client.get_release("249504", "master")
        assert paths == ["/masters/249504"]
        assert release.type == "master"

    @pytest.mark.asyncio
    async def test_falls_back_to_other_kind(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            if request.url.path.startswith("/releases/"):
                return httpx.Response(404, json={"message": "Release not found."})
            return httpx.Response(200, json=RELEASE_PAYLOAD)

        async with _client(handler) as client:
            release = await client.get_release("249504")
        assert paths == ["/releases/249504", "/masters/249504"]
        assert release.type == "master"
        assert len(release.tracklist) == 3

    @pytest.mark.asyncio
    async def test_not_found_anywhere(self):
        async with _client(lambda r: httpx.Response(404)) as client:
            assert await client.get_release("1") is None

    @pytest.mark.asyncio
    async def test_server_error_propagates(self):
        async with _client(lambda r: httpx.Response(502)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.get_release("1")
        assert exc_info.value.status_code == 502
