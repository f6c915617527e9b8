"""Tests for cli.py -- Click CLI interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from tagfixer.cli import main
from tagfixer.config import MatcherConfig
from tagfixer.errors import ConfigError
from tagfixer.models import Candidate, TrackCandidate
from tagfixer.service import MatchService


class FakeProvider:
    def __init__(self, results=None, release=None):
        self._results = results or []
        self.get_release = AsyncMock(return_value=release)

    async def search(self, strategy):
        return [Candidate(**vars(c)) for c in self._results]


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Keep the CLI away from real .env files, env vars and log sinks."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("tagfixer.cli._find_config_file", lambda: None)
    for var in ("SOURCES", "LOG_DIR", "LLM_BASE_URL", "AI_FALLBACK", "BATCH_DELAY"):
        monkeypatch.delenv(var, raising=False)
    with patch.object(MatcherConfig, "setup_logging"):
        yield


def _patch_service(provider, seen=None):
    """Make MatchService.from_config build a service around ``provider``."""

    def build(config, knowledge=None):
        if seen is not None:
            seen.append(config)
        return MatchService(
            {"discogs": provider}, config, knowledge=knowledge, sleep=AsyncMock()
        )

    return patch("tagfixer.cli.MatchService.from_config", side_effect=build)


@pytest.fixture
def prodigy():
    return FakeProvider(
        [
            Candidate(id="1", title="Firestarter", artist="The Prodigy", year=1996, type="master"),
            Candidate(id="2", title="Breathe", artist="The Prodigy"),
        ]
    )


class TestHelpOutput:
    def test_help_lists_commands(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "search" in result.output
        assert "rank-tracks" in result.output

    def test_search_help(self):
        result = CliRunner().invoke(main, ["search", "--help"])
        assert result.exit_code == 0
        assert "--filename" in result.output
        assert "--confidence" in result.output
        assert "--no-ai" in result.output


class TestSearch:
    def test_requires_input(self):
        result = CliRunner().invoke(main, ["search"])
        assert result.exit_code == 2
        assert "Give ARTIST" in result.output

    def test_json_output(self, prodigy):
        with _patch_service(prodigy):
            result = CliRunner().invoke(main, ["search", "Prodigy", "Firestarter", "--json"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        data = json.loads(result.output)
        assert data["heuristic"]["artist"] == "Prodigy"
        assert data["knowledgeHit"] is False
        assert data["ai"] is None
        assert data["total"] == 2
        assert data["results"][0]["id"] == "1"
        assert data["results"][0]["coverPresent"] is False

    def test_limit(self, prodigy):
        with _patch_service(prodigy):
            result = CliRunner().invoke(
                main, ["search", "Prodigy", "Firestarter", "--json", "--limit", "1"]
            )
        data = json.loads(result.output)
        assert data["total"] == 2
        assert len(data["results"]) == 1

    def test_text_output(self, prodigy):
        with _patch_service(prodigy):
            result = CliRunner().invoke(main, ["search", "Prodigy", "Firestarter"])
        assert result.exit_code == 0
        assert "2 candidates:" in result.output
        assert "discogs:1  The Prodigy - Firestarter (1996) [master]" in result.output

    def test_no_matches(self):
        with _patch_service(FakeProvider()):
            result = CliRunner().invoke(main, ["search", "--filename", "Nobody - Nothing.mp3"])
        assert result.exit_code == 0
        assert "Query: Nobody / Nothing" in result.output
        assert "No matches found." in result.output

    def test_options_reach_config(self, prodigy):
        seen = []
        with _patch_service(prodigy, seen):
            result = CliRunner().invoke(
                main,
                ["search", "Prodigy", "Firestarter", "--source", "musicbrainz",
                 "--source", "discogs", "--no-ai"],
            )
        assert result.exit_code == 0
        config = seen[0]
        assert config.source_list == ["musicbrainz", "discogs"]
        assert config.ai_fallback is False

    def test_corrections_file(self, tmp_path):
        corrections = tmp_path / "corrections.json"
        corrections.write_text(json.dumps([{"artist": "Two Good", "title": "People Are",
                                            "source_artist": "Twoo good",
                                            "source_title": "People are"}]))
        with _patch_service(FakeProvider()):
            result = CliRunner().invoke(
                main,
                ["search", "Twoo good", "People are", "--corrections", str(corrections), "--json"],
            )
        data = json.loads(result.output)
        assert data["knowledgeHit"] is True
        assert data["results"][0]["source"] == "knowledge"
        assert data["results"][0]["artist"] == "Two Good"

    def test_config_error_reported(self):
        with patch(
            "tagfixer.cli.MatchService.from_config",
            side_effect=ConfigError("Unknown source 'spotify'"),
        ):
            result = CliRunner().invoke(main, ["search", "Prodigy", "Firestarter"])
        assert result.exit_code == 1
        assert "Unknown source" in result.output


class TestRankTracks:
    @pytest.fixture
    def tracklist_file(self, tmp_path):
        path = tmp_path / "tracks.json"
        path.write_text(
            json.dumps(
                {
                    "tracklist": [
                        {"position": "", "title": "Side A", "type_": "heading"},
                        {"position": "A1", "title": "Firestarter (Original Mix)", "duration": "4:40"},
                        {"position": "A2", "title": "Firestarter (Remix)", "duration": "5:00",
                         "artists": [{"name": "The Prodigy"}]},
                    ]
                }
            )
        )
        return path

    def test_requires_exactly_one_source(self, tracklist_file):
        runner = CliRunner()
        result = runner.invoke(main, ["rank-tracks", "Firestarter"])
        assert result.exit_code == 2
        result = runner.invoke(
            main, ["rank-tracks", "Firestarter", "--tracklist", str(tracklist_file),
                   "--release", "123"],
        )
        assert result.exit_code == 2

    def test_json_ranking(self, tracklist_file):
        result = CliRunner().invoke(
            main,
            ["rank-tracks", "Firestarter (Remix)", "--artist", "Prodigy",
             "--tracklist", str(tracklist_file), "--json"],
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        data = json.loads(result.output)
        assert [t["position"] for t in data] == ["A2", "A1"]
        assert data[0]["artists"] == ["The Prodigy"]
        assert data[0]["scoreBreakdown"]["versionScore"] == 50

    def test_select(self, tracklist_file):
        result = CliRunner().invoke(
            main,
            ["rank-tracks", "Firestarter (Original Mix)", "--tracklist", str(tracklist_file),
             "--duration", "280", "--select"],
        )
        assert result.exit_code == 0
        assert result.output.startswith("A1  Firestarter (Original Mix)  (100.0)")

    def test_bad_tracklist(self, tmp_path):
        path = tmp_path / "tracks.json"
        path.write_text("not json")
        result = CliRunner().invoke(main, ["rank-tracks", "X", "--tracklist", str(path)])
        assert result.exit_code == 2
        assert "cannot read tracklist" in result.output

    def test_release_fetch(self):
        release = Candidate(
            id="123",
            title="Firestarter",
            artist="The Prodigy",
            tracklist=[TrackCandidate(position="1", title="Firestarter")],
        )
        provider = FakeProvider(release=release)
        with _patch_service(provider):
            result = CliRunner().invoke(
                main, ["rank-tracks", "Firestarter", "--release", "123", "--kind", "master"]
            )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        provider.get_release.assert_awaited_once_with("123", "master")
        assert "1     Firestarter" in result.output

    def test_release_not_found(self):
        with _patch_service(FakeProvider()):
            result = CliRunner().invoke(main, ["rank-tracks", "Firestarter", "--release", "404"])
        assert result.exit_code == 1
        assert "Release 404 not found on discogs" in result.output
