"""Tests for config.py -- defaults, env var overrides."""

from pathlib import Path

import pytest

from tagfixer.config import MatcherConfig

# Env vars that pydantic-settings reads -- must be cleaned for default tests
_CONFIG_ENV_VARS = [
    "SOURCES", "DISCOGS_TOKEN", "DISCOGS_CONSUMER_KEY", "DISCOGS_CONSUMER_SECRET",
    "MUSICBRAINZ_CONTACT", "USER_AGENT", "BATCH_DELAY", "PROVIDER_TIMEOUT",
    "VERBOSE", "LOG_LEVEL", "LOG_DIR", "LLM_BASE_URL", "LLM_API_KEY",
    "LLM_MODEL", "AI_FALLBACK",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove matcher env vars so defaults tests see actual defaults."""
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_default_values(self):
        config = MatcherConfig(_env_file=None)
        assert config.sources == "discogs"
        assert config.discogs_token == ""
        assert config.user_agent == "TagFixer/1.0"
        assert config.batch_delay == 4.0
        assert config.provider_timeout == 15.0
        assert config.verbose is False
        assert config.log_level == "INFO"
        assert config.log_dir is None

    def test_ai_defaults(self):
        config = MatcherConfig(_env_file=None)
        assert config.llm_base_url == ""
        assert config.llm_model == "llama-3.3-70b-versatile"
        assert config.ai_fallback is True


class TestOverrides:
    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("DISCOGS_TOKEN", "abc123")
        monkeypatch.setenv("BATCH_DELAY", "1.5")
        config = MatcherConfig(_env_file=None)
        assert config.discogs_token == "abc123"
        assert config.batch_delay == 1.5

    def test_kwarg_beats_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        config = MatcherConfig(_env_file=None, log_level="DEBUG")
        assert config.log_level == "DEBUG"

    def test_bool_from_env(self, monkeypatch):
        monkeypatch.setenv("AI_FALLBACK", "false")
        assert MatcherConfig(_env_file=None).ai_fallback is False

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SOURCES=musicbrainz\nMUSICBRAINZ_CONTACT=me@example.com\n")
        config = MatcherConfig(_env_file=env_file)
        assert config.sources == "musicbrainz"
        assert config.musicbrainz_contact == "me@example.com"

    def test_log_dir_is_path(self, monkeypatch):
        monkeypatch.setenv("LOG_DIR", "/tmp/tagfixer-logs")
        assert MatcherConfig(_env_file=None).log_dir == Path("/tmp/tagfixer-logs")


class TestSourceList:
    def test_split_and_lowercased(self):
        config = MatcherConfig(_env_file=None, sources="Discogs, MUSICBRAINZ")
        assert config.source_list == ["discogs", "musicbrainz"]

    def test_duplicates_and_blanks_dropped(self):
        config = MatcherConfig(_env_file=None, sources="discogs,,discogs, musicbrainz")
        assert config.source_list == ["discogs", "musicbrainz"]
