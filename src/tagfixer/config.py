"""Matcher configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_BATCH_DELAY, DISCOGS


class MatcherConfig(BaseSettings):
    """All matcher configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Providers --
    sources: str = DISCOGS  # comma-separated provider ids, in query order
    discogs_token: str = ""
    discogs_consumer_key: str = ""
    discogs_consumer_secret: str = ""
    musicbrainz_contact: str = ""
    user_agent: str = "TagFixer/1.0"

    # -- Rate limiting --
    batch_delay: float = DEFAULT_BATCH_DELAY
    provider_timeout: float = 15.0

    # -- Behavior --
    verbose: bool = False
    log_level: str = "INFO"
    log_dir: Path | None = None

    # -- AI fallback (any OpenAI-compatible endpoint, e.g. Groq) --
    llm_base_url: str = ""
    llm_api_key: str = ""
    llm_model: str = "llama-3.3-70b-versatile"
    ai_fallback: bool = True

    @property
    def source_list(self) -> list[str]:
        """Configured provider ids, deduplicated, order preserved."""
        seen: list[str] = []
        for s in self.sources.split(","):
            s = s.strip().lower()
            if s and s not in seen:
                seen.append(s)
        return seen

    def setup_logging(self) -> None:
        """Configure loguru for the matcher."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(self.log_dir / "tagfixer.log"),
                format=log_format,
                level="DEBUG",
                rotation="10 MB",
                retention="30 days",
                filter=_default_extra,
            )
