"""Lookup of previously confirmed corrections.

A hit short-circuits the catalog search: the stored artist/title is
returned as a single candidate from the ``knowledge`` source.
"""

import json
from pathlib import Path
from typing import Protocol

from loguru import logger

from .errors import ConfigError
from .models import KNOWLEDGE, Candidate
from .normalize import generate_normalized_key

log = logger.bind(stage="knowledge")

KEY_CONFIDENCE = 0.95
FILENAME_CONFIDENCE = 0.9


class KnowledgeLookup(Protocol):
    def lookup(self, artist: str, title: str, filename: str = "") -> Candidate | None: ...


class CorrectionIndex:
    """In-memory, read-only index of confirmed artist/title corrections.

    Records are matched first by normalized artist|title key, then by the
    exact original filename. Later records override earlier ones.
    """

    def __init__(self, records: list[dict] | None = None) -> None:
        self._by_key: dict[str, dict] = {}
        self._by_filename: dict[str, dict] = {}
        self._count = 0
        for record in records or []:
            self.add(record)

    def __len__(self) -> int:
        return self._count

    def add(self, record: dict) -> None:
        artist = (record.get("artist") or "").strip()
        title = (record.get("title") or "").strip()
        if not artist or not title:
            log.debug(f"Skipping incomplete correction record: {record!r}")
            return

        # Records may be keyed on what was searched rather than the answer
        key_artist = record.get("source_artist") or artist
        key_title = record.get("source_title") or title
        key = generate_normalized_key(key_artist, key_title)
        if key:
            self._by_key[key] = record
        if record.get("filename"):
            self._by_filename[record["filename"]] = record
        self._count += 1

    @classmethod
    def from_json(cls, path: Path) -> "CorrectionIndex":
        """Load a JSON list of ``{artist, title, filename?, id?, source_artist?, source_title?}`` records."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read corrections file {path}: {e}") from e
        if not isinstance(data, list):
            raise ConfigError(f"Corrections file {path} must contain a JSON list")

        index = cls([r for r in data if isinstance(r, dict)])
        log.info(f"Loaded {len(index)} corrections from {path}")
        return index

    def lookup(self, artist: str, title: str, filename: str = "") -> Candidate | None:
        key = generate_normalized_key(artist, title) if artist and title else None
        if key and key in self._by_key:
            log.info(f"Knowledge hit (normalized key): {key}")
            return self._to_candidate(self._by_key[key], KEY_CONFIDENCE)

        if filename and filename in self._by_filename:
            log.info(f"Knowledge hit (filename): {filename}")
            return self._to_candidate(self._by_filename[filename], FILENAME_CONFIDENCE)

        return None

    @staticmethod
    def _to_candidate(record: dict, confidence: float) -> Candidate:
        artist = record["artist"].strip()
        title = record["title"].strip()
        return Candidate(
            id=str(record.get("id") or generate_normalized_key(artist, title) or title),
            title=title,
            artist=artist,
            source=KNOWLEDGE,
            year=record.get("year"),
            score=round(confidence * 100),
        )
