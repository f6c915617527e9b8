"""Filename heuristics: clean download-site noise and split artist/title.

Typical inputs look like ``"(A2) Artist - Title-2010-1-003236.mp3"`` or
``"01 - Artist_-_Title (HQ).mp3"``. Prefixes and suffixes are stripped in a
loop until nothing changes, then the remainder is split on " - " (or a
bare "-" as a weaker fallback).
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from .normalize import generate_normalized_key, is_valid_tag, normalize_strict

log = logger.bind(stage="filename")

GARBAGE_RE = re.compile(r"[ºª§ß¢¶{}þÕÛê^°¨©®™·¿¡«»×÷]+")

_AUDIO_EXT_RE = re.compile(r"\.(mp3|wav|flac|aiff|m4a|ogg)$", re.IGNORECASE)

_DIRTY_PREFIX_RES = (
    re.compile(r"^([(\[])([A-Z]{1,3}|[A-Z]*\d+)([)\]])\s*", re.IGNORECASE),  # (A1) [B2]
    re.compile(r"^\d+\s*-\s*"),  # 01 -
    re.compile(r"^\d+\.\d+\.?"),  # 1.04.
    re.compile(r"^\d+\.\s*"),  # 01.
    re.compile(r"^\d+$"),  # bare track number
    re.compile(r"^'?\d{4}\s*-\s*"),  # '1996 -
)

_PREFIX_RULES = (
    (re.compile(r"^(19[89]\d|20[0-2]\d)\s*[-:]\s*"), ""),  # 1996 -
    (re.compile(r"^[(\[ ]?[A-D][1-9¹²³][)\] ]?\s*[-:]?\s*", re.IGNORECASE), ""),  # (A1)
    (re.compile(r"^\d{1,2}\s+-\s+"), ""),  # 02 -
    (re.compile(r"^\d{1,2}\.\d{1,2}\.?\s*"), ""),  # 1.04.
    (re.compile(r"^\d{1,2}[.)-]\s*"), ""),  # 01. 1) 01-
    (re.compile(r"^\d{1,2}\s+(?=[A-Z])"), ""),  # 08 Artist
    (re.compile(r"^\[[^\]]*\]\s*[-:]?\s*"), ""),  # [Label (CODE) 1998 A2] -
    (re.compile(r"^\([^)]*(?:MX|CODE|CAT|VOL)[^)]*\)\s*", re.IGNORECASE), ""),  # (NM 5085 MX)
)

_SUFFIX_RULES = (
    (re.compile(r"[-_]\d{5,}$"), ""),  # -003236
    (re.compile(r"[-_]\d{4}[-_]\d+[-_]\d+$"), ""),  # -2010-1-003236
    (re.compile(r"[-_]\d{4}[-_]\d{1,2}$"), ""),  # -2010-1
    (re.compile(r"(.{5,})[-_]\d{4}$"), r"\1"),  # -2010
    (re.compile(r"[-_]\d+\.\d+[-_]\d+[-_]\d+$"), ""),  # -6.47-212-003781
    (re.compile(r"[-_]\d{1,2}\.\d{2}[-_]\d{2,3}$"), ""),  # -8.51-128
    (re.compile(r"[-_]\d{1,2}\.\d{2}$"), ""),  # -6.47
    (re.compile(r"[-_][A-Za-z][^-]*[-_](?:CD|Vol|Part|Disc)\s*\.?\s*\d+[-_]\d+$", re.IGNORECASE), ""),
    (re.compile(r"\.vinyl[-_][^-]+[-_][^-]+[-_]\d+$", re.IGNORECASE), ""),
    (re.compile(r"[-_][A-Za-z][A-Za-z\s]+[-_]\d{4,}$"), ""),  # -ArtistName-0001
    (re.compile(r"[-_](?:mp3|wav|flac|aiff|lyrics|vinyl|Other)$", re.IGNORECASE), ""),
    (re.compile(r"\s*\((?:hq|lq|high|low|med)(?:\s+quality)?\)$", re.IGNORECASE), ""),
    (re.compile(r"\s*\(\d{2,3}\s*(?:kbps|kb/s|kbs)?\)$", re.IGNORECASE), ""),
    (re.compile(r"\s*\((?:mp3|wav|flac|aac|ogg|wma)\)$", re.IGNORECASE), ""),
    (re.compile(r"[-_]by[\s_]+[a-zA-Z0-9_]+[-_]?\d*$", re.IGNORECASE), ""),  # -by user
    (re.compile(r"(\))[-_]\d{1,2}$"), r"\1"),
    (re.compile(r"([a-zA-Z)])[-_]\d{1,2}$"), r"\1"),
    (re.compile(r"[-_]+$"), ""),
)

_EDGE_PUNCT_RE = re.compile(r"^[-_.\s]+|[-_.\s]+$")


@dataclass
class HeuristicResult:
    """Best-guess artist/title for one file, before any catalog search."""

    artist: str
    title: str
    confidence: float
    has_garbage: bool = False
    normalized_key: str | None = None


def detect_garbage(text: str | None) -> bool:
    """True when the text contains mojibake characters from a broken encoding."""
    return bool(text) and GARBAGE_RE.search(text) is not None


def has_dirty_prefix(text: str | None) -> bool:
    """True for tags that start with a track number, vinyl side, or year."""
    if not text:
        return False
    return any(p.search(text) for p in _DIRTY_PREFIX_RES)


def _apply_until_stable(text: str, rules) -> str:
    prev = None
    while text != prev:
        prev = text
        for pattern, repl in rules:
            text = pattern.sub(repl, text)
    return text.strip()


def clean_prefix(text: str) -> str:
    """Strip leading years, vinyl codes, track numbers and label brackets."""
    cleaned = re.sub(r"^['\"`]+", "", text.strip())
    return _apply_until_stable(cleaned, _PREFIX_RULES)


def clean_suffix(text: str) -> str:
    """Strip trailing catalog ids, durations, bitrates, quality tags and uploader credits."""
    return _apply_until_stable(text.strip(), _SUFFIX_RULES)


def looks_like_track_number(text: str) -> bool:
    t = text.strip()
    return bool(
        re.fullmatch(r"\d{1,3}", t)
        or re.fullmatch(r"\d{1,2}\.\d{0,2}", t)
        or re.fullmatch(r"[A-D][1-9]", t, re.IGNORECASE)
    )


def looks_like_metadata(text: str) -> bool:
    """True for segments that are a track number, side, year, or id rather than an artist."""
    t = text.strip().strip("'\"`")
    return bool(
        re.fullmatch(r"\d{1,3}", t)
        or re.fullmatch(r"\d{1,2}\.\d{0,2}", t)
        or re.fullmatch(r"[A-D][1-9¹²³]", t, re.IGNORECASE)
        or re.fullmatch(r"19[89]\d|20[0-2]\d", t)
        or re.fullmatch(r"\d{5,}", t)
    )


def split_artist_title(cleaned: str) -> tuple[str, str, float]:
    """Split a cleaned name into (artist, title, confidence).

    " - " separated -> 0.9 (leading metadata segments skipped),
    bare "-" separated -> 0.7, no usable split -> title only at 0.3.
    """
    parts = cleaned.split(" - ")
    if len(parts) >= 2:
        idx = 0
        while idx < len(parts) - 1 and looks_like_metadata(parts[idx]):
            idx += 1
        artist = parts[idx].strip()
        title = " - ".join(parts[idx + 1:]).strip()
        if len(artist) >= 2 and len(title) >= 2:
            return artist, title, 0.9

    parts = cleaned.split("-")
    for i in range(1, len(parts)):
        artist = "-".join(parts[:i]).strip()
        title = "-".join(parts[i:]).strip()
        if len(artist) >= 2 and not looks_like_track_number(artist) and len(title) >= 2:
            return artist, title, 0.7

    return "", cleaned, 0.3


def parse_filename(filename: str) -> tuple[str, str]:
    """Best-effort (artist, title) from a raw audio filename."""
    base = _AUDIO_EXT_RE.sub("", filename or "")

    cleaned = clean_suffix(clean_prefix(base))
    # Underscore separators survive suffix cleaning so "-_" codes still match
    cleaned = cleaned.replace("_-_", " - ").replace("_", " ")
    cleaned = " ".join(cleaned.split())

    artist, title, _ = split_artist_title(cleaned)
    if title:
        title = clean_suffix(title)
        # "Artist - Title-Artist" uploads repeat the artist at the end
        if artist and title.lower().endswith(artist.lower()):
            pos = title.lower().rfind(artist.lower())
            if pos > 0:
                title = re.sub(r"[-_\s]+$", "", title[:pos]).strip()

    artist = _EDGE_PUNCT_RE.sub("", artist).strip()
    title = _EDGE_PUNCT_RE.sub("", title).strip()
    return artist, title


def strip_artist_prefix(title: str, artist: str) -> str:
    """Drop a leading "Artist -" from a title that repeats the artist."""
    stripped = re.sub(
        rf"^{re.escape(artist)}\s*[-:]\s*", "", title, count=1, flags=re.IGNORECASE
    ).strip()
    return stripped or title


def resolve_input(
    filename: str = "",
    hint_artist: str = "",
    hint_title: str = "",
    garbage_detector: Callable[[str], bool] = detect_garbage,
) -> HeuristicResult:
    """Combine tag hints with the parsed filename into one search input.

    Hints win unless they are empty, garbled, filename-shaped, or carry a
    dirty prefix. A title hint that starts with the artist ("Artist Title")
    also counts as dirty. Confidence: 0.8 normally, 0.4 without an artist,
    0.2 when any input is garbled.
    """
    hint_artist = (hint_artist or "").strip()
    hint_title = (hint_title or "").strip()
    base = _AUDIO_EXT_RE.sub("", filename or "")

    has_garbage = bool(base and garbage_detector(base)) or bool(
        hint_artist and garbage_detector(hint_artist)
    )

    parsed_artist, parsed_title = parse_filename(filename) if filename else ("", "")

    artist = hint_artist
    if (
        not artist
        or garbage_detector(artist)
        or has_dirty_prefix(artist)
        or not is_valid_tag(artist)
    ):
        if parsed_artist:
            log.debug(f"Artist hint {hint_artist!r} replaced by parsed {parsed_artist!r}")
            artist = parsed_artist

    title = hint_title
    title_dirty = has_dirty_prefix(title) or bool(title and not is_valid_tag(title))
    if artist and title:
        strict_artist = normalize_strict(artist)
        strict_title = normalize_strict(title)
        if (
            strict_artist
            and strict_title.startswith(strict_artist)
            and len(strict_title) > len(strict_artist)
        ):
            title_dirty = True

    if not title or garbage_detector(title) or title_dirty:
        usable = parsed_title and not (
            title and not garbage_detector(title) and garbage_detector(parsed_title)
        )
        if usable:
            log.debug(f"Title hint {hint_title!r} replaced by parsed {parsed_title!r}")
            title = parsed_title
        elif title and artist:
            title = strip_artist_prefix(title, artist)

    if has_garbage:
        confidence = 0.2
    elif not artist:
        confidence = 0.4
    else:
        confidence = 0.8

    result = HeuristicResult(
        artist=artist,
        title=title,
        confidence=confidence,
        has_garbage=has_garbage,
        normalized_key=generate_normalized_key(artist, title),
    )
    log.debug(
        f"Resolved {filename!r}: artist={artist!r} title={title!r} "
        f"confidence={confidence} garbage={has_garbage}"
    )
    return result
