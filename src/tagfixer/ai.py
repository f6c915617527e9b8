"""AI-assisted filename parsing using OpenAI-compatible APIs.

Consulted only when the heuristics are weak: low confidence, garbled
tags, or a catalog search that found nothing convincing. Works with any
OpenAI-compatible endpoint (Groq, OpenAI, LiteLLM, Ollama).
"""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass

from loguru import logger

from .filename import detect_garbage
from .models import GOOD_SCORE, Candidate

log = logger.bind(stage="ai")

LOW_CONFIDENCE = 0.5
MIN_AI_CONFIDENCE = 0.5

SYSTEM_PROMPT = """You parse messy electronic-music filenames into the correct artist and title.

Ignore encoding garbage completely: sequences containing characters such as
º ª ß Û ¢ ¶ { } Õ þ » ê ^ are corruption, never part of a name. If the artist
tag is garbage but the title tag is clean, keep the clean title.

Strip non-title noise: track numbers ("01 -", "A1"), label codes ("[RWND001]"),
durations ("-4.48"), bitrates ("-128", "(320kbps)"), catalog ids ("-001945"),
quality tags ("[HQ]") and uploader credits ("-by someone").

Fix obvious letter-repeat typos ("Twoo" -> "Two") but keep real doubles
(good, cool, bass, deep, free, groove). Keep version info such as
"(Original Mix)" or "(Remix)" with the title.

Reply with ONLY JSON, no markdown:
{"artist": "Artist", "title": "Title", "confidence": 0.95}

Confidence: 0.95+ unambiguous, 0.85 very likely, 0.7 good guess,
0.5 several readings possible, below 0.5 very uncertain."""


@dataclass
class AiParse:
    artist: str
    title: str
    confidence: float


def get_client(base_url: str, api_key: str):
    """Return an OpenAI client configured for the given endpoint, or None.

    Returns None if base_url is empty (AI disabled).
    """
    if not base_url:
        return None

    from openai import OpenAI

    # OpenAI SDK expects base_url WITHOUT /v1 -- it appends that itself
    clean_url = base_url.rstrip("/")
    if clean_url.endswith("/v1"):
        clean_url = clean_url[:-3].rstrip("/")

    return OpenAI(
        base_url=clean_url,
        api_key=api_key or "not-needed",
    )


def needs_fallback(
    confidence: float,
    has_garbage: bool,
    candidates: list[Candidate],
) -> bool:
    """Decide if the AI parse should fire for this file."""
    if confidence < LOW_CONFIDENCE or has_garbage:
        return True
    if not candidates:
        return True
    return candidates[0].score < GOOD_SCORE


def build_prompt(filename: str, artist: str = "", title: str = "") -> str:
    nonce = uuid.uuid4().hex[:8]
    lines = [f'[{nonce}] FILENAME: "{filename}"']

    if artist or title:
        lines.append("")
        lines.append("EXISTING TAGS:")
        lines.append(f'- Artist tag: "{artist or "(empty)"}"')
        lines.append(f'- Title tag: "{title or "(empty)"}"')

        artist_garbage = detect_garbage(artist)
        title_garbage = detect_garbage(title)
        if artist_garbage and not title_garbage:
            lines.append("")
            lines.append("NOTE: the artist tag is encoding garbage; the title tag looks clean.")
        elif artist_garbage and title_garbage:
            lines.append("")
            lines.append("NOTE: both tags are encoding garbage; parse the filename only.")

    lines.append("")
    lines.append("Extract the correct artist and title. Return ONLY JSON.")
    return "\n".join(lines)


def parse_filename(
    client,
    model: str,
    filename: str,
    artist: str = "",
    title: str = "",
) -> AiParse | None:
    """Ask the model for a clean artist/title. Returns None when unavailable or unusable."""
    if client is None or not (filename or artist or title):
        return None

    log.debug(f"Asking AI to parse {filename!r}")

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(filename, artist, title)},
            ],
            max_tokens=256,
            temperature=0.3,
            extra_headers={"Cache-Control": "no-cache"},
        )
        content = (response.choices[0].message.content or "").strip()
    except Exception as e:
        log.warning(f"AI filename parse failed: {e}")
        return None

    log.debug(f"AI response: {content}")
    parsed = _parse_response(content)
    if parsed is None:
        log.warning("AI response was not usable JSON")
    return parsed


def _parse_response(content: str) -> AiParse | None:
    """Parse the JSON reply, tolerating a surrounding markdown code fence."""
    text = content.strip()
    if text.startswith("```"):
        text = re.sub(r"```(?:json)?\n?", "", text).replace("```", "").strip()

    try:
        data = json.loads(text)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None
    artist = data.get("artist")
    title = data.get("title")
    confidence = data.get("confidence")
    if not isinstance(artist, str) or not isinstance(title, str):
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None

    return AiParse(
        artist=artist.strip(),
        title=title.strip(),
        confidence=min(1.0, max(0.0, float(confidence))),
    )
