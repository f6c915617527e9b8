"""String cleanup, similarity, and typo-variant generation for artist/title matching.

Pure functions only. Similarity is a containment-aware normalized edit
distance (rapidfuzz Levenshtein); variant generators feed the search
strategies and the fuzzy artist comparison in scoring.
"""

import itertools
import re
import unicodedata
from dataclasses import dataclass

from loguru import logger
from rapidfuzz.distance import Levenshtein

log = logger.bind(stage="normalize")

MAX_FUZZY_VARIANTS = 20

_SUPERSCRIPTS = str.maketrans("¹²³⁴⁵⁶⁷⁸⁹⁰", "1234567890")

# Words whose doubled letters are legitimate and must not be collapsed
LEGITIMATE_DOUBLES: frozenset[str] = frozenset(
    {
        "good", "cool", "bass", "boom", "mood", "room", "doom", "zoom",
        "free", "feel", "need", "feed", "speed", "seen", "been", "keen",
        "deep", "keep", "sleep", "sweet", "street", "meet", "feet",
        "all", "call", "fall", "ball", "wall", "hall", "tall", "small",
        "full", "pull", "bull", "still", "will", "kill", "fill", "chill",
        "miss", "kiss", "pass", "mass", "lass", "glass", "class", "grass",
        "off", "stuff", "buff", "puff", "tuff", "riff", "stiff",
        "add", "odd", "buzz", "jazz", "fizz", "fuzz",
        "groove", "smooth", "loop", "roof", "proof", "tool", "pool", "fool",
        "teen", "green", "queen", "scene", "screen",
        "wood", "hood", "food", "blood", "flood",
        "book", "look", "hook", "took", "cook", "shook",
        "poor", "door", "floor", "moor",
        "too", "boo", "woo", "zoo", "goo",
        "bee", "see", "fee", "lee", "tee", "wee",
        "ill", "bell", "cell", "dell", "fell", "hell", "jell", "sell",
        "tell", "well", "yell", "spell", "smell", "shell", "swell", "dwell",
    }
)

# Genre/thematic words used to split compound names ("Basemania" -> "Base Mania")
COMPOUND_WORDS: tuple[str, ...] = (
    "base", "hard", "soft", "new", "old", "deep", "dark", "light", "blue",
    "red", "club", "house", "trance", "techno", "dance", "euro", "happy",
    "acid", "mania", "project", "system", "zone", "time", "boy", "girl",
    "man", "woman", "crew", "squad", "inc", "ltd", "mix", "remix", "best",
    "star", "fire", "ice", "beat", "bass", "drum", "jungle", "core",
    "style", "force", "power", "mega", "super", "ultra", "hyper", "cyber",
    "space", "galaxy", "future", "past", "dream", "night", "day", "love",
    "hate", "life", "death", "soul", "mind", "body", "head", "hand", "foot",
    "eye", "ear", "mouth", "nose", "face", "tek",
)

# (pattern, replacement) pairs for common phonetic misspellings
_PHONETIC_SUBSTITUTIONS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"ph", re.IGNORECASE), "f"),  # Phat -> Fat
    (re.compile(r"f", re.IGNORECASE), "ph"),  # Fat -> Phat
    (re.compile(r"ck", re.IGNORECASE), "k"),  # Teck -> Tek
    (re.compile(r"k(?=[aeiou])", re.IGNORECASE), "c"),  # Kore -> Core
    (re.compile(r"c(?=[aeiou])", re.IGNORECASE), "k"),  # Core -> Kore
    (re.compile(r"y$", re.IGNORECASE), "ie"),  # Party -> Partie
    (re.compile(r"ie$", re.IGNORECASE), "y"),  # Partie -> Party
    (re.compile(r"x", re.IGNORECASE), "ks"),  # Max -> Maks
    (re.compile(r"ks", re.IGNORECASE), "x"),  # Maks -> Max
)

_NUMBER_WORDS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\btwo\b", re.IGNORECASE), "2"),
    (re.compile(r"\b2\b"), "Two"),
    (re.compile(r"\bone\b", re.IGNORECASE), "1"),
    (re.compile(r"\b1\b"), "One"),
    (re.compile(r"\bthree\b", re.IGNORECASE), "3"),
    (re.compile(r"\b3\b"), "Three"),
    (re.compile(r"\bfour\b", re.IGNORECASE), "4"),
    (re.compile(r"\b4\b"), "Four"),
    (re.compile(r"\bfor\b", re.IGNORECASE), "4"),  # "4 U" style
    (re.compile(r"\bto\b", re.IGNORECASE), "2"),  # "2 U" style
    (re.compile(r"\byou\b", re.IGNORECASE), "U"),
    (re.compile(r"\bu\b", re.IGNORECASE), "You"),
    (re.compile(r"\bare\b", re.IGNORECASE), "R"),
    (re.compile(r"\br\b", re.IGNORECASE), "Are"),
)

_TRAILING_PAREN_RE = re.compile(r"^(.+?)\s*[(\[]([^)\]]+)[)\]]\s*$")
_VERSION_SUFFIX_RE = re.compile(
    r"\s*-\s*(original mix|radio edit|extended mix|club mix|dub mix|remix|instrumental).*$",
    re.IGNORECASE,
)
_FEATURING_RE = re.compile(r"\s*(feat\.?|ft\.?|featuring)\s+.*", re.IGNORECASE)
_VOLUME_SUFFIX_RE = re.compile(
    r"\s+(?:vol|volume|pt|part)\.?\s*(?:\d+|[IVX]+)\s*$", re.IGNORECASE
)
_VOLUME_SUFFIX_LOOSE_RE = re.compile(
    r"[\s-]+(?:vol|volume|pt|part)\.?\s*(?:\d+|[IVX]+)\s*$", re.IGNORECASE
)


def _unique(items) -> list[str]:
    """Deduplicate preserving first occurrence, dropping empty strings."""
    return [s for s in dict.fromkeys(items) if s]


@dataclass(frozen=True)
class ParenthesisInfo:
    base: str
    mix_info: str
    full: str


def extract_parenthesis_info(title: str) -> ParenthesisInfo:
    """Split a trailing "(...)" or "[...]" group off a title.

    Only a group anchored at the end of the string is split:
    "Rock This Place (H.Seral V.)" -> base="Rock This Place", mix_info="H.Seral V."
    """
    match = _TRAILING_PAREN_RE.match(title)
    if match:
        return ParenthesisInfo(
            base=match.group(1).strip(),
            mix_info=match.group(2).strip(),
            full=title,
        )
    return ParenthesisInfo(base=title, mix_info="", full=title)


def calculate_string_similarity(a: str, b: str) -> float:
    """Similarity between two strings in [0, 1].

    Equal -> 1, one contained in the other -> length ratio, otherwise
    (max_len - edit_distance) / max_len. Either side empty -> 0.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    s1 = a.lower()
    s2 = b.lower()
    if s1 == s2:
        return 1.0

    if s2 in s1:
        return len(s2) / len(s1)
    if s1 in s2:
        return len(s1) / len(s2)

    longest = max(len(s1), len(s2))
    return (longest - Levenshtein.distance(s1, s2)) / longest


def normalize_superscripts(s: str) -> str:
    """Convert superscript digits to plain digits: "HS²" -> "HS2"."""
    return s.translate(_SUPERSCRIPTS)


def normalize_artist_for_comparison(s: str) -> str:
    """Collapse artist spellings to one comparable form.

    "L.I.N.D.A." and "Linda" both become "linda"; "DJ Karrion 2" -> "karrion".
    """
    s = s.lower()
    s = re.sub(r"^(dj|mc|dr|mr|ms|the)\s+", "", s)
    s = re.sub(r"[.\-_'*]", "", s)
    s = re.sub(r"\s+", "", s)
    s = re.sub(r"\d+$", "", s)
    return s.strip()


def normalize_title_for_matching(s: str) -> str:
    """Lowercase, drop punctuation and apostrophes, collapse whitespace."""
    s = s.lower()
    s = re.sub(r"[.'!?,;:\-_’\"]", "", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def normalize_strict(text: str) -> str:
    """NFKD-fold and keep only ASCII letters and digits."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9]", "", stripped.lower())


def generate_normalized_key(artist: str, title: str) -> str | None:
    """Stable "artist|title" lookup key, or None if either side folds to empty."""
    a = normalize_strict(artist or "")
    t = normalize_strict(title or "")
    if not a or not t:
        return None
    return f"{a}|{t}"


def clean_artist_name(artist: str) -> str:
    """Strip trailing Vol/Volume/Part markers that belong to the release.

    "Octopussy Vol 2" -> "Octopussy"
    """
    if not artist:
        return ""
    cleaned = _VOLUME_SUFFIX_RE.sub("", artist).strip()
    if cleaned == artist:
        cleaned = _VOLUME_SUFFIX_LOOSE_RE.sub("", artist).strip()
    return cleaned


def is_various_artists(artist: str) -> bool:
    if not artist:
        return False
    lower = artist.lower()
    return lower in ("various", "various artists", "various production") or (
        "various artists" in lower
    )


def format_artist_name(artists: list[dict] | None) -> str:
    """Join a provider artist-credit list into one display string.

    Honors each entry's "join" (", ", " & ", " Vs. ") and strips Discogs
    disambiguation suffixes like "Name (2)".
    """
    if not artists:
        return ""
    parts = []
    for idx, a in enumerate(artists):
        name = re.sub(r"\s*\(\d+\)$", "", a.get("name", "") or "")
        suffix = ""
        if idx < len(artists) - 1:
            join = (a.get("join") or "/").strip() or "/"
            suffix = ", " if join == "," else f" {join} "
        parts.append(name + suffix)
    return "".join(parts).strip()


def normalize_artist_name(artist: str) -> list[str]:
    """Search variants for an artist name, original first.

    Handles superscripts, DJ prefixes, hyphens, dots, trailing numbers,
    and acronym spellings ("Linda" <-> "L.I.N.D.A.").
    """
    if not artist:
        return []

    variants = [artist]
    normalized = artist.strip()

    with_digits = normalize_superscripts(normalized)
    if with_digits != normalized:
        variants.append(with_digits)
        normalized = with_digits

    normalized = re.sub(r"^dj\s+", "DJ ", normalized, flags=re.IGNORECASE)
    if normalized != artist:
        variants.append(normalized)

    without_dj = re.sub(r"^DJ\s+", "", normalized, flags=re.IGNORECASE)
    if without_dj != normalized:
        variants.append(without_dj)

    # K-rrion -> Krrion, K rrion
    no_hyphens = normalized.replace("-", "")
    if no_hyphens != normalized:
        variants.append(no_hyphens)
    hyphen_to_space = normalized.replace("-", " ")
    if hyphen_to_space != normalized:
        variants.append(hyphen_to_space)

    # Brain 6 -> Brain
    no_numbers = re.sub(r"\s*\d+\s*$", "", normalized).strip()
    if no_numbers != normalized and len(no_numbers) > 2:
        variants.append(no_numbers)

    # L.I.N.D.A. -> LINDA
    no_dots = normalized.replace(".", "")
    if no_dots != normalized:
        variants.append(no_dots)

    # Linda -> L.i.n.d.a., L.I.N.D.A.
    if len(normalized.split()) == 1 and 3 <= len(normalized) <= 8:
        with_dots = ".".join(normalized) + "."
        variants.append(with_dots)
        variants.append(with_dots.upper())

    upper_no_dots = re.sub(r"[^A-Z0-9]", "", normalized.upper())
    if upper_no_dots != normalized.upper():
        variants.append(upper_no_dots)

    clean = re.sub(r"[^\w\s\-'&]", " ", normalized)
    clean = re.sub(r"\s+", " ", clean).strip()
    if clean != normalized:
        variants.append(clean)

    return _unique(variants)


def normalize_title_for_search(title: str) -> list[str]:
    """Search variants for a title, original first."""
    if not title:
        return []

    variants = [title]
    parsed = extract_parenthesis_info(title)

    if parsed.base != title:
        variants.append(parsed.base)

    if parsed.mix_info and len(parsed.mix_info) > 3:
        variants.append(f"{parsed.base} {parsed.mix_info}")

    cleaned = re.sub(r"\s*[(\[][^)\]]*[)\]]\s*", " ", title)
    cleaned = _VERSION_SUFFIX_RE.sub("", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if cleaned != title and len(cleaned) > 2:
        variants.append(cleaned)

    cleaned = _FEATURING_RE.sub("", title).strip()
    if cleaned != title:
        variants.append(cleaned)

    return _unique(variants)


def fix_repeated_letters(s: str, limit: int = MAX_FUZZY_VARIANTS) -> list[str]:
    """Variants with suspicious repeated letters collapsed, word by word.

    "Twoo" -> "Two", "Daaance" -> "Dance"/"Daance". Words in
    LEGITIMATE_DOUBLES ("good", "bass", ...) are left alone. At most
    ``limit`` word combinations are built; the original string comes first.
    """
    tokens = re.split(r"(\s+)", s)
    per_token: list[list[str]] = []

    for token in tokens:
        if not token or token.isspace():
            per_token.append([token])
            continue

        options = [token]
        has_triple = re.search(r"([^\W\d_])\1{2,}", token, re.IGNORECASE)
        has_double = re.search(r"([^\W\d_])\1", token, re.IGNORECASE)

        if (has_triple or has_double) and token.lower() not in LEGITIMATE_DOUBLES:
            if has_triple:
                reduced = re.sub(r"([^\W\d_])\1{2,}", r"\1", token, flags=re.IGNORECASE)
                if reduced != token:
                    options.append(reduced)
                to_double = re.sub(r"([^\W\d_])\1{2,}", r"\1\1", token, flags=re.IGNORECASE)
                if to_double != token and to_double != reduced:
                    options.append(to_double)
            reduced = re.sub(r"([^\W\d_])\1", r"\1", token, flags=re.IGNORECASE)
            if reduced != token and reduced not in options:
                options.append(reduced)

        per_token.append(list(dict.fromkeys(options)))

    # 2**n combinations for n doubled words; keep the first `limit`
    combos = (
        "".join(parts) for parts in itertools.islice(itertools.product(*per_token), limit)
    )
    return _unique([s, *combos])


def capitalize_first(s: str) -> str:
    return s[:1].upper() + s[1:] if s else ""


def generate_compound_variants(s: str) -> list[str]:
    """Split single-word names on camelCase or known word boundaries.

    "BaseMania" -> "Base Mania"; "Basemania" -> "Base mania", "Base Mania".
    """
    if not s or " " in s or len(s) < 5:
        return []

    variants = []
    lower = s.lower()

    camel = re.sub(r"([a-z])([A-Z])", r"\1 \2", s)
    if camel != s:
        variants.append(camel)

    for word in COMPOUND_WORDS:
        if lower.startswith(word) and len(lower) > len(word) + 2:
            head, rest = s[: len(word)], s[len(word):]
            variants.append(f"{head} {rest}")
            variants.append(f"{capitalize_first(head)} {capitalize_first(rest)}")

        if lower.endswith(word) and len(lower) > len(word) + 2:
            cut = len(s) - len(word)
            head, rest = s[:cut], s[cut:]
            variants.append(f"{head} {rest}")
            variants.append(f"{capitalize_first(head)} {capitalize_first(rest)}")

    return _unique(variants)


def generate_fuzzy_variants(s: str) -> list[str]:
    """Typo-tolerant variants of a search term, original first, capped at 20."""
    if not s or len(s) < 2:
        return [s]

    variants = [s]
    variants.extend(fix_repeated_letters(s))

    for v in list(variants):
        for pattern, replacement in _PHONETIC_SUBSTITUTIONS:
            variant = pattern.sub(replacement, v)
            if variant != v and variant not in variants:
                variants.append(variant)

    for v in list(variants):
        for pattern, replacement in _NUMBER_WORDS:
            variant = pattern.sub(replacement, v)
            if variant != v and variant not in variants:
                variants.append(variant)

    words = s.split()
    if len(words) >= 2:
        rest = " ".join(words[1:])
        variants.append("".join(words))  # Two Good -> TwoGood
        variants.append("-".join(words))  # Two Good -> Two-Good
        variants.append(f"{words[0][0]}. {rest}")  # T. Good
        variants.append(f"{words[0][0]} {rest}")  # T Good

    variants.extend(generate_compound_variants(s))

    result = _unique(variants)[:MAX_FUZZY_VARIANTS]
    log.trace(f"generate_fuzzy_variants({s!r}) -> {len(result)} variants")
    return result


def looks_like_filename(tag: str) -> bool:
    """Heuristically decide whether a tag value is a raw filename.

    A clean tag is either a pure artist or a pure title, never both.
    """
    # Too long for a real title/artist
    if len(tag) > 80:
        return True

    # Numeric codes: -003971
    if re.search(r"\d{5,}", tag):
        return True

    # Year-number-code: -2010-1-003971
    if re.search(r"[-_]\d{4}[-_]\d+[-_]\d+", tag):
        return True

    # Numeric suffix: -003971, _12345
    if re.search(r"[-_]\d{4,}$", tag):
        return True

    # Leading track number: "05 - ", "1 - "
    if re.match(r"^\d{1,2}\s+-\s+", tag):
        return True

    # Compact track number: "06-Artist"
    if re.match(r"^\d{1,2}-[A-Za-z]", tag):
        return True

    # Vinyl position: (A1), [B2], A1
    if re.match(r"^[(\[ ]?[A-D][1-9²³¹][)\]]?\s", tag, re.IGNORECASE):
        return True

    # Underscore separators in long strings
    if "_" in tag and len(tag) > 25:
        return True

    # Repeated " - " separators
    if tag.count(" - ") >= 2:
        return True

    # Duration-bitrate in the middle: -5.22-192-
    if re.search(r"[-_]\d{1,2}\.\d{2}[-_]\d{2,3}", tag):
        return True

    # Artist-Title-Suffix with numeric ending
    if re.match(r"^[A-Za-z].*-[A-Za-z].*-\d", tag):
        return True

    # "Artist - Title" with real content on both sides
    parts = tag.split(" - ")
    if len(parts) == 2:
        left, right = parts[0].strip(), parts[1].strip()
        if (
            len(left) >= 2
            and len(right) >= 2
            and re.match(r"^[A-Za-z]", left)
            and re.match(r"^[A-Za-z]", right)
        ):
            return True

    return False


def is_valid_tag(tag: str | None) -> bool:
    """A tag is usable when non-empty, at least 2 chars, and not a filename."""
    if not tag or len(tag.strip()) < 2:
        return False
    return not looks_like_filename(tag)
