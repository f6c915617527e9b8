"""TagFixer -- match noisy artist/title metadata to canonical catalog releases.

Core modules:
    config       -- Matcher configuration via pydantic-settings (.env + env vars),
                    loguru sink setup
    cli          -- Click CLI: `search` and `rank-tracks`
    service      -- MatchService facade: heuristics -> knowledge -> search -> AI fallback
    orchestrator -- Batched, rate-limited strategy execution with early stop
    strategies   -- Tiered search-strategy generation from one noisy input
    scoring      -- Candidate relevance scoring (artist, title, rescue, bonuses)
    tracks       -- Track ranking and selection within a release tracklist
    normalize    -- String normalization, similarity, and typo-variant generation
    filename     -- Filename cleanup, garbage detection, artist/title splitting
    knowledge    -- Lookup of previously confirmed corrections
    ai           -- AI filename parsing via any OpenAI-compatible endpoint (Groq,
                    LiteLLM, Ollama)
    models       -- Enums, constants, and dataclasses
    errors       -- Exception hierarchy

Subpackages:
    api          -- Catalog clients (Discogs, MusicBrainz) on httpx.AsyncClient
"""
