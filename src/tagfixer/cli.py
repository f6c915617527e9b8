"""CLI entry point for the tag matcher."""

import asyncio
import json
import os
from pathlib import Path

import click
from loguru import logger

from .config import MatcherConfig
from .errors import TagFixerError
from .knowledge import CorrectionIndex
from .models import DISCOGS, MUSICBRAINZ, TrackCandidate
from .service import MatchService

log = logger.bind(stage="cli")


def _find_config_file() -> Path | None:
    """Look for .env next to the package or in cwd."""
    pkg_dir = Path(__file__).resolve().parent
    for candidate in [
        pkg_dir.parent.parent / ".env",  # dev: src/../.env
        Path.cwd() / ".env",
    ]:
        if candidate.is_file():
            return candidate
    return None


def _load_env_file(env_file: Path) -> None:
    """Load a shell-style .env file into os.environ (without overriding)."""
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        # Don't override existing env vars (CLI > env > file)
        if key not in os.environ:
            os.environ[key] = value


def _build_config(config_file: str | None, verbose: bool, **overrides) -> MatcherConfig:
    env_file = Path(config_file) if config_file else _find_config_file()
    if env_file and env_file.is_file():
        _load_env_file(env_file)

    kwargs = {k: v for k, v in overrides.items() if v is not None}
    if verbose:
        kwargs["verbose"] = True
        kwargs["log_level"] = "DEBUG"

    config = MatcherConfig(**kwargs)
    config.setup_logging()
    if env_file:
        log.debug(f"Loaded env from {env_file}")
    return config


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _load_tracklist(path: Path) -> list[TrackCandidate]:
    """Read a JSON tracklist: a list of {position, title, duration?, artists?, type?}."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.BadParameter(f"cannot read tracklist: {e}", param_hint="--tracklist")
    if isinstance(data, dict):
        data = data.get("tracklist") or data.get("tracks") or []
    if not isinstance(data, list):
        raise click.BadParameter("tracklist must be a JSON list", param_hint="--tracklist")

    tracks = []
    for t in data:
        if not isinstance(t, dict):
            continue
        artists = [
            a.get("name", "") if isinstance(a, dict) else str(a)
            for a in (t.get("artists") or [])
        ]
        tracks.append(
            TrackCandidate(
                position=str(t.get("position", "") or ""),
                title=t.get("title", "") or "",
                duration=t.get("duration", "") or "",
                artists=artists,
                type=t.get("type") or t.get("type_") or "track",
            )
        )
    return tracks


_common_options = [
    click.option("-v", "--verbose", is_flag=True, help="Enable debug logging."),
    click.option(
        "-c",
        "--config",
        "config_file",
        type=click.Path(exists=True),
        default=None,
        help="Path to .env file.",
    ),
]


def common_options(func):
    for option in reversed(_common_options):
        func = option(func)
    return func


@click.group()
def main() -> None:
    """Match noisy artist/title metadata against Discogs and MusicBrainz."""


@main.command()
@click.argument("artist", required=False, default="")
@click.argument("title", required=False, default="")
@click.option("--filename", default="", help="Original filename, parsed as a hint.")
@click.option("--duration", type=float, default=None, help="File duration in seconds.")
@click.option(
    "--confidence",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="External confidence in ARTIST/TITLE (0-1). 0.8+ skips typo-fix searches.",
)
@click.option(
    "--source",
    "sources",
    multiple=True,
    type=click.Choice([DISCOGS, MUSICBRAINZ]),
    help="Provider to query. Can be repeated. Defaults to SOURCES from config.",
)
@click.option(
    "--corrections",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file of confirmed corrections to check before searching.",
)
@click.option("--no-ai", is_flag=True, help="Disable the AI filename-parse fallback.")
@click.option("--limit", type=int, default=10, show_default=True, help="Results to show (0 = all).")
@click.option("--json", "json_out", is_flag=True, help="Output as JSON.")
@common_options
def search(
    artist: str,
    title: str,
    filename: str,
    duration: float | None,
    confidence: float | None,
    sources: tuple[str, ...],
    corrections: str | None,
    no_ai: bool,
    limit: int,
    json_out: bool,
    verbose: bool,
    config_file: str | None,
) -> None:
    """Search catalogs for ARTIST / TITLE and print ranked candidates."""
    if not (artist or title or filename):
        raise click.UsageError("Give ARTIST and/or TITLE, or --filename.")

    config = _build_config(
        config_file,
        verbose,
        sources=",".join(sources) if sources else None,
        ai_fallback=False if no_ai else None,
    )
    knowledge = CorrectionIndex.from_json(Path(corrections)) if corrections else None

    async def _run():
        async with MatchService.from_config(config, knowledge=knowledge) as service:
            return await service.match(artist, title, filename, duration, confidence)

    try:
        report = asyncio.run(_run())
    except TagFixerError as e:
        raise click.ClickException(str(e))

    shown = report.candidates[:limit] if limit > 0 else report.candidates

    if json_out:
        heuristic = report.heuristic
        _echo_json(
            {
                "heuristic": {
                    "artist": heuristic.artist,
                    "title": heuristic.title,
                    "confidence": heuristic.confidence,
                    "hasGarbage": heuristic.has_garbage,
                }
                if heuristic
                else None,
                "knowledgeHit": report.knowledge_hit,
                "ai": {
                    "artist": report.ai_parse.artist,
                    "title": report.ai_parse.title,
                    "confidence": report.ai_parse.confidence,
                }
                if report.ai_parse
                else None,
                "total": len(report.candidates),
                "results": [c.to_dict() for c in shown],
            }
        )
        return

    if report.heuristic:
        click.echo(
            f"Query: {report.heuristic.artist or '-'} / {report.heuristic.title or '-'} "
            f"(confidence {report.heuristic.confidence})"
        )
    if report.ai_parse:
        click.echo(
            f"AI:    {report.ai_parse.artist} / {report.ai_parse.title} "
            f"(confidence {report.ai_parse.confidence:.2f})"
        )
    if not shown:
        click.echo("No matches found.")
        return

    click.echo(f"{len(report.candidates)} candidates:")
    for c in shown:
        year = f" ({c.year})" if c.year else ""
        kind = f" [{c.type}]" if c.type else ""
        click.echo(f"  {c.score:>4}  {c.source}:{c.id}  {c.artist} - {c.title}{year}{kind}")


@main.command("rank-tracks")
@click.argument("title")
@click.option("--artist", default="", help="Artist as tagged or parsed.")
@click.option("--duration", type=float, default=None, help="File duration in seconds.")
@click.option(
    "--tracklist",
    "tracklist_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON tracklist file.",
)
@click.option("--release", "release_id", default=None, help="Fetch the tracklist of this release id.")
@click.option(
    "--source",
    type=click.Choice([DISCOGS, MUSICBRAINZ]),
    default=DISCOGS,
    show_default=True,
    help="Provider for --release.",
)
@click.option(
    "--kind",
    type=click.Choice(["release", "master"]),
    default="release",
    show_default=True,
    help="Release namespace to try first for --release.",
)
@click.option("--filename", default="", help="Original filename, preferred over tags when it parses cleanly.")
@click.option("--select", "select_only", is_flag=True, help="Print only the selected track.")
@click.option("--json", "json_out", is_flag=True, help="Output as JSON.")
@common_options
def rank_tracks_cmd(
    title: str,
    artist: str,
    duration: float | None,
    tracklist_file: str | None,
    release_id: str | None,
    source: str,
    kind: str,
    filename: str,
    select_only: bool,
    json_out: bool,
    verbose: bool,
    config_file: str | None,
) -> None:
    """Rank the tracks of a release against TITLE."""
    if bool(tracklist_file) == bool(release_id):
        raise click.UsageError("Give exactly one of --tracklist or --release.")

    config = _build_config(config_file, verbose, sources=source if release_id else None)

    async def _fetch():
        async with MatchService.from_config(config) as service:
            release = await service.get_release(source, release_id, kind)
            return service, release

    try:
        if release_id:
            service, release = asyncio.run(_fetch())
            if release is None:
                raise click.ClickException(f"Release {release_id} not found on {source}")
            tracklist = release.tracklist or []
            log.info(f"Fetched {release.artist} - {release.title}: {len(tracklist)} tracks")
        else:
            service = MatchService({}, config)
            tracklist = _load_tracklist(Path(tracklist_file))
    except TagFixerError as e:
        raise click.ClickException(str(e))

    if select_only:
        selected = service.select_track(artist, title, tracklist, duration, filename)
        if json_out:
            _echo_json(selected.to_dict() if selected else None)
        elif selected:
            click.echo(f"{selected.position}  {selected.title}  ({selected.score:.1f})")
        else:
            click.echo("No convincing track.")
        return

    ranked = service.rank_tracks(artist, title, tracklist, duration, filename)
    if json_out:
        _echo_json([r.to_dict() for r in ranked])
        return
    if not ranked:
        click.echo("No tracks to rank.")
        return
    for r in ranked:
        b = r.breakdown
        click.echo(
            f"  {r.score:>6.1f}  {r.position:<5} {r.title}  "
            f"(title {b.title_score:.1f}, version {b.version_score:.1f}, "
            f"duration {b.duration_score:.1f})"
        )
