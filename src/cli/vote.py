"""CLI commands for pairwise ranking sessions."""

import logging
import random
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click
import structlog

from src.observability.logging import (
    bind_session_context,
    clear_session_context,
    configure_logging,
)
from src.rankset import (
    PairStrategy,
    RankedSet,
    RankSetError,
    SaveFormat,
    SelectionMetrics,
)
from src.rankset.persistence import detect_format
from src.settings import AppSettings, get_settings


logger = structlog.get_logger()

STRATEGY_CHOICES = [strategy.value for strategy in PairStrategy]
FORMAT_CHOICES = [save_format.value for save_format in SaveFormat]

# Answers accepted at the vote prompt
ANSWER_FIRST = "1"
ANSWER_SECOND = "2"
ANSWER_SKIP = "s"
ANSWER_LOCK_FIRST = "l1"
ANSWER_LOCK_SECOND = "l2"
ANSWER_QUIT = "q"
VOTE_ANSWERS = [
    ANSWER_FIRST,
    ANSWER_SECOND,
    ANSWER_SKIP,
    ANSWER_LOCK_FIRST,
    ANSWER_LOCK_SECOND,
    ANSWER_QUIT,
]
VOTE_PROMPT = "Which is better? [1/2, s=skip, l1/l2=lock, q=quit]"


@dataclass
class SessionOptions:
    """Resolved options for one voting session."""

    save_path: Path
    strategy: PairStrategy
    seed: int | None
    rounds: int | None


def _fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load(
    path: Path, rng: random.Random | None = None
) -> tuple[RankedSet, SaveFormat]:
    """Load a save file in whichever format it was written."""
    try:
        save_format = detect_format(path)
        return RankedSet.load(path, save_format, rng=rng), save_format
    except (RankSetError, OSError) as e:
        _fail(str(e))


def _save(ranked: RankedSet, path: Path, save_format: SaveFormat) -> None:
    """Save a set, turning encode and I/O failures into a CLI error."""
    try:
        ranked.save(path, save_format)
    except (RankSetError, OSError) as e:
        _fail(str(e))


def _existing_names(ranked: RankedSet, names: tuple[str, ...]) -> set[str]:
    """Return the requested names present in the set, reporting the rest."""
    present = {entry.name for entry in ranked}
    for name in names:
        if name not in present:
            click.echo(f"Warning: no entry named '{name}'", err=True)
    return present.intersection(names)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: from RANKVOTE_JSON_LOGS).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool | None) -> None:
    """Rank items by voting on one pair at a time."""
    settings = get_settings()
    configure_logging(
        level=logging.DEBUG if verbose else settings.log_level_value,
        json_format=settings.json_logs if json_logs is None else json_logs,
    )
    ctx.obj = settings


@cli.command()
@click.argument(
    "names_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("out_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "save_format",
    type=click.Choice(FORMAT_CHOICES),
    default=None,
    help="Save format (default: from RANKVOTE_FORMAT).",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing save file.",
)
@click.pass_obj
def init(
    settings: AppSettings,
    names_path: Path,
    out_path: Path,
    save_format: str | None,
    force: bool,
) -> None:
    """Start a new save file from a list of names, one per line."""
    if out_path.exists() and not force:
        _fail(f"{out_path} already exists (use --force to overwrite)")

    try:
        ranked = RankedSet.from_names_file(names_path)
    except (RankSetError, OSError) as e:
        _fail(str(e))

    target_format = SaveFormat(save_format) if save_format else settings.save_format
    _save(ranked, out_path, target_format)
    click.echo(f"Created {out_path} with {len(ranked)} entries.")


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--unsorted",
    is_flag=True,
    help="Keep file order instead of ranking by percentage.",
)
def show(save_path: Path, unsorted: bool) -> None:
    """Print the entries of a save file, best first."""
    ranked, _ = _load(save_path)
    if not unsorted:
        ranked.sort_by_percentage()

    width = len(str(len(ranked)))
    for rank, entry in enumerate(ranked, start=1):
        click.echo(f"{rank:>{width}}. {entry}")


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("names", nargs=-1, required=True)
def add(save_path: Path, names: tuple[str, ...]) -> None:
    """Add new entries to a save file."""
    ranked, save_format = _load(save_path)
    present = {entry.name for entry in ranked}

    added = 0
    for name in names:
        if name in present:
            click.echo(f"Warning: '{name}' already exists, skipping", err=True)
            continue
        ranked.add(name)
        present.add(name)
        added += 1

    _save(ranked, save_path, save_format)
    click.echo(f"Added {added} entries.")


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("names", nargs=-1, required=True)
def remove(save_path: Path, names: tuple[str, ...]) -> None:
    """Remove entries from a save file by name."""
    ranked, save_format = _load(save_path)
    targets = _existing_names(ranked, names)

    removed = ranked.remove(lambda entry: entry.name in targets)

    _save(ranked, save_path, save_format)
    click.echo(f"Removed {removed} entries.")


def _set_locked(save_path: Path, names: tuple[str, ...], locked: bool) -> int:
    """Set the lock flag on named entries and save; return how many changed."""
    ranked, save_format = _load(save_path)
    targets = _existing_names(ranked, names)

    changed = 0
    for entry in ranked:
        if entry.name in targets and entry.locked != locked:
            entry.locked = locked
            changed += 1

    _save(ranked, save_path, save_format)
    return changed


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("names", nargs=-1, required=True)
def lock(save_path: Path, names: tuple[str, ...]) -> None:
    """Exclude entries from further voting."""
    changed = _set_locked(save_path, names, locked=True)
    click.echo(f"Locked {changed} entries.")


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("names", nargs=-1, required=True)
def unlock(save_path: Path, names: tuple[str, ...]) -> None:
    """Make locked entries eligible for voting again."""
    changed = _set_locked(save_path, names, locked=False)
    click.echo(f"Unlocked {changed} entries.")


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.confirmation_option(prompt="Reset all counters and locks?")
def reset(save_path: Path) -> None:
    """Clear every counter and lock flag, keeping the names."""
    ranked, save_format = _load(save_path)
    ranked.reset()
    _save(ranked, save_path, save_format)
    click.echo(f"Reset {len(ranked)} entries.")


@cli.command()
@click.argument(
    "src_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.argument("dst_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--to",
    "target",
    type=click.Choice(FORMAT_CHOICES),
    required=True,
    help="Format to write.",
)
def convert(src_path: Path, dst_path: Path, target: str) -> None:
    """Rewrite a save file in another format."""
    ranked, source_format = _load(src_path)
    _save(ranked, dst_path, SaveFormat(target))
    click.echo(
        f"Converted {src_path} ({source_format.value}) to {dst_path} ({target})."
    )


@cli.command()
@click.argument(
    "save_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--strategy",
    type=click.Choice(STRATEGY_CHOICES),
    default=None,
    help="Pair selection strategy (default: from RANKVOTE_STRATEGY).",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed for pair selection (default: from RANKVOTE_SEED).",
)
@click.option(
    "--rounds",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many votes.",
)
@click.pass_obj
def vote(
    settings: AppSettings,
    save_path: Path,
    strategy: str | None,
    seed: int | None,
    rounds: int | None,
) -> None:
    """Vote on pairs until quitting or no pair is left.

    The save file is rewritten after every vote and lock.
    """
    options = SessionOptions(
        save_path=save_path,
        strategy=PairStrategy(strategy) if strategy else settings.strategy,
        seed=seed if seed is not None else settings.seed,
        rounds=rounds,
    )

    bind_session_context(str(uuid.uuid4()))
    try:
        _run_session(options)
    finally:
        clear_session_context()


def _run_session(options: SessionOptions) -> None:
    """Run the interactive vote loop."""
    log = logger.bind(component="cli", strategy=options.strategy.value)
    ranked, save_format = _load(options.save_path, random.Random(options.seed))
    metrics = SelectionMetrics.get_instance()

    log.info("session_started", path=str(options.save_path), entries=len(ranked))

    votes = 0
    while options.rounds is None or votes < options.rounds:
        pair = ranked.select_pair(options.strategy)
        if pair is None:
            click.echo("No pair available: fewer than two unlocked entries remain.")
            break

        first, second = pair
        click.echo()
        click.echo(f"  [1] {ranked[first].name}")
        click.echo(f"  [2] {ranked[second].name}")
        answer = click.prompt(
            VOTE_PROMPT,
            type=click.Choice(VOTE_ANSWERS),
            show_choices=False,
        )

        if answer == ANSWER_QUIT:
            break
        if answer == ANSWER_SKIP:
            continue
        if answer in (ANSWER_LOCK_FIRST, ANSWER_LOCK_SECOND):
            target = first if answer == ANSWER_LOCK_FIRST else second
            ranked[target].locked = True
            _save(ranked, options.save_path, save_format)
            click.echo(f"Locked {ranked[target].name}.")
            continue

        winner, loser = (first, second) if answer == ANSWER_FIRST else (second, first)
        ranked.record_vote(winner, loser)
        _save(ranked, options.save_path, save_format)
        votes += 1

    log.info("session_finished", votes=votes, **metrics.to_dict())
    click.echo(f"Recorded {votes} votes.")


if __name__ == "__main__":
    cli()
