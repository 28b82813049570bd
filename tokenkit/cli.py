"""CLI entrypoint for tokenkit."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .build import build_token_list
from .config import Settings
from .diff.change_events import classify_changes
from .diff.snapshot_diff import (
    GitChangeError,
    collect_git_changes,
    decode_changes,
    diff_directories,
    encode_changes,
)
from .parser import TokenFileError
from .schema import TokenListValidationError, validate_token_list

# sysexits(3) error codes
EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_IOERR = 74

DIR_PATH = click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path)


def _print_validation_errors(console: Console, errors) -> None:
    console.print("[red]Invalid token list, errors below:[/]")
    for error in errors:
        console.print(f"  [bold]{error['path']}[/] {error['message']} ({error['validator']})")


@click.group()
@click.version_option(__version__, prog_name="tokenkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """tokenkit - build and version a curated token list.

    Validates the per-chain token files, classifies what changed since the
    last release and writes the published token list.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)


@cli.command()
@click.option("--root", type=DIR_PATH, default=None, help="Repository root (defaults to $TOKENKIT_ROOT or cwd)")
@click.option("--increment-version", is_flag=True, help="Bump the version according to --git-changes")
@click.option(
    "--git-changes",
    type=str,
    default=None,
    metavar="BASE64",
    help="Base64 JSON change list produced by `tokenkit diff`",
)
def build(root: Optional[Path], increment_version: bool, git_changes: Optional[str]) -> None:
    """Build, validate and write the token list.

    Examples:

        tokenkit build

        tokenkit build --increment-version --git-changes="$(tokenkit diff --base origin/main)"
    """
    console = Console(stderr=True)

    try:
        settings = Settings.from_env(root)
    except ValueError as e:
        raise click.UsageError(str(e))

    changes = decode_changes(git_changes) if increment_version else []

    try:
        result = build_token_list(settings, increment_version=increment_version, changes=changes)
    except TokenListValidationError as e:
        _print_validation_errors(console, e.errors)
        sys.exit(EX_DATAERR)
    except (TokenFileError, ValueError) as e:
        console.print(f"[red]{e}[/]")
        sys.exit(EX_DATAERR)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(EX_NOINPUT)
    except OSError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(EX_IOERR)

    if result.version_changed:
        console.print(f"Version updated to [bold]{result.version}[/]")
    console.print(f"[green]✓[/] {result.token_count} tokens written to {result.output_path}")
    sys.exit(EX_OK)


def _load_changes(git_changes, from_dir, to_dir, base, head, root):
    if git_changes is not None:
        return decode_changes(git_changes)
    if from_dir is not None or to_dir is not None:
        if from_dir is None or to_dir is None:
            raise click.UsageError("--from-dir and --to-dir must be given together")
        return diff_directories(from_dir, to_dir)
    if base is not None:
        return collect_git_changes(root or Path.cwd(), base, head)
    raise click.UsageError("Pass --git-changes, --from-dir/--to-dir or --base")


def _change_source_options(f):
    f = click.option("--root", type=DIR_PATH, default=None, help="Git working tree (for --base)")(f)
    f = click.option("--head", type=str, default="HEAD", help="New git revision")(f)
    f = click.option("--base", type=str, default=None, help="Baseline git revision")(f)
    f = click.option("--to-dir", type=DIR_PATH, default=None, help="New chains directory")(f)
    f = click.option("--from-dir", type=DIR_PATH, default=None, help="Baseline chains directory")(f)
    return f


@cli.command()
@click.option("--git-changes", type=str, default=None, metavar="BASE64", help="Base64 JSON change list")
@_change_source_options
@click.option("--json", "output_json", is_flag=True, help="Output the classification as JSON")
def classify(git_changes, from_dir, to_dir, base, head, root, output_json) -> None:
    """Print the version increment a change list requires."""
    try:
        changes = _load_changes(git_changes, from_dir, to_dir, base, head, root)
    except (GitChangeError, ValueError) as e:
        raise click.ClickException(str(e))

    result = classify_changes(changes)

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console = Console()
    if result.events:
        table = Table(title="Change events")
        table.add_column("File")
        table.add_column("Event")
        table.add_column("Bump")
        table.add_column("Summary")
        for event in result.events:
            table.add_row(event.file, event.event_type.value, event.bump.value, event.summary)
        console.print(table)

    console.print(f"Version increment: [bold]{result.bump.value or 'none'}[/]")


@cli.command()
@_change_source_options
def diff(from_dir, to_dir, base, head, root) -> None:
    """Print the base64 change list for `tokenkit build --git-changes`."""
    try:
        changes = _load_changes(None, from_dir, to_dir, base, head, root)
    except (GitChangeError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(encode_changes(changes))


@cli.command()
@click.argument("token_list", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(token_list: Path) -> None:
    """Validate a built token list against the token list schema."""
    console = Console(stderr=True)

    try:
        with open(token_list, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid token list file - {token_list}: {e}[/]")
        sys.exit(EX_DATAERR)

    errors = validate_token_list(data)
    if errors:
        _print_validation_errors(console, errors)
        sys.exit(EX_DATAERR)

    console.print(f"[green]✓[/] {token_list} is valid ({len(data.get('tokens', []))} tokens)")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
