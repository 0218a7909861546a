"""Main CLI application entry point.

Defines the Typer application: ``rdprune [options] ARCHIVE PATTERN...``.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from rdprune import __version__
from rdprune.cli.display import (
    print_cutoff,
    print_exclusions,
    print_metadata_outcomes,
    print_plan,
    print_removal_results,
)
from rdprune.core.config import ConfigError, PruneConfig, load_config
from rdprune.core.errors import PruneError
from rdprune.core.state import StateManager
from rdprune.engine import PruneEngine, PruneOptions, PruneReport, Review
from rdprune.matching.pattern import RecursionMode
from rdprune.models.history import create_run_record
from rdprune.utils.formatting import (
    configure_logging,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    name="rdprune",
    help="Remove paths from an rdiff-backup archive and from all of its history.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"rdprune version {__version__}")
        raise typer.Exit()


@app.command()
def main(
    archive: Annotated[
        Path,
        typer.Argument(help="Root directory of the rdiff-backup archive."),
    ],
    patterns: Annotated[
        list[str],
        typer.Argument(help="Absolute path globs inside the archive, e.g. /home/*/.cache."),
    ],
    keep_temp: Annotated[
        bool,
        typer.Option("--keep-temp", "-D", help="Keep the temporary workspace."),
    ] = False,
    keep_backups: Annotated[
        bool,
        typer.Option("--keep-backups", "-k", help="Keep backups of replaced metadata files."),
    ] = False,
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-R", help="Delete matched directories with their contents."),
    ] = False,
    limited: Annotated[
        bool,
        typer.Option(
            "--limited-recursive",
            "-r",
            help="Like -R, but wildcards only in the last path segment.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Configuration file to use."),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase log output (-vv for debug)."),
    ] = 0,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Delete paths from the mirror, every increment, and the metadata chain."""
    configure_logging(verbose)

    if recursive and limited:
        print_error("-R and -r are mutually exclusive.")
        raise typer.Exit(code=1)
    mode = RecursionMode.NONE
    if recursive:
        mode = RecursionMode.FULL
    elif limited:
        mode = RecursionMode.LIMITED

    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e

    options = PruneOptions(
        archive_root=archive.resolve(),
        patterns=tuple(patterns),
        mode=mode,
        dry_run=dry_run,
        keep_temp=keep_temp or config.keep_temp,
        keep_backups=keep_backups or config.keep_backups,
        backup_margin_bytes=config.backup_margin_bytes,
        temp_dir=config.temp_dir,
    )

    def review(pending: Review) -> bool:
        print_exclusions(pending.build)
        print_plan(pending.plan.deletion_set, pending.removal, pager=config.pager)
        print_cutoff(pending.cutoff)
        if yes:
            return True
        count = len(pending.plan.deletion_set)
        return typer.confirm(
            f"\nDelete {count} name(s) from {archive} and all of their history?",
            default=False,
        )

    engine = PruneEngine(options, review=review)
    try:
        report = engine.run()
    except PruneError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=e.exit_code) from e

    _finish(report, options, config)


def _finish(report: PruneReport, options: PruneOptions, config: PruneConfig) -> None:
    """Display the outcome, record history, and set the exit code."""
    build = report.build
    if build is not None and not report.deletion_set:
        print_exclusions(build)
        print_success("Nothing to delete.")
        return

    if report.dry_run:
        if build is not None and report.planned_removal is not None:
            print_exclusions(build)
            print_plan(report.deletion_set, report.planned_removal, pager=config.pager)
        print_cutoff(report.cutoff)
        print_metadata_outcomes(report)
        print_removal_results(report.removal)
        return

    if not report.confirmed:
        print_info("Aborted.")
        return

    print_metadata_outcomes(report)
    print_removal_results(report.removal)

    if config.record_history and report.plan_hash is not None:
        deletion_set = report.deletion_set
        try:
            StateManager().record_run(
                create_run_record(
                    archive=str(options.archive_root),
                    plan_hash=report.plan_hash,
                    names=list(deletion_set.names),
                    subtrees=list(deletion_set.subtrees),
                    metadata_files=[str(p) for p in report.installed],
                    success=not report.failures,
                    metadata={"command": "rdprune", "mode": options.mode.value},
                )
            )
        except (OSError, RuntimeError, ValueError) as e:
            print_warning(f"Could not record to history: {escape(str(e))}")

    if report.failures:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
