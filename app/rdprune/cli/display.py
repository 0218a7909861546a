"""Rendering of plans and results for the rdprune CLI."""

from contextlib import nullcontext

from rich.markup import escape
from rich.table import Table

from rdprune.commit.remover import RemovalPlan, RemovalResult
from rdprune.engine import MetadataStatus, PruneReport
from rdprune.models.plan import DeletionSet
from rdprune.planning.cutoff import CutoffResult
from rdprune.planning.deletion_set import BuildResult
from rdprune.rewrite.quoting import display_name
from rdprune.utils.formatting import console, print_info, print_success, print_warning


def _name(name: str) -> str:
    """Single-line, markup-safe form of an ArchiveName."""
    return escape("/" + display_name(name))


def print_plan(deletion_set: DeletionSet, removal: RemovalPlan, *, pager: bool = False) -> None:
    """Display the names about to be deleted."""
    table = Table(
        title="Planned Deletions",
        header_style="header",
        border_style="border",
        show_lines=False,
    )
    table.add_column("Path", style="bold")
    table.add_column("Kind", width=12)

    subtrees = set(deletion_set.subtrees)
    for name in deletion_set:
        kind = "[removed]subtree[/]" if name in subtrees else "file"
        table.add_row(_name(name), kind)

    context = console.pager(styles=True) if pager else nullcontext()
    with context:
        console.print(table)
        console.print(
            f"[muted]{len(deletion_set)} name(s); "
            f"{len(removal.mirror_files) + len(removal.mirror_dirs)} mirror path(s), "
            f"{len(removal.increment_files) + len(removal.increment_dirs)} increment path(s)[/]"
        )


def print_exclusions(build: BuildResult) -> None:
    """Warn about names left out of the deletion set."""
    for name in build.collisions:
        print_warning(
            f"{_name(name)} was both a directory and a file in the past; "
            "skipped (use -R to delete it)"
        )
    if build.skipped_dirs:
        count = len(build.skipped_dirs)
        noun = "directory" if count == 1 else "directories"
        print_warning(f"Skipped {count} {noun} (use -R or -r to delete directories):")
        for name in build.skipped_dirs:
            console.print(f"  [muted]{_name(name)}[/]")


def print_cutoff(cutoff: CutoffResult | None) -> None:
    if cutoff is None:
        return
    if cutoff.cutoff is None:
        print_info("All metadata files have to be scanned.")
    else:
        print_info(f"Metadata before {cutoff.cutoff.isoformat()} does not need rewriting.")


def print_metadata_outcomes(report: PruneReport) -> None:
    """Display what happened to each metadata file."""
    if not report.metadata:
        return
    title = "Metadata Files (dry-run)" if report.dry_run else "Metadata Files"
    table = Table(title=title, header_style="header", border_style="border")
    table.add_column("File", style="bold")
    table.add_column("Status", width=10)
    table.add_column("Removed", justify="right", width=8)

    for outcome in report.metadata:
        if outcome.status == MetadataStatus.CHANGED:
            status = "[warning]changed[/]"
        elif outcome.status == MetadataStatus.SKIPPED:
            status = "[muted]skipped[/]"
        else:
            status = "[kept]unchanged[/]"
        removed = str(outcome.removed) if outcome.removed else "-"
        table.add_row(escape(outcome.file.path.name), status, removed)

    console.print(table)


def print_removal_results(results: list[RemovalResult]) -> None:
    """Display physical removal results."""
    if not results:
        return
    table = Table(title="Removal Results", header_style="header", border_style="border")
    table.add_column("Path", style="bold")
    table.add_column("Status", width=10)
    table.add_column("Details", style="dim")

    for r in results:
        if r.dry_run:
            status = "[info]dry-run[/]"
            detail = "Would remove"
        elif r.success:
            status = "[success]removed[/]"
            detail = ""
        else:
            status = "[error]failed[/]"
            detail = r.error or "Unknown error"
        table.add_row(escape(display_name(r.path)), status, escape(detail))

    console.print(table)

    success_count = sum(1 for r in results if r.success)
    fail_count = sum(1 for r in results if not r.success and not r.dry_run)
    dry_count = sum(1 for r in results if r.dry_run)

    if dry_count:
        print_info(f"Dry-run: {dry_count} path(s) would be removed.")
    elif fail_count:
        print_warning(f"{success_count} removed, {fail_count} failed")
    else:
        print_success(f"All {success_count} path(s) removed.")
