"""Rich terminal display and summary formatting for dustbuster."""

import logging

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dustbuster.models import Metrics, SkipReason

console = Console()

logger = logging.getLogger(__name__)

SKIP_LABELS = {
    SkipReason.EXCLUDED: "excluded",
    SkipReason.MAX_AGE: "too recent",
    SkipReason.PREVIEW: "declined in preview",
}


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{max(size_bytes, 0)} B"


def format_duration(duration_ms: float) -> str:
    """Format milliseconds as e.g. "850 ms", "12.4 s" or "1h 02m 05s"."""
    if duration_ms < 1000:
        return f"{duration_ms:.0f} ms"
    seconds = duration_ms / 1000
    if seconds < 60:
        return f"{seconds:.1f} s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"


def format_summary(
    metrics: Metrics,
    dry_run: bool = False,
    top_n: int = 5,
    denied_limit: int = 10,
) -> list[str]:
    """
    Build the end-of-run summary as plain lines.

    Args:
        metrics: Aggregated run metrics
        dry_run: Whether the run was a dry run
        top_n: How many of the heaviest targets to list
        denied_limit: How many permission-denied paths to list

    Returns:
        Summary lines, in display order
    """
    verb = "would free" if dry_run else "freed"
    lines = [
        f"Summary: {metrics.file_count} files, {metrics.dir_count} directories, "
        f"{metrics.skipped} skipped, {metrics.errors} errors, "
        f"{verb} {format_size(metrics.size_bytes)}.",
        f"Elapsed: {format_duration(metrics.duration_ms)}",
    ]

    heaviest = [s for s in metrics.target_summaries if s.size_bytes > 0][:top_n]
    if heaviest:
        lines.append("Heaviest targets:")
        for summary in heaviest:
            lines.append(f"  {format_size(summary.size_bytes)}  {summary.path}")

    reasons = [(reason, count) for reason, count in metrics.skipped_by.items() if count]
    if reasons:
        lines.append("Skipped: " + ", ".join(f"{SKIP_LABELS[r]} {c}" for r, c in reasons))

    if metrics.permission_denied:
        denied = sorted(metrics.permission_denied)
        lines.append(f"Permission denied ({len(denied)}):")
        for path in denied[:denied_limit]:
            lines.append(f"  {path}")
        if len(denied) > denied_limit:
            lines.append(f"  ... and {len(denied) - denied_limit} more")

    if dry_run:
        lines.append("Dry run: sizes above show space that would be reclaimed; nothing was deleted.")

    return lines


def show_run_summary(metrics: Metrics, dry_run: bool = False, top_n: int = 5) -> None:
    """Write the summary to the log and render a table of the heaviest targets."""
    for line in format_summary(metrics, dry_run=dry_run, top_n=top_n):
        logger.info(line)

    heaviest = metrics.target_summaries[:top_n]
    if not heaviest:
        return

    table = Table(title="Targets", show_header=True, header_style="bold")
    table.add_column("Target")
    table.add_column("Files", justify="right")
    table.add_column("Dirs", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Errors", justify="right")

    for summary in heaviest:
        errors = f"[red]{summary.errors}[/red]" if summary.errors else "0"
        table.add_row(
            escape(summary.path),
            str(summary.file_count),
            str(summary.dir_count),
            format_size(summary.size_bytes),
            str(summary.skipped),
            errors,
        )

    console.print(table)
    if dry_run:
        console.print(
            Panel("[yellow]DRY RUN - No files were deleted[/yellow]", border_style="yellow")
        )
