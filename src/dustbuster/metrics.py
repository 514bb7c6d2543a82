"""Metrics aggregation for dustbuster."""

from typing import Iterable

from dustbuster.models import Metrics, TargetSummary


def create_metrics() -> Metrics:
    """Return zeroed metrics."""
    return Metrics()


def _summary_order(summary: TargetSummary) -> tuple[int, str]:
    return (-summary.size_bytes, summary.path)


def merge_metrics(total: Metrics, delta: Metrics) -> Metrics:
    """
    Merge delta into total and return total.

    Counters are summed, skip reasons are summed key-wise, permission-denied
    paths are unioned, duration takes the longer of the two and target
    summaries are kept in a fixed order, so the result does not depend on
    the order in which targets finished.
    """
    total.file_count += delta.file_count
    total.dir_count += delta.dir_count
    total.size_bytes += delta.size_bytes
    total.skipped += delta.skipped
    total.errors += delta.errors
    for reason, count in delta.skipped_by.items():
        total.skipped_by[reason] = total.skipped_by.get(reason, 0) + count
    total.permission_denied |= delta.permission_denied
    total.duration_ms = max(total.duration_ms, delta.duration_ms)
    total.target_summaries = sorted(
        [*total.target_summaries, *delta.target_summaries], key=_summary_order
    )
    return total


def sum_metrics(items: Iterable[Metrics]) -> Metrics:
    """Fold metrics into a fresh total."""
    total = create_metrics()
    for item in items:
        merge_metrics(total, item)
    return total
