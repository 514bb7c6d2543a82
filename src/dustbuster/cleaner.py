"""Cleanup execution for dustbuster."""

import asyncio
import functools
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Iterable, Optional

import aiofiles.os

from dustbuster.deep import DeepCleaner
from dustbuster.display import format_size, show_run_summary
from dustbuster.errors import FilesystemError
from dustbuster.metrics import create_metrics, merge_metrics
from dustbuster.models import Metrics, RuntimeOptions, SkipReason, TargetSummary
from dustbuster.preview import ConfirmCallback, TerminalPrompt, confirm_targets
from dustbuster.scanner import inspect_path, is_excluded, is_real_directory, is_within, list_dir, lstat
from dustbuster.scheduler import concurrency_limit, run_with_limit
from dustbuster.targets import resolve_targets

logger = logging.getLogger(__name__)


def _record_failure(metrics: Metrics, error: FilesystemError) -> None:
    logger.error(str(error))
    metrics.errors += 1
    if error.permission_denied:
        metrics.permission_denied.add(error.path)


async def remove_path(path: Path, entry_stat: os.stat_result) -> None:
    """
    Remove a file, symlink or directory tree.

    Raises:
        FilesystemError: If anything could not be removed
    """
    try:
        if is_real_directory(entry_stat):
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, shutil.rmtree, path)
        else:
            await aiofiles.os.remove(path)
    except OSError as e:
        raise FilesystemError.from_os_error(path, "remove", e) from e


def holds_exclusion(directory: Path, exclusions: Iterable[Path]) -> bool:
    """Check if an exclusion lies strictly below directory."""
    return any(is_within(directory, excluded) and excluded != directory for excluded in exclusions)


async def _clean_children(
    directory: Path,
    options: RuntimeOptions,
    cancel: Optional[asyncio.Event] = None,
) -> Metrics:
    # The directory itself stays because something below it is excluded
    metrics = create_metrics()
    try:
        names = await list_dir(directory)
    except FilesystemError as e:
        _record_failure(metrics, e)
        return metrics

    for name in names:
        if cancel is not None and cancel.is_set():
            logger.warning(f"Cancelled: remaining entries in {directory} were left in place")
            break

        child = directory / name
        if is_excluded(child, options.exclusions):
            logger.info(f"[skip] Excluded: {child}")
            metrics.skip(SkipReason.EXCLUDED)
            continue
        merge_metrics(metrics, await process_entry(child, options, cancel=cancel))
    return metrics


async def process_entry(
    path: Path,
    options: RuntimeOptions,
    entry_stat: Optional[os.stat_result] = None,
    cancel: Optional[asyncio.Event] = None,
) -> Metrics:
    """
    Inspect and remove one top-level entry of a target.

    In dry-run mode the entry is only inspected and reported. A failed
    removal is counted as an error and contributes no files or bytes. A
    directory holding an exclusion is kept and its children are processed
    one by one instead.

    Args:
        path: Entry to remove
        options: Runtime options
        entry_stat: Stat of the entry (without following symlinks), if known
        cancel: Optional event; once set, no further children of a kept
            directory are started

    Returns:
        Metrics for this entry
    """
    metrics = create_metrics()

    if entry_stat is None:
        try:
            entry_stat = await lstat(path)
        except FilesystemError as e:
            _record_failure(metrics, e)
            return metrics

    if is_real_directory(entry_stat) and holds_exclusion(path, options.exclusions):
        return await _clean_children(path, options, cancel)

    info = await inspect_path(path, entry_stat)
    metrics.errors += info.errors

    if options.dry_run:
        logger.info(f"[dry-run] Would remove: {path} ({format_size(info.size_bytes)})")
    else:
        try:
            await remove_path(path, entry_stat)
        except FilesystemError as e:
            _record_failure(metrics, e)
            return metrics
        logger.info(f"Removed: {path}")

    metrics.file_count += info.file_count
    metrics.dir_count += info.dir_count
    metrics.size_bytes += info.size_bytes
    return metrics


async def clean_target(
    target: Path,
    options: RuntimeOptions,
    cancel: Optional[asyncio.Event] = None,
) -> Metrics:
    """
    Clean the contents of one target directory.

    Each top-level entry is checked against the exclusions and the age
    threshold before it is processed. Failures are counted per entry and
    never stop the remaining entries.

    Args:
        target: Directory whose contents are removed
        options: Runtime options
        cancel: Optional event; once set, no further entries are started

    Returns:
        Metrics for the target, including its summary row
    """
    started = time.monotonic()
    metrics = create_metrics()

    try:
        names = await list_dir(target)
    except FilesystemError as e:
        _record_failure(metrics, e)
        names = None

    if names is not None:
        now = time.time()
        for name in names:
            if cancel is not None and cancel.is_set():
                logger.warning(f"Cancelled: remaining entries in {target} were left in place")
                break

            entry = target / name
            if is_excluded(entry, options.exclusions):
                logger.info(f"[skip] Excluded: {entry}")
                metrics.skip(SkipReason.EXCLUDED)
                continue

            try:
                entry_stat = await lstat(entry)
            except FilesystemError as e:
                _record_failure(metrics, e)
                continue

            if options.max_age_ms is not None:
                age_ms = (now - entry_stat.st_mtime) * 1000
                if age_ms < options.max_age_ms:
                    logger.info(f"[skip] Too recent: {entry}")
                    metrics.skip(SkipReason.MAX_AGE)
                    continue

            merge_metrics(metrics, await process_entry(entry, options, entry_stat, cancel))

        logger.info(f"[dry-run] Finished {target}" if options.dry_run else f"Cleaned: {target}")

    metrics.duration_ms = (time.monotonic() - started) * 1000
    metrics.target_summaries = [
        TargetSummary(
            path=str(target),
            file_count=metrics.file_count,
            dir_count=metrics.dir_count,
            size_bytes=metrics.size_bytes,
            skipped=metrics.skipped,
            errors=metrics.errors,
        )
    ]
    return metrics


async def clean(
    options: RuntimeOptions,
    targets: Optional[Iterable[str | Path]] = None,
    platform: Optional[str] = None,
    confirm: Optional[ConfirmCallback] = None,
    prompt: Optional[TerminalPrompt] = None,
    deep_cleaner: Optional[DeepCleaner] = None,
    cancel: Optional[asyncio.Event] = None,
) -> Metrics:
    """
    Run one cleanup pass.

    Args:
        options: Runtime options for the pass
        targets: Directories to clean instead of the defaults and extra dirs
        platform: Platform for the default target table
        confirm: Preview confirmation callback (replaces the terminal prompt)
        prompt: Terminal prompt for the preview gate
        deep_cleaner: DeepCleaner to run when deep cleaning is enabled
        cancel: Optional event that stops new entries from being started

    Returns:
        Aggregated metrics for the run
    """
    started = time.monotonic()
    total = create_metrics()

    selected = []
    for target in resolve_targets(options, platform=platform, overrides=targets):
        if is_excluded(target, options.exclusions):
            logger.info(f"[skip] Target excluded: {target}")
            total.skip(SkipReason.EXCLUDED)
            continue
        selected.append(target)

    if options.interactive_preview and selected:
        outcome = await confirm_targets(selected, options, confirm=confirm, prompt=prompt)
        selected = outcome.confirmed
        if outcome.skipped:
            total.skip(SkipReason.PREVIEW, len(outcome.skipped))
        if not selected:
            logger.info("Preview: no directory was confirmed for cleaning.")

    if selected:
        factories = [functools.partial(clean_target, target, options, cancel) for target in selected]
        limit = concurrency_limit(options, len(factories))
        logger.debug(f"Cleaning {len(factories)} targets, {limit} at a time")
        for result in await run_with_limit(factories, limit):
            merge_metrics(total, result)

    total.duration_ms = (time.monotonic() - started) * 1000

    if options.summary:
        show_run_summary(total, dry_run=options.dry_run)

    if options.deep_clean:
        cleaner = deep_cleaner or DeepCleaner(platform=platform)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, cleaner.run)

    return total


def run_cleanup(options: RuntimeOptions, **kwargs) -> Metrics:
    """Run a cleanup pass from synchronous code."""
    return asyncio.run(clean(options, **kwargs))
