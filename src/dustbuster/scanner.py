"""Path helpers, exclusion checks and subtree inspection for dustbuster."""

import logging
import os
import stat
from pathlib import Path
from typing import Iterable, Optional

import aiofiles.os

from dustbuster.errors import FilesystemError
from dustbuster.models import Inspection

logger = logging.getLogger(__name__)


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


def normalize_path(path: str | Path, base_dir: Optional[Path] = None) -> Path:
    """
    Make a path absolute and normalised without following symlinks.

    Relative paths are joined to base_dir (default: the working directory).
    """
    expanded = expand_path(path)
    if not expanded.is_absolute():
        expanded = (base_dir or Path.cwd()) / expanded
    return Path(os.path.abspath(expanded))


def is_within(parent: str | Path, child: str | Path) -> bool:
    """
    Check whether child equals parent or lies beneath it.

    Uses the relative path between the two, so /tmp/cache-old is not
    considered to be inside /tmp/cache.
    """
    try:
        rel = os.path.relpath(os.path.abspath(child), os.path.abspath(parent))
    except ValueError:
        # Different drives on Windows
        return False
    if rel == os.curdir:
        return True
    if os.path.isabs(rel):
        return False
    first = rel.split(os.sep, 1)[0]
    return first != os.pardir


def is_excluded(path: str | Path, exclusions: Iterable[Path]) -> bool:
    """Check if path is inside any exclusion."""
    return any(is_within(excluded, path) for excluded in exclusions)


async def lstat(path: Path) -> os.stat_result:
    """Stat a path without following symlinks."""
    try:
        return await aiofiles.os.stat(path, follow_symlinks=False)
    except OSError as e:
        raise FilesystemError.from_os_error(path, "stat", e) from e


async def list_dir(path: Path) -> list[str]:
    """List entry names of a directory."""
    try:
        return await aiofiles.os.listdir(path)
    except OSError as e:
        raise FilesystemError.from_os_error(path, "read", e) from e


def is_real_directory(stat_result: os.stat_result) -> bool:
    """True for directories reached without crossing a symlink."""
    return stat.S_ISDIR(stat_result.st_mode)


async def inspect_path(path: Path, stat_result: Optional[os.stat_result] = None) -> Inspection:
    """
    Count files, directories and bytes below a path.

    Walks with an explicit stack and re-stats every entry without following
    symlinks, so a symlink is always counted as a single file. A failure on
    one child is logged and counted; its siblings are still visited.

    Args:
        path: Entry to inspect
        stat_result: Stat of path if the caller already has it

    Returns:
        Inspection with file, directory, byte and error counts
    """
    inspection = Inspection()
    stack: list[tuple[Path, Optional[os.stat_result]]] = [(path, stat_result)]

    while stack:
        current, current_stat = stack.pop()
        if current_stat is None:
            try:
                current_stat = await lstat(current)
            except FilesystemError as e:
                logger.error(str(e))
                inspection.errors += 1
                continue

        if is_real_directory(current_stat):
            inspection.dir_count += 1
            try:
                names = await list_dir(current)
            except FilesystemError as e:
                logger.error(str(e))
                inspection.errors += 1
                continue
            stack.extend((current / name, None) for name in names)
        else:
            inspection.file_count += 1
            inspection.size_bytes += current_stat.st_size

    return inspection
