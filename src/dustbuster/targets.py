"""Default cleanup locations and target resolution for dustbuster."""

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Iterable, Mapping, Optional

from dustbuster.models import RuntimeOptions
from dustbuster.scanner import is_within, normalize_path

logger = logging.getLogger(__name__)

# Per-OS locations, relative to the home directory unless absolute.
# Entries starting with "$VAR" are only used when VAR is set.
DEFAULT_PATHS: dict[str, list[str]] = {
    # =========================================================================
    # Windows
    # =========================================================================
    "win32": [
        "$WINDIR/Temp",
        "$WINDIR/Prefetch",
        "$WINDIR/SoftwareDistribution/Download",
        "$WINDIR/System32/LogFiles",
        "$SystemDrive/Temp",
        "$SystemDrive/$Recycle.Bin",
        "$LOCALAPPDATA/Microsoft/Windows/INetCache",
        "$LOCALAPPDATA/Google/Chrome/User Data/Default/Cache",
        "$LOCALAPPDATA/Microsoft/Edge/User Data/Default/Cache",
        "$LOCALAPPDATA/CrashDumps",
        "$APPDATA/npm-cache",
    ],
    # =========================================================================
    # macOS
    # =========================================================================
    "darwin": [
        "/var/tmp",
        "Library/Caches",
        "Library/Logs",
        "Library/Application Support/Google/Chrome/Default/Cache",
        "Library/Application Support/Code/Cache",
        "Library/Application Support/Microsoft Edge/Default/Cache",
    ],
    # =========================================================================
    # Linux and other POSIX systems
    # =========================================================================
    "linux": [
        "/var/tmp",
        "/var/cache/apt/archives",
        "/var/cache/apt/archives/partial",
        ".cache",
        ".npm",
        ".cache/npm",
        ".cache/yarn",
        ".cache/pip",
        ".cache/google-chrome",
        ".cache/chromium",
        ".cache/Code/Cache",
    ],
}

# Fallbacks for Windows variables the table depends on
WINDOWS_FALLBACKS = {"WINDIR": "C:/Windows", "SystemDrive": "C:"}


def _expand_entry(entry: str, environ: Mapping[str, str], home: Path) -> Optional[str]:
    if not entry.startswith("$"):
        return entry if os.path.isabs(entry) else str(home / entry)

    name, _, rest = entry[1:].partition("/")
    value = environ.get(name) or WINDOWS_FALLBACKS.get(name)
    if not value:
        return None
    return f"{value}/{rest}" if rest else value


def default_target_paths(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> list[Path]:
    """
    Build the default cleanup locations for a platform.

    The system temporary directory always comes first. Paths are returned
    as given by the table; existence is checked by resolve_targets.

    Args:
        platform: sys.platform style name (default: current platform)
        environ: Environment used for Windows variables (default: os.environ)
        home: Home directory (default: Path.home())

    Returns:
        List of candidate paths
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ
    home = home or Path.home()

    table = DEFAULT_PATHS.get(platform)
    if table is None:
        table = DEFAULT_PATHS["linux"]

    paths = [Path(tempfile.gettempdir())]
    for entry in table:
        expanded = _expand_entry(entry, environ, home)
        if expanded:
            paths.append(Path(expanded))
    return paths


def collapse_nested(paths: Iterable[Path]) -> list[Path]:
    """
    Drop every path that lies inside another path of the list.

    Keeps the first-seen order of the surviving top-most paths.
    """
    ordered = list(dict.fromkeys(paths))
    return [
        path
        for path in ordered
        if not any(other != path and is_within(other, path) for other in ordered)
    ]


def resolve_targets(
    options: RuntimeOptions,
    platform: Optional[str] = None,
    overrides: Optional[Iterable[str | Path]] = None,
) -> list[Path]:
    """
    Resolve the directories to clean.

    Args:
        options: Runtime options (extra_dirs are appended to the defaults)
        platform: Platform for the default table
        overrides: If given, used instead of defaults and extra_dirs

    Returns:
        Existing, normalised, de-duplicated target directories
    """
    if overrides is not None:
        candidates = [normalize_path(p) for p in overrides]
    else:
        candidates = [normalize_path(p) for p in default_target_paths(platform)]
        candidates.extend(options.extra_dirs)

    existing = []
    for path in candidates:
        if path.is_dir():
            existing.append(path)
        else:
            logger.debug(f"Skipping missing target: {path}")

    targets = collapse_nested(existing)
    for dropped in set(existing) - set(targets):
        logger.debug(f"Skipping nested target: {dropped}")
    return targets
