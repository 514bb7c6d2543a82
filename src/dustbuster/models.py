"""Data models for dustbuster."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SkipReason(str, Enum):
    """Why a candidate was left in place."""

    EXCLUDED = "excluded"  # Inside an exclusion
    MAX_AGE = "max_age"  # Younger than the age threshold
    PREVIEW = "preview"  # Declined in the preview gate


def _empty_skip_counts() -> dict[SkipReason, int]:
    return {reason: 0 for reason in SkipReason}


class RuntimeOptions(BaseModel):
    """Options for a single cleanup pass. Read-only once built."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = Field(False, description="Report removals without deleting")
    parallel: bool = Field(False, description="Clean all targets at once")
    concurrency: Optional[int] = Field(None, description="Ceiling on concurrently cleaned targets")
    deep_clean: bool = Field(False, description="Run privileged OS cleanup after the pass")
    log_file: Optional[Path] = Field(None, description="Append-only log file")
    extra_dirs: tuple[Path, ...] = Field(default_factory=tuple, description="User-supplied targets")
    exclusions: tuple[Path, ...] = Field(default_factory=tuple, description="Excluded subtrees")
    max_age_ms: Optional[int] = Field(None, description="Only remove entries older than this")
    summary: bool = Field(False, description="Print a run summary")
    interactive_preview: bool = Field(False, description="Confirm each target before cleaning")


class Inspection(BaseModel):
    """Counts gathered by walking one entry before it is removed."""

    file_count: int = 0
    dir_count: int = 0
    size_bytes: int = 0
    errors: int = 0


class TargetSummary(BaseModel):
    """Per-target totals kept for the summary report."""

    path: str = Field(..., description="Target directory")
    file_count: int = Field(0, description="Files removed (or that would be)")
    dir_count: int = Field(0, description="Directories removed (or that would be)")
    size_bytes: int = Field(0, description="Bytes reclaimed (or that would be)")
    skipped: int = Field(0, description="Entries left in place")
    errors: int = Field(0, description="Failures while cleaning")


class Metrics(BaseModel):
    """Per-target or aggregate cleanup metrics."""

    file_count: int = 0
    dir_count: int = 0
    size_bytes: int = 0
    skipped: int = 0
    errors: int = 0
    skipped_by: dict[SkipReason, int] = Field(default_factory=_empty_skip_counts)
    permission_denied: set[str] = Field(default_factory=set)
    duration_ms: float = 0.0
    target_summaries: list[TargetSummary] = Field(default_factory=list)

    def skip(self, reason: SkipReason, count: int = 1) -> None:
        """Count entries left in place for a reason."""
        self.skipped += count
        self.skipped_by[reason] = self.skipped_by.get(reason, 0) + count


class PreviewOutcome(BaseModel):
    """Targets accepted and declined in the preview gate."""

    confirmed: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)


class DeepCleanResult(BaseModel):
    """Result of one privileged cleanup command."""

    command: str = Field(..., description="Command that was run")
    success: bool = Field(True, description="Whether the command succeeded")
    error: Optional[str] = Field(None, description="Error message if failed")
