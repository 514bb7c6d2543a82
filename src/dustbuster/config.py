"""Configuration files, presets and their merge rules for dustbuster."""

import json
import logging
import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Callable, Iterator, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StringConstraints, ValidationError

from dustbuster.errors import (
    ConfigError,
    ConfigParseError,
    ConfigSchemaError,
    CyclicPresetError,
    PresetNotFoundError,
)
from dustbuster.scanner import expand_path, normalize_path

logger = logging.getLogger(__name__)

CONFIG_EXTENSIONS = (".json", ".yaml", ".yml")
PRESET_SUFFIXES = ("", ".yaml", ".yml", ".json")
BUNDLED_PRESETS_DIR = Path(__file__).parent / "presets"
SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

DURATION_PATTERN = r"^[0-9]+[smhdwSMHDW]?$"
DURATION_UNITS_MS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
}
HOUR_MS = DURATION_UNITS_MS["h"]

NonEmptyStr = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]
DurationText = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, pattern=DURATION_PATTERN)]
Hours = Annotated[float, Field(strict=True, ge=0, allow_inf_nan=False)]
PositiveInt = Annotated[int, Field(strict=True, gt=0)]


def parse_duration(value: Union[str, int, float]) -> int:
    """
    Convert a duration to milliseconds.

    Accepts "30s", "15m", "12h", "5d", "2w" or a bare number of hours
    (as a string or a non-negative number).

    Raises:
        ValueError: If the value is not a valid duration
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0 or not math.isfinite(value):
            raise ValueError(f"Invalid duration: {value!r}")
        return int(round(value * HOUR_MS))

    match = re.match(r"^(\d+)([smhdw]?)$", str(value).strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}. Examples: 30m, 12h, 5d")
    amount, unit = match.groups()
    return int(amount) * DURATION_UNITS_MS[(unit or "h").lower()]


class ConfigDocument(BaseModel):
    """One configuration file or preset."""

    model_config = ConfigDict(extra="forbid", title="dustbuster configuration")

    dirs: list[NonEmptyStr] = Field(
        default_factory=list, description="Extra directories to clean, relative to the file"
    )
    exclude: list[NonEmptyStr] = Field(
        default_factory=list, description="Paths never to clean, relative to the file"
    )
    max_age: Optional[Union[Hours, DurationText]] = Field(
        None,
        alias="maxAge",
        description="Only remove entries older than this: hours, or 30m/12h/5d/2w",
    )
    summary: StrictBool = Field(False, description="Print a run summary")
    parallel: StrictBool = Field(False, description="Clean all targets at once")
    dry_run: StrictBool = Field(False, alias="dryRun", description="Report without deleting")
    deep: StrictBool = Field(False, description="Run privileged cleanup commands (Windows)")
    log_file: Optional[NonEmptyStr] = Field(
        None, alias="logFile", description="Append-only log file, relative to the file"
    )
    concurrency: Optional[PositiveInt] = Field(
        None, description="Ceiling on concurrently cleaned targets, or null for the default"
    )
    preview: StrictBool = Field(False, description="Confirm each target interactively")
    presets: Union[NonEmptyStr, list[NonEmptyStr]] = Field(
        default_factory=list, description="Other configurations to import first"
    )

    def preset_references(self) -> list[str]:
        """Preset references in declaration order."""
        if isinstance(self.presets, str):
            return [self.presets]
        return list(self.presets)


ALLOWED_CONFIG_KEYS = frozenset(
    info.alias or name for name, info in ConfigDocument.model_fields.items()
)

# Document field -> RuntimeOptions field for plain scalars
SCALAR_FIELDS = {
    "summary": "summary",
    "parallel": "parallel",
    "dry_run": "dry_run",
    "deep": "deep_clean",
    "concurrency": "concurrency",
    "preview": "interactive_preview",
}


@dataclass
class MergeAccumulator:
    """
    Configuration merged from one or more sources.

    Lists are appended in application order. A scalar missing from
    `scalars` was never set by any source.
    """

    dirs: list[Path] = field(default_factory=list)
    exclude: list[Path] = field(default_factory=list)
    scalars: dict[str, Any] = field(default_factory=dict)

    def merge(self, addition: "MergeAccumulator") -> "MergeAccumulator":
        """Return a new accumulator with addition applied on top of self."""
        return MergeAccumulator(
            dirs=[*self.dirs, *addition.dirs],
            exclude=[*self.exclude, *addition.exclude],
            scalars={**self.scalars, **addition.scalars},
        )


def build_config_schema() -> dict[str, Any]:
    """Return the JSON Schema describing configuration files."""
    schema = ConfigDocument.model_json_schema(by_alias=True)
    schema["$schema"] = SCHEMA_DIALECT
    schema["additionalProperties"] = False
    return schema


def natural_sort_key(name: str) -> list[Union[str, int]]:
    """Sort key that orders "2.yaml" before "10.yaml", ignoring case."""
    return [
        int(part) if i % 2 else part.casefold()
        for i, part in enumerate(re.split(r"(\d+)", name))
    ]


def list_config_files(directory: Path) -> list[Path]:
    """List configuration files in a directory in natural filename order."""
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise ConfigError(f"Cannot read configuration directory: {e}", directory) from e

    files = [
        entry
        for entry in entries
        if entry.suffix.lower() in CONFIG_EXTENSIONS and entry.is_file()
    ]
    return sorted(files, key=lambda p: (natural_sort_key(p.name), p.name))


def read_config_text(path: Path) -> str:
    """Read a configuration file."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read file: {e}", path) from e


def parse_document(text: str, path: Path) -> Any:
    """
    Parse configuration text by file suffix.

    .json is parsed as JSON, .yaml/.yml as YAML; any other suffix tries JSON
    first and falls back to YAML. Blank text is an empty mapping.
    """
    if not text.strip():
        return {}

    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(f"Cannot parse configuration: {e}", path) from e

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Cannot parse configuration: {e}", path) from e


def validate_document(data: Any, path: Path) -> ConfigDocument:
    """
    Check a parsed document against the allowed keys and field types.

    Raises:
        ConfigSchemaError: Naming the file and the offending key
    """
    if not isinstance(data, dict):
        raise ConfigSchemaError("Configuration must be a mapping of keys to values", path)

    for key in data:
        if key not in ALLOWED_CONFIG_KEYS:
            raise ConfigSchemaError(f'Unknown key "{key}" in configuration', path, key=str(key))

    try:
        return ConfigDocument.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        loc = error.get("loc") or ("?",)
        key = str(loc[0])
        where = ".".join(str(part) for part in loc)
        raise ConfigSchemaError(f'Invalid value for "{where}": {error["msg"]}', path, key=key) from e


def to_accumulator(document: ConfigDocument, base_dir: Path) -> MergeAccumulator:
    """Convert a validated document into merge form, resolving its paths."""
    present = document.model_fields_set
    scalars: dict[str, Any] = {}

    if "max_age" in present:
        scalars["max_age_ms"] = None if document.max_age is None else parse_duration(document.max_age)
    if "log_file" in present:
        scalars["log_file"] = (
            None if document.log_file is None else normalize_path(document.log_file, base_dir)
        )
    for name, option in SCALAR_FIELDS.items():
        if name in present:
            scalars[option] = getattr(document, name)

    return MergeAccumulator(
        dirs=[normalize_path(d, base_dir) for d in document.dirs],
        exclude=[normalize_path(d, base_dir) for d in document.exclude],
        scalars=scalars,
    )


# =============================================================================
# Preset lookup
# =============================================================================

# Each location maps the referencing file's directory to a directory to
# search. The flag marks locations only used for bare names (no separator).
PRESET_LOCATIONS: list[tuple[Callable[[Path], Path], bool]] = [
    (lambda base_dir: base_dir, False),
    (lambda base_dir: base_dir / "presets", True),
    (lambda base_dir: Path.cwd() / "presets", True),
    (lambda base_dir: BUNDLED_PRESETS_DIR, True),
]


def preset_candidates(reference: str, base_dir: Path) -> Iterator[Path]:
    """Yield candidate files for a preset reference in search order."""
    ref = expand_path(reference.strip())
    suffixes = ("",) if ref.suffix else PRESET_SUFFIXES

    if ref.is_absolute():
        bases = [ref]
    else:
        bare = not re.search(r"[\\/]", reference)
        bases = [location(base_dir) / ref for location, bare_only in PRESET_LOCATIONS if bare or not bare_only]

    seen: set[Path] = set()
    for base in bases:
        for suffix in suffixes:
            candidate = normalize_path(f"{base}{suffix}")
            if candidate not in seen:
                seen.add(candidate)
                yield candidate


def resolve_preset(reference: str, base_dir: Optional[Path] = None) -> Path:
    """
    Find the file a preset reference points to.

    Raises:
        PresetNotFoundError: If no candidate file exists
    """
    if not isinstance(reference, str) or not reference.strip():
        raise PresetNotFoundError("Preset name must be a non-empty string", base_dir)

    base_dir = base_dir or Path.cwd()
    for candidate in preset_candidates(reference, base_dir):
        if candidate.is_file():
            return candidate

    raise PresetNotFoundError(f'Preset "{reference}" not found', base_dir)


class ConfigResolver:
    """
    Resolves configuration files and their presets for one top-level call.

    Each file is read at most once per resolver; a file that appears again
    while it is still being resolved is a cycle.
    """

    def __init__(self) -> None:
        self._cache: dict[Path, MergeAccumulator] = {}
        self._chain: list[Path] = []

    def resolve_file(self, path: Path) -> MergeAccumulator:
        path = normalize_path(path)
        if path in self._chain:
            chain = " -> ".join(str(p) for p in [*self._chain, path])
            raise CyclicPresetError(f"Cyclic preset reference: {chain}", path)

        cached = self._cache.get(path)
        if cached is not None:
            return cached

        self._chain.append(path)
        try:
            accumulated = self._load(path)
        finally:
            self._chain.pop()

        self._cache[path] = accumulated
        return accumulated

    def _load(self, path: Path) -> MergeAccumulator:
        logger.debug(f"Loading configuration {path}")
        data = parse_document(read_config_text(path), path)
        document = validate_document(data, path)
        base_dir = path.parent

        # Presets first, so the file's own values win over imported ones
        accumulated = MergeAccumulator()
        for reference in document.preset_references():
            preset_path = resolve_preset(reference, base_dir)
            accumulated = accumulated.merge(self.resolve_file(preset_path))

        return accumulated.merge(to_accumulator(document, base_dir))


def resolve_config(path: str | Path) -> MergeAccumulator:
    """
    Resolve a configuration file, or every configuration file in a directory.

    A directory is applied as one batch in natural filename order; any
    failing file fails the whole batch.

    Raises:
        ConfigError: On any read, parse, schema, preset or cycle error
    """
    resolved = normalize_path(path)
    resolver = ConfigResolver()

    if resolved.is_dir():
        files = list_config_files(resolved)
        if not files:
            raise ConfigError(
                f"Directory has no configuration files ({', '.join(CONFIG_EXTENSIONS)})",
                resolved,
            )
        accumulated = MergeAccumulator()
        for file in files:
            accumulated = accumulated.merge(resolver.resolve_file(file))
        return accumulated

    if resolved.is_file():
        return resolver.resolve_file(resolved)

    if not os.path.exists(resolved):
        raise ConfigError("Path does not exist", resolved)
    raise ConfigError("Path must be a file or a directory of configurations", resolved)


def resolve_preset_config(reference: str, base_dir: Optional[Path] = None) -> MergeAccumulator:
    """Resolve a preset given by name or path, as if named on the command line."""
    return ConfigResolver().resolve_file(resolve_preset(reference, base_dir))
