"""Building runtime options from flags, configuration files and presets."""

from pathlib import Path
from typing import Any, Optional

from dustbuster.config import MergeAccumulator, parse_duration, resolve_config, resolve_preset_config
from dustbuster.errors import ConfigError
from dustbuster.models import RuntimeOptions
from dustbuster.scanner import normalize_path


class OptionsBuilder:
    """
    Collects option values during the configuration phase.

    Lists are appended (de-duplicated by absolute path) and scalars follow
    last-write-wins. `build()` returns an immutable RuntimeOptions for the
    cleanup pass. A configuration that fails to resolve leaves the builder
    untouched.
    """

    def __init__(self) -> None:
        self.config_sources: list[str] = []
        self._values: dict[str, Any] = {}
        self._extra_dirs: list[Path] = []
        self._exclusions: list[Path] = []
        self.reset()

    def reset(self) -> None:
        """Restore default values."""
        defaults = RuntimeOptions()
        self._values = defaults.model_dump(exclude={"extra_dirs", "exclusions"})
        self._extra_dirs = []
        self._exclusions = []
        self.config_sources = []

    def set(self, **values: Any) -> "OptionsBuilder":
        """Set scalar options by RuntimeOptions field name."""
        for name in values:
            if name not in self._values:
                raise KeyError(f"Unknown option: {name}")
        self._values.update(values)
        return self

    def add_extra_dir(self, directory: str | Path, base_dir: Optional[Path] = None) -> "OptionsBuilder":
        """Add a directory to clean in addition to the defaults."""
        resolved = normalize_path(directory, base_dir)
        if resolved not in self._extra_dirs:
            self._extra_dirs.append(resolved)
        return self

    def add_exclusion(self, directory: str | Path, base_dir: Optional[Path] = None) -> "OptionsBuilder":
        """Exclude a path and everything below it."""
        resolved = normalize_path(directory, base_dir)
        if resolved not in self._exclusions:
            self._exclusions.append(resolved)
        return self

    def set_max_age(self, value: Optional[str | int | float]) -> "OptionsBuilder":
        """
        Set the age threshold from a duration such as "12h" or "30m".

        Raises:
            ConfigError: If the duration is invalid
        """
        if value is None:
            self._values["max_age_ms"] = None
            return self
        try:
            self._values["max_age_ms"] = parse_duration(value)
        except ValueError as e:
            raise ConfigError(f"Invalid max-age value: {e}") from e
        return self

    def set_concurrency(self, value: Optional[int]) -> "OptionsBuilder":
        """
        Set the concurrency ceiling. A ceiling above 1 also enables parallel mode.

        Raises:
            ConfigError: If the value is not a positive integer
        """
        if value is None:
            self._values["concurrency"] = None
            return self
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"Invalid concurrency value: {value!r}. Use a positive integer.")
        self._values["concurrency"] = value
        if value > 1:
            self._values["parallel"] = True
        return self

    def apply(self, accumulated: MergeAccumulator) -> "OptionsBuilder":
        """Fold merged configuration into the builder."""
        staged = self.copy()
        for directory in accumulated.dirs:
            staged.add_extra_dir(directory)
        for directory in accumulated.exclude:
            staged.add_exclusion(directory)

        scalars = dict(accumulated.scalars)
        if "max_age_ms" in scalars:
            staged._values["max_age_ms"] = scalars.pop("max_age_ms")
        if "concurrency" in scalars:
            staged.set_concurrency(scalars.pop("concurrency"))
        staged.set(**scalars)

        self._values = staged._values
        self._extra_dirs = staged._extra_dirs
        self._exclusions = staged._exclusions
        return self

    def apply_config(self, path: str | Path) -> MergeAccumulator:
        """
        Apply a configuration file or directory.

        Raises:
            ConfigError: If any file in the unit fails; nothing is applied
        """
        accumulated = resolve_config(path)
        self.apply(accumulated)
        self.config_sources.append(str(path))
        return accumulated

    def apply_preset(self, reference: str, base_dir: Optional[Path] = None) -> MergeAccumulator:
        """
        Apply a preset by name or path.

        Raises:
            ConfigError: If the preset cannot be found or applied
        """
        accumulated = resolve_preset_config(reference, base_dir)
        self.apply(accumulated)
        self.config_sources.append(reference)
        return accumulated

    def copy(self) -> "OptionsBuilder":
        """Return an independent copy of this builder."""
        clone = OptionsBuilder()
        clone._values = dict(self._values)
        clone._extra_dirs = list(self._extra_dirs)
        clone._exclusions = list(self._exclusions)
        clone.config_sources = list(self.config_sources)
        return clone

    def build(self) -> RuntimeOptions:
        """Return the options as an immutable RuntimeOptions."""
        return RuntimeOptions(
            **self._values,
            extra_dirs=tuple(self._extra_dirs),
            exclusions=tuple(self._exclusions),
        )
