"""Error types for dustbuster."""

import errno
from pathlib import Path
from typing import Optional

PERMISSION_ERRNOS = frozenset({errno.EACCES, errno.EPERM})


class DustbusterError(Exception):
    """Base class for all dustbuster errors."""


class ConfigError(DustbusterError):
    """A configuration file, directory or preset could not be applied."""

    def __init__(self, message: str, source: Optional[Path | str] = None):
        self.source = str(source) if source is not None else None
        self.detail = message
        prefix = f"[{self.source}] " if self.source else ""
        super().__init__(f"{prefix}{message}")


class ConfigParseError(ConfigError):
    """The document is not valid JSON or YAML."""


class ConfigSchemaError(ConfigError):
    """The document has an unknown key or a value of the wrong type."""

    def __init__(self, message: str, source: Optional[Path | str] = None, key: Optional[str] = None):
        self.key = key
        super().__init__(message, source)


class CyclicPresetError(ConfigError):
    """A preset references a file already in the active resolution chain."""


class PresetNotFoundError(ConfigError):
    """No candidate file exists for a preset reference."""


class FilesystemError(DustbusterError):
    """A stat, list or remove call failed for a path."""

    def __init__(self, path: Path | str, operation: str, message: str, permission_denied: bool = False):
        self.path = str(path)
        self.operation = operation
        self.permission_denied = permission_denied
        super().__init__(f"Failed to {operation} {self.path}: {message}")

    @classmethod
    def from_os_error(cls, path: Path | str, operation: str, exc: OSError) -> "FilesystemError":
        """Classify an OS error once, where it is first observed."""
        denied = isinstance(exc, PermissionError) or exc.errno in PERMISSION_ERRNOS
        return cls(path, operation, exc.strerror or str(exc), permission_denied=denied)
