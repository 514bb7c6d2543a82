"""Tests for data models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from dustbuster.errors import ConfigError, ConfigSchemaError, FilesystemError
from dustbuster.models import Metrics, PreviewOutcome, RuntimeOptions, SkipReason, TargetSummary


class TestRuntimeOptions:
    def test_defaults(self):
        options = RuntimeOptions()
        assert options.dry_run is False
        assert options.parallel is False
        assert options.max_age_ms is None
        assert options.exclusions == ()

    def test_frozen(self):
        options = RuntimeOptions()
        with pytest.raises(ValidationError):
            options.summary = True

    def test_paths_coerced(self):
        options = RuntimeOptions(extra_dirs=["/a", "/b"], log_file="/tmp/run.log")
        assert options.extra_dirs == (Path("/a"), Path("/b"))
        assert options.log_file == Path("/tmp/run.log")


class TestMetrics:
    def test_skip_counts_reason(self):
        metrics = Metrics()
        metrics.skip(SkipReason.PREVIEW, 3)
        assert metrics.skipped == 3
        assert metrics.skipped_by[SkipReason.PREVIEW] == 3

    def test_large_byte_counts(self):
        metrics = Metrics(size_bytes=2**40)
        assert metrics.size_bytes == 1_099_511_627_776

    def test_skip_reason_values(self):
        assert SkipReason("max_age") is SkipReason.MAX_AGE


class TestTargetSummary:
    def test_path_required(self):
        with pytest.raises(ValidationError):
            TargetSummary()


class TestPreviewOutcome:
    def test_empty(self):
        outcome = PreviewOutcome()
        assert outcome.confirmed == []
        assert outcome.skipped == []


class TestErrors:
    def test_config_error_names_source(self):
        error = ConfigError("bad", "/etc/clean.yaml")
        assert str(error) == "[/etc/clean.yaml] bad"
        assert error.detail == "bad"

    def test_config_error_without_source(self):
        assert str(ConfigError("bad")) == "bad"

    def test_schema_error_is_config_error(self):
        error = ConfigSchemaError("Unknown key", "c.json", key="x")
        assert isinstance(error, ConfigError)
        assert error.key == "x"

    def test_filesystem_error_message(self):
        error = FilesystemError("/tmp/x", "remove", "busy")
        assert str(error) == "Failed to remove /tmp/x: busy"
        assert not error.permission_denied
