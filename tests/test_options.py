"""Tests for the options builder."""

from pathlib import Path

import pytest

from dustbuster.config import MergeAccumulator
from dustbuster.errors import ConfigError
from dustbuster.models import RuntimeOptions
from dustbuster.options import OptionsBuilder

HOUR = 60 * 60 * 1000


class TestOptionsBuilder:
    def test_defaults(self):
        options = OptionsBuilder().build()
        assert options == RuntimeOptions()
        assert options.dry_run is False
        assert options.concurrency is None
        assert options.extra_dirs == ()

    def test_built_options_are_frozen(self):
        options = OptionsBuilder().build()
        with pytest.raises(Exception):
            options.dry_run = True

    def test_set_unknown_option(self):
        with pytest.raises(KeyError):
            OptionsBuilder().set(colour="red")

    def test_extra_dirs_deduplicated(self, tmp_path):
        builder = OptionsBuilder()
        builder.add_extra_dir(tmp_path / "a")
        builder.add_extra_dir(str(tmp_path / "b" / ".." / "a"))
        builder.add_extra_dir("b", base_dir=tmp_path)

        assert builder.build().extra_dirs == (tmp_path / "a", tmp_path / "b")

    def test_exclusions_deduplicated(self, tmp_path):
        builder = OptionsBuilder()
        builder.add_exclusion(tmp_path / "keep")
        builder.add_exclusion(tmp_path / "keep")

        assert builder.build().exclusions == (tmp_path / "keep",)

    def test_set_max_age(self):
        builder = OptionsBuilder()
        builder.set_max_age("30m")
        assert builder.build().max_age_ms == 30 * 60 * 1000
        builder.set_max_age(None)
        assert builder.build().max_age_ms is None

    def test_set_max_age_invalid(self):
        with pytest.raises(ConfigError, match="max-age"):
            OptionsBuilder().set_max_age("soon")

    def test_concurrency_above_one_enables_parallel(self):
        options = OptionsBuilder().set_concurrency(3).build()
        assert options.concurrency == 3
        assert options.parallel is True

    def test_concurrency_one_keeps_sequential(self):
        options = OptionsBuilder().set_concurrency(1).build()
        assert options.concurrency == 1
        assert options.parallel is False

    @pytest.mark.parametrize("value", [0, -2, True, "3", 2.5])
    def test_concurrency_invalid(self, value):
        with pytest.raises(ConfigError):
            OptionsBuilder().set_concurrency(value)

    def test_reset(self, tmp_path):
        builder = OptionsBuilder().set(dry_run=True).add_extra_dir(tmp_path)
        builder.reset()
        assert builder.build() == RuntimeOptions()

    def test_copy_is_independent(self, tmp_path):
        builder = OptionsBuilder().add_extra_dir(tmp_path / "a")
        clone = builder.copy()
        clone.add_extra_dir(tmp_path / "b").set(summary=True)

        assert builder.build().extra_dirs == (tmp_path / "a",)
        assert builder.build().summary is False


class TestApply:
    def test_lists_append_scalars_override(self, tmp_path):
        builder = OptionsBuilder().set(summary=True).add_extra_dir(tmp_path / "a")
        builder.apply(
            MergeAccumulator(
                dirs=[tmp_path / "b", tmp_path / "a"],
                exclude=[tmp_path / "x"],
                scalars={"summary": False, "max_age_ms": HOUR},
            )
        )
        options = builder.build()

        assert options.extra_dirs == (tmp_path / "a", tmp_path / "b")
        assert options.exclusions == (tmp_path / "x",)
        assert options.summary is False
        assert options.max_age_ms == HOUR

    def test_unset_scalars_left_alone(self):
        builder = OptionsBuilder().set(dry_run=True)
        builder.apply(MergeAccumulator(scalars={"summary": True}))
        assert builder.build().dry_run is True

    def test_concurrency_from_config(self):
        builder = OptionsBuilder()
        builder.apply(MergeAccumulator(scalars={"concurrency": 4}))
        options = builder.build()
        assert options.concurrency == 4
        assert options.parallel is True


class TestApplyConfig:
    def test_later_config_wins(self, tmp_path):
        first = tmp_path / "first.yaml"
        first.write_text("maxAge: 2h\ndirs: [a]\n")
        second = tmp_path / "second.json"
        second.write_text('{"maxAge": "3h", "dirs": ["b"]}')

        builder = OptionsBuilder()
        builder.apply_config(first)
        builder.apply_config(second)
        options = builder.build()

        assert options.max_age_ms == 3 * HOUR
        assert options.extra_dirs == (tmp_path / "a", tmp_path / "b")
        assert builder.config_sources == [str(first), str(second)]

    def test_flags_after_config_win(self, tmp_path):
        conf = tmp_path / "c.yaml"
        conf.write_text("maxAge: 2h\n")

        builder = OptionsBuilder()
        builder.apply_config(conf)
        builder.set_max_age("5m")

        assert builder.build().max_age_ms == 5 * 60 * 1000

    def test_config_after_flags_wins(self, tmp_path):
        conf = tmp_path / "c.yaml"
        conf.write_text("maxAge: 2h\n")

        builder = OptionsBuilder()
        builder.set_max_age("5m")
        builder.apply_config(conf)

        assert builder.build().max_age_ms == 2 * HOUR

    def test_failed_config_changes_nothing(self, tmp_path):
        (tmp_path / "1.yaml").write_text("dirs: [a]\nsummary: true\n")
        (tmp_path / "2.yaml").write_text("summary: 7\n")

        builder = OptionsBuilder().set(dry_run=True)
        before = builder.build()
        with pytest.raises(ConfigError):
            builder.apply_config(tmp_path)

        assert builder.build() == before
        assert builder.config_sources == []

    def test_apply_bundled_preset(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        builder = OptionsBuilder()
        builder.apply_preset("safe")
        options = builder.build()

        assert options.dry_run is True
        assert options.interactive_preview is True
        assert options.summary is True
        assert builder.config_sources == ["safe"]

    def test_missing_preset(self, tmp_path):
        with pytest.raises(ConfigError):
            OptionsBuilder().apply_preset("does-not-exist", tmp_path)

    def test_log_file_resolved_against_config(self, tmp_path):
        conf = tmp_path / "c.yaml"
        conf.write_text("logFile: logs/clean.log\n")

        builder = OptionsBuilder()
        builder.apply_config(conf)

        assert builder.build().log_file == tmp_path / "logs" / "clean.log"
        assert isinstance(builder.build().log_file, Path)
