"""Tests for default locations and target resolution."""

import tempfile
from pathlib import Path

from dustbuster.models import RuntimeOptions
from dustbuster.scanner import is_within
from dustbuster.targets import collapse_nested, default_target_paths, resolve_targets


class TestDefaultTargetPaths:
    def test_temp_dir_first(self, tmp_path):
        paths = default_target_paths("linux", environ={}, home=tmp_path)
        assert paths[0] == Path(tempfile.gettempdir())

    def test_linux_relative_entries_use_home(self, tmp_path):
        paths = default_target_paths("linux", environ={}, home=tmp_path)
        assert tmp_path / ".cache" in paths
        assert Path("/var/tmp") in paths

    def test_darwin_table(self, tmp_path):
        paths = default_target_paths("darwin", environ={}, home=tmp_path)
        assert tmp_path / "Library" / "Caches" in paths

    def test_unknown_platform_uses_posix_table(self, tmp_path):
        paths = default_target_paths("freebsd13", environ={}, home=tmp_path)
        assert paths == default_target_paths("linux", environ={}, home=tmp_path)

    def test_windows_variables_expanded(self, tmp_path):
        environ = {"WINDIR": "D:/Win", "LOCALAPPDATA": "D:/Users/me/AppData/Local"}
        paths = default_target_paths("win32", environ=environ, home=tmp_path)

        assert Path("D:/Win/Temp") in paths
        assert Path("D:/Users/me/AppData/Local/CrashDumps") in paths

    def test_windows_missing_variables(self, tmp_path):
        paths = default_target_paths("win32", environ={}, home=tmp_path)

        assert Path("C:/Windows/Temp") in paths
        # APPDATA and LOCALAPPDATA have no fallback
        assert not any("npm-cache" in str(p) for p in paths)


class TestCollapseNested:
    def test_drops_descendants(self, tmp_path):
        parent = tmp_path / "cache"
        child = parent / "npm"
        assert collapse_nested([child, parent]) == [parent]

    def test_keeps_siblings_in_order(self, tmp_path):
        a, b = tmp_path / "b", tmp_path / "a"
        assert collapse_nested([a, b]) == [a, b]

    def test_prefix_sibling_survives(self, tmp_path):
        cache = tmp_path / "cache"
        cache_old = tmp_path / "cache-old"
        assert collapse_nested([cache, cache_old]) == [cache, cache_old]

    def test_duplicates_removed(self, tmp_path):
        assert collapse_nested([tmp_path, tmp_path]) == [tmp_path]


class TestResolveTargets:
    def test_overrides_replace_defaults(self, tmp_path):
        target = tmp_path / "t"
        target.mkdir()
        options = RuntimeOptions(extra_dirs=(tmp_path / "ignored",))

        assert resolve_targets(options, overrides=[target]) == [target]

    def test_missing_directories_dropped(self, tmp_path):
        existing = tmp_path / "exists"
        existing.mkdir()

        targets = resolve_targets(RuntimeOptions(), overrides=[tmp_path / "missing", existing])

        assert targets == [existing]

    def test_files_are_not_targets(self, tmp_path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")
        assert resolve_targets(RuntimeOptions(), overrides=[file_path]) == []

    def test_nested_override_collapsed(self, tmp_path):
        child = tmp_path / "child"
        child.mkdir()

        targets = resolve_targets(RuntimeOptions(), overrides=[str(child), str(tmp_path)])

        assert targets == [tmp_path]

    def test_relative_override_normalised(self, tmp_path, monkeypatch):
        (tmp_path / "rel").mkdir()
        monkeypatch.chdir(tmp_path)

        assert resolve_targets(RuntimeOptions(), overrides=["./rel/../rel"]) == [tmp_path / "rel"]

    def test_extra_dirs_appended_to_defaults(self, tmp_path):
        extra = tmp_path / "extra"
        extra.mkdir()
        options = RuntimeOptions(extra_dirs=(extra,))

        targets = resolve_targets(options, platform="linux")

        # tmp_path may itself sit inside the system temp directory
        assert any(is_within(t, extra) for t in targets)
