"""
Tests for Watch Set Resolution and the Watch Registry.

Requires Python 3.11+.
"""

from pathlib import Path

import pytest

from conftest import FakeGoTool
from utils.errors import PackageNotFoundError
from watcher.models import WatchTarget
from watcher.registry import WatchRegistry
from watcher.resolver import WatchSetResolver, walk_directories


class TestWalkDirectories:
    """Test cases for directory walking."""

    def test_hidden_directories_pruned(self, workspace: Path):
        directories = list(walk_directories(workspace / "app"))

        assert directories == [
            workspace / "app",
            workspace / "app" / "cmd",
            workspace / "app" / "cmd" / "tool",
        ]


class TestWatchSetResolver:
    """Test cases for WatchSetResolver."""

    def test_import_cycle_terminates(self, cyclic_tool: FakeGoTool, workspace: Path):
        resolver = WatchSetResolver(cyclic_tool)

        targets = resolver.resolve("example.com/app")
        directories = [t.directory for t in targets]

        assert directories == [
            workspace / "app",
            workspace / "app" / "cmd",
            workspace / "app" / "cmd" / "tool",
            workspace / "lib",
            workspace / "lib" / "internal",
        ]
        assert len(set(directories)) == len(directories)
        assert cyclic_tool.listed.count("example.com/app") == 1
        assert cyclic_tool.listed.count("example.com/lib") == 1

    def test_owning_package_recorded(self, cyclic_tool: FakeGoTool, workspace: Path):
        targets = WatchSetResolver(cyclic_tool).resolve("example.com/app")

        assert WatchTarget(workspace / "lib" / "internal", "example.com/lib") in targets

    def test_standard_library_skipped_by_default(self, cyclic_tool: FakeGoTool, workspace: Path):
        (workspace / "goroot" / "fmt").mkdir(parents=True)

        skipped = WatchSetResolver(cyclic_tool).resolve("example.com/app")
        followed = WatchSetResolver(cyclic_tool, watch_standard=True).resolve("example.com/app")

        assert workspace / "goroot" / "fmt" not in [t.directory for t in skipped]
        assert workspace / "goroot" / "fmt" in [t.directory for t in followed]

    def test_unresolvable_import_skipped(self, cyclic_tool: FakeGoTool):
        targets = WatchSetResolver(cyclic_tool).resolve("example.com/lib")

        assert "example.com/missing" in cyclic_tool.listed
        assert {t.package for t in targets} == {"example.com/lib", "example.com/app"}

    def test_unresolvable_root_raises(self, go_tool: FakeGoTool):
        with pytest.raises(PackageNotFoundError):
            WatchSetResolver(go_tool).resolve("example.com/nope")

    def test_known_packages_not_walked(self, cyclic_tool: FakeGoTool):
        targets = WatchSetResolver(cyclic_tool).resolve(
            "example.com/lib", known={"example.com/app"}
        )

        assert {t.package for t in targets} == {"example.com/lib"}
        assert "example.com/app" not in cyclic_tool.listed

    def test_nested_package_directory_listed_once(self, go_tool: FakeGoTool, workspace: Path):
        go_tool.add_package("example.com/app", workspace / "app", imports=["example.com/app/cmd/tool"])
        go_tool.add_package("example.com/app/cmd/tool", workspace / "app" / "cmd" / "tool")

        targets = WatchSetResolver(go_tool).resolve("example.com/app")

        assert [t.directory for t in targets].count(workspace / "app" / "cmd" / "tool") == 1
        owners = {t.directory: t.package for t in targets}
        assert owners[workspace / "app" / "cmd" / "tool"] == "example.com/app/cmd/tool"
        assert owners[workspace / "app"] == "example.com/app"

    def test_nested_package_walked_first_keeps_owner(self, go_tool: FakeGoTool, workspace: Path):
        tool_dir = workspace / "app" / "cmd" / "tool"
        go_tool.add_package("example.com/app/cmd/tool", tool_dir, imports=["example.com/app"])
        go_tool.add_package("example.com/app", workspace / "app")

        targets = WatchSetResolver(go_tool).resolve("example.com/app/cmd/tool")

        owners = {t.directory: t.package for t in targets}
        assert owners[tool_dir] == "example.com/app/cmd/tool"
        assert owners[workspace / "app"] == "example.com/app"
        assert [t.directory for t in targets].count(tool_dir) == 1

    def test_registry_maps_nested_files_to_subpackage(self, go_tool: FakeGoTool, workspace: Path):
        go_tool.add_package("example.com/app", workspace / "app", imports=["example.com/app/cmd/tool"])
        go_tool.add_package("example.com/app/cmd/tool", workspace / "app" / "cmd" / "tool")
        registry = WatchRegistry()

        registry.add(WatchSetResolver(go_tool).resolve("example.com/app"))

        nested = workspace / "app" / "cmd" / "tool" / "main.go"
        assert registry.package_for(nested) == "example.com/app/cmd/tool"
        assert registry.package_for(workspace / "app" / "cmd" / "x.go") == "example.com/app"
        assert "example.com/app/cmd/tool" in registry.packages()


class TestWatchRegistry:
    """Test cases for WatchRegistry."""

    def test_add_skips_duplicate_directories(self, tmp_path: Path):
        registry = WatchRegistry()
        first = registry.add([WatchTarget(tmp_path, "a")])
        second = registry.add([WatchTarget(tmp_path, "b"), WatchTarget(tmp_path / "x", "b")])

        assert first == [WatchTarget(tmp_path, "a")]
        assert second == [WatchTarget(tmp_path / "x", "b")]
        assert len(registry) == 2
        assert tmp_path in registry

    def test_subscribers_receive_new_targets(self, tmp_path: Path):
        registry = WatchRegistry()
        batches: list[list[WatchTarget]] = []
        registry.subscribe(batches.append)

        registry.add([WatchTarget(tmp_path, "a")])
        registry.add([WatchTarget(tmp_path, "a")])

        assert batches == [[WatchTarget(tmp_path, "a")]]

    def test_package_for(self, tmp_path: Path):
        registry = WatchRegistry()
        registry.add([WatchTarget(tmp_path, "example.com/app")])

        assert registry.package_for(tmp_path / "main.go") == "example.com/app"
        assert registry.package_for(tmp_path / "sub" / "x.go") is None

    def test_register_package_extends_watch_set(self, cyclic_tool: FakeGoTool, workspace: Path):
        resolver = WatchSetResolver(cyclic_tool)
        registry = WatchRegistry(resolver)
        registry.add(resolver.resolve("example.com/lib"))
        new_dir = workspace / "fresh"
        new_dir.mkdir()
        cyclic_tool.add_package("example.com/fresh", new_dir, imports=["example.com/lib"])
        listed_before = len(cyclic_tool.listed)

        added = registry.register_package("example.com/fresh")

        assert added == [WatchTarget(new_dir, "example.com/fresh")]
        assert cyclic_tool.listed[listed_before:] == ["example.com/fresh"]
        assert registry.register_package("example.com/fresh") == []

    def test_register_unknown_package_logs_and_continues(self, go_tool: FakeGoTool):
        registry = WatchRegistry(WatchSetResolver(go_tool))

        assert registry.register_package("example.com/gone") == []
        assert len(registry) == 0
