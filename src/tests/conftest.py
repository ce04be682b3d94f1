"""
Onchange Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

from collections.abc import Iterable
from pathlib import Path

import pytest

from toolchain.models import PackageNode
from utils.errors import CommandError, PackageNotFoundError


class FakeGoTool:
    """
    In-memory stand-in for GoTool.

    Packages are registered with add_package(); run() outcomes are queued
    per verb with queue() and default to "nothing affected".
    """

    def __init__(self) -> None:
        self.packages: dict[str, PackageNode] = {}
        self.outcomes: dict[str, list[list[str] | Exception]] = {}
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.listed: list[str] = []
        self.outputs: list[Path] = []
        self.output_existed: list[bool] = []

    def add_package(
        self,
        import_path: str,
        directory: Path,
        imports: Iterable[str] = (),
        standard: bool = False,
    ) -> PackageNode:
        node = PackageNode(
            import_path=import_path,
            directory=directory,
            imports=tuple(imports),
            is_standard=standard,
        )
        self.packages[import_path] = node
        return node

    def queue(self, verb: str, *outcomes: list[str] | Exception) -> None:
        self.outcomes.setdefault(verb, []).extend(outcomes)

    def list_package(self, import_path: str) -> PackageNode:
        self.listed.append(import_path)
        try:
            return self.packages[import_path]
        except KeyError:
            raise PackageNotFoundError(import_path, f"cannot find package {import_path!r}") from None

    def run(
        self,
        verb: str,
        targets: list[str],
        output: Path | None = None,
        verbose: bool = True,
    ) -> list[str]:
        self.calls.append((verb, tuple(targets)))
        if output is not None:
            self.outputs.append(output)
            self.output_existed.append(output.exists())

        pending = self.outcomes.get(verb)
        outcome = pending.pop(0) if pending else []
        if isinstance(outcome, Exception):
            raise outcome
        if output is not None:
            output.write_bytes(b"\x7fELF")
        return list(outcome)

    def verbs(self) -> list[str]:
        return [verb for verb, _ in self.calls]


def command_error(verb: str = "build", stderr: str = "main.go:3: undefined: x\n") -> CommandError:
    """A go failure with the given captured stderr."""
    return CommandError(verb, ["example.com/app"], 1, stderr)


@pytest.fixture
def go_tool() -> FakeGoTool:
    """Fake go command."""
    return FakeGoTool()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """
    Create a small GOPATH-like source tree.

        app/            example.com/app (imports lib, fmt)
        app/.git/       hidden, never watched
        app/cmd/tool/
        lib/            example.com/lib (imports app: a cycle)
        lib/internal/
        lib/.cache/
    """
    app = tmp_path / "app"
    (app / ".git" / "objects").mkdir(parents=True)
    (app / "cmd" / "tool").mkdir(parents=True)
    (app / "main.go").write_text("package main\n")

    lib = tmp_path / "lib"
    (lib / "internal").mkdir(parents=True)
    (lib / ".cache").mkdir()
    (lib / "lib.go").write_text("package lib\n")
    return tmp_path


@pytest.fixture
def cyclic_tool(go_tool: FakeGoTool, workspace: Path) -> FakeGoTool:
    """Fake go tool knowing example.com/app <-> example.com/lib."""
    go_tool.add_package(
        "example.com/app",
        workspace / "app",
        imports=["example.com/lib", "fmt"],
    )
    go_tool.add_package(
        "example.com/lib",
        workspace / "lib",
        imports=["example.com/app", "example.com/missing"],
    )
    go_tool.add_package("fmt", workspace / "goroot" / "fmt", standard=True)
    return go_tool
