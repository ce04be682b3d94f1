"""
Onchange Go Tool.

Thin subprocess wrapper around the `go` command.
Requires Python 3.11+.
"""

import json
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from toolchain.models import PackageNode
from utils.errors import CommandError, PackageNotFoundError
from utils.logger import LoggerMixin


def parse_affected(stderr: str) -> list[str]:
    """
    Extract package import paths from `go <verb> -v` output.

    The go command prints one import path per line for every package it
    compiles. Comment lines ("# pkg") and diagnostics ("go: downloading
    ...") are not package names.
    """
    affected: list[str] = []
    for line in stderr.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or any(c.isspace() for c in line):
            continue
        affected.append(line)
    return affected


class GoTool(LoggerMixin):
    """
    Runs go subcommands and decodes their results.

    Every invocation captures its output; nothing is retried and no
    timeout is applied.
    """

    def __init__(
        self,
        go_binary: str = "go",
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the tool.

        Args:
            go_binary: Name or path of the go command
            cwd: Working directory for invocations (module root)
            env: Environment for invocations; inherits when None
        """
        self._go = go_binary
        self._cwd = cwd
        self._env = dict(env) if env is not None else None

    def list_package(self, import_path: str) -> PackageNode:
        """
        Resolve an import path to its package metadata.

        Raises:
            PackageNotFoundError: go list failed or returned no directory
        """
        argv = [self._go, "list", "-json", import_path]
        try:
            completed = self._invoke(argv)
        except OSError as e:
            raise PackageNotFoundError(import_path, str(e)) from e

        if completed.returncode != 0:
            raise PackageNotFoundError(import_path, completed.stderr)

        try:
            data = json.loads(completed.stdout)
            node = PackageNode.from_go_list(data)
        except (ValueError, KeyError, TypeError) as e:
            raise PackageNotFoundError(import_path, f"unexpected go list output: {e}") from e

        self.log.debug(
            "package_listed",
            package=node.import_path,
            directory=str(node.directory),
            imports=len(node.imports),
        )
        return node

    def run(
        self,
        verb: str,
        targets: Sequence[str],
        output: Path | None = None,
        verbose: bool = True,
    ) -> list[str]:
        """
        Run `go <verb>` against the given targets.

        Args:
            verb: Subcommand such as build, install or test
            targets: Import paths (or "all")
            output: Value for the -o flag
            verbose: Pass -v so affected packages are reported

        Returns:
            Import paths of the packages the go command rebuilt

        Raises:
            CommandError: The command could not run or exited non-zero
        """
        argv = [self._go, verb]
        if verbose:
            argv.append("-v")
        if output is not None:
            argv.extend(["-o", str(output)])
        argv.extend(targets)

        self.log.debug("go_command", argv=argv)
        try:
            completed = self._invoke(argv)
        except OSError as e:
            raise CommandError(verb, targets, -1, str(e)) from e

        if completed.returncode != 0:
            raise CommandError(
                verb,
                targets,
                completed.returncode,
                completed.stderr,
                completed.stdout,
            )
        return parse_affected(completed.stderr) if verbose else []

    def _invoke(self, argv: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            cwd=self._cwd,
            env=self._env,
        )
