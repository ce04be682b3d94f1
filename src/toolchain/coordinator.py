"""
Onchange Build Coordinator.

Builds, installs and tests packages through the go tool.
Requires Python 3.11+.
"""

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from toolchain.go_tool import GoTool
from toolchain.models import ALL_PACKAGES, BuildResult
from utils.errors import CommandError
from utils.logger import LoggerMixin


class FailureReporter(Protocol):
    """Receives build, install and test failures."""

    def report(self, error: Exception, clear: bool = False) -> bool: ...


class BuildCoordinator(LoggerMixin):
    """
    Runs build/install/test and reports which packages were affected.

    Failures never propagate: they are handed to the reporter, which
    decides whether they are shown.
    """

    def __init__(
        self,
        tool: GoTool,
        reporter: FailureReporter,
        install_all: bool = True,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            tool: go command wrapper
            reporter: Sink for failures (normally the ErrorDeduper)
            install_all: Install the "all" target instead of one package
        """
        self._tool = tool
        self._reporter = reporter
        self._install_all = install_all

    @contextmanager
    def build(self, import_path: str) -> Iterator[BuildResult]:
        """
        Build a command package into a temporary binary.

        The binary path is allocated, then unlinked before the go command
        runs so it can create the file itself. The binary is removed when
        the context exits; a process started from it keeps running.

        Yields:
            BuildResult with the binary path on success
        """
        try:
            artifact = _allocate_artifact(import_path)
        except OSError as e:
            self._reporter.report(e)
            failed = BuildResult(error=e)
        else:
            failed = None

        if failed is not None:
            yield failed
            return

        try:
            result = self._run_build(import_path, artifact)
            yield result
        finally:
            try:
                artifact.unlink(missing_ok=True)
            except OSError as e:
                self.log.warning("temp_file_cleanup_failed", path=str(artifact), error=str(e))

    def _run_build(self, import_path: str, artifact: Path) -> BuildResult:
        try:
            affected = self._tool.run("build", [import_path], output=artifact)
        except CommandError as e:
            self._reporter.report(e, clear=True)
            return BuildResult(error=e)

        self.log.debug("build_finished", package=import_path, affected=len(affected))
        return BuildResult(affected=tuple(affected), binary=artifact)

    def install(self, import_path: str) -> bool:
        """
        Install the package, or every package when install_all is set.

        Returns:
            True if the go command reported at least one installed package
        """
        target = ALL_PACKAGES if self._install_all else import_path
        self.log.debug("installing", target=target)
        try:
            affected = self._tool.run("install", [target])
        except CommandError as e:
            self._reporter.report(e)
            return False

        if not affected:
            self.log.debug("nothing_installed", target=target)
            return False
        self.log.debug("install_finished", target=target, affected=len(affected))
        return True

    def test(self, import_path: str) -> bool:
        """Run a package's tests; returns True when they passed."""
        self.log.debug("testing", package=import_path)
        try:
            self._tool.run("test", [import_path], verbose=False)
        except CommandError as e:
            self._reporter.report(e)
            return False
        return True


def _allocate_artifact(import_path: str) -> Path:
    """Reserve a unique temp path and free it for the go command."""
    basename = import_path.rstrip("/").rsplit("/", 1)[-1] or "main"
    fd, name = tempfile.mkstemp(prefix=f"{basename}-")
    os.close(fd)
    os.unlink(name)
    return Path(name)
