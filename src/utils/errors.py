"""
Onchange Error Types.

Exceptions raised at the seams between the supervisor and its collaborators.
Requires Python 3.11+.
"""

from collections.abc import Sequence


class OnchangeError(Exception):
    """Base error for supervisor operations."""

    pass


class InvalidPatternError(OnchangeError):
    """The change pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Failed to compile pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class PackageNotFoundError(OnchangeError):
    """An import path could not be resolved to a package directory."""

    def __init__(self, import_path: str, stderr: str = "") -> None:
        message = f"Cannot resolve package: {import_path}"
        if stderr.strip():
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)
        self.import_path = import_path
        self.stderr = stderr


class CommandError(OnchangeError):
    """A go tool invocation exited unsuccessfully."""

    def __init__(
        self,
        verb: str,
        targets: Sequence[str],
        returncode: int,
        stderr: str,
        stdout: str = "",
    ) -> None:
        super().__init__(
            f"go {verb} {' '.join(targets)} failed with exit status {returncode}"
        )
        self.verb = verb
        self.targets = tuple(targets)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout

    def __str__(self) -> str:
        parts = [super().__str__()]
        # go test reports failing tests on stdout
        for stream in (self.stdout, self.stderr):
            if stream.strip():
                parts.append(stream.rstrip())
        return "\n".join(parts)


class WatcherError(OnchangeError):
    """The filesystem observer could not be started."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to start file watcher: {reason}")
        self.reason = reason
