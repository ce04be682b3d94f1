"""
Onchange Watcher Data Models.

Requires Python 3.11+.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class WatchTarget:
    """A directory under surveillance and the package that owns it."""

    directory: Path
    package: str


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A changed file and its owning package, when known."""

    path: Path
    package: str | None = None
