"""
Onchange Toolchain Data Models.

Package metadata reported by `go list` and the outcome of a build.
Requires Python 3.11+.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Synthetic install target covering every package in the workspace
ALL_PACKAGES = "all"


@dataclass(frozen=True, slots=True)
class PackageNode:
    """A Go package and its direct imports."""

    import_path: str
    directory: Path
    imports: tuple[str, ...] = ()
    is_command: bool = False
    is_standard: bool = False

    @classmethod
    def from_go_list(cls, data: dict[str, Any]) -> "PackageNode":
        """Build a node from one `go list -json` object."""
        return cls(
            import_path=data["ImportPath"],
            directory=Path(data["Dir"]),
            imports=tuple(data.get("Imports") or ()),
            is_command=data.get("Name") == "main",
            is_standard=bool(data.get("Standard", False)),
        )


@dataclass(slots=True)
class BuildResult:
    """Result of a build: the affected packages or the captured failure."""

    affected: tuple[str, ...] = ()
    error: Exception | None = None
    binary: Path | None = None

    @property
    def ok(self) -> bool:
        """Check whether the build succeeded."""
        return self.error is None

    @property
    def has_changes(self) -> bool:
        """Check whether any package was rebuilt."""
        return bool(self.affected)
