"""
Onchange Watch Set Resolver.

Computes the directories to watch for a root package by walking each
package's directory tree and following its imports.
Requires Python 3.11+.
"""

import os
from collections.abc import Collection, Iterator
from pathlib import Path
from typing import Protocol

from toolchain.models import PackageNode
from utils.errors import PackageNotFoundError
from utils.logger import LoggerMixin
from watcher.models import WatchTarget


class PackageLocator(Protocol):
    """Resolves an import path to package metadata."""

    def list_package(self, import_path: str) -> PackageNode: ...


def walk_directories(root: Path) -> Iterator[Path]:
    """
    Yield root and every non-hidden directory beneath it.

    Hidden directories are pruned together with their subtrees.
    Siblings are visited in sorted order.
    """
    for dirpath, dirnames, _ in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        yield Path(dirpath)


class WatchSetResolver(LoggerMixin):
    """
    Resolves the watch set of a package and its transitive imports.

    Traversal is depth-first with an explicit stack and visited set, so
    import cycles terminate and every package is walked once.
    """

    def __init__(self, locator: PackageLocator, watch_standard: bool = False) -> None:
        """
        Initialize the resolver.

        Args:
            locator: Source of package metadata (normally GoTool)
            watch_standard: Also follow standard library imports
        """
        self._locator = locator
        self._watch_standard = watch_standard

    def resolve(self, root: str, known: Collection[str] = ()) -> list[WatchTarget]:
        """
        Compute the watch targets for a root package.

        Args:
            root: Import path of the root package
            known: Packages already watched; they are not walked again

        Returns:
            Targets in discovery order, one per directory

        Raises:
            PackageNotFoundError: The root package cannot be resolved
        """
        targets: list[WatchTarget] = []
        # directory -> (index in targets, directory of the owning package)
        owners: dict[Path, tuple[int, Path]] = {}
        visited: set[str] = set(known)
        stack: list[str] = [root]

        while stack:
            import_path = stack.pop()
            if import_path in visited:
                continue
            visited.add(import_path)

            node = self._locate(import_path, is_root=import_path == root)
            if node is None:
                continue

            target_dir = node.directory
            for directory in walk_directories(target_dir):
                claimed = owners.get(directory)
                if claimed is None:
                    owners[directory] = (len(targets), target_dir)
                    targets.append(WatchTarget(directory=directory, package=node.import_path))
                    continue
                index, owner_dir = claimed
                # The deepest package containing a directory owns it
                if owner_dir in target_dir.parents:
                    owners[directory] = (index, target_dir)
                    targets[index] = WatchTarget(directory=directory, package=node.import_path)

            # Reversed so the first import is walked first
            stack.extend(imp for imp in reversed(node.imports) if imp not in visited)

        self.log.debug("watch_set_resolved", root=root, directories=len(targets))
        return targets

    def _locate(self, import_path: str, is_root: bool) -> PackageNode | None:
        try:
            node = self._locator.list_package(import_path)
        except PackageNotFoundError as e:
            if is_root:
                raise
            self.log.debug("import_unresolved", package=import_path, error=str(e))
            return None

        if node.is_standard and not self._watch_standard and not is_root:
            return None
        return node
