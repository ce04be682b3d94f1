"""
Onchange Watch Registry.

The live, append-only watch set.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from utils.errors import PackageNotFoundError
from utils.logger import LoggerMixin
from watcher.models import WatchTarget
from watcher.resolver import WatchSetResolver

Listener = Callable[[list[WatchTarget]], None]


class WatchRegistry(LoggerMixin):
    """
    Thread-safe registry of watched directories.

    Targets are only ever added. Subscribers are told about each batch of
    new targets so they can start watching them.
    """

    def __init__(self, resolver: WatchSetResolver | None = None) -> None:
        self._resolver = resolver
        self._lock = threading.Lock()
        self._targets: dict[Path, WatchTarget] = {}
        self._packages: set[str] = set()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Call listener with every batch of newly added targets."""
        with self._lock:
            self._listeners.append(listener)

    def add(self, targets: Iterable[WatchTarget]) -> list[WatchTarget]:
        """
        Add targets whose directories are not yet watched.

        Returns:
            The targets that were actually added
        """
        added: list[WatchTarget] = []
        with self._lock:
            for target in targets:
                self._packages.add(target.package)
                if target.directory in self._targets:
                    continue
                self._targets[target.directory] = target
                added.append(target)
            listeners = list(self._listeners)

        if added:
            for listener in listeners:
                listener(added)
        return added

    def register_package(self, import_path: str) -> list[WatchTarget]:
        """
        Resolve a package and its imports into the watch set.

        Packages already in the watch set are skipped. Failures are
        logged and yield no targets.
        """
        if self._resolver is None or import_path in self.packages():
            return []

        try:
            targets = self._resolver.resolve(import_path, known=self.packages())
        except PackageNotFoundError as e:
            self.log.warning("package_registration_failed", package=import_path, error=str(e))
            return []

        added = self.add(targets)
        if added:
            self.log.info("watch_set_extended", package=import_path, directories=len(added))
        return added

    def package_for(self, path: Path | str) -> str | None:
        """Owning package of a changed file, by its directory."""
        directory = Path(path).parent
        with self._lock:
            target = self._targets.get(directory)
        return target.package if target is not None else None

    def packages(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._packages)

    def targets(self) -> list[WatchTarget]:
        """Snapshot of the watch set in insertion order."""
        with self._lock:
            return list(self._targets.values())

    def __contains__(self, directory: object) -> bool:
        if not isinstance(directory, (str, Path)):
            return False
        with self._lock:
            return Path(directory) in self._targets

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)
