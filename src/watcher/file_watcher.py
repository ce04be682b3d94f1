"""
Onchange File Watcher.

Feeds filesystem changes in the watch set onto an event queue using watchdog.
Requires Python 3.11+.
"""

import os
import queue
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from utils.errors import WatcherError
from utils.logger import LoggerMixin
from watcher.models import ChangeEvent, WatchTarget
from watcher.registry import WatchRegistry

# Reads by the go tool produce open/close events; only writes matter
_CHANGE_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)

EventQueue = queue.Queue[ChangeEvent | None]


class ChangeEventHandler(FileSystemEventHandler, LoggerMixin):
    """Turns watchdog file events into ChangeEvents on a queue."""

    def __init__(self, registry: WatchRegistry, events: EventQueue) -> None:
        super().__init__()
        self._registry = registry
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_TYPES:
            return

        raw_path = event.dest_path if event.event_type == EVENT_TYPE_MOVED else event.src_path
        path = Path(os.fsdecode(raw_path))
        change = ChangeEvent(path=path, package=self._registry.package_for(path))
        self.log.debug("file_changed", path=str(path), change_type=event.event_type)
        self._events.put(change)


class FileWatcher(LoggerMixin):
    """
    Watches every directory in a WatchRegistry.

    Directories are watched non-recursively: the registry already lists
    each subdirectory. Directories added to the registry later are
    scheduled as they arrive.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        events: EventQueue | None = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            registry: The live watch set
            events: Queue receiving ChangeEvents; created when omitted
            observer_factory: Builds the watchdog observer
        """
        self._registry = registry
        self._events: EventQueue = events if events is not None else queue.Queue()
        self._handler = ChangeEventHandler(registry, self._events)
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._running = False
        registry.subscribe(self._schedule)

    @property
    def events(self) -> EventQueue:
        """Queue of observed changes."""
        return self._events

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """
        Start watching the current watch set.

        Raises:
            WatcherError: The observer could not be started
        """
        if self._running:
            return

        self._observer = self._observer_factory()
        for target in self._registry.targets():
            self._schedule_one(target)
        try:
            self._observer.start()
        except OSError as e:
            self._observer = None
            raise WatcherError(str(e)) from e

        self._running = True
        self.log.info("file_watcher_started", directories=len(self._registry))

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._running = False
        self.log.info("file_watcher_stopped")

    def _schedule(self, targets: list[WatchTarget]) -> None:
        if self._observer is None:
            return
        for target in targets:
            self._schedule_one(target)

    def _schedule_one(self, target: WatchTarget) -> None:
        try:
            self._observer.schedule(self._handler, str(target.directory), recursive=False)
        except OSError as e:
            self.log.warning("watch_failed", directory=str(target.directory), error=str(e))

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
