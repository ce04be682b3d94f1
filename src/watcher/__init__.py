"""
Onchange File Watcher Package.

Watch-set resolution, change filtering and filesystem monitoring.
Requires Python 3.11+.
"""

from watcher.change_filter import ChangeFilter, Verdict, compile_pattern
from watcher.file_watcher import FileWatcher
from watcher.models import ChangeEvent, WatchTarget
from watcher.registry import WatchRegistry
from watcher.resolver import WatchSetResolver

__all__ = [
    "ChangeEvent",
    "ChangeFilter",
    "FileWatcher",
    "Verdict",
    "WatchRegistry",
    "WatchSetResolver",
    "WatchTarget",
    "compile_pattern",
]
