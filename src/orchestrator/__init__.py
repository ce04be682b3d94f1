"""
Onchange Orchestrator Package.

Process supervision, error deduplication and the event loop.
Requires Python 3.11+.
"""

from orchestrator.deduper import ErrorDeduper
from orchestrator.event_loop import EventLoop, LoopOptions, Session
from orchestrator.process import ProcessSupervisor, clear_terminal

__all__ = [
    "ErrorDeduper",
    "EventLoop",
    "LoopOptions",
    "ProcessSupervisor",
    "Session",
    "clear_terminal",
]
