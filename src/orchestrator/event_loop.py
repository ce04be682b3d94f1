"""
Onchange Event Loop.

Receives change events and serializes the install/build/restart/test
cycle they trigger.
Requires Python 3.11+.
"""

import itertools
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from orchestrator.deduper import ErrorDeduper
from orchestrator.process import ProcessSupervisor
from toolchain.coordinator import BuildCoordinator
from utils.logger import LoggerMixin
from watcher.change_filter import ChangeFilter, Verdict
from watcher.models import ChangeEvent
from watcher.registry import WatchRegistry


@dataclass
class Session:
    """Per-run supervisor state, owned by the holder of the action lock."""

    root: str
    args: tuple[str, ...] = ()
    last_test_failed: bool = False

    @property
    def argv0(self) -> str:
        """Name of the root package as seen by the child."""
        return self.root.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class LoopOptions:
    """Behavior switches for the event loop."""

    install: bool = True
    run_tests: bool = True
    restart_command: str | None = None


class EventLoop(LoggerMixin):
    """
    Single control loop over change events.

    Each accepted event is handled on its own thread. Handlers contend for
    one lock, so restarts and error output happen strictly one at a time,
    in lock-acquisition order.
    """

    def __init__(
        self,
        session: Session,
        events: "queue.Queue[ChangeEvent | None]",
        change_filter: ChangeFilter,
        registry: WatchRegistry,
        coordinator: BuildCoordinator,
        supervisor: ProcessSupervisor,
        deduper: ErrorDeduper,
        options: LoopOptions | None = None,
        clear_screen: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._events = events
        self._filter = change_filter
        self._registry = registry
        self._coordinator = coordinator
        self._supervisor = supervisor
        self._deduper = deduper
        self._options = options or LoopOptions()
        self._clear_screen = clear_screen
        self._lock = threading.Lock()
        self._closed = False
        self._tasks: list[threading.Thread] = []
        self._task_ids = itertools.count(1)

    @property
    def session(self) -> Session:
        return self._session

    def start(self) -> None:
        """Run the startup cycle: build and launch the process once."""
        with self._lock:
            if self._closed:
                return
            if self._options.restart_command and self._options.install:
                self._coordinator.install(self._session.root)
            self._restart()

    def run(self) -> None:
        """Process events until stop() is called."""
        while True:
            self.log.debug("main_loop_iteration")
            event = self._events.get()
            if event is None:
                break
            if self.accepts(event):
                self.dispatch(event)
        self.log.debug("event_loop_stopped")

    def stop(self) -> None:
        """Make run() return after the events already queued."""
        self._events.put(None)

    def shutdown(self) -> None:
        """
        Stop the loop and wait out the handler holding the action lock.

        Handlers that acquire the lock afterwards do nothing, so no child
        can be launched once the caller goes on to stop the supervisor.
        """
        self.stop()
        with self._lock:
            self._closed = True
        self.log.debug("event_loop_closed")

    def accepts(self, event: ChangeEvent) -> bool:
        """Apply the change filter, logging the decision."""
        verdict = self._filter.evaluate(event.path)
        if verdict is Verdict.HIDDEN:
            self.log.debug("ignored_dot_file", path=str(event.path))
        elif verdict is Verdict.NO_MATCH:
            self.log.debug("ignored_file", path=str(event.path))
        else:
            self.log.debug("change_triggered_restart", path=str(event.path))
        return verdict is Verdict.ACCEPTED

    def dispatch(self, event: ChangeEvent) -> threading.Thread:
        """Handle an event on its own thread."""
        task = threading.Thread(
            target=self.handle,
            args=(event,),
            name=f"onchange-dispatch-{next(self._task_ids)}",
            daemon=True,
        )
        self._tasks = [t for t in self._tasks if t.is_alive()]
        self._tasks.append(task)
        task.start()
        return task

    def wait_idle(self, timeout: float | None = None) -> None:
        """Wait for dispatched handlers to finish."""
        for task in list(self._tasks):
            task.join(timeout)

    def handle(self, event: ChangeEvent) -> None:
        """Run the action cycle for one event under the action lock."""
        with self._lock:
            if self._closed:
                self.log.debug("event_dropped", path=str(event.path))
                return
            try:
                self._handle_locked(event)
            except Exception as e:
                self.log.exception("event_handling_failed", path=str(event.path), error=str(e))

    def _handle_locked(self, event: ChangeEvent) -> None:
        session = self._session
        if self._filter.is_test_file(event.path):
            self.log.debug("test_file_changed", path=str(event.path))
            self._deduper.clear()

        if event.package is not None:
            self._registry.register_package(event.package)

        package = event.package or session.root
        if self._options.install and not self._coordinator.install(package):
            self.log.debug("restart_skipped", reason="nothing_installed")
            return

        self._restart()

        if self._options.run_tests:
            self._test(package)

    def _restart(self) -> None:
        session = self._session
        command = self._options.restart_command
        if command:
            binary = self._supervisor.resolve_binary(command)
            if binary is None:
                self.log.error("restart_command_not_found", command=command)
                return
            self._launch(binary, argv0=command)
            return

        with self._coordinator.build(session.root) as result:
            if not result.ok:
                return
            # Install already reports what changed; a build after it finds
            # everything cached. Without a live child there is nothing to keep.
            gated = not self._options.install and self._supervisor.running
            if gated and not result.has_changes:
                self.log.debug("restart_skipped", reason="zero_affected_packages")
                return
            self._launch(result.binary, argv0=session.argv0)

    def _launch(self, binary: Path, argv0: str) -> None:
        if self._clear_screen is not None:
            self._clear_screen()
        self._supervisor.restart(binary, self._session.args, argv0=argv0)

    def _test(self, package: str) -> None:
        session = self._session
        passed = self._coordinator.test(package)
        if passed and session.last_test_failed:
            self.log.info("tests_recovered", package=package)
        session.last_test_failed = not passed

