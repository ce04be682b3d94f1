"""
Onchange Command Line Interface.

Rebuilds, restarts and tests a Go program whenever its sources or
dependencies change.

Usage:
    onchange [flags] <import-path> [args for the program...]
"""

import argparse
import signal
import sys
from collections.abc import Sequence

from orchestrator.deduper import ErrorDeduper
from orchestrator.event_loop import EventLoop, LoopOptions, Session
from orchestrator.process import ProcessSupervisor, clear_terminal
from toolchain.coordinator import BuildCoordinator
from toolchain.go_tool import GoTool
from utils.config import Settings, get_settings
from utils.errors import OnchangeError
from utils.logger import configure_logging, get_logger
from watcher.change_filter import ChangeFilter
from watcher.file_watcher import FileWatcher
from watcher.registry import WatchRegistry
from watcher.resolver import WatchSetResolver

logger = get_logger("onchange")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="onchange",
        description="Rebuild and restart a Go program when its sources change.",
    )
    parser.add_argument(
        "-f",
        "--pattern",
        default=None,
        help="Regexp matched against changed file paths (default: '.')",
    )
    parser.add_argument(
        "-i",
        "--install",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Install packages on change (default: on)",
    )
    parser.add_argument(
        "-a",
        "--install-all",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Install the 'all' target rather than the changed package (default: on)",
    )
    parser.add_argument(
        "-t",
        "--test",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run tests on change (default: on)",
    )
    parser.add_argument(
        "-c",
        "--clear",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Clear the display on restart (default: on)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Verbose mode",
    )
    parser.add_argument(
        "--restart-command",
        default=None,
        help="Run this command from PATH instead of the freshly built binary",
    )
    parser.add_argument(
        "--go",
        dest="go_binary",
        default=None,
        help="The go command to invoke (default: go)",
    )
    parser.add_argument(
        "package",
        help="Import path of the command package to supervise",
    )
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the supervised program",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    """Layer command-line flags over environment settings."""
    base = base or get_settings()
    return base.with_overrides(
        watcher={"pattern": args.pattern},
        build={
            "go_binary": args.go_binary,
            "install": args.install,
            "install_all": args.install_all,
            "run_tests": args.test,
        },
        supervisor={
            "clear_screen": args.clear,
            "restart_command": args.restart_command,
        },
        logging={"verbose": args.verbose},
    )


class Application:
    """Wires the watcher, toolchain and supervisor together."""

    def __init__(self, settings: Settings, package: str, args: Sequence[str]) -> None:
        self.settings = settings
        self.package = package
        self.args = tuple(args)

    def setup(self) -> None:
        """
        Build every component and start watching.

        Raises:
            OnchangeError: Bad pattern, unresolvable package or watcher failure
        """
        settings = self.settings
        clear = clear_terminal if settings.supervisor.clear_screen else None

        self.change_filter = ChangeFilter(
            settings.watcher.pattern,
            settings.watcher.test_file_pattern,
        )
        tool = GoTool(settings.build.go_binary)
        resolver = WatchSetResolver(tool, watch_standard=settings.watcher.watch_standard)
        self.registry = WatchRegistry(resolver)
        self.registry.add(resolver.resolve(self.package))

        self.watcher = FileWatcher(self.registry)
        self.watcher.start()

        self.deduper = ErrorDeduper(clear_screen=clear)
        self.supervisor = ProcessSupervisor()
        coordinator = BuildCoordinator(
            tool,
            self.deduper,
            install_all=settings.build.install_all,
        )
        self.loop = EventLoop(
            session=Session(root=self.package, args=self.args),
            events=self.watcher.events,
            change_filter=self.change_filter,
            registry=self.registry,
            coordinator=coordinator,
            supervisor=self.supervisor,
            deduper=self.deduper,
            options=LoopOptions(
                install=settings.build.install,
                run_tests=settings.build.run_tests,
                restart_command=settings.supervisor.restart_command,
            ),
            clear_screen=clear,
        )

    def run(self) -> None:
        """Run the startup cycle, then the event loop until interrupted."""
        try:
            self.loop.start()
            self.loop.run()
        except KeyboardInterrupt:
            logger.info("interrupted")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop taking events, then reap the child once no handler can start another."""
        self.loop.shutdown()
        self.watcher.stop()
        self.supervisor.stop()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the onchange command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings_from_args(args)
    configure_logging(settings.logging.verbose)

    app = Application(settings, args.package, args.args)
    try:
        app.setup()
    except OnchangeError as e:
        logger.error("fatal", error=str(e))
        return 1

    # Treat SIGTERM like Ctrl+C so the child is reaped on the way out
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    logger.info(
        "watching",
        package=args.package,
        directories=len(app.registry),
        pattern=settings.watcher.pattern,
    )
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
