"""
Onchange Process Supervisor.

Owns the single supervised child process.
Requires Python 3.11+.
"""

import shutil
import subprocess
import sys
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO, TextIO

from utils.logger import LoggerMixin

CLEAR_SEQUENCE = "\033[2J\033[H"


def clear_terminal(stream: TextIO | None = None) -> None:
    """Clear the terminal and move the cursor home."""
    stream = stream or sys.stdout
    stream.write(CLEAR_SEQUENCE)
    stream.flush()


class ProcessSupervisor(LoggerMixin):
    """
    Starts, stops and replaces the supervised process.

    At most one child is alive at a time: restart() terminates the
    current child and waits for it before launching the next one.
    """

    def __init__(
        self,
        stdout: IO[bytes] | int | None = None,
        stderr: IO[bytes] | int | None = None,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            stdout: Child stdout; None inherits the supervisor's stream
            stderr: Child stderr; None inherits the supervisor's stream
        """
        self._stdout = stdout
        self._stderr = stderr
        self._process: subprocess.Popen[bytes] | None = None
        self._lock = threading.Lock()

    @property
    def process(self) -> subprocess.Popen[bytes] | None:
        """The current child, if one was started."""
        return self._process

    @property
    def running(self) -> bool:
        """Check if a child is alive."""
        process = self._process
        return process is not None and process.poll() is None

    @staticmethod
    def resolve_binary(name: str) -> Path | None:
        """Look a command up on PATH."""
        found = shutil.which(name)
        return Path(found) if found else None

    def restart(
        self,
        binary: Path | str,
        args: Sequence[str] = (),
        argv0: str | None = None,
    ) -> bool:
        """
        Replace the running child with a new one.

        Args:
            binary: Executable to launch
            args: Arguments passed after argv[0]
            argv0: Name the child sees as argv[0]; defaults to the binary name

        Returns:
            True if the new child was started
        """
        argv = [argv0 or Path(binary).name, *args]
        with self._lock:
            self._stop_locked()
            try:
                self._process = subprocess.Popen(
                    argv,
                    executable=str(binary),
                    stdin=subprocess.DEVNULL,
                    stdout=self._stdout,
                    stderr=self._stderr,
                )
            except OSError as e:
                self.log.error("process_start_failed", binary=str(binary), error=str(e))
                return False

            self.log.info("process_started", pid=self._process.pid, argv=argv)
            return True

    def stop(self) -> None:
        """Terminate the child, if any, and wait for it."""
        with self._lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        if process.poll() is None:
            process.terminate()
        returncode = process.wait()
        self.log.debug("process_stopped", pid=process.pid, returncode=returncode)
