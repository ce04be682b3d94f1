"""
Onchange Error Deduper.

Suppresses repeated failure output.
Requires Python 3.11+.
"""

from collections.abc import Callable

from utils.errors import CommandError
from utils.logger import LoggerMixin


class ErrorDeduper(LoggerMixin):
    """
    Reports a failure only when its captured stderr differs from the last one.

    Only touched by the dispatch task holding the action lock.
    """

    def __init__(self, clear_screen: Callable[[], None] | None = None) -> None:
        self._clear_screen = clear_screen
        self._last_error: str | None = None

    @property
    def last_error(self) -> str | None:
        """Captured stderr of the last reported failure."""
        return self._last_error

    def is_repeat(self, error: Exception) -> bool:
        """Check whether the error matches the last reported one."""
        if not isinstance(error, CommandError):
            return False
        return self._last_error is not None and self._last_error == error.stderr

    def report(self, error: Exception, clear: bool = False) -> bool:
        """
        Log a failure unless it repeats the previous one.

        Args:
            error: The failure; CommandErrors are compared by stderr,
                anything else is always reported
            clear: Clear the terminal before showing a new failure

        Returns:
            True if the failure was logged
        """
        if self.is_repeat(error):
            self.log.debug("error_repeated")
            return False

        if isinstance(error, CommandError):
            self._last_error = error.stderr
        if clear and self._clear_screen is not None:
            self._clear_screen()
        self.log.error("command_failed", error=str(error))
        return True

    def clear(self) -> None:
        """Forget the last failure so the next one is shown again."""
        self._last_error = None
