"""
Tests for the Error Deduper.

Requires Python 3.11+.
"""

from structlog.testing import capture_logs

from conftest import command_error
from orchestrator.deduper import ErrorDeduper


def error_lines(logs: list[dict]) -> list[dict]:
    return [entry for entry in logs if entry["log_level"] == "error"]


class TestErrorDeduper:
    """Test cases for ErrorDeduper."""

    def test_identical_failures_logged_once(self):
        deduper = ErrorDeduper()

        with capture_logs() as logs:
            assert deduper.report(command_error(stderr="boom\n")) is True
            assert deduper.report(command_error(stderr="boom\n")) is False
            assert deduper.report(command_error(stderr="bang\n")) is True

        assert len(error_lines(logs)) == 2
        assert deduper.last_error == "bang\n"

    def test_clear_forces_redisplay(self):
        deduper = ErrorDeduper()
        deduper.report(command_error(stderr="FAIL\n"))

        deduper.clear()

        assert deduper.last_error is None
        assert deduper.report(command_error(stderr="FAIL\n")) is True

    def test_non_command_errors_always_reported(self):
        deduper = ErrorDeduper()

        with capture_logs() as logs:
            deduper.report(OSError("disk full"))
            deduper.report(OSError("disk full"))

        assert len(error_lines(logs)) == 2
        assert deduper.last_error is None

    def test_clear_screen_only_for_new_failures(self):
        cleared: list[bool] = []
        deduper = ErrorDeduper(clear_screen=lambda: cleared.append(True))

        deduper.report(command_error(stderr="x"), clear=True)
        deduper.report(command_error(stderr="x"), clear=True)
        deduper.report(command_error(stderr="y"))

        assert cleared == [True]

    def test_logged_text_includes_captured_output(self):
        deduper = ErrorDeduper()

        with capture_logs() as logs:
            deduper.report(command_error(stderr="./main.go:7:2: undefined: foo\n"))

        assert "undefined: foo" in logs[0]["error"]
        assert logs[0]["event"] == "command_failed"
