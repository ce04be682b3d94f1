"""
Onchange Change Filter.

Decides whether a changed path should trigger a rebuild.
Requires Python 3.11+.
"""

import re
from enum import Enum
from pathlib import Path

from utils.errors import InvalidPatternError


class Verdict(str, Enum):
    """Outcome of filtering a changed path."""

    ACCEPTED = "accepted"
    HIDDEN = "hidden"
    NO_MATCH = "no_match"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a user supplied pattern, raising InvalidPatternError."""
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


class ChangeFilter:
    """
    Stateless path filter.

    Dot-prefixed base names (editor swap files, lock files) are always
    rejected. Anything else is accepted when the pattern matches somewhere
    in the full path, so directory-scoped patterns work.
    """

    def __init__(self, pattern: str = ".", test_file_pattern: str = r"_test\.go") -> None:
        self._pattern = compile_pattern(pattern)
        self._test_file_pattern = compile_pattern(test_file_pattern)

    @property
    def pattern(self) -> str:
        return self._pattern.pattern

    def evaluate(self, path: Path | str) -> Verdict:
        """Classify a changed path."""
        path = Path(path)
        if path.name.startswith("."):
            return Verdict.HIDDEN
        if self._pattern.search(str(path)) is None:
            return Verdict.NO_MATCH
        return Verdict.ACCEPTED

    def accepts(self, path: Path | str) -> bool:
        return self.evaluate(path) is Verdict.ACCEPTED

    def is_test_file(self, path: Path | str) -> bool:
        """Check whether the path is a test source file."""
        return self._test_file_pattern.search(str(path)) is not None
