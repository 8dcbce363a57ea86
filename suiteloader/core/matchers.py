"""File-path, line/column and title matchers.

WHY: Command-line arguments like ``tests/login:12`` and project grep
patterns all boil down to predicates over a file path or a rendered title.
Building them in one place keeps their semantics identical everywhere
they are used: file selection, focus filtering and title filtering.

HOW: TestFileFilter holds a compiled regex (or an exact path) plus an
optional line and column. parse_test_file_filter() turns a CLI argument
into one. create_file_matcher_from_filters() and create_title_matcher()
return plain callables.

RULES:
- force_regex() (used for command-line patterns) compiles plain strings
  case-insensitively; create_title_matcher() compiles plain strings as
  written, so project grep patterns are case-sensitive
- "/body/flags" strings are regexes with explicit flags ("i" honoured,
  "g" accepted and ignored)
- "path:line" and "path:line:column" set line/column; both 1-based
- File paths are matched with forward slashes on every platform
- A title matcher over several patterns matches if any of them does
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

Matcher = Callable[[str], bool]

_FILE_LINE_COLUMN_RE = re.compile(r"^(.*?):(\d+):?(\d+)?$")
_SLASHED_REGEX_RE = re.compile(r"^/(.*)/([gi]*)$")


@dataclass(frozen=True)
class TestFileFilter:
    """A file filter with optional line/column focus.

    RULES:
    - pattern: regex searched in the forward-slashed absolute path
    - exact: absolute path compared verbatim (used when pattern is None)
    - line / column: None means any
    """

    __test__ = False

    pattern: Optional[re.Pattern[str]] = None
    exact: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


def forward_slashes(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


def force_regex(pattern: str) -> re.Pattern[str]:
    """Compile a user-supplied pattern string.

    Both ``login`` and ``/login/i`` are accepted; a bare string is
    case-insensitive.
    """
    match = _SLASHED_REGEX_RE.match(pattern)
    if match:
        flags = re.IGNORECASE if "i" in match.group(2) else 0
        return re.compile(match.group(1), flags)
    return re.compile(pattern, re.IGNORECASE)


def parse_test_file_filter(arg: str) -> TestFileFilter:
    """Turn a positional CLI argument into a TestFileFilter.

    ``tests/a_test.py:10:5`` → file regex ``tests/a_test.py``, line 10,
    column 5. Without a trailing number the whole argument is the regex.
    """
    match = _FILE_LINE_COLUMN_RE.match(arg)
    if match:
        file_part = match.group(1)
        line = int(match.group(2))
        column = int(match.group(3)) if match.group(3) else None
    else:
        file_part, line, column = arg, None, None
    return TestFileFilter(pattern=force_regex(forward_slashes(file_part)), line=line, column=column)


def create_file_matcher_from_filter(file_filter: TestFileFilter) -> Matcher:
    def matcher(file_path: str) -> bool:
        if file_filter.pattern is not None:
            return file_filter.pattern.search(forward_slashes(file_path)) is not None
        return file_filter.exact == file_path

    return matcher


def create_file_matcher_from_filters(filters: Iterable[TestFileFilter]) -> Matcher:
    """Match a file path against any of the filters, ignoring line/column."""
    matchers = [create_file_matcher_from_filter(f) for f in filters]
    return lambda file_path: any(m(file_path) for m in matchers)


def create_title_matcher(patterns: Union[str, re.Pattern[str], Sequence[Union[str, re.Pattern[str]]]]) -> Matcher:
    """Build a predicate over a rendered title from one or more regexes."""
    if isinstance(patterns, (str, re.Pattern)):
        patterns = [patterns]
    compiled = [re.compile(p) if isinstance(p, str) else p for p in patterns]
    return lambda title: any(regex.search(title) is not None for regex in compiled)
