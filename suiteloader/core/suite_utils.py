"""Cloning and filtering of suite trees.

WHY: Every project sees its own copy of each file suite, stamped with
the project, repeated ``repeat_each`` times, then narrowed by line/column
focus, title filters and "only" markers. These tree operations are shared
by the composer and the root assembler.

HOW: build_file_suite_for_project() deep-clones a loaded file suite and
stamps every test with a stable id. The filter functions prune entries in
place on project-owned copies and report whether anything survived.

RULES:
- Never called on a loaded file suite directly; clone first
- Test id = "<file id>-<title id>", both the first 20 hex chars of a SHA-1;
  the file id hashes the path relative to the project's test_dir, the
  title id hashes the project name, the title path and the repeat index
- filter_tests_remove_empty_suites() drops groups left without tests
- Focus filters keep a matching group whole unless something inside it
  matches too, in which case only the inner matches are kept
"""

from __future__ import annotations

import hashlib
import os
from typing import Callable, Iterable, Optional

from suiteloader.core.ir import Location, Suite, TestCase
from suiteloader.core.matchers import TestFileFilter, create_file_matcher_from_filter, forward_slashes
from suiteloader.models import ProjectConfig


def _sha1(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def build_file_suite_for_project(
    project: ProjectConfig,
    file_suite: Suite,
    repeat_each_index: int,
) -> Suite:
    """Clone a loaded file suite into one project at one repeat index.

    Args:
        project: Project that will own the clone.
        file_suite: Shared, loaded file suite (left untouched).
        repeat_each_index: 0-based repetition this clone represents.

    Returns:
        A detached clone with every test stamped for the project.
    """
    relative_file = forward_slashes(os.path.relpath(file_suite.require_file, project.test_dir))
    file_id = _sha1(relative_file)[:20]

    result = file_suite.deep_clone()
    result.file_id = file_id
    result.project_name = project.name

    repeat_suffix = " (repeat:{})".format(repeat_each_index) if repeat_each_index else ""
    for test in result.all_tests():
        expression = "[project={}]{}{}".format(
            project.name, "\x1e".join(test.title_path()), repeat_suffix
        )
        test.id = "{}-{}".format(file_id, _sha1(expression)[:20])
        test.repeat_each_index = repeat_each_index
        test.project_name = project.name
        test.retries = project.retries
        test.timeout = project.timeout
    return result


def filter_suite(
    suite: Suite,
    suite_filter: Callable[[Suite], bool],
    test_filter: Callable[[TestCase], bool],
) -> bool:
    """Narrow a tree to focused items, leaving it untouched if none match.

    WHY: Focus ("only" markers, line/column hints) selects items rather
    than excluding them. A focused group brings all its tests along,
    unless the focus is more specific inside it.

    HOW: Recurse first; a child group survives if something inside it
    matched or the group itself matches. Entries are replaced only when at
    least one survives, so an unmatched group is kept whole for its parent
    to judge.

    Returns:
        True if anything in this subtree matched.
    """
    kept = []
    for entry in suite.entries:
        if isinstance(entry, Suite):
            if filter_suite(entry, suite_filter, test_filter) or suite_filter(entry):
                kept.append(entry)
        elif test_filter(entry):
            kept.append(entry)
    if kept:
        suite.entries = kept
        return True
    return False


def filter_by_focused_line(suite: Suite, file_filters: Iterable[TestFileFilter]) -> None:
    """Keep only tests and groups declared at the focused lines.

    No-op unless at least one filter carries a line. A filter without a
    line focuses every declaration in the files it matches. When nothing
    in the tree is focused the tree is emptied.
    """
    file_filters = list(file_filters)
    if not any(f.line is not None for f in file_filters):
        return

    matchers = [(create_file_matcher_from_filter(f), f.line, f.column) for f in file_filters]

    def is_focused(location: Optional[Location]) -> bool:
        if location is None:
            return False
        return any(
            file_matcher(location.file)
            and (line is None or line == location.line)
            and (column is None or column == location.column)
            for file_matcher, line, column in matchers
        )

    if not filter_suite(suite, lambda s: is_focused(s.location), lambda t: is_focused(t.location)):
        suite.entries = []


def filter_tests_remove_empty_suites(suite: Suite, predicate: Callable[[TestCase], bool]) -> bool:
    """Drop tests failing the predicate and any group left empty.

    Returns:
        True if at least one test is left.
    """
    kept = []
    for entry in suite.entries:
        if isinstance(entry, Suite):
            if filter_tests_remove_empty_suites(entry, predicate):
                kept.append(entry)
        elif predicate(entry):
            kept.append(entry)
    suite.entries = kept
    return bool(kept)


def filter_only(suite: Suite) -> None:
    """Apply "only" semantics: if anything is focused, keep just that."""
    if not suite.get_only_items():
        return
    filter_suite(suite, lambda s: s.only, lambda t: t.only)
