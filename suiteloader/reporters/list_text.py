"""Plain-text test listing.

WHY: ``--list`` should show at a glance which tests a run would execute,
in which project, and where each is declared. That is the same information a
user needs to re-run a single test by file and line.

HOW: Walk the root suite in order and print one line per test:
``[project] › file:line:column › Group › test``. A summary line follows.

RULES:
- Tests appear in root order (dependency projects first)
- The file segment is the file suite title (relative to root_dir)
- Summary: "Total: N test(s) in M file(s)"
- Errors are not part of the listing; the CLI prints them separately
"""

from __future__ import annotations

from typing import List

from suiteloader.core.ir import Suite, TestCase, TestError
from suiteloader.reporters.base import BaseReporter, ReporterOutput


def format_test_line(test: TestCase) -> str:
    # ["", project, file, *groups, title]
    path = test.title_path()
    project, file_title, titles = path[1], path[2], path[3:]
    return "  [{}] › {}:{}:{} › {}".format(
        project, file_title, test.location.line, test.location.column, " › ".join(titles)
    )


class ListTextReporter(BaseReporter):
    """One line per test, then a summary."""

    @property
    def name(self) -> str:
        return "List (text)"

    def render(self, root: Suite, errors: List[TestError]) -> ReporterOutput:
        tests = root.all_tests()
        files = {test.location.file for test in tests}

        lines = ["Listing tests:"]
        lines.extend(format_test_line(test) for test in tests)
        lines.append("Total: {} test(s) in {} file(s)".format(len(tests), len(files)))
        return ReporterOutput(content="\n".join(lines) + "\n", media_type="text/plain")
