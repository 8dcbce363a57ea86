"""Duplicate-title and forbid-only validation.

WHY: Two tests with the same title path in one file cannot be told apart
in reports, and a focused test committed by accident silently skips the
rest of the suite in CI. Both are reported as errors, collected across
the whole run so the user sees every problem at once.

HOW: create_duplicate_titles_errors() scans each loaded file suite on its
own. create_forbid_only_errors() turns the focused items of the assembled
root into one error each.

RULES:
- Duplicate detection is per file; the same title in two files is fine
- Duplicate key: title path without the file segment, joined with " › "
- The error sits at each repeat and names the first declaration as
  "<path relative to root_dir>:<line>"
- Forbid-only titles drop the root, project and file segments and are
  joined with a single space
- Both functions return errors; neither raises
"""

from __future__ import annotations

import os
from typing import Dict, List, Sequence

from suiteloader.core.ir import Suite, SuiteEntry, TestCase, TestError
from suiteloader.models import RunConfig

# Root, project and file segments of an item inside the assembled root.
_ROOT_PROJECT_FILE_SEGMENTS = 3


def create_duplicate_titles_errors(config: RunConfig, file_suites: Sequence[Suite]) -> List[TestError]:
    errors: List[TestError] = []
    for file_suite in file_suites:
        tests_by_full_title: Dict[str, TestCase] = {}
        for test in file_suite.all_tests():
            # Skip the file segment.
            full_title = " › ".join(test.title_path()[1:])
            existing = tests_by_full_title.get(full_title)
            if existing is not None:
                errors.append(TestError(
                    message='Error: duplicate test title "{}", first declared in {}'.format(
                        full_title, build_item_location(config.root_dir, existing)
                    ),
                    location=test.location,
                ))
            else:
                tests_by_full_title[full_title] = test
    return errors


def create_forbid_only_errors(only_items: Sequence[SuiteEntry]) -> List[TestError]:
    errors: List[TestError] = []
    for item in only_items:
        title = " ".join(item.title_path()[_ROOT_PROJECT_FILE_SEGMENTS:])
        errors.append(TestError(
            message='Error: focused item found in the --forbid-only mode: "{}"'.format(title),
            location=item.location,
        ))
    return errors


def build_item_location(root_dir: str, item: SuiteEntry) -> str:
    if item.location is None:
        return ""
    return "{}:{}".format(os.path.relpath(item.location.file, root_dir), item.location.line)
