"""Listing reporter registry.

WHY: The CLI resolves ``--reporter`` either to a built-in key or to a
custom reporter file. A central dict of built-ins keeps that lookup to
one line and makes adding a reporter a one-line change.

HOW: REPORTERS maps keys to reporter *classes* (not instances). Callers
instantiate as needed: ``reporter = REPORTERS["list"]()``.

RULES:
- Keys are short identifiers used on the command line
- Values are BaseReporter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from suiteloader.reporters.list_json import ListJsonReporter
from suiteloader.reporters.list_text import ListTextReporter

if TYPE_CHECKING:
    from suiteloader.reporters.base import BaseReporter

REPORTERS: dict[str, type[BaseReporter]] = {
    "list": ListTextReporter,
    "json": ListJsonReporter,
}
