"""JSON test listing, validated against a bundled schema.

WHY: CI tooling consumes the list of tests a shard will run to balance
shards, to diff runs, to pre-allocate workers. It needs a stable,
documented document shape rather than scraped text.

HOW: Build a dict with one entry per project suite (tests flattened in
order), the collected errors and run stats, validate it with jsonschema
against list_schema.json, then serialise with indent=2.

RULES:
- version is "1.0.0" (matches the schema $id)
- titlePath drops the root, project and file segments
- file is the file suite title (relative to root_dir)
- Output is validated before returning; a mismatch raises
  jsonschema.ValidationError
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from suiteloader.core.ir import Suite, TestCase, TestError
from suiteloader.reporters.base import BaseReporter, ReporterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "list_schema.json"

LIST_FORMAT_VERSION = "1.0.0"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    """Load and cache the listing JSON schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def _test_to_dict(test: TestCase) -> Dict[str, Any]:
    path = test.title_path()
    return {
        "id": test.id,
        "title": test.title,
        "titlePath": path[3:],
        "file": path[2],
        "line": test.location.line,
        "column": test.location.column,
        "repeatEachIndex": test.repeat_each_index,
        "retries": test.retries,
        "timeout": test.timeout,
    }


def _error_to_dict(error: TestError) -> Dict[str, Any]:
    location = None
    if error.location is not None:
        location = {
            "file": error.location.file,
            "line": error.location.line,
            "column": error.location.column,
        }
    return {"message": error.message, "location": location}


class ListJsonReporter(BaseReporter):
    """Schema-validated JSON listing of the assembled suite."""

    @property
    def name(self) -> str:
        return "List (JSON)"

    def render(self, root: Suite, errors: List[TestError]) -> ReporterOutput:
        """Render the root suite as a JSON document.

        Raises:
            jsonschema.ValidationError: If the generated document does not
                conform to list_schema.json.
        """
        projects = [
            {
                "name": project_suite.title,
                "parallelMode": project_suite.parallel_mode,
                "tests": [_test_to_dict(t) for t in project_suite.all_tests()],
            }
            for project_suite in root.suites
        ]
        tests = root.all_tests()

        output: Dict[str, Any] = {
            "version": LIST_FORMAT_VERSION,
            "projects": projects,
            "errors": [_error_to_dict(e) for e in errors],
            "stats": {
                "projects": len(projects),
                "files": len({t.location.file for t in tests}),
                "tests": len(tests),
            },
        }

        jsonschema.validate(instance=output, schema=_get_schema())

        return ReporterOutput(
            content=json.dumps(output, indent=2, ensure_ascii=False),
            media_type="application/json",
        )
