"""Configuration constants and .env loading.

WHY: Centralizes the defaults the pipeline falls back to when a config
file or the command line does not say otherwise: which loader strategy
to use, how many workers the out-of-process loader may start, which
files count as test files. Keeping them as plain data makes them easy
to find and override.

HOW: python-dotenv loads the .env file on import. Constants are
module-level tuples and strings, each overridable via an environment
variable.

RULES:
- Loader strategy is an explicit value ("in-process" / "out-of-process"),
  read once here and then passed around in RunConfig, never re-read
- SUITELOADER_WORKERS=0 or unset means "one worker per CPU"
- Test file globs match against the file name or the path relative to
  the project's test directory
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory
load_dotenv()

# ---------------------------------------------------------------------------
# Loader strategy
# ---------------------------------------------------------------------------

IN_PROCESS_LOADER = "in-process"
OUT_OF_PROCESS_LOADER = "out-of-process"
LOADER_STRATEGIES: tuple[str, ...] = (IN_PROCESS_LOADER, OUT_OF_PROCESS_LOADER)

DEFAULT_LOADER = os.getenv("SUITELOADER_LOADER", IN_PROCESS_LOADER)
DEFAULT_WORKERS = int(os.getenv("SUITELOADER_WORKERS", "0") or "0") or (os.cpu_count() or 1)

# ---------------------------------------------------------------------------
# Test file discovery
# ---------------------------------------------------------------------------

DEFAULT_TEST_MATCH: tuple[str, ...] = ("test_*.py", "*_test.py")
"""Globs a file must match (name or relative path) to be a test file."""

DEFAULT_TEST_IGNORE: tuple[str, ...] = ()

IGNORED_DIRECTORIES = frozenset({"__pycache__", ".git", ".venv", "node_modules"})
"""Directory names never descended into while listing test files."""

DEFAULT_GREP: tuple[str, ...] = (".*",)

# ---------------------------------------------------------------------------
# CLI defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILE = os.getenv("SUITELOADER_CONFIG", "suiteloader.json")
DEFAULT_REPORTER = os.getenv("SUITELOADER_REPORTER", "list")
