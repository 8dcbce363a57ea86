"""Exception types raised by the suite loader.

WHY: Callers need to tell apart a broken configuration, a module with the
wrong export shape, and a crashed loader. Everything else (load errors,
duplicate titles, forbidden focus markers) is collected as TestError
records instead of being raised.

RULES:
- Every raised error derives from SuiteLoaderError
- ExportShapeError messages always start with the offending file
"""

from __future__ import annotations

import os


class SuiteLoaderError(Exception):
    """Base class for errors that abort a suite loader call."""


class ConfigError(SuiteLoaderError):
    """Raised when the run configuration is invalid or unreadable."""


class DependencyCycleError(ConfigError):
    """Raised when project dependencies form a cycle.

    RULES:
    - Message names the project at which the cycle was detected
    """


class LoaderHostError(SuiteLoaderError):
    """Raised when the loader host itself fails (worker crash, shutdown)."""


class ExportShapeError(SuiteLoaderError):
    """Raised when a hook or reporter module does not export what is required.

    WHY: A global setup file has to export one function and a reporter
    file one class. Guessing at other exports would hide configuration
    mistakes, so resolution fails loudly with the file named.

    HOW: Wraps the file path and a short message; the string form is
    "<relative file>: <message>", relative to the working directory.
    """

    def __init__(self, file: str, message: str) -> None:
        self.file = file
        self.message = message
        super().__init__(f"{_relative_file_path(file)}: {message}")


def _relative_file_path(file: str) -> str:
    try:
        return os.path.relpath(file)
    except ValueError:
        # Different drive on Windows.
        return file
