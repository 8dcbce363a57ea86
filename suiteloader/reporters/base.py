"""Abstract base reporter and output container.

WHY: The assembled root suite is printed in different shapes: a
human-readable list, a machine-readable JSON document, or whatever a
custom reporter file produces. One interface lets the CLI treat them all
the same.

HOW: BaseReporter is an ABC with a ``name`` property and a ``render()``
method. ReporterOutput bundles the rendered content with its MIME type.

RULES:
- Subclasses MUST implement ``name`` and ``render()``
- Reporters are instantiated without arguments (custom reporter files too)
- render() never mutates the suite tree
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from suiteloader.core.ir import Suite, TestError


@dataclass
class ReporterOutput:
    """Rendered listing.

    Attributes:
        content: The listing text.
        media_type: MIME type, e.g. ``"application/json"``.
    """

    content: str
    media_type: str


class BaseReporter(ABC):
    """Abstract base for all listing reporters.

    To add a new reporter:
    1. Create a new file in reporters/
    2. Subclass BaseReporter
    3. Implement render() and name
    4. Register in REPORTERS dict in reporters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable reporter name, e.g. 'List (text)'."""

    @abstractmethod
    def render(self, root: Suite, errors: List[TestError]) -> ReporterOutput:
        """Render the assembled root suite.

        Args:
            root: Root suite returned by load_all_tests().
            errors: Errors collected during the load.

        Returns:
            The rendered listing.
        """
