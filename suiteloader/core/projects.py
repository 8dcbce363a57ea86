"""Project selection, dependency closure and test file collection.

WHY: Before anything is loaded, the pipeline has to know which projects
take part and which files belong to each. Projects selected on the command
line may pull in dependency projects that were never named, and several
projects commonly scan the same directory, and walking it once per project
would repeat the same filesystem work.

HOW: filter_projects() narrows the configured projects by name.
projects_that_are_dependencies() walks dependency references depth-first.
collect_files_for_project() lists a project's test directory through an
FsCache shared by every project of one run.

RULES:
- No project filter (None or empty) selects every project
- Project filters match names case-insensitively; unknown names select
  nothing (logged), they do not raise
- The dependency closure lists projects in first-discovery order and
  excludes the starting projects unless another starting project depends
  on them
- Dependency cycles raise DependencyCycleError
- Collected files are absolute, sorted, and match test_match but not
  test_ignore; a missing test directory yields no files
"""

from __future__ import annotations

import fnmatch
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from suiteloader.config import IGNORED_DIRECTORIES
from suiteloader.errors import DependencyCycleError
from suiteloader.models import ProjectConfig, RunConfig

logger = logging.getLogger(__name__)

# Dependency chains deeper than this are treated as cycles.
_MAX_DEPENDENCY_DEPTH = 100


def filter_projects(
    projects: Sequence[ProjectConfig],
    project_filter: Optional[Sequence[str]] = None,
) -> List[ProjectConfig]:
    """Return the projects named on the command line, in config order."""
    if not project_filter:
        return list(projects)

    wanted = {name.lower() for name in project_filter}
    result = [p for p in projects if p.name.lower() in wanted]

    known = {p.name.lower() for p in projects}
    unknown = sorted(wanted - known)
    if unknown:
        logger.warning(
            "Unknown project filter(s): %s (available: %s)",
            ", ".join(unknown),
            ", ".join(p.name for p in projects) or "none",
        )
    return result


def projects_that_are_dependencies(
    projects: Sequence[ProjectConfig],
    config: RunConfig,
) -> List[ProjectConfig]:
    """Transitive dependencies of the given projects.

    WHY: Dependency projects are loaded in full and placed before the
    projects that need them, so the pipeline has to know the whole
    closure, not just direct references.

    HOW: Depth-first walk from every starting project, following
    dependency declarations in order. A project is recorded the first time
    it is reached at depth ≥ 1.

    RULES:
    - Result order is first-discovery order (a list, not a set)
    - A starting project appears only if another project depends on it
    - Depth beyond _MAX_DEPENDENCY_DEPTH raises DependencyCycleError

    Raises:
        DependencyCycleError: If the dependency graph has a cycle.
    """
    result: Dict[str, ProjectConfig] = {}

    def visit(depth: int, project: ProjectConfig) -> None:
        if depth > _MAX_DEPENDENCY_DEPTH:
            raise DependencyCycleError(
                "Circular dependency detected at project '{}'".format(project.name)
            )
        if depth and project.name not in result:
            result[project.name] = project
        for dep in config.dependencies_of(project):
            visit(depth + 1, dep)

    for project in projects:
        visit(0, project)
    return list(result.values())


class FsCache:
    """Directory listings memoised for the duration of one pipeline run.

    WHY: Projects often share a test directory. Listing it once and
    reusing the result avoids repeated walks of large trees.

    HOW: A dict keyed by absolute directory holds the sorted list of files
    below it. Reads and writes take a lock; the walk itself runs outside
    the lock, so two threads may list the same directory concurrently;
    both produce the same result and the second write is harmless.

    RULES:
    - Keys are absolute directory paths
    - Values are sorted absolute file paths, directories in
      IGNORED_DIRECTORIES and hidden directories skipped
    - Never invalidated; create a new FsCache per run
    """

    def __init__(self) -> None:
        self._listings: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def list_dir(self, directory: str) -> List[str]:
        key = str(Path(directory).resolve())
        with self._lock:
            cached = self._listings.get(key)
        if cached is not None:
            return cached

        files = _walk(key)
        with self._lock:
            self._listings[key] = files
        logger.debug("Listed %d files under %s", len(files), key)
        return files

    def __len__(self) -> int:
        with self._lock:
            return len(self._listings)


def _walk(directory: str) -> List[str]:
    files: List[str] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = [
            d for d in dirnames
            if d not in IGNORED_DIRECTORIES and not d.startswith(".")
        ]
        for name in filenames:
            files.append(os.path.join(dirpath, name))
    return sorted(files)


def _matches_any(relative_path: str, patterns: Sequence[str]) -> bool:
    name = relative_path.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in patterns
    )


def collect_files_for_project(project: ProjectConfig, fs_cache: FsCache) -> List[str]:
    """List the test files of one project.

    Args:
        project: The project whose test_dir is scanned.
        fs_cache: Listing cache shared across the projects of this run.

    Returns:
        Sorted absolute paths of files matching the project's test_match
        globs and none of its test_ignore globs.
    """
    test_dir = Path(project.test_dir)
    if not test_dir.is_dir():
        logger.warning("Test directory for project '%s' does not exist: %s", project.name, test_dir)
        return []

    base = test_dir.resolve()
    result: List[str] = []
    for file in fs_cache.list_dir(str(base)):
        relative = Path(file).relative_to(base).as_posix()
        if not _matches_any(relative, project.test_match):
            continue
        if project.test_ignore and _matches_any(relative, project.test_ignore):
            continue
        result.append(file)
    return result
