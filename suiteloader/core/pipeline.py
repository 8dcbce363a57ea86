"""Test-suite assembly: file resolution, loading, composition, root assembly.

WHY: This is the heart of the package. Given the run configuration and
command-line filters it decides which files to load, loads each one once,
builds a filtered suite per project, validates the result and hands back
one ordered root suite. Several concerns interact here and the order in
which they are applied matters.

HOW: load_all_tests() runs four steps in sequence:
  1. _resolve_files_to_run — baseline files per selected project, file
     filter, drop dependency projects, shard, recompute the closure and
     restore each dependency's baseline files
  2. _load_file_suites — load the deduplicated union of files once,
     inside the loader host's context so it is always shut down
  3. duplicate-title validation over the loaded file suites
  4. root assembly — compose top-level project suites, forbid-only check,
     "only" filter, then prepend unfiltered dependency suites

RULES:
- A file is loaded at most once per run, however many projects use it
- Dependency projects skip file filters, title filters and sharding
- Sharding runs after file filtering and before dependencies are re-added
- Forbid-only is checked before the "only" filter collapses the tree
- Dependency suites are prepended, so they precede top-level suites
- Recoverable problems go to the errors list; host failures raise
- An empty root is a valid result; pass_with_no_tests is for the caller
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from suiteloader.core.ir import Suite, TestCase, TestError
from suiteloader.core.matchers import (
    Matcher,
    TestFileFilter,
    create_file_matcher_from_filters,
    create_title_matcher,
)
from suiteloader.core.projects import (
    FsCache,
    collect_files_for_project,
    filter_projects,
    projects_that_are_dependencies,
)
from suiteloader.core.sharding import filter_for_shard
from suiteloader.core.suite_utils import (
    build_file_suite_for_project,
    filter_by_focused_line,
    filter_only,
    filter_tests_remove_empty_suites,
)
from suiteloader.core.validation import create_duplicate_titles_errors, create_forbid_only_errors
from suiteloader.loaders import create_loader_host
from suiteloader.loaders.base import BaseLoaderHost
from suiteloader.models import ProjectConfig, RunConfig

logger = logging.getLogger(__name__)

ListFiles = Callable[[ProjectConfig, FsCache], Sequence[str]]
"""File-listing collaborator: (project, cache) → ordered absolute paths."""


@dataclass
class LoadOptions:
    """Command-line options that shape one load.

    RULES:
    - list_only: tests will only be listed; does not change assembly
    - test_file_filters: path regexes with optional line/column
    - test_title_matcher: extra title predicate (``--grep``), or None
    - project_filter: project names to run, or None for all
    - pass_with_no_tests: advisory, enforced by the caller
    """

    list_only: bool = False
    test_file_filters: List[TestFileFilter] = field(default_factory=list)
    test_title_matcher: Optional[Matcher] = None
    project_filter: Optional[List[str]] = None
    pass_with_no_tests: bool = False


async def load_all_tests(
    config: RunConfig,
    options: LoadOptions,
    errors: List[TestError],
    *,
    list_files: Optional[ListFiles] = None,
    loader_host: Optional[BaseLoaderHost] = None,
) -> Suite:
    """Assemble the root suite for a run.

    Args:
        config: The run configuration.
        options: Command-line filters and flags.
        errors: Sink for load, duplicate-title and forbid-only errors.
        list_files: File-listing collaborator; defaults to
            collect_files_for_project.
        loader_host: Loader to use; defaults to the one config.loader
            names. It is stopped before this function returns.

    Returns:
        The root suite. Its children are project suites, dependency
        projects first.

    Raises:
        LoaderHostError: If the loader host fails.
        DependencyCycleError: If project dependencies form a cycle.
    """
    list_files = list_files or collect_files_for_project
    projects = filter_projects(config.projects, options.project_filter)
    logger.info("Selected %d project(s): %s", len(projects), ", ".join(p.name for p in projects))

    files_to_run, top_level_projects, dependency_projects = await _resolve_files_to_run(
        config, options, projects, list_files
    )

    file_suites = await _load_file_suites(config, files_to_run, errors, loader_host)

    # Complain about duplicate titles.
    errors.extend(create_duplicate_titles_errors(config, file_suites))

    file_suites_by_path = {s.require_file: s for s in file_suites}
    root_suite = Suite(title="", kind="root")

    # Top-level projects first, so "only" applies to them alone.
    for project in top_level_projects:
        project_suite = create_project_suite(file_suites_by_path, project, options, files_to_run[project])
        if project_suite is not None:
            root_suite.add_suite(project_suite)

    if config.forbid_only:
        only_items = root_suite.get_only_items()
        if only_items:
            errors.extend(create_forbid_only_errors(only_items))

    filter_only(root_suite)

    unfiltered = replace(options, test_file_filters=[], test_title_matcher=None)
    for project in dependency_projects:
        project_suite = create_project_suite(file_suites_by_path, project, unfiltered, files_to_run[project])
        if project_suite is not None:
            root_suite.prepend_suite(project_suite)

    logger.info(
        "Assembled %d test(s) in %d project suite(s)",
        len(root_suite.all_tests()),
        len(root_suite.entries),
    )
    return root_suite


async def _resolve_files_to_run(
    config: RunConfig,
    options: LoadOptions,
    projects: Sequence[ProjectConfig],
    list_files: ListFiles,
) -> Tuple[Dict[ProjectConfig, List[str]], List[ProjectConfig], List[ProjectConfig]]:
    """Decide which files each project runs.

    Returns:
        (files per project, top-level projects, dependency projects). The
        dict is ordered: top-level projects in config order, then
        dependency projects in closure order.
    """
    fs_cache = FsCache()

    # All files for the command-line projects, no file filters yet.
    listed = await asyncio.gather(*(
        asyncio.to_thread(list_files, project, fs_cache) for project in projects
    ))
    all_files_for_project: Dict[ProjectConfig, List[str]] = {
        project: list(files) for project, files in zip(projects, listed)
    }

    # Apply file filters, drop projects left empty.
    file_matcher = (
        create_file_matcher_from_filters(options.test_file_filters)
        if options.test_file_filters else None
    )
    files_to_run: Dict[ProjectConfig, List[str]] = {}
    for project, files in all_files_for_project.items():
        filtered = [f for f in files if file_matcher(f)] if file_matcher else files
        if filtered:
            files_to_run[project] = filtered

    # Dependency projects are re-added below, unfiltered.
    for project in projects_that_are_dependencies(list(files_to_run), config):
        files_to_run.pop(project, None)

    # Shard only the top-level projects.
    if config.shard is not None:
        files_to_run = filter_for_shard(config.shard, files_to_run)
        logger.info("Shard %d/%d keeps %d project(s)", config.shard.current, config.shard.total, len(files_to_run))

    # The project set may have changed; rebuild the closure.
    top_level_projects = list(files_to_run)
    dependency_projects = projects_that_are_dependencies(top_level_projects, config)

    for project in dependency_projects:
        files = all_files_for_project.get(project)
        if files is None:
            files = list(await asyncio.to_thread(list_files, project, fs_cache))
        files_to_run[project] = files

    return files_to_run, top_level_projects, dependency_projects


async def _load_file_suites(
    config: RunConfig,
    files_to_run: Mapping[ProjectConfig, Sequence[str]],
    errors: List[TestError],
    loader_host: Optional[BaseLoaderHost],
) -> List[Suite]:
    # Ordered union of every project's files.
    all_test_files = list(dict.fromkeys(f for files in files_to_run.values() for f in files))
    logger.info("Loading %d test file(s)", len(all_test_files))

    host = loader_host if loader_host is not None else create_loader_host(config)
    async with host:
        file_suites = await asyncio.gather(*(host.load_test_file(f) for f in all_test_files))

    for file_suite in file_suites:
        if file_suite.load_errors:
            logger.warning("Failed to load %s", file_suite.require_file)
            errors.extend(file_suite.load_errors)
    return list(file_suites)


def create_project_suite(
    file_suites: Mapping[str, Suite],
    project: ProjectConfig,
    options: LoadOptions,
    files: Sequence[str],
) -> Optional[Suite]:
    """Build one project's suite from the shared file suites.

    WHY: Each project needs its own copies of its file suites (repeated,
    stamped with the project, filtered by its own patterns)
    without touching the shared file suites other projects also use.

    HOW: Clone each file suite repeat_each times into a fresh project
    suite, apply line/column focus, then the title predicate: grep-invert
    excludes outright, otherwise grep and the optional title matcher must
    both match the space-joined title path.

    RULES:
    - Files without a loaded file suite are skipped silently
    - Groups left without tests are removed
    - Returns None when no test is left; callers never attach empty suites
    """
    project_suite = Suite(title=project.name, kind="project", project_name=project.name)
    if project.fully_parallel:
        project_suite.parallel_mode = "parallel"

    for file in files:
        file_suite = file_suites.get(file)
        if file_suite is None:
            continue
        for repeat_each_index in range(project.repeat_each):
            project_suite.add_suite(build_file_suite_for_project(project, file_suite, repeat_each_index))

    # Respect line/column filters.
    filter_by_focused_line(project_suite, options.test_file_filters)

    grep_matcher = create_title_matcher(project.grep)
    grep_invert_matcher = create_title_matcher(project.grep_invert) if project.grep_invert else None
    title_matcher = options.test_title_matcher

    def matches_title(test: TestCase) -> bool:
        grep_title = " ".join(test.title_path())
        if grep_invert_matcher is not None and grep_invert_matcher(grep_title):
            return False
        return grep_matcher(grep_title) and (title_matcher is None or title_matcher(grep_title))

    if filter_tests_remove_empty_suites(project_suite, matches_title):
        logger.debug("Project '%s': %d test(s)", project.name, len(project_suite.all_tests()))
        return project_suite
    return None
