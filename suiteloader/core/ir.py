"""Suite tree dataclasses shared by loaders, the composer and reporters.

WHY: A loaded test file, a project's view of it and the final root are all
the same shape, an ordered tree of groups and tests. One set of
dataclasses serves every stage, so filters and validators work on any
level of the tree.

HOW: Three dataclasses form the tree:
  Location  — file, line and 1-based column of a declaration
  TestCase  — a leaf with a title, a location and per-project stamps
  Suite     — an ordered list of entries (child suites and tests)
TestError is the record appended to the errors list for recoverable
problems.

RULES:
- Suite kinds: "root", "project", "file", "describe"
- entries keeps declaration order; suites and tests interleave
- title_path() walks parents; the root's title is ""
- File suites are shared between projects; never mutate one, call
  deep_clone() and mutate the copy
- Equality is identity; two suites with equal fields are still different
  nodes of the tree
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union


@dataclass(frozen=True)
class Location:
    """Source position of a test or group declaration."""

    file: str
    line: int
    column: int


@dataclass
class TestError:
    """A recoverable problem found while loading or validating.

    RULES:
    - message: human-readable, starts with "Error: " for validation errors
    - location: where the problem is, or None when it has no position
    """

    __test__ = False

    message: str
    location: Optional[Location] = None


@dataclass(eq=False)
class TestCase:
    """A single test declaration.

    WHY: Leaves carry everything a scheduler needs to address one test run:
    its title, where it is declared, and which project and repeat index
    the copy belongs to.

    RULES:
    - title / location / only: set by the loader, never changed
    - id, repeat_each_index, project_name, retries, timeout: stamped when a
      file suite is cloned into a project; empty on loaded file suites
    """

    __test__ = False

    title: str
    location: Location
    only: bool = False
    id: str = ""
    repeat_each_index: int = 0
    project_name: Optional[str] = None
    retries: int = 0
    timeout: Optional[float] = None
    parent: Optional["Suite"] = field(default=None, repr=False)

    def title_path(self) -> List[str]:
        path = self.parent.title_path() if self.parent is not None else []
        path.append(self.title)
        return path

    def clone(self) -> "TestCase":
        return TestCase(
            title=self.title,
            location=self.location,
            only=self.only,
            id=self.id,
            repeat_each_index=self.repeat_each_index,
            project_name=self.project_name,
            retries=self.retries,
            timeout=self.timeout,
        )


SuiteEntry = Union["Suite", TestCase]


@dataclass(eq=False)
class Suite:
    """A group of tests: the root, a project, a file or a describe block.

    WHY: Filters prune groups, validators scan them, the assembler
    prepends and appends them. Keeping a single ordered entries list
    (instead of separate suite and test lists) preserves declaration
    order for every consumer.

    RULES:
    - add_suite / prepend_suite / add_test set the child's parent
    - require_file: absolute path of the test file (file suites and below)
    - parallel_mode: "parallel" for fully parallel projects, else "default"
    - load_errors: problems found while loading this file (file suites only)
    """

    title: str
    kind: str
    location: Optional[Location] = None
    only: bool = False
    parallel_mode: str = "default"
    require_file: str = ""
    project_name: Optional[str] = None
    file_id: str = ""
    entries: List[SuiteEntry] = field(default_factory=list)
    load_errors: List[TestError] = field(default_factory=list)
    parent: Optional["Suite"] = field(default=None, repr=False)

    @property
    def suites(self) -> List["Suite"]:
        return [e for e in self.entries if isinstance(e, Suite)]

    @property
    def tests(self) -> List[TestCase]:
        return [e for e in self.entries if isinstance(e, TestCase)]

    def add_suite(self, suite: "Suite") -> None:
        suite.parent = self
        self.entries.append(suite)

    def prepend_suite(self, suite: "Suite") -> None:
        suite.parent = self
        self.entries.insert(0, suite)

    def add_test(self, test: TestCase) -> None:
        test.parent = self
        self.entries.append(test)

    def title_path(self) -> List[str]:
        path = self.parent.title_path() if self.parent is not None else []
        path.append(self.title)
        return path

    def all_tests(self) -> List[TestCase]:
        return list(self._iter_tests())

    def _iter_tests(self) -> Iterator[TestCase]:
        for entry in self.entries:
            if isinstance(entry, Suite):
                yield from entry._iter_tests()
            else:
                yield entry

    def get_only_items(self) -> List[SuiteEntry]:
        """Every focused test or group in this subtree, depth-first.

        A focused group and focused items inside it are all reported.
        """
        items: List[SuiteEntry] = []
        for entry in self.entries:
            if entry.only:
                items.append(entry)
            if isinstance(entry, Suite):
                items.extend(entry.get_only_items())
        return items

    def deep_clone(self) -> "Suite":
        """Copy this subtree; the copy is detached (parent is None)."""
        copy = Suite(
            title=self.title,
            kind=self.kind,
            location=self.location,
            only=self.only,
            parallel_mode=self.parallel_mode,
            require_file=self.require_file,
            project_name=self.project_name,
            file_id=self.file_id,
        )
        for entry in self.entries:
            if isinstance(entry, Suite):
                copy.add_suite(entry.deep_clone())
            else:
                copy.add_test(entry.clone())
        return copy
