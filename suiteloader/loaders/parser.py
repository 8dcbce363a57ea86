"""Static parser turning a Python test file into a file suite.

WHY: The pipeline needs the shape of every test file (groups, tests,
locations, focus markers) without running test code. Parsing the source
with ``ast`` gives that shape safely, and the function is a plain
top-level callable so a process pool can run it as is.

HOW: Read and parse the file, then walk the module body:
  def test_*     → TestCase (module level or inside a group)
  class Test*    → describe Suite, walked recursively
A decorator whose final name is ``only`` (``@only``, ``@mark.only``,
``@pytest.mark.only``, called or not) marks the item as focused.

RULES:
- File suite title: path relative to root_dir (forward slashes), or the
  file name when the file sits outside root_dir
- File suite location is (file, 0, 0); declarations use the def/class
  line and a 1-based column
- Async test functions count as tests
- Read, syntax and nesting-depth errors never raise: the returned file
  suite is empty and carries one TestError in load_errors
"""

from __future__ import annotations

import ast
import os
from pathlib import Path
from typing import List, Union

from suiteloader.core.ir import Location, Suite, TestCase, TestError
from suiteloader.core.matchers import forward_slashes

_FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]


def parse_test_file(file: str, root_dir: str) -> Suite:
    """Parse one test file into a file suite.

    Args:
        file: Absolute path of the test file.
        root_dir: Run root, used for the suite title.

    Returns:
        The file suite; check ``load_errors`` for problems.
    """
    suite = Suite(
        title=_file_title(file, root_dir),
        kind="file",
        location=Location(file=file, line=0, column=0),
        require_file=file,
    )

    try:
        source = Path(file).read_text(encoding="utf-8")
        module = ast.parse(source, filename=file)
    except SyntaxError as e:
        suite.load_errors.append(TestError(
            message="SyntaxError: {}".format(e.msg),
            location=Location(file=file, line=e.lineno or 0, column=e.offset or 0),
        ))
        return suite
    except (MemoryError, RecursionError) as e:
        # Raised by the parser on pathologically nested source.
        suite.load_errors.append(TestError(
            message="{}: source is too deeply nested to parse".format(type(e).__name__),
            location=Location(file=file, line=0, column=0),
        ))
        return suite
    except (OSError, UnicodeDecodeError, ValueError) as e:
        suite.load_errors.append(TestError(
            message="{}: {}".format(type(e).__name__, e),
            location=Location(file=file, line=0, column=0),
        ))
        return suite

    _collect(module.body, suite, file)
    return suite


def _file_title(file: str, root_dir: str) -> str:
    try:
        relative = os.path.relpath(file, root_dir)
    except ValueError:
        return os.path.basename(file)
    if relative.startswith(".."):
        return os.path.basename(file)
    return forward_slashes(relative)


def _collect(nodes: List[ast.stmt], parent: Suite, file: str) -> None:
    for node in nodes:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name.startswith("test"):
            parent.add_test(TestCase(
                title=node.name,
                location=_location(node, file),
                only=_has_only_marker(node.decorator_list),
            ))
        elif isinstance(node, ast.ClassDef) and node.name.startswith("Test"):
            group = Suite(
                title=node.name,
                kind="describe",
                location=_location(node, file),
                only=_has_only_marker(node.decorator_list),
                require_file=file,
            )
            parent.add_suite(group)
            _collect(node.body, group, file)


def _location(node: Union[_FunctionNode, ast.ClassDef], file: str) -> Location:
    return Location(file=file, line=node.lineno, column=node.col_offset + 1)


def _has_only_marker(decorators: List[ast.expr]) -> bool:
    for decorator in decorators:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if isinstance(target, ast.Attribute) and target.attr == "only":
            return True
        if isinstance(target, ast.Name) and target.id == "only":
            return True
    return False
