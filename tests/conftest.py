"""Shared test fixtures for the suiteloader test suite.

WHY: Most tests need the same scaffolding: test files written to disk,
projects pointing at them, a run config, and a loader host that records
what it loaded. Centralizing it keeps each test down to its scenario.

HOW: Fixtures return small factory functions bound to tmp_path.
CountingLoaderHost wraps the in-process host and records every loaded
file and every shutdown.

RULES:
- All files live under tmp_path; paths returned are resolved absolute
- run_load() always injects a CountingLoaderHost so tests can assert on
  loads and shutdowns
"""

import asyncio
import textwrap
from pathlib import Path
from typing import List

import pytest

from suiteloader.core.ir import Suite, TestError
from suiteloader.core.pipeline import LoadOptions, load_all_tests
from suiteloader.loaders.in_process import InProcessLoaderHost
from suiteloader.models import ProjectConfig, RunConfig


class CountingLoaderHost(InProcessLoaderHost):
    """In-process host that records loads and shutdowns."""

    def __init__(self, config):
        super().__init__(config)
        self.loaded: List[str] = []
        self.shutdown_calls = 0

    async def load_test_file(self, file):
        self.loaded.append(file)
        return await super().load_test_file(file)

    async def _shutdown(self):
        self.shutdown_calls += 1


# ---------------------------------------------------------------------------
# Sample test sources
# ---------------------------------------------------------------------------

DB_SETUP_SOURCE = """\
def test_create_schema():
    pass


def test_seed_users():
    pass
"""

USERS_SOURCE = """\
class TestUsers:
    def test_list(self):
        pass

    def test_create(self):
        pass


def test_health():
    pass
"""

ORDERS_SOURCE = """\
def test_order_total():
    pass
"""


@pytest.fixture
def root_dir(tmp_path) -> Path:
    return tmp_path.resolve()


@pytest.fixture
def write_file(root_dir):
    """Write a source file under root_dir and return its absolute path."""

    def _write(relative: str, source: str) -> str:
        path = root_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def make_project(root_dir):
    """Create a ProjectConfig whose test_dir is root_dir/<test_dir or name>."""

    def _make(name: str, test_dir: str = None, **kwargs) -> ProjectConfig:
        return ProjectConfig(name=name, test_dir=str(root_dir / (test_dir or name)), **kwargs)

    return _make


@pytest.fixture
def make_config(root_dir):
    def _make(*projects: ProjectConfig, **kwargs) -> RunConfig:
        return RunConfig(root_dir=str(root_dir), projects=projects, **kwargs)

    return _make


@pytest.fixture
def sample_files(write_file):
    """setup/ with two tests, api/ with a users file and an orders file."""
    return {
        "db": write_file("setup/test_db.py", DB_SETUP_SOURCE),
        "users": write_file("api/test_users.py", USERS_SOURCE),
        "orders": write_file("api/test_orders.py", ORDERS_SOURCE),
    }


@pytest.fixture
def run_load():
    """Run load_all_tests synchronously with a CountingLoaderHost.

    Returns (root, errors, host).
    """

    def _run(config: RunConfig, options: LoadOptions = None, **kwargs):
        errors: List[TestError] = []
        host = CountingLoaderHost(config)
        root: Suite = asyncio.run(
            load_all_tests(config, options or LoadOptions(), errors, loader_host=host, **kwargs)
        )
        return root, errors, host

    return _run
