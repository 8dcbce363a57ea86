"""Tests for the assembly pipeline (load_all_tests / create_project_suite).

WHY: The pipeline applies file filters, sharding, dependency expansion,
title filters, focus and validation in a fixed order. A wrong order loses
dependency tests, loads files twice, or hides forbidden focus markers.
None of these fail loudly in a real run.

HOW: Each test writes a small project layout to tmp_path, runs
load_all_tests() with a CountingLoaderHost, and checks the assembled root
and the collected errors:
  - TestSingleLoad: shared files load once, host shut down once
  - TestDependencies: dependency projects ignore filters and come first
  - TestTitleFilters: grep / grep-invert / external matcher composition
  - TestFocus: line/column focus and "only" semantics
  - TestValidation: duplicate titles and forbid-only
  - TestSharding: disjoint shards, dependency closure after sharding
  - TestProjectSuite: repetition, parallel mode, empty results

RULES:
- Sources come from conftest; line numbers referenced below match them
- No test depends on filesystem ordering beyond sorted listings
"""

import asyncio
import os

import pytest

from suiteloader.core.ir import Suite
from suiteloader.core.matchers import TestFileFilter, create_title_matcher, force_regex, parse_test_file_filter
from suiteloader.core.pipeline import LoadOptions, create_project_suite, load_all_tests
from suiteloader.errors import LoaderHostError
from suiteloader.loaders.in_process import InProcessLoaderHost
from suiteloader.loaders.parser import parse_test_file
from suiteloader.models import ShardConfig


def titles_by_project(root: Suite):
    return [(suite.title, [t.title for t in suite.all_tests()]) for suite in root.suites]


# ---------------------------------------------------------------------------
# TestSingleLoad
# ---------------------------------------------------------------------------


class TestSingleLoad:
    """Every file is loaded once, however many projects reference it."""

    def test_shared_directory_loaded_once(self, sample_files, make_project, make_config, run_load):
        chromium = make_project("chromium", test_dir="api")
        firefox = make_project("firefox", test_dir="api")
        root, errors, host = run_load(make_config(chromium, firefox))

        assert errors == []
        assert sorted(host.loaded) == sorted([sample_files["orders"], sample_files["users"]])
        assert len(host.loaded) == len(set(host.loaded))
        assert [s.title for s in root.suites] == ["chromium", "firefox"]

    def test_dependency_shared_with_top_level_loaded_once(self, sample_files, make_project, make_config, run_load):
        setup = make_project("setup", test_dir="api")
        api = make_project("api", dependencies=["setup"])
        root, _, host = run_load(make_config(setup, api))

        assert len(host.loaded) == 2
        assert [s.title for s in root.suites] == ["setup", "api"]

    def test_host_stopped_once(self, sample_files, make_project, make_config, run_load):
        _, _, host = run_load(make_config(make_project("api")))
        assert host.shutdown_calls == 1
        assert host.stopped

    def test_host_stopped_when_loading_raises(self, sample_files, make_project, make_config):
        class CrashingHost(InProcessLoaderHost):
            shutdown_calls = 0

            async def load_test_file(self, file):
                raise LoaderHostError("worker crashed")

            async def _shutdown(self):
                CrashingHost.shutdown_calls += 1

        config = make_config(make_project("api"))
        host = CrashingHost(config)
        with pytest.raises(LoaderHostError):
            asyncio.run(load_all_tests(config, LoadOptions(), [], loader_host=host))
        assert CrashingHost.shutdown_calls == 1

    def test_file_listing_collaborator_is_used(self, sample_files, make_project, make_config, run_load):
        calls = []

        def list_files(project, cache):
            calls.append(project.name)
            return [sample_files["orders"]]

        root, _, host = run_load(make_config(make_project("api")), list_files=list_files)

        assert calls == ["api"]
        assert host.loaded == [sample_files["orders"]]
        assert titles_by_project(root) == [("api", ["test_order_total"])]


# ---------------------------------------------------------------------------
# TestDependencies
# ---------------------------------------------------------------------------


class TestDependencies:
    """Dependency projects load in full and precede top-level projects."""

    def test_dependency_prepended(self, sample_files, make_project, make_config, run_load):
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        root, _, _ = run_load(make_config(setup, api))

        assert titles_by_project(root) == [
            ("setup", ["test_create_schema", "test_seed_users"]),
            ("api", ["test_order_total", "test_list", "test_create", "test_health"]),
        ]

    def test_file_filter_does_not_narrow_dependencies(self, sample_files, make_project, make_config, run_load):
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        options = LoadOptions(test_file_filters=[parse_test_file_filter("test_orders")])
        root, _, host = run_load(make_config(setup, api), options)

        assert titles_by_project(root) == [
            ("setup", ["test_create_schema", "test_seed_users"]),
            ("api", ["test_order_total"]),
        ]
        assert sample_files["users"] not in host.loaded

    def test_title_matcher_does_not_narrow_dependencies(self, sample_files, make_project, make_config, run_load):
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        options = LoadOptions(test_title_matcher=create_title_matcher(force_regex("order")))
        root, _, _ = run_load(make_config(setup, api), options)

        assert titles_by_project(root) == [
            ("setup", ["test_create_schema", "test_seed_users"]),
            ("api", ["test_order_total"]),
        ]

    def test_unselected_dependency_is_pulled_in(self, sample_files, make_project, make_config, run_load):
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        root, _, _ = run_load(make_config(setup, api), LoadOptions(project_filter=["api"]))

        assert [s.title for s in root.suites] == ["setup", "api"]

    def test_multiple_dependencies_all_precede_top_level(self, sample_files, write_file, make_project, make_config, run_load):
        write_file("auth/test_login.py", "def test_login():\n    pass\n")
        setup = make_project("setup")
        auth = make_project("auth")
        api = make_project("api", dependencies=["setup", "auth"])
        root, _, _ = run_load(make_config(setup, auth, api))

        # Closure order is [setup, auth]; each is prepended in turn.
        assert [s.title for s in root.suites] == ["auth", "setup", "api"]

    def test_transitive_dependencies(self, sample_files, write_file, make_project, make_config, run_load):
        write_file("auth/test_login.py", "def test_login():\n    pass\n")
        setup = make_project("setup")
        auth = make_project("auth", dependencies=["setup"])
        api = make_project("api", dependencies=["auth"])
        root, _, _ = run_load(make_config(setup, auth, api), LoadOptions(project_filter=["api"]))

        titles = [s.title for s in root.suites]
        assert set(titles) == {"setup", "auth", "api"}
        assert titles[-1] == "api"


# ---------------------------------------------------------------------------
# TestTitleFilters
# ---------------------------------------------------------------------------


class TestTitleFilters:
    """grep-invert excludes; grep and the external matcher must both match."""

    def test_project_grep(self, sample_files, make_project, make_config, run_load):
        api = make_project("api", grep="TestUsers")
        root, _, _ = run_load(make_config(api))
        assert titles_by_project(root) == [("api", ["test_list", "test_create"])]

    def test_grep_invert_wins(self, sample_files, make_project, make_config, run_load):
        api = make_project("api", grep="TestUsers", grep_invert="create")
        root, _, _ = run_load(make_config(api))
        assert titles_by_project(root) == [("api", ["test_list"])]

    def test_grep_and_external_matcher(self, sample_files, make_project, make_config, run_load):
        api = make_project("api", grep="TestUsers")
        options = LoadOptions(test_title_matcher=create_title_matcher("list"))
        root, _, _ = run_load(make_config(api), options)
        assert titles_by_project(root) == [("api", ["test_list"])]

    def test_grep_matches_project_name_in_title_path(self, sample_files, make_project, make_config, run_load):
        api = make_project("api", grep="^api api/test_")
        root, _, _ = run_load(make_config(api))
        assert len(root.all_tests()) == 4

    def test_nothing_matches_drops_project(self, sample_files, make_project, make_config, run_load):
        api = make_project("api", grep="no-such-test")
        root, errors, _ = run_load(make_config(api))
        assert root.entries == []
        assert errors == []


# ---------------------------------------------------------------------------
# TestFocus
# ---------------------------------------------------------------------------


class TestFocus:
    """Line/column focus and "only" semantics."""

    def test_line_filter_selects_single_test(self, sample_files, make_project, make_config, run_load):
        # USERS_SOURCE: test_create is declared on line 5.
        options = LoadOptions(test_file_filters=[parse_test_file_filter("test_users.py:5")])
        root, _, _ = run_load(make_config(make_project("api")), options)
        assert titles_by_project(root) == [("api", ["test_create"])]

    def test_line_on_group_keeps_whole_group(self, sample_files, make_project, make_config, run_load):
        options = LoadOptions(test_file_filters=[parse_test_file_filter("test_users.py:1")])
        root, _, _ = run_load(make_config(make_project("api")), options)
        assert titles_by_project(root) == [("api", ["test_list", "test_create"])]

    def test_line_and_column(self, sample_files, make_project, make_config, run_load):
        options = LoadOptions(test_file_filters=[parse_test_file_filter("test_users.py:5:1")])
        root, _, _ = run_load(make_config(make_project("api")), options)
        # test_create is indented (column 5), so column 1 matches nothing.
        assert root.entries == []

    def test_mixed_line_and_file_filters(self, sample_files, make_project, make_config, run_load):
        options = LoadOptions(test_file_filters=[
            parse_test_file_filter("test_users.py:9"),
            parse_test_file_filter("test_orders"),
        ])
        root, _, _ = run_load(make_config(make_project("api")), options)
        assert titles_by_project(root) == [("api", ["test_order_total", "test_health"])]

    def test_only_narrows_top_level(self, write_file, sample_files, make_project, make_config, run_load):
        write_file("api/test_focus.py", """\
            def test_regular():
                pass


            @only
            def test_focused():
                pass
            """)
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        root, errors, _ = run_load(make_config(setup, api))

        assert errors == []
        assert titles_by_project(root) == [
            ("setup", ["test_create_schema", "test_seed_users"]),
            ("api", ["test_focused"]),
        ]

    def test_only_across_projects(self, write_file, make_project, make_config, run_load):
        write_file("a/test_a.py", "@only\ndef test_a():\n    pass\n")
        write_file("b/test_b.py", "def test_b():\n    pass\n")
        root, _, _ = run_load(make_config(make_project("a"), make_project("b")))
        assert titles_by_project(root) == [("a", ["test_a"])]

    def test_no_only_leaves_root_unchanged(self, sample_files, make_project, make_config, run_load):
        root, _, _ = run_load(make_config(make_project("api")))
        assert len(root.all_tests()) == 4


# ---------------------------------------------------------------------------
# TestValidation
# ---------------------------------------------------------------------------


class TestValidation:
    """Duplicate titles and forbid-only errors go to the errors sink."""

    def test_duplicate_title_reported_once(self, write_file, make_project, make_config, run_load):
        dup = write_file("api/test_dup.py", """\
            class TestSuiteA:
                def test_does_x(self):
                    pass

                def test_does_x(self):
                    pass
            """)
        root, errors, _ = run_load(make_config(make_project("api")))

        assert len(errors) == 1
        assert errors[0].message == (
            'Error: duplicate test title "TestSuiteA › test_does_x", first declared in {}:2'.format(
                os.path.join("api", "test_dup.py")
            )
        )
        assert errors[0].location.file == dup
        assert errors[0].location.line == 5
        # Assembly continues.
        assert len(root.all_tests()) == 2

    def test_same_title_in_two_files_is_not_duplicate(self, write_file, make_project, make_config, run_load):
        write_file("api/test_one.py", "def test_same():\n    pass\n")
        write_file("api/test_two.py", "def test_same():\n    pass\n")
        _, errors, _ = run_load(make_config(make_project("api")))
        assert errors == []

    def test_duplicates_checked_on_unfiltered_files(self, write_file, make_project, make_config, run_load):
        write_file("api/test_dup.py", "def test_x():\n    pass\n\n\ndef test_x():\n    pass\n")
        api = make_project("api", grep="nothing-matches")
        _, errors, _ = run_load(make_config(api))
        assert len(errors) == 1

    def test_forbid_only(self, write_file, make_project, make_config, run_load):
        focus = write_file("api/test_focus.py", """\
            def test_regular():
                pass


            @only
            def test_focused():
                pass
            """)
        config = make_config(make_project("api"), forbid_only=True)
        root, errors, _ = run_load(config)

        assert len(errors) == 1
        assert errors[0].message == 'Error: focused item found in the --forbid-only mode: "test_focused"'
        assert errors[0].location.file == focus
        assert errors[0].location.line == 6
        # The "only" filter still applies afterwards.
        assert titles_by_project(root) == [("api", ["test_focused"])]

    def test_forbid_only_names_group_path(self, write_file, make_project, make_config, run_load):
        write_file("api/test_focus.py", """\
            class TestCheckout:
                @only
                def test_pays(self):
                    pass
            """)
        _, errors, _ = run_load(make_config(make_project("api"), forbid_only=True))
        assert [e.message for e in errors] == [
            'Error: focused item found in the --forbid-only mode: "TestCheckout test_pays"'
        ]

    def test_focus_in_dependency_not_forbidden(self, write_file, make_project, make_config, run_load):
        write_file("setup/test_db.py", "@only\ndef test_create_schema():\n    pass\n")
        write_file("api/test_orders.py", "def test_order_total():\n    pass\n")
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        _, errors, _ = run_load(make_config(setup, api, forbid_only=True))
        assert errors == []

    def test_load_error_collected_and_run_continues(self, write_file, sample_files, make_project, make_config, run_load):
        broken = write_file("api/test_broken.py", "def test_oops(:\n    pass\n")
        root, errors, _ = run_load(make_config(make_project("api")))

        assert len(errors) == 1
        assert errors[0].message.startswith("SyntaxError")
        assert errors[0].location.file == broken
        assert len(root.all_tests()) == 4

    def test_unparseable_nesting_collected_and_run_continues(self, write_file, sample_files, make_project, make_config, run_load):
        deep = write_file("api/test_deep.py", "x = " + "-" * 200000 + "1\n")
        root, errors, _ = run_load(make_config(make_project("api")))

        assert len(errors) == 1
        assert errors[0].location.file == deep
        assert len(root.all_tests()) == 4


# ---------------------------------------------------------------------------
# TestSharding
# ---------------------------------------------------------------------------


class TestSharding:
    """Shards partition top-level files; dependencies follow their dependents."""

    @pytest.fixture
    def four_files(self, write_file):
        for directory, name in (("p1", "a"), ("p1", "b"), ("p2", "c"), ("p2", "d")):
            write_file("{}/test_{}.py".format(directory, name), "def test_{}():\n    pass\n".format(name))

    def _keys(self, root):
        return {(t.project_name, t.location.file, t.title) for t in root.all_tests()}

    def test_shards_are_disjoint_and_complete(self, four_files, make_project, make_config, run_load):
        projects = (make_project("p1"), make_project("p2"))
        full, _, _ = run_load(make_config(*projects))
        first, _, _ = run_load(make_config(*projects, shard=ShardConfig(current=1, total=2)))
        second, _, _ = run_load(make_config(*projects, shard=ShardConfig(current=2, total=2)))

        assert self._keys(first) and self._keys(second)
        assert self._keys(first).isdisjoint(self._keys(second))
        assert self._keys(first) | self._keys(second) == self._keys(full)
        assert titles_by_project(first) == [("p1", ["test_a", "test_b"])]
        assert titles_by_project(second) == [("p2", ["test_c", "test_d"])]

    def test_dependency_dropped_when_dependent_sharded_out(self, write_file, make_project, make_config, run_load):
        setup_file = write_file("setup/test_db.py", "def test_schema():\n    pass\n")
        write_file("api/test_api.py", "def test_api():\n    pass\n")
        web_file = write_file("web/test_web.py", "def test_web():\n    pass\n")
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])
        web = make_project("web")

        first, _, _ = run_load(make_config(setup, api, web, shard=ShardConfig(current=1, total=2)))
        second, _, host = run_load(make_config(setup, api, web, shard=ShardConfig(current=2, total=2)))

        assert titles_by_project(first) == [("setup", ["test_schema"]), ("api", ["test_api"])]
        assert titles_by_project(second) == [("web", ["test_web"])]
        assert host.loaded == [web_file]
        assert setup_file not in host.loaded

    def test_dependencies_never_partitioned(self, write_file, make_project, make_config, run_load):
        write_file("setup/test_one.py", "def test_one():\n    pass\n")
        write_file("setup/test_two.py", "def test_two():\n    pass\n")
        write_file("api/test_api.py", "def test_api():\n    pass\n")
        setup = make_project("setup")
        api = make_project("api", dependencies=["setup"])

        root, _, _ = run_load(make_config(setup, api, shard=ShardConfig(current=1, total=1)))
        assert titles_by_project(root) == [("setup", ["test_one", "test_two"]), ("api", ["test_api"])]


# ---------------------------------------------------------------------------
# TestProjectSuite
# ---------------------------------------------------------------------------


class TestProjectSuite:
    """create_project_suite: repetition, stamping, parallel mode."""

    def _file_suites(self, sample_files, root_dir):
        return {path: parse_test_file(path, str(root_dir)) for path in sample_files.values()}

    def test_repeat_each_clones(self, sample_files, root_dir, make_project):
        project = make_project("api", repeat_each=3)
        file_suites = self._file_suites(sample_files, root_dir)
        suite = create_project_suite(file_suites, project, LoadOptions(), [sample_files["orders"]])

        tests = suite.all_tests()
        assert len(suite.entries) == 3
        assert [t.repeat_each_index for t in tests] == [0, 1, 2]
        assert len({t.id for t in tests}) == 3

    def test_shared_file_suite_not_mutated(self, sample_files, root_dir, make_project):
        file_suites = self._file_suites(sample_files, root_dir)
        original = file_suites[sample_files["users"]]
        before = [t.title for t in original.all_tests()]

        create_project_suite(file_suites, make_project("api", grep="list"), LoadOptions(), [sample_files["users"]])

        assert [t.title for t in original.all_tests()] == before
        assert all(t.project_name is None for t in original.all_tests())
        assert original.parent is None

    def test_missing_file_suite_skipped(self, sample_files, root_dir, make_project):
        file_suites = self._file_suites(sample_files, root_dir)
        suite = create_project_suite(
            file_suites, make_project("api"), LoadOptions(), ["/nowhere/test_x.py", sample_files["orders"]]
        )
        assert [t.title for t in suite.all_tests()] == ["test_order_total"]

    def test_fully_parallel_sets_mode(self, sample_files, root_dir, make_project):
        file_suites = self._file_suites(sample_files, root_dir)
        suite = create_project_suite(
            file_suites, make_project("api", fully_parallel=True), LoadOptions(), [sample_files["orders"]]
        )
        assert suite.parallel_mode == "parallel"
        assert suite.kind == "project"
        assert suite.title == "api"

    def test_returns_none_when_empty(self, sample_files, root_dir, make_project):
        file_suites = self._file_suites(sample_files, root_dir)
        assert create_project_suite(file_suites, make_project("api"), LoadOptions(), []) is None

    def test_stamps_project_settings(self, sample_files, root_dir, make_project):
        file_suites = self._file_suites(sample_files, root_dir)
        project = make_project("api", retries=2, timeout=30)
        suite = create_project_suite(file_suites, project, LoadOptions(), [sample_files["orders"]])
        test = suite.all_tests()[0]
        assert test.retries == 2
        assert test.timeout == 30
        assert test.project_name == "api"

    def test_unknown_project_filter_gives_empty_root(self, sample_files, make_project, make_config, run_load):
        root, errors, host = run_load(make_config(make_project("api")), LoadOptions(project_filter=["nope"]))
        assert root.entries == []
        assert errors == []
        assert host.loaded == []

    def test_exact_file_filter(self, sample_files, make_project, make_config, run_load):
        options = LoadOptions(test_file_filters=[TestFileFilter(exact=sample_files["orders"])])
        root, _, host = run_load(make_config(make_project("api")), options)
        assert host.loaded == [sample_files["orders"]]
        assert titles_by_project(root) == [("api", ["test_order_total"])]
