"""Tests for duplicate-title and forbid-only validation."""

import os

from suiteloader.core.ir import Location, Suite, TestCase
from suiteloader.core.validation import (
    build_item_location,
    create_duplicate_titles_errors,
    create_forbid_only_errors,
)
from suiteloader.models import RunConfig


def _file_suite(root_dir, name, *titles_and_lines):
    file = os.path.join(str(root_dir), name)
    suite = Suite(title=name, kind="file", location=Location(file, 0, 0), require_file=file)
    for title, line in titles_and_lines:
        suite.add_test(TestCase(title=title, location=Location(file, line, 1)))
    return suite


class TestDuplicateTitles:
    def test_third_copy_still_references_first(self, root_dir):
        config = RunConfig(root_dir=str(root_dir))
        suite = _file_suite(root_dir, "test_a.py", ("test_x", 1), ("test_x", 4), ("test_x", 7))

        errors = create_duplicate_titles_errors(config, [suite])

        assert [e.location.line for e in errors] == [4, 7]
        assert all(e.message.endswith("first declared in test_a.py:1") for e in errors)

    def test_key_excludes_file_segment(self, root_dir):
        config = RunConfig(root_dir=str(root_dir))
        suite = _file_suite(root_dir, "test_a.py")
        group = Suite(title="TestGroup", kind="describe", location=Location(suite.require_file, 1, 1))
        suite.add_suite(group)
        group.add_test(TestCase(title="test_x", location=Location(suite.require_file, 2, 5)))
        group.add_test(TestCase(title="test_x", location=Location(suite.require_file, 4, 5)))

        errors = create_duplicate_titles_errors(config, [suite])
        assert errors[0].message.startswith('Error: duplicate test title "TestGroup › test_x"')

    def test_group_and_top_level_with_same_test_name_differ(self, root_dir):
        config = RunConfig(root_dir=str(root_dir))
        suite = _file_suite(root_dir, "test_a.py", ("test_x", 1))
        group = Suite(title="TestGroup", kind="describe")
        suite.add_suite(group)
        group.add_test(TestCase(title="test_x", location=Location(suite.require_file, 5, 5)))
        assert create_duplicate_titles_errors(config, [suite]) == []


class TestForbidOnly:
    def test_title_drops_root_project_and_file(self, root_dir):
        root = Suite(title="", kind="root")
        project = Suite(title="api", kind="project")
        root.add_suite(project)
        file_suite = _file_suite(root_dir, "test_a.py")
        project.add_suite(file_suite)
        group = Suite(title="TestGroup", kind="describe", location=Location(file_suite.require_file, 3, 1))
        file_suite.add_suite(group)
        test = TestCase(title="test_x", location=Location(file_suite.require_file, 5, 5), only=True)
        group.add_test(test)

        errors = create_forbid_only_errors(root.get_only_items())

        assert len(errors) == 1
        assert errors[0].message == 'Error: focused item found in the --forbid-only mode: "TestGroup test_x"'
        assert errors[0].location == test.location

    def test_no_items_no_errors(self):
        assert create_forbid_only_errors([]) == []


class TestBuildItemLocation:
    def test_relative_to_root(self, root_dir):
        item = TestCase(title="t", location=Location(os.path.join(str(root_dir), "a", "test_b.py"), 12, 1))
        assert build_item_location(str(root_dir), item) == "{}:12".format(os.path.join("a", "test_b.py"))

    def test_no_location(self, root_dir):
        suite = Suite(title="x", kind="describe")
        assert build_item_location(str(root_dir), suite) == ""
