"""Command-line interface for the suite loader.

WHY: Users and CI scripts need to see what a run would execute (which
projects, which files, which tests, on which shard) and to catch
duplicate titles or stray focus markers before the run starts. The CLI
wires config loading, filters and the assembly pipeline behind one
command.

HOW: argparse accepts positional file filters (``path[:line[:column]]``)
and run options. The config file is loaded with RunConfig.from_file(),
command-line overrides are applied, and load_all_tests() runs via
asyncio.run(). Collected errors go to stderr; ``--list`` prints the
listing to stdout with the chosen reporter.

RULES:
- Positional arguments: file filters (regex, optionally :line[:column])
- --project is repeatable; --grep / --grep-invert compose into one matcher
- --shard, --forbid-only and --loader override the config file
- --reporter is a registered key (see REPORTERS) or a reporter file path
- Exit code 1 when errors were collected, or when no tests were found and
  --pass-with-no-tests is not set; 0 otherwise
- Status output goes to stderr (not stdout)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from suiteloader.config import DEFAULT_CONFIG_FILE, DEFAULT_REPORTER, LOADER_STRATEGIES
from suiteloader.core.ir import Suite, TestError
from suiteloader.core.matchers import Matcher, create_title_matcher, force_regex, parse_test_file_filter
from suiteloader.core.pipeline import LoadOptions, load_all_tests
from suiteloader.errors import SuiteLoaderError
from suiteloader.hooks import load_global_hook, load_reporter
from suiteloader.models import RunConfig, ShardConfig
from suiteloader.reporters import REPORTERS
from suiteloader.reporters.base import BaseReporter

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _format_error(error: TestError) -> str:
    if error.location is None:
        return error.message
    return "{}\n    at {}:{}:{}".format(
        error.message, error.location.file, error.location.line, error.location.column
    )


def _build_title_matcher(grep: Optional[str], grep_invert: Optional[str]) -> Optional[Matcher]:
    """Combine --grep and --grep-invert into one title predicate."""
    if not grep and not grep_invert:
        return None
    grep_matcher = create_title_matcher(force_regex(grep)) if grep else None
    invert_matcher = create_title_matcher(force_regex(grep_invert)) if grep_invert else None

    def matcher(title: str) -> bool:
        if invert_matcher is not None and invert_matcher(title):
            return False
        return grep_matcher is None or grep_matcher(title)

    return matcher


def _apply_overrides(config: RunConfig, args: argparse.Namespace) -> RunConfig:
    update: Dict[str, Any] = {}
    if args.shard:
        update["shard"] = ShardConfig.parse(args.shard)
    if args.forbid_only:
        update["forbid_only"] = True
    if args.loader:
        update["loader"] = args.loader
    return config.model_copy(update=update) if update else config


def _resolve_reporter(config: RunConfig, key_or_file: str) -> BaseReporter:
    if key_or_file in REPORTERS:
        return REPORTERS[key_or_file]()
    return load_reporter(config, key_or_file)()


async def _run_pipeline(args: argparse.Namespace) -> int:
    """Load the config, assemble the suite and report.

    Returns:
        Process exit code.
    """
    config = _apply_overrides(RunConfig.from_file(args.config), args)

    # Fail early on hooks with the wrong export shape.
    for hook_file in (config.global_setup, config.global_teardown):
        if hook_file:
            load_global_hook(config, hook_file)

    reporter = _resolve_reporter(config, args.reporter or config.reporter or DEFAULT_REPORTER)

    options = LoadOptions(
        list_only=args.list,
        test_file_filters=[parse_test_file_filter(arg) for arg in args.filters],
        test_title_matcher=_build_title_matcher(args.grep, args.grep_invert),
        project_filter=args.project,
        pass_with_no_tests=args.pass_with_no_tests,
    )

    errors: List[TestError] = []
    root: Suite = await load_all_tests(config, options, errors)

    if args.list:
        output = reporter.render(root, errors)
        sys.stdout.write(output.content)
        if not output.content.endswith("\n"):
            sys.stdout.write("\n")

    for error in errors:
        _status(_format_error(error))

    test_count = len(root.all_tests())
    _status("Assembled {} test(s) in {} project suite(s)".format(test_count, len(root.entries)))

    if errors:
        _status("{} error(s) found".format(len(errors)))
        return 1
    if not test_count and not options.pass_with_no_tests:
        _status("Error: No tests found")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Separate from main() so tests can inspect the parser without running
    the pipeline.
    """
    parser = argparse.ArgumentParser(
        prog="suiteloader",
        description="Assemble the test suite for a run: select projects, apply "
                    "file/title filters and sharding, validate, and list the result.",
    )

    parser.add_argument(
        "filters",
        nargs="*",
        default=[],
        help="Test file filters: a path regex, optionally with :line or :line:column.",
    )

    parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG_FILE,
        help="Path to the JSON config file (default: %(default)s).",
    )

    parser.add_argument(
        "--project",
        action="append",
        default=None,
        help="Only run tests of this project. Can be specified multiple times.",
    )

    parser.add_argument(
        "-g", "--grep",
        default=None,
        help="Only include tests whose title path matches this regex.",
    )

    parser.add_argument(
        "--grep-invert",
        default=None,
        help="Exclude tests whose title path matches this regex.",
    )

    parser.add_argument(
        "--shard",
        default=None,
        help="Run only one shard of the top-level tests, e.g. '2/3'.",
    )

    parser.add_argument(
        "--forbid-only",
        action="store_true",
        help="Report an error for every test or group marked as focused.",
    )

    parser.add_argument(
        "--loader",
        choices=LOADER_STRATEGIES,
        default=None,
        help="Where test files are parsed (default: from config).",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the assembled tests instead of a summary only.",
    )

    parser.add_argument(
        "--reporter",
        default=None,
        help="Listing reporter: {} or a path to a reporter file.".format(
            ", ".join(sorted(REPORTERS))
        ),
    )

    parser.add_argument(
        "--pass-with-no-tests",
        action="store_true",
        help="Exit with code 0 when no tests are found.",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Always exits via sys.exit with the pipeline's exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        code = asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except SuiteLoaderError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
