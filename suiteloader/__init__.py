"""Suite Loader — test-suite assembly pipeline.

WHY: A test run spans several projects that share test files, depend on
each other, and are narrowed by command-line filters and shards. Something
has to decide which files to parse, parse each exactly once, and hand the
execution engine one ordered tree. This package is that step.

HOW: Five-stage pipeline — select projects, collect files, shard the
top-level work, load every file once (in-process or in a worker pool), then
compose per-project suites, validate them, and assemble the root.

RULES:
- File suites are shared and never mutated; projects always clone them
- Dependency projects always load in full, unfiltered and unsharded
- Dependency suites precede top-level suites in the root
- Recoverable problems are collected into an errors list, not raised
"""

__version__ = "0.1.0"
