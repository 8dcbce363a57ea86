"""Core suite model, filters, validation and the assembly pipeline.

WHY: The core package holds everything that turns configuration plus
loaded file suites into the root suite. It knows nothing about how files
are parsed or how results are reported.

HOW: ir.py defines the suite tree, matchers.py the file/title predicates,
projects.py and sharding.py decide which files run, suite_utils.py clones
and filters trees, validation.py reports duplicates and focused items,
and pipeline.py ties them together in load_all_tests().

RULES:
- Composition, filtering and validation are synchronous and pure
  in-memory; only file listing and loading await
- Loaded file suites are read-only here
"""
