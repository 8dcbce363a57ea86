"""Resolution of global hook and custom reporter modules.

WHY: A run may name a global setup/teardown file and a custom reporter
file. Each must provide exactly one thing: a function for hooks, a class
for reporters. Checking that when the module is resolved turns a vague
failure later on into a clear message that names the file.

HOW: Import the file with importlib, take its single export (the
``default`` attribute, else the only name in ``__all__``) and check the
capability required: a plain callable for hooks, a class for reporters.

RULES:
- Paths are resolved against RunConfig.root_dir
- Hooks: callable and not a class; reporters: a class
- Anything else raises ExportShapeError "<file>: file must export a
  single function." / "... class."
- Import errors raised by the module itself propagate unchanged
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from suiteloader.errors import ExportShapeError
from suiteloader.models import RunConfig

logger = logging.getLogger(__name__)


def require_or_import(file: str) -> ModuleType:
    """Import a Python file as a standalone module."""
    digest = hashlib.sha1(file.encode("utf-8")).hexdigest()[:10]
    module_name = "_suiteloader_{}_{}".format(Path(file).stem, digest)
    spec = importlib.util.spec_from_file_location(module_name, file)
    if spec is None or spec.loader is None:
        raise ImportError("Cannot import {}".format(file))
    module = importlib.util.module_from_spec(spec)
    # Must be importable by name while its body runs.
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def _single_export(module: ModuleType) -> Any:
    if hasattr(module, "default"):
        return module.default
    names = getattr(module, "__all__", None)
    if names is not None and len(names) == 1:
        return getattr(module, names[0], None)
    return None


def _require_default_export(file: str, expect_class: bool) -> Any:
    export = _single_export(require_or_import(file))
    if expect_class:
        ok = inspect.isclass(export)
    else:
        ok = callable(export) and not inspect.isclass(export)
    if not ok:
        raise ExportShapeError(
            file, "file must export a single {}.".format("class" if expect_class else "function")
        )
    logger.debug("Resolved %s from %s", getattr(export, "__name__", export), file)
    return export


def load_global_hook(config: RunConfig, file: str) -> Callable[[RunConfig], Any]:
    return _require_default_export(str(Path(config.root_dir, file).resolve()), expect_class=False)


def load_reporter(config: RunConfig, file: str) -> type:
    return _require_default_export(str(Path(config.root_dir, file).resolve()), expect_class=True)
