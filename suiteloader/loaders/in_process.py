"""Loader host that parses test files in the current process."""

from __future__ import annotations

import logging

from suiteloader.core.ir import Suite
from suiteloader.loaders.base import BaseLoaderHost
from suiteloader.loaders.parser import parse_test_file

logger = logging.getLogger(__name__)


class InProcessLoaderHost(BaseLoaderHost):
    """Parses each file synchronously; nothing to shut down."""

    async def load_test_file(self, file: str) -> Suite:
        logger.debug("Loading %s in-process", file)
        return parse_test_file(file, self._config.root_dir)
