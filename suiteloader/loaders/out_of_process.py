"""Loader host backed by a pool of worker processes.

WHY: Isolating parsing in worker processes keeps a misbehaving file (or
an interpreter crash while reading it) from taking down the run, and
spreads the work over several CPUs for large suites.

HOW: A concurrent.futures ProcessPoolExecutor is created on first use,
sized by RunConfig.workers. Each load_test_file() submits
parse_test_file() to the pool through the running event loop, so many
files can be in flight at once. _shutdown() waits for the pool in a
thread so the event loop stays responsive.

RULES:
- The pool is created lazily; a host that loads nothing starts no workers
- Results are identical to InProcessLoaderHost
- A broken pool raises LoaderHostError naming the file being loaded
- Loading after stop() raises LoaderHostError
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Optional

from suiteloader.core.ir import Suite
from suiteloader.errors import LoaderHostError
from suiteloader.loaders.base import BaseLoaderHost
from suiteloader.loaders.parser import parse_test_file
from suiteloader.models import RunConfig

logger = logging.getLogger(__name__)


class OutOfProcessLoaderHost(BaseLoaderHost):
    """Parses test files in worker processes."""

    def __init__(self, config: RunConfig) -> None:
        super().__init__(config)
        self._pool: Optional[ProcessPoolExecutor] = None

    def _ensure_pool(self) -> ProcessPoolExecutor:
        if self._stopped:
            raise LoaderHostError("Loader host has already been stopped")
        if self._pool is None:
            logger.info("Starting loader pool with %d worker(s)", self._config.workers)
            self._pool = ProcessPoolExecutor(max_workers=self._config.workers)
        return self._pool

    async def load_test_file(self, file: str) -> Suite:
        pool = self._ensure_pool()
        loop = asyncio.get_running_loop()
        logger.debug("Loading %s out-of-process", file)
        try:
            return await loop.run_in_executor(pool, parse_test_file, file, self._config.root_dir)
        except BrokenProcessPool as e:
            raise LoaderHostError("Loader worker crashed while loading {}".format(file)) from e

    async def _shutdown(self) -> None:
        pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            await asyncio.to_thread(pool.shutdown, wait=True)
        except OSError as e:
            raise LoaderHostError("Failed to shut down loader pool: {}".format(e)) from e
        logger.info("Loader pool stopped")
