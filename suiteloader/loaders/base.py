"""Abstract loader host.

WHY: Test files can be parsed in the current process or in isolated
worker processes. The pipeline should not care which; it needs one
interface to load a file and a guarantee that the host is shut down on
every exit path.

HOW: BaseLoaderHost is an ABC and an async context manager. Subclasses
implement ``load_test_file()`` and optionally ``_shutdown()``; ``stop()``
runs the shutdown exactly once, and ``__aexit__`` calls ``stop()`` even
when the body raised.

RULES:
- Always use as: async with host: ...
- load_test_file() returns a file suite; load problems go in its
  load_errors, only host failures raise (LoaderHostError)
- stop() is idempotent; the second call does nothing

To add a loader strategy:
1. Subclass BaseLoaderHost in a new module under loaders/
2. Implement load_test_file() (and _shutdown() if it holds resources)
3. Register it in LOADER_HOSTS in loaders/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from suiteloader.core.ir import Suite
from suiteloader.models import RunConfig


class BaseLoaderHost(ABC):
    """Abstract base for all loader hosts."""

    def __init__(self, config: RunConfig) -> None:
        self._config = config
        self._stopped = False

    async def __aenter__(self) -> "BaseLoaderHost":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()

    @property
    def stopped(self) -> bool:
        return self._stopped

    @abstractmethod
    async def load_test_file(self, file: str) -> Suite:
        """Parse one test file.

        Args:
            file: Absolute path of the test file.

        Returns:
            The loaded file suite, with any load errors attached.
        """

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        await self._shutdown()

    async def _shutdown(self) -> None:
        """Release resources held by the host. Default: nothing to release."""
