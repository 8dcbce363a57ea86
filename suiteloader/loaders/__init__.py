"""Loader host registry — in-process or out-of-process parsing.

WHY: The loader strategy is a configuration choice. A central dict maps
the RunConfig.loader value to a host class, so the pipeline never
branches on the strategy itself.

HOW: LOADER_HOSTS maps strategy names to BaseLoaderHost *classes*.
create_loader_host() instantiates the one the config names.

RULES:
- Keys match suiteloader.config.LOADER_STRATEGIES exactly
- Hosts must be used as async context managers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from suiteloader.config import IN_PROCESS_LOADER, OUT_OF_PROCESS_LOADER
from suiteloader.errors import ConfigError
from suiteloader.loaders.in_process import InProcessLoaderHost
from suiteloader.loaders.out_of_process import OutOfProcessLoaderHost

if TYPE_CHECKING:
    from suiteloader.loaders.base import BaseLoaderHost
    from suiteloader.models import RunConfig

LOADER_HOSTS: dict[str, type[BaseLoaderHost]] = {
    IN_PROCESS_LOADER: InProcessLoaderHost,
    OUT_OF_PROCESS_LOADER: OutOfProcessLoaderHost,
}


def create_loader_host(config: RunConfig) -> BaseLoaderHost:
    try:
        host_class = LOADER_HOSTS[config.loader]
    except KeyError:
        available = ", ".join(sorted(LOADER_HOSTS))
        raise ConfigError(
            "Unknown loader '{}'. Available loaders: {}".format(config.loader, available)
        ) from None
    return host_class(config)
