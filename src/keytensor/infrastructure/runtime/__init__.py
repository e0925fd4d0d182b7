"""
CPU execution runtime: configuration plus the `vectorize` and `parallelize`
primitives the kernel libraries are composed from.
"""

from ._config import RuntimeConfig, get_config, set_config, runtime_config
from ._parallel import vectorize, parallelize, parallel_lanes, shutdown_worker_pool

__all__ = [
    RuntimeConfig.__name__,
    get_config.__name__,
    set_config.__name__,
    runtime_config.__name__,
    vectorize.__name__,
    parallelize.__name__,
    parallel_lanes.__name__,
    shutdown_worker_pool.__name__,
]
