"""
The two execution primitives every CPU kernel is built on.

- `vectorize(width, n, body)` walks ``[0, n)`` in contiguous chunks of
  ``width`` lanes and calls ``body(offset, lanes)`` once per chunk. Kernels
  implement ``body`` with NumPy slice arithmetic, so one call processes a
  whole batch of lanes. The trailing ``n % width`` elements are handled by a
  single narrower call.
- `parallelize(outer_n, body, hint)` partitions an outer index range across
  the worker pool and calls ``body(start, stop)`` per partition. The call
  returns only when every partition has finished.

Composition rule: kernels parallelize their outermost independent dimension
and vectorize the innermost contiguous one. Partitions must write disjoint
output regions; results are then independent of scheduling, which keeps every
kernel deterministic regardless of the worker count.

Notes
-----
- The pool is a process-wide `ThreadPoolExecutor`, created lazily and
  resized when ``num_threads`` changes. NumPy releases the GIL inside its
  lane-wise loops, which is where the work of a partition happens.
- A `parallelize` issued from inside a worker runs inline: the nested
  fan-out would otherwise wait on the pool it is occupying.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ._config import RuntimeConfig, get_config, on_config_change

logger = logging.getLogger(__name__)

_pool_lock = threading.Lock()
_pool: Optional[ThreadPoolExecutor] = None
_pool_size = 0
_worker_state = threading.local()


def _get_pool(num_threads: int) -> ThreadPoolExecutor:
    global _pool, _pool_size
    with _pool_lock:
        if _pool is None or _pool_size != num_threads:
            if _pool is not None:
                _pool.shutdown(wait=True)
            _pool = ThreadPoolExecutor(
                max_workers=num_threads, thread_name_prefix="keytensor-worker"
            )
            _pool_size = num_threads
            logger.debug("created worker pool with %d threads", num_threads)
        return _pool


def shutdown_worker_pool() -> None:
    """
    Shut down the shared worker pool.

    The pool is re-created on the next `parallelize` that needs it.
    """
    global _pool, _pool_size
    with _pool_lock:
        if _pool is not None:
            _pool.shutdown(wait=True)
            logger.debug("shut down worker pool with %d threads", _pool_size)
        _pool = None
        _pool_size = 0


def _on_config_change(old: RuntimeConfig, new: RuntimeConfig) -> None:
    if old.num_threads != new.num_threads:
        shutdown_worker_pool()


on_config_change(_on_config_change)


def vectorize(width: int, n: int, body: Callable[[int, int], None]) -> None:
    """
    Apply `body` to successive chunks of `width` lanes covering ``[0, n)``.

    Parameters
    ----------
    width : int
        Lanes per chunk.
    n : int
        Total number of elements.
    body : Callable[[int, int], None]
        Called as ``body(offset, lanes)``; processes elements
        ``[offset, offset + lanes)``. ``lanes == width`` except for the
        trailing remainder chunk.

    Raises
    ------
    ValueError
        If `width` is smaller than 1 or `n` is negative.
    """
    width = int(width)
    n = int(n)
    if width < 1:
        raise ValueError(f"vectorize width must be >= 1, got {width}")
    if n < 0:
        raise ValueError(f"vectorize length must be >= 0, got {n}")

    full = n - n % width
    for offset in range(0, full, width):
        body(offset, width)
    if full < n:
        body(full, n - full)


def _partitions(outer_n: int, parts: int) -> list[tuple[int, int]]:
    base, extra = divmod(outer_n, parts)
    bounds = []
    start = 0
    for p in range(parts):
        stop = start + base + (1 if p < extra else 0)
        if stop > start:
            bounds.append((start, stop))
        start = stop
    return bounds


def _run_partition(body: Callable[[int, int], None], start: int, stop: int) -> None:
    _worker_state.active = True
    try:
        body(start, stop)
    finally:
        _worker_state.active = False


def parallelize(
    outer_n: int,
    body: Callable[[int, int], None],
    hint: Optional[int] = None,
) -> None:
    """
    Partition ``[0, outer_n)`` across the worker pool.

    Parameters
    ----------
    outer_n : int
        Size of the outer (independent) index range.
    body : Callable[[int, int], None]
        Called as ``body(start, stop)`` for each contiguous partition.
        Partitions must not share mutable state other than disjoint output
        regions.
    hint : Optional[int], optional
        Advisory number of partitions. The effective count never exceeds
        the configured thread count nor `outer_n`.

    Raises
    ------
    Exception
        The first exception raised by any partition, re-raised after all
        partitions have completed.
    """
    outer_n = int(outer_n)
    if outer_n <= 0:
        return

    cfg = get_config()
    parts = cfg.num_threads if hint is None else max(1, min(int(hint), cfg.num_threads))
    parts = min(parts, outer_n)

    if parts <= 1 or getattr(_worker_state, "active", False):
        body(0, outer_n)
        return

    pool = _get_pool(cfg.num_threads)
    futures: list[Future] = [
        pool.submit(_run_partition, body, start, stop)
        for start, stop in _partitions(outer_n, parts)
    ]

    error: Optional[BaseException] = None
    for f in futures:
        exc = f.exception()
        if exc is not None and error is None:
            error = exc
    if error is not None:
        raise error


def parallel_lanes(n: int, body: Callable[[int, int], None]) -> None:
    """
    Cover ``[0, n)`` with vectorized chunks spread across the worker pool.

    The range is cut into ``simd_width``-lane chunks; whole chunks are
    partitioned with `parallelize` and each partition walks its chunks with
    `vectorize`. ``body(offset, lanes)`` therefore sees the same chunk
    boundaries whatever the thread count.

    Parameters
    ----------
    n : int
        Total number of elements.
    body : Callable[[int, int], None]
        Chunk kernel, called as ``body(offset, lanes)``.
    """
    width = get_config().simd_width
    n_chunks = -(-int(n) // width)

    def partition(start: int, stop: int) -> None:
        lo = start * width
        hi = min(stop * width, n)
        vectorize(width, hi - lo, lambda off, lanes: body(lo + off, lanes))

    parallelize(n_chunks, partition)
