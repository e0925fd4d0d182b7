"""
Runtime configuration for the CPU kernel runtime.

The active `RuntimeConfig` controls:

- ``num_threads``: size of the worker pool used by `parallelize`.
- ``simd_width``: number of lanes a `vectorize` chunk covers, also the width
  of the lane accumulator used by whole-tensor reductions.
- ``dtype``: the single configured element type of newly created tensors.

Defaults can be overridden through environment variables read once at import
time (``KEYTENSOR_NUM_THREADS``, ``KEYTENSOR_SIMD_WIDTH``, ``KEYTENSOR_DTYPE``).
Invalid environment values are reported with a `RuntimeWarning` and ignored.
At runtime, use `set_config` or the `runtime_config` context manager.
"""

from __future__ import annotations

import os
import threading
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Iterator

import numpy as np

_SUPPORTED_DTYPES = ("float32", "float64")


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Immutable runtime settings.

    Attributes
    ----------
    num_threads : int
        Number of worker threads available to `parallelize`. 1 disables
        fan-out entirely.
    simd_width : int
        Lanes per vectorized chunk.
    dtype : str
        Element type name of new tensors ("float32" or "float64").
    """

    num_threads: int = max(1, os.cpu_count() or 1)
    simd_width: int = 16
    dtype: str = "float32"

    def __post_init__(self) -> None:
        if int(self.num_threads) < 1:
            raise ValueError(f"num_threads must be >= 1, got {self.num_threads}")
        if int(self.simd_width) < 1:
            raise ValueError(f"simd_width must be >= 1, got {self.simd_width}")
        if str(self.dtype) not in _SUPPORTED_DTYPES:
            raise ValueError(
                f"dtype must be one of {_SUPPORTED_DTYPES}, got {self.dtype!r}"
            )

    @property
    def np_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
        if value < 1:
            raise ValueError(value)
        return value
    except ValueError:
        warnings.warn(
            f"Ignoring invalid {name}={raw!r}; expected a positive integer. "
            f"Using default {default}.",
            RuntimeWarning,
            stacklevel=2,
        )
        return default


def _env_dtype(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    if raw not in _SUPPORTED_DTYPES:
        warnings.warn(
            f"Ignoring invalid {name}={raw!r}; expected one of {_SUPPORTED_DTYPES}. "
            f"Using default {default!r}.",
            RuntimeWarning,
            stacklevel=2,
        )
        return default
    return raw


def _config_from_env() -> RuntimeConfig:
    base = RuntimeConfig()
    return RuntimeConfig(
        num_threads=_env_int("KEYTENSOR_NUM_THREADS", base.num_threads),
        simd_width=_env_int("KEYTENSOR_SIMD_WIDTH", base.simd_width),
        dtype=_env_dtype("KEYTENSOR_DTYPE", base.dtype),
    )


_lock = threading.Lock()
_active: RuntimeConfig = _config_from_env()
_listeners: list = []


def get_config() -> RuntimeConfig:
    """
    Return the active runtime configuration.
    """
    return _active


def on_config_change(callback) -> None:
    """
    Register ``callback(old, new)`` to run whenever the configuration changes.

    The worker pool uses this hook to resize itself when ``num_threads``
    changes.
    """
    _listeners.append(callback)


def set_config(**overrides: Any) -> RuntimeConfig:
    """
    Replace selected fields of the active configuration.

    Parameters
    ----------
    **overrides : Any
        Field values to change (``num_threads``, ``simd_width``, ``dtype``).

    Returns
    -------
    RuntimeConfig
        The previously active configuration.

    Raises
    ------
    TypeError
        If an unknown field is given.
    ValueError
        If a value is invalid.
    """
    global _active
    with _lock:
        old = _active
        new = replace(old, **overrides)
        _active = new
    if new != old:
        for callback in list(_listeners):
            callback(old, new)
    return old


@contextmanager
def runtime_config(**overrides: Any) -> Iterator[RuntimeConfig]:
    """
    Temporarily override the runtime configuration.

    Examples
    --------
    >>> with runtime_config(num_threads=1):
    ...     out = tsum(x, axis=0)
    """
    old = set_config(**overrides)
    try:
        yield get_config()
    finally:
        set_config(
            num_threads=old.num_threads,
            simd_width=old.simd_width,
            dtype=old.dtype,
        )
