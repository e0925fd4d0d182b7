"""
Operator implementations and the `OpKind` -> `Operator` registry.

Importing this package registers every operator; use `get_operator` to
dispatch a node's kind to its implementation.
"""

from ._registry import get_operator, registered_kinds, register_operator
from . import _activations, _arithmetic, _reduction, _structural  # noqa: F401

__all__ = [
    get_operator.__name__,
    registered_kinds.__name__,
    register_operator.__name__,
]
