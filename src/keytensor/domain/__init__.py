"""
Backend-agnostic value types and interfaces for keytensor.

This package exposes the shape algebra (`TensorShape` and the broadcasting
helpers), the node attribute table, the operator contract and the error
taxonomy. Nothing here depends on the infrastructure layer.
"""

from ._errors import (
    KeyTensorError,
    ShapeError,
    BroadcastError,
    NodeAttributeError,
    BoundsError,
)
from ._shape import (
    MAX_RANK,
    TensorShape,
    broadcast_shapes,
    broadcast_calculate_strides,
    get_real_index,
    normalize_axis,
)
from ._attributes import AttributeVector
from ._tensor import ITensor
from ._operator import OpKind, Operator

__all__ = [
    KeyTensorError.__name__,
    ShapeError.__name__,
    BroadcastError.__name__,
    NodeAttributeError.__name__,
    BoundsError.__name__,
    "MAX_RANK",
    TensorShape.__name__,
    broadcast_shapes.__name__,
    broadcast_calculate_strides.__name__,
    get_real_index.__name__,
    normalize_axis.__name__,
    AttributeVector.__name__,
    ITensor.__name__,
    OpKind.__name__,
    Operator.__name__,
]
