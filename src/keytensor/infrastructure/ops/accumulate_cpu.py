"""
Gradient accumulation with shape un-broadcasting.

During backward, the math for a broadcasting operator yields a gradient
shaped like the operator's *output*. Each operand's gradient buffer, however,
has the operand's original, pre-broadcast shape. `accumulate_grad` folds the
incoming gradient into that buffer:

- equal shapes: in-place elementwise add (parallel, disjoint chunks);
- scalar incoming gradient (``TensorShape(1)``): the scalar is added to every
  element;
- otherwise: each incoming element is added to
  ``grad[get_real_index(i, strides, incoming.shape)]`` where the strides are
  those of the forward broadcast. Axes that were broadcast out therefore get
  summed, which is the analytic reverse of the forward broadcast.

The un-broadcast path writes many incoming elements into the same
accumulator cell, so it runs sequentially. The kernel takes no lock; callers
accumulating into one buffer from several graph branches must serialize
those calls.
"""

from __future__ import annotations

import numpy as np

from ...domain._shape import TensorShape, broadcast_calculate_strides, get_real_index
from ..runtime._config import get_config
from ..runtime._parallel import parallel_lanes, vectorize
from ..tensor._tensor import Tensor


def accumulate_grad(grad: Tensor, incoming: Tensor) -> None:
    """
    Add `incoming` into `grad` in place, un-broadcasting when needed.

    Parameters
    ----------
    grad : Tensor
        Accumulator with the operand's original shape. Mutated.
    incoming : Tensor
        Gradient produced by backward math; either the same shape as `grad`,
        a ``TensorShape(1)`` scalar, or a broadcast of `grad`'s shape.

    Raises
    ------
    BroadcastError
        If `incoming`'s shape is not a broadcast of `grad`'s shape.
    """
    dst = grad.data
    src = incoming.data

    if grad.shape == incoming.shape:

        def body(off: int, lanes: int) -> None:
            dst[off : off + lanes] += src[off : off + lanes]

        parallel_lanes(dst.size, body)
        return

    if incoming.shape.is_scalar():
        s = dst.dtype.type(src[0])

        def scalar_body(off: int, lanes: int) -> None:
            dst[off : off + lanes] += s

        parallel_lanes(dst.size, scalar_body)
        return

    target = incoming.shape
    strides = broadcast_calculate_strides(grad.shape, target)

    def unbroadcast_body(off: int, lanes: int) -> None:
        idx = np.arange(off, off + lanes, dtype=np.int64)
        np.add.at(dst, get_real_index(idx, strides, target), src[off : off + lanes])

    vectorize(get_config().simd_width, src.size, unbroadcast_body)


def unbroadcast(incoming: Tensor, shape: TensorShape) -> Tensor:
    """
    Reduce `incoming` to `shape` by summing over broadcast axes.

    Returns
    -------
    Tensor
        A fresh tensor of `shape`.
    """
    out = Tensor.zeros(shape, dtype=incoming.dtype)
    accumulate_grad(out, incoming)
    return out
