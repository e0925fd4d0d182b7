"""
CPU elementwise kernels (unary, tensor-scalar and tensor-tensor ops).

Every kernel allocates a fresh output buffer and fills it chunk by chunk via
`parallel_lanes`: chunks of ``simd_width`` lanes are spread over the worker
pool and each chunk is computed with one NumPy expression.

Binary ops pick one of three paths
----------------------------------
- Same shape: both operands are read with the chunk's contiguous slice.
- Scalar: an operand of shape exactly ``TensorShape(1)`` is read once and
  broadcast to every lane of an operand of rank 1 or more; no index
  remapping is needed.
- General broadcast: the output shape comes from `broadcast_shapes` and each
  operand is read through `get_real_index` with strides from
  `broadcast_calculate_strides`. Source offsets are not contiguous across a
  chunk, so the lanes are gathered with an index array instead of sliced.

The lane functions (`fn`) are pure NumPy callables such as ``np.add`` or
``lambda v: 1 / (1 + np.exp(-v))``; they must not keep state between calls.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from ...domain._shape import (
    TensorShape,
    broadcast_calculate_strides,
    broadcast_shapes,
    get_real_index,
)
from ..runtime._parallel import parallel_lanes
from ..tensor._tensor import Tensor

UnaryFn = Callable[[np.ndarray], np.ndarray]
BinaryFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _empty_like(shape: TensorShape, dtype: np.dtype) -> Tensor:
    return Tensor._wrap(shape, np.empty(shape.num_elements(), dtype=dtype))


def unary_op(x: Tensor, fn: UnaryFn) -> Tensor:
    """
    Apply a lane-wise function to every element of `x`.

    Parameters
    ----------
    x : Tensor
        Input tensor.
    fn : Callable[[np.ndarray], np.ndarray]
        Pure lane-wise function.

    Returns
    -------
    Tensor
        New tensor with the same shape as `x`.
    """
    out = _empty_like(x.shape, x.dtype)
    src = x.data
    dst = out.data

    def body(off: int, lanes: int) -> None:
        dst[off : off + lanes] = fn(src[off : off + lanes])

    parallel_lanes(dst.size, body)
    return out


def zip_op(x: Tensor, y: Tensor, fn: BinaryFn) -> Tensor:
    """
    Apply a lane-wise function of two same-shape tensors.

    This is the building block of activation backward kernels, which
    combine the upstream gradient with the saved forward input lane by
    lane.

    Raises
    ------
    ValueError
        If the shapes differ.
    """
    if x.shape != y.shape:
        raise ValueError(f"shape mismatch: {x.shape.dims} vs {y.shape.dims}")
    return elwise_op(x, y, fn)


def scalar_op(x: Tensor, value: float, fn: BinaryFn, reverse: bool = False) -> Tensor:
    """
    Apply ``fn(x, value)`` (or ``fn(value, x)`` when `reverse`) lane-wise.

    Returns
    -------
    Tensor
        New tensor with the same shape as `x`.
    """
    out = _empty_like(x.shape, x.dtype)
    src = x.data
    dst = out.data
    s = x.dtype.type(value)

    if reverse:

        def body(off: int, lanes: int) -> None:
            dst[off : off + lanes] = fn(s, src[off : off + lanes])

    else:

        def body(off: int, lanes: int) -> None:
            dst[off : off + lanes] = fn(src[off : off + lanes], s)

    parallel_lanes(dst.size, body)
    return out


def elwise_op(a: Tensor, b: Tensor, fn: BinaryFn) -> Tensor:
    """
    Apply a binary lane-wise function with NumPy-style broadcasting.

    Parameters
    ----------
    a, b : Tensor
        Operands.
    fn : Callable[[np.ndarray, np.ndarray], np.ndarray]
        Pure lane-wise binary function.

    Returns
    -------
    Tensor
        New tensor of shape ``broadcast_shapes(a.shape, b.shape)``.

    Raises
    ------
    BroadcastError
        If the shapes are not broadcast-compatible.
    """
    A = a.data
    B = b.data

    if a.shape == b.shape:
        out = _empty_like(a.shape, a.dtype)
        dst = out.data

        def body(off: int, lanes: int) -> None:
            dst[off : off + lanes] = fn(A[off : off + lanes], B[off : off + lanes])

        parallel_lanes(dst.size, body)
        return out

    if b.shape.is_scalar() and a.shape.rank > 0:
        return scalar_op(a, B[0], fn)

    if a.shape.is_scalar() and b.shape.rank > 0:
        out = scalar_op(b, A[0], fn, reverse=True)
        if out.dtype != a.dtype:
            out = Tensor(out.shape, out.data, dtype=a.dtype)
        return out

    out_shape = broadcast_shapes(a.shape, b.shape)
    sa = broadcast_calculate_strides(a.shape, out_shape)
    sb = broadcast_calculate_strides(b.shape, out_shape)
    out = _empty_like(out_shape, a.dtype)
    dst = out.data

    def gather_body(off: int, lanes: int) -> None:
        idx = np.arange(off, off + lanes, dtype=np.int64)
        ia = get_real_index(idx, sa, out_shape)
        ib = get_real_index(idx, sb, out_shape)
        dst[off : off + lanes] = fn(A[ia], B[ib])

    parallel_lanes(dst.size, gather_body)
    return out


def expand_to(x: Tensor, shape: TensorShape) -> Tensor:
    """
    Materialize `x` broadcast to `shape`.

    Raises
    ------
    BroadcastError
        If `x` cannot be broadcast to `shape`.
    """
    target = TensorShape.of(shape)
    if x.shape == target:
        return x.clone()

    strides = broadcast_calculate_strides(x.shape, target)
    out = _empty_like(target, x.dtype)
    src = x.data
    dst = out.data

    def body(off: int, lanes: int) -> None:
        idx = np.arange(off, off + lanes, dtype=np.int64)
        dst[off : off + lanes] = src[get_real_index(idx, strides, target)]

    parallel_lanes(dst.size, body)
    return out


def where_op(cond: Tensor, x: Tensor, fill: float = 0.0) -> Tensor:
    """
    Keep lanes of `x` where `cond` is non-zero, replace the rest with `fill`.

    Parameters
    ----------
    cond, x : Tensor
        Same-shape mask and values.
    fill : float, optional
        Replacement value. Defaults to 0.

    Returns
    -------
    Tensor
        New tensor with the shape of `x`.
    """
    f = x.dtype.type(fill)
    return zip_op(x, cond, lambda v, m: np.where(m != 0, v, f))
