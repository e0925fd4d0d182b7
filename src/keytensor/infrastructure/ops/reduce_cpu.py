"""
CPU reduction kernels (whole-tensor and along one axis).

Whole-tensor reductions
-----------------------
A lane accumulator of ``simd_width`` lanes starts at the reduction's initial
value. `vectorize` walks the buffer and folds each chunk into the
accumulator with the combine function; a final horizontal pass folds the
lanes into one value. The walk is sequential and the fold order fixed, so the
result does not depend on the worker count.

Supported reductions: sum (init 0), max (init: most negative finite value),
mean (sum / count) and std (two passes: mean, then the mean of squared
deviations, then sqrt; population standard deviation).

Axis reductions
---------------
Only tensors of rank >= 2 are supported; a rank-1 tensor must use the
whole-tensor form and is rejected with `ShapeError`. The output positions
(all index combinations excluding the reduced axis) are parallelized. Two
walks exist:

- innermost axis (stride 1): each output position reduces a contiguous run
  with the lane accumulator above;
- any other axis: the axis stride is not 1, so a contiguous run along the
  axis does not exist. Instead a batch of output positions is reduced
  together, each step of the walk gathering one element per position at
  ``base + k * stride``. This keeps the per-step work vectorized; reading
  is strided and cache-unfriendly for large strides.
"""

from __future__ import annotations

from functools import reduce
from typing import Callable, Optional

import numpy as np

from ...domain._errors import ShapeError
from ...domain._shape import TensorShape, normalize_axis
from ..runtime._config import get_config
from ..runtime._parallel import parallelize, vectorize
from ..tensor._tensor import Tensor

CombineFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _lowest(dtype: np.dtype) -> float:
    return float(np.finfo(dtype).min)


def _fold_lanes(
    src: np.ndarray,
    combine: CombineFn,
    init: float,
    center: Optional[float] = None,
    square: bool = True,
) -> float:
    width = get_config().simd_width
    acc = np.full(width, init, dtype=src.dtype)

    if center is None:

        def body(off: int, lanes: int) -> None:
            acc[:lanes] = combine(acc[:lanes], src[off : off + lanes])

    else:
        c = src.dtype.type(center)

        def body(off: int, lanes: int) -> None:
            dev = src[off : off + lanes] - c
            acc[:lanes] = combine(acc[:lanes], dev * dev if square else dev)

    vectorize(width, src.size, body)
    return float(reduce(combine, acc.tolist(), init))


def reduce_all(x: Tensor, combine: CombineFn, init: float) -> float:
    """
    Fold every element of `x` with `combine`, starting from `init`.

    Parameters
    ----------
    x : Tensor
        Input tensor.
    combine : Callable
        Associative lane-wise binary function (e.g. ``np.add``).
    init : float
        Identity of `combine`.

    Returns
    -------
    float
        The reduced value (`init` for an empty tensor).
    """
    return _fold_lanes(x.data, combine, init)


def _require_nonempty(x: Tensor, op: str) -> None:
    if x.num_elements() == 0:
        raise ShapeError(f"{op} of an empty tensor is undefined")


def _reduced_shape(shape: TensorShape, axis: int, keepdims: bool) -> TensorShape:
    dims = list(shape.dims)
    if keepdims:
        dims[axis] = 1
    else:
        del dims[axis]
    return TensorShape(tuple(dims))


def _check_axis(shape: TensorShape, axis: int) -> int:
    if shape.rank < 2:
        raise ShapeError(
            f"axis reduction requires rank >= 2, got shape {shape.dims}; "
            "use the whole-tensor reduction instead"
        )
    return normalize_axis(axis, shape.rank)


def reduced_shape(
    shape: TensorShape, axis: Optional[int] = None, keepdims: bool = False
) -> TensorShape:
    """
    Output shape of a reduction over `axis` (or over everything).

    Raises
    ------
    ShapeError
        If `axis` is given for a rank < 2 shape or is out of range.
    """
    if axis is None:
        return TensorShape.scalar()
    return _reduced_shape(shape, _check_axis(shape, axis), keepdims)


def _axis_bases(shape: TensorShape, axis: int, o: np.ndarray) -> np.ndarray:
    # Offset of element 0 along `axis` for each output position in `o`.
    inner = shape.strides[axis]
    block = shape.dims[axis] * inner
    return (o // inner) * block + o % inner


def _reduce_axis(
    x: Tensor,
    axis: int,
    combine: CombineFn,
    init: float,
    keepdims: bool,
    center: Optional[np.ndarray] = None,
    square: bool = True,
) -> Tensor:
    a = _check_axis(x.shape, axis)
    axis_len = x.shape.dims[a]
    stride = x.shape.strides[a]

    def deviation(v: np.ndarray, c) -> np.ndarray:
        v = v - c
        return v * v if square else v

    out_shape = _reduced_shape(x.shape, a, keepdims)
    m = out_shape.num_elements()
    src = x.data
    dst = np.empty(m, dtype=src.dtype)
    width = get_config().simd_width

    if stride == 1:

        def row(o: int) -> None:
            run = src[o * axis_len : (o + 1) * axis_len]
            acc = np.full(width, init, dtype=src.dtype)
            c = None if center is None else center[o]

            def body(off: int, lanes: int) -> None:
                v = run[off : off + lanes]
                if c is not None:
                    v = deviation(v, c)
                acc[:lanes] = combine(acc[:lanes], v)

            vectorize(width, axis_len, body)
            dst[o] = reduce(combine, acc.tolist(), init)

        def partition(start: int, stop: int) -> None:
            for o in range(start, stop):
                row(o)

    else:

        def partition(start: int, stop: int) -> None:
            def body(off: int, lanes: int) -> None:
                o = np.arange(start + off, start + off + lanes, dtype=np.int64)
                base = _axis_bases(x.shape, a, o)
                acc = np.full(lanes, init, dtype=src.dtype)
                c = None if center is None else center[o]
                for k in range(axis_len):
                    v = src[base + k * stride]
                    if c is not None:
                        v = deviation(v, c)
                    acc = combine(acc, v)
                dst[start + off : start + off + lanes] = acc

            vectorize(width, stop - start, body)

    parallelize(m, partition)
    return Tensor._wrap(out_shape, dst)


def tsum(x: Tensor, axis: Optional[int] = None, keepdims: bool = False) -> Tensor:
    """
    Sum of all elements, or along one axis.

    Parameters
    ----------
    x : Tensor
        Input tensor.
    axis : Optional[int], optional
        Axis to reduce (rank >= 2 only). If None, all elements are reduced
        into a ``TensorShape(1)`` tensor.
    keepdims : bool, optional
        Keep the reduced axis with size 1.

    Raises
    ------
    ShapeError
        If `axis` is given for a rank < 2 tensor or is out of range.
    """
    if axis is None:
        return Tensor.scalar(reduce_all(x, np.add, 0.0), dtype=x.dtype)
    return _reduce_axis(x, axis, np.add, 0.0, keepdims)


def tmax(x: Tensor, axis: Optional[int] = None, keepdims: bool = False) -> Tensor:
    """
    Maximum of all elements, or along one axis.

    The accumulator starts at the most negative finite value of the element
    type.
    """
    init = _lowest(x.dtype)
    if axis is None:
        _require_nonempty(x, "max")
        return Tensor.scalar(reduce_all(x, np.maximum, init), dtype=x.dtype)

    a = _check_axis(x.shape, axis)
    if x.shape.dims[a] == 0:
        raise ShapeError("max over an empty axis is undefined")
    return _reduce_axis(x, a, np.maximum, init, keepdims)


def tmean(x: Tensor, axis: Optional[int] = None, keepdims: bool = False) -> Tensor:
    """
    Arithmetic mean of all elements, or along one axis.
    """
    if axis is None:
        _require_nonempty(x, "mean")
        return Tensor.scalar(reduce_all(x, np.add, 0.0) / x.num_elements(), dtype=x.dtype)

    a = _check_axis(x.shape, axis)
    n = x.shape.dims[a]
    if n == 0:
        raise ShapeError("mean over an empty axis is undefined")
    s = _reduce_axis(x, a, np.add, 0.0, keepdims)
    s.data[:] = s.data / s.dtype.type(n)
    return s


def tstd(x: Tensor, axis: Optional[int] = None, keepdims: bool = False) -> Tensor:
    """
    Population standard deviation of all elements, or along one axis.

    Two passes: the mean first, then the mean of squared deviations from it,
    then the square root. The mean is taken over values shifted by the first
    element of the reduced range, so a constant tensor yields exactly 0.
    """
    if axis is None:
        _require_nonempty(x, "std")
        n = x.num_elements()
        shift = float(x.data[0])
        offset = _fold_lanes(x.data, np.add, 0.0, center=shift, square=False) / n
        mean = float(x.dtype.type(shift + offset))
        sq = _fold_lanes(x.data, np.add, 0.0, center=mean)
        return Tensor.scalar(np.sqrt(sq / n), dtype=x.dtype)

    a = _check_axis(x.shape, axis)
    n = x.shape.dims[a]
    if n == 0:
        raise ShapeError("std over an empty axis is undefined")
    m = x.num_elements() // n
    shift = x.data[_axis_bases(x.shape, a, np.arange(m, dtype=np.int64))]
    offset = _reduce_axis(x, a, np.add, 0.0, False, center=shift, square=False)
    mean = shift + offset.data / x.dtype.type(n)
    sq = _reduce_axis(x, a, np.add, 0.0, keepdims, center=mean)
    sq.data[:] = np.sqrt(sq.data / sq.dtype.type(n))
    return sq
