"""
CPU transpose kernels (2D fast path and N-D axis permutation).

2D fast path
------------
Rows of the input are partitioned across the worker pool. Each row ``i`` is
walked in vectorized chunks of columns; a chunk of ``lanes`` contiguous input
elements is scatter-stored into output column ``i`` with stride ``rows``:

    out[c * rows + i] = x[i * cols + c]

N-D path
--------
The output shape is the input shape permuted by `perm`. For each output flat
index the per-axis digits are recovered by div-mod through the output shape;
digit ``k`` indexes input axis ``perm[k]``, so the source offset is
``sum(digit_k * in_strides[perm[k]])``. Output positions are filled in
vectorized chunks (gathering the source lanes) and the chunks are
partitioned across the worker pool.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._errors import ShapeError
from ...domain._shape import TensorShape, get_real_index
from ..runtime._config import get_config
from ..runtime._parallel import parallel_lanes, parallelize, vectorize
from ..tensor._tensor import Tensor


def resolve_permutation(rank: int, perm: Optional[Sequence[int]] = None) -> tuple[int, ...]:
    """
    Validate `perm` against `rank` (default: reversed axes).

    Negative entries count from the end.

    Raises
    ------
    ShapeError
        If `perm` is not a permutation of ``range(rank)``.
    """
    if perm is None:
        return tuple(range(rank - 1, -1, -1))

    p = tuple(int(a) + rank if int(a) < 0 else int(a) for a in perm)
    if len(p) != rank or sorted(p) != list(range(rank)):
        raise ShapeError(f"perm {tuple(perm)} is not a permutation of {rank} axes")
    return p


def inverse_permutation(perm: Sequence[int]) -> tuple[int, ...]:
    """
    Return the permutation that undoes `perm`.
    """
    inv = [0] * len(perm)
    for i, p in enumerate(perm):
        inv[p] = i
    return tuple(inv)


def transposed_shape(shape: TensorShape, perm: Optional[Sequence[int]] = None) -> TensorShape:
    shape = TensorShape.of(shape)
    p = resolve_permutation(shape.rank, perm)
    return TensorShape(tuple(shape.dims[a] for a in p))


def _transpose2d(x: Tensor) -> Tensor:
    rows, cols = x.shape.dims
    src = x.data
    dst = np.empty_like(src)
    width = get_config().simd_width

    def partition(start: int, stop: int) -> None:
        for i in range(start, stop):
            row = src[i * cols : (i + 1) * cols]

            def body(off: int, lanes: int) -> None:
                lo = off * rows + i
                dst[lo : lo + lanes * rows : rows] = row[off : off + lanes]

            vectorize(width, cols, body)

    parallelize(rows, partition)
    return Tensor._wrap(TensorShape(cols, rows), dst)


def transpose(x: Tensor, perm: Optional[Sequence[int]] = None) -> Tensor:
    """
    Permute the axes of `x`.

    Parameters
    ----------
    x : Tensor
        Input tensor.
    perm : Optional[Sequence[int]], optional
        Output axis ``k`` is input axis ``perm[k]``. Defaults to reversing
        the axes.

    Returns
    -------
    Tensor
        New tensor of shape ``[x.shape[p] for p in perm]``.

    Raises
    ------
    ShapeError
        If `perm` is not a permutation of the input axes.
    """
    p = resolve_permutation(x.shape.rank, perm)

    if p == tuple(range(x.shape.rank)):
        return x.clone()
    if p == (1, 0):
        return _transpose2d(x)

    out_shape = TensorShape(tuple(x.shape.dims[a] for a in p))
    in_strides = x.shape.strides
    gather_strides = tuple(in_strides[a] for a in p)
    src = x.data
    dst = np.empty_like(src)

    def body(off: int, lanes: int) -> None:
        idx = np.arange(off, off + lanes, dtype=np.int64)
        dst[off : off + lanes] = src[get_real_index(idx, gather_strides, out_shape)]

    parallel_lanes(dst.size, body)
    return Tensor._wrap(out_shape, dst)
