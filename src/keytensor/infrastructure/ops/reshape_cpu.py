"""
Shape-reinterpretation kernels: squeeze, unsqueeze and reshape.

These operations change only the shape. The output buffer is a raw copy of
the input buffer (same element count, same row-major layout), never an alias,
and the gradient of any of them is the upstream gradient copied back under
the operand's shape.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._errors import ShapeError
from ...domain._shape import MAX_RANK, TensorShape
from ..runtime._parallel import parallel_lanes
from ..tensor._tensor import Tensor


def squeeze_shape(shape: TensorShape, dims: Optional[Sequence[int]] = None) -> TensorShape:
    """
    Remove size-1 axes.

    Parameters
    ----------
    shape : TensorShape
        Operand shape.
    dims : Optional[Sequence[int]], optional
        Axes to remove (negative values count from the end). If None, every
        size-1 axis is removed.

    Raises
    ------
    ShapeError
        If a named axis is out of range or does not have size 1.
    """
    shape = TensorShape.of(shape)
    rank = shape.rank
    if dims is None:
        return TensorShape(tuple(d for d in shape.dims if d != 1))

    drop = set()
    for d in dims:
        a = int(d) + rank if int(d) < 0 else int(d)
        if a < 0 or a >= rank:
            raise ShapeError(f"squeeze axis {d} out of range for rank {rank}")
        if shape.dims[a] != 1:
            raise ShapeError(
                f"cannot squeeze axis {d} of shape {shape.dims}: size is {shape.dims[a]}"
            )
        drop.add(a)
    return TensorShape(tuple(d for i, d in enumerate(shape.dims) if i not in drop))


def unsqueeze_shape(shape: TensorShape, dims: Sequence[int]) -> TensorShape:
    """
    Insert size-1 axes.

    Each position in `dims` refers to the *final* rank
    (``shape.rank + len(dims)``); negative positions count from its end.

    Raises
    ------
    ShapeError
        If a position is out of range, repeated, or the result exceeds the
        maximum rank.
    """
    shape = TensorShape.of(shape)
    final_rank = shape.rank + len(dims)
    if final_rank > MAX_RANK:
        raise ShapeError(f"unsqueeze result rank {final_rank} exceeds {MAX_RANK}")

    positions = set()
    for d in dims:
        a = int(d) + final_rank if int(d) < 0 else int(d)
        if a < 0 or a >= final_rank:
            raise ShapeError(f"unsqueeze axis {d} out of range for rank {final_rank}")
        if a in positions:
            raise ShapeError(f"unsqueeze axis {d} listed more than once")
        positions.add(a)

    src = iter(shape.dims)
    return TensorShape(
        tuple(1 if i in positions else next(src) for i in range(final_rank))
    )


def reshape_shape(shape: TensorShape, target: Sequence[int]) -> TensorShape:
    """
    Resolve a reshape target, allowing a single ``-1`` wildcard.

    Raises
    ------
    ShapeError
        If more than one ``-1`` is given or the element counts differ.
    """
    shape = TensorShape.of(shape)
    dims = [int(d) for d in target]
    n = shape.num_elements()

    wild = [i for i, d in enumerate(dims) if d == -1]
    if len(wild) > 1:
        raise ShapeError(f"reshape target {tuple(target)} has more than one -1")
    if wild:
        known = 1
        for i, d in enumerate(dims):
            if i != wild[0]:
                known *= d
        if known == 0 or n % known:
            raise ShapeError(f"cannot reshape {shape.dims} into {tuple(target)}")
        dims[wild[0]] = n // known

    out = TensorShape(tuple(dims))
    if out.num_elements() != n:
        raise ShapeError(f"cannot reshape {shape.dims} into {tuple(target)}")
    return out


def reshape_copy(x: Tensor, shape: TensorShape) -> Tensor:
    """
    Copy the raw buffer of `x` into a new tensor of `shape`.

    Raises
    ------
    ShapeError
        If the element counts differ.
    """
    target = TensorShape.of(shape)
    if target.num_elements() != x.num_elements():
        raise ShapeError(
            f"cannot reinterpret shape {x.shape.dims} as {target.dims}: "
            "element counts differ"
        )
    src = x.data
    dst = np.empty_like(src)

    def body(off: int, lanes: int) -> None:
        dst[off : off + lanes] = src[off : off + lanes]

    parallel_lanes(dst.size, body)
    return Tensor._wrap(target, dst)


def squeeze(x: Tensor, dims: Optional[Sequence[int]] = None) -> Tensor:
    return reshape_copy(x, squeeze_shape(x.shape, dims))


def unsqueeze(x: Tensor, dims: Sequence[int]) -> Tensor:
    return reshape_copy(x, unsqueeze_shape(x.shape, dims))
