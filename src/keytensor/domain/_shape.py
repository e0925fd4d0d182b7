"""
Tensor shape, stride and broadcasting algebra.

This module defines `TensorShape`, the immutable value type describing the
dimensionality of every tensor in keytensor, together with the broadcasting
helpers used by the elementwise kernels and by gradient un-broadcasting.

Layout conventions
------------------
- All buffers are contiguous and row-major: the last axis has stride 1 and
  ``stride[i] = stride[i + 1] * dims[i + 1]``.
- Broadcasting follows NumPy rules: shapes are right-aligned and a dimension
  of size 1 (or a missing leading dimension) is virtually repeated by giving
  it a stride of 0.
- A broadcast read is therefore ordinary strided indexing: a flat index into
  the broadcast target is decomposed into per-axis digits which are then
  multiplied by the (possibly zero) operand strides, see `get_real_index`.
"""

from __future__ import annotations

from typing import Iterator, Sequence, Union

import numpy as np

from ._errors import BroadcastError, ShapeError

MAX_RANK = 8
"""Maximum supported tensor rank."""

ShapeLike = Union["TensorShape", Sequence[int]]


class TensorShape:
    """
    Immutable tensor shape with derived row-major strides.

    Parameters
    ----------
    *dims : int or Sequence[int]
        Dimension sizes, given either as separate integers
        (``TensorShape(3, 4)``) or as a single sequence
        (``TensorShape((3, 4))``).

    Notes
    -----
    - Equality is structural: two shapes are equal when they have the same
      rank and the same dims. A `TensorShape` also compares equal to a plain
      tuple of the same dims.
    - ``TensorShape(1)`` is the canonical scalar-as-tensor shape.
    - Rank 0 (``TensorShape()``) is accepted and holds a single element.
    """

    __slots__ = ("_dims", "_strides")

    def __init__(self, *dims: Union[int, Sequence[int]]) -> None:
        if len(dims) == 1 and not isinstance(dims[0], (int, np.integer)):
            dims = tuple(dims[0])  # type: ignore[arg-type]

        if len(dims) > MAX_RANK:
            raise ShapeError(f"rank {len(dims)} exceeds maximum rank {MAX_RANK}")

        normalized = []
        for d in dims:
            if isinstance(d, bool) or not isinstance(d, (int, np.integer)):
                raise ShapeError(f"shape dims must be integers, got {d!r}")
            if d < 0:
                raise ShapeError(f"shape dims must be non-negative, got {tuple(dims)}")
            normalized.append(int(d))

        self._dims: tuple[int, ...] = tuple(normalized)

        strides = [1] * len(self._dims)
        for i in range(len(self._dims) - 2, -1, -1):
            strides[i] = strides[i + 1] * self._dims[i + 1]
        self._strides: tuple[int, ...] = tuple(strides)

    @staticmethod
    def scalar() -> "TensorShape":
        """
        Return the canonical scalar-as-tensor shape, ``TensorShape(1)``.
        """
        return TensorShape(1)

    @staticmethod
    def of(shape: ShapeLike) -> "TensorShape":
        """
        Coerce a shape-like value into a `TensorShape`.

        Parameters
        ----------
        shape : TensorShape or Sequence[int]
            Existing shape or a sequence of dims.

        Returns
        -------
        TensorShape
            `shape` itself when it already is a `TensorShape`.
        """
        if isinstance(shape, TensorShape):
            return shape
        return TensorShape(tuple(shape))

    @property
    def rank(self) -> int:
        return len(self._dims)

    @property
    def dims(self) -> tuple[int, ...]:
        return self._dims

    @property
    def strides(self) -> tuple[int, ...]:
        """
        Contiguous row-major strides, in elements.
        """
        return self._strides

    def broadcast_strides(self) -> tuple[int, ...]:
        """
        Contiguous strides with every size-1 dimension given stride 0.

        Returns
        -------
        tuple[int, ...]
            Strides suitable for reading this buffer as if its unit axes
            were repeated.
        """
        return tuple(0 if d == 1 else s for d, s in zip(self._dims, self._strides))

    def num_elements(self) -> int:
        n = 1
        for d in self._dims:
            n *= d
        return n

    def is_scalar(self) -> bool:
        """
        Return True only for the canonical scalar shape ``TensorShape(1)``.
        """
        return self._dims == (1,)

    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    def __getitem__(self, index):
        return self._dims[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TensorShape):
            return self._dims == other._dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"TensorShape{self._dims!r}"


def normalize_axis(axis: int, rank: int) -> int:
    """
    Normalize a possibly negative axis against `rank`.

    Parameters
    ----------
    axis : int
        Axis index, negative values count from the end.
    rank : int
        Rank of the tensor the axis refers to.

    Returns
    -------
    int
        Axis in ``[0, rank)``.

    Raises
    ------
    ShapeError
        If `axis` is out of range.
    """
    a = int(axis)
    if a < 0:
        a += rank
    if a < 0 or a >= rank:
        raise ShapeError(f"axis {axis} out of range for rank {rank}")
    return a


def _broadcast_pair(lhs: tuple[int, ...], rhs: tuple[int, ...]) -> tuple[int, ...]:
    if len(lhs) < len(rhs):
        longer, shorter = rhs, lhs
    else:
        longer, shorter = lhs, rhs

    pad = len(longer) - len(shorter)
    out = list(longer[:pad])
    for i in range(len(shorter)):
        a = longer[pad + i]
        b = shorter[i]
        if a == b:
            out.append(a)
        elif a == 1 or b == 1:
            out.append(a * b)
        else:
            raise BroadcastError(lhs, rhs, axis=len(shorter) - i)
    return tuple(out)


def broadcast_shapes(*shapes: ShapeLike) -> TensorShape:
    """
    Compute the broadcast shape of one or more shapes.

    Shapes are right-aligned; for each aligned pair ``(a, b)`` the result is
    ``a`` when ``a == b``, ``a * b`` when either is 1, and a `BroadcastError`
    otherwise. Leading dims of the longer shape are copied unchanged. More
    than two shapes are folded pairwise from left to right.

    Parameters
    ----------
    *shapes : TensorShape or Sequence[int]
        Shapes to broadcast.

    Returns
    -------
    TensorShape
        The broadcast shape.

    Raises
    ------
    ShapeError
        If no shape is given.
    BroadcastError
        If two shapes are incompatible.
    """
    if not shapes:
        raise ShapeError("broadcast_shapes() requires at least one shape")

    result = TensorShape.of(shapes[0]).dims
    for s in shapes[1:]:
        result = _broadcast_pair(result, TensorShape.of(s).dims)
    return TensorShape(result)


def broadcast_calculate_strides(shape: ShapeLike, target: ShapeLike) -> tuple[int, ...]:
    """
    Compute per-target-axis strides for reading `shape` broadcast to `target`.

    Parameters
    ----------
    shape : TensorShape or Sequence[int]
        Operand shape; may have a lower rank than `target`.
    target : TensorShape or Sequence[int]
        Broadcast target shape.

    Returns
    -------
    tuple[int, ...]
        One stride per axis of `target`: 0 where the operand's dim is 1 or
        absent, the operand's contiguous stride otherwise.

    Raises
    ------
    BroadcastError
        If `shape` cannot be broadcast to `target`.
    """
    src = TensorShape.of(shape)
    tgt = TensorShape.of(target)

    if src.rank > tgt.rank:
        raise BroadcastError(src.dims, tgt.dims)

    pad = tgt.rank - src.rank
    strides = [0] * tgt.rank
    for i, (d, s) in enumerate(zip(src.dims, src.strides)):
        t = tgt.dims[pad + i]
        if d == t and d != 1:
            strides[pad + i] = s
        elif d != 1:
            raise BroadcastError(src.dims, tgt.dims, axis=src.rank - i)
    return tuple(strides)


def get_real_index(flat_index, strides: Sequence[int], shape: ShapeLike):
    """
    Map a flat index into a broadcast target onto the operand's buffer.

    The flat index is decomposed into per-axis digits by successive div-mod
    starting at the last (fastest) axis, and each digit is multiplied by the
    corresponding (possibly zero) operand stride.

    Parameters
    ----------
    flat_index : int or np.ndarray
        Flat index (or integer array of flat indices) into `shape`.
    strides : Sequence[int]
        Operand strides per axis of `shape`, typically the result of
        `broadcast_calculate_strides`.
    shape : TensorShape or Sequence[int]
        The broadcast target shape.

    Returns
    -------
    int or np.ndarray
        Flat offset(s) into the operand buffer.
    """
    dims = shape.dims if isinstance(shape, TensorShape) else tuple(shape)

    offset = flat_index * 0
    rem = flat_index
    for d, s in zip(reversed(dims), reversed(tuple(strides))):
        if s:
            offset = offset + (rem % d) * s
        rem = rem // d
    return offset
