"""
Concrete Tensor implementation (NumPy CPU backend).

This module provides the concrete `Tensor` that satisfies the domain-level
`ITensor` protocol. A tensor pairs a `TensorShape` with an owned, contiguous,
one-dimensional NumPy buffer of exactly ``shape.num_elements()`` elements.

Design notes
------------
- The buffer is always flat. Kernels address it with explicit row-major
  offsets computed from the shape's strides; the N-D view returned by
  `to_numpy` is a copy for callers and tests, never a kernel input.
- Construction copies any provided data, so a tensor never aliases a buffer
  it did not allocate.
- The element type defaults to the configured runtime dtype.
- Autograd bookkeeping is not stored on tensors; gradients are plain tensors
  owned by the graph executor.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np

from ...domain._errors import BoundsError, ShapeError
from ...domain._shape import ShapeLike, TensorShape
from ...domain._tensor import ITensor, Number
from ..runtime._config import get_config


class Tensor(ITensor):
    """
    Shape plus an owned, contiguous, fixed-size element buffer.

    Parameters
    ----------
    shape : TensorShape or Sequence[int]
        Tensor shape.
    data : Optional[array-like], optional
        Initial values. Any array-like with exactly ``num_elements()``
        elements (its own shape is ignored, values are read in row-major
        order). Defaults to zeros.
    dtype : Optional[np.dtype], optional
        Element type. Defaults to the configured runtime dtype.

    Raises
    ------
    ShapeError
        If `data` does not hold exactly ``num_elements()`` elements.
    """

    __slots__ = ("_shape", "_data")

    def __init__(
        self,
        shape: ShapeLike,
        data: Optional[Any] = None,
        dtype: Optional[Union[np.dtype, str, type]] = None,
    ) -> None:
        self._shape = TensorShape.of(shape)
        dt = np.dtype(dtype) if dtype is not None else get_config().np_dtype
        n = self._shape.num_elements()

        if data is None:
            self._data = np.zeros(n, dtype=dt)
            return

        arr = np.array(data, dtype=dt, copy=True).reshape(-1)
        if arr.size != n:
            raise ShapeError(
                f"data holds {arr.size} elements but shape {self._shape.dims} needs {n}"
            )
        self._data = np.ascontiguousarray(arr)

    @classmethod
    def _wrap(cls, shape: TensorShape, buffer: np.ndarray) -> "Tensor":
        """
        Adopt a freshly allocated flat buffer without copying it.

        Kernels use this for outputs they have just allocated themselves.
        """
        t = cls.__new__(cls)
        t._shape = shape
        t._data = buffer
        return t

    # ------------------------------------------------------------------
    # Buffer interface
    # ------------------------------------------------------------------
    @property
    def shape(self) -> TensorShape:
        return self._shape

    @property
    def data(self) -> np.ndarray:
        """
        The flat, contiguous element buffer (mutable, not a copy).
        """
        return self._data

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def strides(self) -> tuple[int, ...]:
        return self._shape.strides

    def num_elements(self) -> int:
        return int(self._data.size)

    def _flat_offset(self, index: Any) -> int:
        if isinstance(index, (int, np.integer)):
            n = self._data.size
            i = int(index)
            if i < 0:
                i += n
            if i < 0 or i >= n:
                raise BoundsError(f"flat index {index} out of range for {n} elements")
            return i

        if not isinstance(index, tuple):
            raise TypeError(f"Tensor indices must be integers or tuples, got {index!r}")

        dims = self._shape.dims
        if len(index) != len(dims):
            raise BoundsError(
                f"expected {len(dims)} indices for shape {dims}, got {len(index)}"
            )

        offset = 0
        for i, d, s in zip(index, dims, self._shape.strides):
            i = int(i)
            if i < 0:
                i += d
            if i < 0 or i >= d:
                raise BoundsError(f"index {index} out of range for shape {dims}")
            offset += i * s
        return offset

    def __getitem__(self, index: Any) -> Number:
        """
        Read one element by flat index or by full multi-index.

        Raises
        ------
        BoundsError
            If the index is out of range.
        """
        return self._data[self._flat_offset(index)].item()

    def __setitem__(self, index: Any, value: Number) -> None:
        """
        Write one element by flat index or by full multi-index.

        Raises
        ------
        BoundsError
            If the index is out of range.
        """
        self._data[self._flat_offset(index)] = value

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self._shape.dims}, dtype={self._data.dtype.name}, "
            f"data={self.to_numpy().tolist()})"
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def zeros(cls, shape: ShapeLike, dtype=None) -> "Tensor":
        return cls(shape, dtype=dtype)

    @classmethod
    def ones(cls, shape: ShapeLike, dtype=None) -> "Tensor":
        return cls.full(shape, 1.0, dtype=dtype)

    @classmethod
    def full(cls, shape: ShapeLike, value: Number, dtype=None) -> "Tensor":
        t = cls(shape, dtype=dtype)
        t._data.fill(value)
        return t

    @classmethod
    def arange(cls, shape: ShapeLike, dtype=None) -> "Tensor":
        """
        Create a tensor holding ``0, 1, ..., n - 1`` in row-major order.
        """
        s = TensorShape.of(shape)
        return cls(s, np.arange(s.num_elements()), dtype=dtype)

    @classmethod
    def scalar(cls, value: Number, dtype=None) -> "Tensor":
        """
        Create a scalar-as-tensor of shape ``TensorShape(1)``.
        """
        return cls(TensorShape.scalar(), [value], dtype=dtype)

    @classmethod
    def from_numpy(cls, arr: np.ndarray, dtype=None) -> "Tensor":
        """
        Create a tensor from a NumPy array, copying its values.

        A 0-d array becomes a ``TensorShape(1)`` tensor.
        """
        a = np.asarray(arr)
        shape: Sequence[int] = a.shape if a.ndim > 0 else (1,)
        return cls(shape, a, dtype=dtype)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    def to_numpy(self) -> np.ndarray:
        """
        Return a shaped copy of the buffer.
        """
        return self._data.reshape(self._shape.dims).copy()

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite the buffer with values from an array-like.

        Raises
        ------
        ShapeError
            If the element count differs.
        """
        a = np.asarray(arr, dtype=self._data.dtype).reshape(-1)
        if a.size != self._data.size:
            raise ShapeError(
                f"cannot copy {a.size} elements into tensor of shape {self._shape.dims}"
            )
        np.copyto(self._data, a)

    def clone(self) -> "Tensor":
        return type(self)._wrap(self._shape, self._data.copy())

    def fill(self, value: Number) -> None:
        self._data.fill(value)

    def reshaped(self, shape: ShapeLike) -> "Tensor":
        """
        Return a raw copy of the buffer under a new shape.

        Raises
        ------
        ShapeError
            If the element counts differ.
        """
        s = TensorShape.of(shape)
        if s.num_elements() != self._data.size:
            raise ShapeError(
                f"cannot reinterpret shape {self._shape.dims} as {s.dims}: "
                "element counts differ"
            )
        return type(self)._wrap(s, self._data.copy())
