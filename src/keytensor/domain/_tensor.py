"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. The interface captures the minimal buffer contract the
kernels and operators rely on: a `TensorShape`, a flat contiguous buffer and
indexed element access.

Notes
-----
The concrete NumPy-backed implementation lives in
`keytensor.infrastructure.tensor`. Domain code (the operator contract, the
error taxonomy) types against `ITensor` so it never imports infrastructure.
"""

from __future__ import annotations

from typing import Any, Protocol, Union, runtime_checkable

from ._shape import TensorShape

Number = Union[int, float]


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor buffer interface.

    An `ITensor` pairs a `TensorShape` with an owned, contiguous, fixed-size
    buffer of a single element type.
    """

    @property
    def shape(self) -> TensorShape:
        """
        Return the shape of the tensor.

        Returns
        -------
        TensorShape
            The tensor's shape.
        """
        ...

    @property
    def data(self) -> Any:
        """
        Return the flat, contiguous element buffer.

        Returns
        -------
        Any
            A one-dimensional buffer of ``num_elements()`` elements.
        """
        ...

    def num_elements(self) -> int:
        """
        Return the number of elements (product of the dims).
        """
        ...

    def __getitem__(self, index: Any) -> Number: ...

    def __setitem__(self, index: Any, value: Number) -> None: ...
