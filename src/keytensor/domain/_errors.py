"""
Shape-, attribute- and bounds-related exceptions for keytensor.

This module defines the error taxonomy shared by the shape algebra, the CPU
kernels and the operator implementations. All errors derive from
`KeyTensorError` so callers can trap the whole family, while each concrete
error also derives from the closest built-in exception (`ValueError`,
`IndexError`) so generic callers keep working.

Shape and attribute errors are intended to surface at graph-build time, when
an operator's `result_shape` is evaluated, rather than lazily during a later
forward call.
"""

from typing import Optional


class KeyTensorError(Exception):
    """
    Base class for all keytensor errors.
    """


class ShapeError(KeyTensorError, ValueError):
    """
    Raised when tensor shapes are incompatible with an operation.

    Typical causes are a reduction axis out of range, a rank mismatch between
    a permutation or slice axis list and the operand, or an element-count
    mismatch when reinterpreting a buffer under a new shape.
    """


class BroadcastError(ShapeError):
    """
    Raised when two shapes cannot be broadcast together.

    Attributes
    ----------
    lhs : tuple[int, ...]
        Dimensions of the left operand.
    rhs : tuple[int, ...]
        Dimensions of the right operand.
    """

    def __init__(self, lhs: tuple, rhs: tuple, axis: Optional[int] = None) -> None:
        """
        Initialize the BroadcastError.

        Parameters
        ----------
        lhs : tuple[int, ...]
            Dimensions of the left operand.
        rhs : tuple[int, ...]
            Dimensions of the right operand.
        axis : Optional[int], optional
            Right-aligned axis (counted from the end, starting at 1) where
            the mismatch was found.
        """
        where = "" if axis is None else f" (dimension -{axis})"
        super().__init__(
            f"Shapes {tuple(lhs)} and {tuple(rhs)} are not broadcast-compatible{where}."
        )
        self.lhs = tuple(lhs)
        self.rhs = tuple(rhs)
        self.axis = axis


class NodeAttributeError(KeyTensorError, ValueError):
    """
    Raised when a node attribute is missing or malformed.

    Attributes
    ----------
    name : str
        Name of the offending attribute (e.g. "starts").
    """

    def __init__(self, name: str, message: str) -> None:
        """
        Initialize the NodeAttributeError.

        Parameters
        ----------
        name : str
            Attribute name.
        message : str
            Human-readable description of the problem.
        """
        super().__init__(f"Attribute {name!r}: {message}")
        self.name = name


class BoundsError(KeyTensorError, IndexError):
    """
    Raised when an index or a computed buffer offset falls outside a tensor.
    """
