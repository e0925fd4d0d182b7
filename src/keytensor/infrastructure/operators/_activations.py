"""
Elementwise activation and unary math operators.

Every operator here is shape-preserving: ``result_shape`` returns the input
shape and both passes are lane-wise kernels over one (forward) or two
(backward: upstream gradient and saved input) same-shape buffers.

Derivatives
-----------
- SIGMOID:     f(x) = 1 / (1 + exp(-x)),      f'(x) = f(x) * (1 - f(x))
- RELU:        f(x) = max(x, 0),              f'(x) = 1 if x > 0 else 0
- LEAKY_RELU:  f(x) = x if x > 0 else a * x,  f'(x) = 1 if x > 0 else a
- TANH:        f(x) = tanh(x),                f'(x) = 1 - f(x) ** 2
- CLIP:        f(x) = min(max(x, lo), hi),    f'(x) = 1 if lo <= x <= hi else 0
- EXP:         f(x) = exp(x),                 f'(x) = exp(x)
- NEG:         f(x) = -x,                     f'(x) = -1

The RELU derivative at exactly ``x == 0`` is 0.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ...domain._attributes import AttributeVector
from ...domain._errors import NodeAttributeError
from ...domain._operator import Operator, OpKind
from ...domain._shape import TensorShape
from ..ops.elementwise_cpu import unary_op, zip_op
from ..tensor._tensor import Tensor
from ._registry import register_operator


def _sigmoid(v: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-v))


class _ElementwiseOperator(Operator):
    """
    Shared shape rule for single-input, shape-preserving operators.
    """

    arity = 1

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        return TensorShape.of(input_shapes[0])


@register_operator()
class SigmoidOp(_ElementwiseOperator):
    kind = OpKind.SIGMOID

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return unary_op(inputs[0], _sigmoid)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        def fn(g: np.ndarray, v: np.ndarray) -> np.ndarray:
            f = _sigmoid(v)
            return g * f * (1.0 - f)

        return (zip_op(grad_out, inputs[0], fn),)


@register_operator()
class ReLUOp(_ElementwiseOperator):
    kind = OpKind.RELU

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return unary_op(inputs[0], lambda v: np.maximum(v, 0))

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        # x == 0 takes the zero branch.
        return (zip_op(grad_out, inputs[0], lambda g, v: np.where(v > 0, g, 0)),)


@register_operator()
class LeakyReLUOp(_ElementwiseOperator):
    """
    Leaky ReLU with negative slope ``alpha`` (attribute, default 0.01).
    """

    kind = OpKind.LEAKY_RELU

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        alpha = attributes.get_float("alpha", 0.01)
        return unary_op(inputs[0], lambda v: np.where(v > 0, v, alpha * v))

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        alpha = attributes.get_float("alpha", 0.01)
        return (
            zip_op(grad_out, inputs[0], lambda g, v: np.where(v > 0, g, alpha * g)),
        )


@register_operator()
class TanhOp(_ElementwiseOperator):
    kind = OpKind.TANH

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return unary_op(inputs[0], np.tanh)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        def fn(g: np.ndarray, v: np.ndarray) -> np.ndarray:
            t = np.tanh(v)
            return g * (1.0 - t * t)

        return (zip_op(grad_out, inputs[0], fn),)


@register_operator()
class ClipOp(_ElementwiseOperator):
    """
    Clamp into ``[min, max]``.

    Attributes
    ----------
    min : float, optional
        Lower bound. Defaults to the lowest finite value of the element type.
    max : float, optional
        Upper bound. Defaults to the highest finite value of the element type.

    Notes
    -----
    The bounds are rounded to the element type before use, so forward and
    backward agree on which lanes are clamped.
    """

    kind = OpKind.CLIP

    @staticmethod
    def _bounds(attributes: AttributeVector, dtype: np.dtype):
        info = np.finfo(dtype)
        lo = dtype.type(attributes.get_float("min", float(info.min)))
        hi = dtype.type(attributes.get_float("max", float(info.max)))
        return lo, hi

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        shape = super().result_shape(input_shapes, attributes)
        lo = attributes.get_float("min", float("-inf"))
        hi = attributes.get_float("max", float("inf"))
        if lo > hi:
            raise NodeAttributeError("min", f"min ({lo}) is greater than max ({hi})")
        return shape

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        x = inputs[0]
        lo, hi = self._bounds(attributes, x.dtype)
        return unary_op(x, lambda v: np.minimum(np.maximum(v, lo), hi))

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        x = inputs[0]
        lo, hi = self._bounds(attributes, x.dtype)
        return (
            zip_op(
                grad_out, x, lambda g, v: np.where((v >= lo) & (v <= hi), g, 0)
            ),
        )


@register_operator()
class ExpOp(_ElementwiseOperator):
    kind = OpKind.EXP

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return unary_op(inputs[0], np.exp)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        return (zip_op(grad_out, inputs[0], lambda g, v: g * np.exp(v)),)


@register_operator()
class NegOp(_ElementwiseOperator):
    kind = OpKind.NEG

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return unary_op(inputs[0], np.negative)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        return (unary_op(grad_out, np.negative),)
