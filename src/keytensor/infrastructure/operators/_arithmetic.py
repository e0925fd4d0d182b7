"""
Broadcasting binary arithmetic operators (ADD, SUB, MUL, DIV).

The output shape is ``broadcast_shapes(a.shape, b.shape)``, resolved at
graph-build time so incompatible operands abort construction. Backward math
produces gradients shaped like the output; each is then un-broadcast back to
its operand's original shape by summing over the expanded axes.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ...domain._attributes import AttributeVector
from ...domain._operator import Operator, OpKind
from ...domain._shape import TensorShape, broadcast_shapes
from ..ops.accumulate_cpu import unbroadcast
from ..ops.elementwise_cpu import elwise_op, unary_op
from ..tensor._tensor import Tensor
from ._registry import register_operator


class _BinaryOperator(Operator):
    arity = 2
    lane_fn = staticmethod(np.add)

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        return broadcast_shapes(input_shapes[0], input_shapes[1])

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return elwise_op(inputs[0], inputs[1], self.lane_fn)


@register_operator()
class AddOp(_BinaryOperator):
    kind = OpKind.ADD
    lane_fn = staticmethod(np.add)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        a, b = inputs
        return unbroadcast(grad_out, a.shape), unbroadcast(grad_out, b.shape)


@register_operator()
class SubOp(_BinaryOperator):
    kind = OpKind.SUB
    lane_fn = staticmethod(np.subtract)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        a, b = inputs
        return (
            unbroadcast(grad_out, a.shape),
            unbroadcast(unary_op(grad_out, np.negative), b.shape),
        )


@register_operator()
class MulOp(_BinaryOperator):
    kind = OpKind.MUL
    lane_fn = staticmethod(np.multiply)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        a, b = inputs
        return (
            unbroadcast(elwise_op(grad_out, b, np.multiply), a.shape),
            unbroadcast(elwise_op(grad_out, a, np.multiply), b.shape),
        )


@register_operator()
class DivOp(_BinaryOperator):
    """
    Elementwise division ``a / b``.

    Backward:
        dL/da = g / b
        dL/db = -g * a / b ** 2
    """

    kind = OpKind.DIV
    lane_fn = staticmethod(np.divide)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        a, b = inputs
        ga = elwise_op(grad_out, b, np.divide)
        gb = elwise_op(
            elwise_op(grad_out, a, np.multiply),
            elwise_op(b, b, np.multiply),
            lambda num, den: -num / den,
        )
        return unbroadcast(ga, a.shape), unbroadcast(gb, b.shape)
