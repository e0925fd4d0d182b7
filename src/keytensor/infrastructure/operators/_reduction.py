"""
Reduction operators (REDUCE_SUM, REDUCE_MEAN).

Attributes
----------
axis : int, optional
    Axis to reduce (rank >= 2 only). If absent, the whole tensor is reduced
    to ``TensorShape(1)``.
keepdims : int, optional
    1 keeps the reduced axis with size 1. Defaults to 0.

Backward broadcasts the upstream gradient back over the reduced axis (scaled
by ``1 / n`` for the mean).
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ...domain._attributes import AttributeVector
from ...domain._operator import Operator, OpKind
from ...domain._shape import TensorShape, normalize_axis
from ..ops.elementwise_cpu import expand_to, scalar_op
from ..ops.reduce_cpu import reduced_shape, tmean, tsum
from ..ops.reshape_cpu import reshape_copy
from ..tensor._tensor import Tensor
from ._registry import register_operator


class _ReduceOperator(Operator):
    arity = 1

    @staticmethod
    def _params(attributes: AttributeVector) -> tuple[Optional[int], bool]:
        return attributes.get_int("axis"), bool(attributes.get_int("keepdims", 0))

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        axis, keepdims = self._params(attributes)
        return reduced_shape(TensorShape.of(input_shapes[0]), axis, keepdims)

    def _spread(self, grad_out: Tensor, x: Tensor, attributes: AttributeVector) -> Tensor:
        axis, _ = self._params(attributes)
        if axis is not None:
            a = normalize_axis(axis, x.shape.rank)
            dims = list(x.shape.dims)
            dims[a] = 1
            grad_out = reshape_copy(grad_out, TensorShape(tuple(dims)))
        return expand_to(grad_out, x.shape)


@register_operator()
class ReduceSumOp(_ReduceOperator):
    kind = OpKind.REDUCE_SUM

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        axis, keepdims = self._params(attributes)
        return tsum(inputs[0], axis, keepdims)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        return (self._spread(grad_out, inputs[0], attributes),)


@register_operator()
class ReduceMeanOp(_ReduceOperator):
    kind = OpKind.REDUCE_MEAN

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        axis, keepdims = self._params(attributes)
        return tmean(inputs[0], axis, keepdims)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        x = inputs[0]
        axis, _ = self._params(attributes)
        n = x.num_elements() if axis is None else x.shape.dims[normalize_axis(axis, x.shape.rank)]
        g = self._spread(grad_out, x, attributes)
        return (scalar_op(g, 1.0 / max(n, 1), np.multiply),)
