"""
Structural operators: SQUEEZE, UNSQUEEZE, RESHAPE, SLICE and TRANSPOSE.

Attribute table
---------------
- SQUEEZE:    dims  (ints, optional) default: every size-1 axis
- UNSQUEEZE:  dims  (ints, required) positions in the final rank
- RESHAPE:    shape (ints, required) one -1 wildcard allowed
- SLICE:      starts, ends (ints, required); steps (default all 1);
              axes (default 0 .. len(starts) - 1)
- TRANSPOSE:  perm  (ints, optional) default: reversed axes

SQUEEZE, UNSQUEEZE and RESHAPE only reinterpret the shape: forward and
backward are raw buffer copies. SLICE backward scatters into a zero buffer
shaped like the operand. TRANSPOSE backward applies the inverse permutation.
"""

from __future__ import annotations

from typing import Sequence

from ...domain._attributes import AttributeVector
from ...domain._operator import Operator, OpKind
from ...domain._shape import TensorShape
from ..ops.reshape_cpu import reshape_copy, reshape_shape, squeeze_shape, unsqueeze_shape
from ..ops.slice_cpu import resolve_slice, slice_backward, slice_forward
from ..ops.transpose_cpu import (
    inverse_permutation,
    resolve_permutation,
    transpose,
    transposed_shape,
)
from ..tensor._tensor import Tensor
from ._registry import register_operator


class _ReinterpretOperator(Operator):
    """
    Operators whose output is a raw copy of the input under a new shape.
    """

    arity = 1

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        x = inputs[0]
        return reshape_copy(x, self.result_shape((x.shape,), attributes))

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        return (reshape_copy(grad_out, inputs[0].shape),)


@register_operator()
class SqueezeOp(_ReinterpretOperator):
    kind = OpKind.SQUEEZE

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        return squeeze_shape(input_shapes[0], attributes.get_int_tuple("dims"))


@register_operator()
class UnsqueezeOp(_ReinterpretOperator):
    kind = OpKind.UNSQUEEZE

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        attributes.require("dims")
        return unsqueeze_shape(input_shapes[0], attributes.get_int_tuple("dims"))


@register_operator()
class ReshapeOp(_ReinterpretOperator):
    kind = OpKind.RESHAPE

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        attributes.require("shape")
        return reshape_shape(input_shapes[0], attributes.get_int_tuple("shape"))


@register_operator()
class SliceOp(Operator):
    """
    N-D strided slice.

    Negative ``starts``/``ends`` count from the end of the axis; both are
    clamped into ``[0, dim]``. ``steps`` must be positive.
    """

    kind = OpKind.SLICE
    arity = 1

    @staticmethod
    def _params(attributes: AttributeVector):
        attributes.require("starts")
        attributes.require("ends")
        return (
            attributes.get_int_tuple("starts"),
            attributes.get_int_tuple("ends"),
            attributes.get_int_tuple("axes"),
            attributes.get_int_tuple("steps"),
        )

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        starts, ends, axes, steps = self._params(attributes)
        return resolve_slice(input_shapes[0], starts, ends, axes, steps).out_shape

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        starts, ends, axes, steps = self._params(attributes)
        return slice_forward(inputs[0], starts, ends, axes, steps)

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        starts, ends, axes, steps = self._params(attributes)
        return (slice_backward(grad_out, inputs[0].shape, starts, ends, axes, steps),)


@register_operator()
class TransposeOp(Operator):
    kind = OpKind.TRANSPOSE
    arity = 1

    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        self.check_arity(len(input_shapes))
        return transposed_shape(input_shapes[0], attributes.get_int_tuple("perm"))

    def forward(self, inputs: Sequence[Tensor], attributes: AttributeVector) -> Tensor:
        return transpose(inputs[0], attributes.get_int_tuple("perm"))

    def backward(
        self, grad_out: Tensor, inputs: Sequence[Tensor], attributes: AttributeVector
    ) -> tuple[Tensor, ...]:
        perm = resolve_permutation(inputs[0].shape.rank, attributes.get_int_tuple("perm"))
        return (transpose(grad_out, inverse_permutation(perm)),)
