"""
Operator contract definitions.

This module defines the uniform contract that every graph node's operator
implements, together with the closed enumeration of operator kinds.

Each operator is a stateless unit exposing exactly three capabilities:

- ``result_shape(input_shapes, attributes)``: resolve the output shape at
  graph-build time. Shape and attribute errors must be raised here so graph
  construction aborts instead of failing lazily in a later forward call.
- ``forward(inputs, attributes)``: compute a freshly allocated output tensor.
- ``backward(grad_out, inputs, attributes)``: compute one gradient per input,
  each shaped like the corresponding input.

The design mirrors function-level autograd systems (one class per operation
with paired forward/backward), but attributes are passed explicitly instead
of being captured on a context object: an operator never holds per-node
state, and the graph collaborator owns node storage and evaluation order.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence

from ._attributes import AttributeVector
from ._shape import TensorShape
from ._tensor import ITensor


class OpKind(Enum):
    """
    Closed enumeration of operator kinds.

    Every member is implemented by exactly one registered `Operator`.
    """

    SIGMOID = "sigmoid"
    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    TANH = "tanh"
    CLIP = "clip"
    EXP = "exp"
    NEG = "neg"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    SQUEEZE = "squeeze"
    UNSQUEEZE = "unsqueeze"
    RESHAPE = "reshape"
    SLICE = "slice"
    TRANSPOSE = "transpose"
    REDUCE_SUM = "reduce_sum"
    REDUCE_MEAN = "reduce_mean"


class Operator(ABC):
    """
    Abstract base class for differentiable graph operators.

    Subclasses set `kind` and `arity` and implement the three contract
    methods. Instances are stateless and shared by every node of their kind.

    Notes
    -----
    - `inputs` passed to `forward`/`backward` are never mutated.
    - `backward` returns a tuple with one entry per input, in input order.
    """

    kind: OpKind
    arity: int = 1

    def check_arity(self, n: int) -> None:
        """
        Validate the number of operands supplied to this operator.

        Raises
        ------
        ValueError
            If `n` differs from `arity`.
        """
        if n != self.arity:
            raise ValueError(
                f"{self.kind.name} expects {self.arity} input(s), got {n}"
            )

    @abstractmethod
    def result_shape(
        self, input_shapes: Sequence[TensorShape], attributes: AttributeVector
    ) -> TensorShape:
        """
        Resolve the output shape for the given input shapes.

        Parameters
        ----------
        input_shapes : Sequence[TensorShape]
            Shapes of the operands, in input order.
        attributes : AttributeVector
            The node's static attributes.

        Returns
        -------
        TensorShape
            The output shape.

        Raises
        ------
        ShapeError
            If the operand shapes are incompatible.
        NodeAttributeError
            If a required attribute is missing or malformed.
        """
        ...

    @abstractmethod
    def forward(
        self, inputs: Sequence[ITensor], attributes: AttributeVector
    ) -> ITensor:
        """
        Perform the forward computation into a freshly allocated tensor.

        Parameters
        ----------
        inputs : Sequence[ITensor]
            Operand tensors.
        attributes : AttributeVector
            The node's static attributes.

        Returns
        -------
        ITensor
            Output tensor of shape ``result_shape(...)``, owned by the caller.
        """
        ...

    @abstractmethod
    def backward(
        self,
        grad_out: ITensor,
        inputs: Sequence[ITensor],
        attributes: AttributeVector,
    ) -> tuple[ITensor, ...]:
        """
        Compute gradients with respect to each input.

        Parameters
        ----------
        grad_out : ITensor
            Gradient of the loss with respect to this operator's output.
        inputs : Sequence[ITensor]
            The operands the forward pass was evaluated on.
        attributes : AttributeVector
            The node's static attributes.

        Returns
        -------
        tuple[ITensor, ...]
            One gradient per input, each shaped like that input.
        """
        ...
