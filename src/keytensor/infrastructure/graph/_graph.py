"""
Minimal graph executor driving the operator contract.

A `Graph` records `Symbol`s in insertion order, which is also a valid
topological order because a symbol can only reference symbols created before
it. Building a node evaluates its operator's ``result_shape`` immediately, so
shape and attribute errors abort graph construction instead of surfacing in a
later forward call.

Evaluation
----------
- `forward(feeds)` evaluates every symbol in order and returns the value of
  each symbol keyed by id.
- `backward(values, output, seed)` allocates one zero-initialized gradient
  buffer per symbol (shaped like the symbol), seeds the output buffer, and
  walks symbols in reverse order. Each operator's per-input gradients are
  folded into the operand buffers with `accumulate_grad`, which also
  un-broadcasts them. Accumulation is serialized: one `accumulate_grad` call
  at a time.

This is a driver for the operator core, not a layer or model API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from ...domain._attributes import AttributeVector
from ...domain._errors import ShapeError
from ...domain._operator import OpKind
from ...domain._shape import ShapeLike, TensorShape
from ..operators._registry import get_operator
from ..ops.accumulate_cpu import accumulate_grad
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Symbol:
    """
    One node of a `Graph`.

    Attributes
    ----------
    id : int
        Position of the symbol in its graph.
    kind : Optional[OpKind]
        Operator kind, or None for graph inputs and constants.
    inputs : tuple[int, ...]
        Ids of the operand symbols.
    shape : TensorShape
        Output shape, resolved when the symbol was built.
    attributes : AttributeVector
        Static node attributes.
    """

    id: int
    kind: Optional[OpKind]
    inputs: tuple[int, ...]
    shape: TensorShape
    attributes: AttributeVector = field(default_factory=AttributeVector)


class Graph:
    """
    Append-only computation graph over registered operators.

    Examples
    --------
    >>> g = Graph()
    >>> x = g.input((2, 3))
    >>> y = g.apply("relu", x)
    >>> values = g.forward({x: Tensor.ones((2, 3))})
    >>> grads = g.backward(values, y)
    """

    def __init__(self) -> None:
        self._symbols: list[Symbol] = []
        self._constants: dict[int, Tensor] = {}

    @property
    def symbols(self) -> tuple[Symbol, ...]:
        return tuple(self._symbols)

    def __getitem__(self, symbol_id: int) -> Symbol:
        return self._symbols[symbol_id]

    def _add(self, kind, inputs, shape, attributes) -> int:
        sid = len(self._symbols)
        self._symbols.append(
            Symbol(id=sid, kind=kind, inputs=tuple(inputs), shape=shape, attributes=attributes)
        )
        return sid

    def input(self, shape: ShapeLike) -> int:
        """
        Declare a graph input of a static shape; returns its symbol id.
        """
        sid = self._add(None, (), TensorShape.of(shape), AttributeVector())
        logger.debug("graph input %d shape=%s", sid, self._symbols[sid].shape.dims)
        return sid

    def constant(self, value: Tensor) -> int:
        """
        Add a constant tensor (copied) to the graph; returns its symbol id.
        """
        sid = self._add(None, (), value.shape, AttributeVector())
        self._constants[sid] = value.clone()
        return sid

    def apply(self, kind: Union[OpKind, str], *inputs: int, **attributes: Any) -> int:
        """
        Add an operator node and resolve its output shape.

        Parameters
        ----------
        kind : OpKind or str
            Operator kind.
        *inputs : int
            Operand symbol ids.
        **attributes : Any
            Static node attributes.

        Returns
        -------
        int
            The new symbol's id.

        Raises
        ------
        ShapeError, NodeAttributeError
            If the operator rejects the operand shapes or attributes.
        KeyError
            If `kind` is unknown or an operand id does not exist.
        """
        op = get_operator(kind)
        for i in inputs:
            if not 0 <= i < len(self._symbols):
                raise KeyError(f"unknown symbol id {i}")
        attrs = AttributeVector(attributes)
        shape = op.result_shape([self._symbols[i].shape for i in inputs], attrs)
        sid = self._add(op.kind, inputs, shape, attrs)
        logger.debug(
            "graph node %d %s%s -> %s", sid, op.kind.name, tuple(inputs), shape.dims
        )
        return sid

    def forward(self, feeds: Mapping[int, Tensor]) -> dict[int, Tensor]:
        """
        Evaluate every symbol.

        Parameters
        ----------
        feeds : Mapping[int, Tensor]
            Value for each graph input, keyed by symbol id.

        Returns
        -------
        dict[int, Tensor]
            Value of every symbol, keyed by id.

        Raises
        ------
        KeyError
            If an input has no feed.
        ShapeError
            If a feed's shape differs from the declared input shape.
        """
        values: dict[int, Tensor] = {}
        for sym in self._symbols:
            if sym.kind is None:
                if sym.id in self._constants:
                    values[sym.id] = self._constants[sym.id]
                    continue
                if sym.id not in feeds:
                    raise KeyError(f"missing feed for graph input {sym.id}")
                value = feeds[sym.id]
                if value.shape != sym.shape:
                    raise ShapeError(
                        f"feed for input {sym.id} has shape {value.shape.dims}, "
                        f"expected {sym.shape.dims}"
                    )
                values[sym.id] = value
                continue

            op = get_operator(sym.kind)
            logger.debug("forward %d %s", sym.id, sym.kind.name)
            values[sym.id] = op.forward([values[i] for i in sym.inputs], sym.attributes)
        return values

    def backward(
        self,
        values: Mapping[int, Tensor],
        output: int,
        seed: Optional[Tensor] = None,
    ) -> dict[int, Tensor]:
        """
        Back-propagate from `output` through the graph.

        Parameters
        ----------
        values : Mapping[int, Tensor]
            Forward values as returned by `forward`.
        output : int
            Symbol to differentiate.
        seed : Optional[Tensor], optional
            Upstream gradient for `output`; must have its shape or be a
            ``TensorShape(1)`` scalar. Defaults to ones.

        Returns
        -------
        dict[int, Tensor]
            Gradient buffer of every symbol at or before `output`, each
            shaped like its symbol.
        """
        out_sym = self._symbols[output]
        grads: dict[int, Tensor] = {
            s.id: Tensor.zeros(s.shape, dtype=values[s.id].dtype)
            for s in self._symbols[: output + 1]
        }
        accumulate_grad(grads[output], seed if seed is not None else Tensor.ones(out_sym.shape))

        for sym in reversed(self._symbols[: output + 1]):
            if sym.kind is None:
                continue
            op = get_operator(sym.kind)
            logger.debug("backward %d %s", sym.id, sym.kind.name)
            operands: Sequence[Tensor] = [values[i] for i in sym.inputs]
            for i, g in zip(sym.inputs, op.backward(grads[sym.id], operands, sym.attributes)):
                accumulate_grad(grads[i], g)
        return grads
