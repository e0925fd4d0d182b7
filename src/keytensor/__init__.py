"""
keytensor: a strided tensor kernel library and autograd operator core.

The package is split into two layers:

- `keytensor.domain`: shapes, broadcasting, node attributes, the operator
  contract and the error taxonomy.
- `keytensor.infrastructure`: the NumPy-backed `Tensor`, the CPU runtime
  (configuration, `vectorize`, `parallelize`), kernel libraries, operator
  implementations and a minimal graph executor.

The most commonly used names are re-exported here.
"""

from .domain import (
    AttributeVector,
    BoundsError,
    BroadcastError,
    KeyTensorError,
    NodeAttributeError,
    OpKind,
    Operator,
    ShapeError,
    TensorShape,
    broadcast_shapes,
)
from .infrastructure.tensor import Tensor
from .infrastructure.runtime import RuntimeConfig, get_config, runtime_config, set_config
from .infrastructure.operators import get_operator, registered_kinds
from .infrastructure.graph import Graph, Symbol

__all__ = [
    AttributeVector.__name__,
    BoundsError.__name__,
    BroadcastError.__name__,
    KeyTensorError.__name__,
    NodeAttributeError.__name__,
    OpKind.__name__,
    Operator.__name__,
    ShapeError.__name__,
    TensorShape.__name__,
    broadcast_shapes.__name__,
    Tensor.__name__,
    RuntimeConfig.__name__,
    get_config.__name__,
    runtime_config.__name__,
    set_config.__name__,
    get_operator.__name__,
    registered_kinds.__name__,
    Graph.__name__,
    Symbol.__name__,
]

__version__ = "0.1.0"
