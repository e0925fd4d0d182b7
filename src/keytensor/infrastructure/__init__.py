"""
Concrete NumPy-backed runtime for keytensor.

Subpackages
-----------
- `tensor`:    the concrete `Tensor`
- `runtime`:   configuration and the `vectorize` / `parallelize` primitives
- `ops`:       CPU kernel libraries
- `operators`: `Operator` implementations and the kind registry
- `graph`:     a minimal executor driving the operator contract
"""
