"""
Finite-difference gradient checking helpers for operator tests.

The checked scalar loss is ``sum(forward(inputs) * w)`` for a fixed random
weight tensor ``w``, so the analytic gradient of each input is
``backward(w, inputs)``. Everything runs in float64.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from src.keytensor.domain._attributes import AttributeVector
from src.keytensor.domain._operator import Operator
from src.keytensor.infrastructure.tensor import Tensor


def f64(arr) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr, dtype=np.float64), dtype=np.float64)


def numeric_grads(
    op: Operator,
    arrays: Sequence[np.ndarray],
    attributes: AttributeVector,
    weight: np.ndarray,
    eps: float = 1e-6,
) -> list[np.ndarray]:
    grads = []
    for k, base in enumerate(arrays):
        g = np.zeros_like(base)
        it = np.nditer(base, flags=["multi_index"])
        for _ in it:
            idx = it.multi_index

            def loss(delta: float) -> float:
                perturbed = [a.copy() for a in arrays]
                perturbed[k][idx] += delta
                out = op.forward([f64(a) for a in perturbed], attributes)
                return float(np.sum(out.to_numpy() * weight))

            g[idx] = (loss(eps) - loss(-eps)) / (2 * eps)
        grads.append(g)
    return grads


def analytic_grads(
    op: Operator,
    arrays: Sequence[np.ndarray],
    attributes: AttributeVector,
    weight: np.ndarray,
) -> list[np.ndarray]:
    inputs = [f64(a) for a in arrays]
    return [g.to_numpy() for g in op.backward(f64(weight), inputs, attributes)]


def assert_grads_close(
    testcase,
    op: Operator,
    arrays: Sequence[np.ndarray],
    attributes: AttributeVector = AttributeVector(),
    seed: int = 0,
) -> None:
    arrays = [np.asarray(a, dtype=np.float64) for a in arrays]
    out_shape = op.result_shape([a.shape for a in arrays], attributes)
    weight = np.random.default_rng(seed).standard_normal(out_shape.dims)

    expected = numeric_grads(op, arrays, attributes, weight)
    actual = analytic_grads(op, arrays, attributes, weight)

    testcase.assertEqual(len(actual), len(arrays))
    for a, g_num, g_ana in zip(arrays, expected, actual):
        testcase.assertEqual(g_ana.shape, a.shape)
        np.testing.assert_allclose(g_ana, g_num, rtol=1e-5, atol=1e-6)
