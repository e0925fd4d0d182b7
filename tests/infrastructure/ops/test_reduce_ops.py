"""
Unit tests for the CPU reduction kernels (ops/reduce_cpu.py).

Covered ops
-----------
- tsum / tmax / tmean / tstd, whole-tensor and along one axis
- reduced_shape
- reduce_all with a custom combine function
"""

import unittest

import numpy as np

from src.keytensor.domain._errors import ShapeError
from src.keytensor.infrastructure.ops.reduce_cpu import (
    reduce_all,
    reduced_shape,
    tmax,
    tmean,
    tstd,
    tsum,
)
from src.keytensor.domain._shape import TensorShape
from src.keytensor.infrastructure.runtime import runtime_config
from src.keytensor.infrastructure.tensor import Tensor


def make_tensor(arr, dtype=np.float32) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr), dtype=dtype)


class TestWholeTensorReductions(unittest.TestCase):
    def test_sum(self) -> None:
        out = tsum(Tensor.arange((4, 5)))
        self.assertEqual(out.shape, (1,))
        self.assertEqual(out[0], 190.0)

    def test_sum_of_empty_is_zero(self) -> None:
        self.assertEqual(tsum(Tensor((0,)))[0], 0.0)

    def test_sum_with_tail_chunk(self) -> None:
        with runtime_config(simd_width=8):
            self.assertEqual(tsum(Tensor.ones((37,)))[0], 37.0)

    def test_max(self) -> None:
        self.assertEqual(tmax(make_tensor([-5, -4, -1, -3]))[0], -1.0)
        self.assertEqual(tmax(make_tensor([[1, 9], [3, 2]]))[0], 9.0)

    def test_max_of_empty_raises(self) -> None:
        with self.assertRaises(ShapeError):
            tmax(Tensor((0,)))

    def test_mean(self) -> None:
        self.assertAlmostEqual(tmean(Tensor.arange((10,)))[0], 4.5, places=6)

    def test_std_matches_population_std(self) -> None:
        arr = np.random.default_rng(1).standard_normal((6, 9)).astype(np.float64)
        out = tstd(make_tensor(arr, np.float64))
        self.assertAlmostEqual(out[0], float(np.std(arr)), places=10)

    def test_std_of_constant_is_exactly_zero(self) -> None:
        for value in (3.7, -0.1, 1e6):
            with self.subTest(value=value):
                self.assertEqual(tstd(Tensor.full((7, 11), value))[0], 0.0)

    def test_reduce_all_custom_combine(self) -> None:
        self.assertEqual(reduce_all(make_tensor([3, 1, 2]), np.minimum, np.inf), 1.0)


class TestAxisReductions(unittest.TestCase):
    def test_sum_axis0_of_uniform_tensor(self) -> None:
        v, n = 2.5, 7
        out = tsum(Tensor.full((n, 3, 5), v), axis=0)
        self.assertEqual(out.shape, (3, 5))
        np.testing.assert_array_equal(out.to_numpy(), np.full((3, 5), v * n))

    def test_sum_each_axis_matches_numpy(self) -> None:
        arr = np.random.default_rng(2).standard_normal((4, 6, 5)).astype(np.float32)
        x = make_tensor(arr)
        for axis in (0, 1, 2, -1):
            with self.subTest(axis=axis), runtime_config(simd_width=4):
                np.testing.assert_allclose(
                    tsum(x, axis=axis).to_numpy(), arr.sum(axis=axis), rtol=1e-5, atol=1e-5
                )

    def test_keepdims(self) -> None:
        x = Tensor.arange((2, 3, 4))
        out = tsum(x, axis=1, keepdims=True)
        self.assertEqual(out.shape, (2, 1, 4))
        np.testing.assert_array_equal(
            out.to_numpy(), x.to_numpy().sum(axis=1, keepdims=True)
        )

    def test_max_axis(self) -> None:
        arr = np.random.default_rng(3).standard_normal((5, 8)).astype(np.float32)
        x = make_tensor(arr)
        np.testing.assert_array_equal(tmax(x, axis=0).to_numpy(), arr.max(axis=0))
        np.testing.assert_array_equal(tmax(x, axis=1).to_numpy(), arr.max(axis=1))

    def test_mean_axis(self) -> None:
        arr = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        np.testing.assert_allclose(
            tmean(make_tensor(arr), axis=1).to_numpy(), arr.mean(axis=1), rtol=1e-6
        )

    def test_std_axis(self) -> None:
        arr = np.random.default_rng(4).standard_normal((3, 7, 2))
        x = make_tensor(arr, np.float64)
        for axis in (0, 1, 2):
            with self.subTest(axis=axis):
                np.testing.assert_allclose(
                    tstd(x, axis=axis).to_numpy(), arr.std(axis=axis), rtol=1e-10
                )

    def test_std_axis_of_constant_is_exactly_zero(self) -> None:
        x = Tensor.full((5, 3, 4), 0.3)
        for axis in (0, 1, 2):
            with self.subTest(axis=axis):
                np.testing.assert_array_equal(
                    tstd(x, axis=axis).to_numpy(), np.zeros(reduced_shape(x.shape, axis).dims)
                )

    def test_rank1_axis_reduction_raises(self) -> None:
        with self.assertRaises(ShapeError):
            tsum(Tensor.ones((5,)), axis=0)

    def test_axis_out_of_range_raises(self) -> None:
        with self.assertRaises(ShapeError):
            tsum(Tensor.ones((2, 3)), axis=2)

    def test_empty_axis_raises_for_max_mean_std(self) -> None:
        x = Tensor((0, 3))
        for fn in (tmax, tmean, tstd):
            with self.subTest(op=fn.__name__), self.assertRaises(ShapeError):
                fn(x, axis=0)

    def test_sum_over_empty_axis_is_zero(self) -> None:
        np.testing.assert_array_equal(tsum(Tensor((0, 3)), axis=0).to_numpy(), np.zeros(3))


class TestReducedShape(unittest.TestCase):
    def test_reduced_shape(self) -> None:
        s = TensorShape(2, 3, 4)
        self.assertEqual(reduced_shape(s), (1,))
        self.assertEqual(reduced_shape(s, 1), (2, 4))
        self.assertEqual(reduced_shape(s, -1, keepdims=True), (2, 3, 1))


if __name__ == "__main__":
    unittest.main()
