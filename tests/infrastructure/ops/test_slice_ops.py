"""
Unit tests for the CPU strided slice kernels (ops/slice_cpu.py).

The forward gather is checked against NumPy basic slicing; the backward
scatter is checked for duality: ones scattered back mark exactly the
selected positions.
"""

import unittest

import numpy as np

from src.keytensor.domain._errors import BoundsError, NodeAttributeError, ShapeError
from src.keytensor.domain._shape import TensorShape
from src.keytensor.infrastructure.ops.slice_cpu import (
    SlicePlan,
    _walk,
    resolve_slice,
    slice_backward,
    slice_forward,
)
from src.keytensor.infrastructure.runtime import runtime_config
from src.keytensor.infrastructure.tensor import Tensor


class TestSliceForward(unittest.TestCase):
    def setUp(self) -> None:
        self.x = Tensor.arange((3, 4, 5))
        self.arr = self.x.to_numpy()

    def test_leading_axis(self) -> None:
        out = slice_forward(self.x, starts=[1], ends=[3], axes=[0])
        self.assertEqual(out.shape, (2, 4, 5))
        np.testing.assert_array_equal(out.to_numpy(), self.arr[1:3])

    def test_middle_axis(self) -> None:
        out = slice_forward(self.x, starts=[1], ends=[3], axes=[1])
        np.testing.assert_array_equal(out.to_numpy(), self.arr[:, 1:3, :])

    def test_last_axis_with_step(self) -> None:
        with runtime_config(simd_width=2):
            out = slice_forward(self.x, starts=[1], ends=[5], axes=[2], steps=[2])
        np.testing.assert_array_equal(out.to_numpy(), self.arr[:, :, 1:5:2])

    def test_several_axes_with_steps(self) -> None:
        out = slice_forward(
            self.x, starts=[0, 1, 0], ends=[3, 4, 5], steps=[2, 2, 3]
        )
        np.testing.assert_array_equal(out.to_numpy(), self.arr[0:3:2, 1:4:2, 0:5:3])

    def test_negative_and_clamped_bounds(self) -> None:
        out = slice_forward(self.x, starts=[-3, 0], ends=[100, 5], axes=[1, 2], steps=[1, 2])
        np.testing.assert_array_equal(out.to_numpy(), self.arr[:, 1:4, 0:5:2])

    def test_negative_axis(self) -> None:
        out = slice_forward(self.x, starts=[2], ends=[-1], axes=[-1])
        np.testing.assert_array_equal(out.to_numpy(), self.arr[..., 2:-1])

    def test_full_range_is_a_copy(self) -> None:
        out = slice_forward(self.x, starts=[0], ends=[3])
        np.testing.assert_array_equal(out.to_numpy(), self.arr)

    def test_empty_result(self) -> None:
        out = slice_forward(self.x, starts=[2], ends=[1], axes=[0])
        self.assertEqual(out.shape, (0, 4, 5))
        self.assertEqual(out.num_elements(), 0)

    def test_rank1(self) -> None:
        x = Tensor.arange((10,))
        out = slice_forward(x, starts=[1], ends=[9], steps=[3])
        np.testing.assert_array_equal(out.to_numpy(), np.arange(10)[1:9:3])


class TestSliceBackward(unittest.TestCase):
    def test_leading_axis_fixture(self) -> None:
        grad_out = Tensor.ones((2, 4, 5))
        grad_in = slice_backward(grad_out, (3, 4, 5), starts=[1], ends=[3], axes=[0])

        self.assertEqual(grad_in.shape, (3, 4, 5))
        g = grad_in.to_numpy()
        np.testing.assert_array_equal(g[0], np.zeros((4, 5)))
        np.testing.assert_array_equal(g[1:3], np.ones((2, 4, 5)))

    def test_scatter_is_dual_of_gather(self) -> None:
        x = Tensor.arange((3, 4, 5))
        params = dict(starts=[1, 0], ends=[4, 5], axes=[1, 2], steps=[2, 2])

        out = slice_forward(x, **params)
        back = slice_backward(out, x.shape, **params)

        expected = np.zeros((3, 4, 5), dtype=np.float32)
        expected[:, 1:4:2, 0:5:2] = x.to_numpy()[:, 1:4:2, 0:5:2]
        np.testing.assert_array_equal(back.to_numpy(), expected)

    def test_grad_shape_mismatch_raises(self) -> None:
        with self.assertRaises(ShapeError):
            slice_backward(Tensor.ones((3, 4, 5)), (3, 4, 5), starts=[1], ends=[3])


class TestResolveSlice(unittest.TestCase):
    def test_out_shape(self) -> None:
        plan = resolve_slice((3, 4, 5), starts=[0, 1], ends=[2, 4], axes=[0, 2])
        self.assertEqual(plan.out_shape, (2, 4, 3))

    def test_non_positive_step_raises(self) -> None:
        with self.assertRaises(NodeAttributeError):
            resolve_slice((3, 4), starts=[0], ends=[3], steps=[0])
        with self.assertRaises(NodeAttributeError):
            resolve_slice((3, 4), starts=[3], ends=[0], steps=[-1])

    def test_mismatched_lengths_raise(self) -> None:
        with self.assertRaises(NodeAttributeError):
            resolve_slice((3, 4), starts=[0, 0], ends=[1])
        with self.assertRaises(NodeAttributeError):
            resolve_slice((3, 4), starts=[0], ends=[1], axes=[0, 1])

    def test_missing_bounds_raise(self) -> None:
        with self.assertRaises(NodeAttributeError):
            resolve_slice((3, 4), starts=None, ends=[1])

    def test_bad_axes_raise(self) -> None:
        with self.assertRaises(ShapeError):
            resolve_slice((3, 4), starts=[0], ends=[1], axes=[2])
        with self.assertRaises(ShapeError):
            resolve_slice((3, 4), starts=[0, 0], ends=[1, 1], axes=[1, -1])
        with self.assertRaises(ShapeError):
            resolve_slice((3,), starts=[0, 0], ends=[1, 1])


class TestSliceWalkBounds(unittest.TestCase):
    def _overrunning_plan(self) -> SlicePlan:
        # Runs start at column 2 but span four columns, so the last row overruns.
        shape = TensorShape(2, 4)
        return SlicePlan(
            in_shape=shape,
            out_shape=shape,
            starts=(0, 2),
            steps=(1, 1),
            lead=0,
            inner=1,
            inner_len=4,
            inner_step=1,
        )

    def test_gather_outside_operand_raises(self) -> None:
        src = np.arange(8, dtype=np.float32)
        with self.assertRaises(BoundsError):
            _walk(self._overrunning_plan(), src, np.zeros(8, dtype=np.float32), scatter=False)

    def test_scatter_outside_operand_raises(self) -> None:
        dst = np.zeros(8, dtype=np.float32)
        with self.assertRaises(BoundsError):
            _walk(self._overrunning_plan(), np.ones(8, dtype=np.float32), dst, scatter=True)


if __name__ == "__main__":
    unittest.main()
