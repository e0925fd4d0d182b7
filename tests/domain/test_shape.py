import unittest

import numpy as np

from src.keytensor.domain._errors import BroadcastError, KeyTensorError, ShapeError
from src.keytensor.domain._shape import (
    MAX_RANK,
    TensorShape,
    broadcast_calculate_strides,
    broadcast_shapes,
    get_real_index,
    normalize_axis,
)


class TestTensorShape(unittest.TestCase):
    def test_row_major_strides(self) -> None:
        self.assertEqual(TensorShape(3, 4).strides, (4, 1))
        self.assertEqual(TensorShape((2, 3, 4)).strides, (12, 4, 1))
        self.assertEqual(TensorShape(7).strides, (1,))

    def test_varargs_and_sequence_forms_agree(self) -> None:
        self.assertEqual(TensorShape(2, 3), TensorShape((2, 3)))
        self.assertEqual(TensorShape(2, 3), TensorShape([2, 3]))

    def test_broadcast_strides_zero_unit_axes(self) -> None:
        self.assertEqual(TensorShape(3, 1, 4).broadcast_strides(), (4, 0, 1))

    def test_num_elements(self) -> None:
        self.assertEqual(TensorShape(2, 3, 4).num_elements(), 24)
        self.assertEqual(TensorShape(2, 0, 4).num_elements(), 0)
        self.assertEqual(TensorShape().num_elements(), 1)

    def test_scalar_shape(self) -> None:
        s = TensorShape.scalar()
        self.assertEqual(s.dims, (1,))
        self.assertTrue(s.is_scalar())
        self.assertFalse(TensorShape(1, 1).is_scalar())

    def test_equality_and_hash(self) -> None:
        self.assertEqual(TensorShape(2, 3), (2, 3))
        self.assertNotEqual(TensorShape(2, 3), TensorShape(3, 2))
        self.assertEqual(hash(TensorShape(2, 3)), hash(TensorShape((2, 3))))
        self.assertEqual(len({TensorShape(2, 3), TensorShape(2, 3)}), 1)

    def test_sequence_protocol(self) -> None:
        s = TensorShape(5, 6, 7)
        self.assertEqual(len(s), 3)
        self.assertEqual(list(s), [5, 6, 7])
        self.assertEqual(s[-1], 7)
        self.assertEqual(s.rank, 3)

    def test_of_returns_same_instance(self) -> None:
        s = TensorShape(2)
        self.assertIs(TensorShape.of(s), s)
        self.assertEqual(TensorShape.of((4, 5)), TensorShape(4, 5))

    def test_rank_above_max_raises(self) -> None:
        TensorShape((1,) * MAX_RANK)
        with self.assertRaises(ShapeError):
            TensorShape((1,) * (MAX_RANK + 1))

    def test_invalid_dims_raise(self) -> None:
        with self.assertRaises(ShapeError):
            TensorShape(2, -1)
        with self.assertRaises(ShapeError):
            TensorShape((2, 1.5))

    def test_numpy_integer_dims_accepted(self) -> None:
        s = TensorShape(np.int64(3), np.int32(2))
        self.assertEqual(s.dims, (3, 2))


class TestNormalizeAxis(unittest.TestCase):
    def test_negative_axis(self) -> None:
        self.assertEqual(normalize_axis(-1, 3), 2)
        self.assertEqual(normalize_axis(0, 3), 0)

    def test_out_of_range(self) -> None:
        with self.assertRaises(ShapeError):
            normalize_axis(3, 3)
        with self.assertRaises(ShapeError):
            normalize_axis(-4, 3)


class TestBroadcastShapes(unittest.TestCase):
    def test_right_aligned(self) -> None:
        self.assertEqual(broadcast_shapes((3, 1, 5), (4, 5)), (3, 4, 5))
        self.assertEqual(broadcast_shapes((4, 5), (3, 1, 5)), (3, 4, 5))

    def test_unit_dims_expand(self) -> None:
        self.assertEqual(broadcast_shapes((2, 1), (1, 3)), (2, 3))

    def test_zero_against_one(self) -> None:
        self.assertEqual(broadcast_shapes((0,), (1,)), (0,))

    def test_matches_numpy(self) -> None:
        cases = [((5, 1, 4), (3, 1)), ((1,), (2, 3)), ((2, 3, 4), (2, 3, 4))]
        for a, b in cases:
            with self.subTest(a=a, b=b):
                self.assertEqual(broadcast_shapes(a, b).dims, np.broadcast_shapes(a, b))

    def test_multiple_shapes_fold_left(self) -> None:
        self.assertEqual(broadcast_shapes((3,), (2, 1), (4, 1, 1)), (4, 2, 3))

    def test_incompatible_raises(self) -> None:
        with self.assertRaises(BroadcastError) as cm:
            broadcast_shapes((2, 3), (3, 2))
        err = cm.exception
        self.assertIsInstance(err, ShapeError)
        self.assertIsInstance(err, ValueError)
        self.assertIsInstance(err, KeyTensorError)
        self.assertEqual(err.lhs, (2, 3))
        self.assertEqual(err.rhs, (3, 2))
        self.assertIn("(2, 3)", str(err))

    def test_no_shapes_raises(self) -> None:
        with self.assertRaises(ShapeError):
            broadcast_shapes()


class TestBroadcastIndexing(unittest.TestCase):
    def test_calculate_strides(self) -> None:
        self.assertEqual(broadcast_calculate_strides((4, 1), (2, 4, 3)), (0, 1, 0))
        self.assertEqual(broadcast_calculate_strides((2, 3), (2, 3)), (3, 1))
        self.assertEqual(broadcast_calculate_strides((1,), (2, 3)), (0, 0))

    def test_calculate_strides_incompatible(self) -> None:
        with self.assertRaises(BroadcastError):
            broadcast_calculate_strides((3,), (2, 4))
        with self.assertRaises(BroadcastError):
            broadcast_calculate_strides((2, 2, 3), (2, 3))

    def test_real_index_scalar(self) -> None:
        strides = broadcast_calculate_strides((4, 1), (2, 4, 3))
        # flat 7 in (2, 4, 3) is (0, 2, 1); the operand reads row 2.
        self.assertEqual(get_real_index(7, strides, (2, 4, 3)), 2)

    def test_real_index_matches_numpy_broadcast(self) -> None:
        src_shape, target = (3, 1), (2, 3, 4)
        operand = np.arange(3).reshape(src_shape)
        expected = np.broadcast_to(operand, target).reshape(-1)

        strides = broadcast_calculate_strides(src_shape, target)
        idx = get_real_index(np.arange(24), strides, TensorShape(target))
        np.testing.assert_array_equal(operand.reshape(-1)[idx], expected)

    def test_real_index_identity_for_same_shape(self) -> None:
        shape = TensorShape(2, 3, 4)
        idx = get_real_index(np.arange(24), shape.strides, shape)
        np.testing.assert_array_equal(idx, np.arange(24))


if __name__ == "__main__":
    unittest.main()
