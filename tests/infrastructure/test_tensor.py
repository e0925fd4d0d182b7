import unittest

import numpy as np

from src.keytensor.domain._errors import BoundsError, ShapeError
from src.keytensor.domain._shape import TensorShape
from src.keytensor.domain._tensor import ITensor
from src.keytensor.infrastructure.runtime import get_config, runtime_config
from src.keytensor.infrastructure.tensor import Tensor


class TestTensorConstruction(unittest.TestCase):
    def test_defaults_to_zeros_of_configured_dtype(self) -> None:
        t = Tensor((2, 3))
        self.assertEqual(t.shape, TensorShape(2, 3))
        self.assertEqual(t.dtype, get_config().np_dtype)
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 3)))

    def test_dtype_follows_runtime_config(self) -> None:
        with runtime_config(dtype="float64"):
            self.assertEqual(Tensor.zeros((2,)).dtype, np.float64)
        self.assertEqual(Tensor.zeros((2,), dtype=np.float64).dtype, np.float64)

    def test_data_is_copied_and_flattened(self) -> None:
        src = np.arange(6, dtype=np.float32).reshape(2, 3)
        t = Tensor((3, 2), src)
        src[0, 0] = 100.0
        self.assertEqual(t.data.ndim, 1)
        self.assertEqual(t[0], 0.0)
        np.testing.assert_array_equal(t.to_numpy(), np.arange(6).reshape(3, 2))

    def test_data_size_mismatch_raises(self) -> None:
        with self.assertRaises(ShapeError):
            Tensor((2, 3), [1.0, 2.0])

    def test_satisfies_protocol(self) -> None:
        self.assertIsInstance(Tensor((1,)), ITensor)

    def test_factories(self) -> None:
        np.testing.assert_array_equal(Tensor.ones((2, 2)).to_numpy(), np.ones((2, 2)))
        np.testing.assert_array_equal(Tensor.full((3,), 2.5).to_numpy(), [2.5, 2.5, 2.5])
        np.testing.assert_array_equal(
            Tensor.arange((2, 3)).to_numpy(), np.arange(6).reshape(2, 3)
        )

    def test_scalar_has_canonical_shape(self) -> None:
        s = Tensor.scalar(4.0)
        self.assertTrue(s.shape.is_scalar())
        self.assertEqual(s[0], 4.0)

    def test_from_numpy(self) -> None:
        arr = np.arange(12, dtype=np.float64).reshape(3, 4)
        t = Tensor.from_numpy(arr)
        self.assertEqual(t.shape, (3, 4))
        np.testing.assert_array_equal(t.to_numpy(), arr)

        zero_d = Tensor.from_numpy(np.array(7.0))
        self.assertEqual(zero_d.shape, (1,))


class TestTensorIndexing(unittest.TestCase):
    def setUp(self) -> None:
        self.t = Tensor((2, 3), [1, 2, 3, 4, 5, 6])

    def test_flat_index(self) -> None:
        self.assertEqual(self.t[4], 5.0)
        self.assertEqual(self.t[-1], 6.0)

    def test_multi_index(self) -> None:
        self.assertEqual(self.t[1, 2], 6.0)
        self.assertEqual(self.t[0, -1], 3.0)

    def test_setitem(self) -> None:
        self.t[1, 0] = 40.0
        self.t[0] = -1.0
        np.testing.assert_array_equal(self.t.to_numpy(), [[-1, 2, 3], [40, 5, 6]])

    def test_out_of_range_raises(self) -> None:
        with self.assertRaises(BoundsError):
            self.t[6]
        with self.assertRaises(BoundsError):
            self.t[2, 0]
        with self.assertRaises(BoundsError):
            self.t[0, 0, 0]
        with self.assertRaises(IndexError):
            self.t[-7]

    def test_rejects_slices(self) -> None:
        with self.assertRaises(TypeError):
            self.t[0:2]


class TestTensorUtilities(unittest.TestCase):
    def test_to_numpy_is_a_copy(self) -> None:
        t = Tensor.ones((2, 2))
        arr = t.to_numpy()
        arr[0, 0] = 9.0
        self.assertEqual(t[0, 0], 1.0)

    def test_copy_from_numpy(self) -> None:
        t = Tensor((2, 2))
        t.copy_from_numpy([[1, 2], [3, 4]])
        np.testing.assert_array_equal(t.to_numpy(), [[1, 2], [3, 4]])
        with self.assertRaises(ShapeError):
            t.copy_from_numpy([1, 2, 3])

    def test_clone_does_not_alias(self) -> None:
        t = Tensor.ones((3,))
        c = t.clone()
        c.fill(0.0)
        np.testing.assert_array_equal(t.to_numpy(), [1, 1, 1])

    def test_reshaped(self) -> None:
        t = Tensor.arange((2, 3))
        r = t.reshaped((3, 2))
        self.assertEqual(r.shape, (3, 2))
        np.testing.assert_array_equal(r.data, t.data)
        with self.assertRaises(ShapeError):
            t.reshaped((4, 2))

    def test_strides(self) -> None:
        self.assertEqual(Tensor((2, 3, 4)).strides, (12, 4, 1))


if __name__ == "__main__":
    unittest.main()
