import unittest

from src.keytensor.domain._operator import Operator, OpKind
from src.keytensor.infrastructure.operators import (
    get_operator,
    register_operator,
    registered_kinds,
)


class TestOperatorRegistry(unittest.TestCase):
    def test_every_kind_has_an_operator(self) -> None:
        self.assertEqual(set(registered_kinds()), set(OpKind))
        for kind in OpKind:
            with self.subTest(kind=kind):
                op = get_operator(kind)
                self.assertIsInstance(op, Operator)
                self.assertIs(op.kind, kind)

    def test_lookup_by_name_or_value(self) -> None:
        op = get_operator(OpKind.LEAKY_RELU)
        self.assertIs(get_operator("LEAKY_RELU"), op)
        self.assertIs(get_operator("leaky_relu"), op)

    def test_unknown_kind_raises(self) -> None:
        with self.assertRaises(KeyError):
            get_operator("softmax")

    def test_duplicate_registration_raises(self) -> None:
        relu = get_operator(OpKind.RELU)

        with self.assertRaises(ValueError):

            @register_operator()
            class AnotherReLU(type(relu)):
                pass

        self.assertIs(get_operator(OpKind.RELU), relu)


if __name__ == "__main__":
    unittest.main()
