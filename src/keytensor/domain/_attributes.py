"""
Immutable per-node attribute tables.

An `AttributeVector` holds the named static parameters of a graph node, such
as the clamp bounds of CLIP or the ``starts/ends/steps/axes`` of SLICE. It is
attached to a node when the graph is built and is read-only afterwards.

Values are normalized on construction:
- scalars become `float` (booleans and integers are kept as `int`),
- integer sequences become ``tuple[int, ...]``.

Operators read attributes through the typed accessors (`get_float`,
`get_int`, `get_int_tuple`, `require`) so that a malformed value is reported
as a `NodeAttributeError` naming the attribute.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Optional, Union

import numpy as np
from typing_extensions import TypeAlias

from ._errors import NodeAttributeError

AttributeValue: TypeAlias = Union[int, float, tuple[int, ...]]

_MISSING = object()


def _normalize_value(name: str, value: Any) -> AttributeValue:
    if isinstance(value, (bool, int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return float(value)
    if isinstance(value, (list, tuple, np.ndarray)):
        items = []
        for v in value:
            if isinstance(v, bool) or not isinstance(v, (int, np.integer)):
                raise NodeAttributeError(
                    name, f"sequence values must be integers, got {v!r}"
                )
            items.append(int(v))
        return tuple(items)
    raise NodeAttributeError(name, f"unsupported attribute value {value!r}")


class AttributeVector(Mapping[str, AttributeValue]):
    """
    Immutable mapping from attribute name to a scalar or integer tuple.

    Parameters
    ----------
    values : Optional[Mapping[str, Any]], optional
        Initial attribute values.
    **kwargs : Any
        Additional attribute values; override entries in `values`.

    Notes
    -----
    - `None` values are dropped, so ``AttributeVector(min=None)`` is the same
      as an empty vector. This lets callers forward optional parameters
      without filtering them first.
    - Equality and hashing are structural.
    """

    __slots__ = ("_items",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        merged = dict(values or {})
        merged.update(kwargs)
        self._items: dict[str, AttributeValue] = {
            str(k): _normalize_value(str(k), v)
            for k, v in merged.items()
            if v is not None
        }

    def __getitem__(self, name: str) -> AttributeValue:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._items.items())))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AttributeVector):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._items == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._items.items())
        return f"AttributeVector({body})"

    def require(self, name: str) -> AttributeValue:
        """
        Return a required attribute.

        Raises
        ------
        NodeAttributeError
            If the attribute is missing.
        """
        value = self._items.get(name, _MISSING)
        if value is _MISSING:
            raise NodeAttributeError(name, "required attribute is missing")
        return value  # type: ignore[return-value]

    def get_float(self, name: str, default: float) -> float:
        """
        Return a scalar attribute as float, or `default` when absent.

        Raises
        ------
        NodeAttributeError
            If the attribute holds a sequence.
        """
        value = self._items.get(name, _MISSING)
        if value is _MISSING:
            return float(default)
        if isinstance(value, tuple):
            raise NodeAttributeError(name, f"expected a scalar, got {value!r}")
        return float(value)

    def get_int(self, name: str, default: Optional[int] = None) -> Optional[int]:
        """
        Return an integer attribute, or `default` when absent.

        Raises
        ------
        NodeAttributeError
            If the attribute is not an integer.
        """
        value = self._items.get(name, _MISSING)
        if value is _MISSING:
            return default
        if not isinstance(value, int):
            raise NodeAttributeError(name, f"expected an integer, got {value!r}")
        return value

    def get_int_tuple(
        self, name: str, default: Optional[tuple[int, ...]] = None
    ) -> Optional[tuple[int, ...]]:
        """
        Return an integer-shape attribute, or `default` when absent.

        A single integer is promoted to a 1-tuple.

        Raises
        ------
        NodeAttributeError
            If the attribute holds a float.
        """
        value = self._items.get(name, _MISSING)
        if value is _MISSING:
            return default
        if isinstance(value, int):
            return (value,)
        if not isinstance(value, tuple):
            raise NodeAttributeError(name, f"expected integers, got {value!r}")
        return value
