"""
Operator registry: maps each `OpKind` to its single `Operator` instance.

Operator classes register themselves with `register_operator()` at import
time. Graph code resolves a node's operator with `get_operator(kind)`, which
accepts an `OpKind` member or its name/value (``"RELU"`` or ``"relu"``).
"""

from typing import Callable, Dict, Type, Union

from ...domain._operator import Operator, OpKind

_OPERATOR_REGISTRY: Dict[OpKind, Operator] = {}


def register_operator() -> Callable[[Type[Operator]], Type[Operator]]:
    """
    Decorator registering an `Operator` subclass under its `kind`.

    Raises
    ------
    ValueError
        If another operator is already registered for the same kind.
    """

    def deco(cls: Type[Operator]) -> Type[Operator]:
        kind = cls.kind
        if kind in _OPERATOR_REGISTRY:
            raise ValueError(f"operator for {kind.name} is already registered")
        _OPERATOR_REGISTRY[kind] = cls()
        return cls

    return deco


def _as_kind(kind: Union[OpKind, str]) -> OpKind:
    if isinstance(kind, OpKind):
        return kind
    key = str(kind)
    if key.upper() in OpKind.__members__:
        return OpKind[key.upper()]
    try:
        return OpKind(key.lower())
    except ValueError:
        raise KeyError(f"unknown operator kind {kind!r}") from None


def get_operator(kind: Union[OpKind, str]) -> Operator:
    """
    Return the registered operator for `kind`.

    Raises
    ------
    KeyError
        If `kind` is unknown or has no registered operator.
    """
    k = _as_kind(kind)
    try:
        return _OPERATOR_REGISTRY[k]
    except KeyError:
        raise KeyError(f"no operator registered for {k.name}") from None


def registered_kinds() -> tuple[OpKind, ...]:
    return tuple(_OPERATOR_REGISTRY)
