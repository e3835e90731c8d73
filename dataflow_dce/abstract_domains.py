"""
dataflow_dce/abstract_domains.py
════════════════════════════════

The constant-propagation value lattice.

    ┌───────────────────────────────────────────────────────────┐
    │                          NAC  (⊤)                          │
    │            ┌──────┬──────┬──┴───┬──────┬──────┐            │
    │   …   Const(-2) Const(-1) Const(0) Const(1) Const(2)   …   │
    │            └──────┴──────┴──┬───┴──────┴──────┘            │
    │                         UNDEF  (⊥)                          │
    └───────────────────────────────────────────────────────────┘

``UNDEF ⊑ Const(c) ⊑ NAC`` for every ``c``; distinct constants are
incomparable.  The lattice has height 3, so any monotone iteration over
finitely many variables terminates.

Values are immutable and compared structurally: ``Value.make_constant(3)
== Value.make_constant(3)``.  ``UNDEF`` and ``NAC`` are singletons.

Examples
--------
>>> a = Value.make_constant(7)
>>> b = Value.make_constant(3)
>>> meet_value(a, b)
Value(NAC)
>>> meet_value(Value.get_undef(), a)
Value(7)
"""

from __future__ import annotations

import enum
from typing import Optional

from dataflow_dce.errors import ErrorCode, LatticeError


class ValueKind(enum.Enum):
    UNDEF = "UNDEF"
    CONSTANT = "CONSTANT"
    NAC = "NAC"


class Value:
    """An element of the constant-propagation lattice."""

    __slots__ = ("_kind", "_constant")

    def __init__(self, kind: ValueKind, constant: Optional[int] = None) -> None:
        object.__setattr__(self, "_kind", kind)
        object.__setattr__(self, "_constant", constant)

    def __setattr__(self, name, value):
        raise AttributeError("Value is immutable")

    # ----- factories ----------------------------------------------------

    @staticmethod
    def get_nac() -> Value:
        return _NAC

    @staticmethod
    def get_undef() -> Value:
        return _UNDEF

    @staticmethod
    def make_constant(v: int) -> Value:
        return Value(ValueKind.CONSTANT, int(v))

    # ----- queries ------------------------------------------------------

    @property
    def kind(self) -> ValueKind:
        return self._kind

    def is_nac(self) -> bool:
        return self._kind is ValueKind.NAC

    def is_undef(self) -> bool:
        return self._kind is ValueKind.UNDEF

    def is_constant(self) -> bool:
        return self._kind is ValueKind.CONSTANT

    def get_constant(self) -> int:
        """The integer this value stands for.

        Raises
        ------
        LatticeError
            If this value is UNDEF or NAC.
        """
        if self._kind is not ValueKind.CONSTANT:
            raise LatticeError(
                f"{self} is not a constant", ErrorCode.NOT_A_CONSTANT
            )
        return self._constant  # type: ignore[return-value]

    # ----- order --------------------------------------------------------

    def leq(self, other: Value) -> bool:
        """``self ⊑ other``."""
        if self.is_undef() or other.is_nac():
            return True
        if self.is_nac() or other.is_undef():
            return False
        return self._constant == other._constant

    # ----- dunder -------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self._kind is other._kind and self._constant == other._constant

    def __hash__(self) -> int:
        return hash((self._kind, self._constant))

    def __str__(self) -> str:
        if self._kind is ValueKind.CONSTANT:
            return str(self._constant)
        return self._kind.value

    def __repr__(self) -> str:
        return f"Value({self})"


_UNDEF = Value(ValueKind.UNDEF)
_NAC = Value(ValueKind.NAC)


def meet_value(v1: Value, v2: Value) -> Value:
    """Meet of two values, used where control-flow paths merge.

    - NAC absorbs everything;
    - UNDEF is the identity;
    - equal constants stay;
    - different constants give NAC.
    """
    if v1.is_nac() or v2.is_nac():
        return Value.get_nac()
    if v1.is_undef():
        return v2
    if v2.is_undef():
        return v1
    if v1 == v2:
        return v1
    return Value.get_nac()
