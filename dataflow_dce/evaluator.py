"""
dataflow_dce/evaluator.py
═════════════════════════

Abstract evaluation of IR expressions over a :class:`CPFact`.

``evaluate(exp, in_fact)`` is a pure function mapping an expression and
the constant-propagation fact holding *before* it to a :class:`Value`:

  ┌───────────────────────┬────────────────────────────────────────────┐
  │ expression            │ result                                     │
  ├───────────────────────┼────────────────────────────────────────────┤
  │ IntLiteral(n)         │ Const(n), wrapped to 32 bits               │
  │ Var x                 │ in_fact[x]  (UNDEF when unbound)           │
  │ a / 0, a % 0          │ UNDEF, whatever a is (the path traps)      │
  │ a ⊕ b, NAC operand    │ NAC                                        │
  │ Const ⊕ Const         │ folded with 32-bit two's-complement rules  │
  │ a ⊕ b, UNDEF operand  │ UNDEF                                      │
  │ new / cast / field /  │ NAC                                        │
  │ array / invoke        │                                            │
  └───────────────────────┴────────────────────────────────────────────┘

Relational operators fold to ``Const(1)`` / ``Const(0)``.  Every operator
family has a folding table that must name every member of its enum; this
is verified when the module is imported.
"""

from __future__ import annotations

import operator as op
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Type

from dataflow_dce.abstract_domains import Value
from dataflow_dce.facts import CPFact
from dataflow_dce.ir import (
    ArithmeticExp,
    ArithmeticOp,
    BinaryExp,
    BitwiseExp,
    BitwiseOp,
    ConditionExp,
    ConditionOp,
    Exp,
    IntLiteral,
    PrimitiveType,
    ShiftExp,
    ShiftOp,
    Var,
)

INT_LIKE_TYPES = frozenset({
    PrimitiveType.BYTE,
    PrimitiveType.SHORT,
    PrimitiveType.INT,
    PrimitiveType.CHAR,
    PrimitiveType.BOOLEAN,
})


def can_hold_int(var: Var) -> bool:
    """True if *var*'s declared type can hold an int value."""
    return isinstance(var.type, PrimitiveType) and var.type in INT_LIKE_TYPES


# ═══════════════════════════════════════════════════════════════════════════
#  32-BIT INTEGER SEMANTICS
# ═══════════════════════════════════════════════════════════════════════════

_MASK32 = 0xFFFFFFFF


def to_int32(n: int) -> int:
    """Wrap an arbitrary Python int to a signed 32-bit value."""
    n &= _MASK32
    return n - 0x100000000 if n & 0x80000000 else n


def _div32(a: int, b: int) -> int:
    # truncates toward zero; MIN_VALUE / -1 wraps to MIN_VALUE
    q = abs(a) // abs(b)
    return to_int32(q if (a < 0) == (b < 0) else -q)


def _rem32(a: int, b: int) -> int:
    # result takes the sign of the dividend
    r = abs(a) % abs(b)
    return to_int32(r if a >= 0 else -r)


def _shl32(a: int, b: int) -> int:
    return to_int32(a << (b & 31))


def _shr32(a: int, b: int) -> int:
    return to_int32(a) >> (b & 31)


def _ushr32(a: int, b: int) -> int:
    return to_int32((a & _MASK32) >> (b & 31))


def _wrapping(f: Callable[[int, int], int]) -> Callable[[int, int], int]:
    return lambda a, b: to_int32(f(a, b))


def _relation(f: Callable[[int, int], bool]) -> Callable[[int, int], int]:
    return lambda a, b: 1 if f(a, b) else 0


ARITHMETIC_FOLD: Dict[ArithmeticOp, Callable[[int, int], int]] = {
    ArithmeticOp.ADD: _wrapping(op.add),
    ArithmeticOp.SUB: _wrapping(op.sub),
    ArithmeticOp.MUL: _wrapping(op.mul),
    ArithmeticOp.DIV: _div32,
    ArithmeticOp.REM: _rem32,
}

BITWISE_FOLD: Dict[BitwiseOp, Callable[[int, int], int]] = {
    BitwiseOp.AND: _wrapping(op.and_),
    BitwiseOp.OR: _wrapping(op.or_),
    BitwiseOp.XOR: _wrapping(op.xor),
}

SHIFT_FOLD: Dict[ShiftOp, Callable[[int, int], int]] = {
    ShiftOp.SHL: _shl32,
    ShiftOp.SHR: _shr32,
    ShiftOp.USHR: _ushr32,
}

CONDITION_FOLD: Dict[ConditionOp, Callable[[int, int], int]] = {
    ConditionOp.EQ: _relation(op.eq),
    ConditionOp.NE: _relation(op.ne),
    ConditionOp.LT: _relation(op.lt),
    ConditionOp.LE: _relation(op.le),
    ConditionOp.GT: _relation(op.gt),
    ConditionOp.GE: _relation(op.ge),
}

FOLD_TABLES: Dict[Type[BinaryExp], Mapping[Enum, Callable[[int, int], int]]] = {
    ArithmeticExp: ARITHMETIC_FOLD,
    BitwiseExp: BITWISE_FOLD,
    ShiftExp: SHIFT_FOLD,
    ConditionExp: CONDITION_FOLD,
}


def _check_exhaustive() -> None:
    families = {
        ArithmeticExp: ArithmeticOp,
        BitwiseExp: BitwiseOp,
        ShiftExp: ShiftOp,
        ConditionExp: ConditionOp,
    }
    for exp_cls, op_enum in families.items():
        missing = set(op_enum) - set(FOLD_TABLES[exp_cls])
        if missing:
            names = ", ".join(sorted(m.name for m in missing))
            raise TypeError(
                f"no folding rule for {op_enum.__name__} member(s): {names}"
            )


_check_exhaustive()


# ═══════════════════════════════════════════════════════════════════════════
#  EVALUATION
# ═══════════════════════════════════════════════════════════════════════════

def is_trapping_division(exp: Exp) -> bool:
    """True for ``/`` and ``%``, the operators that may raise at runtime."""
    return isinstance(exp, ArithmeticExp) and exp.op in (
        ArithmeticOp.DIV, ArithmeticOp.REM,
    )


def fold_constants(exp: BinaryExp, left: int, right: int) -> Optional[int]:
    """Fold ``left exp.op right``; ``None`` for division by zero."""
    if is_trapping_division(exp) and right == 0:
        return None
    table = FOLD_TABLES.get(type(exp))
    if table is None:
        raise TypeError(f"unknown binary expression kind {type(exp).__name__}")
    return table[exp.op](to_int32(left), to_int32(right))


def evaluate(exp: Exp, in_fact: CPFact) -> Value:
    """Evaluate *exp* to a lattice value under *in_fact*.

    Parameters
    ----------
    exp : Exp
        The expression (typically a statement's right-hand side, an ``If``
        condition or a switch variable).
    in_fact : CPFact
        The constant-propagation fact holding before the expression.

    Returns
    -------
    Value
    """
    if isinstance(exp, IntLiteral):
        return Value.make_constant(to_int32(exp.value))
    if isinstance(exp, Var):
        return in_fact.get(exp)
    if isinstance(exp, BinaryExp) and type(exp) in FOLD_TABLES:
        left = evaluate(exp.operand1, in_fact)
        right = evaluate(exp.operand2, in_fact)

        if (is_trapping_division(exp)
                and right.is_constant() and right.get_constant() == 0):
            return Value.get_undef()
        if left.is_nac() or right.is_nac():
            return Value.get_nac()
        if left.is_constant() and right.is_constant():
            folded = fold_constants(exp, left.get_constant(), right.get_constant())
            if folded is None:
                return Value.get_undef()
            return Value.make_constant(folded)
        return Value.get_undef()
    # allocation, cast, field/array access, invocation: not modelled
    return Value.get_nac()
