# tests/test_evaluator.py
"""
Tests for abstract expression evaluation and 32-bit constant folding.
"""

import pytest

from dataflow_dce.evaluator import (
    can_hold_int,
    evaluate,
    fold_constants,
    is_trapping_division,
    to_int32,
)
from dataflow_dce.facts import CPFact
from dataflow_dce.ir import (
    ArithmeticExp,
    ArithmeticOp,
    ArrayAccess,
    BitwiseExp,
    BitwiseOp,
    CastExp,
    ClassType,
    ConditionExp,
    ConditionOp,
    FieldAccess,
    InvokeExp,
    NewExp,
    PrimitiveType,
    ShiftExp,
    ShiftOp,
    Var,
)
from tests.conftest import NAC, UNDEF, array_var, const, ivar, lit

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def fold(exp_cls, op, a, b):
    return evaluate(exp_cls(op, lit(a), lit(b)), CPFact())


class TestLeaves:

    def test_literal(self):
        assert evaluate(lit(5), CPFact()) == const(5)

    def test_out_of_range_literal_wraps(self):
        assert evaluate(lit(2 ** 31), CPFact()) == const(INT_MIN)
        assert evaluate(lit(-(2 ** 31) - 1), CPFact()) == const(INT_MAX)

    def test_variable_reads_fact(self):
        x = ivar("x")
        assert evaluate(x, CPFact({x: const(9)})) == const(9)
        assert evaluate(x, CPFact()) is UNDEF

    @pytest.mark.parametrize("exp", [
        NewExp(ClassType("Foo")),
        CastExp(lit(1), PrimitiveType.INT),
        FieldAccess("f", declaring_class="Foo"),
        ArrayAccess(Var("a", ClassType("int[]")), lit(0)),
        InvokeExp("foo"),
    ])
    def test_unmodelled_expressions_are_nac(self, exp):
        assert evaluate(exp, CPFact()) is NAC


class TestArithmetic:

    def test_add(self):
        assert fold(ArithmeticExp, ArithmeticOp.ADD, 2, 3) == const(5)

    def test_add_overflow_wraps(self):
        assert fold(ArithmeticExp, ArithmeticOp.ADD, INT_MAX, 1) == const(INT_MIN)

    def test_sub_underflow_wraps(self):
        assert fold(ArithmeticExp, ArithmeticOp.SUB, INT_MIN, 1) == const(INT_MAX)

    def test_mul_wraps(self):
        assert fold(ArithmeticExp, ArithmeticOp.MUL, 65536, 65536) == const(0)

    @pytest.mark.parametrize("a,b,q", [
        (7, 2, 3), (-7, 2, -3), (7, -2, -3), (-7, -2, 3),
    ])
    def test_div_truncates_toward_zero(self, a, b, q):
        assert fold(ArithmeticExp, ArithmeticOp.DIV, a, b) == const(q)

    @pytest.mark.parametrize("a,b,r", [
        (7, 2, 1), (-7, 2, -1), (7, -2, 1), (-7, -2, -1),
    ])
    def test_rem_takes_sign_of_dividend(self, a, b, r):
        assert fold(ArithmeticExp, ArithmeticOp.REM, a, b) == const(r)

    def test_min_div_minus_one_wraps(self):
        assert fold(ArithmeticExp, ArithmeticOp.DIV, INT_MIN, -1) == const(INT_MIN)


class TestBitwiseAndShift:

    @pytest.mark.parametrize("op,expected", [
        (BitwiseOp.AND, 2), (BitwiseOp.OR, 7), (BitwiseOp.XOR, 5),
    ])
    def test_bitwise(self, op, expected):
        assert fold(BitwiseExp, op, 6, 3) == const(expected)

    def test_shl_masks_amount(self):
        assert fold(ShiftExp, ShiftOp.SHL, 1, 33) == const(2)

    def test_shl_into_sign_bit(self):
        assert fold(ShiftExp, ShiftOp.SHL, 1, 31) == const(INT_MIN)

    def test_shr_is_arithmetic(self):
        assert fold(ShiftExp, ShiftOp.SHR, -8, 1) == const(-4)

    def test_ushr_zero_fills(self):
        assert fold(ShiftExp, ShiftOp.USHR, -1, 28) == const(15)

    def test_ushr_by_zero_keeps_value(self):
        assert fold(ShiftExp, ShiftOp.USHR, -1, 0) == const(-1)

    @pytest.mark.parametrize("op, a, b, expected", [
        (ShiftOp.SHR, -8, 32, -8),
        (ShiftOp.SHR, 64, 33, 32),
        (ShiftOp.SHR, INT_MIN, -1, -1),
        (ShiftOp.USHR, -1, -1, 1),
        (ShiftOp.USHR, -1, 32, -1),
        (ShiftOp.USHR, INT_MIN, 63, 1),
        (ShiftOp.SHL, 1, -1, INT_MIN),
    ])
    def test_shift_amount_is_masked(self, op, a, b, expected):
        assert fold(ShiftExp, op, a, b) == const(expected)


class TestConditions:

    @pytest.mark.parametrize("op,expected", [
        (ConditionOp.EQ, 0), (ConditionOp.NE, 1),
        (ConditionOp.LT, 1), (ConditionOp.LE, 1),
        (ConditionOp.GT, 0), (ConditionOp.GE, 0),
    ])
    def test_relations_fold_to_zero_or_one(self, op, expected):
        assert fold(ConditionExp, op, 3, 5) == const(expected)


class TestAbstractOperands:

    def test_nac_operand_gives_nac(self):
        x, y = ivar("x"), ivar("y")
        fact = CPFact({x: NAC, y: const(3)})
        assert evaluate(ArithmeticExp(ArithmeticOp.ADD, x, y), fact) is NAC

    def test_undef_operand_gives_undef(self):
        x, y = ivar("x"), ivar("y")
        fact = CPFact({y: const(3)})
        assert evaluate(ArithmeticExp(ArithmeticOp.ADD, x, y), fact) is UNDEF

    def test_nac_wins_over_undef(self):
        x, y = ivar("x"), ivar("y")
        fact = CPFact({x: NAC})
        assert evaluate(ArithmeticExp(ArithmeticOp.MUL, x, y), fact) is NAC

    @pytest.mark.parametrize("op", [ArithmeticOp.DIV, ArithmeticOp.REM])
    def test_division_by_known_zero_is_undef_even_for_nac(self, op):
        x = ivar("x")
        fact = CPFact({x: NAC})
        assert evaluate(ArithmeticExp(op, x, lit(0)), fact) is UNDEF

    def test_division_by_zero_variable(self):
        x, z = ivar("x"), ivar("z")
        fact = CPFact({x: const(10), z: const(0)})
        assert evaluate(ArithmeticExp(ArithmeticOp.DIV, x, z), fact) is UNDEF

    def test_division_by_nac_is_nac(self):
        x, z = ivar("x"), ivar("z")
        fact = CPFact({x: const(10), z: NAC})
        assert evaluate(ArithmeticExp(ArithmeticOp.DIV, x, z), fact) is NAC


class TestHelpers:

    @pytest.mark.parametrize("t", [
        PrimitiveType.BYTE, PrimitiveType.SHORT, PrimitiveType.INT,
        PrimitiveType.CHAR, PrimitiveType.BOOLEAN,
    ])
    def test_int_like_types(self, t):
        assert can_hold_int(Var("v", t))

    @pytest.mark.parametrize("t", [
        PrimitiveType.LONG, PrimitiveType.FLOAT, PrimitiveType.DOUBLE,
        ClassType("java.lang.String"),
    ])
    def test_other_types(self, t):
        assert not can_hold_int(Var("v", t))

    def test_array_is_not_int_like(self):
        assert not can_hold_int(array_var("a"))

    def test_trapping_division(self):
        x = ivar("x")
        assert is_trapping_division(ArithmeticExp(ArithmeticOp.DIV, x, x))
        assert is_trapping_division(ArithmeticExp(ArithmeticOp.REM, x, x))
        assert not is_trapping_division(ArithmeticExp(ArithmeticOp.ADD, x, x))
        assert not is_trapping_division(BitwiseExp(BitwiseOp.AND, x, x))

    def test_fold_constants_division_by_zero(self):
        exp = ArithmeticExp(ArithmeticOp.REM, lit(1), lit(0))
        assert fold_constants(exp, 1, 0) is None

    @pytest.mark.parametrize("n,wrapped", [
        (0, 0), (2 ** 31, INT_MIN), (2 ** 32, 0), (-(2 ** 31) - 1, INT_MAX),
    ])
    def test_to_int32(self, n, wrapped):
        assert to_int32(n) == wrapped
