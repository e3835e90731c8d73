# tests/conftest.py
"""
Shared helpers for building small method bodies in tests.

The helpers keep test bodies close to the source they model::

    x = ivar("x")
    body = [assign(x, lit(1), line=3), ret(x, line=4)]
    ir = make_ir(body)
"""

from typing import Dict, Optional, Sequence

import pytest

from dataflow_dce.abstract_domains import Value
from dataflow_dce.analysis import AnalysisManager
from dataflow_dce.ir import (
    IR,
    ArithmeticExp,
    ArithmeticOp,
    ArrayType,
    AssignStmt,
    ClassType,
    ConditionExp,
    ConditionOp,
    Exp,
    Goto,
    If,
    IntLiteral,
    Nop,
    PrimitiveType,
    Return,
    Stmt,
    SwitchStmt,
    Var,
)


# ── variables & literals ────────────────────────────────────────

def ivar(name: str) -> Var:
    return Var(name, PrimitiveType.INT)


def var_of(name: str, type_) -> Var:
    return Var(name, type_)


def array_var(name: str) -> Var:
    return Var(name, ArrayType(PrimitiveType.INT))


def object_var(name: str, cls: str = "java.lang.Object") -> Var:
    return Var(name, ClassType(cls))


def lit(n: int) -> IntLiteral:
    return IntLiteral(n)


# ── expressions ─────────────────────────────────────────────────

def arith(op: ArithmeticOp, a: Exp, b: Exp) -> ArithmeticExp:
    return ArithmeticExp(op, a, b)


def add(a: Exp, b: Exp) -> ArithmeticExp:
    return ArithmeticExp(ArithmeticOp.ADD, a, b)


def cond(op: ConditionOp, a: Exp, b: Exp) -> ConditionExp:
    return ConditionExp(op, a, b)


# ── statements ──────────────────────────────────────────────────

def assign(lhs, rhs: Exp, line: int = 1) -> AssignStmt:
    return AssignStmt(lhs, rhs, line)


def ret(value: Optional[Exp] = None, line: int = 1) -> Return:
    return Return(value, line)


def if_goto(condition: ConditionExp, target: Optional[Stmt] = None, line: int = 1) -> If:
    return If(condition, target, line)


def goto(target: Optional[Stmt] = None, line: int = 1) -> Goto:
    return Goto(target, line)


def switch(var: Var, cases, default: Optional[Stmt] = None, line: int = 1) -> SwitchStmt:
    return SwitchStmt(var, cases, default, line)


def nop(line: int = -1) -> Nop:
    return Nop(line)


def make_ir(stmts: Sequence[Stmt], params: Sequence[Var] = (),
            name: str = "m", file: str = "Test.java") -> IR:
    return IR(name, params, stmts, file)


def run_pipeline(ir: IR) -> IR:
    """Run cfg → constprop → livevar → deadcode with default options."""
    return AnalysisManager().run(ir)


def const(n: int) -> Value:
    return Value.make_constant(n)


NAC = Value.get_nac()
UNDEF = Value.get_undef()


# ── fixtures ────────────────────────────────────────────────────

@pytest.fixture
def straight_line() -> Dict[str, object]:
    """
    ::

        0: x = 1          (L1)
        1: y = x + 2      (L2)
        2: return y       (L3)
    """
    x, y = ivar("x"), ivar("y")
    s0 = assign(x, lit(1), line=1)
    s1 = assign(y, add(x, lit(2)), line=2)
    s2 = ret(y, line=3)
    return {"ir": make_ir([s0, s1, s2]), "x": x, "y": y, "stmts": [s0, s1, s2]}


@pytest.fixture
def diamond() -> Dict[str, object]:
    """
    ``if (p > 0) x = 1 else x = 2; return x`` with ``p`` a parameter::

        0: if (p > 0) goto 3   (L1)
        1: x = 2               (L2)
        2: goto 4              (L2)
        3: x = 1               (L3)
        4: return x            (L4)
    """
    p, x = ivar("p"), ivar("x")
    then_ = assign(x, lit(1), line=3)
    join = ret(x, line=4)
    s0 = if_goto(cond(ConditionOp.GT, p, lit(0)), then_, line=1)
    s1 = assign(x, lit(2), line=2)
    s2 = goto(join, line=2)
    stmts = [s0, s1, s2, then_, join]
    return {"ir": make_ir(stmts, params=[p]), "p": p, "x": x, "stmts": stmts}
