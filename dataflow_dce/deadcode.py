"""
dataflow_dce.deadcode
=====================

Dead-code detection for a single method.

A statement is reported dead when either

1. **it is unreachable**: no feasible path from the entry leads to it once
   branches with constant conditions are pruned (see
   :mod:`dataflow_dce.reachability`).  Synthetic statements without a
   source line are never reported; or

2. **it is a useless assignment**: it is reachable, it defines a local
   variable that is not live after it, and evaluating its right-hand
   side can have no observable effect.

Right-hand sides that may trap or otherwise have an effect, and are
therefore never removed:

    ┌───────────────┬─────────────────────────────────────────────┐
    │ NewExp        │ allocation, may run a constructor / OOM     │
    │ CastExp       │ may fail with a class-cast error            │
    │ FieldAccess   │ may dereference null, may trigger class init│
    │ ArrayAccess   │ may dereference null or go out of bounds    │
    │ x / y, x % y  │ may divide by zero                          │
    │ InvokeExp     │ the callee may do anything                  │
    └───────────────┴─────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
from typing import Collection, List, Optional, Set

from dataflow_dce.ctrlflow_graph import CFG
from dataflow_dce.dataflow_engine import DataflowResult
from dataflow_dce.evaluator import is_trapping_division
from dataflow_dce.facts import CPFact, SetFact
from dataflow_dce.ir import (
    ArrayAccess,
    CastExp,
    DefinitionStmt,
    Exp,
    FieldAccess,
    InvokeExp,
    NewExp,
    Stmt,
    Var,
)
from dataflow_dce.reachability import compute_reachable

_log = logging.getLogger(__name__)

_EFFECTFUL_EXPS = (NewExp, CastExp, FieldAccess, ArrayAccess, InvokeExp)


def has_no_side_effect(rvalue: Exp) -> bool:
    """Whether evaluating *rvalue* can be dropped without observable change."""
    if isinstance(rvalue, _EFFECTFUL_EXPS):
        return False
    return not is_trapping_division(rvalue)


def is_dead_assignment(stmt: Stmt, live_out: Collection[Var]) -> bool:
    """Whether *stmt* assigns a variable that is dead afterwards, for no effect."""
    if not isinstance(stmt, DefinitionStmt):
        return False
    lhs = stmt.get_def()
    if not isinstance(lhs, Var):
        return False
    return lhs not in live_out and has_no_side_effect(stmt.rvalue)


def compute_dead_code(
    cfg: CFG,
    reachable: Set[Stmt],
    live_vars: DataflowResult[SetFact[Var]],
) -> List[Stmt]:
    """Return the dead statements of *cfg*, in ascending index order.

    Parameters
    ----------
    cfg : CFG
    reachable : set[Stmt]
        Result of :func:`~dataflow_dce.reachability.compute_reachable`.
    live_vars : DataflowResult[SetFact[Var]]
        Converged live-variable result; the OUT fact of a statement is the
        set of variables live right after it.
    """
    dead: List[Stmt] = []
    unreachable = useless = 0

    for stmt in cfg.ir.stmts:
        if stmt not in reachable:
            if stmt.line_number > 0:
                dead.append(stmt)
                unreachable += 1
        elif is_dead_assignment(stmt, live_vars.get_out_fact(stmt)):
            dead.append(stmt)
            useless += 1

    dead.sort(key=lambda s: s.index)
    _log.debug(
        "%s: %d unreachable, %d useless assignment(s)",
        cfg.ir.name, unreachable, useless,
    )
    return dead


def find_dead_code(
    cfg: CFG,
    constants: DataflowResult[CPFact],
    live_vars: DataflowResult[SetFact[Var]],
    reachable: Optional[Set[Stmt]] = None,
) -> List[Stmt]:
    """Compute reachability from *constants* if needed, then the dead set."""
    if reachable is None:
        reachable = compute_reachable(cfg, constants)
    return compute_dead_code(cfg, reachable, live_vars)
