"""
dataflow_dce.reachability
=========================

Statements reachable from the method entry under abstract execution.

Plain structural reachability follows every CFG edge.  Here, branches are
pruned with the constant-propagation IN fact of the branching statement:

* ``If`` whose condition evaluates to ``Const(1)`` follows only its
  IF_TRUE edge, ``Const(0)`` only its IF_FALSE edge;
* ``SwitchStmt`` whose variable evaluates to ``Const(c)`` follows only
  the SWITCH_CASE edge(s) for ``c``, and its SWITCH_DEFAULT edge only if
  no case equals ``c``;
* every other statement, and any branch whose condition is not a
  constant, follows all of its out-edges.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Set

from dataflow_dce.abstract_domains import Value
from dataflow_dce.ctrlflow_graph import CFG, CFGEdge, EdgeKind
from dataflow_dce.dataflow_engine import DataflowResult
from dataflow_dce.evaluator import evaluate, to_int32
from dataflow_dce.facts import CPFact
from dataflow_dce.ir import If, Stmt, SwitchStmt

_log = logging.getLogger(__name__)


def is_feasible_branch(cond: Value, edge: CFGEdge) -> bool:
    """Whether *edge* out of an ``If`` may be taken when its condition is *cond*."""
    if not cond.is_constant():
        return True
    c = cond.get_constant()
    if edge.kind is EdgeKind.IF_TRUE:
        return c == 1
    if edge.kind is EdgeKind.IF_FALSE:
        return c == 0
    return True


def is_feasible_switch_edge(stmt: SwitchStmt, value: Value, edge: CFGEdge) -> bool:
    """Whether *edge* out of *stmt* may be taken when the switch variable is *value*."""
    if not value.is_constant():
        return True
    c = value.get_constant()
    if edge.kind is EdgeKind.SWITCH_CASE:
        return to_int32(edge.case_value) == c
    if edge.kind is EdgeKind.SWITCH_DEFAULT:
        return all(to_int32(v) != c for v in stmt.case_values)
    return True


def compute_reachable(cfg: CFG, constants: DataflowResult[CPFact]) -> Set[Stmt]:
    """Return the statements of *cfg* reachable from its entry.

    Parameters
    ----------
    cfg : CFG
        The method's control flow graph.
    constants : DataflowResult[CPFact]
        Converged constant-propagation result for *cfg*.

    Returns
    -------
    set[Stmt]
        Always contains ``cfg.entry``.
    """
    reachable: Set[Stmt] = {cfg.entry}
    worklist: Deque[Stmt] = deque([cfg.entry])

    while worklist:
        stmt = worklist.popleft()
        edges = cfg.out_edges_of(stmt)

        if isinstance(stmt, If):
            cond = evaluate(stmt.condition, constants.get_in_fact(stmt))
            edges = [e for e in edges if is_feasible_branch(cond, e)]
        elif isinstance(stmt, SwitchStmt):
            value = evaluate(stmt.var, constants.get_in_fact(stmt))
            edges = [e for e in edges if is_feasible_switch_edge(stmt, value, e)]

        for e in edges:
            if e.dst not in reachable:
                reachable.add(e.dst)
                worklist.append(e.dst)

    _log.debug(
        "%s: %d of %d CFG nodes reachable",
        cfg.ir.name, len(reachable), len(cfg.nodes),
    )
    return reachable
