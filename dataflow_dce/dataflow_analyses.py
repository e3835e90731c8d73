"""
dataflow_dce/dataflow_analyses.py
═════════════════════════════════

Ready-made dataflow analyses built on ``dataflow_engine.py``.

Provided analyses
─────────────────
  1. ConstantPropagation     — forward, flat lattice (UNDEF / Const / NAC)
  2. LiveVariableAnalysis    — backward, may (set union)

Each analysis implements :class:`~dataflow_dce.dataflow_engine.DataflowAnalysis`
and is solved by :class:`~dataflow_dce.dataflow_engine.WorklistSolver`::

    cfg = build_cfg(ir)
    constants = solve(ConstantPropagation(), cfg)
    live = solve(LiveVariableAnalysis(), cfg)

Constant propagation is intraprocedural: parameters start as NAC, and
only variables whose declared type can hold an int (byte, short, int,
char, boolean) ever appear in its facts.
"""

from __future__ import annotations

from dataflow_dce.abstract_domains import Value, meet_value
from dataflow_dce.ctrlflow_graph import CFG
from dataflow_dce.dataflow_engine import DataflowAnalysis, Direction
from dataflow_dce.evaluator import can_hold_int, evaluate
from dataflow_dce.facts import CPFact, SetFact
from dataflow_dce.ir import DefinitionStmt, Stmt, Var


# ═════════════════════════════════════════════════════════════════════════
#  CONSTANT PROPAGATION
# ═════════════════════════════════════════════════════════════════════════

class ConstantPropagation(DataflowAnalysis[CPFact]):
    """Forward constant propagation over int-like variables."""

    ID = "constprop"

    @property
    def direction(self) -> Direction:
        return Direction.FORWARD

    def new_boundary_fact(self, cfg: CFG) -> CPFact:
        # nothing is known about the arguments
        fact = CPFact()
        for param in cfg.params:
            if can_hold_int(param):
                fact.update(param, Value.get_nac())
        return fact

    def new_initial_fact(self) -> CPFact:
        return CPFact()

    def meet_into(self, fact: CPFact, target: CPFact) -> None:
        for var, value in list(fact.items()):
            target.update(var, meet_value(value, target.get(var)))

    def transfer_node(self, node: Stmt, in_fact: CPFact, out_fact: CPFact) -> bool:
        new_out = in_fact.copy()
        if isinstance(node, DefinitionStmt):
            lhs = node.get_def()
            if isinstance(lhs, Var) and can_hold_int(lhs):
                new_out.update(lhs, evaluate(node.rvalue, in_fact))
        return out_fact.copy_from(new_out)


def cp_fact_leq(a: CPFact, b: CPFact) -> bool:
    """Pointwise order on constant-propagation facts."""
    for var in set(a.keys()) | set(b.keys()):
        if not a.get(var).leq(b.get(var)):
            return False
    return True


# ═════════════════════════════════════════════════════════════════════════
#  LIVE VARIABLES
# ═════════════════════════════════════════════════════════════════════════

class LiveVariableAnalysis(DataflowAnalysis[SetFact[Var]]):
    """Backward liveness: a variable is live at a point if its current
    value may be read before being overwritten.

    Every variable is tracked, regardless of type.
    """

    ID = "livevar"

    @property
    def direction(self) -> Direction:
        return Direction.BACKWARD

    def new_boundary_fact(self, cfg: CFG) -> SetFact[Var]:
        return SetFact()

    def new_initial_fact(self) -> SetFact[Var]:
        return SetFact()

    def meet_into(self, fact: SetFact[Var], target: SetFact[Var]) -> None:
        target.union_with(fact)

    def transfer_node(self, node: Stmt, in_fact: SetFact[Var],
                      out_fact: SetFact[Var]) -> bool:
        new_in = out_fact.copy()
        d = node.get_def()
        if isinstance(d, Var):
            new_in.remove(d)
        for use in node.get_uses():
            new_in.add(use)
        return in_fact.copy_from(new_in)

