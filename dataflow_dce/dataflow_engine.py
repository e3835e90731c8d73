"""
dataflow_dce.dataflow_engine
============================

A generic, lattice-based dataflow analysis framework operating over
statement-level CFGs.

This module provides the fixpoint computation engine used by the
analyses in :mod:`dataflow_dce.dataflow_analyses`.  It knows nothing about
what a fact *is*; that knowledge lives in the analysis object.

Theory
------
A dataflow analysis is defined by:

1.  A **direction**: *forward* (information flows along control-flow
    edges) or *backward* (against them).
2.  A **boundary fact** for the entry (forward) or exit (backward) node,
    and an **initial fact** for every other node.
3.  A **meet operator** combining the facts of several predecessors
    (successors, for backward analyses) into one.
4.  A **transfer function** mapping a node's IN fact to its OUT fact
    (OUT to IN, for backward analyses).

The engine iterates until a **fixpoint** is reached: no node's fact
changes upon re-application of its transfer function.  With a
finite-height lattice and a monotone transfer function the iteration
terminates, and the fixpoint reached does not depend on the order in
which nodes are visited.

Worklist strategies
-------------------
``FIFO``
    Nodes in statement order, re-queued at the back.
``LIFO``
    Depth-first-like; re-queued nodes are processed next.
``RPO`` (Reverse Post-Order)
    Priority queue keyed by reverse post-order (post-order for backward
    analyses), so predecessors are visited before successors.

Public API
----------
    Direction           - forward / backward enum
    WorklistStrategy    - iteration order enum
    DataflowAnalysis    - capability contract implemented by analyses
    DataflowResult      - per-node IN/OUT fact arena
    WorklistSolver      - the fixpoint engine
    solve               - convenience function
    check_monotonicity  - development utility
"""

from __future__ import annotations

import abc
import enum
import heapq
import logging
import time
from collections import deque
from typing import (
    Any,
    Callable,
    Deque,
    Dict,
    Generic,
    List,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from dataflow_dce.ctrlflow_graph import CFG
from dataflow_dce.errors import ConfigurationError, ErrorCode, SolverError
from dataflow_dce.ir import Stmt

_log = logging.getLogger(__name__)

F = TypeVar("F")          # Fact type


# ===========================================================================
# DIRECTION / STRATEGY
# ===========================================================================

class Direction(enum.Enum):
    """Direction of dataflow propagation."""
    FORWARD = "forward"
    BACKWARD = "backward"


class WorklistStrategy(enum.Enum):
    """Strategy for selecting the next worklist node."""
    FIFO = "fifo"
    LIFO = "lifo"
    RPO = "rpo"

    @classmethod
    def from_string(cls, s: str) -> WorklistStrategy:
        try:
            return cls(s.strip().lower())
        except ValueError:
            names = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"unknown worklist strategy {s!r} (expected one of: {names})",
                ErrorCode.INVALID_OPTION,
            ) from None


# ===========================================================================
# ANALYSIS CONTRACT
# ===========================================================================

class DataflowAnalysis(abc.ABC, Generic[F]):
    """What a dataflow analysis must provide to be solved.

    The solver calls, in this order:

    - ``new_boundary_fact(cfg)`` once, for the entry (forward) or exit
      (backward) node;
    - ``new_initial_fact()`` for every other IN and OUT slot;
    - repeatedly, ``meet_into(fact, target)`` for each neighbour followed
      by ``transfer_node(node, in_fact, out_fact)``.
    """

    #: Short identifier, also used as the key of the stored result.
    ID: str = ""

    @property
    @abc.abstractmethod
    def direction(self) -> Direction:
        ...

    def is_forward(self) -> bool:
        return self.direction is Direction.FORWARD

    @abc.abstractmethod
    def new_boundary_fact(self, cfg: CFG) -> F:
        """Fact for the entry (forward) or exit (backward) node."""
        ...

    @abc.abstractmethod
    def new_initial_fact(self) -> F:
        """Fact for every other program point before iteration starts."""
        ...

    @abc.abstractmethod
    def meet_into(self, fact: F, target: F) -> None:
        """Meet *fact* into *target*, updating *target* in place."""
        ...

    @abc.abstractmethod
    def transfer_node(self, node: Stmt, in_fact: F, out_fact: F) -> bool:
        """Apply the transfer function of *node*.

        Forward analyses update *out_fact* from *in_fact*; backward ones
        update *in_fact* from *out_fact*.  Returns whether the updated
        fact changed.
        """
        ...


# ===========================================================================
# DATAFLOW RESULT
# ===========================================================================

class DataflowResult(Generic[F]):
    """IN and OUT facts for every node of one CFG.

    Facts are kept in two arrays indexed by ``cfg.position(node)``.

    Attributes
    ----------
    cfg : CFG
        The graph the facts belong to.
    iterations : int
        Number of worklist iterations performed.
    converged : bool
        Whether the analysis reached a fixpoint (vs. hitting the limit).
    elapsed_seconds : float
        Wall-clock time.
    direction : Direction
        Analysis direction.
    """

    def __init__(self, cfg: CFG, direction: Direction = Direction.FORWARD) -> None:
        self.cfg = cfg
        self.direction = direction
        self._in: List[Any] = [None] * len(cfg.nodes)
        self._out: List[Any] = [None] * len(cfg.nodes)
        self.iterations: int = 0
        self.converged: bool = False
        self.elapsed_seconds: float = 0.0

    def get_in_fact(self, node: Stmt) -> F:
        return self._in[self.cfg.position(node)]

    def get_out_fact(self, node: Stmt) -> F:
        return self._out[self.cfg.position(node)]

    def set_in_fact(self, node: Stmt, fact: F) -> None:
        self._in[self.cfg.position(node)] = fact

    def set_out_fact(self, node: Stmt, fact: F) -> None:
        self._out[self.cfg.position(node)] = fact

    def fact_at(self, node: Stmt, *, before: bool = True) -> F:
        """Return the fact holding before (IN) or after (OUT) *node*."""
        return self.get_in_fact(node) if before else self.get_out_fact(node)

    def __repr__(self) -> str:
        return (
            f"DataflowResult({self.cfg.ir.name!r}, {self.direction.value}, "
            f"iterations={self.iterations}, converged={self.converged})"
        )


# ===========================================================================
# SOLVER
# ===========================================================================

class WorklistSolver(Generic[F]):
    """Worklist fixpoint engine, reusable for any :class:`DataflowAnalysis`.

    Parameters
    ----------
    analysis : DataflowAnalysis[F]
        Supplies boundary/initial facts, meet and transfer.
    strategy : WorklistStrategy
        Worklist iteration order.
    max_iterations : int
        Safety bound on iterations.
    """

    def __init__(
        self,
        analysis: DataflowAnalysis[F],
        strategy: WorklistStrategy = WorklistStrategy.RPO,
        max_iterations: int = 1_000_000,
    ) -> None:
        if not isinstance(analysis, DataflowAnalysis):
            raise SolverError(
                f"{type(analysis).__name__} does not implement DataflowAnalysis",
                ErrorCode.NOT_AN_ANALYSIS,
            )
        self.analysis = analysis
        self.strategy = strategy
        self.max_iterations = max_iterations

    def solve(self, cfg: CFG) -> DataflowResult[F]:
        """Run the analysis on *cfg* to fixpoint."""
        t0 = time.monotonic()
        forward = self.analysis.is_forward()
        result: DataflowResult[F] = DataflowResult(cfg, self.analysis.direction)
        self._initialize(cfg, result, forward)

        start = cfg.entry if forward else cfg.exit
        order = self._visit_order(cfg, forward)
        rank: Dict[int, int] = {id(n): i for i, n in enumerate(order)}
        worklist = _Worklist(self.strategy, rank)
        for node in order:
            if node is not start:
                worklist.push(node)

        iterations = 0
        while worklist and iterations < self.max_iterations:
            node = worklist.pop()
            iterations += 1
            if forward:
                changed = self._step_forward(cfg, result, node)
                neighbours = cfg.successors_of(node)
            else:
                changed = self._step_backward(cfg, result, node)
                neighbours = cfg.predecessors_of(node)
            if changed:
                for n in neighbours:
                    if n is not start:
                        worklist.push(n)

        result.iterations = iterations
        result.converged = not worklist
        result.elapsed_seconds = time.monotonic() - t0
        if result.converged:
            _log.debug(
                "%s on %s converged after %d iterations (%s)",
                type(self.analysis).__name__, cfg.ir.name, iterations,
                self.strategy.value,
            )
        else:
            _log.warning(
                "%s on %s stopped after %d iterations without reaching a fixpoint",
                type(self.analysis).__name__, cfg.ir.name, iterations,
            )
        return result

    # ----- Internal helpers -------------------------------------------------

    def _initialize(self, cfg: CFG, result: DataflowResult[F], forward: bool) -> None:
        a = self.analysis
        for node in cfg.nodes:
            result.set_in_fact(node, a.new_initial_fact())
            result.set_out_fact(node, a.new_initial_fact())
        if forward:
            result.set_out_fact(cfg.entry, a.new_boundary_fact(cfg))
        else:
            result.set_in_fact(cfg.exit, a.new_boundary_fact(cfg))

    def _step_forward(self, cfg: CFG, result: DataflowResult[F], node: Stmt) -> bool:
        in_fact = result.get_in_fact(node)
        for pred in cfg.predecessors_of(node):
            self.analysis.meet_into(result.get_out_fact(pred), in_fact)
        return self.analysis.transfer_node(node, in_fact, result.get_out_fact(node))

    def _step_backward(self, cfg: CFG, result: DataflowResult[F], node: Stmt) -> bool:
        out_fact = result.get_out_fact(node)
        for succ in cfg.successors_of(node):
            self.analysis.meet_into(result.get_in_fact(succ), out_fact)
        return self.analysis.transfer_node(node, result.get_in_fact(node), out_fact)

    def _visit_order(self, cfg: CFG, forward: bool) -> List[Stmt]:
        if self.strategy is WorklistStrategy.RPO:
            if forward:
                return cfg.reverse_postorder(cfg.entry)
            return self._reverse_graph_rpo(cfg)
        if forward:
            return list(cfg.nodes)
        return list(reversed(cfg.nodes))

    @staticmethod
    def _reverse_graph_rpo(cfg: CFG) -> List[Stmt]:
        """Reverse post-order of the reversed graph, rooted at exit."""
        visited: Set[int] = {id(cfg.exit)}
        order: List[Stmt] = []
        stack = [(cfg.exit, iter(cfg.predecessors_of(cfg.exit)))]
        while stack:
            node, preds = stack[-1]
            for p in preds:
                if id(p) not in visited:
                    visited.add(id(p))
                    stack.append((p, iter(cfg.predecessors_of(p))))
                    break
            else:
                stack.pop()
                order.append(node)
        order.reverse()
        order.extend(n for n in cfg.nodes if id(n) not in visited)
        return order


class _Worklist:
    """Worklist with set-membership dedup and strategy-dependent order."""

    def __init__(self, strategy: WorklistStrategy, rank: Dict[int, int]) -> None:
        self._strategy = strategy
        self._rank = rank
        self._members: Set[int] = set()
        self._queue: Deque[Stmt] = deque()
        self._heap: List[Tuple[int, int, Stmt]] = []
        self._tiebreak = 0

    def push(self, node: Stmt) -> None:
        if id(node) in self._members:
            return
        self._members.add(id(node))
        if self._strategy is WorklistStrategy.RPO:
            self._tiebreak += 1
            heapq.heappush(self._heap, (self._rank[id(node)], self._tiebreak, node))
        else:
            self._queue.append(node)

    def pop(self) -> Stmt:
        if self._strategy is WorklistStrategy.RPO:
            node = heapq.heappop(self._heap)[2]
        elif self._strategy is WorklistStrategy.LIFO:
            node = self._queue.pop()
        else:
            node = self._queue.popleft()
        self._members.discard(id(node))
        return node

    def __bool__(self) -> bool:
        return bool(self._members)


# ===========================================================================
# CONVENIENCE
# ===========================================================================

def solve(
    analysis: DataflowAnalysis[F],
    cfg: CFG,
    *,
    strategy: WorklistStrategy = WorklistStrategy.RPO,
    max_iterations: int = 1_000_000,
) -> DataflowResult[F]:
    """Run *analysis* on *cfg* and return its :class:`DataflowResult`."""
    return WorklistSolver(analysis, strategy, max_iterations).solve(cfg)


# ===========================================================================
# MONOTONICITY CHECKER (development / debugging utility)
# ===========================================================================

def check_monotonicity(
    analysis: DataflowAnalysis[F],
    node: Stmt,
    samples: Sequence[F],
    leq: Callable[[F, F], bool],
) -> bool:
    """Check that the transfer function of *node* is monotone on *samples*.

    For every pair ``(a, b)`` in *samples* where ``a ⊑ b``, verifies that
    ``transfer(a) ⊑ transfer(b)``.  This cannot prove monotonicity in
    general, only detect violations.

    Parameters
    ----------
    analysis : DataflowAnalysis[F]
    node : Stmt
    samples : sequence of F
        Sample IN facts (OUT facts for backward analyses).
    leq : callable(F, F) -> bool
        The fact order.

    Returns
    -------
    bool
        ``True`` if no violation found.
    """
    def _apply(fact: F) -> F:
        produced = analysis.new_initial_fact()
        if analysis.is_forward():
            analysis.transfer_node(node, fact, produced)
        else:
            analysis.transfer_node(node, produced, fact)
        return produced

    for a in samples:
        for b in samples:
            if leq(a, b) and not leq(_apply(a), _apply(b)):
                return False
    return True
