"""
dataflow_dce.ctrlflow_graph
===========================

Statement-level intraprocedural Control Flow Graphs.

Each :class:`~dataflow_dce.ir.IR` yields one CFG.  Unlike a basic-block
CFG, every node here is a single :class:`~dataflow_dce.ir.Stmt`, plus two
synthetic :class:`~dataflow_dce.ir.Nop` nodes for the method entry and
exit.  Edges carry control-flow semantics (fall-through, branch-true,
branch-false, switch-case, switch-default).

Public API
----------
    EdgeKind         - classification of a CFG edge
    CFGEdge          - a directed edge between two statements
    CFG              - the control flow graph for one method body
    build_cfg        - build a CFG from an IR

Typical usage::

    from dataflow_dce.ctrlflow_graph import build_cfg

    cfg = build_cfg(ir)
    for node in cfg.nodes:
        for e in cfg.out_edges_of(node):
            print(e)

Implementation notes
--------------------
* Node positions (``cfg.position(node)``) are dense ``0..len(cfg)-1``
  and are what the dataflow solver uses to index its fact arena.  They
  are per-CFG, so CFGs of different methods share no state.
* The entry node gets index ``-1`` and the exit node ``len(ir.stmts)``
  so that statement indices stay a total order over the whole graph.
"""

from __future__ import annotations

import enum
from collections import deque
from typing import (
    Deque,
    Dict,
    Iterator,
    List,
    Optional,
    Set,
)

from dataflow_dce.errors import ErrorCode, IRError
from dataflow_dce.ir import IR, Goto, If, Nop, Return, Stmt, SwitchStmt

# ---------------------------------------------------------------------------
# Edge kinds
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    NORMAL = "normal"
    IF_TRUE = "if-true"
    IF_FALSE = "if-false"
    SWITCH_CASE = "switch-case"
    SWITCH_DEFAULT = "switch-default"


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------

class CFGEdge:
    """A directed edge in the CFG.

    Attributes
    ----------
    src : Stmt
    dst : Stmt
    kind : EdgeKind
    case_value : int or None
        The matched case constant, only for ``SWITCH_CASE`` edges.
    """

    __slots__ = ("src", "dst", "kind", "case_value")

    def __init__(
        self,
        src: Stmt,
        dst: Stmt,
        kind: EdgeKind = EdgeKind.NORMAL,
        case_value: Optional[int] = None,
    ) -> None:
        if kind is EdgeKind.SWITCH_CASE and case_value is None:
            raise IRError(
                f"switch-case edge from {src!r} has no case value",
                ErrorCode.MALFORMED_EDGE,
            )
        self.src = src
        self.dst = dst
        self.kind = kind
        self.case_value = case_value

    def __repr__(self) -> str:
        extra = f", case={self.case_value}" if self.case_value is not None else ""
        return (
            f"CFGEdge({self.src.index} -> {self.dst.index}, "
            f"kind={self.kind.value!r}{extra})"
        )

    def __hash__(self) -> int:
        return hash((id(self.src), id(self.dst), self.kind, self.case_value))

    def __eq__(self, other) -> bool:
        if isinstance(other, CFGEdge):
            return (
                self.src is other.src
                and self.dst is other.dst
                and self.kind == other.kind
                and self.case_value == other.case_value
            )
        return NotImplemented


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------

class CFG:
    """Intraprocedural control flow graph for a single method body.

    Attributes
    ----------
    ir : IR
        The body this CFG represents.
    entry : Nop
        Synthetic entry node.
    exit : Nop
        Synthetic exit node.
    nodes : list[Stmt]
        All nodes: entry, the body's statements in order, exit.
    edges : list[CFGEdge]
        All edges.
    """

    def __init__(self, ir: IR) -> None:
        self.ir = ir
        self.entry = Nop(label="entry")
        self.exit = Nop(label="exit")
        self.entry.index = -1
        self.exit.index = len(ir.stmts)
        self.nodes: List[Stmt] = [self.entry, *ir.stmts, self.exit]
        self.edges: List[CFGEdge] = []
        self._position: Dict[int, int] = {
            id(n): i for i, n in enumerate(self.nodes)
        }
        self._out: Dict[int, List[CFGEdge]] = {id(n): [] for n in self.nodes}
        self._in: Dict[int, List[CFGEdge]] = {id(n): [] for n in self.nodes}

    # ----- graph mutation ---------------------------------------------------

    def add_edge(
        self,
        src: Stmt,
        dst: Stmt,
        kind: EdgeKind = EdgeKind.NORMAL,
        case_value: Optional[int] = None,
    ) -> CFGEdge:
        """Create an edge, register it, and wire up predecessor/successor lists."""
        for n in (src, dst):
            if id(n) not in self._position:
                raise IRError(
                    f"{n!r} is not a node of the CFG of {self.ir.name}",
                    ErrorCode.UNKNOWN_STATEMENT,
                )
        e = CFGEdge(src, dst, kind=kind, case_value=case_value)
        self.edges.append(e)
        self._out[id(src)].append(e)
        self._in[id(dst)].append(e)
        return e

    # ----- queries ----------------------------------------------------------

    @property
    def params(self):
        """Declared parameters of the owning method."""
        return self.ir.params

    def contains(self, node: Stmt) -> bool:
        return id(node) in self._position

    def position(self, node: Stmt) -> int:
        """Dense position of *node* in :attr:`nodes`."""
        try:
            return self._position[id(node)]
        except KeyError:
            raise IRError(
                f"{node!r} is not a node of the CFG of {self.ir.name}",
                ErrorCode.UNKNOWN_STATEMENT,
            ) from None

    def out_edges_of(self, node: Stmt) -> List[CFGEdge]:
        return self._out[id(node)]

    def successors_of(self, node: Stmt) -> List[Stmt]:
        return [e.dst for e in self._out[id(node)]]

    def predecessors_of(self, node: Stmt) -> List[Stmt]:
        return [e.src for e in self._in[id(node)]]

    def reachable_from(self, start: Stmt) -> Set[Stmt]:
        """Return the set of nodes structurally reachable from *start* (BFS)."""
        visited: Set[Stmt] = {start}
        worklist: Deque[Stmt] = deque([start])
        while worklist:
            n = worklist.popleft()
            for e in self._out[id(n)]:
                if e.dst not in visited:
                    visited.add(e.dst)
                    worklist.append(e.dst)
        return visited

    def postorder(self, start: Optional[Stmt] = None) -> List[Stmt]:
        """Nodes in DFS post-order from *start* (default: entry).

        Nodes unreachable from *start* are appended afterwards in
        statement order, so the result always covers every node.
        """
        root = self.entry if start is None else start
        visited: Set[int] = {id(root)}
        order: List[Stmt] = []
        stack = [(root, iter(self._out[id(root)]))]
        while stack:
            node, edges = stack[-1]
            for e in edges:
                if id(e.dst) not in visited:
                    visited.add(id(e.dst))
                    stack.append((e.dst, iter(self._out[id(e.dst)])))
                    break
            else:
                stack.pop()
                order.append(node)
        for n in self.nodes:
            if id(n) not in visited:
                order.append(n)
        return order

    def reverse_postorder(self, start: Optional[Stmt] = None) -> List[Stmt]:
        return list(reversed(self.postorder(start)))

    # ----- serialisation helpers --------------------------------------------

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this CFG."""
        lines = ["digraph CFG {"]
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for n in self.nodes:
            lbl = str(n).replace('"', '\\"').replace("\n", "\\n")
            color = ""
            if n is self.entry:
                color = ', style=filled, fillcolor="#ccffcc"'
            elif n is self.exit:
                color = ', style=filled, fillcolor="#ffcccc"'
            pos = self._position[id(n)]
            lines.append(f'  N{pos} [label="{n.index}: {lbl}"{color}];')
        for e in self.edges:
            style = ""
            elabel = e.kind.value
            if e.case_value is not None:
                elabel += f": {e.case_value}"
            if e.kind == EdgeKind.IF_TRUE:
                style = ', color=green, fontcolor=green'
            elif e.kind == EdgeKind.IF_FALSE:
                style = ', color=red, fontcolor=red'
            elif e.kind == EdgeKind.SWITCH_DEFAULT:
                style = ', style=dashed'
            lines.append(
                f'  N{self._position[id(e.src)]} -> N{self._position[id(e.dst)]} '
                f'[label="{elabel}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines)

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return (
            f"CFG(method={self.ir.name!r}, nodes={len(self.nodes)}, "
            f"edges={len(self.edges)})"
        )


# ===========================================================================
# CFG BUILDER
# ===========================================================================

def _require_target(stmt: Stmt, target: Optional[Stmt], what: str) -> Stmt:
    if target is None:
        raise IRError(
            f"{stmt!r} has no {what}",
            ErrorCode.DANGLING_TARGET,
        )
    return target


def build_cfg(ir: IR) -> CFG:
    """Build the statement-level CFG of *ir*.

    Edges:

    * entry → first statement (or exit for an empty body);
    * ``If``: IF_TRUE to its target, IF_FALSE to the next statement;
    * ``Goto``: NORMAL to its target;
    * ``SwitchStmt``: one SWITCH_CASE edge per case, SWITCH_DEFAULT to the
      default target when there is one;
    * ``Return``: NORMAL to exit;
    * any other statement whose ``can_fall_through()`` holds: NORMAL to the
      next statement (exit after the last).
    """
    cfg = CFG(ir)
    stmts = ir.stmts
    cfg.add_edge(cfg.entry, stmts[0] if stmts else cfg.exit)

    for i, stmt in enumerate(stmts):
        nxt = stmts[i + 1] if i + 1 < len(stmts) else cfg.exit
        if isinstance(stmt, If):
            cfg.add_edge(stmt, _require_target(stmt, stmt.target, "jump target"),
                         EdgeKind.IF_TRUE)
        elif isinstance(stmt, Goto):
            cfg.add_edge(stmt, _require_target(stmt, stmt.target, "jump target"))
        elif isinstance(stmt, SwitchStmt):
            for value, target in stmt.cases:
                cfg.add_edge(stmt, _require_target(stmt, target, f"target for case {value}"),
                             EdgeKind.SWITCH_CASE, case_value=value)
            if stmt.default_target is not None:
                cfg.add_edge(stmt, stmt.default_target, EdgeKind.SWITCH_DEFAULT)
        elif isinstance(stmt, Return):
            cfg.add_edge(stmt, cfg.exit)
        if stmt.can_fall_through():
            kind = EdgeKind.IF_FALSE if isinstance(stmt, If) else EdgeKind.NORMAL
            cfg.add_edge(stmt, nxt, kind)
    return cfg
