"""
dataflow_dce/analysis.py
════════════════════════

Method-level analyses: the unit the pipeline schedules.

A :class:`MethodAnalysis` takes an :class:`~dataflow_dce.ir.IR`, reads the
results of the analyses it depends on from the IR's result store, and
returns its own result, which the pipeline stores under its ``ID``.

    ┌──────────┐    ┌────────────┐    ┌───────────┐    ┌────────────┐
    │   cfg    │ ─▶ │ constprop  │ ─▶ │  livevar  │ ─▶ │  deadcode  │
    │CFGBuilder│    │ (forward)  │    │(backward) │    │            │
    └──────────┘    └────────────┘    └───────────┘    └────────────┘

Dataflow analyses are wrapped by :class:`DataflowMethodAnalysis`, which
fetches the CFG and runs the worklist solver with the options of its
:class:`~dataflow_dce.config.AnalysisConfig`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from dataflow_dce.config import AnalysisConfig, default_plan
from dataflow_dce.ctrlflow_graph import CFG, build_cfg
from dataflow_dce.dataflow_analyses import ConstantPropagation, LiveVariableAnalysis
from dataflow_dce.dataflow_engine import (
    DataflowAnalysis,
    DataflowResult,
    WorklistSolver,
)
from dataflow_dce.deadcode import compute_dead_code
from dataflow_dce.errors import ConfigurationError, ErrorCode
from dataflow_dce.facts import CPFact, SetFact
from dataflow_dce.ir import IR, Stmt, Var
from dataflow_dce.reachability import compute_reachable

_log = logging.getLogger(__name__)


class MethodAnalysis(ABC):
    """An analysis run once per method body.

    Subclasses set ``ID`` (the key their result is stored under) and
    ``REQUIRES`` (ids whose results must already be on the IR).
    """

    ID: ClassVar[str] = ""
    REQUIRES: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config

    @abstractmethod
    def analyze(self, ir: IR) -> Any:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config.id!r})"


class CFGBuilder(MethodAnalysis):
    """Builds the statement-level CFG.

    With the ``dot`` option set, the Graphviz text of the CFG is also
    stored on the IR under ``cfg.dot``.
    """

    ID = "cfg"

    def analyze(self, ir: IR) -> CFG:
        cfg = build_cfg(ir)
        if self.config.get_bool("dot"):
            ir.store_result(f"{self.ID}.dot", cfg.to_dot(title=ir.name))
        return cfg


class DataflowMethodAnalysis(MethodAnalysis):
    """Runs a :class:`DataflowAnalysis` over the method's CFG."""

    REQUIRES = ("cfg",)

    def make_analysis(self) -> DataflowAnalysis:
        raise NotImplementedError

    def analyze(self, ir: IR) -> DataflowResult:
        cfg: CFG = ir.get_result(CFGBuilder.ID)
        solver = WorklistSolver(
            self.make_analysis(),
            strategy=self.config.strategy,
            max_iterations=self.config.max_iterations,
        )
        return solver.solve(cfg)


class ConstantPropagationAnalysis(DataflowMethodAnalysis):
    ID = ConstantPropagation.ID

    def make_analysis(self) -> DataflowAnalysis:
        return ConstantPropagation()


class LiveVariablesAnalysis(DataflowMethodAnalysis):
    ID = LiveVariableAnalysis.ID

    def make_analysis(self) -> DataflowAnalysis:
        return LiveVariableAnalysis()


class DeadCodeDetection(MethodAnalysis):
    """Reports unreachable statements and useless assignments.

    The result is the list of dead statements in ascending index order;
    the reachable set it was derived from is stored under
    ``deadcode.reachable``.
    """

    ID = "deadcode"
    REQUIRES = ("cfg", "constprop", "livevar")

    def analyze(self, ir: IR) -> List[Stmt]:
        cfg: CFG = ir.get_result(CFGBuilder.ID)
        constants: DataflowResult[CPFact] = ir.get_result(ConstantPropagation.ID)
        live_vars: DataflowResult[SetFact[Var]] = ir.get_result(LiveVariableAnalysis.ID)

        reachable = compute_reachable(cfg, constants)
        ir.store_result(f"{self.ID}.reachable", reachable)
        return compute_dead_code(cfg, reachable, live_vars)


# ═════════════════════════════════════════════════════════════════════════
#  REGISTRY & MANAGER
# ═════════════════════════════════════════════════════════════════════════

ANALYSES: Dict[str, Type[MethodAnalysis]] = {
    cls.ID: cls
    for cls in (
        CFGBuilder,
        ConstantPropagationAnalysis,
        LiveVariablesAnalysis,
        DeadCodeDetection,
    )
}


def create_analysis(config: AnalysisConfig) -> MethodAnalysis:
    try:
        cls = ANALYSES[config.id]
    except KeyError:
        raise ConfigurationError(
            f"unknown analysis '{config.id}' (known: {', '.join(sorted(ANALYSES))})",
            ErrorCode.UNKNOWN_ANALYSIS,
        ) from None
    return cls(config)


class AnalysisManager:
    """Runs an analysis plan on method bodies.

    The plan is checked when the manager is built: every id must be
    registered and every prerequisite must come earlier in the plan.
    """

    def __init__(self, plan: Optional[Sequence[AnalysisConfig]] = None) -> None:
        configs = list(plan) if plan is not None else default_plan()
        self.analyses: List[MethodAnalysis] = [create_analysis(c) for c in configs]
        self._check_order()

    def _check_order(self) -> None:
        scheduled: Set[str] = set()
        for analysis in self.analyses:
            for dep in analysis.REQUIRES:
                if dep not in scheduled:
                    raise ConfigurationError(
                        f"analysis '{analysis.ID}' requires '{dep}' to be "
                        f"scheduled before it",
                        ErrorCode.MISSING_RESULT,
                    )
            scheduled.add(analysis.ID)

    def run(self, ir: IR) -> IR:
        """Run every analysis of the plan on *ir*, storing each result on it."""
        for analysis in self.analyses:
            _log.info("running %s on %s", analysis.ID, ir.name)
            ir.store_result(analysis.ID, analysis.analyze(ir))
        return ir

    def run_all(self, irs: Iterable[IR]) -> List[IR]:
        return [self.run(ir) for ir in irs]


def detect_dead_code(ir: IR, plan: Optional[Sequence[AnalysisConfig]] = None) -> List[Stmt]:
    """Run the dead-code pipeline on *ir* and return its dead statements."""
    AnalysisManager(plan).run(ir)
    return ir.get_result(DeadCodeDetection.ID)
