"""
dataflow_dce — Constant Propagation and Dead-Code Detection
===========================================================

Intraprocedural analyses over a small three-address IR for a statically
typed, 32-bit-int language.

Core modules
------------
ir
    Variables, expressions, statements and the per-method ``IR``.
ctrlflow_graph
    Statement-level CFG with typed edges (if-true, switch-case, ...).
abstract_domains
    The three-level constant lattice ``UNDEF ⊑ Const(c) ⊑ NAC``.
evaluator
    Abstract evaluation of expressions with 32-bit folding.
dataflow_engine
    Generic worklist fixpoint solver, forward and backward.
dataflow_analyses
    ``ConstantPropagation`` and ``LiveVariableAnalysis``.
reachability
    Reachable statements with constant-branch pruning.
deadcode
    Unreachable statements and useless assignments.
analysis / config
    The per-method analysis pipeline and its configuration.
reporter
    cppcheck-style diagnostics for dead code.

Quick start
-----------
>>> from dataflow_dce import detect_dead_code
>>> dead = detect_dead_code(ir)
>>> [s.line_number for s in dead]
[7, 8]

Package layout
--------------
::

    dataflow_dce/
    ├── __init__.py            ← this file
    ├── errors.py
    ├── ir.py
    ├── ctrlflow_graph.py
    ├── abstract_domains.py
    ├── facts.py
    ├── evaluator.py
    ├── dataflow_engine.py
    ├── dataflow_analyses.py
    ├── reachability.py
    ├── deadcode.py
    ├── config.py
    ├── analysis.py
    └── reporter.py
"""

from __future__ import annotations

import logging

from dataflow_dce.abstract_domains import Value, ValueKind, meet_value
from dataflow_dce.analysis import (
    AnalysisManager,
    CFGBuilder,
    ConstantPropagationAnalysis,
    DeadCodeDetection,
    LiveVariablesAnalysis,
    MethodAnalysis,
    detect_dead_code,
)
from dataflow_dce.config import (
    AnalysisConfig,
    configure_logging,
    default_plan,
    load_plan,
)
from dataflow_dce.ctrlflow_graph import CFG, CFGEdge, EdgeKind, build_cfg
from dataflow_dce.dataflow_analyses import ConstantPropagation, LiveVariableAnalysis
from dataflow_dce.dataflow_engine import (
    DataflowAnalysis,
    DataflowResult,
    Direction,
    WorklistSolver,
    WorklistStrategy,
    solve,
)
from dataflow_dce.deadcode import compute_dead_code, has_no_side_effect
from dataflow_dce.errors import (
    ConfigurationError,
    DataflowError,
    ErrorCode,
    IRError,
    LatticeError,
    SolverError,
)
from dataflow_dce.evaluator import can_hold_int, evaluate
from dataflow_dce.facts import CPFact, SetFact
from dataflow_dce.ir import IR
from dataflow_dce.reachability import compute_reachable
from dataflow_dce.reporter import DeadCodeReporter, Diagnostic, Severity

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AnalysisConfig",
    "AnalysisManager",
    "CFG",
    "CFGBuilder",
    "CFGEdge",
    "CPFact",
    "ConfigurationError",
    "ConstantPropagation",
    "ConstantPropagationAnalysis",
    "DataflowAnalysis",
    "DataflowError",
    "DataflowResult",
    "DeadCodeDetection",
    "DeadCodeReporter",
    "Diagnostic",
    "Direction",
    "EdgeKind",
    "ErrorCode",
    "IR",
    "IRError",
    "LatticeError",
    "LiveVariableAnalysis",
    "LiveVariablesAnalysis",
    "MethodAnalysis",
    "SetFact",
    "Severity",
    "SolverError",
    "Value",
    "ValueKind",
    "WorklistSolver",
    "WorklistStrategy",
    "__version__",
    "build_cfg",
    "can_hold_int",
    "compute_dead_code",
    "compute_reachable",
    "configure_logging",
    "default_plan",
    "detect_dead_code",
    "evaluate",
    "has_no_side_effect",
    "load_plan",
    "meet_value",
    "solve",
]
