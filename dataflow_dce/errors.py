"""
dataflow_dce/errors.py
══════════════════════

Error types raised by dataflow-dce.

The analyses themselves raise nothing in normal operation: runtime traps
(divide-by-zero, null dereference, failed casts, bounds violations) are
modelled abstractly.  The exceptions below signal broken preconditions
that the *caller* is responsible for.

Error hierarchy
───────────────
┌──────────────────────────────────────────────────────────────────────┐
│  DataflowError (base)                                                │
│  ├── LatticeError        - value queried outside its lattice level   │
│  ├── IRError             - malformed IR or CFG                       │
│  ├── ConfigurationError  - missing prerequisite / bad analysis plan  │
│  └── SolverError         - solver invoked with inconsistent inputs   │
└──────────────────────────────────────────────────────────────────────┘

Error codes follow the pattern ``DCE-XXXX``:
  - 1000-1999: lattice errors
  - 2000-2999: IR / CFG errors
  - 3000-3999: configuration errors
  - 4000-4999: solver errors
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Stable, documented error codes."""

    NOT_A_CONSTANT = 1001

    DANGLING_TARGET = 2001
    UNKNOWN_STATEMENT = 2002
    MALFORMED_EDGE = 2003

    MISSING_RESULT = 3001
    UNKNOWN_ANALYSIS = 3002
    INVALID_OPTION = 3003
    INVALID_PLAN = 3004

    NOT_AN_ANALYSIS = 4001

    @property
    def code(self) -> str:
        return f"DCE-{self.value:04d}"


class DataflowError(Exception):
    """Base class for every error raised by this package."""

    default_code: ErrorCode = ErrorCode.MISSING_RESULT

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        self.code = code if code is not None else self.default_code
        self.message = message
        super().__init__(f"[{self.code.code}] {message}")


class LatticeError(DataflowError, ValueError):
    """A lattice value was queried at the wrong level (e.g. NAC.get_constant())."""

    default_code = ErrorCode.NOT_A_CONSTANT


class IRError(DataflowError):
    """The IR or CFG handed to an analysis is malformed."""

    default_code = ErrorCode.UNKNOWN_STATEMENT


class ConfigurationError(DataflowError):
    """An analysis was scheduled without its prerequisites, or misconfigured.

    Raised e.g. when dead-code detection runs before the liveness result
    has been stored on the IR.  This is fatal for the driver.
    """

    default_code = ErrorCode.MISSING_RESULT


class SolverError(DataflowError):
    """The fixpoint solver was handed inconsistent inputs."""

    default_code = ErrorCode.NOT_AN_ANALYSIS
