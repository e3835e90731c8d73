"""
dataflow_dce/reporter.py
════════════════════════

Turns dead statements into diagnostics and renders them.

Diagnostics
───────────
  unreachableCode   (style, CWE-561)  statement no feasible path reaches
  deadAssignment    (style, CWE-563)  value assigned but never read

Output formats
──────────────
  • Terminal : coloured one-line-per-finding text (termcolor)
  • cppcheck : classic one-liners  ``[file:line]: (severity) message [errorId]``
  • JSON     : one object per finding, cppcheck addon field names

Usage
─────
    dead = detect_dead_code(ir)
    rep = DeadCodeReporter()
    rep.report(ir, dead)
    rep.emit(sys.stdout, fmt="text", color=True)
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, Iterable, List, Optional, TextIO

from termcolor import colored

from dataflow_dce.errors import ConfigurationError, ErrorCode
from dataflow_dce.ir import IR, Stmt

UNREACHABLE_CODE = "unreachableCode"
DEAD_ASSIGNMENT = "deadAssignment"

CWE_DEAD_CODE = 561
CWE_UNUSED_VALUE = 563

ADDON_NAME = "dataflow-dce"


# ═════════════════════════════════════════════════════════════════════════
#  SEVERITY
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Diagnostic severity levels.

    Each carries:
      • cppcheck_name — the string cppcheck uses in its output
      • color         — termcolor colour name
    """

    ERROR = ("error", "red")
    WARNING = ("warning", "yellow")
    STYLE = ("style", "cyan")
    INFORMATION = ("information", "white")

    def __init__(self, cppcheck_name: str, color: str) -> None:
        self.cppcheck_name = cppcheck_name
        self.color = color

    @classmethod
    def from_string(cls, s: str) -> Severity:
        """Parse a severity from its cppcheck name (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.cppcheck_name == s_low:
                return member
        return cls.WARNING


# ═════════════════════════════════════════════════════════════════════════
#  DATA STRUCTURES
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A point in a source file."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """A single dead-code finding.

    ``stmt_index`` is the index of the offending statement in its method
    body, for tools that map back onto the IR.
    """
    error_id: str
    message: str
    severity: Severity
    location: SourceLocation
    cwe: int = 0
    stmt_index: int = -1
    method: str = ""

    def to_cppcheck_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.cppcheck_name,
            "message": self.message,
            "addon": ADDON_NAME,
            "errorId": self.error_id,
            "extra": self.method,
        }
        if self.cwe:
            result["cwe"] = self.cwe
        return result

    def to_json_str(self) -> str:
        return json.dumps(self.to_cppcheck_json())

    def to_cppcheck_line(self) -> str:
        return (
            f"[{self.location.file}:{self.location.line}]: "
            f"({self.severity.cppcheck_name}) {self.message} [{self.error_id}]"
        )

    def to_text(self, color: bool = False) -> str:
        """``file:line: style: message [errorId]``, optionally coloured."""
        sev = self.severity.cppcheck_name
        loc = str(self.location)
        if color:
            sev = colored(sev, self.severity.color, attrs=["bold"], force_color=True)
            loc = colored(loc, attrs=["bold"], force_color=True)
            tail = colored(f"[{self.error_id}]", "dark_grey", force_color=True)
        else:
            tail = f"[{self.error_id}]"
        return f"{loc}: {sev}: {self.message} {tail}"


@dataclass
class ReporterStats:
    """Counts per error id."""
    unreachable: int = 0
    dead_assignments: int = 0

    def record(self, diag: Diagnostic) -> None:
        if diag.error_id == UNREACHABLE_CODE:
            self.unreachable += 1
        elif diag.error_id == DEAD_ASSIGNMENT:
            self.dead_assignments += 1

    @property
    def total(self) -> int:
        return self.unreachable + self.dead_assignments

    def summary_line(self) -> str:
        if not self.total:
            return "no dead code found"
        parts: List[str] = []
        if self.unreachable:
            parts.append(f"{self.unreachable} unreachable")
        if self.dead_assignments:
            n = self.dead_assignments
            parts.append(f"{n} dead assignment{'s' if n != 1 else ''}")
        return ", ".join(parts)


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER
# ═════════════════════════════════════════════════════════════════════════

FORMATS = ("text", "cppcheck", "json")


@dataclass
class DeadCodeReporter:
    """Collects diagnostics for one or more methods and renders them."""

    severity: Severity = Severity.STYLE
    diagnostics: List[Diagnostic] = field(default_factory=list)
    stats: ReporterStats = field(default_factory=ReporterStats)

    def diagnose(self, ir: IR, stmt: Stmt, reachable: bool) -> Diagnostic:
        """Build the diagnostic for one dead statement of *ir*."""
        location = SourceLocation(ir.file, max(stmt.line_number, 0))
        if not reachable:
            return Diagnostic(
                UNREACHABLE_CODE,
                f"Statement '{stmt}' in {ir.name} is never executed",
                self.severity, location, CWE_DEAD_CODE, stmt.index, ir.name,
            )
        var = stmt.get_def()
        return Diagnostic(
            DEAD_ASSIGNMENT,
            f"Variable '{var}' is assigned a value that is never used",
            self.severity, location, CWE_UNUSED_VALUE, stmt.index, ir.name,
        )

    def report(
        self,
        ir: IR,
        dead: Iterable[Stmt],
        reachable: Optional[Collection[Stmt]] = None,
    ) -> List[Diagnostic]:
        """Add diagnostics for the *dead* statements of *ir*.

        *reachable* tells unreachable statements apart from dead
        assignments.  When omitted, the set stored under
        ``deadcode.reachable`` by the detection pass is used.

        Raises
        ------
        ConfigurationError
            If no reachable set is given and none is stored on *ir*.
        """
        if reachable is None:
            if not ir.has_result("deadcode.reachable"):
                raise ConfigurationError(
                    f"no reachable set for {ir.name}; run 'deadcode' first "
                    "or pass reachable=",
                    ErrorCode.MISSING_RESULT,
                )
            reachable = ir.get_result("deadcode.reachable")

        added = []
        for stmt in dead:
            diag = self.diagnose(ir, stmt, stmt in reachable)
            self.diagnostics.append(diag)
            self.stats.record(diag)
            added.append(diag)
        return added

    def render(self, fmt: str = "text", color: bool = False) -> str:
        if fmt not in FORMATS:
            raise ConfigurationError(
                f"unknown report format {fmt!r} (expected one of: {', '.join(FORMATS)})",
                ErrorCode.INVALID_OPTION,
            )
        if fmt == "json":
            return json.dumps(
                [d.to_cppcheck_json() for d in self.diagnostics], indent=2,
            )
        if fmt == "cppcheck":
            lines = [d.to_cppcheck_line() for d in self.diagnostics]
        else:
            lines = [d.to_text(color) for d in self.diagnostics]
            lines.append(self.stats.summary_line())
        return "\n".join(lines)

    def emit(self, stream: TextIO, fmt: str = "text", color: bool = False) -> None:
        stream.write(self.render(fmt, color))
        stream.write("\n")

