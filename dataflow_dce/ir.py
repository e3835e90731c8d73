"""
dataflow_dce.ir
===============

A small three-address intermediate representation for method bodies.

The IR is what the analyses in this package consume.  It is deliberately
flat: every expression operand is an atom (a :class:`Var` or an
:class:`IntLiteral`) except where noted, and control flow is expressed
through jump statements (:class:`If`, :class:`Goto`, :class:`SwitchStmt`,
:class:`Return`) whose targets are other statements of the same body.

Public API
----------
    PrimitiveType, ClassType, ArrayType   - declared types
    Var                                   - local variable / parameter
    Exp and subclasses                    - right-hand-side expressions
    ArithmeticOp, BitwiseOp, ShiftOp, ConditionOp
                                          - closed operator families
    Stmt and subclasses                   - statements
    IR                                    - a method body plus its
                                            analysis-result store

Typical usage::

    x = Var("x", PrimitiveType.INT)
    y = Var("y", PrimitiveType.INT)
    s0 = AssignStmt(x, IntLiteral(1), line=1)
    s1 = AssignStmt(y, ArithmeticExp(ArithmeticOp.ADD, x, IntLiteral(2)), line=2)
    s2 = Return(y, line=3)
    ir = IR("f", params=[], stmts=[s0, s1, s2])
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from dataflow_dce.errors import ConfigurationError, ErrorCode, IRError


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class PrimitiveType(enum.Enum):
    """JVM-style primitive types."""

    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    CHAR = "char"
    BOOLEAN = "boolean"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassType:
    """A reference type naming a class."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    """A reference type for arrays of ``element_type``."""

    element_type: "Type"

    def __str__(self) -> str:
        return f"{self.element_type}[]"


Type = Union[PrimitiveType, ClassType, ArrayType]


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class Exp:
    """Base class of every expression."""

    __slots__ = ()

    def get_uses(self) -> List["Var"]:
        """Variables read when this expression is evaluated."""
        return []


class Var(Exp):
    """A local variable or parameter.

    Variables are compared by identity: two ``Var`` objects with the same
    name are different variables.
    """

    __slots__ = ("name", "type")

    def __init__(self, name: str, type: Type) -> None:
        self.name = name
        self.type = type

    def get_uses(self) -> List[Var]:
        return [self]

    def __repr__(self) -> str:
        return f"Var({self.name}: {self.type})"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IntLiteral(Exp):
    """An integer (or char / boolean) literal."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


class ArithmeticOp(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"


class BitwiseOp(enum.Enum):
    AND = "&"
    OR = "|"
    XOR = "^"


class ShiftOp(enum.Enum):
    SHL = "<<"
    SHR = ">>"
    USHR = ">>>"


class ConditionOp(enum.Enum):
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


BinaryOp = Union[ArithmeticOp, BitwiseOp, ShiftOp, ConditionOp]


class BinaryExp(Exp):
    """Base class for the four binary-expression families.

    Subclasses are dataclasses with fields ``op``, ``operand1`` and
    ``operand2``.
    """

    __slots__ = ()

    op: BinaryOp
    operand1: Exp
    operand2: Exp

    def get_uses(self) -> List[Var]:
        return self.operand1.get_uses() + self.operand2.get_uses()

    def __str__(self) -> str:
        return f"{self.operand1} {self.op.value} {self.operand2}"


@dataclass(frozen=True)
class ArithmeticExp(BinaryExp):
    op: ArithmeticOp
    operand1: Exp
    operand2: Exp


@dataclass(frozen=True)
class BitwiseExp(BinaryExp):
    op: BitwiseOp
    operand1: Exp
    operand2: Exp


@dataclass(frozen=True)
class ShiftExp(BinaryExp):
    op: ShiftOp
    operand1: Exp
    operand2: Exp


@dataclass(frozen=True)
class ConditionExp(BinaryExp):
    op: ConditionOp
    operand1: Exp
    operand2: Exp


@dataclass(frozen=True)
class NewExp(Exp):
    """Object or array allocation.  ``lengths`` is non-empty for arrays."""

    type: Type
    lengths: Tuple[Exp, ...] = ()

    def get_uses(self) -> List[Var]:
        uses: List[Var] = []
        for length in self.lengths:
            uses.extend(length.get_uses())
        return uses

    def __str__(self) -> str:
        dims = "".join(f"[{n}]" for n in self.lengths)
        return f"new {self.type}{dims}"


@dataclass(frozen=True)
class CastExp(Exp):
    value: Exp
    cast_type: Type

    def get_uses(self) -> List[Var]:
        return self.value.get_uses()

    def __str__(self) -> str:
        return f"({self.cast_type}) {self.value}"


@dataclass(frozen=True)
class FieldAccess(Exp):
    """Instance field access ``base.name``, or static access when ``base`` is None."""

    field_name: str
    base: Optional[Var] = None
    declaring_class: str = ""

    def get_uses(self) -> List[Var]:
        return [] if self.base is None else [self.base]

    def __str__(self) -> str:
        owner = self.declaring_class if self.base is None else str(self.base)
        return f"{owner}.{self.field_name}"


@dataclass(frozen=True)
class ArrayAccess(Exp):
    base: Var
    index: Exp

    def get_uses(self) -> List[Var]:
        return [self.base] + self.index.get_uses()

    def __str__(self) -> str:
        return f"{self.base}[{self.index}]"


@dataclass(frozen=True)
class InvokeExp(Exp):
    """Method call.  ``base`` is None for static calls."""

    method_name: str
    args: Tuple[Exp, ...] = ()
    base: Optional[Var] = None

    def get_uses(self) -> List[Var]:
        uses: List[Var] = [] if self.base is None else [self.base]
        for arg in self.args:
            uses.extend(arg.get_uses())
        return uses

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.args)
        recv = f"{self.base}." if self.base is not None else ""
        return f"{recv}{self.method_name}({args})"


LValue = Union[Var, FieldAccess, ArrayAccess]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


class Stmt:
    """Base class of every statement.

    Attributes
    ----------
    index : int
        Position in the owning body; assigned by :class:`IR` (or by the
        CFG for synthetic nodes).  ``-1`` until then.
    line_number : int
        Source line, ``<= 0`` for synthetic statements.
    """

    def __init__(self, line: int = -1) -> None:
        self.index: int = -1
        self.line_number: int = line

    def get_def(self) -> Optional[LValue]:
        return None

    def get_uses(self) -> List[Var]:
        return []

    def can_fall_through(self) -> bool:
        return True

    def jump_targets(self) -> List["Stmt"]:
        return []

    def __repr__(self) -> str:
        return f"{self.index}@L{self.line_number}: {self}"


class Nop(Stmt):
    """Does nothing; used for the synthetic entry and exit nodes."""

    def __init__(self, line: int = -1, label: str = "nop") -> None:
        super().__init__(line)
        self.label = label

    def __str__(self) -> str:
        return self.label


class DefinitionStmt(Stmt):
    """A statement that may define a value: ``lvalue = rvalue``."""

    def __init__(self, lvalue: Optional[LValue], rvalue: Exp, line: int = -1) -> None:
        super().__init__(line)
        self.lvalue = lvalue
        self.rvalue = rvalue

    def get_def(self) -> Optional[LValue]:
        return self.lvalue

    def get_uses(self) -> List[Var]:
        uses = list(self.rvalue.get_uses())
        if self.lvalue is not None and not isinstance(self.lvalue, Var):
            uses.extend(self.lvalue.get_uses())
        return uses


class AssignStmt(DefinitionStmt):
    """``lvalue = rvalue`` where the left side is always present."""

    def __init__(self, lvalue: LValue, rvalue: Exp, line: int = -1) -> None:
        super().__init__(lvalue, rvalue, line)

    def __str__(self) -> str:
        return f"{self.lvalue} = {self.rvalue}"


class Invoke(DefinitionStmt):
    """A call statement, optionally storing its result in a variable."""

    def __init__(self, result: Optional[Var], invoke_exp: InvokeExp, line: int = -1) -> None:
        super().__init__(result, invoke_exp, line)

    def __str__(self) -> str:
        if self.lvalue is None:
            return str(self.rvalue)
        return f"{self.lvalue} = {self.rvalue}"


class If(Stmt):
    """``if (condition) goto target``; falls through when false."""

    def __init__(self, condition: ConditionExp, target: Optional[Stmt] = None,
                 line: int = -1) -> None:
        super().__init__(line)
        self.condition = condition
        self.target = target

    def get_uses(self) -> List[Var]:
        return self.condition.get_uses()

    def jump_targets(self) -> List[Stmt]:
        return [self.target] if self.target is not None else []

    def __str__(self) -> str:
        return f"if ({self.condition}) goto {_target_str(self.target)}"


class Goto(Stmt):
    def __init__(self, target: Optional[Stmt] = None, line: int = -1) -> None:
        super().__init__(line)
        self.target = target

    def can_fall_through(self) -> bool:
        return False

    def jump_targets(self) -> List[Stmt]:
        return [self.target] if self.target is not None else []

    def __str__(self) -> str:
        return f"goto {_target_str(self.target)}"


class SwitchStmt(Stmt):
    """Multi-way branch on an integer variable.

    ``cases`` is an ordered list of ``(case_value, target)`` pairs.
    """

    def __init__(
        self,
        var: Var,
        cases: Sequence[Tuple[int, Optional[Stmt]]] = (),
        default_target: Optional[Stmt] = None,
        line: int = -1,
    ) -> None:
        super().__init__(line)
        self.var = var
        self.cases: List[Tuple[int, Optional[Stmt]]] = list(cases)
        self.default_target = default_target

    @property
    def case_values(self) -> List[int]:
        return [value for value, _ in self.cases]

    def get_uses(self) -> List[Var]:
        return [self.var]

    def can_fall_through(self) -> bool:
        return False

    def jump_targets(self) -> List[Stmt]:
        targets = [t for _, t in self.cases if t is not None]
        if self.default_target is not None:
            targets.append(self.default_target)
        return targets

    def __str__(self) -> str:
        cases = ", ".join(f"{v}->{_target_str(t)}" for v, t in self.cases)
        return f"switch ({self.var}) {{{cases}, default->{_target_str(self.default_target)}}}"


class Return(Stmt):
    def __init__(self, value: Optional[Exp] = None, line: int = -1) -> None:
        super().__init__(line)
        self.value = value

    def get_uses(self) -> List[Var]:
        return [] if self.value is None else self.value.get_uses()

    def can_fall_through(self) -> bool:
        return False

    def __str__(self) -> str:
        return "return" if self.value is None else f"return {self.value}"


def _target_str(target: Optional[Stmt]) -> str:
    return "?" if target is None or target.index < 0 else str(target.index)


# ---------------------------------------------------------------------------
# IR
# ---------------------------------------------------------------------------


class IR:
    """The body of one method, plus a store for analysis results.

    Attributes
    ----------
    name : str
        Method name (used in diagnostics).
    params : list[Var]
        Declared parameters, in order.
    stmts : list[Stmt]
        Statements; ``stmts[i].index == i``.
    file : str
        Source file name (used in diagnostics).
    """

    def __init__(
        self,
        name: str,
        params: Sequence[Var] = (),
        stmts: Sequence[Stmt] = (),
        file: str = "",
    ) -> None:
        self.name = name
        self.params: List[Var] = list(params)
        self.stmts: List[Stmt] = list(stmts)
        self.file = file
        self._results: Dict[str, Any] = {}

        seen = set()
        for i, stmt in enumerate(self.stmts):
            if id(stmt) in seen:
                raise IRError(
                    f"statement {stmt} appears twice in {name}",
                    ErrorCode.UNKNOWN_STATEMENT,
                )
            seen.add(id(stmt))
            stmt.index = i
        for stmt in self.stmts:
            for target in stmt.jump_targets():
                if id(target) not in seen:
                    raise IRError(
                        f"{stmt!r} in {name} jumps to a statement outside the body",
                        ErrorCode.DANGLING_TARGET,
                    )

    # ----- variables --------------------------------------------------------

    def variables(self) -> List[Var]:
        """All variables mentioned in the body, parameters first."""
        out: List[Var] = []
        seen = set()

        def _add(v: Var) -> None:
            if id(v) not in seen:
                seen.add(id(v))
                out.append(v)

        for p in self.params:
            _add(p)
        for stmt in self.stmts:
            d = stmt.get_def()
            if isinstance(d, Var):
                _add(d)
            for u in stmt.get_uses():
                _add(u)
        return out

    # ----- result store -----------------------------------------------------

    def store_result(self, analysis_id: str, result: Any) -> None:
        self._results[analysis_id] = result

    def has_result(self, analysis_id: str) -> bool:
        return analysis_id in self._results

    def get_result(self, analysis_id: str) -> Any:
        """Return the stored result of ``analysis_id``.

        Raises
        ------
        ConfigurationError
            If that analysis has not been run on this IR.
        """
        try:
            return self._results[analysis_id]
        except KeyError:
            raise ConfigurationError(
                f"result of analysis '{analysis_id}' is not available for "
                f"method {self.name}; schedule it before its dependents",
                ErrorCode.MISSING_RESULT,
            ) from None

    def clear_results(self) -> None:
        self._results.clear()

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.stmts)

    def __len__(self) -> int:
        return len(self.stmts)

    def __repr__(self) -> str:
        return f"IR({self.name!r}, params={len(self.params)}, stmts={len(self.stmts)})"
