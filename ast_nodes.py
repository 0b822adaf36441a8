"""
NCL AST Node Definitions

Complete AST for the NCL language. Every value is a double, so nodes carry no
type information. Nodes are frozen; children are held in tuples.
"""

from dataclasses import dataclass, field
from typing import Tuple, Union
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class BinaryOp(Enum):
    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    # Comparison
    LT = "<"
    GT = ">"


# Higher binds tighter. Tokens missing from the table are not operators.
BINOP_PRECEDENCE = {
    "<": 0,
    ">": 0,
    "+": 10,
    "-": 10,
    "*": 20,
    "/": 20,
}


# ============================================================================
# Expression Nodes
# ============================================================================

@dataclass(frozen=True)
class Expr:
    """Base class for expressions"""
    pass


@dataclass(frozen=True)
class NumberLiteral(Expr):
    value: float


@dataclass(frozen=True)
class VariableRef(Expr):
    name: str


@dataclass(frozen=True)
class BinaryExpr(Expr):
    op: BinaryOp
    left: Expr
    right: Expr


@dataclass(frozen=True)
class CallExpr(Expr):
    callee: str
    args: Tuple[Expr, ...] = ()


@dataclass(frozen=True)
class IfExpr(Expr):
    condition: Expr
    then_branch: Expr
    else_branch: Expr


@dataclass(frozen=True)
class ForExpr(Expr):
    """for var = start, condition, step in body"""
    var_name: str
    start: Expr
    condition: Expr
    step: Expr
    body: Expr


# ============================================================================
# Top-level Nodes
# ============================================================================

@dataclass(frozen=True)
class Prototype:
    """Function name and positional parameter names"""
    name: str
    params: Tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)

    def __repr__(self):
        return f"{self.name}({' '.join(self.params)})"


@dataclass(frozen=True)
class FunctionDef:
    prototype: Prototype
    body: Expr
    is_anonymous: bool = field(default=False, compare=False)

    @property
    def name(self) -> str:
        return self.prototype.name


TopLevel = Union[FunctionDef, Prototype]
