"""
NCL Error Types

Every failure that aborts a single top-level unit is an NclError. The session
catches these at the unit boundary, records a diagnostic and carries on with
the next unit.
"""

from dataclasses import dataclass
from typing import Optional


class NclError(Exception):
    """Base exception for errors that abort the current unit"""

    category = "Error"

    def __init__(self, message: str, line: Optional[int] = None,
                 column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


class CompileError(NclError):
    """Front-end or code generation error"""
    category = "CompileError"


class ParseError(CompileError):
    """Unexpected token where a production required another"""
    category = "SyntaxError"


class UnknownSymbolError(CompileError):
    """Call to a function that is not declared"""
    category = "UnknownSymbol"


class ArityMismatchError(CompileError):
    """Argument count or parameter names disagree with the prototype"""
    category = "ArityMismatch"


class RedefinitionError(CompileError):
    """A function that already has a body is given another one"""
    category = "RedefinitionError"


class VerificationError(CompileError):
    """LLVM rejected the generated IR"""
    category = "VerificationError"


class ExecutionError(NclError):
    """The execution environment could not load or find a symbol"""
    category = "ExecutionError"


@dataclass
class Diagnostic:
    """A recorded error, formatted the way the CLI prints it"""
    category: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def from_error(cls, error: NclError) -> "Diagnostic":
        return cls(error.category, error.message, error.line, error.column)

    def format(self) -> str:
        if self.line is not None:
            return f"Line {self.line}:{self.column} - {self.category}: {self.message}"
        return f"{self.category}: {self.message}"

    def __str__(self):
        return self.format()
