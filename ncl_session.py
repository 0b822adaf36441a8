"""
NCL Session

Drives the lexer, parser, code generator and JIT over a sequence of
top-level units. A session never stops on a bad unit: errors are recorded as
diagnostics and processing resumes with the next unit.
"""

import itertools
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from codegen import CodeGenerator
from ncl_errors import Diagnostic, NclError, ParseError
from ncl_jit import ExecutionEnvironment, JITOptions, JITOrchestrator
from ncl_lexer import Lexer, TokenKind
from ncl_parser import Parser


@dataclass
class UnitResult:
    """Outcome of one successfully processed top-level unit"""
    kind: str                      # "definition", "extern" or "expression"
    name: str
    value: Optional[float] = None
    ir: str = ""

    def format(self) -> str:
        return f"Result: {self.value:f}"


Event = Union[UnitResult, Diagnostic]


class Session:
    """One live module, one JIT, many units"""

    def __init__(self, options: Optional[JITOptions] = None,
                 reporter: Optional[Callable[[Event], None]] = None):
        self.options = options or JITOptions()
        self.reporter = reporter

        self.codegen = CodeGenerator(opt_level=self.options.opt_level,
                                     verify=self.options.verify)
        self.env = ExecutionEnvironment()
        self.jit = JITOrchestrator(self.codegen, self.env, self.options)

        for library in self.options.libraries:
            self.env.load_library(library)

        self.anon_counter = itertools.count(1)
        self.results: List[UnitResult] = []
        self.errors: List[Diagnostic] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.env.close()

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    def parser_for(self, lexer: Lexer) -> Parser:
        """A parser sharing this session's anonymous wrapper numbering"""
        return Parser(lexer, self.anon_counter)

    # ========================================================================
    # Driving
    # ========================================================================

    def step(self, parser: Parser) -> bool:
        """Process one top-level unit. Returns False once the input has ended."""
        tok = parser.current
        if tok.kind in (TokenKind.EOF, TokenKind.CLOSE):
            return False
        if tok.is_char(";"):
            parser.next_token()
            return True

        try:
            if tok.kind == TokenKind.DEF:
                self.handle_definition(parser)
            elif tok.kind == TokenKind.EXTERN:
                self.handle_extern(parser)
            else:
                self.handle_expression(parser)
        except ParseError as e:
            self._record_error(e)
            # Skip the offending token and resume
            parser.next_token()
        except NclError as e:
            self._record_error(e)
        return True

    def run(self, lexer: Lexer) -> List[UnitResult]:
        parser = self.parser_for(lexer)
        while self.step(parser):
            pass
        return self.results

    def evaluate(self, source: str) -> List[UnitResult]:
        """Run every unit in source and return the results it produced"""
        start = len(self.results)
        self.run(Lexer.from_string(source))
        return self.results[start:]

    # ========================================================================
    # Units
    # ========================================================================

    def handle_definition(self, parser: Parser):
        func = parser.parse_definition()
        llvm_func = self.codegen.generate_function(func)
        ir = str(llvm_func) if self.options.emit_ir else ""
        self._record(UnitResult("definition", func.name, ir=ir))

    def handle_extern(self, parser: Parser):
        proto = parser.parse_extern()
        llvm_func = self.codegen.generate_prototype(proto)
        ir = str(llvm_func) if self.options.emit_ir else ""
        self._record(UnitResult("extern", proto.name, ir=ir))

    def handle_expression(self, parser: Parser):
        func = parser.parse_toplevel_expr()
        value = self.jit.execute(func)
        self._record(UnitResult("expression", func.name, value, ir=self.jit.last_ir))

    def _record(self, result: UnitResult):
        self.results.append(result)
        if self.reporter is not None:
            self.reporter(result)

    def _record_error(self, error: NclError):
        diagnostic = Diagnostic.from_error(error)
        self.errors.append(diagnostic)
        if self.reporter is not None:
            self.reporter(diagnostic)
