#!/usr/bin/env python3
"""
NCL Language Parser

Recursive descent for the statement-level grammar and precedence climbing
for binary operators. One call to parse_toplevel() yields one unit:

    definition  ->  FunctionDef
    extern      ->  Prototype
    expression  ->  FunctionDef wrapped in a zero-argument __anon_expr_<n>

Usage: python ncl_parser.py <source_file>
"""

import itertools
import sys
from typing import Iterator, List, Optional

from ast_nodes import (
    BINOP_PRECEDENCE, BinaryExpr, BinaryOp, CallExpr, Expr, ForExpr,
    FunctionDef, IfExpr, NumberLiteral, Prototype, TopLevel, VariableRef
)
from ncl_errors import ParseError
from ncl_lexer import Lexer, Token, TokenKind


ANON_PREFIX = "__anon_expr"


class Parser:
    """Builds AST units from a token stream.

    The parser owns the current token. It is primed on construction, so
    `current` is always the first token not yet consumed by a production.
    """

    def __init__(self, lexer: Lexer, anon_counter: Optional[Iterator[int]] = None):
        self.lexer = lexer
        self.anon_counter = anon_counter if anon_counter is not None else itertools.count(1)
        self.current: Token = lexer.next_token()

    def next_token(self) -> Token:
        self.current = self.lexer.next_token()
        return self.current

    def _error(self, message: str) -> ParseError:
        tok = self.current
        return ParseError(f"{message}, got {tok.describe()}", tok.line, tok.column)

    def _expect_char(self, c: str, message: str):
        if not self.current.is_char(c):
            raise self._error(message)
        self.next_token()

    def _expect_kind(self, kind: TokenKind, message: str):
        if self.current.kind != kind:
            raise self._error(message)
        self.next_token()

    # ========================================================================
    # Top level
    # ========================================================================

    def parse_toplevel(self) -> TopLevel:
        """Parse one definition, extern or bare expression"""
        if self.current.kind == TokenKind.DEF:
            return self.parse_definition()
        if self.current.kind == TokenKind.EXTERN:
            return self.parse_extern()
        return self.parse_toplevel_expr()

    def parse_definition(self) -> FunctionDef:
        """definition ::= 'def' prototype expression"""
        self.next_token()  # eat def
        proto = self.parse_prototype()
        body = self.parse_expression()
        return FunctionDef(proto, body)

    def parse_extern(self) -> Prototype:
        """extern ::= 'extern' prototype"""
        self.next_token()  # eat extern
        return self.parse_prototype()

    def parse_toplevel_expr(self) -> FunctionDef:
        body = self.parse_expression()
        name = f"{ANON_PREFIX}_{next(self.anon_counter)}"
        return FunctionDef(Prototype(name, ()), body, is_anonymous=True)

    def parse_prototype(self) -> Prototype:
        """prototype ::= identifier '(' identifier* ')'"""
        if self.current.kind != TokenKind.IDENTIFIER:
            raise self._error("Expected function name in prototype")
        name = self.current.text
        self.next_token()

        self._expect_char("(", "Expected '(' in prototype")

        params: List[str] = []
        while self.current.kind == TokenKind.IDENTIFIER:
            params.append(self.current.text)
            self.next_token()

        self._expect_char(")", "Expected ')' in prototype")
        return Prototype(name, tuple(params))

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expression(self) -> Expr:
        """expression ::= primary (binop primary)*"""
        lhs = self.parse_primary()
        return self.parse_binop_rhs(0, lhs)

    def _token_precedence(self) -> int:
        if self.current.kind != TokenKind.CHAR:
            return -1
        return BINOP_PRECEDENCE.get(self.current.text, -1)

    def parse_binop_rhs(self, min_precedence: int, lhs: Expr) -> Expr:
        while True:
            precedence = self._token_precedence()
            if precedence < min_precedence:
                return lhs

            op = BinaryOp(self.current.text)
            self.next_token()  # eat binop
            rhs = self.parse_primary()

            # If the next operator binds tighter, let it take rhs first
            if precedence < self._token_precedence():
                rhs = self.parse_binop_rhs(precedence + 1, rhs)

            lhs = BinaryExpr(op, lhs, rhs)

    def parse_primary(self) -> Expr:
        tok = self.current
        if tok.kind == TokenKind.NUMBER:
            return self.parse_number()
        if tok.kind == TokenKind.IDENTIFIER:
            return self.parse_identifier()
        if tok.is_char("("):
            return self.parse_paren()
        if tok.kind == TokenKind.IF:
            return self.parse_if()
        if tok.kind == TokenKind.FOR:
            return self.parse_for()
        raise self._error("Unknown token when expecting an expression")

    def parse_number(self) -> NumberLiteral:
        node = NumberLiteral(self.current.value)
        self.next_token()
        return node

    def parse_identifier(self) -> Expr:
        """identifier | identifier '(' (expression (',' expression)*)? ')'"""
        name = self.current.text
        self.next_token()  # eat identifier

        if not self.current.is_char("("):
            return VariableRef(name)

        self.next_token()  # eat (
        args: List[Expr] = []
        if not self.current.is_char(")"):
            while True:
                args.append(self.parse_expression())
                if self.current.is_char(")"):
                    break
                if not self.current.is_char(","):
                    raise self._error("Expected ')' or ',' in argument list")
                self.next_token()
        self.next_token()  # eat )
        return CallExpr(name, tuple(args))

    def parse_paren(self) -> Expr:
        self.next_token()  # eat (
        expr = self.parse_expression()
        self._expect_char(")", "Expected ')'")
        return expr

    def parse_if(self) -> IfExpr:
        """'if' expression 'then' expression 'else' expression"""
        self.next_token()  # eat if
        cond = self.parse_expression()
        self._expect_kind(TokenKind.THEN, "Expected 'then'")
        then = self.parse_expression()
        self._expect_kind(TokenKind.ELSE, "Expected 'else'")
        otherwise = self.parse_expression()
        return IfExpr(cond, then, otherwise)

    def parse_for(self) -> ForExpr:
        """'for' identifier '=' expr ',' expr ',' expr 'in' expression"""
        self.next_token()  # eat for
        if self.current.kind != TokenKind.IDENTIFIER:
            raise self._error("Expected identifier after 'for'")
        var_name = self.current.text
        self.next_token()

        self._expect_char("=", "Expected '=' after for variable")
        start = self.parse_expression()
        self._expect_char(",", "Expected ',' after for start value")
        cond = self.parse_expression()
        self._expect_char(",", "Expected ',' after for condition")
        step = self.parse_expression()
        self._expect_kind(TokenKind.IN, "Expected 'in' after for step")
        body = self.parse_expression()
        return ForExpr(var_name, start, cond, step, body)


def parse_units(source: str) -> List[TopLevel]:
    """Parse every unit in source, skipping ';' separators.

    Raises ParseError on the first malformed unit.
    """
    parser = Parser(Lexer.from_string(source))
    units: List[TopLevel] = []
    while parser.current.kind not in (TokenKind.EOF, TokenKind.CLOSE):
        if parser.current.is_char(";"):
            parser.next_token()
            continue
        units.append(parser.parse_toplevel())
    return units


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 1:
        print("Usage: python ncl_parser.py <source_file>")
        return 1

    with open(argv[0], "r") as f:
        source = f.read()

    try:
        units = parse_units(source)
    except ParseError as e:
        print(f"Line {e.line}:{e.column} - {e.message}")
        return 1

    for unit in units:
        print(unit)
    print("Parse successful!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
