"""
NCL Lexer

Turns a character stream into tokens, one token per call to next_token().

Tokens:
    def extern if then else for in close   keywords
    [A-Za-z][A-Za-z0-9]*                   identifiers
    [0-9.]+                                numbers (longest valid prefix)
    any other character                    single-character token

Whitespace and '#' comments (to end of line) are skipped.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, TextIO


class TokenKind(Enum):
    EOF = auto()
    DEF = auto()
    EXTERN = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    CLOSE = auto()
    IDENTIFIER = auto()
    NUMBER = auto()
    CHAR = auto()


KEYWORDS = {
    "def": TokenKind.DEF,
    "extern": TokenKind.EXTERN,
    "if": TokenKind.IF,
    "then": TokenKind.THEN,
    "else": TokenKind.ELSE,
    "for": TokenKind.FOR,
    "in": TokenKind.IN,
    "close": TokenKind.CLOSE,
}

WHITESPACE = " \t\n\r\v\f"
DIGITS = "0123456789"

_NUMBER_PREFIX = re.compile(r"[0-9]*\.?[0-9]*")


def is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def is_alnum(c: str) -> bool:
    return is_alpha(c) or c in DIGITS


def parse_number_prefix(text: str) -> float:
    """Convert the longest valid numeric prefix of text, 0.0 if there is none.

    '1.2.3' -> 1.2, '5.' -> 5.0, '.' -> 0.0
    """
    prefix = _NUMBER_PREFIX.match(text).group(0)
    if prefix.strip(".") == "":
        return 0.0
    return float(prefix)


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str = ""
    value: Optional[float] = None
    line: int = 0
    column: int = 0

    def is_char(self, c: str) -> bool:
        return self.kind == TokenKind.CHAR and self.text == c

    def describe(self) -> str:
        if self.kind == TokenKind.EOF:
            return "end of input"
        if self.kind == TokenKind.NUMBER:
            return f"number {self.text}"
        if self.kind == TokenKind.IDENTIFIER:
            return f"identifier '{self.text}'"
        return f"'{self.text}'"


def _read_stream(stream: TextIO) -> Iterator[str]:
    while True:
        c = stream.read(1)
        if not c:
            return
        yield c


class Lexer:
    """Lazy tokenizer over a character iterator"""

    def __init__(self, chars: Iterator[str]):
        self._chars = iter(chars)
        self._last = " "
        self._at_eof = False
        self.line = 1
        self.column = 0

    @classmethod
    def from_string(cls, source: str) -> "Lexer":
        return cls(iter(source))

    @classmethod
    def from_stream(cls, stream: TextIO) -> "Lexer":
        """Read one character at a time so an interactive stream is not drained"""
        return cls(_read_stream(stream))

    def _read_char(self) -> Optional[str]:
        if self._at_eof:
            return None
        c = next(self._chars, None)
        if c is None:
            self._at_eof = True
            return None
        if c == "\n":
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        return c

    def next_token(self) -> Token:
        """Consume and classify the next lexeme"""
        while True:
            while self._last is not None and self._last in WHITESPACE:
                self._last = self._read_char()

            if self._last is None:
                return Token(TokenKind.EOF, line=self.line, column=self.column)

            line, column = self.line, self.column

            if is_alpha(self._last):
                text = self._last
                self._last = self._read_char()
                while self._last is not None and is_alnum(self._last):
                    text += self._last
                    self._last = self._read_char()
                kind = KEYWORDS.get(text, TokenKind.IDENTIFIER)
                return Token(kind, text, line=line, column=column)

            if self._last in DIGITS or self._last == ".":
                text = ""
                while self._last is not None and (self._last in DIGITS or self._last == "."):
                    text += self._last
                    self._last = self._read_char()
                return Token(TokenKind.NUMBER, text, parse_number_prefix(text),
                             line=line, column=column)

            if self._last == "#":
                # Comment runs to end of line, then lex whatever follows
                while self._last is not None and self._last not in "\n\r":
                    self._last = self._read_char()
                continue

            char = self._last
            self._last = self._read_char()
            return Token(TokenKind.CHAR, char, line=line, column=column)

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to and including the first EOF"""
        while True:
            token = self.next_token()
            yield token
            if token.kind == TokenKind.EOF:
                return
