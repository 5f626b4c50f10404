"""Splitting a command line into word and operator tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_SPACES = frozenset(" \n\t\v\f\r")
_QUOTES = frozenset("'\"")


class TokenType(IntEnum):
    """Kinds of token and of tree node."""

    WORD = 0
    CMD = 1
    EXIT_STATUS = 2
    PIPE = 3
    INPUT = 4
    OUTPUT = 5
    OUTPUT_APPEND = 6
    HEREDOC = 7


@dataclass
class Token:
    """One piece of a command line."""

    value: str | None
    type: TokenType = TokenType.WORD


_OPERATORS = (
    ("|", TokenType.PIPE),
    (">>", TokenType.OUTPUT_APPEND),
    ("<<", TokenType.HEREDOC),
    ("<", TokenType.INPUT),
    (">", TokenType.OUTPUT),
)


def is_space(ch: str) -> bool:
    """True for the characters the shell treats as blanks."""
    return ch != "" and ch in _SPACES


def is_quote(ch: str) -> bool:
    """True for a single or double quote."""
    return ch != "" and ch in _QUOTES


def redirector_at(line: str, index: int) -> TokenType | None:
    """Return the operator starting at ``index``, or None if there is none."""
    for text, kind in _OPERATORS:
        if line.startswith(text, index):
            return kind
    return None


class _Splitter:
    def __init__(self, line: str) -> None:
        self.line = line
        self.index = 0
        self.tokens: list[Token] = []

    def ch(self, index: int) -> str:
        return self.line[index] if 0 <= index < len(self.line) else ""

    def _ends_quoted_part(self, index: int) -> bool:
        nxt = self.ch(index + 1)
        return nxt == "" or is_space(nxt) or redirector_at(self.line, index + 1) is not None

    def _scan_quoted(self, quote: str) -> None:
        """Advance through quoted text; stop on a closing quote that ends the word."""
        count = 1
        while self.index < len(self.line):
            if self.ch(self.index) == quote:
                count += 1
            if count % 2 == 0 and self._ends_quoted_part(self.index):
                break
            self.index += 1
            if count % 2 == 0 and is_quote(self.ch(self.index)):
                quote = self.ch(self.index)
                count = 1
                self.index += 1

    def word(self) -> None:
        start = self.index
        while (
            self.index < len(self.line)
            and not is_space(self.ch(self.index))
            and redirector_at(self.line, self.index) is None
        ):
            if is_quote(self.ch(self.index)):
                quote = self.ch(self.index)
                self.index += 1
                self._scan_quoted(quote)
            self.index += 1
        self.tokens.append(Token(self.line[start:self.index]))

    def operator(self) -> None:
        start = self.index
        kind = redirector_at(self.line, self.index)
        assert kind is not None
        if kind in (TokenType.OUTPUT_APPEND, TokenType.HEREDOC):
            self.index += 1
        self.tokens.append(Token(self.line[start:self.index + 1], kind))

    def quoted(self) -> None:
        start = self.index
        quote = self.ch(self.index)
        self.index += 1
        self._scan_quoted(quote)
        self.tokens.append(Token(self.line[start:self.index + 1]))

    def run(self) -> list[Token]:
        while self.index < len(self.line):
            c = self.ch(self.index)
            if not is_space(c) and redirector_at(self.line, self.index) is None and not is_quote(c):
                self.word()
            if self.ch(self.index) and redirector_at(self.line, self.index) is not None:
                self.operator()
            if is_quote(self.ch(self.index)):
                self.quoted()
            if self.ch(self.index):
                self.index += 1
        return self.tokens


def split_line(line: str) -> list[Token]:
    """Split ``line`` into tokens, keeping quotes inside the words they belong to."""
    return _Splitter(line).run()