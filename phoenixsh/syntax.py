"""Checking a token list for open quotes and misplaced operators."""

from __future__ import annotations

from collections.abc import Iterable

from .tokens import Token, TokenType, redirector_at

_PREFIX = "phoenix: syntax error near unexpected token `"


class ShellSyntaxError(Exception):
    """A command line the shell refuses to run.

    ``token`` is the text shown between the quotes of the message, or None
    for an unterminated quote.
    """

    exit_status = 258

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.token = token


def _kind(value: str | None) -> int:
    """The operator a token's text starts with, as a number; 0 for none."""
    if value is None:
        return 0
    kind = redirector_at(value, 0)
    return int(kind) if kind is not None else 0


def _is_redirection(kind: int) -> bool:
    return TokenType.INPUT <= kind <= TokenType.HEREDOC


def _unexpected(kind: int, text: str | None) -> ShellSyntaxError:
    if _is_redirection(kind):
        shown = "newline"
    elif kind == TokenType.PIPE:
        shown = "|"
    else:
        shown = text or ""
    return ShellSyntaxError(f"{_PREFIX}{shown}'", shown)


def quotes_balanced(value: str | None) -> bool:
    """True when every quote opened in ``value`` is closed again."""
    if value is None:
        return True
    open_quote: str | None = None
    for ch in value:
        if ch not in "'\"":
            continue
        if open_quote is None:
            open_quote = ch
        elif open_quote == ch:
            open_quote = None
    return open_quote is None


def check_syntax(tokens: Iterable[Token]) -> None:
    """Raise ShellSyntaxError when pipes and redirections are misplaced."""
    tokens = list(tokens)
    if not tokens:
        return
    if tokens[0].type == TokenType.PIPE:
        raise _unexpected(0, None)
    pos = 0
    while pos < len(tokens):
        nxt = tokens[pos + 1] if pos + 1 < len(tokens) else None
        after = tokens[pos + 2] if pos + 2 < len(tokens) else None
        first = _kind(tokens[pos].value)
        second = _kind(nxt.value) if nxt is not None else 0
        if first and nxt is None:
            raise _unexpected(first, None)
        if first == TokenType.PIPE and _is_redirection(second) and after is not None:
            pos += 2
            continue
        if first == TokenType.PIPE and second == TokenType.PIPE:
            raise _unexpected(first, nxt.value)
        if first and second and after is None:
            raise _unexpected(first, nxt.value)
        if _is_redirection(first) and _is_redirection(second):
            raise _unexpected(0, nxt.value)
        pos += 1


def validate(tokens: Iterable[Token]) -> list[Token]:
    """Check quotes and operators; return the tokens unchanged when valid."""
    tokens = list(tokens)
    for token in tokens:
        if not quotes_balanced(token.value):
            raise ShellSyntaxError("open quotes")
    check_syntax(tokens)
    return tokens