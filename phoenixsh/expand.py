"""Variable expansion and quote removal."""

from __future__ import annotations

import string
from collections.abc import Iterable
from typing import Protocol

from .tokens import Token, is_quote, is_space

_OUTSIDE, _SINGLE, _DOUBLE = 0, 1, 2
_TRIGGERS = frozenset("'\"$")


class _Lookup(Protocol):
    def get(self, key: str) -> str | None: ...


def _is_name_char(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalnum())


class _Scan:
    """One pass over a word, building its expanded text."""

    def __init__(self, text: str, env: _Lookup, exit_status: int) -> None:
        self.text = text
        self.env = env
        self.exit_status = exit_status
        self.i = 0
        self.quote = _OUTSIDE
        self.parts: list[str] = []
        self.touched = False

    def ch(self, offset: int = 0) -> str:
        j = self.i + offset
        return self.text[j] if j < len(self.text) else ""

    def emit(self, text: str) -> None:
        self.parts.append(text)
        self.touched = True

    def track_quotes(self) -> None:
        if self.ch() == "'" and self.quote != _DOUBLE:
            if self.quote == _OUTSIDE:
                self.quote = _SINGLE
                self.i += 1
            if self.ch() == "'" and self.quote == _SINGLE:
                self.quote = _OUTSIDE
                self.i += 1
        if self.ch() == '"' and self.quote != _SINGLE:
            if self.quote == _OUTSIDE:
                self.quote = _DOUBLE
                self.i += 1
            if self.ch() == '"' and self.quote == _DOUBLE:
                self.quote = _OUTSIDE
                self.i += 1

    def take_one(self) -> None:
        self.emit(self.ch())
        self.i += 1

    def variable(self) -> None:
        nxt = self.ch(1)
        if nxt == "" or is_space(nxt):
            self.emit("$")
            self.i += 1
            return
        self.i += 1
        if nxt in string.digits or nxt == '"':
            self.i += 1
            return
        end = self.i
        while end < len(self.text) and _is_name_char(self.text[end]):
            end += 1
        name = self.text[self.i:end]
        self.i = end
        value = self.env.get(name)
        if value is not None:
            if value.startswith("="):
                value = value[1:]
            self.emit(value)

    def dollar(self) -> None:
        nxt = self.ch(1)
        if nxt == "?":
            self.emit(str(self.exit_status))
            self.i += 2
        elif nxt == "!":
            self.i += 2
        elif nxt in ("\\", "%"):
            if nxt == "\\":
                self.emit("$")
                self.i += 2
            self.take_one()
        elif nxt != "'":
            self.variable()
        else:
            self.take_one()

    def join(self) -> None:
        if self.ch() == "$" and self.quote != _SINGLE:
            self.dollar()
        else:
            self.take_one()

    def run(self) -> str | None:
        while self.ch():
            self.track_quotes()
            c = self.ch()
            if c and (
                (self.quote == _OUTSIDE and c != " " and not is_quote(c))
                or (self.quote == _SINGLE and c != "'")
                or (self.quote == _DOUBLE and c != '"')
            ):
                self.join()
            elif self.quote == _OUTSIDE and c == " ":
                return self.text
        return "".join(self.parts) if self.touched else None


class Expander:
    """Expands ``$`` references and strips quotes using an environment."""

    def __init__(self, env: _Lookup, exit_status: int) -> None:
        self.env = env
        self.exit_status = exit_status

    def expand_value(self, value: str | None) -> str | None:
        """Expand one word; None means it expanded to nothing at all."""
        if value is None or not any(ch in _TRIGGERS for ch in value):
            return value
        return _Scan(value, self.env, self.exit_status).run()

    def expand_tokens(self, tokens: Iterable[Token]) -> list[Token]:
        """Return new tokens with every word expanded."""
        return [Token(self.expand_value(token.value), token.type) for token in tokens]


def expand(tokens: Iterable[Token], env: _Lookup, exit_status: int) -> list[Token]:
    """Expand a token list.

    A line made of a single ``$`` word that expands to nothing yields an
    empty list: there is nothing to run.
    """
    tokens = list(tokens)
    lone_dollar = len(tokens) == 1 and bool(tokens[0].value) and tokens[0].value.startswith("$")
    expanded = Expander(env, exit_status).expand_tokens(tokens)
    if lone_dollar and expanded[0].value is None:
        return []
    return expanded