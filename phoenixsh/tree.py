"""Building the command tree from a token list."""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import ClassVar, Union

from .tokens import Token, TokenType

_heredoc_counter = itertools.count(1)

_INPUTS = (TokenType.INPUT, TokenType.HEREDOC)
_OUTPUTS = (TokenType.OUTPUT, TokenType.OUTPUT_APPEND)


def is_redirection(token_type: int) -> bool:
    """True for the input, output, append and here-document operators."""
    return TokenType.INPUT <= token_type <= TokenType.HEREDOC


@dataclass
class Redirection:
    """One redirection of a command.

    For a here-document ``key`` is the delimiter and ``file_name`` the
    temporary file its lines are collected in. ``last`` marks the redirection
    that finally decides where input or output goes.
    """

    type: TokenType
    file_name: str
    key: str | None = None
    last: bool = False


@dataclass
class CommandNode:
    """A simple command: its name, its arguments and its redirections.

    ``args`` holds every word, the command name first; a word that expanded
    to nothing is kept as None.
    """

    cmd: str | None = None
    args: list[str | None] = field(default_factory=list)
    redirections: list[Redirection] = field(default_factory=list)

    type: ClassVar[TokenType] = TokenType.CMD


@dataclass
class PipeNode:
    """Two commands joined by a pipe; ``left`` writes, ``right`` reads."""

    left: "Node | None" = None
    right: "Node | None" = None

    type: ClassVar[TokenType] = TokenType.PIPE


Node = Union[CommandNode, PipeNode]


def mark_last(redirections: Iterable[Redirection]) -> list[Redirection]:
    """Flag the last input and the last output redirection; return them all."""
    redirections = list(redirections)
    last_input = None
    last_output = None
    for redirection in redirections:
        if redirection.type in _INPUTS:
            last_input = redirection
        if redirection.type in _OUTPUTS:
            last_output = redirection
    if last_input is not None:
        last_input.last = True
    if last_output is not None:
        last_output.last = True
    return redirections


def _redirection(kind: TokenType, tokens: Iterator[Token]) -> Redirection:
    target = next(tokens, None)
    if target is None or target.value is None:
        raise ValueError(f"redirection {kind.name} has no target")
    if kind == TokenType.HEREDOC:
        file_name = f"{target.value}{next(_heredoc_counter)}"
        return Redirection(kind, file_name, key=target.value)
    next(_heredoc_counter)
    return Redirection(kind, target.value)


def _command(first: Token, tokens: Iterator[Token]) -> tuple[CommandNode, Token | None]:
    """Read one command; return it and the pipe token that ended it, if any."""
    node = CommandNode()
    token: Token | None = first
    while token is not None and token.type != TokenType.PIPE:
        if is_redirection(token.type):
            node.redirections.append(_redirection(TokenType(token.type), tokens))
        else:
            if node.cmd is None and token.value is not None:
                node.cmd = token.value
            node.args.append(token.value)
        token = next(tokens, None)
    return node, token


def build_tree(tokens: Iterable[Token]) -> Node | None:
    """Build the command tree; pipes nest to the left. None for no tokens.

    Raises ValueError when a redirection operator has no target word.
    """
    stream = iter(tokens)
    tree: Node | None = None
    token = next(stream, None)
    while token is not None:
        if token.type == TokenType.PIPE:
            tree = PipeNode(left=tree)
            token = next(stream, None)
            continue
        node, token = _command(token, stream)
        if isinstance(tree, PipeNode) and tree.left is not None and tree.right is None:
            tree.right = node
        else:
            tree = node
    return tree