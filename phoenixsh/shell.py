"""The interactive shell: reading lines, parsing them and running them."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Optional

from .env import Environment
from .executor import Builtin, Executor
from .expand import expand
from .syntax import ShellSyntaxError, validate
from .tokens import split_line
from .tree import build_tree

try:
    import termios
except ImportError:  # pragma: no cover - platforms without terminals
    termios = None  # type: ignore[assignment]

ReadLine = Callable[[str], Optional[str]]

COLOR_ORANGE = "\033[38;5;208m"
COLOR_RESET = "\033[0m"
PROMPT = f"{COLOR_ORANGE}🐦‍🔥 Phoenix Prompt> {COLOR_RESET}"


def _set_echoctl(enable: bool) -> None:
    """Turn the echoing of control characters such as ``^C`` on or off."""
    if termios is None or not hasattr(termios, "ECHOCTL"):
        return
    try:
        if not sys.stdin.isatty():
            return
        fd = sys.stdin.fileno()
        attrs = termios.tcgetattr(fd)
        if enable:
            attrs[3] |= termios.ECHOCTL
        else:
            attrs[3] &= ~termios.ECHOCTL
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
    except (OSError, ValueError, termios.error):
        pass


@contextmanager
def _control_chars_hidden() -> Iterator[None]:
    _set_echoctl(False)
    try:
        yield
    finally:
        _set_echoctl(True)


def _stderr(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


class Shell:
    """Parses and runs command lines against one environment."""

    def __init__(self, env: Environment, builtins: Mapping[str, Builtin] | None = None) -> None:
        self.env = env
        self.executor = Executor(env, builtins)
        self.heredoc_reader: ReadLine | None = None

    @property
    def exit_status(self) -> int:
        """The status of the last command line."""
        return self.executor.exit_status

    @exit_status.setter
    def exit_status(self, value: int) -> None:
        self.executor.exit_status = value

    def process_line(self, line: str) -> int:
        """Run one command line and return the resulting exit status."""
        if not line:
            return self.exit_status
        tokens = split_line(line)
        if not tokens:
            return self.exit_status
        try:
            validate(tokens)
        except ShellSyntaxError as exc:
            if exc.message:
                _stderr(exc.message + "\n")
            self.exit_status = ShellSyntaxError.exit_status
            return self.exit_status
        tokens = expand(tokens, self.env, self.exit_status)
        if not tokens:
            self.exit_status = 0
            return self.exit_status
        try:
            tree = build_tree(tokens)
        except ValueError:
            return self.exit_status
        if self.executor.collect_heredocs(tree, self.heredoc_reader):
            self.executor.run(tree)
        return self.exit_status

    def repl(self, read_line: ReadLine) -> int:
        """Read and run lines until ``read_line`` returns None; return the status.

        An interrupt while waiting for input abandons the line and prompts again.
        """
        self.heredoc_reader = read_line
        while True:
            try:
                with _control_chars_hidden():
                    line = read_line(PROMPT)
            except KeyboardInterrupt:
                _stderr("\n")
                continue
            if line is None:
                _stderr("exit\n")
                return self.exit_status
            self.process_line(line)


def _input_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def main(argv: list[str] | None = None) -> int:
    """Start the interactive shell with the current process environment."""
    del argv
    env = Environment.from_envp(f"{key}={value}" for key, value in os.environ.items())
    if sys.stdin.isatty():
        try:
            import readline  # noqa: F401  (line editing and history for input())
        except ImportError:
            pass
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    return Shell(env).repl(_input_line)


if __name__ == "__main__":
    raise SystemExit(main())