"""Running a command tree: pipes, redirections, here-documents and programs."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Optional, TextIO

from .env import Environment
from .tokens import TokenType
from .tree import CommandNode, Node, PipeNode, Redirection, mark_last

Builtin = Callable[[list, Environment, TextIO], int]
ReadLine = Callable[[str], Optional[str]]

_OUTPUT_FLAGS = {
    TokenType.OUTPUT: os.O_CREAT | os.O_WRONLY | os.O_TRUNC,
    TokenType.OUTPUT_APPEND: os.O_CREAT | os.O_WRONLY | os.O_APPEND,
}


def status_from_returncode(returncode: int) -> int:
    """Turn a child's return code into the shell's exit status.

    A child killed by SIGINT or SIGQUIT gives 128 plus the signal number;
    any other signal gives 0.
    """
    if returncode >= 0:
        return returncode
    sig = -returncode
    if sig in (signal.SIGINT, signal.SIGQUIT):
        return 128 + sig
    return 0


def resolve_command(cmd: str | None, path: str | None) -> str | None:
    """Find ``cmd`` on ``path``; return it unchanged when it runs as given or is not found."""
    if cmd is None:
        return None
    if os.access(cmd, os.F_OK) and os.access(cmd, os.X_OK):
        return cmd
    if path is None:
        return cmd
    for directory in filter(None, path.split(":")):
        candidate = f"{directory}/{cmd}"
        if os.access(candidate, os.X_OK):
            return candidate
    return cmd


class _RedirectionError(Exception):
    """A redirection target could not be opened."""


class _Job:
    """Something started that will yield a return code."""

    def __init__(self, wait: Callable[[], int]) -> None:
        self._wait = wait

    @classmethod
    def done(cls, returncode: int) -> "_Job":
        return cls(lambda: returncode)

    def wait(self) -> int:
        return self._wait()


def _error(message: str) -> None:
    sys.stderr.write(message + "\n")
    sys.stderr.flush()


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _report_signal(returncode: int) -> None:
    if returncode == -signal.SIGINT:
        _write_stdout("\n")
    elif returncode == -signal.SIGQUIT:
        _error("Quit: 3")
    elif returncode == -signal.SIGSEGV:
        _error("Segmentation fault: 11")
    elif returncode == -signal.SIGBUS:
        _error("Bus error: 10")


@contextmanager
def _sigint_ignored() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


def _commands(node: Node | None) -> list[CommandNode]:
    """The commands of a tree from left to right."""
    if node is None:
        return []
    if isinstance(node, PipeNode):
        return _commands(node.left) + _commands(node.right)
    return [node]


def _heredocs(tree: Node | None) -> Iterator[Redirection]:
    for node in _commands(tree):
        yield from (r for r in node.redirections if r.type == TokenType.HEREDOC)


def _remove_heredoc_files(tree: Node | None) -> None:
    for redirection in _heredocs(tree):
        try:
            os.unlink(redirection.file_name)
        except OSError:
            pass


def _argv(node: CommandNode) -> list[str]:
    """Arguments up to the first word that expanded to nothing."""
    args: list[str] = []
    for arg in node.args:
        if arg is None:
            break
        args.append(arg)
    return args


def _copy_env(env: Environment) -> Environment:
    clone = Environment()
    for key, value in env.items():
        clone.set(key, value)
    return clone


def _access_message(name: str, exc: OSError) -> str:
    if not os.access(name, os.F_OK):
        reason = "No such file or directory"
    elif not all(os.access(name, mode) for mode in (os.W_OK, os.R_OK, os.X_OK)):
        reason = "Permission denied"
    else:
        reason = exc.strerror or "cannot open"
    return f"phoenix: {name}: {reason}"


def _open_target(name: str, flags: int) -> int:
    try:
        return os.open(name, flags, 0o644)
    except OSError as exc:
        raise _RedirectionError(_access_message(name, exc)) from exc


def _replace(old: int | None, new: int) -> int:
    if old is not None:
        os.close(old)
    return new


def _open_redirections(redirections: list[Redirection]) -> tuple[int | None, int | None]:
    """Open every target in order; return the descriptors for stdin and stdout."""
    mark_last(redirections)
    stdin_fd: int | None = None
    stdout_fd: int | None = None
    try:
        for redirection in redirections:
            if redirection.type == TokenType.INPUT:
                fd = _open_target(redirection.file_name, os.O_RDONLY)
                if redirection.last:
                    stdin_fd = _replace(stdin_fd, fd)
                else:
                    os.close(fd)
            elif redirection.type in _OUTPUT_FLAGS:
                fd = _open_target(redirection.file_name, _OUTPUT_FLAGS[redirection.type])
                if redirection.last:
                    stdout_fd = _replace(stdout_fd, fd)
                else:
                    os.close(fd)
            elif redirection.type == TokenType.HEREDOC and redirection.last:
                try:
                    fd = os.open(redirection.file_name, os.O_RDONLY)
                except OSError as exc:
                    _error(f"open: {exc.strerror}")
                    continue
                stdin_fd = _replace(stdin_fd, fd)
    except BaseException:
        for fd in (stdin_fd, stdout_fd):
            if fd is not None:
                os.close(fd)
        raise
    return stdin_fd, stdout_fd


def _exec_failure(cmd: str | None) -> int:
    name = cmd or ""
    if cmd and "/" in cmd and os.access(cmd, os.F_OK):
        _error(f"phoenix: {name}: is a directory")
        return 126
    if cmd and "/" in cmd:
        _error(f"phoenix: {name}: No such file or directory")
    else:
        _error(f"phoenix: {name}: command not found")
    return 127


def _prompt(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


class Executor:
    """Runs command trees against an environment and a table of built-ins.

    A built-in is called as ``fn(args, env, stdout)`` and returns its exit
    status. Inside a pipeline or with redirections it works on a copy of the
    environment, so its changes do not last.
    """

    def __init__(self, env: Environment, builtins: Mapping[str, Builtin] | None = None) -> None:
        self.env = env
        self.builtins = dict(builtins or {})
        self.exit_status = 0

    def collect_heredocs(self, tree: Node | None, read_line: ReadLine | None = None) -> bool:
        """Read every here-document of ``tree`` into its file.

        Returns False when reading was interrupted; the status is then 1 and
        the collected files are removed.
        """
        reader = read_line or _prompt
        for node in _commands(tree):
            mark_last(node.redirections)
            for redirection in node.redirections:
                if redirection.type != TokenType.HEREDOC:
                    continue
                try:
                    self._write_heredoc(redirection, reader)
                except KeyboardInterrupt:
                    _write_stdout("\n")
                    self.exit_status = 1
                    _remove_heredoc_files(tree)
                    return False
                self.exit_status = 0
                if not redirection.last:
                    try:
                        os.unlink(redirection.file_name)
                    except OSError:
                        pass
        return True

    def run(self, tree: Node | None) -> int:
        """Run ``tree`` and return its exit status, which is also kept."""
        try:
            if tree is None:
                return self.exit_status
            if isinstance(tree, PipeNode):
                status = self._run_pipeline(tree)
            else:
                status = self._run_command(tree)
            self.exit_status = status
            return status
        finally:
            _remove_heredoc_files(tree)

    @staticmethod
    def _write_heredoc(redirection: Redirection, reader: ReadLine) -> None:
        try:
            handle = open(redirection.file_name, "w", encoding="utf-8")
        except OSError as exc:
            _error(f"open: {exc.strerror}")
            return
        with handle:
            while True:
                line = reader("> ")
                if line is None or line == redirection.key:
                    break
                handle.write(line + "\n")

    def _run_command(self, node: CommandNode) -> int:
        if not node.redirections and node.cmd in self.builtins:
            return self._call_builtin(node, self.env, sys.stdout)
        job = self._start(node, None, None, isolated=True)
        with _sigint_ignored():
            returncode = job.wait()
        _report_signal(returncode)
        return status_from_returncode(returncode)

    def _run_pipeline(self, tree: PipeNode) -> int:
        commands = _commands(tree)
        if not commands:
            return self.exit_status
        jobs: list[_Job] = []
        read_fd: int | None = None
        try:
            for position, node in enumerate(commands, start=1):
                if position < len(commands):
                    next_read, write_fd = os.pipe()
                else:
                    next_read, write_fd = None, None
                try:
                    jobs.append(self._start(node, read_fd, write_fd, isolated=True, threaded=True))
                finally:
                    for fd in (read_fd, write_fd):
                        if fd is not None:
                            os.close(fd)
                read_fd = next_read
        finally:
            if read_fd is not None:
                os.close(read_fd)
        with _sigint_ignored():
            codes = [job.wait() for job in jobs]
        for code in codes:
            if code == -signal.SIGPIPE:
                _write_stdout("\n")
        _report_signal(codes[-1])
        return status_from_returncode(codes[-1])

    def _start(
        self,
        node: CommandNode,
        stdin_fd: int | None,
        stdout_fd: int | None,
        isolated: bool,
        threaded: bool = False,
    ) -> _Job:
        opened: list[int] = []
        try:
            if node.redirections:
                try:
                    redir_in, redir_out = _open_redirections(node.redirections)
                except _RedirectionError as exc:
                    _error(str(exc))
                    return _Job.done(1)
                opened = [fd for fd in (redir_in, redir_out) if fd is not None]
                if redir_in is not None:
                    stdin_fd = redir_in
                if redir_out is not None:
                    stdout_fd = redir_out
                if node.cmd is None:
                    return _Job.done(0)
            if node.cmd in self.builtins:
                return self._start_builtin(node, stdout_fd, isolated, threaded)
            return self._start_program(node, stdin_fd, stdout_fd)
        finally:
            for fd in opened:
                os.close(fd)

    def _call_builtin(self, node: CommandNode, env: Environment, stdout: TextIO) -> int:
        return int(self.builtins[node.cmd](_argv(node), env, stdout))

    def _start_builtin(
        self, node: CommandNode, stdout_fd: int | None, isolated: bool, threaded: bool
    ) -> _Job:
        env = _copy_env(self.env) if isolated else self.env
        if stdout_fd is None:
            stream: TextIO = sys.stdout
        else:
            stream = os.fdopen(os.dup(stdout_fd), "w", encoding="utf-8", errors="surrogateescape")

        def work() -> int:
            cwd = os.getcwd() if isolated else None
            try:
                status = self._call_builtin(node, env, stream)
                stream.flush()
                return status
            except BrokenPipeError:
                return -signal.SIGPIPE
            finally:
                if stream is not sys.stdout:
                    try:
                        stream.close()
                    except BrokenPipeError:
                        pass
                if cwd is not None:
                    os.chdir(cwd)

        if not threaded:
            return _Job.done(work())
        result: list[int] = []
        thread = threading.Thread(target=lambda: result.append(work()), daemon=True)
        thread.start()

        def wait() -> int:
            thread.join()
            return result[0] if result else 1

        return _Job(wait)

    def _start_program(self, node: CommandNode, stdin_fd: int | None, stdout_fd: int | None) -> _Job:
        cmd = resolve_command(node.cmd, self.env.get("PATH"))
        if cmd is None:
            return _Job.done(_exec_failure(None))
        argv = _argv(node) or [cmd]
        executable = cmd if "/" in cmd else os.path.join(".", cmd)
        environment = {key: value for key, value in self.env.items() if value is not None}
        sys.stdout.flush()
        try:
            process = subprocess.Popen(
                argv,
                executable=executable,
                stdin=stdin_fd,
                stdout=stdout_fd,
                env=environment,
            )
        except (OSError, ValueError):
            return _Job.done(_exec_failure(cmd))
        return _Job(process.wait)