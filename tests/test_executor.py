import os
import stat
import sys

import pytest

from phoenixsh.env import Environment
from phoenixsh.executor import Executor, resolve_command, status_from_returncode
from phoenixsh.expand import expand
from phoenixsh.tokens import split_line
from phoenixsh.tree import CommandNode, build_tree


def make_env():
    return Environment.from_envp([f"PATH={os.environ.get('PATH', '/usr/bin:/bin')}"])


def parse(line, env):
    return build_tree(expand(split_line(line), env, 0))


def reader_of(lines):
    it = iter(lines)
    return lambda prompt: next(it, None)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_status_from_returncode_normal_exit():
    assert status_from_returncode(0) == 0
    assert status_from_returncode(7) == 7


def test_status_from_returncode_signals():
    assert status_from_returncode(-2) == 130
    assert status_from_returncode(-3) == 131
    assert status_from_returncode(-11) == 0


def test_resolve_command_searches_path(tmp_path):
    tool = tmp_path / "tool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR)
    assert resolve_command("tool", f"::{tmp_path}") == f"{tmp_path}/tool"


def test_resolve_command_unchanged_when_missing(tmp_path):
    assert resolve_command("nothing_here", str(tmp_path)) == "nothing_here"
    assert resolve_command("nothing_here", None) == "nothing_here"
    assert resolve_command(None, str(tmp_path)) is None


def test_resolve_command_keeps_runnable_path(tmp_path):
    tool = tmp_path / "tool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR)
    assert resolve_command(str(tool), "/nowhere") == str(tool)


def test_output_redirection(workdir):
    env = make_env()
    executor = Executor(env)
    assert executor.run(parse("echo hello > out.txt", env)) == 0
    assert (workdir / "out.txt").read_text() == "hello\n"


def test_append_redirection(workdir):
    env = make_env()
    executor = Executor(env)
    assert executor.run(parse("echo one >> log", env)) == 0
    assert executor.run(parse("echo two >> log", env)) == 0
    assert (workdir / "log").read_text() == "one\ntwo\n"


def test_non_last_output_is_created_empty(workdir):
    env = make_env()
    assert Executor(env).run(parse("echo hi > a > b", env)) == 0
    assert (workdir / "a").read_text() == ""
    assert (workdir / "b").read_text() == "hi\n"


def test_redirection_only_creates_file(workdir):
    env = make_env()
    assert Executor(env).run(parse("> made", env)) == 0
    assert (workdir / "made").exists()


def test_pipeline(workdir):
    env = make_env()
    executor = Executor(env)
    assert executor.run(parse("printf abc | tr a-z A-Z > out", env)) == 0
    assert (workdir / "out").read_text() == "ABC"


def test_pipeline_status_is_last_command(workdir):
    env = make_env()
    executor = Executor(env)
    assert executor.run(parse("false | true", env)) == 0
    assert executor.run(parse("true | false", env)) == 1
    assert executor.exit_status == 1


def test_exit_status_kept(workdir):
    env = make_env()
    executor = Executor(env)
    assert executor.run(parse('sh -c "exit 7"', env)) == 7
    assert executor.exit_status == 7
    assert executor.run(None) == 7


def test_missing_input_file(workdir, capfd):
    env = make_env()
    status = Executor(env).run(parse("cat < missing", env))
    assert status == 1
    assert "phoenix: missing: No such file or directory" in capfd.readouterr().err


def test_command_not_found(workdir, capfd):
    env = make_env()
    status = Executor(env).run(parse("definitely_not_a_cmd_xyz", env))
    assert status == 127
    assert "phoenix: definitely_not_a_cmd_xyz: command not found" in capfd.readouterr().err


def test_directory_is_reported(workdir, capfd):
    env = make_env()
    node = CommandNode(cmd=str(workdir), args=[str(workdir)])
    assert Executor(env).run(node) == 126
    assert ": is a directory" in capfd.readouterr().err


def test_missing_path_with_slash(workdir, capfd):
    env = make_env()
    assert Executor(env).run(parse("./nope", env)) == 127
    assert "phoenix: ./nope: No such file or directory" in capfd.readouterr().err


def test_signal_quit_reported(workdir, capfd):
    env = make_env()
    code = "import os, signal; os.kill(os.getpid(), signal.SIGQUIT)"
    node = CommandNode(cmd=sys.executable, args=[sys.executable, "-c", code])
    assert Executor(env).run(node) == 131
    assert "Quit: 3" in capfd.readouterr().err


def test_builtin_runs_in_place(workdir, capfd):
    env = make_env()
    calls = []

    def hello(args, environment, stdout):
        calls.append((args, environment))
        environment.set("SEEN", "1")
        stdout.write("hi\n")
        return 4

    executor = Executor(env, {"hello": hello})
    assert executor.run(parse("hello a b", env)) == 4
    assert calls[0][0] == ["hello", "a", "b"]
    assert calls[0][1] is env
    assert env.get("SEEN") == "1"
    assert capfd.readouterr().out == "hi\n"


def test_builtin_with_redirection_uses_copy(workdir):
    env = make_env()

    def hello(args, environment, stdout):
        environment.set("SEEN", "1")
        stdout.write("hi\n")
        return 0

    assert Executor(env, {"hello": hello}).run(parse("hello > out", env)) == 0
    assert (workdir / "out").read_text() == "hi\n"
    assert env.get("SEEN") is None


def test_builtin_in_pipeline(workdir):
    env = make_env()

    def hello(args, environment, stdout):
        stdout.write("hi\n")
        return 0

    status = Executor(env, {"hello": hello}).run(parse("hello | tr a-z A-Z > out", env))
    assert status == 0
    assert (workdir / "out").read_text() == "HI\n"


def test_heredoc_feeds_command(workdir):
    env = make_env()
    tree = parse("cat << EOF > out", env)
    executor = Executor(env)
    assert executor.collect_heredocs(tree, reader_of(["one", "two", "EOF", "ignored"])) is True
    heredoc_file = tree.redirections[0].file_name
    assert (workdir / heredoc_file).exists()
    assert executor.run(tree) == 0
    assert (workdir / "out").read_text() == "one\ntwo\n"
    assert not (workdir / heredoc_file).exists()


def test_heredoc_stops_at_end_of_input(workdir):
    env = make_env()
    tree = parse("cat << END > out", env)
    executor = Executor(env)
    assert executor.collect_heredocs(tree, reader_of(["only"])) is True
    assert executor.run(tree) == 0
    assert (workdir / "out").read_text() == "only\n"


def test_heredoc_interrupted(workdir):
    env = make_env()
    tree = parse("cat << EOF", env)

    def interrupt(prompt):
        raise KeyboardInterrupt

    executor = Executor(env)
    assert executor.collect_heredocs(tree, interrupt) is False
    assert executor.exit_status == 1
    assert not (workdir / tree.redirections[0].file_name).exists()