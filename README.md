# phoenixsh

A small interactive POSIX-style shell. It reads a line, splits it into
tokens, checks the syntax, expands variables and quotes, builds a command
tree and runs it.

Supported:

- pipelines: `ls -l | grep py | wc -l`
- redirections: `<`, `>`, `>>` and here-documents `<<`
- single and double quotes, `$NAME`, `$?` expansion
- built-in commands handed to the shell from Python; every other command is
  looked up on `PATH` and started as a program

## Installation

```
pip install .
```

## Running the shell

```
phoenixsh
```

The shell starts from the current process environment, with `SHLVL`
raised by one, `OLDPWD` kept without a value and `_` dropped. Ctrl-D at the
prompt prints `exit` and leaves with the last exit status. Ctrl-C abandons
the current line and prompts again. When Python's `readline` module is
available, line editing and history work at the prompt.

A syntax error (an unclosed quote, a misplaced `|` or redirection) is
reported and sets the status to 258. A command that cannot be found gives
127; a path that names a directory gives 126. A child killed by SIGINT or
SIGQUIT gives 128 plus the signal number.

## What it does not do

The `phoenixsh` command starts the shell with no built-in commands. `cd`,
`export`, `unset`, `exit`, `env`, `pwd` and `echo` are not provided by the
package: names such as `echo` or `pwd` run the programs of that name found
on `PATH`, and `cd`, `export`, `unset` and `exit` have no effect on the
shell itself. Built-ins have to be supplied from Python, as shown below.
There are no `&&`, `||`, `;`, subshells, globbing or job control.

## Using it from Python

```python
from phoenixsh.env import Environment
from phoenixsh.shell import Shell


def cd(args, env, stdout):
    import os
    os.chdir(args[1] if len(args) > 1 else env.get("HOME") or "/")
    return 0


env = Environment.from_envp(["PATH=/usr/bin:/bin", "GREETING=hello"])
shell = Shell(env, builtins={"cd": cd})
status = shell.process_line('echo "$GREETING world" > out.txt')
```

A built-in is called as `fn(args, env, stdout)` with the words of the
command (its name first), the `Environment` and a text stream to write to;
it returns its exit status. Run on its own without redirections it works
on the shell's environment; inside a pipeline or with redirections it gets
a copy, so its changes do not last.

`Shell.repl(read_line)` runs lines until `read_line(prompt)` returns
`None`; the same function reads here-document lines.

The stages can also be used on their own:

```python
from phoenixsh.env import Environment
from phoenixsh.tokens import split_line
from phoenixsh.syntax import validate
from phoenixsh.expand import expand
from phoenixsh.tree import build_tree
from phoenixsh.executor import Executor

env = Environment.from_envp(["PATH=/usr/bin:/bin"])
tokens = split_line("cat < input.txt | sort")
validate(tokens)
tokens = expand(tokens, env, exit_status=0)
tree = build_tree(tokens)

executor = Executor(env, builtins={})
if executor.collect_heredocs(tree):
    executor.run(tree)
```

`validate` raises `ShellSyntaxError` for unclosed quotes or misplaced pipes
and redirections. `build_tree` returns `CommandNode` and `PipeNode` objects
(pipes nest to the left) and raises `ValueError` when a redirection has no
target. `Environment` keeps variables in order and offers `get`, `set`,
`unset`, `items` and `to_envp`.

## Tests

```
pip install ".[test]"
pytest
```