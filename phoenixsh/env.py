"""The shell's environment: an ordered table of variables."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

_LEADING_INT = re.compile(r"[\t\n\v\f\r ]*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Read a leading decimal integer the way the C library does; 0 if none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def shlvl_value(value: str | None) -> str | None:
    """Return the shell level one above ``value``, or None when it is unset."""
    if value is None:
        return None
    return str(_atoi(value) + 1)


class Environment:
    """Variables in insertion order; a variable may exist without a value."""

    def __init__(self) -> None:
        self._vars: dict[str, str | None] = {}

    @classmethod
    def from_envp(cls, envp: Iterable[str]) -> "Environment":
        """Build an environment from ``KEY=VALUE`` strings.

        The entry ``_`` is dropped, SHLVL is raised by one and OLDPWD is kept
        without a value. Only the text up to the next ``=`` forms the value.
        """
        env = cls()
        for line in envp:
            parts = [part for part in line.split("=") if part]
            if not parts:
                continue
            key = parts[0]
            if key == "_":
                continue
            value: str | None = parts[1] if len(parts) > 1 else None
            if value is not None:
                if key == "SHLVL":
                    value = shlvl_value(value)
                elif key.startswith("OLDPWD"):
                    value = None
            env._vars.setdefault(key, value)
        return env

    def get(self, key: str) -> str | None:
        """Return the value of ``key``, or None if it is unset or has no value."""
        return self._vars.get(key)

    def set(self, key: str, value: str | None) -> None:
        """Give ``key`` a value, adding it at the end if it is new."""
        self._vars[key] = value

    def unset(self, key: str) -> None:
        """Remove ``key``; removing a missing variable does nothing."""
        self._vars.pop(key, None)

    def items(self) -> list[tuple[str, str | None]]:
        """Return the variables as ``(key, value)`` pairs in order."""
        return list(self._vars.items())

    def to_envp(self) -> list[str]:
        """Render the variables as strings for a child process."""
        return [key if value is None else f"{key}={value}" for key, value in self._vars.items()]

    def __contains__(self, key: object) -> bool:
        return key in self._vars

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)