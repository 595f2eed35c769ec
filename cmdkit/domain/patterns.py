from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
import re
import shlex

CATCH_ALL = "*"


def command_line(command: str | Sequence[str]) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    # Only "*" is special; everything else matches literally.
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(rf"\A{body}\Z", re.DOTALL)


def matches(pattern: str, command: str) -> bool:
    if pattern == command:
        return True
    return _compile(pattern).match(command) is not None


def first_match(patterns: Sequence[str], command: str) -> str | None:
    """Return the first specific pattern matching ``command``, falling back to the catch-all."""
    for pattern in patterns:
        if pattern != CATCH_ALL and matches(pattern, command):
            return pattern
    if CATCH_ALL in patterns:
        return CATCH_ALL
    return None
