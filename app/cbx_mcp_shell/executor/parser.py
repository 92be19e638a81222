"""
Command text parsing for policy checks.

This is token and operator matching only. Shell syntax is not interpreted;
the shell given in the profile does that when the command runs.
"""

import re
import shlex
from typing import Iterable, Optional


# Operators that start a new command, longest first so "&&" wins over "&"
CHAIN_OPERATORS = ("&&", "||", "&", "|", ";", "\n")

# Stripped from executable names so "format.exe" matches "format"
EXECUTABLE_EXTENSIONS = (".exe", ".com", ".cmd", ".bat", ".ps1", ".sh")

_PATH_SEPARATORS = re.compile(r"[\\/]")


def find_blocked_operator(command: str, operators: Iterable[str]) -> Optional[str]:
    """
    Return the first operator from `operators` present in the command.

    Matching is a plain substring search; quoting does not exempt an
    operator.
    """
    for operator in operators:
        if operator and operator in command:
            return operator
    return None


def split_command_segments(command: str) -> list[str]:
    """
    Split command text on chaining operators outside of quotes.

    "dir & del x.txt" -> ["dir", "del x.txt"]
    'echo "a; b"'     -> ['echo "a; b"']
    """
    segments: list[str] = []
    current: list[str] = []
    in_single_quote = False
    in_double_quote = False
    i = 0

    while i < len(command):
        char = command[i]
        if char == "'" and not in_double_quote:
            in_single_quote = not in_single_quote
        elif char == '"' and not in_single_quote:
            in_double_quote = not in_double_quote
        elif not in_single_quote and not in_double_quote:
            operator = next(
                (op for op in CHAIN_OPERATORS if command.startswith(op, i)), None
            )
            if operator:
                segments.append("".join(current).strip())
                current = []
                i += len(operator)
                continue
        current.append(char)
        i += 1

    segments.append("".join(current).strip())
    return [s for s in segments if s]


def tokenize(segment: str) -> list[str]:
    """
    Split one command segment into whitespace-delimited tokens.

    Backslashes are preserved (Windows paths). Unbalanced quotes fall back
    to a plain whitespace split instead of raising.
    """
    try:
        tokens = shlex.split(segment, posix=False)
    except ValueError:
        tokens = segment.split()
    return [_strip_quotes(t) for t in tokens]


def extract_command_name(segment: str) -> str:
    """
    Get the normalized executable name of a command segment.

    "C:\\Windows\\System32\\FORMAT.COM d:" -> "format"
    "& 'rm' -r x"                          -> "rm"
    """
    tokens = [t for t in tokenize(segment) if t not in ("&", ".")]
    if not tokens:
        return ""

    name = _PATH_SEPARATORS.split(tokens[0])[-1].lower()
    for ext in EXECUTABLE_EXTENSIONS:
        if name.endswith(ext) and len(name) > len(ext):
            return name[: -len(ext)]
    return name


def _strip_quotes(token: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token
