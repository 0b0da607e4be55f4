"""Derive runnable commands from the free-form 'command' setting."""

import os
import shlex
from typing import List, Optional

from ..config import RUNTIME_NAME, TOOLCHAIN_NAME

# POSIX quoting treats backslashes as escapes, which would mangle
# Windows paths such as C:\Python39\python.exe.
SHELL_POSIX = os.name != "nt"

_QUOTES = ("'", '"')


def split_command(command: str, posix: Optional[bool] = None) -> List[str]:
    """
    Split a command string into argv tokens using the platform's quoting rules.

    Raises:
        ValueError: If the quoting is unbalanced
    """
    if posix is None:
        posix = SHELL_POSIX
    parts = shlex.split(command, posix=posix)
    if not posix:
        parts = [part[1:-1] if len(part) >= 2 and part[0] == part[-1] and part[0] in _QUOTES else part
                 for part in parts]
    return parts


def _first_token(command: str) -> str:
    parts = command.split()
    return parts[0] if parts else ""


def names_toolchain(command: Optional[str]) -> bool:
    """Return True if the command string mentions Transcrypt at all."""
    return bool(command) and TOOLCHAIN_NAME in command


def derive_toolchain_command(command: Optional[str]) -> Optional[str]:
    """
    Work out how to invoke Transcrypt from a configured command string.

    ``/opt/bin/transcrypt --nomin`` -> ``/opt/bin/transcrypt``
    ``python3.9 -m transcrypt``     -> ``python3.9 -m transcrypt``
    ``env transcrypt``              -> ``transcrypt``

    Returns None when the string does not reference Transcrypt.
    """
    if not names_toolchain(command):
        return None

    token = _first_token(command)
    if token.endswith(TOOLCHAIN_NAME):
        return token
    if RUNTIME_NAME in token:
        return f"{token} -m {TOOLCHAIN_NAME}"
    return TOOLCHAIN_NAME


def derive_runtime_command(command: Optional[str]) -> str:
    """Return the Python interpreter named by the command, or plain 'python'."""
    if command:
        token = _first_token(command)
        if RUNTIME_NAME in token:
            return token
    return RUNTIME_NAME
