"""
Installed Python and Transcrypt version detection.

Transcrypt is compiled against one specific Python release, so both the
interpreter and the transpiler are probed and reduced to a major.minor pair.
Parsing is kept separate from process handling so the grammars below can be
tested against captured output without spawning anything.
"""

import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..config import TOOLCHAIN_NAME
from ..logging import get_logger
from .command import derive_runtime_command, derive_toolchain_command, split_command

logger = get_logger(__name__)


class ToolKind(Enum):
    RUNTIME = "python"
    TOOLCHAIN = "transcrypt"

    @classmethod
    def coerce(cls, kind: Union["ToolKind", str]) -> "ToolKind":
        """Accept a ToolKind or a loose name such as 'Python' or 'transcrypt'."""
        if isinstance(kind, ToolKind):
            return kind
        lowered = kind.strip().lower()
        if lowered.startswith('t'):
            return cls.TOOLCHAIN
        if lowered.startswith(('p', 'r')):
            return cls.RUNTIME
        raise ValueError(f"Unknown tool kind: {kind!r}")


@dataclass(frozen=True, order=True)
class Version:
    """
    A major.minor release. Components are compared and printed as integers,
    so "3.09" and "3.9" are the same release and both print as "3.9".
    """
    major: int
    minor: int

    _PATTERN = re.compile(r'^\s*(\d+)\.(\d+)(?:\.\d+)?\s*$')

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse 'major.minor' or 'major.minor.patch'; the patch is discarded."""
        match = cls._PATTERN.match(text or "")
        if not match:
            raise ValueError(f"Not a major.minor[.patch] version: {text!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


# Runtime present, Transcrypt module absent.
MISSING_TOOLCHAIN = Version(0, 0)

# Output grammars, matched case-insensitively; group 1 is major.minor and the
# patch is discarded. Leading zeros are dropped: "3.09.1" resolves to 3.9.
#   runtime:   "Python 3.9.7"
#   toolchain: "Transcrypt (TM) Python to JavaScript Small Sane Subset Transpiler Version 3.9.0"
VERSION_PATTERNS = {
    ToolKind.RUNTIME: re.compile(r'python\s+(\d+\.\d{1,2})\.\d{1,2}', re.IGNORECASE),
    ToolKind.TOOLCHAIN: re.compile(r'transcrypt\b.*?\bversion\s+(\d+\.\d{1,2})\.\d{1,2}', re.IGNORECASE),
}

PROBE_FLAGS = {
    ToolKind.RUNTIME: "--version",
    ToolKind.TOOLCHAIN: "--help",
}

MISSING_MODULE_MARKER = f"No module named {TOOLCHAIN_NAME}"


def parse_version_output(output: Optional[str], kind: Union[ToolKind, str]) -> Optional[Version]:
    """Return the first major.minor version in the tool output, or None."""
    if not output:
        return None
    match = VERSION_PATTERNS[ToolKind.coerce(kind)].search(output)
    if not match:
        return None
    return Version.parse(match.group(1))


def probe_command(command: Optional[str], kind: Union[ToolKind, str]) -> Optional[str]:
    """Build the diagnostic command line used to ask a tool for its version."""
    kind = ToolKind.coerce(kind)
    if kind is ToolKind.TOOLCHAIN:
        base = derive_toolchain_command(command)
    else:
        base = derive_runtime_command(command)
    if base is None:
        return None
    return f"{base} {PROBE_FLAGS[kind]}"


def resolve_version(command: Optional[str], kind: Union[ToolKind, str]) -> Optional[Version]:
    """
    Detect the installed version of Python or Transcrypt.

    Args:
        command: The configured Transcrypt command string
        kind: Which tool to probe

    Returns:
        The major.minor version, MISSING_TOOLCHAIN when Python reports the
        transcrypt module is absent, or None when the version could not be
        determined. Never raises.
    """
    kind = ToolKind.coerce(kind)
    probe = probe_command(command, kind)
    if probe is None:
        logger.debug(f"Cannot derive a {kind.value} command from '{command}'")
        return None

    try:
        argv = split_command(probe)
    except ValueError as exc:
        logger.warning(f"Unable to parse the command '{probe}': {exc}")
        return None

    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        if MISSING_MODULE_MARKER in (exc.stderr or "") or MISSING_MODULE_MARKER in (exc.stdout or ""):
            return MISSING_TOOLCHAIN
        logger.warning(f"There was a problem running the command: '{probe}' (exit status {exc.returncode})")
        return None
    except OSError as exc:
        logger.warning(f"There was a problem running the command: '{probe}': {exc}")
        return None

    # Older interpreters print their version on stderr.
    version = parse_version_output(f"{proc.stdout or ''}\n{proc.stderr or ''}", kind)
    if version is None:
        logger.warning(f"No {kind.value} version found in the output of '{probe}'")
    else:
        logger.debug(f"Detected {kind.value} {version} via '{probe}'")
    return version
