"""
Transcrypt toolchain access: command derivation, version probing and invocation.
"""

from .command import derive_runtime_command, derive_toolchain_command, names_toolchain, split_command
from .version import MISSING_TOOLCHAIN, ToolKind, Version, parse_version_output, resolve_version
from .invocation import CapturedOutput, build_argv, build_command_line, run_toolchain

__all__ = [
    "derive_runtime_command",
    "derive_toolchain_command",
    "names_toolchain",
    "split_command",
    "MISSING_TOOLCHAIN",
    "ToolKind",
    "Version",
    "parse_version_output",
    "resolve_version",
    "CapturedOutput",
    "build_argv",
    "build_command_line",
    "run_toolchain",
]
