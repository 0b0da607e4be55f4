"""Run Transcrypt as a child process for a single source file."""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List

from ..errors import ConfigurationError, ToolchainExecutionError
from ..logging import get_logger
from .command import split_command

if TYPE_CHECKING:
    from ..resolver import EffectiveConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class CapturedOutput:
    command_line: str
    stdout: str
    stderr: str
    elapsed_seconds: float


def source_argument(source_file: Path | str, project_root: Path | str) -> str:
    """The source path as Transcrypt receives it: relative to the project root, posix form."""
    relative = os.path.relpath(os.path.abspath(source_file), os.path.abspath(project_root))
    return Path(relative).as_posix()


def build_command_line(config: EffectiveConfig, source_file: Path | str, project_root: Path | str) -> str:
    """Display form of the invocation: command, arguments in order, then the source file."""
    return " ".join([
        config.command,
        *config.arguments,
        shlex.quote(source_argument(source_file, project_root)),
    ])


def build_argv(config: EffectiveConfig, source_file: Path | str, project_root: Path | str) -> List[str]:
    """
    The argv Transcrypt is started with: command tokens, argument tokens, source file.

    Raises:
        ConfigurationError: If the command or an argument has unbalanced quotes
    """
    argv: List[str] = []
    for fragment in (config.command, *config.arguments):
        try:
            argv.extend(split_command(fragment))
        except ValueError as exc:
            raise ConfigurationError(f"Unable to parse '{fragment}': {exc}") from exc
    argv.append(source_argument(source_file, project_root))
    return argv


def run_toolchain(config: EffectiveConfig, source_file: Path | str, project_root: Path | str) -> CapturedOutput:
    """
    Run Transcrypt and wait for it to finish.

    The working directory is always the project root: Transcrypt keys its
    output bookkeeping off the directory it runs in, and every entry point of
    a build has to agree on it. Output is decoded as UTF-8; undecodable bytes
    are replaced rather than failing a run that succeeded.

    Raises:
        ConfigurationError: If the command line cannot be parsed
        ToolchainExecutionError: If the process exits non-zero or cannot start
    """
    command_line = build_command_line(config, source_file, project_root)
    argv = build_argv(config, source_file, project_root)
    logger.debug(f"Running: {argv}")

    t0 = time.time()
    try:
        proc = subprocess.run(
            argv,
            cwd=str(project_root),
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise ToolchainExecutionError(command_line, None, stderr=str(exc)) from exc
    elapsed = time.time() - t0

    stdout = proc.stdout or ""
    stderr = proc.stderr or ""
    if proc.returncode != 0:
        logger.error(f"Transcrypt failed after {elapsed:.2f}s with status {proc.returncode}")
        raise ToolchainExecutionError(command_line, proc.returncode, stdout=stdout, stderr=stderr)

    logger.debug(f"Transcrypt finished in {elapsed:.2f}s")
    return CapturedOutput(
        command_line=command_line,
        stdout=stdout,
        stderr=stderr,
        elapsed_seconds=elapsed,
    )
