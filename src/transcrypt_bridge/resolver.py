"""
Effective configuration resolution.

Combines the built-in defaults, the user's package.json overrides and the
installed Transcrypt version into the one configuration used for a single
source file. Every step returns new values; the defaults in ``config`` are
tuples and are never modified.

Transcrypt 3.9 introduced ``--outdir``. Older releases always write to a
``__target__`` folder next to the source file, so the output location is
chosen from OUTPUT_STRATEGIES by version rather than by separate code paths.
"""

import os
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Union

from .config import (
    DEFAULT_ARGUMENTS,
    DEFAULT_COMMAND,
    LEGACY_OUTPUT_DIR,
    OUTPUT_DIR,
    PACKAGE_KEY,
    PluginConfig,
)
from .errors import ConfigurationError, ToolchainMissingError, VersionMismatchError
from .logging import get_logger
from .toolchain.command import derive_runtime_command, names_toolchain, split_command
from .toolchain.version import MISSING_TOOLCHAIN, ToolKind, Version, resolve_version

logger = get_logger(__name__)

OUTDIR_MIN_VERSION = Version(3, 9)

_OUTDIR_INLINE = re.compile(r'^--outdir(?:=|\s+)(.*)$', re.DOTALL)
_DECLARED_VERSION = re.compile(r'^\d+\.\d+(\.\d+)?$')


@dataclass(frozen=True)
class OutputStrategy:
    """Where a Transcrypt release writes its output and how it is told so."""
    name: str
    accepts_outdir: bool        # whether --outdir may be passed
    default_dir: str            # relative to the project root if accepts_outdir, else to the source dir


# Ordered newest first; the first entry whose minimum version is met wins.
OUTPUT_STRATEGIES: Tuple[Tuple[Version, OutputStrategy], ...] = (
    (OUTDIR_MIN_VERSION, OutputStrategy("project-outdir", True, OUTPUT_DIR)),
    (Version(0, 0), OutputStrategy("source-target", False, LEGACY_OUTPUT_DIR)),
)


@dataclass(frozen=True)
class EffectiveConfig:
    """Fully merged settings for one Transcrypt invocation."""
    command: str                        # e.g. "python3.9 -m transcrypt"
    arguments: Tuple[str, ...]          # passed in order, before the source file
    output_dir: str                     # relative to the source file's folder, posix form
    toolchain_version: Version
    watch_all_files: bool = True

    def absolute_output_dir(self, source_file: Path) -> Path:
        return Path(os.path.abspath(os.path.join(Path(source_file).parent, self.output_dir)))


def strategy_for(version: Version) -> OutputStrategy:
    for minimum, strategy in OUTPUT_STRATEGIES:
        if version >= minimum:
            return strategy
    return OUTPUT_STRATEGIES[-1][1]


def supports_outdir(version: Version) -> bool:
    return strategy_for(version).accepts_outdir


def validate_command(command: str) -> str:
    """Reject command strings that cannot be running Transcrypt."""
    if not names_toolchain(command):
        raise ConfigurationError(
            f"Config 'command' key in {PACKAGE_KEY} does not appear to be valid: '{command}'\n"
            f"The value for {PACKAGE_KEY}/command in package.json needs to name transcrypt, "
            f"e.g. '{DEFAULT_COMMAND}'. Stopping build."
        )
    return command


def normalize_declared_version(text: str) -> Version:
    """Validate a user-declared 'transcryptVersion' and reduce it to major.minor."""
    if not _DECLARED_VERSION.match(text.strip()):
        raise ConfigurationError(
            f"Config 'transcryptVersion' key in {PACKAGE_KEY} is not a valid version: '{text}'\n"
            "Use the form major.minor or major.minor.patch, e.g. '3.9'."
        )
    return Version.parse(text)


def _check_installed(version: Optional[Version], command: str) -> Version:
    if version is None:
        raise ConfigurationError(
            f"Unable to determine the installed Transcrypt version using '{command}'.\n"
            f"Check {PACKAGE_KEY}/command in package.json, or declare the version "
            f"with {PACKAGE_KEY}/transcryptVersion."
        )
    if version == MISSING_TOOLCHAIN:
        raise ToolchainMissingError(derive_runtime_command(command))
    return version


def detect_toolchain_version(command: str, strict: bool = True) -> Version:
    """
    Probe the installed Transcrypt and check it matches its Python.

    Raises:
        ConfigurationError: If the Transcrypt version cannot be determined
        ToolchainMissingError: If Python reports the transcrypt module is missing
        VersionMismatchError: If strict and the Python version differs
    """
    toolchain = _check_installed(resolve_version(command, ToolKind.TOOLCHAIN), command)
    runtime = resolve_version(command, ToolKind.RUNTIME)
    if runtime != toolchain:
        if strict:
            raise VersionMismatchError(runtime or "unknown", toolchain)
        logger.warning(
            f"Python version {runtime or 'unknown'} does not match Transcrypt version {toolchain}; "
            "continuing because strictVersionMatch is off"
        )
    return toolchain


def resolve_toolchain_version(
    user_config: PluginConfig,
    command: str,
    detected_version: Optional[Version] = None,
) -> Version:
    """A declared version wins over one already detected, which wins over probing now."""
    if user_config.transcrypt_version is not None:
        return normalize_declared_version(user_config.transcrypt_version)
    if detected_version is not None:
        return _check_installed(detected_version, command)
    return detect_toolchain_version(command, strict=user_config.strict_version_match)


def _unquote(value: str) -> str:
    try:
        parts = split_command(value)
    except ValueError as exc:
        raise ConfigurationError(f"Unable to parse '--outdir {value}': {exc}") from exc
    if len(parts) != 1:
        raise ConfigurationError(
            f"'--outdir' in {PACKAGE_KEY}/arguments needs exactly one folder, got '{value}'"
        )
    return parts[0]


def split_outdir(arguments: Tuple[str, ...]) -> Tuple[Tuple[str, ...], Optional[str]]:
    """
    Separate any --outdir setting from the other arguments.

    Accepts ``"--outdir X"``, ``"--outdir=X"`` and ``"--outdir", "X"``.

    Returns:
        Tuple of (arguments without --outdir, first outdir value or None)
    """
    remaining: List[str] = []
    values: List[str] = []
    items = iter(arguments)
    for arg in items:
        stripped = arg.strip()
        if stripped == "--outdir":
            value = next(items, None)
            if value is None:
                raise ConfigurationError(f"'--outdir' in {PACKAGE_KEY}/arguments is missing its folder")
            values.append(_unquote(value))
            continue
        match = _OUTDIR_INLINE.match(stripped)
        if match:
            values.append(_unquote(match.group(1)))
            continue
        remaining.append(arg)

    if len(values) > 1:
        logger.warning(f"Multiple --outdir arguments given; using '{values[0]}' and ignoring {values[1:]}")
    return tuple(remaining), (values[0] if values else None)


def relative_outdir(source_dir: Path, project_root: Path, root_relative: str) -> str:
    """Re-express a project-root-relative folder relative to the source file's folder."""
    target = os.path.abspath(os.path.join(project_root, root_relative))
    return Path(os.path.relpath(target, source_dir)).as_posix()


def place_output_dir(
    arguments: Tuple[str, ...],
    version: Version,
    source_dir: Path,
    project_root: Path,
) -> Tuple[Tuple[str, ...], str]:
    """
    Decide the output folder and make the argument list agree with it.

    Returns:
        Tuple of (new arguments, output folder relative to source_dir)
    """
    remaining, user_outdir = split_outdir(arguments)
    strategy = strategy_for(version)

    if not strategy.accepts_outdir:
        if user_outdir is not None:
            logger.warning(
                f"Transcrypt {version} does not support --outdir; ignoring '--outdir {user_outdir}'. "
                f"Output will be written to '{strategy.default_dir}' next to the source file."
            )
        return remaining, strategy.default_dir

    outdir = relative_outdir(source_dir, project_root, user_outdir or strategy.default_dir)
    return remaining + (f"--outdir {shlex.quote(outdir)}",), outdir


def check_output_dir(output_dir: Path, source_dir: Path, project_root: Path) -> None:
    """Refuse output folders that Transcrypt would clobber source files in."""
    for label, protected in (("source file folder", source_dir), ("project root", project_root)):
        if os.path.normcase(str(output_dir)) == os.path.normcase(str(protected)):
            raise ConfigurationError(
                f"Transcrypt output folder can not be the same as the {label}!\n"
                f"--Transcrypt output folder: {output_dir}\n"
                f"--{label.capitalize()}: {protected}\n"
                "\nContinuing could cause a loss of source content so stopping build.\n"
                f"(Try configuring a different Transcrypt output folder in {PACKAGE_KEY}/arguments.)"
            )


def resolve_config(
    user_config: Union[PluginConfig, Mapping[str, Any], None],
    source_file: Union[Path, str],
    project_root: Union[Path, str],
    detected_version: Optional[Version] = None,
) -> EffectiveConfig:
    """
    Merge defaults, user overrides and version behaviour for one source file.

    Args:
        user_config: Parsed or raw user settings; None means all defaults
        source_file: The .py file being transformed
        project_root: The bundler's project root
        detected_version: A Transcrypt version already probed by the caller

    Returns:
        The EffectiveConfig to run Transcrypt with

    Raises:
        ConfigurationError: On an invalid command, version or output folder
    """
    if not isinstance(user_config, PluginConfig):
        user_config = PluginConfig.from_mapping(user_config)

    source_path = Path(os.path.abspath(source_file))
    root = Path(os.path.abspath(project_root))
    source_dir = source_path.parent

    command = DEFAULT_COMMAND
    if user_config.command is not None:
        command = validate_command(user_config.command)

    version = resolve_toolchain_version(user_config, command, detected_version)

    # A user argument list replaces the defaults outright.
    base_arguments = DEFAULT_ARGUMENTS if user_config.arguments is None else tuple(user_config.arguments)
    arguments, output_dir = place_output_dir(base_arguments, version, source_dir, root)

    config = EffectiveConfig(
        command=command,
        arguments=arguments,
        output_dir=output_dir,
        toolchain_version=version,
        watch_all_files=user_config.watch_all_files,
    )
    check_output_dir(config.absolute_output_dir(source_path), source_dir, root)

    logger.debug(f"Effective configuration for {source_path}: {config}")
    return config
