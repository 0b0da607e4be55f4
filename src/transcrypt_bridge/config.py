"""
User-facing plugin configuration and the built-in defaults it overrides.

Projects customise how Transcrypt is run by adding an object under the
``parcel-transformer-transcrypt`` key of their ``package.json``::

    "parcel-transformer-transcrypt": {
        "command": "python3.9 -m transcrypt",
        "arguments": ["--nomin", "--map", "--verbose", "--outdir .build"],
        "transcryptVersion": "3.9",
        "watchAllFiles": true
    }

Every field is optional; anything left out falls back to the defaults below.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .logging import get_logger

logger = get_logger(__name__)

PACKAGE_KEY = "parcel-transformer-transcrypt"

TOOLCHAIN_NAME = "transcrypt"
RUNTIME_NAME = "python"

DEFAULT_COMMAND = "python -m transcrypt"

# --build is deliberately absent: with several .py entry points each run
# would wipe the previous run's output.
DEFAULT_ARGUMENTS: Tuple[str, ...] = (
    "--nomin",   # the bundler minifies
    "--map",     # the bundler consumes and merges source maps
    "--verbose",
)

# Relative to the project root.
OUTPUT_DIR = ".build"
# Relative to the source file; where Transcrypt writes before --outdir existed.
LEGACY_OUTPUT_DIR = "__target__"

_KNOWN_KEYS = {
    "command": "command",
    "transcryptVersion": "transcrypt_version",
    "watchAllFiles": "watch_all_files",
    "arguments": "arguments",
    "strictVersionMatch": "strict_version_match",
}


@dataclass(frozen=True)
class PluginConfig:
    command: Optional[str] = None
    transcrypt_version: Optional[str] = None
    watch_all_files: bool = True
    arguments: Optional[Tuple[str, ...]] = None
    strict_version_match: bool = True

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "PluginConfig":
        """Build a config from the JSON object stored under PACKAGE_KEY."""
        if mapping is None:
            return cls()
        if not isinstance(mapping, Mapping):
            raise ConfigurationError(
                f"'{PACKAGE_KEY}' in package.json must be an object, got {type(mapping).__name__}"
            )

        for key in mapping:
            if key not in _KNOWN_KEYS:
                logger.warning(f"Ignoring unknown '{PACKAGE_KEY}' setting: '{key}'")

        command = _optional_str(mapping, "command")
        version = _optional_str(mapping, "transcryptVersion")
        watch_all = _bool(mapping, "watchAllFiles", True)
        strict = _bool(mapping, "strictVersionMatch", True)

        arguments = mapping.get("arguments")
        if arguments is not None:
            if not isinstance(arguments, (list, tuple)) or not all(isinstance(a, str) for a in arguments):
                raise ConfigurationError(
                    f"'{PACKAGE_KEY}/arguments' in package.json must be a list of strings"
                )
            arguments = tuple(arguments)

        return cls(
            command=command,
            transcrypt_version=version,
            watch_all_files=watch_all,
            arguments=arguments,
            strict_version_match=strict,
        )


def _optional_str(mapping: Mapping[str, Any], key: str) -> Optional[str]:
    value = mapping.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"'{PACKAGE_KEY}/{key}' in package.json must be a string")
    return value


def _bool(mapping: Mapping[str, Any], key: str, default: bool) -> bool:
    value = mapping.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{PACKAGE_KEY}/{key}' in package.json must be true or false")
    return value


def load_package_config(project_root: Path) -> Optional[Mapping[str, Any]]:
    """
    Read the plugin section of ``<project_root>/package.json``.

    Returns:
        The mapping stored under PACKAGE_KEY, or None when there is no
        package.json or it has no such key (defaults apply).

    Raises:
        ConfigurationError: If package.json exists but is not valid JSON
    """
    package_json = Path(project_root) / "package.json"
    if not package_json.is_file():
        logger.debug(f"No package.json at {package_json}; using defaults")
        return None

    try:
        with open(package_json, 'r', encoding='utf-8') as f:
            contents = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Unable to read {package_json}: {exc}") from exc

    if not isinstance(contents, dict) or PACKAGE_KEY not in contents:
        return None
    return contents[PACKAGE_KEY]
