"""
Reading the run manifest Transcrypt writes next to its output.

After each run Transcrypt writes ``<outdir>/<module>.project``, a JSON file
whose ``modules`` array lists every Python module it compiled::

    {"options": {...}, "modules": [{"source": "src/app.py", "target": ...}, ...]}
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from ..logging import get_logger

logger = get_logger(__name__)

MANIFEST_SUFFIX = ".project"

# Transcrypt's own runtime support modules. Depending on the release the
# path appears as org/transcrypt/..., org\transcrypt\... or org.transcrypt.
INTERNAL_MODULE_PATTERN = re.compile(r'org[\\/.]transcrypt(?:[\\/.]|$)|(^|[\\/.])__runtime__(\.py)?$')


class ManifestReadError(Exception):
    """Raised when a run manifest is missing or not in the expected shape."""


@dataclass(frozen=True)
class ManifestModule:
    """One module Transcrypt processed."""
    source: str

    @property
    def is_internal(self) -> bool:
        return bool(INTERNAL_MODULE_PATTERN.search(self.source))


@dataclass(frozen=True)
class RunManifest:
    modules: List[ManifestModule]

    def source_modules(self) -> List[ManifestModule]:
        """Modules from the project, without Transcrypt's runtime support files."""
        return [module for module in self.modules if not module.is_internal]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        if not isinstance(data, dict) or not isinstance(data.get("modules"), list):
            raise ManifestReadError("manifest has no 'modules' list")

        modules = []
        for entry in data["modules"]:
            if not isinstance(entry, dict) or not isinstance(entry.get("source"), str):
                raise ManifestReadError(f"module entry without a 'source' path: {entry!r}")
            modules.append(ManifestModule(source=entry["source"]))
        return cls(modules=modules)


def manifest_path(output_dir: Path, base_name: str) -> Path:
    return Path(output_dir) / f"{base_name}{MANIFEST_SUFFIX}"


def load_run_manifest(path: Path) -> RunManifest:
    """
    Load and validate a run manifest.

    Raises:
        ManifestReadError: If the file is missing, unreadable or malformed
    """
    if not path.is_file():
        raise ManifestReadError(f"manifest not found: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError, RecursionError) as exc:
        raise ManifestReadError(f"unable to read {path}: {exc}") from exc

    manifest = RunManifest.from_dict(data)
    logger.debug(f"Loaded run manifest {path} with {len(manifest.modules)} modules")
    return manifest
