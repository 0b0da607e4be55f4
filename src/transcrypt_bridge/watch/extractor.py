"""Turn a Transcrypt run manifest into files the bundler should watch."""

import os
from pathlib import Path
from typing import Set

from ..logging import get_logger
from .manifest import ManifestReadError, load_run_manifest, manifest_path

logger = get_logger(__name__)


def extract_watch_set(output_dir: Path, base_name: str, project_root: Path) -> Set[Path]:
    """
    Collect the absolute paths of every project module in the last run.

    Args:
        output_dir: Absolute Transcrypt output folder
        base_name: Source file name without extension
        project_root: Folder relative manifest paths are resolved against

    Returns:
        Absolute module paths; empty if the manifest could not be used
    """
    path = manifest_path(output_dir, base_name)
    try:
        manifest = load_run_manifest(path)
    except ManifestReadError as exc:
        logger.warning(
            f"Unable to load Transcrypt project file after build: {exc}\n"
            "WARNING: Source files were not added to the watch list."
        )
        return set()

    watched = set()
    for module in manifest.source_modules():
        source = Path(module.source)
        if not source.is_absolute():
            source = Path(project_root) / source
        watched.add(Path(os.path.normpath(source)))

    skipped = len(manifest.modules) - len(watched)
    logger.debug(f"Watching {len(watched)} modules from {path} ({skipped} internal or repeated skipped)")
    return watched
