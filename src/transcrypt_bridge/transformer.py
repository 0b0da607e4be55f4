"""
Bundler transformer for Python sources.

Each .py asset is compiled by Transcrypt into the output folder, and the
asset itself is replaced with a one-line ES module re-exporting the
generated JavaScript. Reading the generated file back in is left to the
bundler, which resolves the re-export like any other import.
"""

import logging
import os
import posixpath
from pathlib import Path
from typing import List, Optional, Set, Union

from .config import PluginConfig, load_package_config
from .errors import ToolchainExecutionError
from .host import Asset, BuildOptions
from .logging import get_logger
from .resolver import EffectiveConfig, resolve_config
from .toolchain.invocation import build_command_line, run_toolchain
from .toolchain.version import Version
from .watch.extractor import extract_watch_set

logger = get_logger(__name__)

OUTPUT_TYPE = "js"


def load_config(project_root: Union[Path, str]) -> Optional[PluginConfig]:
    """Config-loading callback: the package.json overrides, or None for defaults."""
    mapping = load_package_config(Path(project_root))
    if mapping is None:
        return None
    return PluginConfig.from_mapping(mapping)


def import_path(output_dir: str, base_name: str) -> str:
    """Path of the generated module as seen from the source file's folder."""
    path = posixpath.join(output_dir, f"{base_name}.{OUTPUT_TYPE}")
    if not path.startswith("../"):
        path = f"./{path}"
    return path


def generated_code(path: str) -> str:
    return f'export * from "{path}";'


def watch_paths(config: EffectiveConfig, source_file: Path, project_root: Path) -> Set[Path]:
    """Files whose change should re-run Transcrypt for this source file."""
    if not config.watch_all_files:
        return {source_file}
    return extract_watch_set(config.absolute_output_dir(source_file), source_file.stem, project_root)


def transform(
    asset: Asset,
    config: Optional[PluginConfig],
    options: BuildOptions,
    host_logger: Optional[logging.Logger] = None,
    detected_version: Optional[Version] = None,
) -> List[Asset]:
    """
    Compile one Python asset with Transcrypt and turn it into a JS re-export.

    Args:
        asset: The host asset for the .py file
        config: User overrides from load_config, or None
        options: Project root and build mode
        host_logger: Logger supplied by the host; defaults to this module's logger
        detected_version: Transcrypt version already probed by the host

    Returns:
        A single-element list holding the rewritten asset

    Raises:
        ConfigurationError: If the configuration is unusable
        ToolchainExecutionError: If Transcrypt fails
    """
    log = host_logger or logger
    source_file = Path(os.path.abspath(asset.file_path))
    project_root = Path(os.path.abspath(options.project_root))

    effective = resolve_config(config, source_file, project_root, detected_version)
    log.info(build_command_line(effective, source_file, project_root))

    try:
        output = run_toolchain(effective, source_file, project_root)
    except ToolchainExecutionError as exc:
        if exc.stdout:
            log.error(exc.stdout)
        raise

    if output.stdout:
        log.info(output.stdout)
    log.info("Transcrypt build complete!")

    if options.is_development:
        for path in sorted(watch_paths(effective, source_file, project_root)):
            asset.invalidate_on_file_change(path)

    asset.set_code(generated_code(import_path(effective.output_dir, source_file.stem)))
    asset.type = OUTPUT_TYPE
    return [asset]
