from pathlib import Path
from typing import Optional

import typer

from .config import DEFAULT_COMMAND, PluginConfig
from .errors import ConfigurationError, ToolchainExecutionError
from .host import DEVELOPMENT, PRODUCTION, BuildOptions, SourceAsset
from .logging import get_logger
from .resolver import resolve_config
from .toolchain.invocation import build_command_line
from .toolchain.version import MISSING_TOOLCHAIN, ToolKind, Version, resolve_version
from .transformer import load_config, transform

app = typer.Typer(help="transcrypt-bridge – run Transcrypt the way the bundler plugin does", no_args_is_help=True)


def _load(project_root: Path) -> Optional[PluginConfig]:
    logger = get_logger(__name__)
    try:
        return load_config(project_root)
    except ConfigurationError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=2) from exc


@app.command("transform")
def transform_command(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Python file to compile"),
    project_root: Path = typer.Option(Path("."), "--project-root", "-r", file_okay=False, help="Project root holding package.json"),
    mode: str = typer.Option(DEVELOPMENT, "--mode", "-m", help=f"Build mode: '{DEVELOPMENT}' or '{PRODUCTION}'"),
) -> None:
    """
    Compile SOURCE with Transcrypt and print the module the bundler would receive.

    In development mode the files that would be watched for changes are listed too.
    """
    logger = get_logger(__name__)
    if mode not in (DEVELOPMENT, PRODUCTION):
        logger.error(f"Invalid mode: {mode}. Must be '{DEVELOPMENT}' or '{PRODUCTION}'")
        raise typer.Exit(code=2)

    root = project_root.resolve()
    config = _load(root)
    asset = SourceAsset(file_path=source.resolve())

    try:
        transform(asset, config, BuildOptions(project_root=root, mode=mode), host_logger=logger)
    except ConfigurationError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=2) from exc
    except ToolchainExecutionError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(asset.code)
    for path in asset.watched:
        typer.echo(f"watching: {path}")


@app.command("show-config")
def show_config(
    source: Path = typer.Argument(..., dir_okay=False, help="Python file the configuration is for"),
    project_root: Path = typer.Option(Path("."), "--project-root", "-r", file_okay=False, help="Project root holding package.json"),
) -> None:
    """Print the effective Transcrypt configuration for SOURCE without running it."""
    logger = get_logger(__name__)
    root = project_root.resolve()
    config = _load(root)

    try:
        effective = resolve_config(config, source.resolve(), root)
    except ConfigurationError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=2) from exc

    typer.echo(f"command:            {effective.command}")
    typer.echo(f"arguments:          {' '.join(effective.arguments)}")
    typer.echo(f"transcrypt version: {effective.toolchain_version}")
    typer.echo(f"output folder:      {effective.absolute_output_dir(source.resolve())}")
    typer.echo(f"watch all files:    {effective.watch_all_files}")
    typer.echo(f"command line:       {build_command_line(effective, source.resolve(), root)}")


def _describe(version: Optional[Version]) -> str:
    if version is None:
        return "unknown"
    if version == MISSING_TOOLCHAIN:
        return "not installed"
    return str(version)


@app.command()
def versions(
    command: str = typer.Option(DEFAULT_COMMAND, "--command", "-c", help="Transcrypt command to probe"),
) -> None:
    """Report the Python and Transcrypt versions the command would use."""
    runtime = resolve_version(command, ToolKind.RUNTIME)
    toolchain = resolve_version(command, ToolKind.TOOLCHAIN)
    typer.echo(f"python:     {_describe(runtime)}")
    typer.echo(f"transcrypt: {_describe(toolchain)}")
    if runtime is None or toolchain is None or runtime != toolchain:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
