"""ralen command line interface."""

from __future__ import annotations

import asyncio
import shutil
import sys
from pathlib import Path

import aiohttp
import click

from ralen import __version__
from ralen.catalog import LANGUAGE_CATALOG, get_language
from ralen.config import Config
from ralen.errors import SYSTEM_ERROR_EXIT, USER_ERROR_EXIT, RalenError, log_error
from ralen.logging import configure_logging
from ralen.orchestrator import Orchestrator
from ralen.packages import add_package, remove_package
from ralen.projects import create_console_project
from ralen.registry import RuntimeRegistry
from ralen.runner import run_project
from ralen.shell import configure_path, remove_from_path
from ralen.types import LATEST


def _fail(message: str, code: int) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(code)


def _call(coro):
    """Run a coroutine, mapping failures onto exit codes."""
    try:
        return asyncio.run(coro)
    except RalenError as e:
        log_error(e)
        _fail(str(e), e.exit_code)
    except ValueError as e:
        _fail(str(e), USER_ERROR_EXIT)
    except aiohttp.ClientError as e:
        _fail(f"Network request failed: {e}", SYSTEM_ERROR_EXIT)
    except OSError as e:
        _fail(str(e), SYSTEM_ERROR_EXIT)


def _orchestrator(ctx: click.Context) -> Orchestrator:
    config: Config = ctx.obj["config"]
    return Orchestrator(RuntimeRegistry(config.install_dir), default_owner=config.default_owner)


def _maybe_add_to_path(ctx: click.Context, orchestrator: Orchestrator, language: str, tag: str) -> None:
    if not ctx.obj["config"].auto_add_to_path:
        return
    bin_dir = orchestrator.registry.bin_dir(language, tag)
    changed = configure_path(bin_dir)
    click.echo(f"Added {bin_dir} to PATH in {len(changed)} file(s) (auto_add_to_path).")


def get_language_or_exit(language: str):
    try:
        return get_language(language)
    except RalenError as e:
        _fail(str(e), e.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name="ralen")
@click.option(
    "--log-level",
    default=None,
    help="Log level (default: $RALEN_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """ralen - install and run prebuilt language runtimes."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config.load()


@cli.command()
@click.argument("language")
@click.option("--repo", "owner_repo", default=None, help="owner/repo override.")
@click.option("--version", "version", default=LATEST, show_default=True, help="Release tag.")
@click.pass_context
def install(ctx: click.Context, language: str, owner_repo: str | None, version: str) -> None:
    """Install LANGUAGE (or 'all') from its release repository."""
    orchestrator = _orchestrator(ctx)

    if language.lower() == "all":
        tags = _call(orchestrator.install_all(version, owner_repo))
        for lang, tag in zip(orchestrator.catalog, tags):
            click.echo(f"Installed {lang} {tag}")
            _maybe_add_to_path(ctx, orchestrator, lang, tag)
        return

    definition = get_language_or_exit(language)
    source = owner_repo or f"{definition.repo_owner}/{definition.repo_name}"
    click.echo(f"Using repository {source}  version: {version}")
    tag = _call(orchestrator.ensure_installed(definition.key, version, owner_repo))
    click.echo(f"Installed {definition.key} {tag}")
    _maybe_add_to_path(ctx, orchestrator, definition.key, tag)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.option(
    "--project",
    "project_file",
    type=click.Path(path_type=Path),
    default=None,
    help="Project file to run when the directory holds several.",
)
@click.option("--interactive", is_flag=True, help="Prompt when several projects are found.")
@click.pass_context
def run(ctx: click.Context, path: Path, project_file: Path | None, interactive: bool) -> None:
    """Run the project in PATH (directory or .ralenproj file)."""
    code = _call(run_project(_orchestrator(ctx), path, project_file, interactive))
    sys.exit(code)


@cli.command()
@click.option("--name", default="NewApp", show_default=True)
@click.option("--lang", "language", default="salang", show_default=True)
@click.option("--version", "version", default=LATEST, show_default=True)
@click.option("--dir", "directory", type=click.Path(path_type=Path), default=".")
@click.pass_context
def create(ctx: click.Context, name: str, language: str, version: str, directory: Path) -> None:
    """Create a console project using an installed runtime."""
    project = _call(create_console_project(_orchestrator(ctx), directory, name, language, version))
    click.echo(f"Project created at {project.project_file} using {project.language} {project.version}.")


@cli.command("list-known")
def list_known() -> None:
    """List languages ralen knows how to install."""
    click.echo("Known ralen languages:")
    for key in sorted(LANGUAGE_CATALOG):
        definition = LANGUAGE_CATALOG[key]
        click.echo(f"  {key}  (repo: {definition.repo_owner}/{definition.repo_name})")


@cli.command("list-installed")
@click.argument("language")
@click.pass_context
def list_installed(ctx: click.Context, language: str) -> None:
    """List installed versions of LANGUAGE."""
    registry = RuntimeRegistry(ctx.obj["config"].install_dir)
    versions = registry.list_installed_versions(language)
    if not versions:
        click.echo(f"No versions installed for language '{language}'.")
        return
    click.echo(f"Installed versions for {language}:")
    for version in versions:
        click.echo(f"  {version}")


@cli.command()
@click.argument("language")
@click.option("--repo", "owner_repo", default=None, help="owner/repo override.")
@click.pass_context
def latest(ctx: click.Context, language: str, owner_repo: str | None) -> None:
    """Show the latest remote release of LANGUAGE."""
    click.echo(_call(_orchestrator(ctx).get_latest_remote_version(language, owner_repo)))


def _shim_dir(config: Config, directory: Path | None) -> Path:
    if directory:
        return directory
    if executable := shutil.which("ralen"):
        return Path(executable).resolve().parent
    return config.install_dir / "bin"


@cli.command("configure-path")
@click.option("--dir", "directory", type=click.Path(path_type=Path), default=None)
@click.pass_context
def configure_path_cmd(ctx: click.Context, directory: Path | None) -> None:
    """Add the ralen command directory to the shell PATH."""
    target = _shim_dir(ctx.obj["config"], directory)
    changed = configure_path(target)
    click.echo(f"Added {target} to PATH in {len(changed)} file(s). Restart your shell to apply.")


@cli.command("remove-from-path")
@click.option("--dir", "directory", type=click.Path(path_type=Path), default=None)
@click.pass_context
def remove_from_path_cmd(ctx: click.Context, directory: Path | None) -> None:
    """Remove the ralen command directory from the shell PATH."""
    target = _shim_dir(ctx.obj["config"], directory)
    changed = remove_from_path(target)
    click.echo(f"Removed {target} from PATH in {len(changed)} file(s).")


@cli.command("add-package")
@click.argument("url")
@click.option("--project", "project_dir", type=click.Path(path_type=Path), default=None)
@click.pass_context
def add_package_cmd(ctx: click.Context, url: str, project_dir: Path | None) -> None:
    """Download a package into the modules directory."""
    dest = _call(add_package(url, ctx.obj["config"].install_dir, project_dir))
    click.echo(f"Package available at {dest}")


@cli.command("remove-package")
@click.argument("filename")
@click.option("--project", "project_dir", type=click.Path(path_type=Path), default=None)
@click.pass_context
def remove_package_cmd(ctx: click.Context, filename: str, project_dir: Path | None) -> None:
    """Delete a package from the modules directory."""
    try:
        path = remove_package(filename, ctx.obj["config"].install_dir, project_dir)
    except RalenError as e:
        _fail(str(e), e.exit_code)
    click.echo(f"Deleted {path}")


def main() -> None:
    cli(obj={})
