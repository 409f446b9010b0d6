"""Run a project with its resolved runtime."""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional, TextIO

import click

from ralen.catalog import get_language
from ralen.errors import (
    SYSTEM_ERROR_EXIT,
    AmbiguousProjectError,
    ProjectNotFoundError,
    RalenError,
    RuntimeInconsistencyError,
    log_error,
)
from ralen.logging import get_logger
from ralen.orchestrator import Orchestrator
from ralen.projects import ensure_entry_file, find_projects_in_directory, is_project_file
from ralen.smoke import run_smoke_test
from ralen.types import ProjectDescriptor

logger = get_logger(__name__)

Chooser = Callable[[List[ProjectDescriptor]], ProjectDescriptor]


def prompt_for_project(projects: List[ProjectDescriptor]) -> ProjectDescriptor:
    """Ask on the terminal which project to run."""
    click.echo("Multiple .ralenproj files found, choose one:")
    for i, project in enumerate(projects):
        click.echo(f"  [{i}] {project.project_file} ({project.language} {project.version})")
    index = click.prompt("Choice", type=click.IntRange(0, len(projects) - 1))
    return projects[index]


def select_project(
    path: Path,
    explicit_project: Optional[Path] = None,
    interactive: bool = False,
    chooser: Optional[Chooser] = None,
) -> ProjectDescriptor:
    directory = path.parent if is_project_file(path) else path
    projects = find_projects_in_directory(directory)

    if explicit_project is not None:
        wanted = explicit_project.resolve()
        for project in projects:
            if project.project_file == wanted:
                return project
        raise ProjectNotFoundError(
            f"Specified project file not found in directory: {explicit_project}", str(directory)
        )

    if not projects:
        raise ProjectNotFoundError("No .ralenproj found in the specified directory.", str(directory))
    if len(projects) == 1:
        return projects[0]

    if interactive and (chooser is not None or sys.stdin.isatty()):
        return (chooser or prompt_for_project)(projects)

    raise AmbiguousProjectError(str(directory), [str(p.project_file) for p in projects])


async def _drain(stream: asyncio.StreamReader, sink: TextIO) -> None:
    while line := await stream.readline():
        sink.write(line.decode(errors="replace"))
        sink.flush()


async def execute_runtime(
    runtime_path: Path,
    entry_file: Path,
    stdout: TextIO,
    stderr: TextIO,
    stdin: Any = None,
) -> int:
    """Launch runtime with the entry file and stream both outputs until exit.

    stdin is passed to the subprocess as is; None inherits ours.
    """
    process = await asyncio.create_subprocess_exec(
        str(runtime_path),
        str(entry_file),
        cwd=str(entry_file.parent),
        stdin=stdin,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    logger.debug("runtime_started", pid=process.pid, runtime=str(runtime_path), entry=str(entry_file))

    # Exit code only counts once both pipes are fully drained
    await asyncio.gather(
        _drain(process.stdout, stdout),
        _drain(process.stderr, stderr),
    )
    returncode = await process.wait()

    logger.debug("runtime_exited", pid=process.pid, returncode=returncode)
    return returncode


async def _run(
    orchestrator: Orchestrator,
    path: Path,
    explicit_project: Optional[Path],
    interactive: bool,
    chooser: Optional[Chooser],
    stdout: TextIO,
    stderr: TextIO,
    stdin: Any,
) -> int:
    project = select_project(path, explicit_project, interactive, chooser)

    if not project.language:
        raise ProjectNotFoundError(
            f"Language not specified in project descriptor {project.project_file}",
            str(project.directory),
        )
    definition = get_language(project.language, orchestrator.catalog)

    try:
        resolved = await orchestrator.ensure_installed(definition.key, project.version)
    except RalenError as e:
        wrapped = RalenError(f"Failed to ensure runtime installed: {e}", e.code, e.details)
        wrapped.exit_code = e.exit_code
        raise wrapped from e

    if resolved in definition.known_bad_versions:
        logger.warning(
            "known_bad_version",
            language=definition.key,
            version=resolved,
            message=f"version {resolved} of {definition.key} is known to be problematic",
        )

    runtime_path = orchestrator.registry.get_path(definition.key, resolved)
    if not runtime_path.is_file():
        raise RuntimeInconsistencyError(definition.key, resolved, str(runtime_path))

    try:
        await run_smoke_test(definition, runtime_path)
    except OSError as e:
        raise RalenError(
            f"Runtime smoke test failed: {e}", details={"runtime": str(runtime_path)}
        ) from e

    entry_file = ensure_entry_file(project, definition)
    logger.info(
        "project_run",
        project=str(project.project_file),
        language=definition.key,
        version=resolved,
        entry=str(entry_file),
    )
    return await execute_runtime(runtime_path, entry_file, stdout, stderr, stdin)


async def run_project(
    orchestrator: Orchestrator,
    path: Path,
    explicit_project: Optional[Path] = None,
    interactive: bool = False,
    chooser: Optional[Chooser] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    stdin: Any = None,
) -> int:
    """Resolve, install if needed, and run a project; returns the exit code."""
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    try:
        return await _run(
            orchestrator, path, explicit_project, interactive, chooser, stdout, stderr, stdin
        )
    except (RalenError, OSError) as e:
        log_error(e, {"path": str(path)})
        stderr.write(f"{e}\n")
        stderr.flush()
        return e.exit_code if isinstance(e, RalenError) else SYSTEM_ERROR_EXIT
