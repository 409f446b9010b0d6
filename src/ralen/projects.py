"""Project descriptor (.ralenproj) discovery and scaffolding."""

import json
from pathlib import Path
from typing import List

from ralen.catalog import get_language
from ralen.errors import ProjectNotFoundError
from ralen.logging import get_logger
from ralen.orchestrator import Orchestrator
from ralen.types import LATEST, LanguageDefinition, ProjectDescriptor

logger = get_logger(__name__)

PROJECT_SUFFIX = ".ralenproj"


def placeholder_source(language: str) -> str:
    return f"// example entry for {language}\nconsole.log('hello ralen');\n"


def is_project_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == PROJECT_SUFFIX


def load_project(path: Path) -> ProjectDescriptor:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ProjectNotFoundError(f"Could not read project file {path}: {e}", str(path.parent)) from e
    if not isinstance(data, dict):
        raise ProjectNotFoundError(f"Project file {path} is not a JSON object", str(path.parent))

    return ProjectDescriptor(
        project_file=path.resolve(),
        name=data.get("name") or path.stem,
        language=data.get("language") or "",
        version=data.get("version") or LATEST,
        entry=data.get("entry") or "",
    )


def find_projects_in_directory(directory: Path) -> List[ProjectDescriptor]:
    """All project descriptors directly inside directory, sorted by filename."""
    if not directory.is_dir():
        raise ProjectNotFoundError(f"Directory not found: {directory}", str(directory))
    return [load_project(p) for p in sorted(directory.iterdir()) if is_project_file(p)]


def resolve_entry_file(project: ProjectDescriptor, definition: LanguageDefinition) -> Path:
    """Descriptor entry, else the language's default entry file name."""
    if project.entry:
        return project.directory / project.entry
    return project.directory / definition.default_entry


def ensure_entry_file(project: ProjectDescriptor, definition: LanguageDefinition) -> Path:
    entry = resolve_entry_file(project, definition)
    if not entry.exists():
        entry.parent.mkdir(parents=True, exist_ok=True)
        entry.write_text(placeholder_source(project.language), encoding="utf-8")
        logger.info("entry_file_created", path=str(entry))
    return entry


async def create_console_project(
    orchestrator: Orchestrator,
    dest_dir: Path,
    name: str,
    language: str,
    version: str = LATEST,
) -> ProjectDescriptor:
    """Install the runtime, then write <name>.ralenproj and an entry file."""
    definition = get_language(language, orchestrator.catalog)
    resolved = await orchestrator.ensure_installed(definition.key, version)

    dest_dir.mkdir(parents=True, exist_ok=True)
    project_file = dest_dir / f"{name}{PROJECT_SUFFIX}"
    document = {
        "name": name,
        "language": definition.key,
        "version": resolved,
        "entry": definition.default_entry,
    }
    project_file.write_text(json.dumps(document, indent=2), encoding="utf-8")

    project = load_project(project_file)
    ensure_entry_file(project, definition)
    logger.info(
        "project_created",
        path=str(project_file),
        language=definition.key,
        version=resolved,
    )
    return project
