"""Unpack downloaded artifacts into the canonical <version>/bin/<language> shape."""

import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import List, Optional

from ralen.errors import ExtractionError
from ralen.logging import get_logger
from ralen.types import ArtifactKind, LanguageDefinition

logger = get_logger(__name__)

ZIP_MAGIC = b"PK"
GZIP_MAGIC = b"\x1f\x8b"
TARBALL_SUFFIXES = (".tar.gz", ".tgz")


def classify_artifact(filename: str, head: bytes = b"") -> ArtifactKind:
    """Classify by extension first, then by leading signature bytes.

    Servers do not always provide an extension (API zipball URLs for
    instance), so the magic bytes decide in that case.
    """
    lowered = filename.lower()
    if lowered.endswith(".zip"):
        return ArtifactKind.ZIP
    if lowered.endswith(TARBALL_SUFFIXES):
        return ArtifactKind.TARBALL
    if head[:2] == ZIP_MAGIC:
        return ArtifactKind.ZIP
    if head[:2] == GZIP_MAGIC:
        return ArtifactKind.TARBALL
    return ArtifactKind.SINGLE_FILE


def read_signature(path: Path, size: int = 4) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read(size)
    except OSError:
        return b""


def make_executable(path: Path) -> None:
    """Set the executable bits (no-op on Windows)."""
    if os.name == "nt":
        return
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _extract_zip(archive_path: Path, dest_dir: Path) -> None:
    root = dest_dir.resolve()
    with zipfile.ZipFile(archive_path) as archive:
        for member in archive.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise ExtractionError(
                    f"Archive member escapes target directory: {member}",
                    details={"archive": str(archive_path), "member": member},
                )
        archive.extractall(dest_dir)


def _extract_tarball(archive_path: Path, dest_dir: Path) -> None:
    with tarfile.open(archive_path) as archive:
        archive.extractall(dest_dir, filter="data")


def flatten_single_root(version_dir: Path) -> bool:
    """Lift the contents of a lone wrapper directory up one level."""
    entries = list(version_dir.iterdir())
    if len(entries) != 1 or not entries[0].is_dir():
        return False

    wrapper = entries[0]
    # Rename first so a child sharing the wrapper's name cannot clash
    staging = version_dir / f".ralen-flatten-{wrapper.name}"
    wrapper.rename(staging)
    for item in staging.iterdir():
        shutil.move(str(item), str(version_dir / item.name))
    staging.rmdir()

    logger.debug("archive_flattened", version_dir=str(version_dir), wrapper=wrapper.name)
    return True


def find_runtime_candidates(root: Path, definition: LanguageDefinition) -> List[Path]:
    names = {n.lower() for n in definition.runtime_executables}
    return sorted(
        p for p in root.rglob("*") if p.is_file() and p.name.lower() in names
    )


def ensure_runtime_in_bin(version_dir: Path, definition: LanguageDefinition) -> None:
    """Move recognizable runtime executables into bin/.

    An existing bin/ is only trusted when it already holds a runtime
    executable. With an empty bin/ and nothing recognizable, the first file
    at the extraction root is used, since the archive may only contain sources.
    """
    bin_dir = version_dir / "bin"
    names = {n.lower() for n in definition.runtime_executables}
    if bin_dir.is_dir() and any(p.is_file() and p.name.lower() in names for p in bin_dir.iterdir()):
        return

    candidates = [p for p in find_runtime_candidates(version_dir, definition) if p.parent != bin_dir]
    bin_dir.mkdir(parents=True, exist_ok=True)

    if not candidates and any(bin_dir.iterdir()):
        logger.debug("runtime_search_empty", bin_dir=str(bin_dir))
        return

    if not candidates:
        root_files = sorted(p for p in version_dir.iterdir() if p.is_file())
        if root_files:
            first = root_files[0]
            shutil.move(str(first), str(bin_dir / first.name))
            logger.warning(
                "runtime_not_recognized",
                version_dir=str(version_dir),
                fallback=first.name,
            )
        else:
            logger.warning("runtime_not_recognized", version_dir=str(version_dir), fallback=None)
        return

    for candidate in candidates:
        dest = bin_dir / candidate.name.lower()
        if not dest.exists():
            shutil.move(str(candidate), str(dest))


def _primary_match(bin_dir: Path, definition: LanguageDefinition) -> Optional[Path]:
    files = sorted(p for p in bin_dir.iterdir() if p.is_file())
    by_name = {p.name.lower(): p for p in files}
    for name in definition.runtime_executables:
        if name.lower() in by_name:
            return by_name[name.lower()]
    key = definition.key.lower()
    return next((p for p in files if key in p.name.lower()), None)


def canonicalize_runtime(bin_dir: Path, definition: LanguageDefinition) -> Optional[Path]:
    """Rename the primary runtime match to the lowercase language key."""
    canonical = bin_dir / definition.canonical_name
    if canonical.is_file():
        return canonical

    primary = _primary_match(bin_dir, definition)
    if primary is None:
        return None
    primary.rename(canonical)
    return canonical


def install_artifact(artifact: Path, version_dir: Path, definition: LanguageDefinition) -> Path:
    """Install a downloaded artifact into an empty version directory.

    Returns the bin/ directory. Raises ExtractionError on any failure; the
    caller is responsible for discarding the partial version directory.
    """
    kind = classify_artifact(artifact.name, read_signature(artifact))
    bin_dir = version_dir / "bin"

    logger.info(
        "install_artifact",
        artifact=str(artifact),
        kind=kind.name.lower(),
        version_dir=str(version_dir),
    )

    try:
        version_dir.mkdir(parents=True, exist_ok=True)
        match kind:
            case ArtifactKind.ZIP | ArtifactKind.TARBALL:
                if kind == ArtifactKind.ZIP:
                    _extract_zip(artifact, version_dir)
                else:
                    _extract_tarball(artifact, version_dir)
                flatten_single_root(version_dir)
                ensure_runtime_in_bin(version_dir, definition)
                canonicalize_runtime(bin_dir, definition)
            case ArtifactKind.SINGLE_FILE:
                bin_dir.mkdir(parents=True, exist_ok=True)
                shutil.move(str(artifact), str(bin_dir / definition.canonical_name))

        for path in bin_dir.iterdir():
            if path.is_file():
                make_executable(path)
    except ExtractionError:
        raise
    except (zipfile.BadZipFile, tarfile.TarError, shutil.Error, OSError) as e:
        logger.error("install_artifact_failed", artifact=str(artifact), error=str(e))
        raise ExtractionError(
            f"Failed to extract {artifact.name}: {e}",
            details={"artifact": str(artifact), "version_dir": str(version_dir)},
        ) from e

    logger.info("artifact_installed", version_dir=str(version_dir), bin_dir=str(bin_dir))
    return bin_dir
