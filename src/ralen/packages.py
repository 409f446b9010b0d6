"""Auxiliary packages kept under <root>/modules or <project>/modules."""

from pathlib import Path
from typing import Optional

import aiohttp
from fuuid import b58_fuuid

from ralen.errors import PackageError
from ralen.logging import get_logger
from ralen.releases.github import create_session
from ralen.utils.fetching import download_to_file, filename_from_url

logger = get_logger(__name__)

MODULES_DIR = "modules"


def modules_dir(install_dir: Path, project_dir: Optional[Path] = None) -> Path:
    return (project_dir or install_dir) / MODULES_DIR


async def add_package(
    url: str,
    install_dir: Path,
    project_dir: Optional[Path] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> Path:
    """Download url into the modules directory; existing files are kept."""
    if not url.startswith(("http://", "https://")):
        raise PackageError(f"Invalid URL: {url}", details={"url": url})

    target_dir = modules_dir(install_dir, project_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    dest = target_dir / (filename_from_url(url) or f"package_{b58_fuuid()}")

    if dest.exists():
        logger.info("package_exists", path=str(dest))
        return dest

    if session is not None:
        await download_to_file(session, url, dest)
    else:
        async with create_session() as owned:
            await download_to_file(owned, url, dest)

    logger.info("package_added", url=url, path=str(dest))
    return dest


def remove_package(filename: str, install_dir: Path, project_dir: Optional[Path] = None) -> Path:
    target_dir = modules_dir(install_dir, project_dir)
    target = target_dir / Path(filename).name
    if not target.is_file():
        raise PackageError(f"Package not found: {target}", details={"path": str(target)})
    target.unlink()
    logger.info("package_removed", path=str(target))
    return target
