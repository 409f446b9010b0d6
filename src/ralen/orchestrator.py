"""Guarantee that a runtime is installed for a language/version."""

import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import List, Optional, Tuple, Union

import aiohttp

from ralen.catalog import LANGUAGE_CATALOG, get_language
from ralen.errors import NoDownloadableAssetError, NoRepositoryError
from ralen.installer.archive import install_artifact
from ralen.logging import get_logger
from ralen.registry import RuntimeRegistry
from ralen.releases.github import (
    branch_archive_url,
    create_session,
    get_repo_default_branch,
    resolve_release,
    select_download_url,
)
from ralen.smoke import run_smoke_test
from ralen.types import LATEST, LanguageDefinition
from ralen.utils.fetching import download_to_temp

logger = get_logger(__name__)

OwnerRepo = Union[str, Tuple[str, str], None]


def parse_owner_repo(
    value: OwnerRepo, default_owner: Optional[str] = None
) -> Optional[Tuple[str, str]]:
    """Accept "owner/repo" or an (owner, repo) pair.

    A bare repository name is paired with default_owner when one is given.
    """
    if not value:
        return None
    if isinstance(value, tuple):
        owner, repo = value
    else:
        owner, sep, repo = value.strip().partition("/")
        if not sep:
            if not default_owner:
                raise ValueError(f"Expected owner/repo, got '{value}'")
            owner, repo = default_owner, value
    owner, repo = owner.strip(), repo.strip().strip("/")
    if not owner or not repo:
        raise ValueError(f"Expected owner/repo, got '{value}'")
    return owner, repo


def resolve_owner_repo(
    definition: LanguageDefinition,
    override: OwnerRepo = None,
    default_owner: Optional[str] = None,
) -> Tuple[str, str]:
    """Override wins over the catalog default."""
    parsed = parse_owner_repo(override, default_owner)
    if parsed:
        return parsed
    if definition.repo_owner and definition.repo_name:
        return definition.repo_owner, definition.repo_name
    raise NoRepositoryError(definition.key)


class Orchestrator:
    """Composes release lookup, download and installation."""

    def __init__(
        self,
        registry: RuntimeRegistry,
        catalog: Mapping[str, LanguageDefinition] = LANGUAGE_CATALOG,
        session: Optional[aiohttp.ClientSession] = None,
        default_owner: Optional[str] = None,
    ):
        self.registry = registry
        self.catalog = catalog
        self.default_owner = default_owner
        self._session = session

    async def _with_session(self, func, *args):
        if self._session is not None:
            return await func(self._session, *args)
        async with create_session() as session:
            return await func(session, *args)

    async def ensure_installed(
        self,
        language: str,
        version: str = LATEST,
        owner_repo: OwnerRepo = None,
    ) -> str:
        """Install language at version if needed and return the resolved tag."""
        definition = get_language(language, self.catalog)
        owner, repo = resolve_owner_repo(definition, owner_repo, self.default_owner)
        version = version or LATEST

        if version != LATEST and self.registry.is_installed(definition.key, version):
            logger.debug("runtime_already_installed", language=definition.key, version=version)
            return version

        return await self._with_session(self._install, definition, owner, repo, version)

    async def _install(
        self,
        session: aiohttp.ClientSession,
        definition: LanguageDefinition,
        owner: str,
        repo: str,
        version: str,
    ) -> str:
        language = definition.key
        release = await resolve_release(session, owner, repo, version)
        tag = release.version

        if self.registry.is_installed(language, tag):
            logger.info("runtime_already_installed", language=language, version=tag)
            return tag

        url = await select_download_url(session, release, definition, owner, repo)
        if not url:
            branch = await get_repo_default_branch(session, owner, repo)
            if branch:
                url = branch_archive_url(owner, repo, branch)
                logger.warning("download_fallback_repo_archive", language=language, url=url)
        if not url:
            raise NoDownloadableAssetError(owner, repo, tag)

        logger.info("runtime_download", language=language, version=tag, url=url)
        artifact = await download_to_temp(session, url, language)

        try:
            version_dir = self.registry.version_dir(language, tag)
            if version_dir.exists():
                logger.info("runtime_reinstall", language=language, version=tag, path=str(version_dir))
                shutil.rmtree(version_dir)
            version_dir.mkdir(parents=True)

            try:
                install_artifact(artifact, version_dir, definition)
            except BaseException:
                shutil.rmtree(version_dir, ignore_errors=True)
                raise

            await self._smoke_test_installed(definition, tag, version_dir)
        finally:
            shutil.rmtree(artifact.parent, ignore_errors=True)

        logger.info("runtime_installed", language=language, version=tag, path=str(version_dir))
        return tag

    async def _smoke_test_installed(
        self, definition: LanguageDefinition, tag: str, version_dir: Path
    ) -> None:
        runtime_path = self.registry.get_path(definition.key, tag)
        if not runtime_path.is_file():
            bin_dir = version_dir / "bin"
            files = sorted(p for p in bin_dir.iterdir() if p.is_file()) if bin_dir.is_dir() else []
            runtime_path = files[0] if files else runtime_path

        if not runtime_path.is_file():
            logger.warning(
                "smoke_test_skipped",
                language=definition.key,
                version=tag,
                reason="runtime not located; the archive may only contain sources",
            )
            return

        try:
            await run_smoke_test(definition, runtime_path)
        except OSError as e:
            logger.warning(
                "smoke_test_failed",
                language=definition.key,
                version=tag,
                runtime=str(runtime_path),
                error=str(e),
            )

    async def install_all(self, version: str = LATEST, owner_repo: OwnerRepo = None) -> List[str]:
        """Install every catalog language, returning the resolved tags in order."""
        tags = []
        for language in self.catalog:
            logger.info("installing_language", language=language)
            tags.append(await self.ensure_installed(language, version, owner_repo))
        return tags

    async def get_latest_remote_version(self, language: str, owner_repo: OwnerRepo = None) -> str:
        definition = get_language(language, self.catalog)
        owner, repo = resolve_owner_repo(definition, owner_repo, self.default_owner)
        release = await self._with_session(resolve_release, owner, repo, LATEST)
        return release.version
