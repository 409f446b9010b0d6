"""Release lookup and download URL selection against the GitHub API."""

import os
import re
import sys
from typing import List, Optional
from urllib.parse import quote

import aiohttp

from ralen import __version__
from ralen.errors import ReleaseNotFoundError, TransportError
from ralen.logging import get_logger
from ralen.types import LATEST, LanguageDefinition, ReleaseInfo

logger = get_logger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
GITHUB_DOWNLOAD_BASE = "https://github.com"
GITHUB_REPOS_PATH = "repos"
RELEASES_PATH = "releases"
LATEST_PATH = "latest"
TAGS_PATH = "tags"

USER_AGENT = f"ralen-installer/{__version__}"


def default_headers() -> dict[str, str]:
    """Headers sent on every hosting API request."""
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/vnd.github+json",
    }
    if token := os.environ.get("GITHUB_TOKEN"):
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(headers=default_headers())


def repo_url(owner: str, repo: str) -> str:
    return f"{GITHUB_API_BASE}/{GITHUB_REPOS_PATH}/{owner}/{repo}"


def release_url(owner: str, repo: str, version: str) -> str:
    base = f"{repo_url(owner, repo)}/{RELEASES_PATH}"
    if version == LATEST:
        return f"{base}/{LATEST_PATH}"
    return f"{base}/{TAGS_PATH}/{quote(version, safe='')}"


def branch_archive_url(owner: str, repo: str, branch: str) -> str:
    return f"{repo_url(owner, repo)}/zipball/{quote(branch, safe='')}"


async def get_repo_default_branch(
    session: aiohttp.ClientSession, owner: str, repo: str
) -> Optional[str]:
    """Default branch name from repository metadata, or None."""
    url = repo_url(owner, repo)
    try:
        async with session.get(url) as response:
            if response.status != 200:
                logger.warning(
                    "repo_lookup_failed",
                    owner=owner,
                    repo=repo,
                    status=response.status,
                    reason=response.reason,
                )
                return None
            data = await response.json()
    except (aiohttp.ClientError, ValueError) as e:
        logger.warning("repo_lookup_failed", owner=owner, repo=repo, error=str(e))
        return None

    branch = data.get("default_branch") if isinstance(data, dict) else None
    return branch or None


async def _fetch_release(
    session: aiohttp.ClientSession, url: str, owner: str, repo: str, version: str
) -> Optional[ReleaseInfo]:
    """Release document at url, or None on 404."""
    async with session.get(url) as response:
        if response.status == 200:
            try:
                data = await response.json()
            except ValueError as e:
                raise ReleaseNotFoundError(owner, repo, version, f"invalid release JSON: {e}") from e
            if not isinstance(data, dict):
                raise ReleaseNotFoundError(owner, repo, version, "invalid release JSON")
            return ReleaseInfo.from_api(data)

        if response.status != 404:
            logger.error(
                "release_lookup_failed",
                owner=owner,
                repo=repo,
                version=version,
                status=response.status,
                reason=response.reason,
            )
            raise TransportError(url, response.status, response.reason or "")
    return None


async def resolve_release(
    session: aiohttp.ClientSession, owner: str, repo: str, version: str = LATEST
) -> ReleaseInfo:
    """Fetch release metadata for a tag (or the latest release).

    A 404 falls back to a pseudo-release for the repository's default
    branch whose only payload is the branch archive. Any other failure
    status is raised as TransportError.
    """
    url = release_url(owner, repo, version)
    logger.debug("release_lookup", owner=owner, repo=repo, version=version, url=url)

    try:
        release = await _fetch_release(session, url, owner, repo, version)
    except aiohttp.ClientError as e:
        logger.error("release_lookup_failed", owner=owner, repo=repo, version=version, error=str(e))
        raise TransportError(url, None, str(e)) from e
    if release is not None:
        return release

    branch = await get_repo_default_branch(session, owner, repo)
    if not branch:
        raise ReleaseNotFoundError(owner, repo, version, "no release and no default branch")

    release = ReleaseInfo(
        tag=branch,
        name=f"default-branch-{branch}",
        zipball_url=branch_archive_url(owner, repo, branch),
    )
    logger.warning(
        "release_fallback_default_branch",
        owner=owner,
        repo=repo,
        version=version,
        branch=branch,
        url=release.zipball_url,
    )
    return release


def candidate_asset_urls(
    definition: LanguageDefinition, owner: str, repo: str, tag: str, platform: str = sys.platform
) -> List[str]:
    """releases/download/{tag}/{name} guesses, platform-ordered."""
    base_name = definition.fallback_asset_name or definition.key
    prefix = f"{GITHUB_DOWNLOAD_BASE}/{owner}/{repo}/releases/download/{quote(tag, safe='')}"
    if platform.startswith("win"):
        names = [f"{base_name}.exe", base_name, f"{base_name}.zip"]
    else:
        names = [base_name, f"{base_name}.exe", f"{base_name}.zip"]
    return [f"{prefix}/{name}" for name in names]


async def head_exists(session: aiohttp.ClientSession, url: str) -> bool:
    """Metadata-only existence check."""
    try:
        async with session.head(url, allow_redirects=True) as response:
            return 200 <= response.status < 300
    except aiohttp.ClientError as e:
        logger.debug("head_request_failed", url=url, error=str(e))
        return False


async def select_download_url(
    session: aiohttp.ClientSession,
    release: ReleaseInfo,
    definition: LanguageDefinition,
    owner: str,
    repo: str,
) -> Optional[str]:
    """Pick a download URL for a release, first match wins:

    1. asset whose name matches the language's asset pattern
    2. asset named exactly like one of the runtime executables
    3. the first asset
    4. the release zipball, then tarball
    5. HEAD-checked releases/download/{tag}/{candidate} URLs
    """
    assets = [a for a in release.assets if a.name and a.download_url]

    if definition.asset_name_regex and assets:
        pattern = re.compile(definition.asset_name_regex, re.IGNORECASE)
        for asset in assets:
            if pattern.search(asset.name):
                logger.debug("asset_selected", strategy="pattern", asset=asset.name)
                return asset.download_url

    if assets:
        names = {n.lower() for n in definition.runtime_executables}
        for asset in assets:
            if asset.name.rsplit("/", 1)[-1].lower() in names:
                logger.debug("asset_selected", strategy="executable_name", asset=asset.name)
                return asset.download_url

    if release.assets and release.assets[0].download_url:
        logger.debug("asset_selected", strategy="first_asset", asset=release.assets[0].name)
        return release.assets[0].download_url

    if release.zipball_url:
        logger.debug("asset_selected", strategy="zipball", url=release.zipball_url)
        return release.zipball_url
    if release.tarball_url:
        logger.debug("asset_selected", strategy="tarball", url=release.tarball_url)
        return release.tarball_url

    if release.tag:
        for url in candidate_asset_urls(definition, owner, repo, release.tag):
            if await head_exists(session, url):
                logger.debug("asset_selected", strategy="candidate", url=url)
                return url

    logger.warning(
        "no_download_url",
        owner=owner,
        repo=repo,
        tag=release.tag,
    )
    return None
