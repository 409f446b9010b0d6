"""Core type definitions"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

LATEST = "latest"

ArtifactKind = Enum("ArtifactKind", ["ZIP", "TARBALL", "SINGLE_FILE"])


@dataclass(frozen=True)
class LanguageDefinition:
    """Static catalog entry for a ralen language"""

    key: str
    runtime_executables: tuple[str, ...]
    repo_owner: str = ""
    repo_name: str = ""
    asset_name_regex: str = ""
    fallback_asset_name: str = ""
    version_arg: str = "--version"
    known_bad_versions: frozenset[str] = frozenset()
    default_entry: str = "main.sr"

    @property
    def canonical_name(self) -> str:
        return self.key.lower()


@dataclass(frozen=True)
class ReleaseAsset:
    """Downloadable file attached to a release"""

    name: str
    download_url: str
    content_type: str = ""


@dataclass(frozen=True)
class ReleaseInfo:
    """A resolved remote release"""

    tag: Optional[str]
    name: Optional[str] = None
    assets: tuple[ReleaseAsset, ...] = ()
    zipball_url: Optional[str] = None
    tarball_url: Optional[str] = None

    @property
    def version(self) -> str:
        return self.tag or self.name or "unknown"

    @classmethod
    def from_api(cls, data: dict) -> "ReleaseInfo":
        assets = tuple(
            ReleaseAsset(
                name=a.get("name") or "",
                download_url=a.get("browser_download_url") or "",
                content_type=a.get("content_type") or "",
            )
            for a in data.get("assets") or []
            if isinstance(a, dict)
        )
        return cls(
            tag=data.get("tag_name"),
            name=data.get("name"),
            assets=assets,
            zipball_url=data.get("zipball_url"),
            tarball_url=data.get("tarball_url"),
        )


@dataclass(frozen=True)
class ProjectDescriptor:
    """Parsed .ralenproj file"""

    project_file: Path
    name: str
    language: str
    version: str = LATEST
    entry: str = ""

    @property
    def directory(self) -> Path:
        return self.project_file.parent


@dataclass(frozen=True)
class SmokeTestResult:
    """Outcome of probing a runtime with its version flag"""

    passed: bool
    returncode: Optional[int] = None
    timed_out: bool = False
    stdout: str = ""
    stderr: str = ""
