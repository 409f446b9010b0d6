"""Installed runtime layout: <root>/versions/<language>/<version>/bin/<language>."""

from collections.abc import Mapping
from pathlib import Path
from typing import List

from ralen.catalog import LANGUAGE_CATALOG, get_language
from ralen.types import LanguageDefinition


class RuntimeRegistry:
    """Pure path computation over the install root."""

    def __init__(self, root: Path, catalog: Mapping[str, LanguageDefinition] = LANGUAGE_CATALOG):
        self.root = Path(root)
        self.catalog = catalog

    def language_dir(self, language: str) -> Path:
        return self.root / "versions" / language.lower()

    def version_dir(self, language: str, version: str) -> Path:
        return self.language_dir(language) / version

    def bin_dir(self, language: str, version: str) -> Path:
        return self.version_dir(language, version) / "bin"

    def get_path(self, language: str, version: str) -> Path:
        definition = get_language(language, self.catalog)
        return self.bin_dir(language, version) / definition.canonical_name

    def is_installed(self, language: str, version: str) -> bool:
        return self.get_path(language, version).is_file()

    def list_installed_versions(self, language: str) -> List[str]:
        """Immediate subdirectories of the language dir, in enumeration order."""
        lang_dir = self.language_dir(language)
        if not lang_dir.is_dir():
            return []
        return [p.name for p in lang_dir.iterdir() if p.is_dir()]
