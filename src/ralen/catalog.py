"""Language catalog."""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from ralen.errors import UnknownLanguageError
from ralen.types import LanguageDefinition


class CaseInsensitiveMapping(Mapping[str, LanguageDefinition]):
    """Read-only mapping keyed by lowercased language key."""

    def __init__(self, entries: Mapping[str, LanguageDefinition]):
        self._entries = MappingProxyType({k.lower(): v for k, v in entries.items()})

    def __getitem__(self, key: str) -> LanguageDefinition:
        return self._entries[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


SALANG = LanguageDefinition(
    key="salang",
    runtime_executables=("salang", "salang.exe", "SaLang"),
    repo_owner="serene1491",
    repo_name="SaLang",
    asset_name_regex=r"^SaLang(|\.exe|\.zip|\.tar\.gz)$",
    fallback_asset_name="SaLang",
    version_arg="--version",
    default_entry="main.sr",
)

LANGUAGE_CATALOG: Mapping[str, LanguageDefinition] = CaseInsensitiveMapping(
    {SALANG.key: SALANG}
)


def get_language(key: str, catalog: Mapping[str, LanguageDefinition] = LANGUAGE_CATALOG) -> LanguageDefinition:
    """Look up a language definition, raising UnknownLanguageError if absent."""
    if not key or key not in catalog:
        raise UnknownLanguageError(key)
    return catalog[key]
