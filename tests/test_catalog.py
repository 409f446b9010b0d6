import re

import pytest

from ralen.catalog import LANGUAGE_CATALOG, SALANG, CaseInsensitiveMapping, get_language
from ralen.errors import UnknownLanguageError
from ralen.types import LanguageDefinition


def test_lookup_is_case_insensitive():
    """Test catalog keys ignore case"""
    assert get_language("salang") is SALANG
    assert get_language("SaLang") is SALANG
    assert "SALANG" in LANGUAGE_CATALOG


def test_unknown_language():
    """Test unknown and empty keys raise"""
    with pytest.raises(UnknownLanguageError):
        get_language("cobol")
    with pytest.raises(UnknownLanguageError):
        get_language("")


def test_salang_definition():
    """Test the built-in salang entry"""
    assert SALANG.canonical_name == "salang"
    assert (SALANG.repo_owner, SALANG.repo_name) == ("serene1491", "SaLang")
    assert SALANG.version_arg == "--version"

    pattern = re.compile(SALANG.asset_name_regex, re.IGNORECASE)
    for name in ("SaLang", "SaLang.exe", "SaLang.zip", "SaLang.tar.gz", "salang"):
        assert pattern.search(name)
    for name in ("SaLang-src.zip", "README.md"):
        assert not pattern.search(name)


def test_custom_catalog():
    """Test lookups against an injected catalog"""
    other = LanguageDefinition(key="Toy", runtime_executables=("toy",))
    catalog = CaseInsensitiveMapping({other.key: other})

    assert list(catalog) == ["toy"]
    assert len(catalog) == 1
    assert get_language("TOY", catalog) is other
    with pytest.raises(UnknownLanguageError):
        get_language("salang", catalog)


def test_catalog_is_read_only():
    """Test the catalog cannot be mutated"""
    with pytest.raises(TypeError):
        LANGUAGE_CATALOG["x"] = SALANG


def test_default_entry():
    """Test new definitions default to the salang entry file"""
    toy = LanguageDefinition(key="toy", runtime_executables=("toy",))
    assert toy.default_entry == SALANG.default_entry == "main.sr"
