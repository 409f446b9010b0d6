import pytest
import structlog
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS

from ralen.errors import (
    SYSTEM_ERROR_EXIT,
    USER_ERROR_EXIT,
    AmbiguousProjectError,
    ExtractionError,
    NoDownloadableAssetError,
    ProjectNotFoundError,
    RalenError,
    ReleaseNotFoundError,
    TransportError,
    UnknownLanguageError,
    log_error,
)


def test_base_error_defaults():
    """Test base error carries code and details"""
    error = RalenError("boom")
    assert str(error) == "boom"
    assert error.code == INTERNAL_ERROR
    assert error.details == {}
    assert error.exit_code == SYSTEM_ERROR_EXIT


def test_to_error_data():
    """Test conversion to MCP ErrorData"""
    error = UnknownLanguageError("cobol")
    data = error.to_error_data()
    assert data.code == INVALID_PARAMS
    assert "cobol" in data.message
    assert data.data == {"language": "cobol"}


@pytest.mark.parametrize(
    "error,exit_code",
    [
        (UnknownLanguageError("x"), USER_ERROR_EXIT),
        (ReleaseNotFoundError("o", "r", "v9"), USER_ERROR_EXIT),
        (NoDownloadableAssetError("o", "r", "v1"), USER_ERROR_EXIT),
        (ProjectNotFoundError("missing", "/tmp"), USER_ERROR_EXIT),
        (AmbiguousProjectError("/tmp", ["a", "b"]), SYSTEM_ERROR_EXIT),
        (TransportError("https://example.com", 500), SYSTEM_ERROR_EXIT),
        (ExtractionError("bad zip"), SYSTEM_ERROR_EXIT),
    ],
)
def test_exit_codes(error, exit_code):
    """Test user errors exit 1 and system errors exit 2"""
    assert error.exit_code == exit_code


def test_unknown_language_mentions_list_known():
    """Test the unknown-language hint"""
    assert "ralen list-known" in str(UnknownLanguageError("cobol"))


def test_transport_error_message():
    """Test transport errors keep url and status"""
    error = TransportError("https://example.com/x", 503, "Service Unavailable")
    assert error.url == "https://example.com/x"
    assert error.status == 503
    assert "503" in str(error)
    assert "Service Unavailable" in str(error)

    no_status = TransportError("https://example.com/x")
    assert no_status.status is None
    assert str(no_status) == "Request to https://example.com/x failed"


def test_release_not_found_reason():
    """Test release errors append the reason"""
    error = ReleaseNotFoundError("o", "r", "v1", "no default branch")
    assert str(error) == "Could not find release v1 for o/r: no default branch"


def test_log_error():
    """Test error logging includes code, details and context"""
    with structlog.testing.capture_logs() as logs:
        log_error(UnknownLanguageError("cobol"), {"command": "install"})
        log_error(KeyError("k"))

    assert logs[0]["event"] == "ralen_error"
    assert logs[0]["log_level"] == "error"
    assert logs[0]["error_type"] == "UnknownLanguageError"
    assert logs[0]["code"] == INVALID_PARAMS
    assert logs[0]["context"] == {"command": "install"}
    assert logs[1]["error_type"] == "KeyError"
    assert "code" not in logs[1]
