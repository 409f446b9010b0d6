"""Error handling for ralen."""
from typing import Any, Dict, Optional

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST

from ralen.logging import get_logger

logger = get_logger(__name__)

USER_ERROR_EXIT = 1
SYSTEM_ERROR_EXIT = 2


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an error with context."""
    error_info: Dict[str, Any] = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, RalenError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error("ralen_error", **error_info)


class RalenError(Exception):
    """Base error class for ralen."""

    exit_code = SYSTEM_ERROR_EXIT

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(code=self.code, message=str(self), data=self.details)


class UnknownLanguageError(RalenError):
    """Language key is not in the catalog."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, language: str):
        super().__init__(
            f"Unknown language '{language}'. Use 'ralen list-known' to see supported languages.",
            code=INVALID_PARAMS,
            details={"language": language},
        )


class NoRepositoryError(RalenError):
    """No owner/repo configured or supplied for a language."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, language: str):
        super().__init__(
            f"No repository configured for language '{language}'. Provide an owner/repo override.",
            code=INVALID_PARAMS,
            details={"language": language},
        )


class ReleaseNotFoundError(RalenError):
    """Hosting API could not resolve a release."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, owner: str, repo: str, version: str, reason: str = ""):
        message = f"Could not find release {version} for {owner}/{repo}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            code=INVALID_REQUEST,
            details={"owner": owner, "repo": repo, "version": version},
        )


class NoDownloadableAssetError(RalenError):
    """Release exists but nothing downloadable was found."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, owner: str, repo: str, tag: str):
        super().__init__(
            f"No downloadable asset found for {owner}/{repo} {tag} "
            "(no asset, archive or fallback URL)",
            code=INVALID_REQUEST,
            details={"owner": owner, "repo": repo, "tag": tag},
        )


class TransportError(RalenError):
    """Download or API request failed."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        if status is not None:
            message = f"Request to {url} failed with status {status}"
        else:
            message = f"Request to {url} failed"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            details={"url": url, "status": status, "reason": reason},
        )
        self.url = url
        self.status = status
        self.reason = reason


class ExtractionError(RalenError):
    """Downloaded artifact could not be unpacked or normalized."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ProjectNotFoundError(RalenError):
    """No project descriptor could be resolved."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, message: str, directory: str):
        super().__init__(message, code=INVALID_PARAMS, details={"directory": directory})


class AmbiguousProjectError(RalenError):
    """Several project descriptors and no way to pick one."""

    exit_code = SYSTEM_ERROR_EXIT

    def __init__(self, directory: str, candidates: list[str]):
        super().__init__(
            f"Multiple .ralenproj files found in {directory}. "
            "Call with --project <file> to specify which one.",
            code=INVALID_PARAMS,
            details={"directory": directory, "candidates": candidates},
        )


class RuntimeInconsistencyError(RalenError):
    """Runtime binary missing after a reported-successful install."""

    def __init__(self, language: str, version: str, path: str):
        super().__init__(
            f"Runtime binary not found at expected path: {path}",
            details={"language": language, "version": version, "path": path},
        )


class PackageError(RalenError):
    """Auxiliary package operation failed."""

    exit_code = USER_ERROR_EXIT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=INVALID_PARAMS, details=details)
