"""Release resolution against the hosting API."""
from ralen.releases.github import (
    create_session,
    get_repo_default_branch,
    resolve_release,
    select_download_url,
)

__all__ = [
    "create_session",
    "get_repo_default_branch",
    "resolve_release",
    "select_download_url",
]
