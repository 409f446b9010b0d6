"""Artifact installation."""
from ralen.installer.archive import classify_artifact, install_artifact

__all__ = ["classify_artifact", "install_artifact"]
