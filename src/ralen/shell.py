"""User shell PATH configuration."""

import os
from pathlib import Path
from typing import List, Optional

from ralen.logging import get_logger

logger = get_logger(__name__)

MARKER = "# ralen"
PROFILE_FILES = (".profile", ".bashrc")


def export_line(bin_dir: Path) -> str:
    return f'export PATH="{bin_dir}:$PATH"'


def profile_paths(home: Optional[Path] = None) -> List[Path]:
    home = home or Path.home()
    return [home / name for name in PROFILE_FILES]


def configure_path(bin_dir: Path, home: Optional[Path] = None) -> List[Path]:
    """Append an export line for bin_dir to the shell profiles missing it.

    Returns the files that were modified.
    """
    if os.name == "nt":
        logger.warning("path_configuration_unsupported", platform="windows", bin_dir=str(bin_dir))
        return []

    bin_dir.mkdir(parents=True, exist_ok=True)
    line = export_line(bin_dir)
    changed = []
    for profile in profile_paths(home):
        content = profile.read_text(encoding="utf-8") if profile.exists() else ""
        if line in content:
            continue
        prefix = "" if not content or content.endswith("\n") else "\n"
        with open(profile, "a", encoding="utf-8") as f:
            f.write(f"{prefix}{MARKER}\n{line}\n")
        changed.append(profile)

    logger.info("path_configured", bin_dir=str(bin_dir), files=[str(p) for p in changed])
    return changed


def remove_from_path(bin_dir: Path, home: Optional[Path] = None) -> List[Path]:
    """Strip the export line (and its marker) from the shell profiles."""
    line = export_line(bin_dir)
    changed = []
    for profile in profile_paths(home):
        if not profile.exists():
            continue
        lines = profile.read_text(encoding="utf-8").splitlines()
        kept: List[str] = []
        for current in lines:
            if current == line:
                if kept and kept[-1] == MARKER:
                    kept.pop()
                continue
            kept.append(current)
        if len(kept) != len(lines):
            profile.write_text("\n".join(kept) + ("\n" if kept else ""), encoding="utf-8")
            changed.append(profile)

    logger.info("path_removed", bin_dir=str(bin_dir), files=[str(p) for p in changed])
    return changed
