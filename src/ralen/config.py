"""User configuration stored at <install root>/config.json."""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ralen.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILE = "config.json"
DEFAULT_OWNER = "serene1491"

# Older config files were written with these keys
LEGACY_KEYS = {
    "InstallDir": "install_dir",
    "DefaultGitHubOwner": "default_owner",
    "AutoAddToPath": "auto_add_to_path",
}


def default_home() -> Path:
    """Ralen home directory, overridable through RALEN_HOME."""
    if env_home := os.environ.get("RALEN_HOME"):
        return Path(env_home).expanduser()
    return Path.home() / ".ralen"


@dataclass
class Config:
    install_dir: Path = field(default_factory=default_home)
    default_owner: str = DEFAULT_OWNER
    auto_add_to_path: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        values: Dict[str, Any] = {}
        for key, value in data.items():
            key = LEGACY_KEYS.get(key, key)
            if key == "install_dir" and value:
                values[key] = Path(value).expanduser()
            elif key == "default_owner" and value:
                values[key] = str(value)
            elif key == "auto_add_to_path":
                values[key] = bool(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["install_dir"] = str(self.install_dir)
        return data

    @classmethod
    def load(cls, home: Optional[Path] = None) -> "Config":
        """Load config, writing defaults on first use."""
        home = home or default_home()
        path = home / CONFIG_FILE

        if not path.exists():
            cfg = cls(install_dir=home)
            cfg.save(home)
            logger.info("config_created", path=str(path))
            return cfg

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("config root must be an object")
            return cls.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning("config_unreadable", path=str(path), error=str(e))
            return cls(install_dir=home)

    def save(self, home: Optional[Path] = None) -> Path:
        home = home or default_home()
        home.mkdir(parents=True, exist_ok=True)
        path = home / CONFIG_FILE
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path

    @property
    def versions_dir(self) -> Path:
        return self.install_dir / "versions"

    @property
    def modules_dir(self) -> Path:
        return self.install_dir / "modules"
