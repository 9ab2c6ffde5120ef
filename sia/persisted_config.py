"""Persisted per-safe configuration.

A safe records its configuration the first time it writes anything to
disk, so it can later be reopened with just its name and password. All
safes share a single YAML file:

    safes:
      test:
        root_dir: /Users/spencer/.sia_safes
        index_name: .sia_index
        ...
"""

import os
from pathlib import Path
from typing import Optional

import yaml

from .config import SafeConfig
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = ".sia_config"


class PersistedConfig:
    """Reads and writes the persisted configuration of safes."""

    def __init__(self, path: Path):
        """
        Initialize persisted config storage.

        Args:
            path: Path to the YAML config file
        """
        self.path = Path(path).expanduser()

    @classmethod
    def from_env(cls) -> "PersistedConfig":
        """Use ``SIA_CONFIG_PATH`` if set, else ``~/.sia_config``."""
        if path := os.getenv("SIA_CONFIG_PATH"):
            return cls(Path(path))
        return cls(Path.home() / DEFAULT_CONFIG_FILE)

    def _read(self) -> dict:
        if not self.path.is_file():
            return {"safes": {}}

        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        data.setdefault("safes", {})
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.dump(
                data,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

    def names(self) -> list[str]:
        """Names of all safes with persisted configuration."""
        return list(self._read()["safes"])

    def exists(self, name: str) -> bool:
        return name in self._read()["safes"]

    def load(self, name: str) -> Optional[SafeConfig]:
        """
        Load the persisted configuration of a safe.

        Returns:
            SafeConfig, or None if nothing was persisted for ``name``
        """
        entry = self._read()["safes"].get(name)
        if entry is None:
            return None
        return SafeConfig.from_dict(entry)

    def save(self, name: str, config: SafeConfig) -> None:
        """Persist the configuration of a safe, replacing any previous entry."""
        data = self._read()
        data["safes"][name] = config.to_dict()
        self._write(data)
        logger.debug(f"Persisted configuration for safe '{name}' to {self.path}")

    def delete(self, name: str) -> bool:
        """
        Remove the persisted configuration of a safe.

        Returns:
            True if an entry was removed
        """
        data = self._read()
        if name not in data["safes"]:
            return False

        del data["safes"][name]
        self._write(data)
        return True
