"""Encrypted index of the files in a safe.

The index is the single source of truth for which clear paths are closed
and where their secure files live. It is stored as a YAML document,
encrypted with the safe's :class:`~sia.crypto.Lock`, and always read,
changed in memory and written back whole.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

from .crypto import Lock
from .exceptions import PasswordError

INDEX_VERSION = 1


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class FileEntry:
    """A clear file tracked by a safe."""

    clear_path: str
    secure_file: str  # digest file name, or full path for in-place safes
    last_closed: Optional[datetime] = None
    last_opened: Optional[datetime] = None
    safe: bool = False  # True while the file is closed

    def to_dict(self) -> dict[str, Any]:
        return {
            "secure_file": self.secure_file,
            "last_closed": _format_time(self.last_closed),
            "last_opened": _format_time(self.last_opened),
            "safe": self.safe,
        }

    @classmethod
    def from_dict(cls, clear_path: str, data: dict[str, Any]) -> "FileEntry":
        return cls(
            clear_path=clear_path,
            secure_file=data["secure_file"],
            last_closed=_parse_time(data.get("last_closed")),
            last_opened=_parse_time(data.get("last_opened")),
            safe=bool(data.get("safe", False)),
        )


@dataclass
class SafeIndex:
    """Information about the files in a safe."""

    files: dict[str, FileEntry] = field(default_factory=dict)
    version: int = INDEX_VERSION
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def get(self, clear_path: str) -> Optional[FileEntry]:
        return self.files.get(clear_path)

    def secured(self) -> list[FileEntry]:
        """Entries whose files are currently closed."""
        return [entry for entry in self.files.values() if entry.safe]

    def unsecured(self) -> list[FileEntry]:
        """Entries whose files are currently open."""
        return [entry for entry in self.files.values() if not entry.safe]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "created_at": self.created_at,
            "files": {path: entry.to_dict() for path, entry in self.files.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SafeIndex":
        files = data.get("files") or {}
        return cls(
            files={path: FileEntry.from_dict(path, entry) for path, entry in files.items()},
            version=data.get("version", INDEX_VERSION),
            created_at=data.get("created_at", ""),
        )

    def to_yaml(self) -> str:
        return yaml.dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    @classmethod
    def from_yaml(cls, text: str) -> "SafeIndex":
        """
        Deserialize from a YAML string.

        Raises:
            PasswordError: If the text is not a valid index. Decrypting with
                a wrong key occasionally gets past the padding check and
                produces garbage, which ends up here.
        """
        try:
            data = yaml.safe_load(text)
            if not isinstance(data, dict):
                raise ValueError(f"expected a mapping, got {type(data).__name__}")
            return cls.from_dict(data)
        except (yaml.YAMLError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise PasswordError("Invalid password or corrupted index.") from e


class IndexStore:
    """Reads and writes a safe's index file through its lock."""

    def __init__(self, path: Path, lock: Lock):
        self.path = Path(path)
        self._lock = lock

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> SafeIndex:
        """
        Decrypt and parse the index.

        Returns:
            SafeIndex, empty if no index has been written yet

        Raises:
            PasswordError: If the index cannot be decrypted or parsed
        """
        if not self.exists():
            return SafeIndex()

        clear = self._lock.decrypt_from_file(self.path)
        try:
            text = clear.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PasswordError() from e
        return SafeIndex.from_yaml(text)

    def save(self, index: SafeIndex) -> None:
        """Serialize and encrypt the whole index, replacing the file."""
        self._lock.encrypt_to_file(index.to_yaml().encode("utf-8"), self.path)

    def delete(self) -> bool:
        if not self.exists():
            return False
        self.path.unlink()
        return True
