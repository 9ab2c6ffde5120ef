"""Keep all the files safe.

Encrypt files and store them in a digital safe. Have one safe for
everything, or use individual safes for each file to be encrypted.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from .config import SafeConfig
from .crypto import KeyDerivation, Lock
from .exceptions import ArgumentError, ConfigurationError, FileOutsideScopeError
from .index import FileEntry, IndexStore, SafeIndex
from .naming import clear_path, is_descendant, secure_path
from .persisted_config import PersistedConfig
from .utils.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def _require(argument: str, value: Any) -> str:
    text = "" if value is None else str(value)
    if not text:
        raise ArgumentError(f"Missing required argument: {argument}")
    return text


class Safe:
    """
    A named, password-protected set of files.

    When creating a safe provide at least a name and a password, and the
    defaults will take care of the rest:

        safe = Safe("test", "secret")

    With a safe in hand, close an existing file to keep it safe:

        safe.close("~/secret.txt")

    The file is no longer present at ``~/secret.txt``; it is now encrypted
    in the safe directory under a new name. Restore it with :meth:`open`,
    passing the path as it was before the file was closed:

        safe.open("~/secret.txt")

    :meth:`fill` closes every open file of the safe and :meth:`empty` opens
    every closed one. :meth:`delete` removes the safe as-is: **all
    currently closed files are lost**, open files are left alone.

    The safe directory for this example looks like:

        ~/.sia_safes/
        └── test/
            ├── .sia_index      encrypted index
            ├── .sia_salt       salt for the key derivation
            └── 0nxntvTLteCTZ8cmZdX848gGaYHRAOHqir-1RuJ-n-E

    Safes keep no locks. Two Safe objects working on the same safe at the
    same time, in one process or several, can lose index updates; callers
    must serialize access to a safe.
    """

    def __init__(
        self,
        name: Any,
        password: Any,
        config: Optional[SafeConfig] = None,
        persisted_config: Optional[PersistedConfig] = None,
        **options: Any,
    ):
        """
        Open or create a safe.

        Args:
            name: Safe name, used as the safe's directory name
            password: Safe password
            config: Base configuration (default: SafeConfig.from_env())
            persisted_config: Where safe configuration is persisted
                (default: PersistedConfig.from_env())
            **options: Option overrides, see :class:`SafeConfig`. For safes
                that already exist they must match the persisted config.

        Raises:
            ArgumentError: If name or password is missing
            ConfigurationError: If options are invalid or change an existing safe
            PasswordError: If the safe exists and the password is wrong
        """
        self.name = _require("name", name)
        password = _require("password", password)
        if self.name in (".", "..") or "/" in self.name or "\\" in self.name:
            raise ArgumentError(f"Safe name must be a single path segment, got {self.name!r}")

        self._persisted = persisted_config or PersistedConfig.from_env()
        self.config = self._resolve_config(config, options)

        if self.salt_path.is_file():
            self._salt = self.salt_path.read_bytes()
        else:
            # Held in memory until the safe is first persisted
            self._salt = KeyDerivation.generate_salt()

        key = KeyDerivation.derive_key(password, self._salt, self.config.digest_iterations)
        self._lock = Lock(key, self.config.buffer_bytes)
        self._index_store = IndexStore(self.index_path, self._lock)

        # Don't let initialization succeed if the password was invalid
        self.index

    def __repr__(self) -> str:
        return f"Safe({self.name!r}, safe_dir={str(self.safe_dir)!r})"

    def _resolve_config(self, config: Optional[SafeConfig], options: dict[str, Any]) -> SafeConfig:
        stored = self._persisted.load(self.name)
        requested = (config or stored or SafeConfig.from_env()).with_options(**options)

        if stored is not None and requested != stored:
            differences = "\n  ".join(stored.differences(requested))
            raise ConfigurationError(f"Cannot change safe configuration\n  {differences}")

        return requested

    # ------------------------------------------------------------------
    # Paths and state
    # ------------------------------------------------------------------

    @property
    def safe_dir(self) -> Path:
        """The directory where this safe is stored."""
        return self.config.root_dir / self.name

    @property
    def index_path(self) -> Path:
        """Path to the encrypted index file."""
        return self.safe_dir / self.config.index_name

    @property
    def salt_path(self) -> Path:
        """Path to the file storing the salt."""
        return self.safe_dir / self.config.salt_name

    @property
    def salt(self) -> bytes:
        return self._salt

    @property
    def index(self) -> SafeIndex:
        """Information about the files in the safe, read fresh from disk."""
        return self._index_store.load()

    @property
    def files(self) -> dict[str, FileEntry]:
        return self.index.files

    @property
    def is_persisted(self) -> bool:
        """Whether anything of this safe has been written to disk."""
        return self.index_path.is_file() or self._persisted.exists(self.name)

    def persist(self) -> None:
        """
        Persist the safe and its configuration.

        Creates the safe directory, the salt file, the persisted
        configuration and an empty index. Does nothing once done.
        """
        if self.index_path.is_file() and self._persisted.exists(self.name):
            return

        self.safe_dir.mkdir(parents=True, exist_ok=True)
        if not self.salt_path.is_file():
            self.salt_path.write_bytes(self._salt)

        self._persisted.save(self.name, self.config)

        if not self._index_store.exists():
            self._index_store.save(SafeIndex())

        logger.info(f"Persisted safe '{self.name}' at {self.safe_dir}")

    def _clear_path(self, filename: PathLike) -> Path:
        return clear_path(filename, self.config.in_place, self.config.extension)

    def _secure_path(self, clear: Path) -> Path:
        return secure_path(clear, self.safe_dir, self.config.in_place, self.config.extension)

    def _check_in_scope(self, clear: Path) -> None:
        if self.config.portable and not is_descendant(clear, self.safe_dir):
            raise FileOutsideScopeError(str(clear), str(self.safe_dir))

    def _check_not_safe_file(self, clear: Path) -> None:
        """Refuse paths that belong to the safe itself."""
        if clear in (self.index_path, self.salt_path):
            raise ArgumentError(f"Cannot close or open the safe's own {clear.name} file")
        if not self.config.in_place and clear.parent == self.safe_dir:
            if any(entry.secure_file == clear.name for entry in self.index.files.values()):
                raise ArgumentError(f"{clear} is a secure file of safe '{self.name}'")

    def _record(self, clear: Path, secure: Path, **changes: Any) -> FileEntry:
        """Read the index, update the entry for ``clear`` and write it back."""
        index = self.index
        key = str(clear)

        entry = index.get(key) or FileEntry(clear_path=key, secure_file="")
        entry.secure_file = str(secure) if self.config.in_place else secure.name
        for attr, value in changes.items():
            setattr(entry, attr, value)

        index.files[key] = entry
        self._index_store.save(index)
        return entry

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def close(self, filename: PathLike) -> FileEntry:
        """
        Secure a file in the safe.

        Args:
            filename: Relative or absolute path to the file to secure

        Returns:
            The file's updated index entry

        Raises:
            FileOutsideScopeError: If the safe is portable and the file lies
                outside the safe directory
            ArgumentError: If the path is the safe's index, salt or one of
                its secure files
            FileNotFoundError: If there is no clear file to close
        """
        clear = self._clear_path(filename)
        self._check_in_scope(clear)
        self._check_not_safe_file(clear)
        if not clear.is_file():
            raise FileNotFoundError(f"File not found: {clear}")

        self.persist()

        secure = self._secure_path(clear)
        self._lock.encrypt_file(clear, secure)

        entry = self._record(clear, secure, last_closed=datetime.now(), safe=True)
        logger.info(f"Closed {clear} in safe '{self.name}'")
        return entry

    def open(self, filename: PathLike) -> FileEntry:
        """
        Extract a file from the safe.

        Args:
            filename: Relative or absolute path to the file as it existed
                before being closed. In-place safes also accept the closed
                path carrying the extension.

        Returns:
            The file's updated index entry

        Raises:
            FileOutsideScopeError: If the safe is portable and the file lies
                outside the safe directory
            ArgumentError: If the path is the safe's index, salt or one of
                its secure files
            FileNotFoundError: If there is no secure file for this path
        """
        clear = self._clear_path(filename)
        self._check_in_scope(clear)
        self._check_not_safe_file(clear)

        secure = self._secure_path(clear)
        if not secure.is_file():
            raise FileNotFoundError(f"No closed file for {clear} in safe '{self.name}'")

        self._lock.decrypt_file(clear, secure)

        entry = self._record(clear, secure, last_opened=datetime.now(), safe=False)
        logger.info(f"Opened {clear} from safe '{self.name}'")
        return entry

    def empty(self) -> list[Path]:
        """
        Open all closed files in the safe.

        Returns:
            Clear paths of the files that were opened
        """
        opened = []
        for entry in self.index.secured():
            self.open(entry.clear_path)
            opened.append(Path(entry.clear_path))
        return opened

    def fill(self) -> list[Path]:
        """
        Close all open files in the safe.

        Returns:
            Clear paths of the files that were closed
        """
        closed = []
        for entry in self.index.unsecured():
            self.close(entry.clear_path)
            closed.append(Path(entry.clear_path))
        return closed

    def delete(self) -> bool:
        """
        Delete the safe as-is, without opening or closing files.

        All closed files are deleted. Open files are not touched. The safe
        directory is removed only if nothing but closed files, the index
        and the salt were in it.

        Returns:
            True if there was anything to delete
        """
        if not self.is_persisted:
            return False

        for entry in self.index.secured():
            secure = self._secure_path(Path(entry.clear_path))
            if secure.is_file():
                secure.unlink()
            else:
                logger.warning(f"Secure file for {entry.clear_path} was already gone: {secure}")

        self._index_store.delete()
        self.salt_path.unlink(missing_ok=True)
        if self.safe_dir.is_dir() and not any(self.safe_dir.iterdir()):
            self.safe_dir.rmdir()

        self._persisted.delete(self.name)

        logger.info(f"Deleted safe '{self.name}'")
        return True
