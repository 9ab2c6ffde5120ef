"""Safe configuration.

A safe is configured once, when it is created. ``SafeConfig`` is frozen:
derive a changed copy with :meth:`SafeConfig.with_options`, which runs
every value through :func:`validate_options` first.

    config = SafeConfig().with_options(root_dir="/safes", buffer_bytes="2048")
    config.buffer_bytes
    # => 2048
"""

import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError, InvalidOptionError
from .naming import DEFAULT_EXTENSION, normalize_extension

OPTION_NAMES = (
    "root_dir",
    "index_name",
    "salt_name",
    "digest_iterations",
    "buffer_bytes",
    "in_place",
    "extension",
    "portable",
)

# Characters that are never accepted in a root_dir
_UNSAFE_PATH_CHARS = re.compile(r"[&^%$#!*?<>|\"\x00-\x1f]")
# File names inside the safe directory must be url-safe
_SAFE_FILE_NAME = re.compile(r"^[A-Za-z0-9._-]+$")

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _type_error(key: str, expected: str, value: Any) -> ConfigurationError:
    return ConfigurationError(f"{key!r} should be {expected} but was a {type(value).__name__}")


def _coerce_root_dir(value: Any) -> Path:
    if not isinstance(value, (str, os.PathLike)):
        raise _type_error("root_dir", "a path", value)
    text = os.fspath(value)
    if not text.strip():
        raise ConfigurationError("'root_dir' must not be blank")
    if _UNSAFE_PATH_CHARS.search(text):
        raise ConfigurationError(f"'root_dir' contains unsafe characters: {text!r}")
    return Path(text).expanduser().resolve()


def _coerce_file_name(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise _type_error(key, "a string", value)
    if not value:
        raise ConfigurationError(f"{key!r} must not be blank")
    if not _SAFE_FILE_NAME.match(value) or value in (".", ".."):
        raise ConfigurationError(f"{key!r} must be a url-safe file name, got {value!r}")
    return value


def _coerce_positive_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise _type_error(key, "an integer", value)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdecimal():
        number = int(value)
    else:
        raise _type_error(key, "an integer", value)
    if number < 1:
        raise ConfigurationError(f"{key!r} must be positive, got {number}")
    return number


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _type_error(key, "a boolean", value)


def _coerce_extension(value: Any) -> str:
    if not isinstance(value, str):
        raise _type_error("extension", "a string", value)
    try:
        extension = normalize_extension(value)
    except ValueError as e:
        raise ConfigurationError(f"'extension' {e}") from e
    return _coerce_file_name("extension", extension)


def validate_options(options: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and coerce a partial set of options.

    Numeric strings are accepted for integer options, and strings such as
    ``"true"`` or ``"no"`` for boolean options.

    Args:
        options: Option names mapped to proposed values

    Returns:
        The same options with coerced values

    Raises:
        InvalidOptionError: If any key is not a recognised option
        ConfigurationError: If any value is blank, unsafe or of the wrong type
    """
    invalid = set(options) - set(OPTION_NAMES)
    if invalid:
        raise InvalidOptionError(invalid, OPTION_NAMES)

    cleaned: dict[str, Any] = {}
    for key, value in options.items():
        if key == "root_dir":
            cleaned[key] = _coerce_root_dir(value)
        elif key in ("index_name", "salt_name"):
            cleaned[key] = _coerce_file_name(key, value)
        elif key in ("digest_iterations", "buffer_bytes"):
            cleaned[key] = _coerce_positive_int(key, value)
        elif key in ("in_place", "portable"):
            cleaned[key] = _coerce_bool(key, value)
        elif key == "extension":
            cleaned[key] = _coerce_extension(value)
    return cleaned


@dataclass(frozen=True)
class SafeConfig:
    """Configuration for a single safe."""

    # Directory holding all the safes; each safe gets its own subdirectory
    root_dir: Path = field(default_factory=lambda: Path.home() / ".sia_safes")

    # Files inside the safe directory
    index_name: str = ".sia_index"
    salt_name: str = ".sia_salt"

    # Key derivation cost
    digest_iterations: int = 200_000

    # Read size when streaming files through the cipher
    buffer_bytes: int = 512

    # Close files next to the original instead of in the safe directory
    in_place: bool = False
    extension: str = DEFAULT_EXTENSION

    # Only accept files below the safe directory
    portable: bool = False

    def __post_init__(self):
        cleaned = validate_options({f.name: getattr(self, f.name) for f in fields(self)})
        for key, value in cleaned.items():
            object.__setattr__(self, key, value)

        if self.index_name == self.salt_name:
            raise ConfigurationError(
                f"'index_name' and 'salt_name' cannot be equal, but were both {self.salt_name!r}"
            )
        if self.root_dir.exists() and not self.root_dir.is_dir():
            raise ConfigurationError(f"'root_dir' is not a directory: {self.root_dir}")

    def with_options(self, **options: Any) -> "SafeConfig":
        """Return a validated copy with ``options`` applied."""
        return replace(self, **validate_options(options))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        data = {name: getattr(self, name) for name in OPTION_NAMES}
        data["root_dir"] = str(self.root_dir)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SafeConfig":
        """Create from dictionary."""
        return cls().with_options(**data)

    def differences(self, other: "SafeConfig") -> list[str]:
        """Describe every option whose value differs in ``other``."""
        return [
            f"{name} changed from {getattr(self, name)!r} to {getattr(other, name)!r}"
            for name in OPTION_NAMES
            if getattr(self, name) != getattr(other, name)
        ]

    @classmethod
    def from_env(cls) -> "SafeConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            SIA_ROOT_DIR: Directory holding the safes (default: ~/.sia_safes)
            SIA_DIGEST_ITERATIONS: PBKDF2 iterations (default: 200000)
            SIA_BUFFER_BYTES: Streaming buffer size (default: 512)
            SIA_IN_PLACE: Close files in place (default: false)
            SIA_EXTENSION: Extension for in-place files (default: .sia_closed)
            SIA_PORTABLE: Restrict safes to their own directory (default: false)
        """
        overrides = {}

        for name in OPTION_NAMES:
            if name in ("index_name", "salt_name"):
                continue
            if value := os.getenv(f"SIA_{name.upper()}"):
                overrides[name] = value

        return cls().with_options(**overrides)
