"""Exceptions for the sia safe system.

To catch any sia error, catch ``SiaError``.
"""

from typing import Iterable


class SiaError(Exception):
    """Base exception for safe operations."""

    pass


class ArgumentError(SiaError, ValueError):
    """Raised when a required construction argument is missing or unusable."""

    def __init__(self, message: str = "Missing required argument."):
        super().__init__(message)


class PasswordError(SiaError):
    """Raised when a safe's contents cannot be decrypted with the given password."""

    def __init__(self, message: str = "Invalid password."):
        super().__init__(message)


class ConfigurationError(SiaError):
    """Raised when attempting to set bad configuration."""

    pass


class InvalidOptionError(ConfigurationError):
    """Raised when trying to set option(s) that do not exist."""

    def __init__(self, invalid: Iterable[str], available: Iterable[str]):
        self.invalid = sorted(invalid)
        self.available = list(available)
        lines = ["Got invalid option(s):"]
        lines += [f"  {name!r}" for name in self.invalid]
        lines.append("Available options:")
        lines += [f"  {name!r}" for name in self.available]
        super().__init__("\n".join(lines))


class FileOutsideScopeError(SiaError):
    """Raised by portable safes for files outside the safe directory."""

    def __init__(self, path: str = "", safe_dir: str = ""):
        message = "Portable safes can only open or close files within the safe directory."
        if path and safe_dir:
            message += f"\n  {path} is not a descendant of {safe_dir}"
        super().__init__(message)
