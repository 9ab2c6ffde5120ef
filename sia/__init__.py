"""sia - password-protected file safes.

Usage:
    from sia import Safe

    safe = Safe("test", "secret")
    safe.close("~/secret.txt")
    safe.open("~/secret.txt")

    # Close files next to the original instead of in the safe directory
    safe = Safe("notes", "secret", in_place=True)
"""

__version__ = "0.1.0"

# Exceptions
from .exceptions import (
    ArgumentError,
    ConfigurationError,
    FileOutsideScopeError,
    InvalidOptionError,
    PasswordError,
    SiaError,
)

# Configuration
from .config import (
    OPTION_NAMES,
    SafeConfig,
    validate_options,
)
from .persisted_config import PersistedConfig

# Encryption
from .crypto import (
    KeyDerivation,
    Lock,
)

# Naming
from .naming import (
    clear_path,
    digest_filename,
    secure_path,
)

# Safes
from .index import (
    FileEntry,
    IndexStore,
    SafeIndex,
)
from .safe import Safe

__all__ = [
    "__version__",
    # Exceptions
    "SiaError",
    "ArgumentError",
    "PasswordError",
    "ConfigurationError",
    "InvalidOptionError",
    "FileOutsideScopeError",
    # Configuration
    "OPTION_NAMES",
    "SafeConfig",
    "validate_options",
    "PersistedConfig",
    # Encryption
    "KeyDerivation",
    "Lock",
    # Naming
    "clear_path",
    "digest_filename",
    "secure_path",
    # Safes
    "FileEntry",
    "SafeIndex",
    "IndexStore",
    "Safe",
]
