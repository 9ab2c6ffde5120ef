"""Placement of secure files.

Relocated files are stored in the safe directory under the SHA-256 digest
of their clear path, encoded in URL-safe base64 without padding:

    /Users/spencer/secret.txt -> ~/.sia_safes/test/0nxntvTLteCTZ8cmZdX848gGaYHRAOHqir-1RuJ-n-E

In-place files stay where they are and only gain an extension:

    /Users/spencer/secret.txt -> /Users/spencer/secret.txt.sia_closed
"""

import base64
import hashlib
import os
from pathlib import Path
from typing import Union

DEFAULT_EXTENSION = ".sia_closed"

PathLike = Union[str, Path]


def normalize_extension(extension: str) -> str:
    """Return ``extension`` with exactly one leading dot."""
    stripped = str(extension).lstrip(".")
    if not stripped:
        raise ValueError(f"Extension must not be blank: {extension!r}")
    return "." + stripped


def digest_filename(clear: PathLike) -> str:
    """
    Generate a url-safe filename from the full clear path.

    The raw file system bytes of the path are hashed, so names that are
    not valid UTF-8 work too.
    """
    digest = hashlib.sha256(os.fsencode(str(clear))).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def clear_path(
    filename: PathLike,
    in_place: bool = False,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """
    Canonicalize a user-supplied path to the clear path it stands for.

    Symlinks are resolved, so closing a link secures the file it points
    to and leaves the link itself in place.

    Args:
        filename: Relative or absolute path; for in-place safes this may be
            the closed path carrying the extension
        in_place: Whether the safe closes files in place
        extension: Extension added to files closed in place

    Returns:
        Absolute, resolved clear path
    """
    path = Path(filename).expanduser().resolve()
    if in_place and path.name.endswith(extension) and path.name != extension:
        path = path.with_name(path.name[: -len(extension)])
    return path


def secure_path(
    clear: PathLike,
    safe_dir: PathLike,
    in_place: bool = False,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """
    Get the path of the secure file for a clear path.

    Args:
        clear: Canonical clear path (see :func:`clear_path`)
        safe_dir: Directory of the safe
        in_place: Whether the safe closes files in place
        extension: Extension added to files closed in place

    Returns:
        Path of the secure file
    """
    if in_place:
        return Path(str(clear) + extension)
    return Path(safe_dir) / digest_filename(clear)


def is_descendant(path: PathLike, directory: PathLike) -> bool:
    """Check whether ``path`` lies somewhere below ``directory``."""
    path = Path(path)
    directory = Path(directory)
    return path != directory and directory in path.parents
