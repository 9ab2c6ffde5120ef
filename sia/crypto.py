"""Core cryptographic primitives for safes.

Uses the cryptography library for:
- PBKDF2-HMAC-SHA256 key derivation
- AES-256-CBC with PKCS7 padding for streaming file encryption

Every secure stream starts with its random 16-byte IV, followed by the
ciphertext. There is no MAC: a wrong key is detected only when the
padding or block structure fails to validate. Roughly one wrong key in
256 passes that check and decrypts to garbage instead of raising.
"""

import io
import os
from pathlib import Path
from typing import BinaryIO, Union

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import PasswordError

# SHA-256 digest length; used for both the salt and the derived key
DIGEST_SIZE = 32
SALT_SIZE = DIGEST_SIZE
KEY_SIZE = DIGEST_SIZE  # 256 bits for AES-256

# AES block and IV size
BLOCK_SIZE = 16
IV_SIZE = BLOCK_SIZE

DEFAULT_BUFFER_BYTES = 512


class KeyDerivation:
    """Derives symmetric keys from a password and a per-safe salt."""

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically secure random salt."""
        return os.urandom(SALT_SIZE)

    @staticmethod
    def derive_key(password: Union[str, bytes], salt: bytes, iterations: int) -> bytes:
        """
        Derive a 256-bit key from password using PBKDF2-HMAC-SHA256.

        The same password, salt and iteration count always produce the
        same key. Raising ``iterations`` makes guessing proportionally
        slower.

        Args:
            password: Safe password (str is UTF-8 encoded)
            salt: Per-safe random salt
            iterations: PBKDF2 iteration count

        Returns:
            32-byte derived key
        """
        if isinstance(password, str):
            password = password.encode("utf-8")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(password)


class Lock:
    """
    Every good safe needs a safe lock.

    Streams data through AES-256-CBC using a key from
    :class:`KeyDerivation`, reading at most ``buffer_bytes`` at a time so
    that files of any size are processed without loading them into memory.

    Usage:
        key = KeyDerivation.derive_key("secret", salt, 200_000)
        lock = Lock(key, buffer_bytes=512)
        lock.encrypt_to_file(b"Hello World!", secure_path)
        lock.decrypt_from_file(secure_path)  # b"Hello World!"
    """

    def __init__(self, key: bytes, buffer_bytes: int = DEFAULT_BUFFER_BYTES):
        """
        Initialize with a 256-bit key.

        Args:
            key: 32-byte key from KeyDerivation.derive_key
            buffer_bytes: Read size when streaming
        """
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        if buffer_bytes < 1:
            raise ValueError(f"buffer_bytes must be positive, got {buffer_bytes}")
        self._key = key
        self.buffer_bytes = buffer_bytes

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def encrypt_stream(self, source: BinaryIO, dest: BinaryIO) -> BinaryIO:
        """
        Encrypt everything readable from ``source`` into ``dest``.

        Writes a fresh random IV first, then one ciphertext chunk per
        buffer read, then the padded final block.

        Returns:
            ``dest``
        """
        iv = os.urandom(IV_SIZE)
        encryptor = self._cipher(iv).encryptor()
        padder = padding.PKCS7(BLOCK_SIZE * 8).padder()

        dest.write(iv)
        while chunk := source.read(self.buffer_bytes):
            dest.write(encryptor.update(padder.update(chunk)))
        dest.write(encryptor.update(padder.finalize()) + encryptor.finalize())

        return dest

    def decrypt_stream(self, source: BinaryIO, dest: BinaryIO) -> BinaryIO:
        """
        Decrypt an IV-prefixed ciphertext from ``source`` into ``dest``.

        Returns:
            ``dest``

        Raises:
            PasswordError: If the IV is missing or the ciphertext does not
                unpad cleanly, which almost always means a wrong key
        """
        iv = source.read(IV_SIZE)
        unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()

        try:
            decryptor = self._cipher(iv).decryptor()
            while chunk := source.read(self.buffer_bytes):
                dest.write(unpadder.update(decryptor.update(chunk)))
            dest.write(unpadder.update(decryptor.finalize()) + unpadder.finalize())
        except ValueError as e:
            raise PasswordError() from e

        return dest

    # ------------------------------------------------------------------
    # In-memory data
    # ------------------------------------------------------------------

    def encrypt_bytes(self, data: bytes) -> bytes:
        """Encrypt data in memory."""
        return self.encrypt_stream(io.BytesIO(data), io.BytesIO()).getvalue()

    def decrypt_bytes(self, blob: bytes) -> bytes:
        """Decrypt data in memory."""
        return self.decrypt_stream(io.BytesIO(blob), io.BytesIO()).getvalue()

    def encrypt_to_file(self, data: bytes, secure: Path) -> None:
        """
        Encrypt in-memory data to a secure file.

        Used for small payloads such as the safe index.
        """
        with open(secure, "wb") as s:
            self.encrypt_stream(io.BytesIO(data), s)

    def decrypt_from_file(self, secure: Path) -> bytes:
        """Decrypt a secure file into memory. The secure file is kept."""
        with open(secure, "rb") as s:
            return self.decrypt_stream(s, io.BytesIO()).getvalue()

    # ------------------------------------------------------------------
    # Files (destructive move)
    # ------------------------------------------------------------------

    def encrypt_file(self, clear: Path, secure: Path) -> None:
        """
        Encrypt a clear file into a secure file, removing the clear file.

        The clear file is only removed once the secure file has been
        completely written and closed.

        Args:
            clear: Path to the clear file
            secure: Path to the secure file
        """
        clear, secure = Path(clear), Path(secure)
        with open(clear, "rb") as c, open(secure, "wb") as s:
            self.encrypt_stream(c, s)
        clear.unlink()

    def decrypt_file(self, clear: Path, secure: Path) -> None:
        """
        Decrypt a secure file into a clear file, removing the secure file.

        On a decryption failure the partial clear file is removed and the
        secure file is left as it was.

        Args:
            clear: Path to the clear file
            secure: Path to the secure file

        Raises:
            PasswordError: If the secure file cannot be decrypted
        """
        clear, secure = Path(clear), Path(secure)
        try:
            with open(secure, "rb") as s, open(clear, "wb") as c:
                self.decrypt_stream(s, c)
        except PasswordError:
            clear.unlink(missing_ok=True)
            raise
        secure.unlink()
