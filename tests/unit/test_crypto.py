"""Unit tests for key derivation and the streaming cipher."""

import io
from pathlib import Path

import pytest

from sia.crypto import BLOCK_SIZE, IV_SIZE, KeyDerivation, Lock
from sia.exceptions import PasswordError


class TestKeyDerivation:
    """Tests for PBKDF2 key derivation."""

    def test_generate_salt(self):
        """Salt is one SHA-256 digest long."""
        salt = KeyDerivation.generate_salt()
        assert len(salt) == 32

    def test_generate_salt_unique(self):
        """Each salt generation is unique."""
        salts = [KeyDerivation.generate_salt() for _ in range(10)]
        assert len(set(salts)) == 10

    def test_derive_key_deterministic(self):
        """Same password, salt and iterations give the same key."""
        salt = KeyDerivation.generate_salt()

        key1 = KeyDerivation.derive_key("test_password", salt, 10)
        key2 = KeyDerivation.derive_key("test_password", salt, 10)

        assert key1 == key2
        assert len(key1) == 32

    def test_derive_key_accepts_bytes(self):
        """A bytes password derives the same key as its UTF-8 string."""
        salt = b"x" * 32
        assert KeyDerivation.derive_key("pässword", salt, 1) == KeyDerivation.derive_key(
            "pässword".encode("utf-8"), salt, 1
        )

    def test_derive_key_inputs_matter(self):
        """Changing any input changes the key."""
        salt = b"x" * 32
        base = KeyDerivation.derive_key("password", salt, 2)

        assert KeyDerivation.derive_key("password2", salt, 2) != base
        assert KeyDerivation.derive_key("password", b"y" * 32, 2) != base
        assert KeyDerivation.derive_key("password", salt, 3) != base

    def test_known_vector(self):
        """Matches the RFC 7914 PBKDF2-HMAC-SHA256 test vector."""
        key = KeyDerivation.derive_key("passwd", b"salt", 1)
        assert key.hex() == "55ac046e56e3089fec1691c22544b605f94185216dde0465e68b9d57c20dacbc"


class TestLockStreams:
    """Tests for stream encryption and decryption."""

    @pytest.mark.parametrize("size", [0, 1, 15, 16, 17, 40, 1000])
    def test_roundtrip(self, test_key, size):
        """Content of any length survives an encrypt/decrypt cycle."""
        lock = Lock(test_key, buffer_bytes=16)
        data = bytes(range(256)) * 4
        data = data[:size]

        secure = lock.encrypt_stream(io.BytesIO(data), io.BytesIO()).getvalue()
        clear = lock.decrypt_stream(io.BytesIO(secure), io.BytesIO()).getvalue()

        assert clear == data

    def test_ciphertext_layout(self, test_key):
        """Output is IV followed by whole padded blocks."""
        lock = Lock(test_key, buffer_bytes=16)

        secure = lock.encrypt_bytes(b"a" * 40)

        # 40 bytes pad to 48
        assert len(secure) == IV_SIZE + 48
        assert len(secure) % BLOCK_SIZE == 0

    def test_fresh_iv_each_time(self, test_key):
        """Encrypting the same data twice gives different ciphertext."""
        lock = Lock(test_key)

        assert lock.encrypt_bytes(b"same data") != lock.encrypt_bytes(b"same data")

    def test_buffer_size_does_not_matter(self, test_key):
        """Data encrypted with one buffer size decrypts with another."""
        data = b"buffer sizes " * 100

        secure = Lock(test_key, buffer_bytes=7).encrypt_bytes(data)

        assert Lock(test_key, buffer_bytes=4096).decrypt_bytes(secure) == data

    def test_wrong_key_raises_password_error(self, test_key):
        """Decrypting with another key fails with PasswordError."""
        secure = Lock(test_key).encrypt_bytes(b"x" * 100)
        other = Lock(KeyDerivation.derive_key("other", b"s" * 32, 1))

        with pytest.raises(PasswordError):
            # A wrong key passes the padding check about once in 256 tries,
            # so try a few independent ciphertexts
            for _ in range(5):
                other.decrypt_bytes(secure)
                secure = Lock(test_key).encrypt_bytes(b"x" * 100)

    def test_truncated_ciphertext(self, test_key):
        """Ciphertext that is not whole blocks fails with PasswordError."""
        secure = Lock(test_key).encrypt_bytes(b"some data here")

        with pytest.raises(PasswordError):
            Lock(test_key).decrypt_bytes(secure[:-3])

    def test_missing_iv(self, test_key):
        """Input shorter than an IV fails with PasswordError."""
        with pytest.raises(PasswordError):
            Lock(test_key).decrypt_bytes(b"short")

    def test_iv_only(self, test_key):
        """An IV without any ciphertext fails with PasswordError."""
        with pytest.raises(PasswordError):
            Lock(test_key).decrypt_bytes(b"\0" * IV_SIZE)

    def test_rejects_bad_key_length(self):
        """Keys must be 32 bytes."""
        with pytest.raises(ValueError, match="32 bytes"):
            Lock(b"short")

    def test_rejects_bad_buffer(self, test_key):
        """Buffers must be positive."""
        with pytest.raises(ValueError):
            Lock(test_key, buffer_bytes=0)


class TestLockFiles:
    """Tests for the file helpers."""

    def test_encrypt_to_file_keeps_data_readable(self, tmp_path: Path, test_key):
        """encrypt_to_file/decrypt_from_file round trip; the file is kept."""
        lock = Lock(test_key)
        secure = tmp_path / "index"

        lock.encrypt_to_file(b"Hello World!", secure)

        assert secure.exists()
        assert b"Hello World!" not in secure.read_bytes()
        assert lock.decrypt_from_file(secure) == b"Hello World!"
        assert secure.exists()

    def test_encrypt_file_moves(self, tmp_path: Path, test_key):
        """encrypt_file replaces the clear file by the secure file."""
        lock = Lock(test_key, buffer_bytes=16)
        clear = tmp_path / "clear.txt"
        secure = tmp_path / "secure"
        clear.write_bytes(b"clear content " * 20)

        lock.encrypt_file(clear, secure)

        assert not clear.exists()
        assert secure.exists()
        assert b"clear content" not in secure.read_bytes()

    def test_decrypt_file_moves_back(self, tmp_path: Path, test_key):
        """decrypt_file restores the clear file and removes the secure file."""
        lock = Lock(test_key, buffer_bytes=16)
        clear = tmp_path / "clear.txt"
        secure = tmp_path / "secure"
        original = b"clear content " * 20
        clear.write_bytes(original)

        lock.encrypt_file(clear, secure)
        lock.decrypt_file(clear, secure)

        assert clear.read_bytes() == original
        assert not secure.exists()

    def test_decrypt_file_failure_keeps_secure_file(self, tmp_path: Path, test_key):
        """A failed decrypt leaves no partial clear file and keeps the secure file."""
        clear = tmp_path / "clear.txt"
        secure = tmp_path / "secure"
        secure.write_bytes(b"not a valid ciphertext at all")

        with pytest.raises(PasswordError):
            Lock(test_key).decrypt_file(clear, secure)

        assert not clear.exists()
        assert secure.exists()

    def test_encrypt_missing_file(self, tmp_path: Path, test_key):
        """Encrypting a missing file fails without creating the secure file."""
        with pytest.raises(FileNotFoundError):
            Lock(test_key).encrypt_file(tmp_path / "missing", tmp_path / "secure")

        assert not (tmp_path / "secure").exists()
