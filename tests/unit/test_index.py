"""Unit tests for the encrypted safe index."""

from datetime import datetime
from pathlib import Path

import pytest

from sia.crypto import KeyDerivation, Lock
from sia.exceptions import PasswordError
from sia.index import FileEntry, IndexStore, SafeIndex


class TestSafeIndex:
    """Tests for index serialization."""

    def test_entry_dict_roundtrip(self):
        """Entries keep their timestamps and state."""
        closed = datetime(2024, 4, 29, 19, 58, 24)
        entry = FileEntry("/a.txt", "digest", last_closed=closed, safe=True)

        restored = FileEntry.from_dict("/a.txt", entry.to_dict())

        assert restored == entry
        assert restored.last_opened is None

    def test_yaml_roundtrip(self):
        """An index survives YAML serialization."""
        index = SafeIndex()
        index.files["/a.txt"] = FileEntry("/a.txt", "x", last_closed=datetime.now(), safe=True)
        index.files["/b.txt"] = FileEntry("/b.txt", "y", last_opened=datetime.now())

        restored = SafeIndex.from_yaml(index.to_yaml())

        assert restored.files == index.files
        assert restored.created_at == index.created_at

    def test_secured_and_unsecured(self):
        """Views split entries by state."""
        index = SafeIndex()
        index.files["/a"] = FileEntry("/a", "x", safe=True)
        index.files["/b"] = FileEntry("/b", "y", safe=False)

        assert [e.clear_path for e in index.secured()] == ["/a"]
        assert [e.clear_path for e in index.unsecured()] == ["/b"]

    @pytest.mark.parametrize("text", ["just a string", "- a\n- list", "{files: {x: 1}}", "files: [unclosed"])
    def test_garbage_raises_password_error(self, text):
        """Text that is not an index raises PasswordError."""
        with pytest.raises(PasswordError):
            SafeIndex.from_yaml(text)


class TestIndexStore:
    """Tests for reading and writing the encrypted index."""

    @pytest.fixture
    def lock(self) -> Lock:
        return Lock(KeyDerivation.derive_key("secret", b"s" * 32, 1), buffer_bytes=16)

    def test_missing_index_is_empty(self, tmp_path: Path, lock):
        """Loading before the first save gives an empty index."""
        store = IndexStore(tmp_path / ".sia_index", lock)

        assert not store.exists()
        assert store.load().files == {}

    def test_save_and_load(self, tmp_path: Path, lock):
        """Saved entries load back."""
        store = IndexStore(tmp_path / ".sia_index", lock)
        index = SafeIndex()
        index.files["/a.txt"] = FileEntry("/a.txt", "x", safe=True)

        store.save(index)

        assert store.exists()
        assert store.load().files["/a.txt"].safe is True

    def test_index_is_encrypted(self, tmp_path: Path, lock):
        """The clear path does not appear in the index file."""
        store = IndexStore(tmp_path / ".sia_index", lock)
        index = SafeIndex()
        index.files["/very/secret/path.txt"] = FileEntry("/very/secret/path.txt", "x")

        store.save(index)

        assert b"secret/path" not in store.path.read_bytes()

    def test_wrong_key(self, tmp_path: Path, lock):
        """An index written with one key cannot be read with another."""
        IndexStore(tmp_path / ".sia_index", lock).save(SafeIndex())
        wrong = Lock(KeyDerivation.derive_key("wrong", b"s" * 32, 1))

        with pytest.raises(PasswordError):
            IndexStore(tmp_path / ".sia_index", wrong).load()

    def test_delete(self, tmp_path: Path, lock):
        store = IndexStore(tmp_path / ".sia_index", lock)
        store.save(SafeIndex())

        assert store.delete()
        assert not store.exists()
        assert not store.delete()
