"""Shared pytest fixtures for sia tests."""

from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.sia_config and sia env vars."""
    for var in (
        "SIA_ROOT_DIR",
        "SIA_DIGEST_ITERATIONS",
        "SIA_BUFFER_BYTES",
        "SIA_IN_PLACE",
        "SIA_EXTENSION",
        "SIA_PORTABLE",
        "SIA_SAFE",
        "SIA_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)

    config_path = tmp_path / "sia_config.yaml"
    monkeypatch.setenv("SIA_CONFIG_PATH", str(config_path))
    return config_path


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Directory holding the test safes."""
    path = tmp_path / "safes"
    path.mkdir()
    return path


@pytest.fixture
def clear_dir(tmp_path: Path) -> Path:
    """Directory for clear files, outside of every safe."""
    path = tmp_path / "clear"
    path.mkdir()
    return path


@pytest.fixture
def make_safe(root_dir: Path) -> Callable:
    """Factory for fast safes (one key derivation iteration)."""
    from sia import Safe

    def _make(name: str = "test", password: str = "abc", **options):
        options.setdefault("root_dir", root_dir)
        options.setdefault("digest_iterations", 1)
        options.setdefault("buffer_bytes", 16)
        return Safe(name, password, **options)

    return _make


@pytest.fixture
def clear_file(clear_dir: Path) -> Path:
    """A small clear text file."""
    path = clear_dir / "secret.txt"
    path.write_text("this is the clear text")
    return path


@pytest.fixture
def test_key() -> bytes:
    """A derived key for cipher tests."""
    from sia.crypto import KeyDerivation

    return KeyDerivation.derive_key("secret", b"s" * 32, 1)
