"""Local asset store."""

from pathlib import Path

import pytest

from document_core.errors import PersistenceError
from document_core.storage import LocalAssetStore


@pytest.fixture
def store(tmp_path: Path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path)


def test_put_then_get(store: LocalAssetStore, tmp_path: Path) -> None:
    assert store.put("rechnung/RE_1.pdf", b"%PDF-1.4") == "rechnung/RE_1.pdf"
    assert (tmp_path / "rechnung" / "RE_1.pdf").read_bytes() == b"%PDF-1.4"

    asset = store.get("rechnung/RE_1.pdf")
    assert asset.data == b"%PDF-1.4"
    assert asset.mime_type == "application/pdf"


def test_put_replaces_existing(store: LocalAssetStore) -> None:
    store.put("a.pdf", b"old")
    store.put("a.pdf", b"new")
    assert store.get("a.pdf").data == b"new"


def test_missing_asset(store: LocalAssetStore) -> None:
    assert store.get("logos/none.png") is None
    assert store.get(None) is None
    assert store.get("") is None


def test_guesses_image_type(store: LocalAssetStore) -> None:
    store.put("logos/logo.png", b"\x89PNG", content_type="image/png")
    assert store.get("logos/logo.png").mime_type == "image/png"


def test_keys_cannot_escape_root(store: LocalAssetStore) -> None:
    with pytest.raises(ValueError):
        store.get("../secret.txt")
    with pytest.raises(ValueError):
        store.put("../../etc/evil.pdf", b"x")


def test_write_failure_is_a_persistence_error(tmp_path: Path) -> None:
    (tmp_path / "blocked").write_bytes(b"a file, not a folder")
    store = LocalAssetStore(tmp_path)
    with pytest.raises(PersistenceError):
        store.put("blocked/RE_1.pdf", b"%PDF")
