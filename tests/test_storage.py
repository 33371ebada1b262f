"""Tests for private PDF storage."""

import pytest

from app.ni43101.services.storage import (
    StorageAccessDeniedError,
    StorageService,
    StoredFileNotFoundError,
    generate_storage_key,
)


@pytest.fixture
def storage(tmp_path) -> StorageService:
    service = StorageService(tmp_path, "test-bucket")
    service.ensure_bucket()
    return service


class TestGenerateStorageKey:
    def test_owner_prefix(self):
        key = generate_storage_key("user-1")
        assert key.startswith("user-1/")
        assert key.endswith(".pdf")

    @pytest.mark.parametrize("owner_id", ["", "a/b", ".."])
    def test_rejects_owner_ids_that_are_not_one_folder(self, owner_id):
        with pytest.raises(ValueError):
            generate_storage_key(owner_id)


class TestOwnerChecks:
    """Reads are limited to files directly inside the caller's folder."""

    def test_round_trip_for_owner(self, storage: StorageService):
        key = storage.save("user-1", b"%PDF-1.4 data")
        assert storage.read("user-1", key) == b"%PDF-1.4 data"
        assert storage.list_folder("user-1") == [key]

    def test_other_owner_denied(self, storage: StorageService):
        key = storage.save("user-1", b"%PDF-1.4 data")
        with pytest.raises(StorageAccessDeniedError):
            storage.read("user-2", key)

    def test_nested_folder_under_prefix_denied(self, storage: StorageService, tmp_path):
        nested = tmp_path / "test-bucket" / "a" / "b"
        nested.mkdir(parents=True)
        (nested / "1-x.pdf").write_bytes(b"%PDF-1.4 other")

        with pytest.raises(StorageAccessDeniedError):
            storage.read("a", "a/b/1-x.pdf")

    @pytest.mark.parametrize("key", ["user-1/../user-2/1-x.pdf", "user-1/..", "user-1/"])
    def test_traversal_denied(self, storage: StorageService, key):
        with pytest.raises(StorageAccessDeniedError):
            storage.read("user-1", key)

    def test_missing_key(self, storage: StorageService):
        with pytest.raises(StoredFileNotFoundError):
            storage.read("user-1", "user-1/0-missing.pdf")
