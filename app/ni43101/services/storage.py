"""
Private PDF storage.

Files live under ``{storage_dir}/{bucket}/{owner}/{ms-timestamp}-{random}.pdf``.
The storage key is the part after the bucket; its first segment is always
the owner id, and reads are refused for any other caller.
"""

import logging
import secrets
import time
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the blob store cannot be read or written."""

    status_code = 500


class StorageAccessDeniedError(StorageError):
    """Raised when a caller asks for a key outside their own folder."""

    status_code = 403


class StoredFileNotFoundError(StorageError):
    """Raised when a key does not exist."""

    status_code = 404


def generate_storage_key(owner_id: str, extension: str = "pdf") -> str:
    """Build ``{owner}/{ms-timestamp}-{random}.{ext}``."""
    if not owner_id or "/" in owner_id or owner_id in (".", ".."):
        raise ValueError(f"invalid owner id for storage key: {owner_id!r}")
    timestamp = int(time.time() * 1000)
    suffix = secrets.token_hex(4)
    return f"{owner_id}/{timestamp}-{suffix}.{extension.lstrip('.').lower()}"


class StorageService:
    """Local private bucket for uploaded PDFs."""

    def __init__(self, root: Path | str, bucket: str = "ni43101-pdfs"):
        self.bucket = bucket
        self.root = Path(root) / bucket

    def ensure_bucket(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def bucket_exists(self) -> bool:
        return self.root.is_dir()

    def url_for(self, key: str) -> str:
        """URL the owner fetches the file from (through the authenticated API)."""
        return f"/files/{key}"

    def _resolve(self, key: str) -> Path:
        # Keys never escape the bucket.
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise StorageAccessDeniedError("Access denied")
        return path

    def check_owner(self, owner_id: str, key: str) -> None:
        """
        Raise ``StorageAccessDeniedError`` unless ``key`` is a file directly in
        ``owner_id``'s folder.
        """
        parts = key.split("/")
        if len(parts) != 2 or parts[0] != owner_id or parts[1] in ("", ".", ".."):
            logger.warning("User %s denied access to storage key %s", owner_id, key)
            raise StorageAccessDeniedError("Access denied")

    def save(self, owner_id: str, data: bytes, extension: str = "pdf") -> str:
        """
        Write ``data`` to a new key in the owner's folder.

        Returns:
            The storage key.
        """
        key = generate_storage_key(owner_id, extension)
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error("Failed to store %s: %s", key, e)
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info("Stored %d bytes at %s/%s", len(data), self.bucket, key)
        return key

    def read(self, owner_id: str, key: str) -> bytes:
        """
        Read a stored file on behalf of ``owner_id``.

        Raises:
            StorageAccessDeniedError: If the key is not in the owner's folder.
            StoredFileNotFoundError: If nothing is stored at the key.
            StorageError: On any other read failure.
        """
        self.check_owner(owner_id, key)
        path = self._resolve(key)
        if not path.is_file():
            raise StoredFileNotFoundError(f"File not found: {key}")
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error("Failed to read %s: %s", key, e)
            raise StorageError(f"Failed to download PDF: {e}") from e

    def list_folder(self, owner_id: str) -> list[str]:
        """Keys stored in the owner's folder, oldest first."""
        folder = self.root / owner_id
        if not folder.is_dir():
            return []
        return sorted(f"{owner_id}/{p.name}" for p in folder.iterdir() if p.is_file())
