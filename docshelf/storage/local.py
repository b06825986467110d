"""
Local file storage with user-scoped paths
Implements StorageBackend interface for local filesystem
"""

from pathlib import Path
from typing import BinaryIO, Union, Optional
from uuid import UUID
import logging

from docshelf.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    """Local file storage with user-scoped paths"""

    def __init__(self, base_path: str):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, storage_path: str, user_id: UUID) -> Path:
        """Absolute path for a storage key, refusing keys outside the user's directory"""
        # Windows uploads may store backslashes
        normalized_path = storage_path.replace("\\", "/")
        absolute_path = (self.base_path / normalized_path).resolve()

        expected_prefix = self.base_path / "users" / str(user_id)
        try:
            absolute_path.relative_to(expected_prefix)
        except ValueError:
            raise PermissionError(f"Access denied: file does not belong to user {user_id}")

        return absolute_path

    def save(
        self,
        file: Union[BinaryIO, bytes],
        user_id: UUID,
        filename: str,
        content_type: Optional[str] = None,
        folder: str = "documents"
    ) -> str:
        """Save file to user-scoped local storage"""
        storage_path = self.build_path(user_id, folder, filename)
        file_path = self._resolve(storage_path, user_id)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        content = file if isinstance(file, bytes) else file.read()
        with open(file_path, "wb") as f:
            f.write(content)

        logger.info(f"Saved file to local storage: {storage_path}")
        return storage_path

    def get_url(
        self,
        storage_path: str,
        user_id: UUID,
        expires_in: int = 3600
    ) -> str:
        """
        Get file URL (for local storage, returns a file:// URL)
        Note: expiry does not apply to local files
        """
        absolute_path = self._resolve(storage_path, user_id)

        if not absolute_path.exists():
            raise FileNotFoundError(f"File not found: {storage_path}")

        return absolute_path.as_uri()

    def read(self, storage_path: str, user_id: UUID) -> bytes:
        """Read file content with user verification"""
        absolute_path = self._resolve(storage_path, user_id)

        with open(absolute_path, "rb") as f:
            return f.read()

    def exists(self, storage_path: str, user_id: UUID) -> bool:
        """Check if file exists and belongs to user"""
        try:
            return self._resolve(storage_path, user_id).exists()
        except PermissionError:
            return False

    def delete(self, storage_path: str, user_id: UUID):
        """Delete file with user verification"""
        absolute_path = self._resolve(storage_path, user_id)

        if absolute_path.exists():
            absolute_path.unlink()
            logger.info(f"Deleted file from local storage: {storage_path}")
