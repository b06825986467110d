"""
Abstract base class for storage backends
Defines the interface for file storage systems (local, S3, etc.)
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Union, Optional
from uuid import UUID


class StorageBackend(ABC):
    """Abstract base class for file storage backends"""

    @staticmethod
    def user_prefix(user_id: UUID) -> str:
        return f"users/{user_id}/"

    def build_path(self, user_id: UUID, folder: str, filename: str) -> str:
        """Owner-scoped storage key, e.g. users/<id>/documents/<file>"""
        return f"{self.user_prefix(user_id)}{folder}/{filename}"

    def owns(self, storage_path: str, user_id: UUID) -> bool:
        return storage_path.replace("\\", "/").startswith(self.user_prefix(user_id))

    @abstractmethod
    def save(
        self,
        file: Union[BinaryIO, bytes],
        user_id: UUID,
        filename: str,
        content_type: Optional[str] = None,
        folder: str = "documents"
    ) -> str:
        """
        Save file to storage with user-scoped path

        Args:
            file: File object or bytes to save
            user_id: Owner user ID
            filename: Stored filename
            content_type: MIME type (optional)
            folder: Sub-folder under the user prefix (documents, thumbnails)

        Returns:
            str: Storage path/key for the saved file
        """
        pass

    @abstractmethod
    def get_url(
        self,
        storage_path: str,
        user_id: UUID,
        expires_in: int = 3600
    ) -> str:
        """
        Get a temporary URL for a stored file

        Args:
            storage_path: Path/key returned by save()
            user_id: Owner user ID (for verification)
            expires_in: URL expiration time in seconds (for pre-signed URLs)

        Returns:
            str: Accessible URL (local file URL or pre-signed S3 URL)
        """
        pass

    @abstractmethod
    def read(self, storage_path: str, user_id: UUID) -> bytes:
        """Read file content (owner verified)"""
        pass

    @abstractmethod
    def delete(self, storage_path: str, user_id: UUID):
        """Delete file from storage (owner verified)"""
        pass

    @abstractmethod
    def exists(self, storage_path: str, user_id: UUID) -> bool:
        """True if the file exists and belongs to the user"""
        pass

    def close(self):
        """Release client resources; called from the application shutdown routine"""
        pass
