"""
File storage system
Supports both local filesystem and S3-compatible storage
"""

from docshelf.storage.base import StorageBackend
from docshelf.storage.local import LocalStorage
from docshelf.storage.s3 import S3Storage
from docshelf.storage.factory import get_storage_backend

__all__ = [
    "StorageBackend",
    "LocalStorage",
    "S3Storage",
    "get_storage_backend",
]
