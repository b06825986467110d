"""
Storage backend factory
Creates the storage backend selected by configuration; the application
startup routine owns the returned instance
"""

import logging
from docshelf.config import Settings, settings as default_settings
from docshelf.storage.base import StorageBackend
from docshelf.storage.local import LocalStorage
from docshelf.storage.s3 import S3Storage

logger = logging.getLogger(__name__)


def get_storage_backend(settings: Settings = None) -> StorageBackend:
    """
    Create the storage backend for the given settings

    Returns:
        StorageBackend: LocalStorage or S3Storage

    Raises:
        ValueError: If STORAGE_BACKEND is not "local" or "s3"
    """
    settings = settings or default_settings
    backend_type = settings.STORAGE_BACKEND.lower()

    if backend_type == "local":
        logger.info(f"Using local file storage: {settings.UPLOAD_DIR}")
        return LocalStorage(base_path=settings.UPLOAD_DIR)

    elif backend_type == "s3":
        logger.info(f"Using S3 storage: bucket={settings.S3_BUCKET_NAME}, region={settings.S3_REGION}")

        # Only pass non-empty values so boto3 falls back to env/IAM credentials
        s3_config = {"bucket_name": settings.S3_BUCKET_NAME}
        if settings.S3_ACCESS_KEY_ID:
            s3_config["aws_access_key_id"] = settings.S3_ACCESS_KEY_ID
        if settings.S3_SECRET_ACCESS_KEY:
            s3_config["aws_secret_access_key"] = settings.S3_SECRET_ACCESS_KEY
        if settings.S3_REGION:
            s3_config["region_name"] = settings.S3_REGION
        if settings.S3_ENDPOINT_URL:
            s3_config["endpoint_url"] = settings.S3_ENDPOINT_URL

        return S3Storage(**s3_config)

    else:
        raise ValueError(
            f"Invalid STORAGE_BACKEND: {backend_type}. Must be 'local' or 's3'"
        )
