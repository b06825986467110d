"""
S3 storage backend
Works with AWS S3 and S3-compatible endpoints (MinIO, Supabase S3 gateway)
"""

import boto3
from botocore.exceptions import ClientError
from typing import BinaryIO, Union, Optional
from uuid import UUID
import logging

from docshelf.storage.base import StorageBackend

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("404", "NoSuchKey", "NotFound")


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class S3Storage(StorageBackend):
    """
    Objects live under users/<user_id>/<folder>/ in a single bucket

    Every key-based operation checks the key belongs to the caller before
    reaching S3.
    """

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: str = None,
        aws_secret_access_key: str = None,
        region_name: str = None,
        endpoint_url: str = None,
        client=None
    ):
        self.bucket_name = bucket_name
        if client is None:
            options = {
                "aws_access_key_id": aws_access_key_id,
                "aws_secret_access_key": aws_secret_access_key,
                "region_name": region_name,
                "endpoint_url": endpoint_url,
            }
            # Unset values fall through to boto3's env/IAM resolution
            client = boto3.client("s3", **{k: v for k, v in options.items() if v})
        self.s3_client = client

    def _authorize(self, storage_path: str, user_id: UUID):
        if not self.owns(storage_path, user_id):
            raise PermissionError(f"Access denied: {storage_path} is outside users/{user_id}/")

    def _call(self, operation: str, storage_path: str, **params):
        """Run one client operation on `storage_path`, logging S3 failures"""
        try:
            return getattr(self.s3_client, operation)(Bucket=self.bucket_name, Key=storage_path, **params)
        except ClientError as e:
            if _error_code(e) in MISSING_OBJECT_CODES:
                raise FileNotFoundError(f"File not found: {storage_path}") from e
            logger.error(f"S3 {operation} failed for {storage_path}: {e}")
            raise

    def save(
        self,
        file: Union[BinaryIO, bytes],
        user_id: UUID,
        filename: str,
        content_type: Optional[str] = None,
        folder: str = "documents"
    ) -> str:
        key = self.build_path(user_id, folder, filename)
        params = {
            "Body": file if isinstance(file, bytes) else file.read(),
            "Metadata": {"user_id": str(user_id)},
        }
        if content_type:
            params["ContentType"] = content_type

        self._call("put_object", key, **params)
        logger.info(f"Uploaded {key} to s3://{self.bucket_name}")
        return key

    def get_url(self, storage_path: str, user_id: UUID, expires_in: int = 3600) -> str:
        """Pre-signed GET URL valid for `expires_in` seconds"""
        self._authorize(storage_path, user_id)
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": storage_path},
                ExpiresIn=expires_in
            )
        except ClientError as e:
            logger.error(f"Could not presign {storage_path}: {e}")
            raise

    def read(self, storage_path: str, user_id: UUID) -> bytes:
        self._authorize(storage_path, user_id)
        return self._call("get_object", storage_path)["Body"].read()

    def exists(self, storage_path: str, user_id: UUID) -> bool:
        if not self.owns(storage_path, user_id):
            return False
        try:
            self._call("head_object", storage_path)
        except FileNotFoundError:
            return False
        return True

    def delete(self, storage_path: str, user_id: UUID):
        self._authorize(storage_path, user_id)
        self._call("delete_object", storage_path)
        logger.info(f"Deleted {storage_path} from s3://{self.bucket_name}")

    def close(self):
        self.s3_client.close()
