"""
Unit tests for storage backends and the factory
"""

import pytest
from unittest.mock import Mock
from uuid import uuid4

from docshelf.config import Settings
from docshelf.storage.factory import get_storage_backend
from docshelf.storage.local import LocalStorage
from docshelf.storage.s3 import S3Storage


@pytest.mark.unit
class TestLocalStorage:

    def test_save_read_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        user_id = uuid4()

        path = storage.save(b"%PDF-data", user_id, "a.pdf")

        assert path == f"users/{user_id}/documents/a.pdf"
        assert storage.read(path, user_id) == b"%PDF-data"
        assert storage.exists(path, user_id) is True
        assert storage.get_url(path, user_id).startswith("file://")

        storage.delete(path, user_id)
        assert storage.exists(path, user_id) is False

    def test_other_users_files_are_refused(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        owner, intruder = uuid4(), uuid4()
        path = storage.save(b"secret", owner, "a.pdf")

        with pytest.raises(PermissionError):
            storage.read(path, intruder)
        assert storage.exists(path, intruder) is False

    def test_path_traversal_is_refused(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        user_id = uuid4()

        with pytest.raises(PermissionError):
            storage.read(f"users/{user_id}/../../outside.pdf", user_id)


@pytest.mark.unit
class TestS3Storage:

    def test_save_uses_user_prefix(self):
        client = Mock()
        storage = S3Storage("bucket", client=client)
        user_id = uuid4()

        key = storage.save(b"data", user_id, "t.png", content_type="image/png", folder="thumbnails")

        assert key == f"users/{user_id}/thumbnails/t.png"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "bucket"
        assert kwargs["ContentType"] == "image/png"

    def test_signed_url_checks_owner(self):
        client = Mock()
        client.generate_presigned_url.return_value = "https://s3.test/signed"
        storage = S3Storage("bucket", client=client)
        owner = uuid4()
        key = f"users/{owner}/documents/a.pdf"

        assert storage.get_url(key, owner, expires_in=60) == "https://s3.test/signed"
        assert client.generate_presigned_url.call_args.kwargs["ExpiresIn"] == 60
        with pytest.raises(PermissionError):
            storage.get_url(key, uuid4())


@pytest.mark.unit
class TestFactory:

    def test_local_backend(self, tmp_path):
        backend = get_storage_backend(Settings(STORAGE_BACKEND="local", UPLOAD_DIR=str(tmp_path)))

        assert isinstance(backend, LocalStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            get_storage_backend(Settings(STORAGE_BACKEND="ftp"))


@pytest.mark.unit
def test_s3_missing_object_maps_to_file_not_found():
    from botocore.exceptions import ClientError

    client = Mock()
    client.head_object.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadObject")
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
    storage = S3Storage("bucket", client=client)
    owner = uuid4()
    key = f"users/{owner}/documents/gone.pdf"

    assert storage.exists(key, owner) is False
    with pytest.raises(FileNotFoundError):
        storage.read(key, owner)
