"""
Unit tests for the capability-checking storage service.
"""

import io
from unittest.mock import patch

import pytest

from app.models.capabilities import (
    BucketCapabilities,
    FeatureCapabilities,
    FileCapabilities,
    StorageCapabilities,
)
from app.models.file import ImageTransform, ListOptions, SignedUrlOptions, UploadOptions
from app.storage.adapters.base import ErrorCode, StorageError
from app.storage.adapters.memory import InMemoryStorageAdapter
from app.storage.service import StorageService


def make_capabilities(public=True, private=True, **file_overrides) -> StorageCapabilities:
    files = {
        "max_size_bytes": 100,
        "allowed_mime_types": "*",
        "signed_urls": True,
        "signed_url_max_age": 3600,
        "public_urls": True,
        "transformations": False,
    }
    files.update(file_overrides)
    return StorageCapabilities(
        provider="memory",
        version="1.0.0",
        buckets=BucketCapabilities(public=public, private=private, max_buckets=10),
        files=FileCapabilities(**files),
        features=FeatureCapabilities(folders=True, metadata=True),
    )


def make_service(**capability_overrides) -> StorageService:
    adapter = InMemoryStorageAdapter(capabilities=make_capabilities(**capability_overrides))
    adapter.create_bucket("docs")
    return StorageService(adapter)


class NoUploadUrlAdapter(InMemoryStorageAdapter):
    """Adapter variant without signed upload URL support."""
    create_signed_upload_url = None


class TestServiceBasics:
    """Test cases for service construction and capability queries."""

    def test_provider_and_capabilities(self):
        """Test the service exposes its adapter's identity."""
        service = make_service()

        assert service.provider == "memory"
        assert service.get_capabilities() is service.adapter.get_capabilities()

    def test_has_feature(self):
        """Test feature flag lookups."""
        service = make_service()

        assert service.has_feature("folders") is True
        assert service.has_feature("versioning") is False

    def test_is_mime_type_allowed(self):
        """Test MIME lookups for fixed and unrestricted allow-lists."""
        assert make_service().is_mime_type_allowed("anything/at-all")

        service = make_service(allowed_mime_types=["image/png"])
        assert service.is_mime_type_allowed("image/png")
        assert not service.is_mime_type_allowed("text/plain")


class TestBucketPolicy:
    """Test cases for bucket visibility checks."""

    def test_public_bucket_not_supported(self):
        """Test public buckets are rejected before reaching the adapter."""
        service = make_service(public=False)

        with patch.object(service.adapter, "create_bucket") as create_bucket:
            with pytest.raises(StorageError) as exc_info:
                service.create_bucket("images", public=True)

        assert exc_info.value.code == ErrorCode.PUBLIC_BUCKETS_NOT_SUPPORTED
        assert exc_info.value.status == 400
        create_bucket.assert_not_called()

    def test_private_bucket_not_supported(self):
        """Test the default private visibility is checked too."""
        service = make_service(private=False)

        with pytest.raises(StorageError) as exc_info:
            service.create_bucket("images")

        assert exc_info.value.code == ErrorCode.PRIVATE_BUCKETS_NOT_SUPPORTED
        assert service.get_bucket("images") is None

    def test_create_bucket_delegates(self):
        """Test supported visibilities reach the adapter."""
        service = make_service(private=False)

        bucket = service.create_bucket("images", public=True)

        assert bucket.public is True
        assert [b.name for b in service.list_buckets()] == ["docs", "images"]

    def test_adapter_errors_pass_through(self):
        """Test adapter errors keep their kind."""
        service = make_service()

        with pytest.raises(StorageError) as exc_info:
            service.create_bucket("docs")
        assert exc_info.value.code == ErrorCode.BUCKET_EXISTS

        with pytest.raises(StorageError) as exc_info:
            service.delete_bucket("nope")
        assert exc_info.value.code == ErrorCode.BUCKET_NOT_FOUND


class TestUploadPolicy:
    """Test cases for upload size and content type checks."""

    def test_file_too_large(self):
        """Test payloads over the size limit create nothing."""
        service = make_service(max_size_bytes=100)

        with pytest.raises(StorageError) as exc_info:
            service.upload("docs", "big.bin", b"x" * 101)

        assert exc_info.value.code == ErrorCode.FILE_TOO_LARGE
        assert exc_info.value.status == 413
        assert service.get_file_info("docs", "big.bin") is None

    def test_file_at_limit(self):
        """Test payloads exactly at the limit are accepted."""
        service = make_service(max_size_bytes=100)

        record = service.upload("docs", "ok.bin", b"x" * 100)

        assert record.size == 100

    @pytest.mark.parametrize("payload", [
        bytearray(b"x" * 101),
        memoryview(b"x" * 101),
        io.BytesIO(b"x" * 101),
    ])
    def test_size_of_other_payload_forms(self, payload):
        """Test size is computed for every payload representation."""
        service = make_service(max_size_bytes=100)

        with pytest.raises(StorageError) as exc_info:
            service.upload("docs", "big.bin", payload)

        assert exc_info.value.code == ErrorCode.FILE_TOO_LARGE

    def test_file_object_payload(self):
        """Test file objects are read and stored."""
        service = make_service()

        service.upload("docs", "stream.bin", io.BytesIO(b"streamed"))

        assert service.download("docs", "stream.bin") == b"streamed"

    def test_mime_type_not_allowed(self):
        """Test explicit content types outside a fixed allow-list."""
        service = make_service(allowed_mime_types=["image/png"])

        with patch.object(service.adapter, "upload") as upload:
            with pytest.raises(StorageError) as exc_info:
                service.upload("docs", "a.txt", b"x", UploadOptions(content_type="text/plain"))

        assert exc_info.value.code == ErrorCode.MIME_TYPE_NOT_ALLOWED
        upload.assert_not_called()

    def test_mime_type_allowed(self):
        """Test allowed content types pass."""
        service = make_service(allowed_mime_types=["image/png"])

        record = service.upload("docs", "a.png", b"x", UploadOptions(content_type="image/png"))

        assert record.mime_type == "image/png"

    def test_mime_check_skipped_without_content_type(self):
        """Test the allow-list only applies to explicit content types."""
        service = make_service(allowed_mime_types=["image/png"])

        record = service.upload("docs", "data", b"x")

        assert record.mime_type == "application/octet-stream"

    def test_upload_conflict_passes_through(self):
        """Test FILE_EXISTS from the adapter is not altered."""
        service = make_service()
        service.upload("docs", "a", b"first")

        with pytest.raises(StorageError) as exc_info:
            service.upload("docs", "a", b"second")

        assert exc_info.value.code == ErrorCode.FILE_EXISTS
        assert service.download("docs", "a") == b"first"


class TestUrlPolicy:
    """Test cases for public and signed URL gating."""

    def test_public_urls_not_supported(self):
        """Test public URLs are gated."""
        service = make_service(public_urls=False)

        with pytest.raises(StorageError) as exc_info:
            service.get_public_url("docs", "a.txt")

        assert exc_info.value.code == ErrorCode.PUBLIC_URLS_NOT_SUPPORTED

    def test_public_url_transform_not_supported(self):
        """Test transforms are gated for public URLs."""
        service = make_service(transformations=False)

        with pytest.raises(StorageError) as exc_info:
            service.get_public_url("docs", "a.png", ImageTransform(width=10))

        assert exc_info.value.code == ErrorCode.TRANSFORMATIONS_NOT_SUPPORTED

    def test_public_url_transform_supported(self):
        """Test transforms reach the adapter when supported."""
        service = make_service(transformations=True)

        url = service.get_public_url("docs", "a.png", ImageTransform(width=10))

        assert url.endswith("/docs/a.png?w=10")

    def test_signed_urls_not_supported(self):
        """Test signed URLs are rejected without invoking the adapter."""
        service = make_service(signed_urls=False, signed_url_max_age=0)

        with patch.object(service.adapter, "get_signed_url") as get_signed_url:
            with pytest.raises(StorageError) as exc_info:
                service.get_signed_url("docs", "a.txt", SignedUrlOptions(expires_in=60))

        assert exc_info.value.code == ErrorCode.SIGNED_URLS_NOT_SUPPORTED
        get_signed_url.assert_not_called()

    def test_expiry_too_long(self):
        """Test lifetimes above the ceiling are rejected."""
        service = make_service(signed_url_max_age=3600)
        service.upload("docs", "a.txt", b"x")

        with pytest.raises(StorageError) as exc_info:
            service.get_signed_url("docs", "a.txt", SignedUrlOptions(expires_in=3601))

        assert exc_info.value.code == ErrorCode.EXPIRY_TOO_LONG
        assert "token=" in service.get_signed_url("docs", "a.txt", SignedUrlOptions(expires_in=3600))

    def test_signed_url_transform_not_supported(self):
        """Test transforms are gated for signed URLs."""
        service = make_service()
        service.upload("docs", "a.png", b"x")

        with pytest.raises(StorageError) as exc_info:
            service.get_signed_url(
                "docs", "a.png", SignedUrlOptions(expires_in=60, transform=ImageTransform(width=10))
            )

        assert exc_info.value.code == ErrorCode.TRANSFORMATIONS_NOT_SUPPORTED

    def test_signed_url_missing_file(self):
        """Test FILE_NOT_FOUND from the adapter surfaces unchanged."""
        service = make_service()

        with pytest.raises(StorageError) as exc_info:
            service.get_signed_url("docs", "missing", SignedUrlOptions(expires_in=60))

        assert exc_info.value.code == ErrorCode.FILE_NOT_FOUND

    def test_signed_upload_url(self):
        """Test signed upload URLs are delegated when implemented."""
        service = make_service()

        result = service.create_signed_upload_url("docs", "new.txt", expires_in=120)

        assert result.token in result.url

    def test_signed_upload_url_not_supported(self):
        """Test adapters without the optional operation are reported."""
        service = StorageService(NoUploadUrlAdapter())

        with pytest.raises(StorageError) as exc_info:
            service.create_signed_upload_url("docs", "new.txt")

        assert exc_info.value.code == ErrorCode.SIGNED_UPLOAD_URL_NOT_SUPPORTED


class TestDelegation:
    """Test cases for pass-through operations."""

    def test_delete_single_path_is_normalized(self):
        """Test a single path reaches the adapter as a list."""
        service = make_service()
        service.upload("docs", "a.txt", b"x")

        with patch.object(service.adapter, "delete", wraps=service.adapter.delete) as delete:
            service.delete("docs", "a.txt")

        delete.assert_called_once_with("docs", ["a.txt"])
        assert service.get_file_info("docs", "a.txt") is None

    def test_delete_path_sequence(self):
        """Test sequences of paths are passed as lists."""
        service = make_service()
        service.upload("docs", "a", b"x")
        service.upload("docs", "b", b"x")

        with patch.object(service.adapter, "delete", wraps=service.adapter.delete) as delete:
            service.delete("docs", ("a", "b"))

        delete.assert_called_once_with("docs", ["a", "b"])

    def test_move_copy_list(self):
        """Test move, copy and list pass through."""
        service = make_service()
        service.upload("docs", "a", b"x")

        service.move("docs", "a", "b")
        service.copy("docs", "b", "c")
        result = service.list("docs", ListOptions(sort_by={"column": "name", "order": "desc"}))

        assert [f.path for f in result.files] == ["c", "b"]
        assert result.has_more is False

    def test_unexpected_backend_failure_is_wrapped(self):
        """Test non-storage exceptions become *_FAILED kinds."""
        service = make_service()

        with patch.object(service.adapter, "download", side_effect=RuntimeError("disk gone")):
            with pytest.raises(StorageError) as exc_info:
                service.download("docs", "a")

        assert exc_info.value.code == ErrorCode.DOWNLOAD_FAILED
        assert exc_info.value.status == 500
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_storage_errors_are_not_rewrapped(self):
        """Test adapter StorageErrors keep their original kind and status."""
        service = make_service()
        original = StorageError(ErrorCode.FILE_NOT_FOUND, "gone")

        with patch.object(service.adapter, "move", side_effect=original):
            with pytest.raises(StorageError) as exc_info:
                service.move("docs", "a", "b")

        assert exc_info.value is original
