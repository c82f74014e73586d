"""
Storage service layer for capability-checked storage operations.

This module provides the StorageService class that acts as the main interface
between callers and storage adapters. It rejects requests the active backend
cannot satisfy before delegating, and otherwise forwards them unchanged.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional, Union

from ..models.bucket import Bucket
from ..models.capabilities import StorageCapabilities
from ..models.file import (
    FileRecord,
    ImageTransform,
    ListOptions,
    ListResult,
    SignedUploadUrl,
    SignedUrlOptions,
    UploadOptions,
)
from .adapters.base import ErrorCode, Payload, StorageAdapter, StorageError, read_payload

logger = logging.getLogger(__name__)


class StorageService:
    """
    Provider-agnostic storage service.

    This service is the only component callers use directly. It reads the
    adapter's capabilities on each call, enforces size limits, MIME
    allow-lists, feature gating and expiry bounds, and delegates everything
    else to the adapter. Adapter errors propagate unchanged; unexpected
    exceptions are wrapped in the matching ``*_FAILED`` kind.
    """

    def __init__(self, adapter: StorageAdapter):
        """
        Initialize storage service.

        Args:
            adapter: Storage adapter implementation
        """
        self.adapter = adapter

    @property
    def provider(self) -> str:
        """Name of the active provider."""
        return self.adapter.provider

    def get_capabilities(self) -> StorageCapabilities:
        """Capabilities of the active adapter."""
        return self.adapter.get_capabilities()

    @contextmanager
    def _backend_call(self, code: ErrorCode, action: str):
        try:
            yield
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Backend failure while trying to {action}: {e}", exc_info=True)
            raise StorageError(code, f"Failed to {action}: {str(e)}") from e

    def _reject(self, code: ErrorCode, message: str) -> StorageError:
        logger.warning(f"Rejected by {self.provider} capabilities: {message}")
        return StorageError(code, message)

    # Bucket operations

    def create_bucket(
        self,
        name: str,
        public: bool = False,
        allowed_mime_types: Optional[List[str]] = None,
        max_file_size: Optional[int] = None,
    ) -> Bucket:
        """
        Create a bucket after checking the requested visibility is supported.

        Raises:
            StorageError: PUBLIC_BUCKETS_NOT_SUPPORTED, PRIVATE_BUCKETS_NOT_SUPPORTED,
                or any adapter error such as BUCKET_EXISTS
        """
        caps = self.get_capabilities()

        if public and not caps.buckets.public:
            raise self._reject(
                ErrorCode.PUBLIC_BUCKETS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support public buckets'
            )

        if not public and not caps.buckets.private:
            raise self._reject(
                ErrorCode.PRIVATE_BUCKETS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support private buckets'
            )

        with self._backend_call(ErrorCode.BUCKET_CREATE_FAILED, f"create bucket {name}"):
            bucket = self.adapter.create_bucket(
                name,
                public=public,
                allowed_mime_types=allowed_mime_types,
                max_file_size=max_file_size,
            )

        logger.info(f"Created {'public' if public else 'private'} bucket {name}")
        return bucket

    def get_bucket(self, name: str) -> Optional[Bucket]:
        with self._backend_call(ErrorCode.BUCKET_GET_FAILED, f"get bucket {name}"):
            return self.adapter.get_bucket(name)

    def list_buckets(self) -> List[Bucket]:
        with self._backend_call(ErrorCode.BUCKET_LIST_FAILED, "list buckets"):
            return self.adapter.list_buckets()

    def delete_bucket(self, name: str) -> None:
        with self._backend_call(ErrorCode.BUCKET_DELETE_FAILED, f"delete bucket {name}"):
            self.adapter.delete_bucket(name)
        logger.info(f"Deleted bucket {name}")

    # File operations

    def upload(
        self,
        bucket: str,
        path: str,
        data: Payload,
        options: Optional[UploadOptions] = None,
    ) -> FileRecord:
        """
        Upload an object after checking size and content type limits.

        Args:
            bucket: Target bucket name
            path: Object path within the bucket
            data: bytes, bytearray, memoryview or a readable binary file object
            options: Upload options

        Returns:
            FileRecord of the stored object

        Raises:
            StorageError: FILE_TOO_LARGE, MIME_TYPE_NOT_ALLOWED, or any adapter
                error such as BUCKET_NOT_FOUND or FILE_EXISTS
        """
        caps = self.get_capabilities()
        content = read_payload(data)
        size = len(content)

        if size > caps.files.max_size_bytes:
            raise self._reject(
                ErrorCode.FILE_TOO_LARGE,
                f"File size {size} exceeds maximum {caps.files.max_size_bytes} bytes"
            )

        content_type = options.content_type if options else None
        if content_type and not caps.is_mime_type_allowed(content_type):
            raise self._reject(
                ErrorCode.MIME_TYPE_NOT_ALLOWED,
                f'MIME type "{content_type}" is not allowed'
            )

        with self._backend_call(ErrorCode.UPLOAD_FAILED, f"upload {bucket}/{path}"):
            return self.adapter.upload(bucket, path, content, options)

    def download(self, bucket: str, path: str) -> bytes:
        with self._backend_call(ErrorCode.DOWNLOAD_FAILED, f"download {bucket}/{path}"):
            return self.adapter.download(bucket, path)

    def get_file_info(self, bucket: str, path: str) -> Optional[FileRecord]:
        with self._backend_call(ErrorCode.FILE_INFO_FAILED, f"get info for {bucket}/{path}"):
            return self.adapter.get_file_info(bucket, path)

    def list(self, bucket: str, options: Optional[ListOptions] = None) -> ListResult:
        with self._backend_call(ErrorCode.LIST_FAILED, f"list bucket {bucket}"):
            return self.adapter.list(bucket, options)

    def delete(self, bucket: str, paths: Union[str, List[str]]) -> None:
        """
        Delete one path or a sequence of paths.

        The adapter always receives a list.
        """
        path_list = [paths] if isinstance(paths, str) else list(paths)

        with self._backend_call(ErrorCode.DELETE_FAILED, f"delete from bucket {bucket}"):
            self.adapter.delete(bucket, path_list)

    def move(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        with self._backend_call(ErrorCode.MOVE_FAILED, f"move {bucket}/{from_path}"):
            return self.adapter.move(bucket, from_path, to_path)

    def copy(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        with self._backend_call(ErrorCode.COPY_FAILED, f"copy {bucket}/{from_path}"):
            return self.adapter.copy(bucket, from_path, to_path)

    # URL operations

    def get_public_url(
        self,
        bucket: str,
        path: str,
        transform: Optional[ImageTransform] = None,
    ) -> str:
        """
        Build a public URL for an object.

        Raises:
            StorageError: PUBLIC_URLS_NOT_SUPPORTED or TRANSFORMATIONS_NOT_SUPPORTED
        """
        caps = self.get_capabilities()

        if not caps.files.public_urls:
            raise self._reject(
                ErrorCode.PUBLIC_URLS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support public URLs'
            )

        if transform is not None and not caps.files.transformations:
            raise self._reject(
                ErrorCode.TRANSFORMATIONS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support image transformations'
            )

        return self.adapter.get_public_url(bucket, path, transform)

    def get_signed_url(self, bucket: str, path: str, options: SignedUrlOptions) -> str:
        """
        Build a time-limited URL for an object.

        Raises:
            StorageError: SIGNED_URLS_NOT_SUPPORTED, EXPIRY_TOO_LONG,
                TRANSFORMATIONS_NOT_SUPPORTED, or FILE_NOT_FOUND from the adapter
        """
        caps = self.get_capabilities()

        if not caps.files.signed_urls:
            raise self._reject(
                ErrorCode.SIGNED_URLS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support signed URLs'
            )

        if options.expires_in > caps.files.signed_url_max_age:
            raise self._reject(
                ErrorCode.EXPIRY_TOO_LONG,
                f"Expiry time {options.expires_in}s exceeds maximum {caps.files.signed_url_max_age}s"
            )

        if options.transform is not None and not caps.files.transformations:
            raise self._reject(
                ErrorCode.TRANSFORMATIONS_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support image transformations'
            )

        with self._backend_call(ErrorCode.SIGNED_URL_FAILED, f"sign URL for {bucket}/{path}"):
            return self.adapter.get_signed_url(bucket, path, options)

    def create_signed_upload_url(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600,
    ) -> SignedUploadUrl:
        """
        Create a pre-authorized upload target.

        Raises:
            StorageError: SIGNED_UPLOAD_URL_NOT_SUPPORTED when the adapter does
                not implement the operation
        """
        create_upload_url = getattr(self.adapter, "create_signed_upload_url", None)
        if not callable(create_upload_url):
            raise self._reject(
                ErrorCode.SIGNED_UPLOAD_URL_NOT_SUPPORTED,
                f'Provider "{self.provider}" does not support signed upload URLs'
            )

        with self._backend_call(ErrorCode.SIGNED_UPLOAD_URL_FAILED, f"create upload URL for {bucket}/{path}"):
            return create_upload_url(bucket, path, expires_in=expires_in)

    # Capability queries

    def has_feature(self, name: str) -> bool:
        """Check if a feature flag is enabled on the active backend."""
        return self.get_capabilities().has_feature(name)

    def is_mime_type_allowed(self, mime_type: str) -> bool:
        """Check if a content type may be uploaded to the active backend."""
        return self.get_capabilities().is_mime_type_allowed(mime_type)
