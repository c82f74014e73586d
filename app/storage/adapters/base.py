"""
Abstract base class for storage adapters.

This module defines the StorageAdapter interface that every storage
backend must implement, together with the typed StorageError that all
adapters raise for precondition violations.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import BinaryIO, List, Optional, Union

from ...models.bucket import Bucket
from ...models.capabilities import StorageCapabilities
from ...models.file import (
    FileRecord,
    ImageTransform,
    ListOptions,
    ListResult,
    SignedUrlOptions,
    UploadOptions,
)

Payload = Union[bytes, bytearray, memoryview, BinaryIO]


def read_payload(data: Payload) -> bytes:
    """Materialize any supported payload representation as bytes."""
    if hasattr(data, "read"):
        return data.read()
    if isinstance(data, bytes):
        return data
    return bytes(data)


def validate_bucket_name(name: str) -> None:
    """
    Reject bucket names that cannot serve as a namespace.

    Object keys are built as ``bucket + "/" + path``, so a name containing
    ``/`` would overlap the objects of another bucket.

    Raises:
        StorageError: INVALID_REQUEST for empty names or names containing '/'
    """
    if not name or "/" in name:
        raise StorageError(
            ErrorCode.INVALID_REQUEST,
            f'Invalid bucket name "{name}": must be non-empty and must not contain "/"'
        )


class StorageAdapter(ABC):
    """
    Abstract base class for storage adapters.

    Adapters execute bucket, object and URL operations against one
    backend. Every variant must raise the same ErrorCode for the same
    precondition violation; messages may differ.

    Adapters may additionally implement
    ``create_signed_upload_url(bucket, path, expires_in=3600) -> SignedUploadUrl``.
    It is deliberately absent from this interface: the service checks for
    it before calling and reports SIGNED_UPLOAD_URL_NOT_SUPPORTED when an
    adapter does not provide it.
    """

    provider: str = "unknown"

    @abstractmethod
    def get_capabilities(self) -> StorageCapabilities:
        """
        Describe what this backend supports.

        Returns:
            Immutable capabilities, identical for every call on an instance
        """
        pass

    @abstractmethod
    def create_bucket(
        self,
        name: str,
        public: bool = False,
        allowed_mime_types: Optional[List[str]] = None,
        max_file_size: Optional[int] = None,
    ) -> Bucket:
        """
        Create a new bucket.

        Raises:
            StorageError: BUCKET_EXISTS if the name is taken, INVALID_REQUEST
                if the name is empty or contains "/"
        """
        pass

    @abstractmethod
    def get_bucket(self, name: str) -> Optional[Bucket]:
        """Get a bucket by name, or None if it does not exist."""
        pass

    @abstractmethod
    def list_buckets(self) -> List[Bucket]:
        """List all buckets."""
        pass

    @abstractmethod
    def delete_bucket(self, name: str) -> None:
        """
        Delete an empty bucket.

        Raises:
            StorageError: BUCKET_NOT_FOUND, or BUCKET_NOT_EMPTY if the bucket
                still holds objects
        """
        pass

    @abstractmethod
    def upload(
        self,
        bucket: str,
        path: str,
        data: Payload,
        options: Optional[UploadOptions] = None,
    ) -> FileRecord:
        """
        Store an object.

        Args:
            bucket: Target bucket name
            path: Object path within the bucket
            data: Object bytes
            options: Content type, cache control, upsert flag and metadata

        Returns:
            FileRecord of the stored object

        Raises:
            StorageError: BUCKET_NOT_FOUND, or FILE_EXISTS when the path is
                occupied and upsert was not requested
        """
        pass

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """
        Read an object's bytes.

        Raises:
            StorageError: FILE_NOT_FOUND
        """
        pass

    @abstractmethod
    def get_file_info(self, bucket: str, path: str) -> Optional[FileRecord]:
        """Get an object's metadata, or None if it does not exist."""
        pass

    @abstractmethod
    def list(self, bucket: str, options: Optional[ListOptions] = None) -> ListResult:
        """
        List objects whose path starts with a prefix.

        Raises:
            StorageError: BUCKET_NOT_FOUND
        """
        pass

    @abstractmethod
    def delete(self, bucket: str, paths: List[str]) -> None:
        """
        Delete objects.

        Raises:
            StorageError: FILE_NOT_FOUND for a missing path
        """
        pass

    @abstractmethod
    def move(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        """
        Relocate an object within a bucket.

        Raises:
            StorageError: FILE_NOT_FOUND if the source is missing, FILE_EXISTS
                if the destination is occupied
        """
        pass

    @abstractmethod
    def copy(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        """
        Duplicate an object within a bucket as a new object.

        Raises:
            StorageError: FILE_NOT_FOUND if the source is missing, FILE_EXISTS
                if the destination is occupied
        """
        pass

    @abstractmethod
    def get_public_url(
        self,
        bucket: str,
        path: str,
        transform: Optional[ImageTransform] = None,
    ) -> str:
        """Build a public URL. Performs no I/O."""
        pass

    @abstractmethod
    def get_signed_url(self, bucket: str, path: str, options: SignedUrlOptions) -> str:
        """
        Build a time-limited URL for an object.

        Raises:
            StorageError: FILE_NOT_FOUND
        """
        pass


class ErrorCode(str, Enum):
    """Stable machine-readable error kinds."""

    BUCKET_EXISTS = "BUCKET_EXISTS"
    BUCKET_NOT_FOUND = "BUCKET_NOT_FOUND"
    BUCKET_NOT_EMPTY = "BUCKET_NOT_EMPTY"
    FILE_EXISTS = "FILE_EXISTS"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    MIME_TYPE_NOT_ALLOWED = "MIME_TYPE_NOT_ALLOWED"
    PUBLIC_BUCKETS_NOT_SUPPORTED = "PUBLIC_BUCKETS_NOT_SUPPORTED"
    PRIVATE_BUCKETS_NOT_SUPPORTED = "PRIVATE_BUCKETS_NOT_SUPPORTED"
    PUBLIC_URLS_NOT_SUPPORTED = "PUBLIC_URLS_NOT_SUPPORTED"
    SIGNED_URLS_NOT_SUPPORTED = "SIGNED_URLS_NOT_SUPPORTED"
    TRANSFORMATIONS_NOT_SUPPORTED = "TRANSFORMATIONS_NOT_SUPPORTED"
    SIGNED_UPLOAD_URL_NOT_SUPPORTED = "SIGNED_UPLOAD_URL_NOT_SUPPORTED"
    EXPIRY_TOO_LONG = "EXPIRY_TOO_LONG"
    INVALID_REQUEST = "INVALID_REQUEST"
    BUCKET_CREATE_FAILED = "BUCKET_CREATE_FAILED"
    BUCKET_GET_FAILED = "BUCKET_GET_FAILED"
    BUCKET_LIST_FAILED = "BUCKET_LIST_FAILED"
    BUCKET_DELETE_FAILED = "BUCKET_DELETE_FAILED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    FILE_INFO_FAILED = "FILE_INFO_FAILED"
    LIST_FAILED = "LIST_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    MOVE_FAILED = "MOVE_FAILED"
    COPY_FAILED = "COPY_FAILED"
    SIGNED_URL_FAILED = "SIGNED_URL_FAILED"
    SIGNED_UPLOAD_URL_FAILED = "SIGNED_UPLOAD_URL_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def default_status(code: ErrorCode) -> int:
    """HTTP-style status class for an error kind."""
    if code in (ErrorCode.BUCKET_EXISTS, ErrorCode.FILE_EXISTS, ErrorCode.BUCKET_NOT_EMPTY):
        return 409
    if code in (ErrorCode.BUCKET_NOT_FOUND, ErrorCode.FILE_NOT_FOUND):
        return 404
    if code == ErrorCode.FILE_TOO_LARGE:
        return 413
    if code == ErrorCode.MIME_TYPE_NOT_ALLOWED:
        return 415
    if code.value.endswith("_FAILED") or code == ErrorCode.INTERNAL_ERROR:
        return 500
    return 400


class StorageError(Exception):
    """
    Exception raised for every storage failure.

    Carries a stable ``code`` callers branch on, a human ``message`` and an
    HTTP-style ``status``.
    """

    def __init__(self, code: ErrorCode, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.status = status if status is not None else default_status(self.code)

    def to_dict(self) -> dict:
        """Serialize to the boundary error payload."""
        return {
            "code": self.code.value,
            "message": self.message,
            "status": self.status
        }

    def __repr__(self) -> str:
        return f"StorageError(code={self.code.value!r}, message={self.message!r}, status={self.status})"
