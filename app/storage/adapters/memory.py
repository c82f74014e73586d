"""
In-memory storage adapter implementation.

This module contains the InMemoryStorageAdapter that keeps buckets and
objects in process memory. It is the reference for the semantics other
adapters must match: existence checks, conflict rules, prefix listing,
sorting and pagination.
"""

import logging
import mimetypes
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from urllib.parse import quote, urlencode

from .base import (
    ErrorCode,
    Payload,
    StorageAdapter,
    StorageError,
    read_payload,
    validate_bucket_name,
)
from ...models.bucket import Bucket
from ...models.capabilities import (
    BucketCapabilities,
    FeatureCapabilities,
    FileCapabilities,
    StorageCapabilities,
)
from ...models.file import (
    FileRecord,
    ImageTransform,
    ListOptions,
    ListResult,
    SignedUploadUrl,
    SignedUrlOptions,
    SortColumn,
    SortOrder,
    UploadOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/storage"
DEFAULT_MIME_TYPE = "application/octet-stream"

DEFAULT_CAPABILITIES = StorageCapabilities(
    provider="memory",
    version="1.0.0",
    buckets=BucketCapabilities(public=True, private=True, max_buckets=1000),
    files=FileCapabilities(
        max_size_bytes=100 * 1024 * 1024,
        allowed_mime_types="*",
        signed_urls=True,
        signed_url_max_age=86400,
        public_urls=True,
        transformations=False,
    ),
    features=FeatureCapabilities(
        folders=True,
        metadata=True,
        versioning=False,
        resumable_upload=False,
        multipart_upload=False,
    ),
)


@dataclass
class StoredFile:
    """Object bytes together with their record."""
    data: bytes
    info: FileRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _file_name(path: str) -> str:
    return path.rsplit("/", 1)[-1] or path


class InMemoryStorageAdapter(StorageAdapter):
    """
    In-memory implementation of StorageAdapter.

    Buckets are kept by name and objects by the composite key
    ``bucket + "/" + path``. Mutations run under a single re-entrant lock;
    reads take a snapshot of the mappings and proceed without it.

    The clock and identifier factory are injectable so tests can supply
    deterministic values.
    """

    provider = "memory"

    def __init__(
        self,
        capabilities: Optional[StorageCapabilities] = None,
        base_url: str = DEFAULT_BASE_URL,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize in-memory storage adapter.

        Args:
            capabilities: Capabilities to advertise (default: DEFAULT_CAPABILITIES)
            base_url: Prefix for generated public and signed URLs
            clock: Returns the current time (default: UTC now)
            id_factory: Returns fresh identifiers and tokens (default: uuid4)
        """
        self._capabilities = capabilities or DEFAULT_CAPABILITIES
        self.base_url = base_url.rstrip("/")
        self._clock = clock or _utcnow
        self._new_id = id_factory or _new_id
        self._buckets: Dict[str, Bucket] = {}
        self._files: Dict[str, StoredFile] = {}
        self._lock = threading.RLock()

    def get_capabilities(self) -> StorageCapabilities:
        return self._capabilities

    @staticmethod
    def _key(bucket: str, path: str) -> str:
        return f"{bucket}/{path}"

    def _require_bucket(self, bucket: str) -> Bucket:
        found = self._buckets.get(bucket)
        if found is None:
            raise StorageError(ErrorCode.BUCKET_NOT_FOUND, f'Bucket "{bucket}" not found')
        return found

    def _require_file(self, bucket: str, path: str) -> StoredFile:
        stored = self._files.get(self._key(bucket, path))
        if stored is None:
            raise StorageError(
                ErrorCode.FILE_NOT_FOUND,
                f'File "{path}" not found in bucket "{bucket}"'
            )
        return stored

    def _require_vacant(self, bucket: str, path: str) -> None:
        if self._key(bucket, path) in self._files:
            raise StorageError(
                ErrorCode.FILE_EXISTS,
                f'File "{path}" already exists in bucket "{bucket}"'
            )

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{quote(bucket, safe='')}/{quote(path)}"

    # Bucket operations

    def create_bucket(
        self,
        name: str,
        public: bool = False,
        allowed_mime_types: Optional[List[str]] = None,
        max_file_size: Optional[int] = None,
    ) -> Bucket:
        validate_bucket_name(name)

        with self._lock:
            if name in self._buckets:
                raise StorageError(ErrorCode.BUCKET_EXISTS, f'Bucket "{name}" already exists')

            bucket = Bucket(
                id=name,
                name=name,
                public=public,
                created_at=self._clock(),
                allowed_mime_types=allowed_mime_types,
                max_file_size=max_file_size,
            )
            self._buckets[name] = bucket

        logger.debug(f"Created bucket {name} (public={public})")
        return bucket.model_copy(deep=True)

    def get_bucket(self, name: str) -> Optional[Bucket]:
        bucket = self._buckets.get(name)
        return bucket.model_copy(deep=True) if bucket else None

    def list_buckets(self) -> List[Bucket]:
        with self._lock:
            buckets = list(self._buckets.values())
        return [bucket.model_copy(deep=True) for bucket in buckets]

    def delete_bucket(self, name: str) -> None:
        with self._lock:
            self._require_bucket(name)

            prefix = f"{name}/"
            if any(key.startswith(prefix) for key in self._files):
                raise StorageError(ErrorCode.BUCKET_NOT_EMPTY, f'Bucket "{name}" is not empty')

            del self._buckets[name]

        logger.debug(f"Deleted bucket {name}")

    # File operations

    def upload(
        self,
        bucket: str,
        path: str,
        data: Payload,
        options: Optional[UploadOptions] = None,
    ) -> FileRecord:
        options = options or UploadOptions()
        content = read_payload(data)
        mime_type = (
            options.content_type
            or mimetypes.guess_type(path)[0]
            or DEFAULT_MIME_TYPE
        )

        with self._lock:
            target = self._require_bucket(bucket)
            if not options.upsert:
                self._require_vacant(bucket, path)

            key = self._key(bucket, path)
            existing = self._files.get(key)

            if target.max_file_size is not None and len(content) > target.max_file_size:
                raise StorageError(
                    ErrorCode.FILE_TOO_LARGE,
                    f"File size {len(content)} exceeds bucket maximum {target.max_file_size} bytes"
                )

            if target.allowed_mime_types is not None and mime_type not in target.allowed_mime_types:
                raise StorageError(
                    ErrorCode.MIME_TYPE_NOT_ALLOWED,
                    f'MIME type "{mime_type}" is not allowed in bucket "{bucket}"'
                )

            now = self._clock()
            info = FileRecord(
                id=existing.info.id if existing else self._new_id(),
                name=_file_name(path),
                bucket=bucket,
                path=path,
                size=len(content),
                mime_type=mime_type,
                metadata=dict(options.metadata) if options.metadata is not None else None,
                created_at=existing.info.created_at if existing else now,
                updated_at=now,
            )
            self._files[key] = StoredFile(data=content, info=info)

        logger.debug(f"Stored {bucket}/{path} ({len(content)} bytes, overwrite={existing is not None})")
        return info.model_copy(deep=True)

    def download(self, bucket: str, path: str) -> bytes:
        return self._require_file(bucket, path).data

    def get_file_info(self, bucket: str, path: str) -> Optional[FileRecord]:
        stored = self._files.get(self._key(bucket, path))
        return stored.info.model_copy(deep=True) if stored else None

    def list(self, bucket: str, options: Optional[ListOptions] = None) -> ListResult:
        options = options or ListOptions()
        self._require_bucket(bucket)

        with self._lock:
            entries = list(self._files.items())

        prefix = self._key(bucket, options.prefix)
        files = [stored.info for key, stored in entries if key.startswith(prefix)]

        if options.sort_by is not None:
            column = options.sort_by.column
            if column == SortColumn.NAME:
                sort_key = lambda record: record.name
            elif column == SortColumn.CREATED_AT:
                sort_key = lambda record: record.created_at
            else:
                sort_key = lambda record: record.updated_at
            # sorted() is stable for reverse=True too, so ties keep insertion order
            files = sorted(files, key=sort_key, reverse=options.sort_by.order == SortOrder.DESC)

        start = options.offset
        end = options.offset + options.limit
        return ListResult(
            files=[record.model_copy(deep=True) for record in files[start:end]],
            has_more=end < len(files),
        )

    def delete(self, bucket: str, paths: List[str]) -> None:
        # All paths are checked before any is removed so a failure leaves
        # the bucket untouched.
        with self._lock:
            keys = []
            for path in paths:
                self._require_file(bucket, path)
                key = self._key(bucket, path)
                if key not in keys:
                    keys.append(key)

            for key in keys:
                del self._files[key]

        logger.debug(f"Deleted {len(keys)} file(s) from {bucket}")

    def move(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        with self._lock:
            stored = self._require_file(bucket, from_path)
            self._require_vacant(bucket, to_path)

            info = stored.info.model_copy(update={
                "name": _file_name(to_path),
                "path": to_path,
                "updated_at": self._clock(),
            })
            self._files[self._key(bucket, to_path)] = StoredFile(data=stored.data, info=info)
            del self._files[self._key(bucket, from_path)]

        logger.debug(f"Moved {bucket}/{from_path} to {to_path}")
        return info.model_copy(deep=True)

    def copy(self, bucket: str, from_path: str, to_path: str) -> FileRecord:
        with self._lock:
            stored = self._require_file(bucket, from_path)
            self._require_vacant(bucket, to_path)

            now = self._clock()
            info = stored.info.model_copy(deep=True, update={
                "id": self._new_id(),
                "name": _file_name(to_path),
                "path": to_path,
                "created_at": now,
                "updated_at": now,
            })
            self._files[self._key(bucket, to_path)] = StoredFile(data=bytes(stored.data), info=info)

        logger.debug(f"Copied {bucket}/{from_path} to {to_path}")
        return info.model_copy(deep=True)

    # URL operations

    def get_public_url(
        self,
        bucket: str,
        path: str,
        transform: Optional[ImageTransform] = None,
    ) -> str:
        url = self._object_url(bucket, path)
        params = transform.to_query_params() if transform else {}
        if params:
            url += f"?{urlencode(params)}"
        return url

    def get_signed_url(self, bucket: str, path: str, options: SignedUrlOptions) -> str:
        self._require_file(bucket, path)

        expires = int(self._clock().timestamp()) + options.expires_in
        params = {"token": self._new_id(), "expires": str(expires)}

        if options.download:
            if isinstance(options.download, str):
                params["download"] = options.download
            else:
                params["download"] = _file_name(path)

        if options.transform:
            params.update(options.transform.to_query_params())

        return f"{self._object_url(bucket, path)}?{urlencode(params)}"

    def create_signed_upload_url(
        self,
        bucket: str,
        path: str,
        expires_in: int = 3600,
    ) -> SignedUploadUrl:
        self._require_bucket(bucket)

        token = self._new_id()
        expires = int(self._clock().timestamp()) + expires_in
        params = urlencode({"token": token, "expires": str(expires)})
        return SignedUploadUrl(url=f"{self._object_url(bucket, path)}?{params}", token=token)

    # Test utilities

    def clear(self) -> None:
        """Remove all buckets and objects."""
        with self._lock:
            self._buckets.clear()
            self._files.clear()

    def get_raw_file(self, bucket: str, path: str) -> Optional[bytes]:
        """Stored bytes for a path, bypassing the contract."""
        stored = self._files.get(self._key(bucket, path))
        return stored.data if stored else None
