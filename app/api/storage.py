"""
Storage API endpoint implementation.

This module exposes the StorageService over HTTP: capabilities, bucket
management, raw-body uploads, downloads, listings, URL generation, and
move/copy/delete.
"""

import json
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Query, Request, Response
from pydantic import ValidationError

from ..models.bucket import Bucket
from ..models.capabilities import StorageCapabilities
from ..models.file import (
    FileRecord,
    ListOptions,
    ListResult,
    SignedUploadUrl,
    SignedUrlOptions,
    SortBy,
    SortColumn,
    SortOrder,
    UploadOptions,
)
from ..models.responses import (
    BucketListResponse,
    CreateBucketRequest,
    ErrorResponse,
    PathPairRequest,
    SignedUploadUrlRequest,
    SuccessResponse,
    UrlResponse,
)
from ..storage.adapters.base import ErrorCode, StorageError
from ..storage.service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/storage", tags=["Storage"])

# Names that collide with fixed routes under the router prefix
RESERVED_BUCKET_NAMES = frozenset({"buckets", "capabilities"})

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request or unsupported capability"},
    404: {"model": ErrorResponse, "description": "Bucket or file not found"},
    409: {"model": ErrorResponse, "description": "Bucket or file conflict"},
    500: {"model": ErrorResponse, "description": "Backend failure"}
}


def _get_service(request: Request) -> StorageService:
    return request.app.state.storage_service


async def _read_json(request: Request, model):
    """Parse a JSON body into a model, reporting failures as INVALID_REQUEST."""
    try:
        return model.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        raise StorageError(ErrorCode.INVALID_REQUEST, f"Invalid request body: {e}") from e


def _parse_metadata_header(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageError(ErrorCode.INVALID_REQUEST, f"X-Metadata header is not valid JSON: {e}") from e


def _content_disposition(name: str) -> str:
    """
    Build an attachment header that survives any file name.

    Header values are encoded as latin-1, so the plain ``filename`` carries
    a printable ASCII stand-in and ``filename*`` carries the real name
    percent-encoded as UTF-8 (RFC 6266).
    """
    fallback = "".join(
        ch if " " <= ch <= "~" and ch not in "\"\\" else "_"
        for ch in name
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(name, safe='')}"


# Capabilities

@router.get("/capabilities", response_model=StorageCapabilities)
async def get_capabilities(request: Request):
    """Describe what the active storage backend supports."""
    return _get_service(request).get_capabilities()


# Bucket operations

@router.get("/buckets", response_model=BucketListResponse, responses=ERROR_RESPONSES)
async def list_buckets(request: Request):
    """List all buckets."""
    return BucketListResponse(buckets=_get_service(request).list_buckets())


@router.post("/buckets", response_model=Bucket, status_code=201, responses=ERROR_RESPONSES)
async def create_bucket(request: Request):
    """Create a public or private bucket."""
    body = await _read_json(request, CreateBucketRequest)
    if not body.name:
        raise StorageError(ErrorCode.INVALID_REQUEST, "Bucket name is required")
    if body.name in RESERVED_BUCKET_NAMES:
        raise StorageError(
            ErrorCode.INVALID_REQUEST,
            f'Bucket name "{body.name}" is reserved by the storage API'
        )

    logger.info(f"Creating bucket {body.name} (public={body.public})")
    return _get_service(request).create_bucket(
        body.name,
        public=body.public,
        allowed_mime_types=body.allowed_mime_types,
        max_file_size=body.max_file_size,
    )


@router.get("/buckets/{name}", response_model=Bucket, responses=ERROR_RESPONSES)
async def get_bucket(request: Request, name: str):
    """Get a single bucket."""
    bucket = _get_service(request).get_bucket(name)
    if bucket is None:
        raise StorageError(ErrorCode.BUCKET_NOT_FOUND, f'Bucket "{name}" not found')
    return bucket


@router.delete("/buckets/{name}", response_model=SuccessResponse, responses=ERROR_RESPONSES)
async def delete_bucket(request: Request, name: str):
    """Delete an empty bucket."""
    _get_service(request).delete_bucket(name)
    return SuccessResponse()


# Move/copy and signed upload URLs

@router.post("/{bucket}/move", response_model=FileRecord, responses=ERROR_RESPONSES)
async def move_file(request: Request, bucket: str):
    """Move a file to a new path within the bucket."""
    body = await _read_json(request, PathPairRequest)
    if not body.from_path or not body.to_path:
        raise StorageError(ErrorCode.INVALID_REQUEST, 'Both "from" and "to" paths are required')

    return _get_service(request).move(bucket, body.from_path, body.to_path)


@router.post("/{bucket}/copy", response_model=FileRecord, status_code=201, responses=ERROR_RESPONSES)
async def copy_file(request: Request, bucket: str):
    """Copy a file to a new path within the bucket."""
    body = await _read_json(request, PathPairRequest)
    if not body.from_path or not body.to_path:
        raise StorageError(ErrorCode.INVALID_REQUEST, 'Both "from" and "to" paths are required')

    return _get_service(request).copy(bucket, body.from_path, body.to_path)


@router.post("/{bucket}/upload-url", response_model=SignedUploadUrl, responses=ERROR_RESPONSES)
async def create_upload_url(request: Request, bucket: str):
    """Create a signed URL a client can upload to directly."""
    body = await _read_json(request, SignedUploadUrlRequest)
    if not body.path:
        raise StorageError(ErrorCode.INVALID_REQUEST, "Path is required")

    return _get_service(request).create_signed_upload_url(bucket, body.path, expires_in=body.expires_in)


# File operations

@router.get("/{bucket}", response_model=ListResult, responses=ERROR_RESPONSES)
async def list_files(
    request: Request,
    bucket: str,
    prefix: str = Query("", description="Only include paths starting with this prefix"),
    limit: int = Query(100, ge=1, description="Maximum number of files to return"),
    offset: int = Query(0, ge=0, description="Number of matching files to skip"),
    sort: Optional[SortColumn] = Query(None, description="Column to sort by"),
    order: SortOrder = Query(SortOrder.ASC, description="Sort direction")
):
    """List files in a bucket with prefix filtering, sorting and pagination."""
    options = ListOptions(
        prefix=prefix,
        limit=limit,
        offset=offset,
        sort_by=SortBy(column=sort, order=order) if sort else None,
    )
    logger.debug(f"Listing {bucket} with {options}")
    return _get_service(request).list(bucket, options)


@router.post("/{bucket}", response_model=FileRecord, status_code=201, responses=ERROR_RESPONSES)
async def upload_file(
    request: Request,
    bucket: str,
    path: Optional[str] = Query(None, description="Destination path within the bucket"),
    upsert: bool = Query(False, description="Overwrite an existing file")
):
    """
    Upload the raw request body as a file.

    The Content-Type header becomes the file's content type; an optional
    X-Metadata header carries a JSON object of string metadata.
    """
    if not path:
        raise StorageError(ErrorCode.INVALID_REQUEST, "Path query parameter is required")

    data = await request.body()
    if not data:
        raise StorageError(ErrorCode.INVALID_REQUEST, "No file provided")

    content_type = request.headers.get("content-type")
    try:
        options = UploadOptions(
            content_type=content_type.split(";")[0].strip() if content_type else None,
            cache_control=request.headers.get("cache-control"),
            upsert=upsert,
            metadata=_parse_metadata_header(request.headers.get("x-metadata")),
        )
    except ValidationError as e:
        raise StorageError(ErrorCode.INVALID_REQUEST, f"Invalid upload options: {e}") from e

    logger.info(f"Uploading {bucket}/{path} ({len(data)} bytes)")
    return _get_service(request).upload(bucket, path, data, options)


@router.get("/{bucket}/{path:path}", responses=ERROR_RESPONSES)
async def get_file(
    request: Request,
    bucket: str,
    path: str,
    url: bool = Query(False, description="Return a signed URL instead of the file"),
    public: bool = Query(False, description="Return the public URL instead of the file"),
    info: bool = Query(False, description="Return file metadata instead of the file"),
    expires_in: int = Query(3600, alias="expiresIn", gt=0, description="Signed URL lifetime in seconds"),
    download: Optional[str] = Query(None, description="'true' or a file name to force download")
):
    """Download a file, or return its metadata, public URL or signed URL."""
    storage_service = _get_service(request)

    if url:
        if download in (None, "", "false"):
            force_download = False
        elif download == "true":
            force_download = True
        else:
            force_download = download
        signed_url = storage_service.get_signed_url(
            bucket,
            path,
            SignedUrlOptions(expires_in=expires_in, download=force_download),
        )
        return UrlResponse(url=signed_url)

    if public:
        return UrlResponse(url=storage_service.get_public_url(bucket, path))

    if info:
        record = storage_service.get_file_info(bucket, path)
        if record is None:
            raise StorageError(ErrorCode.FILE_NOT_FOUND, f'File "{path}" not found')
        return record

    data = storage_service.download(bucket, path)
    record = storage_service.get_file_info(bucket, path)

    return Response(
        content=data,
        media_type=record.mime_type if record else "application/octet-stream",
        headers={
            "Content-Disposition": _content_disposition(record.name if record else path)
        }
    )


@router.delete("/{bucket}/{path:path}", response_model=SuccessResponse, responses=ERROR_RESPONSES)
async def delete_file(request: Request, bucket: str, path: str):
    """Delete a single file."""
    _get_service(request).delete(bucket, path)
    return SuccessResponse()
