"""
Pydantic models for the file storage service

This module provides type-safe data models for capabilities, buckets,
file records, operation options and API responses.
"""

from .capabilities import (
    StorageCapabilities,
    BucketCapabilities,
    FileCapabilities,
    FeatureCapabilities
)
from .bucket import Bucket
from .file import (
    FileRecord,
    UploadOptions,
    ListOptions,
    ListResult,
    SortBy,
    SortColumn,
    SortOrder,
    ImageTransform,
    SignedUrlOptions,
    SignedUploadUrl
)
from .responses import ErrorResponse, SuccessResponse

__all__ = [
    "StorageCapabilities",
    "BucketCapabilities",
    "FileCapabilities",
    "FeatureCapabilities",
    "Bucket",
    "FileRecord",
    "UploadOptions",
    "ListOptions",
    "ListResult",
    "SortBy",
    "SortColumn",
    "SortOrder",
    "ImageTransform",
    "SignedUrlOptions",
    "SignedUploadUrl",
    "ErrorResponse",
    "SuccessResponse"
]
