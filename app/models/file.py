"""
File record and operation option models.

These shapes are shared by every adapter and by the HTTP layer, so
validation of caller input happens once, at construction.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


class FileRecord(BaseModel):
    """
    Metadata for an object stored under a path within a bucket.

    Identity is the ``(bucket, path)`` pair; ``id`` is a surrogate that
    survives moves and overwrites but not copies.
    """

    id: str = Field(..., description="Surrogate object identifier")
    name: str = Field(..., description="Last path segment")
    bucket: str = Field(..., description="Owning bucket name")
    path: str = Field(..., description="Object path within the bucket")
    size: int = Field(..., description="Size in bytes", ge=0)
    mime_type: str = Field(..., description="Content type")

    metadata: Optional[Dict[str, str]] = Field(
        None,
        description="Free-form string metadata"
    )

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "9b2f6c1e-7d2a-4c1b-9e55-0c7f3f0f5a11",
                "name": "avatar.png",
                "bucket": "avatars",
                "path": "users/42/avatar.png",
                "size": 20480,
                "mime_type": "image/png",
                "metadata": {"owner": "42"},
                "created_at": "2024-03-15T14:30:22Z",
                "updated_at": "2024-03-15T14:30:22Z"
            }
        }
    )


class SortColumn(str, Enum):
    """Columns a file listing can be sorted by."""
    NAME = "name"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


class SortBy(BaseModel):
    """Sort configuration for file listings."""
    column: SortColumn = SortColumn.NAME
    order: SortOrder = SortOrder.ASC


class UploadOptions(BaseModel):
    """Options accepted by upload operations."""

    content_type: Optional[str] = Field(None, description="Content type override")
    cache_control: Optional[str] = Field(None, description="Cache control header")
    upsert: bool = Field(False, description="Overwrite if the object exists")
    metadata: Optional[Dict[str, str]] = Field(None, description="Custom metadata")


class ListOptions(BaseModel):
    """Prefix filter, pagination window and ordering for file listings."""

    prefix: str = Field("", description="Only include paths starting with this prefix")
    limit: int = Field(100, description="Maximum items to return", ge=1)
    offset: int = Field(0, description="Number of matching items to skip", ge=0)
    sort_by: Optional[SortBy] = Field(None, description="Sort configuration")


class ListResult(BaseModel):
    """One page of a file listing."""
    files: List[FileRecord] = Field(default_factory=list)
    has_more: bool = Field(
        False,
        description="Whether more matching files exist past this page"
    )


class ResizeMode(str, Enum):
    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"


class ImageFormat(str, Enum):
    WEBP = "webp"
    PNG = "png"
    JPEG = "jpeg"


class ImageTransform(BaseModel):
    """
    Image transformation parameters.

    Passed through to the backend as an opaque bag; the service only
    checks whether the backend supports transformations at all.
    """

    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    resize: Optional[ResizeMode] = None
    quality: Optional[int] = Field(None, ge=1, le=100)
    format: Optional[ImageFormat] = None

    def to_query_params(self) -> Dict[str, str]:
        """Short query parameter names used in generated URLs."""
        params = {}
        if self.width:
            params["w"] = str(self.width)
        if self.height:
            params["h"] = str(self.height)
        if self.resize:
            params["resize"] = self.resize.value
        if self.quality:
            params["q"] = str(self.quality)
        if self.format:
            params["f"] = self.format.value
        return params


class SignedUrlOptions(BaseModel):
    """Options for time-limited download URLs."""

    expires_in: int = Field(..., description="Lifetime in seconds", gt=0)

    download: Union[bool, str] = Field(
        False,
        description="Force download, optionally with a custom file name"
    )

    transform: Optional[ImageTransform] = None


class SignedUploadUrl(BaseModel):
    """A pre-authorized upload target."""
    url: str
    token: str
