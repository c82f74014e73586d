"""
API response models for consistent response formatting.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .bucket import Bucket


class ErrorResponse(BaseModel):
    """Standard error payload returned for every failed request."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "FILE_NOT_FOUND",
                "message": "File \"a.txt\" not found in bucket \"docs\"",
                "status": 404
            }
        }
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error kind"
    )

    message: str = Field(
        ...,
        description="Human-readable error message"
    )

    status: int = Field(
        ...,
        description="HTTP-style status class"
    )


class SuccessResponse(BaseModel):
    """Acknowledgement for operations with no other result."""
    success: bool = Field(
        True,
        description="Always true for success responses"
    )


class BucketListResponse(BaseModel):
    """All buckets known to the backend."""
    buckets: List[Bucket] = Field(default_factory=list)


class UrlResponse(BaseModel):
    """A generated public or signed URL."""
    url: str


class CreateBucketRequest(BaseModel):
    """Request body for bucket creation."""
    name: Optional[str] = None
    public: bool = False
    allowed_mime_types: Optional[List[str]] = None
    max_file_size: Optional[int] = Field(None, ge=0)


class PathPairRequest(BaseModel):
    """Request body for move and copy."""
    from_path: Optional[str] = Field(None, alias="from")
    to_path: Optional[str] = Field(None, alias="to")


class SignedUploadUrlRequest(BaseModel):
    """Request body for signed upload URL creation."""
    path: Optional[str] = None
    expires_in: int = Field(3600, alias="expiresIn", gt=0)

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check payload."""
    status: str = "ok"
    provider: str
    timestamp: datetime
