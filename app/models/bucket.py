"""
Bucket model for named, isolated object namespaces.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class Bucket(BaseModel):
    """
    A named namespace for objects with its own visibility.

    Bucket names are unique within a backend and never contain "/",
    since object keys are formed as ``bucket + "/" + path``. The optional
    ``allowed_mime_types`` and ``max_file_size`` fields narrow the
    backend-wide limits for uploads into this bucket.
    """

    id: str = Field(..., description="Stable bucket identifier")

    name: str = Field(
        ...,
        description="Bucket name, unique within a backend",
        min_length=1,
        max_length=255,
        pattern=r"^[^/]+$"
    )

    public: bool = Field(
        False,
        description="Whether objects are readable through public URLs"
    )

    created_at: datetime = Field(..., description="When the bucket was created")

    allowed_mime_types: Optional[List[str]] = Field(
        None,
        description="Bucket-level MIME type allow-list"
    )

    max_file_size: Optional[int] = Field(
        None,
        description="Bucket-level maximum file size in bytes",
        ge=0
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "avatars",
                "name": "avatars",
                "public": True,
                "created_at": "2024-03-15T14:30:22Z"
            }
        }
    )
