"""
Capability model describing what a storage backend supports.

Capabilities are pure data: adapters build them once and the service reads
them before every operation to decide whether a request can be satisfied.
"""

from typing import List, Literal, Union
from pydantic import BaseModel, Field, ConfigDict, model_validator


class BucketCapabilities(BaseModel):
    """Bucket visibility modes and limits."""
    model_config = ConfigDict(frozen=True)

    public: bool = Field(..., description="Public buckets supported")
    private: bool = Field(..., description="Private buckets supported")
    max_buckets: int = Field(..., description="Maximum number of buckets", ge=0)


class FileCapabilities(BaseModel):
    """File size, content type and URL capabilities."""
    model_config = ConfigDict(frozen=True)

    max_size_bytes: int = Field(..., description="Maximum file size in bytes", ge=0)

    allowed_mime_types: Union[List[str], Literal["*"]] = Field(
        "*",
        description="Allowed MIME types, or '*' for unrestricted"
    )

    signed_urls: bool = Field(..., description="Signed URL support")

    signed_url_max_age: int = Field(
        0,
        description="Maximum signed URL lifetime in seconds",
        ge=0
    )

    public_urls: bool = Field(..., description="Public URL support")
    transformations: bool = Field(False, description="Image transformation support")

    @model_validator(mode="after")
    def check_signed_url_consistency(self):
        if not self.signed_urls and self.signed_url_max_age:
            raise ValueError("signed_url_max_age requires signed_urls to be enabled")
        return self


class FeatureCapabilities(BaseModel):
    """Optional feature flags."""
    model_config = ConfigDict(frozen=True)

    folders: bool = False
    metadata: bool = False
    versioning: bool = False
    resumable_upload: bool = False
    multipart_upload: bool = False


class StorageCapabilities(BaseModel):
    """
    Declarative description of a storage backend.

    Instances are immutable for the lifetime of an adapter. Every other
    component treats them as the ground truth for what is permitted.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "provider": "memory",
                "version": "1.0.0",
                "buckets": {"public": True, "private": True, "max_buckets": 1000},
                "files": {
                    "max_size_bytes": 104857600,
                    "allowed_mime_types": "*",
                    "signed_urls": True,
                    "signed_url_max_age": 86400,
                    "public_urls": True,
                    "transformations": False
                },
                "features": {
                    "folders": True,
                    "metadata": True,
                    "versioning": False,
                    "resumable_upload": False,
                    "multipart_upload": False
                }
            }
        }
    )

    provider: str = Field(..., description="Provider identifier", min_length=1)
    version: str = Field(..., description="Provider/adapter version")
    buckets: BucketCapabilities
    files: FileCapabilities
    features: FeatureCapabilities = Field(default_factory=FeatureCapabilities)

    def has_feature(self, name: str) -> bool:
        """Look up a feature flag by name; unknown names are unsupported."""
        if name not in FeatureCapabilities.model_fields:
            return False
        return bool(getattr(self.features, name))

    def is_mime_type_allowed(self, mime_type: str) -> bool:
        """Check a content type against the allow-list."""
        allowed = self.files.allowed_mime_types
        return allowed == "*" or mime_type in allowed
