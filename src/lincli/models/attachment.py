"""Linear Attachment Data Model

Pydantic models for Linear attachments (files and links attached to issues)
and for the pre-signed upload targets returned by the fileUpload mutation.
"""

from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime


class AttachmentCreator(BaseModel):
    """User who created an attachment."""

    id: Optional[str] = Field(default=None, description="User ID")
    name: str = Field(description="Display name")
    email: Optional[str] = Field(default=None, description="User email")


class AttachmentRecord(BaseModel):
    """Linear attachment as returned by the API (read-only)."""

    id: str = Field(description="Unique attachment ID")
    title: str = Field(description="Attachment title")
    subtitle: Optional[str] = Field(default=None, description="Attachment subtitle")
    url: str = Field(description="Asset URL for uploads, external URL for links")
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Flat key/value metadata"
    )
    createdAt: Optional[datetime] = Field(
        default=None,
        description="Creation timestamp"
    )
    creator: Optional[AttachmentCreator] = Field(
        default=None,
        description="Creator of the attachment"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "9f1c3a52-0b6e-4d8e-a1f4-2b1f0c8d7e61",
                "title": "Q4 Report",
                "subtitle": "Draft",
                "url": "https://uploads.linear.app/abc/def/report.pdf",
                "createdAt": "2024-01-15T10:30:00.000Z",
                "creator": {"name": "Ada Lovelace"}
            }
        }
    )


class AttachmentCreate(BaseModel):
    """Input for the attachmentCreate mutation."""

    issueId: str = Field(description="Issue ID or identifier (e.g. ENG-123)")
    title: str = Field(description="Attachment title")
    url: str = Field(description="Asset URL or external URL")
    subtitle: Optional[str] = Field(default=None, description="Attachment subtitle")
    iconUrl: Optional[str] = Field(default=None, description="Custom icon URL")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Metadata")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not empty."""
        if not v or len(v.strip()) == 0:
            raise ValueError("Title cannot be empty")
        return v

    def to_input(self) -> Dict[str, Any]:
        """GraphQL input object, leaving out unset optional fields."""
        return self.model_dump(exclude_none=True)


class AttachmentUpdate(BaseModel):
    """Input for the attachmentUpdate mutation.

    Linear requires the title on every update. The URL cannot be changed
    after creation.
    """

    title: str = Field(description="Attachment title (required)")
    subtitle: Optional[str] = Field(default=None, description="New subtitle")
    iconUrl: Optional[str] = Field(default=None, description="New icon URL")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="New metadata")

    def to_input(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UploadHeader(BaseModel):
    """Header the storage backend requires on the PUT."""

    key: str
    value: str


class UploadTarget(BaseModel):
    """Pre-signed upload destination returned by fileUpload.

    ``uploadUrl`` is short-lived and single-use; ``assetUrl`` is the
    permanent URL the attachment will reference.
    """

    uploadUrl: str = Field(description="Pre-signed PUT destination")
    assetUrl: str = Field(description="Permanent asset URL")
    headers: List[UploadHeader] = Field(
        default_factory=list,
        description="Headers to replay verbatim on the PUT"
    )

    def header_dict(self) -> Dict[str, str]:
        return {header.key: header.value for header in self.headers}
