"""Upload Pipeline Data Model

Pydantic models for file attachment requests, per-file outcomes and the
batch summary produced by one upload invocation.
"""

import threading
from pathlib import Path
from typing import Optional, Dict, List, Callable, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .attachment import AttachmentRecord
from ..utils.errors import ValidationFailure

# 50 MiB, inclusive
MAX_FILE_SIZE = 50 * 1024 * 1024

MetadataValue = Union[str, int, float, bool]


class FileAttachmentRequest(BaseModel):
    """One file to upload and attach, as parsed from the command line.

    ``size`` and ``content_type`` are unset until validation resolves
    them. The request is immutable; validation returns a resolved copy.
    """

    path: Path = Field(description="Local file path")
    title: str = Field(description="Attachment title (required)")
    subtitle: Optional[str] = Field(default=None, description="Attachment subtitle")
    icon_url: Optional[str] = Field(default=None, description="Custom icon URL")
    metadata: Optional[Dict[str, MetadataValue]] = Field(
        default=None,
        description="Flat key/value metadata"
    )
    size: Optional[int] = Field(default=None, ge=0, description="Resolved size in bytes")
    content_type: Optional[str] = Field(default=None, description="Resolved MIME type")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not empty."""
        if not v or len(v.strip()) == 0:
            raise ValueError("Title cannot be empty")
        return v

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def is_resolved(self) -> bool:
        return self.size is not None and self.content_type is not None

    model_config = ConfigDict(frozen=True)


class ValidationOutcome(BaseModel):
    """Pre-flight result for one file."""

    filename: str
    path: Path
    ok: bool
    size: Optional[int] = None
    content_type: Optional[str] = None
    reason: Optional[ValidationFailure] = None
    message: Optional[str] = None


class UploadResult(BaseModel):
    """Terminal outcome of one file in a batch."""

    filename: str = Field(description="Base name of the uploaded file")
    title: str = Field(description="Attachment title")
    success: bool = Field(description="True when the attachment was registered")
    error: Optional[str] = Field(default=None, description="Failure description")
    stage: Optional[str] = Field(
        default=None,
        description="Pipeline stage that failed"
    )
    attempts: int = Field(
        default=0,
        description="Transfer attempts consumed (0 if transfer never started)"
    )
    attachment: Optional[AttachmentRecord] = Field(
        default=None,
        description="Registered attachment on success"
    )


class BatchSummary(BaseModel):
    """Aggregated outcome of one upload invocation. Not persisted."""

    succeeded: int = 0
    failed: int = 0
    failures: List[UploadResult] = Field(default_factory=list)
    results: List[UploadResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


ProgressCallback = Callable[[FileAttachmentRequest, int], None]
ResultCallback = Callable[[FileAttachmentRequest, UploadResult], None]


class UploadOptions(BaseModel):
    """Runtime options for one upload invocation.

    Passed explicitly to the orchestrator instead of being read from
    process-wide state.
    """

    output: Literal["text", "json"] = Field(default="text", description="Output mode")
    quiet: bool = Field(default=False, description="Suppress progress output")
    max_workers: int = Field(
        default=1,
        ge=1,
        description="Files uploaded concurrently (1 = sequential)"
    )
    cancel_event: Optional[threading.Event] = Field(
        default=None,
        description="Set to stop starting new files and abort the current transfer"
    )
    progress_callback: Optional[ProgressCallback] = Field(
        default=None,
        description="Receives cumulative bytes sent for a file"
    )
    result_callback: Optional[ResultCallback] = Field(
        default=None,
        description="Receives each file's result as soon as it is known"
    )

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    model_config = ConfigDict(arbitrary_types_allowed=True)
