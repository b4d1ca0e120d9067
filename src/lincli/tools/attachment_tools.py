"""Linear CLI - Attachment Operations

Attachment operations behind the ``lincli attachment`` commands:
- Validate a batch of files, then upload and attach them to an issue
- Create URL attachments
- Update attachment metadata, delete attachments, list attachments
"""
from typing import Optional, Dict, Any, List, Sequence, Callable
import logging

from ..client import LinearClient
from ..models.attachment import AttachmentRecord
from ..models.upload import BatchSummary, FileAttachmentRequest, UploadOptions
from ..upload.orchestrator import UploadOrchestrator, validate_batch
from ..upload.results import summarize
from ..upload.transfer import TransferExecutor
from ..utils.errors import ValidationError
from ..utils.validation import FileValidator, parse_metadata

logger = logging.getLogger(__name__)


def build_file_requests(
    files: Sequence[str],
    titles: Sequence[str],
    subtitles: Optional[Sequence[str]] = None,
    icon_urls: Optional[Sequence[str]] = None,
    metadatas: Optional[Sequence[str]] = None
) -> List[FileAttachmentRequest]:
    """Pair up repeated --file/--title/... flag values into requests.

    Every --file needs a --title. Optional lists are matched by index;
    missing or empty entries mean "not set".

    Raises:
        ValidationError: On a count mismatch, empty title or bad metadata
    """
    subtitles = subtitles or []
    icon_urls = icon_urls or []
    metadatas = metadatas or []

    if len(files) != len(titles):
        raise ValidationError(
            "each --file must have a corresponding --title",
            details={"files": len(files), "titles": len(titles)}
        )

    requests = []
    for index, path in enumerate(files):
        title = titles[index]
        if not title or not title.strip():
            raise ValidationError(f"title for file {path} cannot be empty")

        metadata = None
        if index < len(metadatas) and metadatas[index]:
            try:
                metadata = parse_metadata(metadatas[index])
            except ValidationError as e:
                raise ValidationError(f"invalid metadata for file {path}: {e.message}")

        requests.append(FileAttachmentRequest(
            path=path,
            title=title,
            subtitle=subtitles[index] if index < len(subtitles) and subtitles[index] else None,
            icon_url=icon_urls[index] if index < len(icon_urls) and icon_urls[index] else None,
            metadata=metadata
        ))

    return requests


def upload_attachments(
    client: LinearClient,
    issue_id: str,
    requests: Sequence[FileAttachmentRequest],
    options: Optional[UploadOptions] = None,
    transfer: Optional[TransferExecutor] = None,
    validator: Optional[FileValidator] = None,
    on_validated: Optional[Callable[[List[FileAttachmentRequest]], None]] = None
) -> BatchSummary:
    """Upload files and attach them to an issue.

    All files are validated first; if any fails, nothing is uploaded.
    After that each file succeeds or fails on its own. Attachments created
    before a failure are NOT rolled back.

    Args:
        client: Authenticated Linear client
        issue_id: Target issue ID or identifier (e.g. ENG-123)
        requests: Files to upload, in order
        options: Output, concurrency, cancellation and callbacks
        transfer: Transfer executor (default: new executor)
        validator: File validator (default: 50 MiB cap)
        on_validated: Called with the resolved requests once the whole
            batch passed validation, before any upload starts

    Returns:
        Batch summary with per-file results in input order

    Raises:
        ValidationError: If the batch is empty
        BatchValidationError: If any file failed local validation
    """
    logger.info(f"Batch uploading {len(requests)} file(s) to {issue_id}")
    resolved = validate_attachments(requests, validator=validator)
    if on_validated is not None:
        on_validated(resolved)

    return upload_validated(client, issue_id, resolved, options=options, transfer=transfer)


def validate_attachments(
    requests: Sequence[FileAttachmentRequest],
    validator: Optional[FileValidator] = None
) -> List[FileAttachmentRequest]:
    """Validate a whole batch locally, before any client is needed.

    Returns:
        Requests with size and content type resolved, same order

    Raises:
        ValidationError: If the batch is empty
        BatchValidationError: If any file failed local validation
    """
    return validate_batch(requests, validator or FileValidator())


def upload_validated(
    client: LinearClient,
    issue_id: str,
    resolved: Sequence[FileAttachmentRequest],
    options: Optional[UploadOptions] = None,
    transfer: Optional[TransferExecutor] = None
) -> BatchSummary:
    """Upload and attach files already resolved by validate_attachments."""
    orchestrator = UploadOrchestrator(client, transfer=transfer, options=options)
    return summarize(orchestrator.upload_batch(issue_id, resolved))


def create_url_attachment(
    client: LinearClient,
    issue_id: str,
    url: str,
    title: str,
    subtitle: Optional[str] = None,
    icon_url: Optional[str] = None,
    metadata: Optional[str] = None
) -> AttachmentRecord:
    """Attach an external URL (e.g. a pull request) to an issue.

    Raises:
        ValidationError: If url or title is missing, or metadata is malformed
    """
    if not url:
        raise ValidationError("--url is required")
    if not title or not title.strip():
        raise ValidationError("--title is required")

    try:
        metadata_dict = parse_metadata(metadata)
    except ValidationError as e:
        raise ValidationError(f"Invalid metadata: {e.message}")

    return client.register_attachment(
        issue_id,
        title,
        url,
        subtitle=subtitle,
        icon_url=icon_url,
        metadata=metadata_dict
    )


def update_attachment(
    client: LinearClient,
    attachment_id: str,
    title: str,
    subtitle: Optional[str] = None,
    icon_url: Optional[str] = None,
    metadata: Optional[str] = None
) -> AttachmentRecord:
    """Update an attachment's title, subtitle, icon or metadata.

    Linear requires the title on every update; None leaves other fields
    unchanged.

    Raises:
        ValidationError: If title is empty or metadata is malformed
    """
    if not title or not title.strip():
        raise ValidationError("--title is required")

    metadata_dict: Optional[Dict[str, Any]] = None
    if metadata is not None:
        try:
            metadata_dict = parse_metadata(metadata)
        except ValidationError as e:
            raise ValidationError(f"Invalid metadata: {e.message}")

    return client.update_attachment_metadata(
        attachment_id,
        title,
        subtitle=subtitle,
        icon_url=icon_url,
        metadata=metadata_dict
    )


def delete_attachment(client: LinearClient, attachment_id: str) -> bool:
    """Delete an attachment. Cannot be undone."""
    return client.delete_attachment(attachment_id)


def list_attachments(
    client: LinearClient,
    issue_id: str,
    limit: int = 50,
    sort: Optional[str] = None
) -> List[AttachmentRecord]:
    """List attachments on an issue, optionally sorted by created/updated."""
    return client.list_attachments(issue_id, limit=limit, order_by=sort)
