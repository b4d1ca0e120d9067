"""Upload orchestrator.

Drives a batch of file attachments through the three remote stages:

1. request an upload target (fileUpload)
2. PUT the file body to the pre-signed URL
3. register the asset URL as an attachment on the issue (attachmentCreate)

Every file is validated before the first network call (fail-closed). After
that, a failure in any stage is recorded on that file's result and the
batch carries on (fail-isolated).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, TYPE_CHECKING

from ..models.attachment import AttachmentRecord, UploadTarget
from ..models.upload import FileAttachmentRequest, UploadOptions, UploadResult
from ..utils.errors import (
    BatchValidationError,
    RegistrationFailed,
    TransferFailed,
    UploadStageError,
    UploadTargetRequestFailed,
    ValidationError,
)
from ..utils.validation import FileValidator
from .transfer import TransferExecutor

if TYPE_CHECKING:
    from ..client import LinearClient

logger = logging.getLogger(__name__)


def validate_batch(
    requests: Sequence[FileAttachmentRequest],
    validator: FileValidator
) -> List[FileAttachmentRequest]:
    """Validate every file and resolve its size and content type.

    Makes no network calls, so it can run before a client exists.

    Args:
        requests: Files in the order given on the command line
        validator: Pre-flight file validator

    Returns:
        Resolved copies of the requests, same order

    Raises:
        ValidationError: If the batch is empty
        BatchValidationError: If any file failed; carries all failures
    """
    if not requests:
        raise ValidationError("At least one --file and --title pair is required")

    logger.info(f"Validating {len(requests)} file(s)")
    outcomes = [validator.check(request) for request in requests]

    failures = [outcome for outcome in outcomes if not outcome.ok]
    if failures:
        logger.error(f"Validation failed for {len(failures)}/{len(requests)} file(s); nothing uploaded")
        raise BatchValidationError(failures)

    return [
        request.model_copy(update={"size": outcome.size, "content_type": outcome.content_type})
        for request, outcome in zip(requests, outcomes)
    ]


class UploadOrchestrator:
    """Runs a batch of file uploads against one issue.

    Files are processed in input order, one at a time unless
    ``options.max_workers`` is above 1. Results always come back in input
    order. Attachments registered before a later file fails are kept.
    """

    def __init__(
        self,
        api_client: "LinearClient",
        validator: Optional[FileValidator] = None,
        transfer: Optional[TransferExecutor] = None,
        options: Optional[UploadOptions] = None
    ):
        """
        Initialize upload orchestrator.

        Args:
            api_client: Client exposing request_upload_target and
                register_attachment
            validator: Pre-flight file validator
            transfer: Executor for the PUT stage
            options: Output, concurrency, cancellation and callbacks
        """
        self._api = api_client
        self._validator = validator or FileValidator()
        self._transfer = transfer or TransferExecutor()
        self.options = options or UploadOptions()

    def validate_batch(self, requests: Sequence[FileAttachmentRequest]) -> List[FileAttachmentRequest]:
        """Validate every file and resolve its size and content type.

        Raises:
            ValidationError: If the batch is empty
            BatchValidationError: If any file failed; carries all failures
        """
        return validate_batch(requests, self._validator)

    def run(self, issue_id: str, requests: Sequence[FileAttachmentRequest]) -> List[UploadResult]:
        """Validate the whole batch, then upload and attach each file.

        Raises:
            ValidationError: If the batch is empty
            BatchValidationError: If any file failed validation. No upload
                target is requested for any file in that case.
        """
        return self.upload_batch(issue_id, self.validate_batch(requests))

    def upload_batch(self, issue_id: str, resolved: Sequence[FileAttachmentRequest]) -> List[UploadResult]:
        """Upload and attach already-validated files.

        Raises:
            ValidationError: If any request was not resolved by validate_batch
        """
        unresolved = [request.filename for request in resolved if not request.is_resolved]
        if unresolved:
            raise ValidationError(
                "files must be validated before upload",
                details={"unresolved": unresolved}
            )

        logger.info(f"Uploading {len(resolved)} file(s) to {issue_id}")
        if not resolved:
            return []

        workers = min(self.options.max_workers, len(resolved))
        if workers <= 1:
            return [self.upload_one(issue_id, request) for request in resolved]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lincli-upload") as pool:
            futures = [pool.submit(self.upload_one, issue_id, request) for request in resolved]
            return [future.result() for future in futures]

    def upload_one(self, issue_id: str, request: FileAttachmentRequest) -> UploadResult:
        """Run the three remote stages for one validated file.

        Never raises for stage failures; they are returned as a failed
        result so sibling files still run.
        """
        if self.options.cancelled:
            logger.warning(f"Skipping {request.filename}: upload cancelled")
            result = UploadResult(
                filename=request.filename,
                title=request.title,
                success=False,
                error="upload cancelled",
                stage="cancelled"
            )
            self._notify(request, result)
            return result

        attempts = 0
        try:
            target = self._request_upload_target(request)
            attempts = self._transfer_file(request, target)
            record = self._register_attachment(issue_id, request, target)
        except UploadStageError as e:
            if isinstance(e, TransferFailed):
                attempts = e.attempts
            logger.error(f"Failed to attach {request.filename} ({e.stage}): {e.message}")
            result = UploadResult(
                filename=request.filename,
                title=request.title,
                success=False,
                error=e.message,
                stage=e.stage,
                attempts=attempts
            )
        else:
            logger.info(f"Attached {request.filename} to {issue_id} as {record.id}")
            result = UploadResult(
                filename=request.filename,
                title=request.title,
                success=True,
                attempts=attempts,
                attachment=record
            )

        self._notify(request, result)
        return result

    def _request_upload_target(self, request: FileAttachmentRequest) -> UploadTarget:
        try:
            return self._api.request_upload_target(request.content_type, request.filename, request.size)
        except Exception as e:
            raise UploadTargetRequestFailed(
                f"failed to get upload URL: {e}",
                details={"filename": request.filename}
            ) from e

    def _transfer_file(self, request: FileAttachmentRequest, target: UploadTarget) -> int:
        progress = None
        if self.options.progress_callback is not None:
            callback = self.options.progress_callback

            def progress(sent: int) -> None:
                callback(request, sent)

        try:
            return self._transfer.transfer(
                request.path,
                target.uploadUrl,
                target.header_dict(),
                request.size,
                progress=progress,
                cancel_event=self.options.cancel_event
            )
        except TransferFailed:
            raise
        except Exception as e:
            raise TransferFailed(f"upload failed: {e}", retryable=False) from e

    def _register_attachment(
        self,
        issue_id: str,
        request: FileAttachmentRequest,
        target: UploadTarget
    ) -> AttachmentRecord:
        try:
            return self._api.register_attachment(
                issue_id,
                request.title,
                target.assetUrl,
                subtitle=request.subtitle,
                icon_url=request.icon_url,
                metadata=request.metadata
            )
        except Exception as e:
            raise RegistrationFailed(
                f"failed to create attachment: {e}",
                details={"filename": request.filename, "issue_id": issue_id}
            ) from e

    def _notify(self, request: FileAttachmentRequest, result: UploadResult) -> None:
        if self.options.result_callback is not None:
            self.options.result_callback(request, result)
