"""Linear CLI Error Handling Utilities

Custom exception classes for Linear API operations and the attachment
upload pipeline, with standardized error messages.
"""

from enum import Enum
from typing import Optional, Dict, Any, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.upload import ValidationOutcome


class LinearError(Exception):
    """Base exception for all Linear-related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize Linear error.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(LinearError):
    """Raised when request data fails validation.

    Examples:
    - Missing title for a file
    - Malformed metadata text
    - Empty upload batch
    """

    pass


class PermissionError(LinearError):
    """Raised when user lacks permission for an operation.

    Corresponds to HTTP 403 Forbidden responses.
    """

    pass


class AuthenticationError(LinearError):
    """Raised when the API key or token is rejected.

    Corresponds to HTTP 401 Unauthorized responses.
    """

    pass


class CredentialsError(LinearError):
    """Raised when no API key or access token is configured."""

    pass


class NotFoundError(LinearError):
    """Raised when requested resource doesn't exist.

    Corresponds to HTTP 404 Not Found responses, and to queries that
    resolve to a null issue.
    """

    pass


class RateLimitError(LinearError):
    """Raised when API rate limit is exceeded.

    Corresponds to HTTP 429 Too Many Requests responses.
    """

    pass


class ServerError(LinearError):
    """Raised when Linear returns an error.

    Corresponds to HTTP 5xx responses (500, 502, 503, 504).
    """

    pass


class GraphQLError(LinearError):
    """Raised when a 200 response carries a GraphQL ``errors`` array."""

    pass


class NetworkError(LinearError):
    """Raised when the API could not be reached.

    Wraps requests' timeouts, connection failures and other transport
    errors.
    """

    pass


# ============================================================================
# Upload pipeline errors
# ============================================================================

class ValidationFailure(str, Enum):
    """Categories of local pre-flight failures."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    IS_DIRECTORY = "is_directory"
    TOO_LARGE = "too_large"
    CONTENT_TYPE_DETECTION_FAILED = "content_type_detection_failed"


class FileValidationError(LinearError):
    """Raised when a local file fails pre-flight validation.

    Fatal for the whole batch: nothing is uploaded when any file fails.
    """

    def __init__(
        self,
        reason: ValidationFailure,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.reason = reason


class BatchValidationError(LinearError):
    """Raised when one or more files of a batch failed validation.

    Carries every failed outcome so they can be reported together.
    """

    def __init__(self, failures: List["ValidationOutcome"]):
        names = ", ".join(outcome.filename for outcome in failures)
        super().__init__(
            f"Validation failed for {len(failures)} file(s): {names}",
            details={"failed": len(failures)}
        )
        self.failures = failures


class UploadStageError(LinearError):
    """Base class for per-file remote stage failures.

    These are caught by the orchestrator and recorded on the file's
    result; they never abort the rest of the batch.
    """

    stage = "upload"


class UploadTargetRequestFailed(UploadStageError):
    """The fileUpload mutation failed or returned no upload target."""

    stage = "request_upload_target"


class TransferFailed(UploadStageError):
    """The PUT of the file body failed.

    ``retryable`` tells whether the last failure was transient (5xx or a
    network error); ``attempts`` is the number of PUTs made.
    """

    stage = "transfer"

    def __init__(
        self,
        message: str,
        retryable: bool,
        attempts: int = 1,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.retryable = retryable
        self.attempts = attempts
        self.status_code = status_code


class TransferCancelled(TransferFailed):
    """The transfer was cancelled by the caller. Never retried."""

    def __init__(self, message: str = "upload cancelled", attempts: int = 1):
        super().__init__(message, retryable=False, attempts=attempts)


class RegistrationFailed(UploadStageError):
    """The attachmentCreate mutation failed or reported success=false."""

    stage = "register_attachment"


def handle_http_error(status_code: int, response_text: str) -> LinearError:
    """Convert HTTP error response to appropriate exception.

    Args:
        status_code: HTTP status code
        response_text: Response body text

    Returns:
        Appropriate LinearError subclass instance
    """
    error_map = {
        400: ValidationError,
        401: AuthenticationError,
        403: PermissionError,
        404: NotFoundError,
        429: RateLimitError,
    }

    if status_code in error_map:
        error_class = error_map[status_code]
        return error_class(
            f"HTTP {status_code}: {response_text}",
            details={"status_code": status_code, "response": response_text}
        )

    if 500 <= status_code < 600:
        return ServerError(
            f"HTTP {status_code}: Server error - {response_text}",
            details={"status_code": status_code, "response": response_text}
        )

    return LinearError(
        f"HTTP {status_code}: Unexpected error - {response_text}",
        details={"status_code": status_code, "response": response_text}
    )
