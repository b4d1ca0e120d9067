"""Linear CLI File Validation Utilities

Local pre-flight checks run on every file of a batch before any network
call is made: existence, readability, size cap and content-type detection.
Also parses the ``key=value`` metadata text accepted on the command line.
"""
import logging
import mimetypes
import os
import stat
from pathlib import Path
from typing import Dict, Optional, Union

import magic

from ..models.upload import FileAttachmentRequest, ValidationOutcome, MAX_FILE_SIZE
from .errors import FileValidationError, ValidationFailure, ValidationError

logger = logging.getLogger(__name__)

# Bytes read from the head of a file for magic-byte sniffing
SNIFF_BYTES = 512

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Built-in extension table only, so results don't depend on the host's
# /etc/mime.types
_MIME_TYPES = mimetypes.MimeTypes()
for _ext, _type in {
    ".md": "text/markdown",
    ".log": "text/plain",
    ".webp": "image/webp",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
}.items():
    _MIME_TYPES.add_type(_type, _ext)


def format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable size (e.g. ``1.5 MB``)."""
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"
    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{num_bytes / div:.1f} {'KMGTPE'[exp]}B"


def parse_metadata(text: Optional[str]) -> Optional[Dict[str, str]]:
    """Parse comma-separated ``key=value`` pairs into a flat dict.

    Keys and values are stripped; values stay strings. Only the first
    ``=`` of a pair splits it, so values may contain ``=``.

    Args:
        text: Raw metadata text, e.g. ``"source=ci, build=42"``

    Returns:
        Parsed metadata, or None for empty text

    Raises:
        ValidationError: If a pair has no ``=``
    """
    if text is None or not text.strip():
        return None

    metadata: Dict[str, str] = {}
    for pair in text.split(","):
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValidationError(
                "metadata must be key=value pairs separated by commas",
                details={"pair": pair}
            )
        metadata[key.strip()] = value.strip()
    return metadata


class FileValidator:
    """Pre-flight checks for files about to be uploaded.

    Stateless; only ever reads a bounded prefix of a file.
    """

    def __init__(self, max_size: int = MAX_FILE_SIZE):
        self.max_size = max_size

    def validate(self, path: Union[str, Path]) -> int:
        """Check a path is an existing, readable regular file within the size cap.

        Args:
            path: Local file path

        Returns:
            File size in bytes (zero-byte files are accepted)

        Raises:
            FileValidationError: NOT_FOUND, PERMISSION_DENIED, IS_DIRECTORY
                or TOO_LARGE
        """
        path = Path(path)
        try:
            info = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise FileValidationError(
                ValidationFailure.NOT_FOUND,
                "file not found",
                details={"path": str(path)}
            )
        except OSError as e:
            # EACCES on a parent directory and friends
            raise FileValidationError(
                ValidationFailure.PERMISSION_DENIED,
                f"cannot access file: {e.strerror or e}",
                details={"path": str(path)}
            )

        if stat.S_ISDIR(info.st_mode):
            raise FileValidationError(
                ValidationFailure.IS_DIRECTORY,
                "is a directory, not a file",
                details={"path": str(path)}
            )

        if not os.access(path, os.R_OK):
            raise FileValidationError(
                ValidationFailure.PERMISSION_DENIED,
                "permission denied",
                details={"path": str(path)}
            )

        size = info.st_size
        if size > self.max_size:
            raise FileValidationError(
                ValidationFailure.TOO_LARGE,
                f"file size {size / (1024 * 1024):.1f} MB exceeds limit of "
                f"{self.max_size // (1024 * 1024)} MB",
                details={"path": str(path), "size": size, "max_size": self.max_size}
            )

        logger.debug(f"Validated {path}: {size} bytes")
        return size

    def detect_content_type(self, path: Union[str, Path]) -> str:
        """Detect a file's MIME type.

        Tries the extension table first, then sniffs the first 512 bytes
        with libmagic.

        Raises:
            FileValidationError: CONTENT_TYPE_DETECTION_FAILED if the file
                cannot be opened or read
        """
        path = Path(path)
        content_type, _ = _MIME_TYPES.guess_type(path.name, strict=False)
        if content_type:
            return content_type

        try:
            with open(path, "rb") as handle:
                sample = handle.read(SNIFF_BYTES)
        except OSError as e:
            raise FileValidationError(
                ValidationFailure.CONTENT_TYPE_DETECTION_FAILED,
                f"failed to detect content type: {e.strerror or e}",
                details={"path": str(path)}
            )

        if not sample:
            return DEFAULT_CONTENT_TYPE

        try:
            detected = magic.from_buffer(sample, mime=True)
        except magic.MagicException as e:
            logger.warning(f"libmagic could not sniff {path.name}: {e}")
            return DEFAULT_CONTENT_TYPE

        logger.debug(f"Sniffed content type for {path.name}: {detected}")
        return detected or DEFAULT_CONTENT_TYPE

    def check(self, request: FileAttachmentRequest) -> ValidationOutcome:
        """Run every pre-flight check for one request and record the outcome."""
        try:
            size = self.validate(request.path)
            content_type = self.detect_content_type(request.path)
        except FileValidationError as e:
            logger.warning(f"Validation failed for {request.filename}: {e.message}")
            return ValidationOutcome(
                filename=request.filename,
                path=request.path,
                ok=False,
                reason=e.reason,
                message=e.message
            )

        return ValidationOutcome(
            filename=request.filename,
            path=request.path,
            ok=True,
            size=size,
            content_type=content_type
        )

    def resolve(self, request: FileAttachmentRequest) -> FileAttachmentRequest:
        """Return a copy of the request with size and content type filled in.

        Raises:
            FileValidationError: If the file fails validation
        """
        size = self.validate(request.path)
        content_type = self.detect_content_type(request.path)
        return request.model_copy(update={"size": size, "content_type": content_type})
