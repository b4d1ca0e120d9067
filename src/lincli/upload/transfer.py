"""File transfer to a pre-signed upload URL.

Sends one file's bytes as the body of a PUT, reporting progress as the body
streams, and retries transient failures on a fixed backoff schedule.
"""
import logging
import threading
import time
from pathlib import Path
from typing import Optional, Dict, Callable, BinaryIO, Union

import requests
from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
)

from ..utils.errors import TransferFailed, TransferCancelled

logger = logging.getLogger(__name__)

# Seconds to wait before attempts 2, 3 and 4
RETRY_BACKOFF = (1, 2, 4)
MAX_ATTEMPTS = len(RETRY_BACKOFF) + 1

# Per-attempt timeout, sized for 50 MiB bodies on slow links
TRANSFER_TIMEOUT = 5 * 60

FIXED_HEADERS = {
    "Content-Type": "application/octet-stream",
    "Cache-Control": "public, max-age=31536000",
}

ProgressSink = Callable[[int], None]


class ProgressReader:
    """File wrapper that reports cumulative bytes read.

    Exposes ``__len__`` so requests sends a Content-Length instead of
    chunked encoding. Checks the cancel event before every chunk.
    """

    def __init__(
        self,
        handle: BinaryIO,
        size: int,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        self._handle = handle
        self._size = size
        self._progress = progress
        self._cancel_event = cancel_event
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise TransferCancelled("upload cancelled mid-transfer")

        chunk = self._handle.read(size)
        if chunk:
            self.bytes_read += len(chunk)
            if self._progress:
                self._progress(self.bytes_read)
        return chunk

    def __len__(self) -> int:
        return self._size


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, TransferFailed) and error.retryable


class TransferExecutor:
    """Uploads a file body to a pre-signed URL with bounded retries.

    Up to 4 attempts in total. Every attempt reopens the file and replays
    the whole body. 4xx responses and local file errors fail immediately;
    5xx responses and network errors are retried after 1s, 2s and 4s.

    Holds no per-file state, so one executor can serve parallel transfers
    of different files.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = TRANSFER_TIMEOUT,
        backoff: tuple = RETRY_BACKOFF,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize transfer executor.

        Args:
            session: HTTP session for the PUTs. Must not carry Linear
                credentials; the upload URL is pre-signed.
            timeout: Per-attempt timeout in seconds
            backoff: Wait before each retry, in seconds
            sleep: Sleep function used between attempts
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self.backoff = tuple(backoff)
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return len(self.backoff) + 1

    def transfer(
        self,
        path: Union[str, Path],
        destination_url: str,
        headers: Optional[Dict[str, str]],
        size: int,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> int:
        """Upload a file to a pre-signed URL.

        Args:
            path: Local file to send
            destination_url: Pre-signed PUT URL
            headers: Headers from the upload target, replayed verbatim
            size: File size in bytes (sent as Content-Length)
            progress: Receives cumulative bytes sent during each attempt
            cancel_event: Checked before each retry wait and each body chunk

        Returns:
            Number of attempts used

        Raises:
            TransferFailed: On a 4xx, a local file error, or after the last
                retryable failure (``retryable=True``, ``attempts`` set)
            TransferCancelled: If cancel_event was set
        """
        path = Path(path)
        request_headers = dict(headers or {})
        request_headers.update(FIXED_HEADERS)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_chain(*[wait_fixed(seconds) for seconds in self.backoff]),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._before_sleep(path, cancel_event),
            sleep=self._sleep,
            reraise=True
        )

        attempts = 0
        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    logger.debug(f"Uploading {path.name}: attempt {attempts}/{self.max_attempts}")
                    self._attempt(path, destination_url, request_headers, size, progress, cancel_event)
        except TransferFailed as e:
            e.attempts = max(attempts, 1)
            if e.retryable:
                logger.error(f"Upload of {path.name} failed after {attempts} attempts: {e.message}")
                raise TransferFailed(
                    f"upload failed after {attempts} attempts: {e.message}",
                    retryable=True,
                    attempts=attempts,
                    status_code=e.status_code,
                    details={"attempts": attempts}
                ) from e
            raise

        logger.info(f"Uploaded {path.name} ({size} bytes) in {attempts} attempt(s)")
        return attempts

    def _before_sleep(
        self,
        path: Path,
        cancel_event: Optional[threading.Event]
    ) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            attempt = retry_state.attempt_number
            if cancel_event is not None and cancel_event.is_set():
                raise TransferCancelled("upload cancelled before retry", attempts=attempt)
            error = retry_state.outcome.exception() if retry_state.outcome else None
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"Transient error uploading {path.name}, retrying in {wait:.0f}s "
                f"(attempt {attempt}/{self.max_attempts - 1}): {error}"
            )
        return before_sleep

    def _attempt(
        self,
        path: Path,
        url: str,
        headers: Dict[str, str],
        size: int,
        progress: Optional[ProgressSink],
        cancel_event: Optional[threading.Event]
    ) -> None:
        """Make one PUT. The file handle never outlives the attempt."""
        try:
            handle = open(path, "rb")
        except OSError as e:
            raise TransferFailed(f"failed to open file: {e.strerror or e}", retryable=False)

        with handle:
            body = ProgressReader(handle, size, progress, cancel_event)
            try:
                response = self.session.put(url, data=body, headers=headers, timeout=self.timeout)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                raise TransferFailed(f"upload failed: {e}", retryable=True)

        status = response.status_code
        # Release the connection for reuse
        response.close()

        if 200 <= status < 300:
            return

        if 400 <= status < 500:
            raise TransferFailed(
                f"upload failed with status {status} (non-retryable)",
                retryable=False,
                status_code=status
            )

        raise TransferFailed(
            f"upload failed with status {status}",
            retryable=True,
            status_code=status
        )
