"""Reduce per-file upload results into a batch summary."""
import logging
from typing import Iterable

from ..models.upload import BatchSummary, UploadResult

logger = logging.getLogger(__name__)


def summarize(results: Iterable[UploadResult]) -> BatchSummary:
    """Count successes and failures, keeping input order.

    The batch succeeds only when no file failed. Attachments registered
    for the successful files of a failed batch are not rolled back.
    """
    results = list(results)
    failures = [result for result in results if not result.success]
    summary = BatchSummary(
        succeeded=len(results) - len(failures),
        failed=len(failures),
        failures=failures,
        results=results
    )

    logger.info(f"Upload complete: {summary.succeeded}/{summary.total} succeeded")
    if failures:
        logger.warning(f"{summary.failed} upload(s) failed: {', '.join(r.filename for r in failures)}")
    return summary
