"""Console and JSON rendering for the lincli commands.

The upload pipeline never prints; the CLI wires these renderers to the
orchestrator's progress and result callbacks.
"""
import json
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .models.attachment import AttachmentRecord
from .models.upload import BatchSummary, FileAttachmentRequest, UploadResult
from .utils.errors import BatchValidationError
from .utils.validation import format_size


class Renderer:
    """Renders command output as rich text or as a single JSON document.

    In JSON mode nothing but the final document goes to stdout; progress
    and per-file lines are suppressed.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._tasks: Dict[int, Any] = {}
        self._lock = threading.Lock()

    @property
    def interactive(self) -> bool:
        return not self.json_output and not self.quiet

    def print_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str), highlight=False)

    def info(self, message: str) -> None:
        if not self.json_output:
            self.console.print(message, highlight=False)

    def error(self, message: str) -> None:
        if self.json_output:
            self.print_json({"error": message})
        else:
            self.err_console.print(f"[red]Error:[/red] {message}", highlight=False)

    # Upload output

    def validated(self, requests: List[FileAttachmentRequest]) -> None:
        if self.json_output:
            return
        for request in requests:
            self.console.print(
                f"[green]✓[/green] {request.filename} ({format_size(request.size or 0)}) - OK",
                highlight=False
            )
        self.console.print()

    def validation_failed(self, error: BatchValidationError) -> None:
        if self.json_output:
            self.print_json({
                "error": "Validation failed",
                "validation_errors": [
                    {"filename": outcome.filename, "reason": outcome.reason, "error": outcome.message}
                    for outcome in error.failures
                ]
            })
            return

        self.err_console.print("[red]Error:[/red] Validation failed:", highlight=False)
        for outcome in error.failures:
            self.err_console.print(f"  - {outcome.filename}: {outcome.message}", highlight=False)

    @contextmanager
    def upload_progress(self) -> Iterator[None]:
        """Show a progress bar per file while the block runs (text mode only)."""
        if not self.interactive:
            yield
            return

        progress = Progress(
            TextColumn("Uploading {task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=self.console
        )
        self._progress = progress
        try:
            with progress:
                yield
        finally:
            self._progress = None
            self._tasks.clear()

    def file_progress(self, request: FileAttachmentRequest, sent: int) -> None:
        if self._progress is None:
            return
        with self._lock:
            task_id = self._tasks.get(id(request))
            if task_id is None:
                task_id = self._progress.add_task(
                    f"{request.filename} ({format_size(request.size or 0)})",
                    total=request.size or 0
                )
                self._tasks[id(request)] = task_id
        self._progress.update(task_id, completed=sent)

    def file_result(self, request: FileAttachmentRequest, result: UploadResult) -> None:
        if self.json_output:
            return
        if result.success:
            self.console.print(f"[green]✓[/green] Attached {result.filename}", highlight=False)
        else:
            self.console.print(
                f"[red]✗[/red] Failed to attach {result.filename}: {result.error}",
                highlight=False
            )

    def summary(self, summary: BatchSummary) -> None:
        if self.json_output:
            self.print_json({
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "results": [
                    result.model_dump(mode="json", exclude_none=True, exclude={"attachment"})
                    for result in summary.results
                ]
            })
            return

        self.console.print()
        self.console.print(
            f"Summary: {summary.succeeded} succeeded, {summary.failed} failed",
            highlight=False
        )
        if summary.failures:
            self.console.print("Failed uploads:")
            for result in summary.failures:
                self.console.print(f"  - {result.filename}: {result.error}", highlight=False)

    # Single attachment output

    def attachment(self, record: AttachmentRecord, verb: str) -> None:
        if self.json_output:
            self.print_json(record.model_dump(mode="json"))
            return
        self.console.print(f"[green]✓[/green] {verb} attachment: {record.title}", highlight=False)
        self.console.print(f"  ID: {record.id}", highlight=False)
        self.console.print(f"  URL: {record.url}", highlight=False)

    def deleted(self, attachment_id: str) -> None:
        if self.json_output:
            self.print_json({"success": True})
            return
        self.console.print(f"[green]✓[/green] Deleted attachment {attachment_id}", highlight=False)

    def attachments(self, issue_id: str, records: List[AttachmentRecord]) -> None:
        if self.json_output:
            self.print_json([record.model_dump(mode="json") for record in records])
            return

        if not records:
            self.console.print("No attachments found")
            return

        table = Table(title=f"Attachments for {issue_id}", box=None)
        for column in ("ID", "Title", "Subtitle", "Creator", "Created"):
            table.add_column(column)
        for record in records:
            table.add_row(
                record.id,
                record.title,
                record.subtitle or "",
                record.creator.name if record.creator else "",
                record.createdAt.strftime("%Y-%m-%d") if record.createdAt else ""
            )
        self.console.print(table)
