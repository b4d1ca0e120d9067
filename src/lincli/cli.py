"""lincli - command-line entry point.

    lincli attachment upload ENG-123 \\
        --file report.pdf --title "Q4 Report" --subtitle "Draft" \\
        --file screenshot.png --title "Bug Screenshot"

Configuration comes from the environment:
    LINEAR_API_KEY / LINEAR_ACCESS_TOKEN  credentials (see lincli.auth)
    LINEAR_API_URL                        GraphQL endpoint override
    LINEAR_VERIFY_SSL                     "false" to skip TLS verification
"""
import logging
import os
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

import typer

from . import __version__
from .auth import get_auth_header
from .client import DEFAULT_API_URL, LinearClient
from .models.upload import UploadOptions
from .output import Renderer
from .tools import attachment_tools
from .utils.errors import BatchValidationError, LinearError

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="lincli",
    help="Attach files and links to Linear issues",
    add_completion=False,
    no_args_is_help=True
)
attachment_app = typer.Typer(
    help="Manage issue attachments (file uploads and URL links)",
    no_args_is_help=True
)
app.add_typer(attachment_app, name="attachment")


@dataclass
class CliConfig:
    """Per-invocation global flags."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False

    def renderer(self) -> Renderer:
        return Renderer(json_output=self.json_output, quiet=self.quiet)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s - LINCLI - %(levelname)s - %(message)s'
    )


def build_client() -> LinearClient:
    """Create an authenticated client from environment variables.

    Raises:
        CredentialsError: If no API key or token is set
    """
    api_url = os.environ.get("LINEAR_API_URL", DEFAULT_API_URL)
    verify_ssl = os.environ.get("LINEAR_VERIFY_SSL", "true").lower() in ("true", "1", "yes")
    if not verify_ssl:
        logger.warning("SSL verification disabled")
    return LinearClient(get_auth_header(), api_url=api_url, verify_ssl=verify_ssl)


@contextmanager
def cancel_on_interrupt(cancel_event: threading.Event) -> Iterator[None]:
    """First Ctrl+C cancels the upload gracefully, the second one aborts."""
    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupted: cancelling remaining uploads")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _config(ctx: typer.Context) -> CliConfig:
    return ctx.obj if isinstance(ctx.obj, CliConfig) else CliConfig()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lincli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No progress output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log API activity to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
):
    """Attach files and links to Linear issues."""
    configure_logging(verbose)
    ctx.obj = CliConfig(json_output=json_output, quiet=quiet, verbose=verbose)


@attachment_app.command("upload")
def upload_command(
    ctx: typer.Context,
    issue_id: str = typer.Argument(..., help="Issue ID or identifier (e.g. ENG-123)"),
    files: Optional[List[str]] = typer.Option(None, "--file", "-f", help="Path to file to upload (repeatable)"),
    titles: Optional[List[str]] = typer.Option(None, "--title", "-t", help="Attachment title, one per --file"),
    subtitles: Optional[List[str]] = typer.Option(None, "--subtitle", help="Attachment subtitle"),
    icon_urls: Optional[List[str]] = typer.Option(None, "--icon-url", help="Custom icon URL"),
    metadatas: Optional[List[str]] = typer.Option(None, "--metadata", help="key=value pairs (comma-separated)"),
    workers: int = typer.Option(1, "--workers", min=1, help="Files uploaded in parallel"),
):
    """Upload one or more files and attach them to an issue.

    Each --file starts a new attachment and needs its own --title. All files
    are validated before anything is uploaded.
    """
    config = _config(ctx)
    renderer = config.renderer()

    renderer.info("Validating files...")
    try:
        requests = attachment_tools.build_file_requests(
            files or [], titles or [], subtitles, icon_urls, metadatas
        )
        resolved = attachment_tools.validate_attachments(requests)
    except BatchValidationError as e:
        renderer.validation_failed(e)
        raise typer.Exit(code=1)
    except LinearError as e:
        renderer.error(e.message)
        raise typer.Exit(code=1)
    renderer.validated(resolved)

    try:
        client = build_client()
    except LinearError as e:
        renderer.error(e.message)
        raise typer.Exit(code=1)

    cancel_event = threading.Event()
    options = UploadOptions(
        output="json" if config.json_output else "text",
        quiet=config.quiet,
        max_workers=workers,
        cancel_event=cancel_event,
        progress_callback=renderer.file_progress if renderer.interactive else None,
        result_callback=renderer.file_result
    )

    try:
        with cancel_on_interrupt(cancel_event), renderer.upload_progress():
            summary = attachment_tools.upload_validated(client, issue_id, resolved, options=options)
    except LinearError as e:
        renderer.error(e.message)
        raise typer.Exit(code=1)

    renderer.summary(summary)
    raise typer.Exit(code=summary.exit_code)


@attachment_app.command("create")
def create_command(
    ctx: typer.Context,
    issue_id: str = typer.Argument(..., help="Issue ID or identifier"),
    url: str = typer.Option(..., "--url", help="URL to attach"),
    title: str = typer.Option(..., "--title", help="Attachment title"),
    subtitle: Optional[str] = typer.Option(None, "--subtitle", help="Attachment subtitle"),
    icon_url: Optional[str] = typer.Option(None, "--icon-url", help="Custom icon URL"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="key=value pairs (comma-separated)"),
):
    """Attach an external URL (e.g. a pull request) to an issue."""
    renderer = _config(ctx).renderer()
    try:
        record = attachment_tools.create_url_attachment(
            build_client(), issue_id, url, title,
            subtitle=subtitle, icon_url=icon_url, metadata=metadata
        )
    except LinearError as e:
        renderer.error(f"Failed to create attachment: {e.message}")
        raise typer.Exit(code=1)
    renderer.attachment(record, "Created")


@attachment_app.command("update")
def update_command(
    ctx: typer.Context,
    attachment_id: str = typer.Argument(..., help="Attachment ID"),
    title: str = typer.Option(..., "--title", help="Attachment title (required by Linear)"),
    subtitle: Optional[str] = typer.Option(None, "--subtitle", help="New subtitle"),
    icon_url: Optional[str] = typer.Option(None, "--icon-url", help="New icon URL"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="New metadata as key=value pairs"),
):
    """Update an attachment's title, subtitle, icon or metadata.

    The URL of an attachment cannot be changed; delete it and create a new one.
    """
    renderer = _config(ctx).renderer()
    try:
        record = attachment_tools.update_attachment(
            build_client(), attachment_id, title,
            subtitle=subtitle, icon_url=icon_url, metadata=metadata
        )
    except LinearError as e:
        renderer.error(f"Failed to update attachment: {e.message}")
        raise typer.Exit(code=1)
    renderer.attachment(record, "Updated")


@attachment_app.command("delete")
def delete_command(
    ctx: typer.Context,
    attachment_id: str = typer.Argument(..., help="Attachment ID"),
):
    """Delete an attachment. This cannot be undone."""
    renderer = _config(ctx).renderer()
    try:
        attachment_tools.delete_attachment(build_client(), attachment_id)
    except LinearError as e:
        renderer.error(f"Failed to delete attachment: {e.message}")
        raise typer.Exit(code=1)
    renderer.deleted(attachment_id)


@attachment_app.command("list")
def list_command(
    ctx: typer.Context,
    issue_id: str = typer.Argument(..., help="Issue ID or identifier"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of attachments"),
    sort: Optional[str] = typer.Option(None, "--sort", "-o", help="linear (default), created, updated"),
):
    """List attachments (files and URLs) on an issue."""
    renderer = _config(ctx).renderer()
    try:
        records = attachment_tools.list_attachments(build_client(), issue_id, limit=limit, sort=sort)
    except LinearError as e:
        renderer.error(f"Failed to list attachments: {e.message}")
        raise typer.Exit(code=1)
    renderer.attachments(issue_id, records)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
