"""Unit tests for attachment operations.

Tests flag pairing, batch upload wiring, and the URL/update/delete/list
operations against a mock client.
"""
import pytest
from pathlib import Path

from lincli.tools.attachment_tools import (
    build_file_requests,
    create_url_attachment,
    delete_attachment,
    list_attachments,
    update_attachment,
    upload_attachments,
    upload_validated,
    validate_attachments,
)
from lincli.models.upload import UploadOptions
from lincli.utils.errors import BatchValidationError, LinearError, ValidationError


# ============================================================================
# build_file_requests
# ============================================================================

def test_build_file_requests_pairs_flags_by_index():
    requests = build_file_requests(
        ["a.pdf", "b.png"],
        ["Report", "Screenshot"],
        subtitles=["Draft"],
        icon_urls=["", "https://example.com/icon.png"],
        metadatas=["source=ci", ""]
    )

    assert [(r.path, r.title) for r in requests] == [(Path("a.pdf"), "Report"), (Path("b.png"), "Screenshot")]
    assert requests[0].subtitle == "Draft"
    assert requests[1].subtitle is None
    assert requests[0].icon_url is None
    assert requests[1].icon_url == "https://example.com/icon.png"
    assert requests[0].metadata == {"source": "ci"}
    assert requests[1].metadata is None


def test_build_file_requests_count_mismatch():
    with pytest.raises(ValidationError, match="each --file must have a corresponding --title"):
        build_file_requests(["a.pdf", "b.pdf"], ["Only one"])


def test_build_file_requests_empty_title():
    with pytest.raises(ValidationError, match="title for file b.pdf cannot be empty"):
        build_file_requests(["a.pdf", "b.pdf"], ["A", "  "])


def test_build_file_requests_bad_metadata():
    with pytest.raises(ValidationError, match="invalid metadata for file a.pdf"):
        build_file_requests(["a.pdf"], ["A"], metadatas=["oops"])


def test_build_file_requests_empty():
    assert build_file_requests([], []) == []


# ============================================================================
# upload_attachments
# ============================================================================

def test_upload_attachments_summary(mock_linear_client, mock_transfer, make_request):
    validated = []
    requests = [make_request("a.txt"), make_request("b.txt")]

    summary = upload_attachments(
        mock_linear_client,
        "ENG-123",
        requests,
        transfer=mock_transfer,
        on_validated=validated.append
    )

    assert summary.succeeded == 2
    assert summary.failed == 0
    assert summary.exit_code == 0
    assert [r.filename for r in validated[0]] == ["a.txt", "b.txt"]
    assert all(r.is_resolved for r in validated[0])


def test_upload_attachments_partial_failure(mock_linear_client, mock_transfer, make_request, mock_attachment):
    mock_linear_client.register_attachment.side_effect = [LinearError("denied"), mock_attachment]

    summary = upload_attachments(
        mock_linear_client,
        "ENG-123",
        [make_request("a.txt"), make_request("b.txt")],
        transfer=mock_transfer
    )

    assert (summary.succeeded, summary.failed) == (1, 1)
    assert summary.failures[0].filename == "a.txt"
    assert summary.exit_code == 1


def test_upload_attachments_validation_failure_skips_callback(mock_linear_client, mock_transfer, tmp_path):
    validated = []
    requests = build_file_requests([str(tmp_path / "nope.pdf")], ["Nope"])

    with pytest.raises(BatchValidationError):
        upload_attachments(
            mock_linear_client,
            "ENG-123",
            requests,
            options=UploadOptions(output="json"),
            transfer=mock_transfer,
            on_validated=validated.append
        )

    assert validated == []
    mock_linear_client.request_upload_target.assert_not_called()


def test_validate_attachments_needs_no_client(make_request):
    resolved = validate_attachments([make_request("a.txt")])

    assert [r.filename for r in resolved] == ["a.txt"]
    assert resolved[0].is_resolved


def test_validate_attachments_empty_batch():
    with pytest.raises(ValidationError, match="At least one --file"):
        validate_attachments([])


def test_upload_validated_uploads_resolved_requests(mock_linear_client, mock_transfer, make_request):
    resolved = validate_attachments([make_request("a.txt"), make_request("b.txt")])

    summary = upload_validated(mock_linear_client, "ENG-123", resolved, transfer=mock_transfer)

    assert summary.succeeded == 2
    assert mock_linear_client.register_attachment.call_count == 2


# ============================================================================
# URL / update / delete / list
# ============================================================================

def test_create_url_attachment(mock_linear_client, mock_attachment):
    record = create_url_attachment(
        mock_linear_client,
        "ENG-123",
        "https://github.com/example/repo/pull/42",
        "Pull request",
        metadata="pr=42,repo=example"
    )

    assert record == mock_attachment
    mock_linear_client.register_attachment.assert_called_once_with(
        "ENG-123",
        "Pull request",
        "https://github.com/example/repo/pull/42",
        subtitle=None,
        icon_url=None,
        metadata={"pr": "42", "repo": "example"}
    )


@pytest.mark.parametrize("url,title,message", [
    ("", "Title", "--url is required"),
    ("https://example.com", "", "--title is required"),
])
def test_create_url_attachment_requires_url_and_title(mock_linear_client, url, title, message):
    with pytest.raises(ValidationError, match=message):
        create_url_attachment(mock_linear_client, "ENG-123", url, title)

    mock_linear_client.register_attachment.assert_not_called()


def test_create_url_attachment_bad_metadata(mock_linear_client):
    with pytest.raises(ValidationError, match="Invalid metadata"):
        create_url_attachment(mock_linear_client, "ENG-123", "https://example.com", "T", metadata="broken")


def test_update_attachment(mock_linear_client):
    update_attachment(mock_linear_client, "att-1", "New title", subtitle="v2", metadata="stage=final")

    mock_linear_client.update_attachment_metadata.assert_called_once_with(
        "att-1",
        "New title",
        subtitle="v2",
        icon_url=None,
        metadata={"stage": "final"}
    )


def test_update_attachment_requires_title(mock_linear_client):
    with pytest.raises(ValidationError, match="--title is required"):
        update_attachment(mock_linear_client, "att-1", " ")


def test_delete_attachment(mock_linear_client):
    assert delete_attachment(mock_linear_client, "att-1") is True
    mock_linear_client.delete_attachment.assert_called_once_with("att-1")


def test_list_attachments(mock_linear_client, mock_attachment):
    assert list_attachments(mock_linear_client, "ENG-123", limit=5, sort="updated") == [mock_attachment]
    mock_linear_client.list_attachments.assert_called_once_with("ENG-123", limit=5, order_by="updated")
