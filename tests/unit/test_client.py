"""Unit tests for the Linear GraphQL client."""
import pytest
import requests
from unittest.mock import Mock

from lincli.client import LinearClient, FILE_UPLOAD_MUTATION
from lincli.utils.errors import (
    AuthenticationError,
    GraphQLError,
    LinearError,
    NetworkError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    ValidationError,
)
from fixtures import linear_responses

API_URL = "https://linear.test.example.com/graphql"


def make_response(payload=None, status_code=200, text=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text if text is not None else str(payload)
    return response


@pytest.fixture
def client():
    client = LinearClient("lin_api_test_key", api_url=API_URL)
    client.session.post = Mock()
    return client


@pytest.fixture
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(LinearClient.request_upload_target.retry, "sleep", lambda seconds: None)


def sent_body(client):
    return client.session.post.call_args.kwargs["json"]


def test_session_headers():
    client = LinearClient("Bearer oauth-token")

    assert client.session.headers["Authorization"] == "Bearer oauth-token"
    assert client.session.headers["Content-Type"] == "application/json"
    assert client.session.headers["User-Agent"].startswith("lincli/")
    assert client.api_url == "https://api.linear.app/graphql"


def test_request_upload_target(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_FILE_UPLOAD_RESPONSE)

    target = client.request_upload_target("application/pdf", "report.pdf", 2048)

    assert target.uploadUrl == linear_responses.MOCK_UPLOAD_FILE["uploadUrl"]
    assert target.assetUrl == linear_responses.MOCK_UPLOAD_FILE["assetUrl"]
    assert target.header_dict() == {
        "x-goog-content-length-range": "0,52428800",
        "Content-Disposition": "attachment; filename=\"report.pdf\"",
    }

    body = sent_body(client)
    assert body["query"] == FILE_UPLOAD_MUTATION
    assert body["variables"] == {"contentType": "application/pdf", "filename": "report.pdf", "size": 2048}
    kwargs = client.session.post.call_args.kwargs
    assert kwargs["timeout"] == 30
    assert kwargs["verify"] is True


def test_request_upload_target_success_false(client):
    client.session.post.return_value = make_response({"data": {"fileUpload": {"success": False, "uploadFile": None}}})

    with pytest.raises(LinearError, match="did not return an upload target"):
        client.request_upload_target("text/plain", "a.txt", 1)


def test_request_upload_target_retries_network_error_once(client, no_retry_wait):
    client.session.post.side_effect = [
        requests.exceptions.ConnectionError("connection reset"),
        make_response(linear_responses.MOCK_FILE_UPLOAD_RESPONSE),
    ]

    target = client.request_upload_target("application/pdf", "report.pdf", 2048)

    assert target.assetUrl == linear_responses.MOCK_UPLOAD_FILE["assetUrl"]
    assert client.session.post.call_count == 2


def test_request_upload_target_gives_up_after_second_network_error(client, no_retry_wait):
    client.session.post.side_effect = requests.exceptions.Timeout("timed out")

    with pytest.raises(NetworkError, match="timed out") as exc_info:
        client.request_upload_target("application/pdf", "report.pdf", 2048)

    assert isinstance(exc_info.value.__cause__, requests.exceptions.Timeout)
    assert client.session.post.call_count == 2


def test_network_errors_become_linear_errors(client):
    client.session.post.side_effect = requests.exceptions.ConnectionError("connection refused")

    with pytest.raises(NetworkError, match="connection refused"):
        client.list_attachments("ENG-123")

    assert client.session.post.call_count == 1


def test_request_upload_target_does_not_retry_http_errors(client, no_retry_wait):
    client.session.post.return_value = make_response(status_code=500, text="internal error")

    with pytest.raises(ServerError):
        client.request_upload_target("application/pdf", "report.pdf", 2048)

    assert client.session.post.call_count == 1


@pytest.mark.parametrize("status_code,error_class", [
    (400, ValidationError),
    (401, AuthenticationError),
    (403, PermissionError),
    (404, NotFoundError),
    (429, RateLimitError),
    (502, ServerError),
])
def test_http_errors_are_mapped(client, status_code, error_class):
    client.session.post.return_value = make_response(status_code=status_code, text="nope")

    with pytest.raises(error_class) as exc_info:
        client.delete_attachment("att-1")

    assert exc_info.value.details["status_code"] == status_code


def test_unexpected_status_is_linear_error(client):
    client.session.post.return_value = make_response(status_code=302, text="moved")

    with pytest.raises(LinearError, match="Unexpected error"):
        client.delete_attachment("att-1")


def test_graphql_errors(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_GRAPHQL_ERROR_RESPONSE)

    with pytest.raises(GraphQLError, match="Entity not found: Issue"):
        client.register_attachment("ENG-404", "Report", "https://example.com/r.pdf")


def test_unparseable_response(client):
    response = make_response(status_code=200, text="<html>")
    response.json.side_effect = ValueError("Expecting value")
    client.session.post.return_value = response

    with pytest.raises(LinearError, match="Failed to parse response"):
        client.delete_attachment("att-1")


def test_register_attachment(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_ATTACHMENT_CREATE_RESPONSE)

    record = client.register_attachment(
        "ENG-123",
        "Q4 Report",
        "https://uploads.linear.app/3f1e/abc123/report.pdf",
        subtitle="Draft",
        metadata={"source": "ci"}
    )

    assert record.id == "att-1"
    assert record.creator.name == "Ada Lovelace"
    assert sent_body(client)["variables"]["input"] == {
        "issueId": "ENG-123",
        "title": "Q4 Report",
        "url": "https://uploads.linear.app/3f1e/abc123/report.pdf",
        "subtitle": "Draft",
        "metadata": {"source": "ci"},
    }


def test_register_attachment_omits_empty_optionals(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_ATTACHMENT_CREATE_RESPONSE)

    client.register_attachment("ENG-123", "Link", "https://example.com", subtitle="", icon_url="", metadata={})

    assert sent_body(client)["variables"]["input"] == {
        "issueId": "ENG-123",
        "title": "Link",
        "url": "https://example.com",
    }


def test_register_attachment_success_false(client):
    client.session.post.return_value = make_response({"data": {"attachmentCreate": {"success": False}}})

    with pytest.raises(LinearError, match="attachment creation failed"):
        client.register_attachment("ENG-123", "Report", "https://example.com")


def test_update_attachment_metadata(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_ATTACHMENT_UPDATE_RESPONSE)

    record = client.update_attachment_metadata("att-1", "Q4 Report (final)", metadata={"stage": "final"})

    assert record.title == "Q4 Report (final)"
    variables = sent_body(client)["variables"]
    assert variables == {"id": "att-1", "input": {"title": "Q4 Report (final)", "metadata": {"stage": "final"}}}


def test_delete_attachment(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_ATTACHMENT_DELETE_RESPONSE)

    assert client.delete_attachment("att-1") is True
    assert sent_body(client)["variables"] == {"id": "att-1"}


def test_delete_attachment_success_false(client):
    client.session.post.return_value = make_response({"data": {"attachmentDelete": {"success": False}}})

    with pytest.raises(LinearError, match="attachment deletion failed"):
        client.delete_attachment("att-1")


def test_list_attachments(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_LIST_ATTACHMENTS_RESPONSE)

    records = client.list_attachments("ENG-123", limit=10, order_by="created")

    assert [r.id for r in records] == ["att-1", "att-2"]
    assert records[1].creator is None
    assert sent_body(client)["variables"] == {"issueId": "ENG-123", "first": 10, "orderBy": "createdAt"}


def test_list_attachments_linear_order_sends_no_order(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_LIST_ATTACHMENTS_RESPONSE)

    client.list_attachments("ENG-123", order_by="linear")

    assert "orderBy" not in sent_body(client)["variables"]


def test_list_attachments_invalid_sort(client):
    with pytest.raises(ValidationError, match="Invalid sort option"):
        client.list_attachments("ENG-123", order_by="size")

    client.session.post.assert_not_called()


def test_list_attachments_issue_not_found(client):
    client.session.post.return_value = make_response(linear_responses.MOCK_ISSUE_NOT_FOUND_RESPONSE)

    with pytest.raises(NotFoundError, match="Issue ENG-404 not found"):
        client.list_attachments("ENG-404")
