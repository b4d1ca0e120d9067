"""Root conftest for all tests - shared fixtures."""
import sys
from pathlib import Path

# Add src directory to path
src_dir = Path(__file__).parent.parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

import pytest
from unittest.mock import Mock, MagicMock

from lincli.client import LinearClient
from lincli.models.attachment import AttachmentRecord, UploadTarget
from lincli.models.upload import FileAttachmentRequest
from lincli.upload.transfer import TransferExecutor
from fixtures import linear_responses


@pytest.fixture
def mock_upload_target():
    """Upload target as returned by fileUpload."""
    return UploadTarget.model_validate(linear_responses.MOCK_UPLOAD_FILE)


@pytest.fixture
def mock_attachment():
    """Registered attachment record."""
    return AttachmentRecord.model_validate(linear_responses.MOCK_ATTACHMENT_1)


@pytest.fixture
def mock_linear_client(mock_upload_target, mock_attachment):
    """Mock Linear client whose upload stages all succeed."""
    client = MagicMock(spec=LinearClient)
    client.request_upload_target.return_value = mock_upload_target
    client.register_attachment.return_value = mock_attachment
    client.update_attachment_metadata.return_value = mock_attachment
    client.delete_attachment.return_value = True
    client.list_attachments.return_value = [mock_attachment]
    return client


@pytest.fixture
def mock_transfer():
    """Mock transfer executor that succeeds on the first attempt."""
    transfer = Mock(spec=TransferExecutor)
    transfer.transfer.return_value = 1
    return transfer


@pytest.fixture
def make_file(tmp_path):
    """Factory creating a file of a given size under tmp_path.

    Large sizes are created sparse, so they are cheap.
    """
    def _make_file(name: str = "report.txt", size: int = 1024, content: bytes = None) -> Path:
        path = tmp_path / name
        with open(path, "wb") as handle:
            if content is not None:
                handle.write(content)
            else:
                handle.truncate(size)
        return path
    return _make_file


@pytest.fixture
def make_request(make_file):
    """Factory creating a file and the FileAttachmentRequest for it."""
    def _make_request(name: str = "report.txt", size: int = 1024, title: str = None, **kwargs) -> FileAttachmentRequest:
        path = make_file(name, size)
        return FileAttachmentRequest(path=path, title=title or f"Title for {name}", **kwargs)
    return _make_request


@pytest.fixture(autouse=True)
def reset_environment_for_tests(monkeypatch):
    """Reset environment variables for each test.

    This fixture automatically runs before each test to ensure
    a clean environment state.
    """
    monkeypatch.setenv("LINEAR_API_KEY", "lin_api_test_key")
    monkeypatch.delenv("LINEAR_ACCESS_TOKEN", raising=False)
    monkeypatch.setenv("LINEAR_API_URL", "https://linear.test.example.com/graphql")
    monkeypatch.delenv("LINEAR_VERIFY_SSL", raising=False)
