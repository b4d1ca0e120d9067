"""Linear Client

GraphQL client for the Linear API, scoped to the attachment operations:
- fileUpload (pre-signed upload target)
- attachmentCreate / attachmentUpdate / attachmentDelete
- issue attachment listing
Standardized error handling maps HTTP and GraphQL failures onto the
LinearError hierarchy.
"""

import logging
from typing import Optional, Any, Dict, List

import requests
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_exception_type

from . import __version__
from .models.attachment import (
    AttachmentCreate,
    AttachmentRecord,
    AttachmentUpdate,
    UploadTarget,
)
from .utils.errors import (
    LinearError,
    GraphQLError,
    NetworkError,
    NotFoundError,
    ValidationError,
    handle_http_error,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.linear.app/graphql"

# Timeout for GraphQL calls; file bodies go through TransferExecutor
REQUEST_TIMEOUT = 30

ATTACHMENT_FIELDS = """
    id
    title
    subtitle
    url
    metadata
    createdAt
    creator { id name email }
"""

FILE_UPLOAD_MUTATION = """
mutation FileUpload($contentType: String!, $filename: String!, $size: Int!) {
  fileUpload(contentType: $contentType, filename: $filename, size: $size) {
    success
    uploadFile {
      uploadUrl
      assetUrl
      headers { key value }
    }
  }
}
"""

ATTACHMENT_CREATE_MUTATION = """
mutation AttachmentCreate($input: AttachmentCreateInput!) {
  attachmentCreate(input: $input) {
    success
    attachment { %s }
  }
}
""" % ATTACHMENT_FIELDS

ATTACHMENT_UPDATE_MUTATION = """
mutation AttachmentUpdate($id: String!, $input: AttachmentUpdateInput!) {
  attachmentUpdate(id: $id, input: $input) {
    success
    attachment { %s }
  }
}
""" % ATTACHMENT_FIELDS

ATTACHMENT_DELETE_MUTATION = """
mutation AttachmentDelete($id: String!) {
  attachmentDelete(id: $id) {
    success
  }
}
"""

LIST_ATTACHMENTS_QUERY = """
query ListAttachments($issueId: String!, $first: Int, $after: String, $orderBy: PaginationOrderBy) {
  issue(id: $issueId) {
    id
    attachments(first: $first, after: $after, orderBy: $orderBy) {
      nodes { %s }
    }
  }
}
""" % ATTACHMENT_FIELDS

ORDER_BY = {
    "created": "createdAt",
    "createdAt": "createdAt",
    "updated": "updatedAt",
    "updatedAt": "updatedAt",
}


class LinearClient:
    """Linear GraphQL client authenticated with an API key or OAuth token."""

    def __init__(
        self,
        auth_header: str,
        api_url: str = DEFAULT_API_URL,
        verify_ssl: bool = True,
        timeout: float = REQUEST_TIMEOUT
    ):
        """Initialize Linear client.

        Args:
            auth_header: Value of the Authorization header (API key, or
                ``Bearer <token>``)
            api_url: GraphQL endpoint (default: https://api.linear.app/graphql)
            verify_ssl: Whether to verify SSL certificates (default: True)
            timeout: Request timeout in seconds (default: 30)
        """
        self.api_url = api_url
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': auth_header,
            'Content-Type': 'application/json',
            'User-Agent': f'lincli/{__version__}'
        })
        logger.info(f"Initialized Linear client for {api_url} (SSL verify: {verify_ssl})")

    def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a GraphQL operation and return its ``data`` object.

        Raises:
            LinearError: Subclass matching the HTTP status on non-200
            GraphQLError: If the response carries GraphQL errors
            NetworkError: If the request never got a response
        """
        body: Dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables

        try:
            response = self.session.post(
                self.api_url,
                json=body,
                timeout=self.timeout,
                verify=self.verify_ssl
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling {self.api_url}: {e}")
            raise NetworkError(f"Network error: {e}", details={"api_url": self.api_url}) from e

        if response.status_code != 200:
            raise handle_http_error(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise LinearError(f"Failed to parse response: {e}", details={"response": response.text})

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(error.get("message", str(error)) for error in errors)
            raise GraphQLError(f"GraphQL errors: {messages}", details={"errors": errors})

        return payload.get("data") or {}

    @retry(
        stop=stop_after_attempt(2),  # Original attempt + 1 retry = 2 total
        wait=wait_fixed(2),
        retry=retry_if_exception_type(NetworkError),
        reraise=True
    )
    def request_upload_target(self, content_type: str, filename: str, size: int) -> UploadTarget:
        """Request a pre-signed upload target for one file.

        Args:
            content_type: MIME type of the file
            filename: Base name of the file
            size: File size in bytes

        Returns:
            Upload URL, asset URL and the headers the PUT must carry
        """
        logger.info(f"Requesting upload target: filename='{filename}', size={size}, type={content_type}")
        data = self._execute(FILE_UPLOAD_MUTATION, {
            "contentType": content_type,
            "filename": filename,
            "size": size
        })

        payload = data.get("fileUpload") or {}
        upload_file = payload.get("uploadFile")
        if not payload.get("success") or not upload_file:
            raise LinearError(
                "fileUpload did not return an upload target",
                details={"filename": filename}
            )
        return UploadTarget.model_validate(upload_file)

    def register_attachment(
        self,
        issue_id: str,
        title: str,
        url: str,
        subtitle: Optional[str] = None,
        icon_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AttachmentRecord:
        """Create an attachment on an issue.

        Used both for uploaded files (``url`` is the asset URL) and for
        plain URL attachments.

        Raises:
            LinearError: If the mutation fails or reports success=false
        """
        attachment_input = AttachmentCreate(
            issueId=issue_id,
            title=title,
            url=url,
            subtitle=subtitle or None,
            iconUrl=icon_url or None,
            metadata=metadata or None
        )
        logger.info(f"Creating attachment: issue={issue_id}, title='{title}'")
        data = self._execute(ATTACHMENT_CREATE_MUTATION, {"input": attachment_input.to_input()})

        payload = data.get("attachmentCreate") or {}
        if not payload.get("success") or not payload.get("attachment"):
            raise LinearError("attachment creation failed", details={"issue_id": issue_id})

        record = AttachmentRecord.model_validate(payload["attachment"])
        logger.info(f"Created attachment {record.id} on {issue_id}")
        return record

    def update_attachment_metadata(
        self,
        attachment_id: str,
        title: str,
        subtitle: Optional[str] = None,
        icon_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AttachmentRecord:
        """Update an attachment's title, subtitle, icon or metadata.

        Fields left as None are not sent. The URL cannot be changed.
        """
        update = AttachmentUpdate(
            title=title,
            subtitle=subtitle,
            iconUrl=icon_url,
            metadata=metadata
        )
        logger.info(f"Updating attachment {attachment_id}: fields={list(update.to_input().keys())}")
        data = self._execute(ATTACHMENT_UPDATE_MUTATION, {
            "id": attachment_id,
            "input": update.to_input()
        })

        payload = data.get("attachmentUpdate") or {}
        if not payload.get("success") or not payload.get("attachment"):
            raise LinearError("attachment update failed", details={"attachment_id": attachment_id})
        return AttachmentRecord.model_validate(payload["attachment"])

    def delete_attachment(self, attachment_id: str) -> bool:
        """Delete an attachment. Cannot be undone."""
        logger.info(f"Deleting attachment {attachment_id}")
        data = self._execute(ATTACHMENT_DELETE_MUTATION, {"id": attachment_id})

        payload = data.get("attachmentDelete") or {}
        if not payload.get("success"):
            raise LinearError("attachment deletion failed", details={"attachment_id": attachment_id})
        return True

    def list_attachments(
        self,
        issue_id: str,
        limit: Optional[int] = 50,
        order_by: Optional[str] = None
    ) -> List[AttachmentRecord]:
        """List attachments (files and URLs) on an issue.

        Args:
            issue_id: Issue ID or identifier
            limit: Maximum number of attachments (None for server default)
            order_by: "created", "updated", or None/"linear" for Linear's order

        Raises:
            ValidationError: On an unknown sort order
            NotFoundError: If the issue doesn't exist
        """
        variables: Dict[str, Any] = {"issueId": issue_id}
        if limit and limit > 0:
            variables["first"] = limit
        if order_by and order_by != "linear":
            if order_by not in ORDER_BY:
                raise ValidationError(
                    f"Invalid sort option: {order_by}. Valid options are: linear, created, updated",
                    details={"order_by": order_by}
                )
            variables["orderBy"] = ORDER_BY[order_by]

        data = self._execute(LIST_ATTACHMENTS_QUERY, variables)
        issue = data.get("issue")
        if not issue:
            raise NotFoundError(f"Issue {issue_id} not found", details={"issue_id": issue_id})

        nodes = (issue.get("attachments") or {}).get("nodes") or []
        return [AttachmentRecord.model_validate(node) for node in nodes]
