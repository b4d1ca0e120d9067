"""Linear credential lookup.

Credentials come from the environment:
- LINEAR_API_KEY: personal API key, sent as-is in the Authorization header
- LINEAR_ACCESS_TOKEN: OAuth access token, sent as ``Bearer <token>``
"""
import logging
import os
from typing import Optional

from .utils.errors import CredentialsError

logger = logging.getLogger(__name__)


def get_api_key() -> Optional[str]:
    """Return the personal API key, if configured."""
    key = os.environ.get("LINEAR_API_KEY", "").strip()
    return key or None


def get_bearer_token() -> Optional[str]:
    """Return the OAuth access token, if configured."""
    token = os.environ.get("LINEAR_ACCESS_TOKEN", "").strip()
    return token or None


def get_auth_header() -> str:
    """Build the Authorization header value.

    The API key wins when both are set.

    Raises:
        CredentialsError: If neither variable is set
    """
    api_key = get_api_key()
    if api_key:
        logger.debug("Using LINEAR_API_KEY for authentication")
        return api_key

    token = get_bearer_token()
    if token:
        logger.debug("Using LINEAR_ACCESS_TOKEN for authentication")
        return f"Bearer {token}"

    raise CredentialsError(
        "Not authenticated. Set LINEAR_API_KEY (personal API key) "
        "or LINEAR_ACCESS_TOKEN (OAuth token)."
    )
