"""Integration fixtures - keep the real Linear credentials."""
import pytest


@pytest.fixture(autouse=True)
def reset_environment_for_tests():
    """Replaces the root autouse fixture, which would swap LINEAR_API_KEY
    and LINEAR_API_URL for test values."""
