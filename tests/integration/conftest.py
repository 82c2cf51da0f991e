"""Fixtures for integration tests using respx mocking."""

import random

import pytest


# =============================================================================
# Input Streams
# =============================================================================


@pytest.fixture
def random_chunks() -> list[bytes]:
    """Irregular chunk sizes, including empty chunks, from a fixed seed."""
    rng = random.Random(7)
    return [bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 37))) for _ in range(40)]


# =============================================================================
# Gateway Mock Responses
# =============================================================================


@pytest.fixture
def mock_create_response() -> dict:
    """Mock response for the create action."""
    return {"uploadId": "upload-id", "key": "videos/clip.bin"}


@pytest.fixture
def mock_complete_response() -> dict:
    """Mock response for the complete action."""
    return {
        "url": "https://files.example.com/media/videos/clip.bin",
        "etag": '"abc123-2"',
        "size": 20,
    }


# =============================================================================
# Error Response Fixtures
# =============================================================================


@pytest.fixture
def mock_error_unauthorized() -> dict:
    """Mock 401 Unauthorized error response."""
    return {
        "error": {
            "code": "unauthorized",
            "message": "Authentication required.",
        }
    }


@pytest.fixture
def mock_error_server_error() -> dict:
    """Mock 500 Internal Server Error response."""
    return {
        "error": {
            "code": "internal_server_error",
            "message": "An unexpected error occurred.",
        }
    }
