"""Pytest fixtures for API v1 tests."""

from io import BytesIO

import pytest


@pytest.fixture
def image_upload(test_image):
    """Multipart ``files`` argument carrying a JPEG under the ``image`` field."""
    return {"image": ("photo.jpg", BytesIO(test_image), "image/jpeg")}
