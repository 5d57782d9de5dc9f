"""Pytest configuration and fixtures for unit tests."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from img2prompt.main import create_app


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for a fresh app instance."""
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
