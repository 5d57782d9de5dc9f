"""Pytest configuration and fixtures for integration tests."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from img2prompt.main import create_app


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def submit(client, test_image):
    """Post the session test image to the task API and return the JSON body."""

    def _submit(style_preference="flux"):
        response = client.post(
            "/api/v1/tasks",
            files={"image": ("photo.jpg", test_image, "image/jpeg")},
            data={"style_preference": style_preference},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _submit
