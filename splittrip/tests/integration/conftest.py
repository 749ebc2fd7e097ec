"""
tests/integration/conftest.py — Fixtures for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - The API is stateless (roster and expenses travel in the request body),
    so there is no database to create or clean between tests.
  - Each test gets a fresh Flask test client.
"""

from __future__ import annotations

import pytest

from splittrip.app import create_app


@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the session."""
    return create_app("testing")


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()
