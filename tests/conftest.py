"""Shared fixtures for MockTap tests."""

import pytest
import requests

from mocktap.pytest_plugin import mocktap  # noqa: F401  load the mocktap fixture


@pytest.fixture
def session():
    """Dedicated requests session, closed after the test."""
    with requests.Session() as s:
        yield s
