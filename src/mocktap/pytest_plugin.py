"""
MockTap pytest plugin

Provides the `mocktap` fixture, which installs interceptors for a test and
always restores the original transports at teardown.
"""

from typing import Iterable, List, Optional

import pytest
import requests

from .config import InterceptorConfig
from .mock.mocks import Mock
from .mock.transport import InterceptorHandle, Observer, install_interceptor


class MockTapFixture:
    """Installs interceptors and tracks them for release at test teardown."""

    def __init__(self, config: Optional[InterceptorConfig] = None):
        self.config = config
        self.handles: List[InterceptorHandle] = []

    def install(
        self,
        *mocks: Mock,
        client: Optional[requests.Session] = None,
        observer: Optional[Observer] = None,
        debug: bool = False,
    ) -> InterceptorHandle:
        """Install mocks onto a session (or the process-wide default)."""
        handle = install_interceptor(mocks, client=client, observer=observer, debug=debug, config=self.config)
        self.handles.append(handle)
        return handle

    def pending_mocks(self) -> List[Mock]:
        return [m for handle in self.handles for m in handle.pending_mocks()]

    def assert_all_mocks_called(self) -> None:
        """Fail if any installed mock still has remaining uses."""
        pending = self.pending_mocks()
        assert not pending, f"Mocks not called as expected: {pending}"

    def release_all(self, handles: Optional[Iterable[InterceptorHandle]] = None) -> None:
        # Reverse order so nested process-wide installs unwind correctly
        for handle in reversed(list(handles if handles is not None else self.handles)):
            handle.release()


def pytest_configure(config):
    """Configure the pytest plugin."""
    config.addinivalue_line(
        "markers",
        "mocktap: mark test as using MockTap HTTP mocks"
    )


@pytest.fixture
def mocktap():
    """Fixture that installs MockTap interceptors and releases them after the test."""
    fixture = MockTapFixture(config=InterceptorConfig.from_env())
    yield fixture
    fixture.release_all()
