"""
MockTap Mock Registry

Ordered collection of declared mocks with thread-safe find-and-consume.

Mocks are evaluated in registration order and the first mock whose every
matcher passes wins; there is no best-match scoring. Each successful match
uses up one of the mock's remaining uses. When nothing matches, a single
UnmatchedMockError explains why each evaluated mock was rejected.
"""

import logging
import threading
from typing import Iterable, List

import requests

from ..exceptions import UnmatchedMockError
from .matcher import MatchError, run_matcher
from .mocks import Mock, MockResponse


logger = logging.getLogger("mocktap.registry")


def match_errors(request: requests.PreparedRequest, mock: Mock) -> List[MatchError]:
    """
    Run a mock's whole matcher pipeline against a request.

    Every matcher runs, so all mismatching attributes are reported.

    Args:
        request: Intercepted request
        mock: Mock to evaluate

    Returns:
        List of mismatches, empty when the mock matches
    """
    errors = []
    for matcher in mock.request.matchers:
        error = run_matcher(matcher, request, mock.request)
        if error is not None:
            errors.append(error)
    return errors


class MockRegistry:
    """
    Registry of mocks shared by every request intercepted during a test.

    Example:
        registry = MockRegistry([user_mock, orders_mock])
        template = registry.find_and_consume(prepared_request)
    """

    def __init__(self, mocks: Iterable[Mock] = ()):
        self._mocks: List[Mock] = list(mocks)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._mocks)

    @property
    def mocks(self) -> List[Mock]:
        return list(self._mocks)

    def add(self, *mocks: Mock) -> 'MockRegistry':
        with self._lock:
            self._mocks.extend(mocks)
        return self

    def pending(self) -> List[Mock]:
        """Mocks that still have remaining uses."""
        with self._lock:
            return [m for m in self._mocks if not m.is_exhausted()]

    def find_and_consume(self, request: requests.PreparedRequest) -> MockResponse:
        """
        Find the first eligible mock matching the request and use it once.

        Args:
            request: Intercepted request

        Returns:
            Response template of the matched mock

        Raises:
            UnmatchedMockError: If no eligible mock matched
        """
        with self._lock:
            unmatched = UnmatchedMockError(request)
            for mock_number, mock in enumerate(self._mocks, 1):
                if mock.is_exhausted():
                    unmatched.add_exhausted(mock_number)
                    continue

                errors = match_errors(request, mock)
                if not errors:
                    template = mock.consume()
                    logger.debug(
                        f"Matched mock {mock_number} for {request.method} {request.url} "
                        f"({mock.remaining_uses} uses left)"
                    )
                    return template

                unmatched.add_errors(mock_number, *errors)

        logger.warning(f"No mock matched {request.method} {request.url}")
        raise unmatched
