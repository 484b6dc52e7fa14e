"""
MockTap Exceptions

Error types raised while declaring mocks, installing the interceptor and
matching intercepted requests.
"""

from typing import Dict, List, Optional, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from .mock.matcher import MatchError


class MockTapError(Exception):
    """Base class for all MockTap errors."""


class MockConfigurationError(MockTapError, ValueError):
    """A mock or configuration was declared with invalid values."""


class InterceptorInstallError(MockTapError, RuntimeError):
    """The interceptor could not be installed."""


class UnmatchedMockError(MockTapError, requests.exceptions.ConnectionError):
    """
    No declared mock matched an intercepted request.

    Collects the mismatches of every evaluated mock, keyed by the mock's
    1-based registration position. Raised from the transport, so the
    system-under-test sees it as a failed network call.

    Example:
        try:
            session.get('https://api.example.com/user')
        except requests.RequestException as e:
            print(e)
            # received request did not match any mocks
            #
            # Mock 1 mismatches:
            # • received method POST did not match mock method GET
    """

    HEADLINE = "received request did not match any mocks"

    def __init__(self, request: Optional[requests.PreparedRequest] = None):
        super().__init__(self.HEADLINE, request=request)
        self.errors: Dict[int, List['MatchError']] = {}
        self.exhausted: List[int] = []

    def add_errors(self, mock_number: int, *errors: 'MatchError') -> 'UnmatchedMockError':
        """Append mismatches for the mock at the given 1-based position."""
        self.errors.setdefault(mock_number, []).extend(errors)
        return self

    def add_exhausted(self, mock_number: int) -> 'UnmatchedMockError':
        """Record a mock that was skipped because it has no remaining uses."""
        self.exhausted.append(mock_number)
        return self

    def ordered_mock_numbers(self) -> List[int]:
        return sorted(self.errors)

    def __str__(self) -> str:
        lines = [self.HEADLINE, '']
        for mock_number in self.ordered_mock_numbers():
            lines.append(f"Mock {mock_number} mismatches:")
            for error in self.errors[mock_number]:
                lines.append(f"• {error}")
            lines.append('')
        if self.exhausted:
            numbers = ', '.join(str(n) for n in sorted(self.exhausted))
            lines.append(f"Exhausted mocks (no remaining uses): {numbers}")
            lines.append('')
        return '\n'.join(lines) + '\n'
