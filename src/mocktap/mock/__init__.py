"""
MockTap Mock Module

In-process HTTP mocking for requests-based code under test.

This module provides:
- Fluent mock declaration (mock().get(...).respond_with()...end())
- Request matcher pipeline with diagnostic mismatch reasons
- Thread-safe mock registry with per-mock remaining uses
- Response synthesis with content-type inference
- Transport interceptor installed per session or process-wide
"""

from .cookies import Cookie, compare_cookies
from .matcher import MatchError, Matcher, DEFAULT_MATCHERS
from .mocks import Mock, MockRequest, MockResponse, mock
from .registry import MockRegistry
from .generator import ResponseGenerator
from .transport import (
    InterceptedExchange,
    InterceptorHandle,
    MockTransport,
    StandaloneMocks,
    install_interceptor,
)
from .definitions import load_mocks, mock_from_dict, mocks_from_dict

__all__ = [
    # Builder
    'mock',
    'Mock',
    'MockRequest',
    'MockResponse',
    'Cookie',

    # Matching
    'MatchError',
    'Matcher',
    'DEFAULT_MATCHERS',
    'compare_cookies',
    'MockRegistry',

    # Response
    'ResponseGenerator',

    # Transport
    'MockTransport',
    'InterceptedExchange',
    'InterceptorHandle',
    'StandaloneMocks',
    'install_interceptor',

    # Definitions
    'load_mocks',
    'mock_from_dict',
    'mocks_from_dict',
]
