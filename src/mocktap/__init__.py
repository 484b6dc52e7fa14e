"""
MockTap

Declare the outbound HTTP calls a system-under-test will make and answer
them with synthetic responses instead of the network.
"""

from .config import InterceptorConfig
from .exceptions import (
    MockTapError,
    MockConfigurationError,
    InterceptorInstallError,
    UnmatchedMockError,
)
from .mock import (
    Cookie,
    DEFAULT_MATCHERS,
    InterceptedExchange,
    InterceptorHandle,
    MatchError,
    Mock,
    MockRegistry,
    MockRequest,
    MockResponse,
    MockTransport,
    ResponseGenerator,
    StandaloneMocks,
    install_interceptor,
    load_mocks,
    mock,
)

__all__ = [
    'mock',
    'Mock',
    'MockRequest',
    'MockResponse',
    'Cookie',
    'MatchError',
    'DEFAULT_MATCHERS',
    'MockRegistry',
    'ResponseGenerator',
    'MockTransport',
    'InterceptedExchange',
    'InterceptorHandle',
    'StandaloneMocks',
    'install_interceptor',
    'load_mocks',
    'InterceptorConfig',
    'MockTapError',
    'MockConfigurationError',
    'InterceptorInstallError',
    'UnmatchedMockError',
]

__version__ = '1.0.0'
