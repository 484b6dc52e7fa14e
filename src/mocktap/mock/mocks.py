"""
MockTap Mock Builder

Fluent declaration of expected outbound HTTP calls and the responses to
synthesize for them.

Example:
    user_mock = (
        mock()
        .get('https://api.example.com/user')
        .header('Authorization', 'Bearer token')
        .query('id', '123')
        .respond_with()
        .status(200)
        .body_json({'id': 123, 'name': 'John Doe'})
        .times(2)
        .end()
    )
"""

import json
from re import Pattern
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

import requests

from ..common import URLParts, canonical_header_key
from ..exceptions import MockConfigurationError
from .cookies import Cookie
from .matcher import DEFAULT_MATCHERS, Matcher


def _parse_url(url: str) -> URLParts:
    """Parse a mock URL, failing fast on malformed input."""
    if not isinstance(url, str):
        raise MockConfigurationError(f"Mock URL must be a string, got {type(url).__name__}")
    if any(ch.isspace() for ch in url.strip()) or any(ord(ch) < 0x20 for ch in url):
        raise MockConfigurationError(f"Invalid mock URL {url!r}: contains whitespace or control characters")
    try:
        parts = URLParts(url)
        # Accessing the port validates it
        urlsplit(url).port
    except ValueError as e:
        raise MockConfigurationError(f"Invalid mock URL {url!r}: {e}") from e
    return parts


class Mock:
    """
    A declared outbound call paired with the response to synthesize for it.

    Do not instantiate with a URL directly; use mock() and the method helpers.
    """

    def __init__(self) -> None:
        self.request = MockRequest(self)
        self.response = MockResponse(self)
        self._http_client: Optional[requests.Session] = None
        self._debug = False

    def __repr__(self) -> str:
        url = self.request.raw_url or '*'
        method = self.request.http_method or '*'
        return f"<Mock {method} {url} remaining={self.remaining_uses}>"

    @property
    def remaining_uses(self) -> int:
        return self.response.remaining_uses

    def is_exhausted(self) -> bool:
        return self.response.remaining_uses <= 0

    def consume(self) -> 'MockResponse':
        """Use the mock once. Callers must hold the registry lock."""
        self.response.remaining_uses -= 1
        return self.response

    def debug(self) -> 'Mock':
        """Dump intercepted traffic when installed with end_standalone()."""
        self._debug = True
        return self

    def http_client(self, client: requests.Session) -> 'Mock':
        """Install onto the given session instead of the process-wide default."""
        self._http_client = client
        return self

    def get(self, url: str) -> 'MockRequest':
        return self._declare('GET', url)

    def put(self, url: str) -> 'MockRequest':
        return self._declare('PUT', url)

    def post(self, url: str) -> 'MockRequest':
        return self._declare('POST', url)

    def delete(self, url: str) -> 'MockRequest':
        return self._declare('DELETE', url)

    def patch(self, url: str) -> 'MockRequest':
        return self._declare('PATCH', url)

    def head(self, url: str) -> 'MockRequest':
        return self._declare('HEAD', url)

    def options(self, url: str) -> 'MockRequest':
        return self._declare('OPTIONS', url)

    def method(self, method: str) -> 'MockRequest':
        """Set only the HTTP method, leaving the URL undeclared."""
        self.request.http_method = method.upper()
        return self.request

    def url(self, url: str) -> 'MockRequest':
        """Set only the URL, matching any method."""
        self.request.set_url(url)
        return self.request

    def _declare(self, method: str, url: str) -> 'MockRequest':
        self.request.set_url(url)
        self.request.http_method = method
        return self.request


class MockRequest:
    """Match specification of a mock. Undeclared attributes match anything."""

    def __init__(self, mock: Mock):
        self.mock = mock
        self.raw_url = ''
        self.url = URLParts('')
        self.http_method = ''
        self.expected_headers: Dict[str, List[str]] = {}
        self.present_headers: List[str] = []
        self.absent_headers: List[str] = []
        self.expected_query: Dict[str, List[str]] = {}
        self.present_query: List[str] = []
        self.absent_query: List[str] = []
        self.expected_form: Dict[str, List[str]] = {}
        self.present_form: List[str] = []
        self.absent_form: List[str] = []
        self.body_text = ''
        self.expected_cookies: List[Cookie] = []
        self.present_cookies: List[str] = []
        self.absent_cookies: List[str] = []
        self.matchers: List[Matcher] = list(DEFAULT_MATCHERS)

    def set_url(self, url: str) -> 'MockRequest':
        """
        Set the target URL. Query parameters in the URL become declared query values.

        Raises:
            MockConfigurationError: If the URL cannot be parsed
        """
        self.url = _parse_url(url)
        self.raw_url = url
        for key, values in self.url.query.items():
            self.expected_query.setdefault(key, []).extend(values)
        return self

    def header(self, key: str, value: str) -> 'MockRequest':
        self.expected_headers.setdefault(canonical_header_key(key), []).append(value)
        return self

    def headers(self, headers: Dict[str, str]) -> 'MockRequest':
        for key, value in headers.items():
            self.header(key, value)
        return self

    def header_present(self, key: str) -> 'MockRequest':
        self.present_headers.append(canonical_header_key(key))
        return self

    def header_not_present(self, key: str) -> 'MockRequest':
        self.absent_headers.append(canonical_header_key(key))
        return self

    def query(self, key: str, value: str) -> 'MockRequest':
        self.expected_query.setdefault(key, []).append(value)
        return self

    def query_params(self, params: Dict[str, str]) -> 'MockRequest':
        for key, value in params.items():
            self.query(key, value)
        return self

    def query_collection(self, params: Dict[str, List[str]]) -> 'MockRequest':
        """Declare several values per query key at once."""
        for key, values in params.items():
            self.expected_query.setdefault(key, []).extend(values)
        return self

    def query_present(self, key: str) -> 'MockRequest':
        self.present_query.append(key)
        return self

    def query_not_present(self, key: str) -> 'MockRequest':
        self.absent_query.append(key)
        return self

    def form_data(self, key: str, *values: str) -> 'MockRequest':
        self.expected_form.setdefault(key, []).extend(values)
        return self

    def form_data_present(self, key: str) -> 'MockRequest':
        self.present_form.append(key)
        return self

    def form_data_not_present(self, key: str) -> 'MockRequest':
        self.absent_form.append(key)
        return self

    def body(self, body: str) -> 'MockRequest':
        """Expect a body: exact text, a regular expression, or a JSON document."""
        self.body_text = body
        return self

    def body_json(self, value: Any) -> 'MockRequest':
        """Expect a JSON body structurally equal to value."""
        self.body_text = json.dumps(value)
        return self

    def body_regexp(self, pattern: Union[str, Pattern]) -> 'MockRequest':
        self.body_text = pattern.pattern if isinstance(pattern, Pattern) else pattern
        return self

    def cookie(self, name: str, value: str) -> 'MockRequest':
        self.expected_cookies.append(Cookie(name).value(value))
        return self

    def cookies(self, *cookies: Cookie) -> 'MockRequest':
        self.expected_cookies.extend(cookies)
        return self

    def cookie_present(self, name: str) -> 'MockRequest':
        self.present_cookies.append(name)
        return self

    def cookie_not_present(self, name: str) -> 'MockRequest':
        self.absent_cookies.append(name)
        return self

    def add_matcher(self, matcher: Matcher) -> 'MockRequest':
        """Append a custom matcher, run after the default ones."""
        self.matchers.append(matcher)
        return self

    def respond_with(self) -> 'MockResponse':
        return self.mock.response


class MockResponse:
    """Response template synthesized when the owning mock matches."""

    def __init__(self, mock: Mock):
        self.mock = mock
        self.status_code = 200
        self.header_values: Dict[str, List[str]] = {}
        self.cookie_values: List[Cookie] = []
        self.body_text = ''
        self.remaining_uses = 1
        self.delay_seconds = 0.0

    def status(self, status_code: int) -> 'MockResponse':
        if not 100 <= int(status_code) <= 599:
            raise MockConfigurationError(f"Invalid status code: {status_code}")
        self.status_code = int(status_code)
        return self

    def header(self, key: str, value: str) -> 'MockResponse':
        self.header_values.setdefault(canonical_header_key(key), []).append(value)
        return self

    def headers(self, headers: Dict[str, str]) -> 'MockResponse':
        for key, value in headers.items():
            self.header(key, value)
        return self

    def cookie(self, name: str, value: str) -> 'MockResponse':
        self.cookie_values.append(Cookie(name).value(value))
        return self

    def cookies(self, *cookies: Cookie) -> 'MockResponse':
        self.cookie_values.extend(cookies)
        return self

    def body(self, body: str) -> 'MockResponse':
        self.body_text = body
        return self

    def body_json(self, value: Any) -> 'MockResponse':
        self.body_text = json.dumps(value)
        return self

    def times(self, times: int) -> 'MockResponse':
        """Allow the mock to be matched this many times (default 1)."""
        if times < 0:
            raise MockConfigurationError(f"Mock times must not be negative, got {times}")
        self.remaining_uses = times
        return self

    def delay(self, seconds: float) -> 'MockResponse':
        """Wait this long before returning the response."""
        if seconds < 0:
            raise MockConfigurationError(f"Mock delay must not be negative, got {seconds}")
        self.delay_seconds = float(seconds)
        return self

    def end(self) -> Mock:
        return self.mock

    def end_standalone(self, *others: Mock) -> Callable[[], None]:
        """
        Install this mock (and others) immediately, outside any test harness.

        Returns:
            Callable restoring the original transport
        """
        from .transport import install_interceptor

        handle = install_interceptor(
            [self.mock, *others],
            client=self.mock._http_client,
            debug=self.mock._debug,
        )
        return handle.release


def mock() -> Mock:
    """Begin declaring a mock."""
    return Mock()
