"""
MockTap Request Matchers

Ordered pipeline of single-attribute predicates used to test an intercepted
request against a mock's request specification.

Each matcher receives the actual request (a requests.PreparedRequest) and the
MockRequest spec, and returns None when the attribute matched or a MatchError
describing the mismatch. Undeclared attributes always match.

Features:
- Path, host, scheme and method matching (exact, then regex for path/host)
- Header, query and form field matching (any declared value, exact or regex)
- Presence/absence checks for headers, query params, form fields and cookies
- Cookie matching via the field-by-field comparator
- Body matching: exact, then regex, then structural JSON equality
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING, Union

import requests

from ..common import (
    URLParts,
    any_value_matches,
    format_multi_dict,
    matches_pattern,
    parse_cookie_header,
    parse_form,
    peek_body,
)
from .cookies import compare_cookies, received_cookie

if TYPE_CHECKING:
    from .mocks import MockRequest


@dataclass(frozen=True)
class MatchError:
    """Why one attribute of a request did not match a mock."""

    matcher: str
    message: str

    def __str__(self) -> str:
        return self.message


MatchOutcome = Union[MatchError, str, None]
Matcher = Callable[[requests.PreparedRequest, 'MockRequest'], MatchOutcome]


def run_matcher(matcher: Matcher, request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    """
    Run a matcher and normalize its outcome to a MatchError.

    Custom matchers may return a plain string (or any truthy value) instead
    of a MatchError; it is wrapped under the matcher's name.
    """
    outcome = matcher(request, spec)
    if not outcome:
        return None
    if isinstance(outcome, MatchError):
        return outcome
    name = getattr(matcher, '__name__', type(matcher).__name__)
    return MatchError(name, str(outcome))


def path_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    received = URLParts(request.url).path
    expected = spec.url.path
    if not expected or matches_pattern(expected, received):
        return None
    return MatchError('path', f"received path {received} did not match mock path {expected}")


def host_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    expected = spec.url.host
    if not expected:
        return None
    received = URLParts(request.url).host or request.headers.get('Host', '')
    if matches_pattern(expected, received):
        return None
    return MatchError('host', f"received host {received} did not match mock host {expected}")


def scheme_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    expected = spec.url.scheme
    received = URLParts(request.url).scheme
    if not expected or not received or expected == received:
        return None
    return MatchError('scheme', f"received scheme {received} did not match mock scheme {expected}")


def method_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    expected = spec.http_method
    received = (request.method or '').upper()
    if not expected or expected.upper() == received:
        return None
    return MatchError('method', f"received method {received} did not match mock method {expected}")


def _values_matcher(
    name: str,
    label: str,
    expected: Dict[str, List[str]],
    received: Dict[str, List[str]],
) -> Optional[MatchError]:
    failed = {
        key: values for key, values in expected.items()
        if not any_value_matches(values, received.get(key, []))
    }
    if not failed:
        return None
    actual = {key: received.get(key, []) for key in failed}
    return MatchError(
        name,
        f"received {label} {format_multi_dict(actual)} did not match expected mock {label} {format_multi_dict(failed)}"
    )


def header_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.expected_headers:
        return None
    received = {}
    for key in spec.expected_headers:
        value = request.headers.get(key)
        received[key] = [value] if value is not None else []
    return _values_matcher('headers', 'headers', spec.expected_headers, received)


def header_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    for header in spec.present_headers:
        if header not in request.headers:
            return MatchError('header_present', f"expected header '{header}' was not present")
    return None


def header_not_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    for header in spec.absent_headers:
        if header in request.headers:
            return MatchError('header_not_present', f"unexpected header '{header}' was present")
    return None


def query_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.expected_query:
        return None
    return _values_matcher('query', 'query params', spec.expected_query, URLParts(request.url).query)


def query_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.present_query:
        return None
    received = URLParts(request.url).query
    for key in spec.present_query:
        if key not in received:
            return MatchError('query_present', f"expected query param {key} not received")
    return None


def query_not_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.absent_query:
        return None
    received = URLParts(request.url).query
    for key in spec.absent_query:
        if key in received:
            return MatchError('query_not_present', f"unexpected query param '{key}' present")
    return None


def form_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.expected_form:
        return None
    return _values_matcher('form', 'form data', spec.expected_form, parse_form(peek_body(request)))


def form_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.present_form:
        return None
    received = parse_form(peek_body(request))
    for key in spec.present_form:
        if key not in received:
            return MatchError('form_present', f"expected form data field {key} not received")
    return None


def form_not_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.absent_form:
        return None
    received = parse_form(peek_body(request))
    for key in spec.absent_form:
        if key in received:
            return MatchError('form_not_present', f"unexpected form data field '{key}' present")
    return None


def cookie_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.expected_cookies:
        return None
    received = parse_cookie_header(request.headers.get('Cookie', ''))
    for expected in spec.expected_cookies:
        if expected.name not in received:
            return MatchError('cookies', f"expected cookie with name '{expected.name}' not received")
        _, mismatches = compare_cookies(expected, received_cookie(expected.name, received[expected.name]))
        if mismatches:
            return MatchError('cookies', f"failed to match cookie: [{'; '.join(mismatches)}]")
    return None


def cookie_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.present_cookies:
        return None
    received = parse_cookie_header(request.headers.get('Cookie', ''))
    for name in spec.present_cookies:
        if name not in received:
            return MatchError('cookie_present', f"expected cookie with name '{name}' not received")
    return None


def cookie_not_present_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    if not spec.absent_cookies:
        return None
    received = parse_cookie_header(request.headers.get('Cookie', ''))
    for name in spec.absent_cookies:
        if name in received:
            return MatchError('cookie_not_present', f"did not expect a cookie with name '{name}'")
    return None


def body_matcher(request: requests.PreparedRequest, spec: 'MockRequest') -> Optional[MatchError]:
    expected = spec.body_text
    if not expected:
        return None

    body = peek_body(request)
    if not body:
        return MatchError('body', "expected a body but received none")

    received = body.decode('utf-8', errors='replace')

    # Exact match
    if received == expected:
        return None

    # Regex match
    try:
        if re.search(expected, received):
            return None
    except re.error:
        pass

    # Structural JSON match
    try:
        if json_equal(json.loads(received), json.loads(expected)):
            return None
    except (json.JSONDecodeError, ValueError):
        pass

    return MatchError('body', f"received body {received} did not match expected mock body {expected}")


def json_equal(left: Any, right: Any) -> bool:
    """
    Deep-compare two parsed JSON trees.

    Object key order is irrelevant; booleans never equal numbers.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(json_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return left == right


DEFAULT_MATCHERS: List[Matcher] = [
    path_matcher,
    host_matcher,
    scheme_matcher,
    method_matcher,
    header_matcher,
    header_present_matcher,
    header_not_present_matcher,
    query_matcher,
    query_present_matcher,
    query_not_present_matcher,
    form_matcher,
    form_present_matcher,
    form_not_present_matcher,
    body_matcher,
    cookie_matcher,
    cookie_present_matcher,
    cookie_not_present_matcher,
]
