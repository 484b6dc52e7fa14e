"""
MockTap Mock Definitions

Declarative mocks loaded from YAML, producing the same Mock objects as the
fluent builder.

Example YAML:
    mocks:
      - request:
          method: GET
          url: https://api.example.com/user
          headers:
            X-Env: staging
        response:
          status: 200
          json: {"id": 1}
          times: 2
"""

from typing import Any, Dict, List

import yaml

from ..exceptions import MockConfigurationError
from .cookies import Cookie
from .mocks import Mock, MockRequest, MockResponse, mock


def _as_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _apply_request(request: MockRequest, data: Dict[str, Any]) -> None:
    for key, value in (data.get('headers') or {}).items():
        for item in _as_list(value):
            request.header(key, item)
    for key in data.get('header_present') or []:
        request.header_present(key)
    for key in data.get('header_not_present') or []:
        request.header_not_present(key)

    request.query_collection({k: _as_list(v) for k, v in (data.get('query') or {}).items()})
    for key in data.get('query_present') or []:
        request.query_present(key)
    for key in data.get('query_not_present') or []:
        request.query_not_present(key)

    for key, value in (data.get('form') or {}).items():
        request.form_data(key, *_as_list(value))
    for key in data.get('form_present') or []:
        request.form_data_present(key)
    for key in data.get('form_not_present') or []:
        request.form_data_not_present(key)

    if 'json' in data:
        request.body_json(data['json'])
    elif 'body' in data:
        request.body(str(data['body']))

    request.cookies(*[Cookie.from_dict(c) for c in data.get('cookies') or []])
    for name in data.get('cookie_present') or []:
        request.cookie_present(name)
    for name in data.get('cookie_not_present') or []:
        request.cookie_not_present(name)


def _apply_response(response: MockResponse, data: Dict[str, Any]) -> None:
    if 'status' in data:
        response.status(int(data['status']))
    for key, value in (data.get('headers') or {}).items():
        for item in _as_list(value):
            response.header(key, item)
    response.cookies(*[Cookie.from_dict(c) for c in data.get('cookies') or []])

    if 'json' in data:
        response.body_json(data['json'])
    elif 'body' in data:
        response.body(str(data['body']))

    if 'times' in data:
        response.times(int(data['times']))
    if 'delay_ms' in data:
        response.delay(float(data['delay_ms']) / 1000.0)


def mock_from_dict(data: Dict[str, Any]) -> Mock:
    """
    Create a Mock from a dictionary with 'request' and 'response' sections.

    Raises:
        MockConfigurationError: On malformed definitions or URLs
    """
    if not isinstance(data, dict):
        raise MockConfigurationError(f"Mock definition must be a mapping, got {type(data).__name__}")

    request_data = data.get('request') or {}
    response_data = data.get('response') or {}

    new_mock = mock()
    if 'url' in request_data:
        new_mock.url(str(request_data['url']))
    if request_data.get('method'):
        new_mock.method(str(request_data['method']))

    try:
        _apply_request(new_mock.request, request_data)
        _apply_response(new_mock.response, response_data)
    except (TypeError, ValueError, AttributeError) as e:
        if isinstance(e, MockConfigurationError):
            raise
        raise MockConfigurationError(f"Invalid mock definition {data}: {e}") from e
    return new_mock


def mocks_from_dict(data: Dict[str, Any]) -> List[Mock]:
    """Create mocks from a document with a top-level 'mocks' list."""
    if not isinstance(data, dict) or not isinstance(data.get('mocks'), list):
        raise MockConfigurationError("Expected a mapping with a 'mocks' list")
    return [mock_from_dict(item) for item in data['mocks']]


def load_mocks(yaml_path: str) -> List[Mock]:
    """
    Load mocks from a YAML file, in declaration order.

    Args:
        yaml_path: Path to YAML file

    Returns:
        List of Mock objects ready for install_interceptor()
    """
    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f)

    return mocks_from_dict(data)
