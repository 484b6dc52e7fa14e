"""
Tests for MockTap Request Matchers

Tests the matcher pipeline including:
- Path, host, scheme and method matching
- Header, query and form field matching
- Presence and absence checks
- Cookie matching
- Body matching (exact, regex, JSON structural equality)
- Custom matchers
"""

import io

import pytest
import requests

from mocktap.mock.matcher import (
    DEFAULT_MATCHERS,
    MatchError,
    body_matcher,
    cookie_matcher,
    cookie_not_present_matcher,
    cookie_present_matcher,
    form_matcher,
    form_not_present_matcher,
    form_present_matcher,
    header_matcher,
    header_not_present_matcher,
    header_present_matcher,
    host_matcher,
    json_equal,
    method_matcher,
    path_matcher,
    query_matcher,
    query_not_present_matcher,
    query_present_matcher,
    run_matcher,
    scheme_matcher,
)
from mocktap.mock.mocks import mock


def prepare(method='GET', url='http://test.com/assert', **kwargs):
    """Build a prepared request as the transport would receive it."""
    return requests.Request(method, url, **kwargs).prepare()


class TestMatchError:
    """Test MatchError value."""

    def test_str_is_message(self):
        """Test string rendering."""
        error = MatchError('path', 'received path /a did not match mock path /b')
        assert str(error) == 'received path /a did not match mock path /b'


class TestUrlMatchers:
    """Test path, host, scheme and method matchers."""

    def test_path_exact(self):
        """Test identical paths match."""
        spec = mock().get('http://test.com/v1/user')
        assert path_matcher(prepare(url='http://test.com/v1/user'), spec) is None

    def test_path_regex(self):
        """Test the mock path is tried as a regex."""
        spec = mock().get(r'http://test.com/v1/user/\d+')
        assert path_matcher(prepare(url='http://test.com/v1/user/42'), spec) is None

    def test_path_mismatch(self):
        """Test mismatching path reason."""
        spec = mock().get('http://test.com/v1/user')

        error = path_matcher(prepare(url='http://test.com/v2/user'), spec)

        assert error == MatchError('path', 'received path /v2/user did not match mock path /v1/user')

    def test_path_undeclared(self):
        """Test an empty mock path matches anything."""
        spec = mock().method('GET')
        assert path_matcher(prepare(url='http://test.com/anything'), spec) is None

    @pytest.mark.parametrize('request_url,mock_url,expected', [
        ('http://test.com', 'https://test.com', None),
        ('https://test.com', 'https://testa.com', 'received host test.com did not match mock host testa.com'),
        ('https://test.com', '', None),
        ('https://api.test.com', r'https://.*\.test\.com', None),
    ])
    def test_host(self, request_url, mock_url, expected):
        """Test host matching."""
        error = host_matcher(prepare(url=request_url), mock().get(mock_url))
        assert (error.message if error else None) == expected

    def test_scheme(self):
        """Test scheme matching."""
        spec = mock().get('https://test.com/x')

        assert scheme_matcher(prepare(url='https://test.com/x'), spec) is None
        error = scheme_matcher(prepare(url='http://test.com/x'), spec)
        assert error.message == 'received scheme http did not match mock scheme https'

    def test_scheme_undeclared(self):
        """Test a mock without scheme matches any scheme."""
        assert scheme_matcher(prepare(url='http://test.com/x'), mock().get('/x')) is None

    def test_method(self):
        """Test method matching."""
        spec = mock().get('http://test.com/x')

        assert method_matcher(prepare('GET'), spec) is None
        error = method_matcher(prepare('POST'), spec)
        assert error.message == 'received method POST did not match mock method GET'

    def test_method_undeclared(self):
        """Test a mock with only a URL matches any method."""
        assert method_matcher(prepare('DELETE'), mock().url('http://test.com/x')) is None


class TestHeaderMatchers:
    """Test header matchers."""

    def test_header_match(self):
        """Test declared header satisfied among other headers."""
        spec = mock().get('/assert').header('A', '123')
        request = prepare(headers={'B': '5', 'A': '123'})

        assert header_matcher(request, spec) is None

    def test_header_case_insensitive_key(self):
        """Test header names are matched case-insensitively."""
        spec = mock().get('/assert').header('x-env', 'staging')
        assert header_matcher(prepare(headers={'X-ENV': 'staging'}), spec) is None

    def test_header_regex_value(self):
        """Test header values fall back to regex matching."""
        spec = mock().get('/assert').header('Authorization', r'^Bearer \w+$')
        assert header_matcher(prepare(headers={'Authorization': 'Bearer abc123'}), spec) is None

    def test_header_any_declared_value(self):
        """Test any of several declared values may match."""
        spec = mock().get('/assert').header('X-Env', 'staging').header('X-Env', 'qa')
        assert header_matcher(prepare(headers={'X-Env': 'qa'}), spec) is None

    def test_header_missing(self):
        """Test a missing declared header is reported."""
        spec = mock().get('/assert').header('C', '3')

        error = header_matcher(prepare(headers={'A': '123'}), spec)

        assert error.matcher == 'headers'
        assert error.message == 'received headers {C: []} did not match expected mock headers {C: [3]}'

    def test_header_no_declaration(self):
        """Test no declared headers always matches."""
        assert header_matcher(prepare(), mock().get('/assert')) is None

    def test_header_present(self):
        """Test header presence."""
        spec = mock().get('/assert').header_present('Authorization')

        assert header_present_matcher(prepare(headers={'Authorization': ''}), spec) is None
        error = header_present_matcher(prepare(), spec)
        assert error.message == "expected header 'Authorization' was not present"

    def test_header_not_present(self):
        """Test header absence."""
        spec = mock().get('/assert').header_not_present('X-Debug')

        assert header_not_present_matcher(prepare(), spec) is None
        error = header_not_present_matcher(prepare(headers={'x-debug': '1'}), spec)
        assert error.message == "unexpected header 'X-Debug' was present"


class TestQueryMatchers:
    """Test query parameter matchers."""

    @pytest.mark.parametrize('request_url,param,expected', [
        ('http://test.com/v1/path?a=1', 'a', None),
        ('http://test.com/v1/path', 'a', 'expected query param a not received'),
        ('http://test.com/v1/path?c=1', 'b', 'expected query param b not received'),
        ('http://test.com/v2/path?b=2&a=1', 'a', None),
    ])
    def test_query_present(self, request_url, param, expected):
        """Test query param presence."""
        spec = mock().get(request_url).query_present(param)
        error = query_present_matcher(prepare(url=request_url), spec)
        assert (error.message if error else None) == expected

    def test_query_not_present(self):
        """Test query param absence."""
        spec = mock().get('http://test.com/path').query_not_present('debug')

        assert query_not_present_matcher(prepare(url='http://test.com/path?a=1'), spec) is None
        error = query_not_present_matcher(prepare(url='http://test.com/path?debug=1'), spec)
        assert error.message == "unexpected query param 'debug' present"

    def test_query_value(self):
        """Test declared query values."""
        spec = mock().get('http://test.com/path').query('a', '1').query('b', '2')

        assert query_matcher(prepare(url='http://test.com/path?b=2&a=1&c=3'), spec) is None
        error = query_matcher(prepare(url='http://test.com/path?a=1&b=3'), spec)
        assert error.message == 'received query params {b: [3]} did not match expected mock query params {b: [2]}'

    def test_query_from_mock_url(self):
        """Test query params in the mock URL are declared values."""
        spec = mock().get('http://test.com/path?page=2')

        assert spec.expected_query == {'page': ['2']}
        assert query_matcher(prepare(url='http://test.com/path?page=2'), spec) is None
        assert query_matcher(prepare(url='http://test.com/path?page=3'), spec) is not None

    def test_query_collection(self):
        """Test multi-value query declaration."""
        spec = mock().get('http://test.com/path').query_collection({'id': ['1', '2']})

        assert query_matcher(prepare(url='http://test.com/path?id=2'), spec) is None
        assert query_matcher(prepare(url='http://test.com/path?id=5'), spec) is not None

    def test_query_params(self):
        """Test bulk single-value declaration."""
        spec = mock().get('http://test.com/path').query_params({'a': '1', 'b': '2'})

        assert spec.expected_query == {'a': ['1'], 'b': ['2']}


class TestFormMatchers:
    """Test form field matchers."""

    def test_form_value(self):
        """Test declared form fields."""
        spec = mock().post('http://test.com/login').form_data('name', 'alice')

        assert form_matcher(prepare('POST', data={'name': 'alice', 'age': '30'}), spec) is None
        error = form_matcher(prepare('POST', data={'name': 'bob'}), spec)
        assert error.message == 'received form data {name: [bob]} did not match expected mock form data {name: [alice]}'

    def test_form_present(self):
        """Test form field presence."""
        spec = mock().post('http://test.com/login').form_data_present('token')

        assert form_present_matcher(prepare('POST', data={'token': 'x'}), spec) is None
        error = form_present_matcher(prepare('POST', data={'name': 'x'}), spec)
        assert error.message == 'expected form data field token not received'

    def test_form_not_present(self):
        """Test form field absence."""
        spec = mock().post('http://test.com/login').form_data_not_present('debug')

        assert form_not_present_matcher(prepare('POST', data={'name': 'x'}), spec) is None
        error = form_not_present_matcher(prepare('POST', data={'debug': '1'}), spec)
        assert error.message == "unexpected form data field 'debug' present"


class TestCookieMatchers:
    """Test cookie matchers."""

    def test_cookie_match(self):
        """Test declared cookie received."""
        spec = mock().get('/assert').cookie('session', 'abc')
        assert cookie_matcher(prepare(headers={'Cookie': 'session=abc; other=1'}), spec) is None

    def test_cookie_missing(self):
        """Test declared cookie not received."""
        spec = mock().get('/assert').cookie('session', 'abc')

        error = cookie_matcher(prepare(), spec)

        assert error.message == "expected cookie with name 'session' not received"

    def test_cookie_value_mismatch(self):
        """Test mismatching cookie fields are reported."""
        spec = mock().get('/assert').cookie('session', 'xyz')

        error = cookie_matcher(prepare(headers={'Cookie': 'session=abc'}), spec)

        assert error.message == 'failed to match cookie: [Mismatched field Value. Expected xyz but received abc]'

    def test_cookie_from_cookies_argument(self):
        """Test cookies passed through requests are seen."""
        spec = mock().get('http://test.com/assert').cookie('session', 'abc')
        request = prepare(url='http://test.com/assert', cookies={'session': 'abc'})

        assert cookie_matcher(request, spec) is None

    def test_cookie_present(self):
        """Test cookie presence."""
        spec = mock().get('/assert').cookie_present('session')

        assert cookie_present_matcher(prepare(headers={'Cookie': 'session=1'}), spec) is None
        assert cookie_present_matcher(prepare(), spec).message == "expected cookie with name 'session' not received"

    def test_cookie_not_present(self):
        """Test cookie absence."""
        spec = mock().get('/assert').cookie_not_present('session')

        assert cookie_not_present_matcher(prepare(), spec) is None
        error = cookie_not_present_matcher(prepare(headers={'Cookie': 'session=1'}), spec)
        assert error.message == "did not expect a cookie with name 'session'"


class TestBodyMatcher:
    """Test body matching."""

    def test_exact(self):
        """Test exact body equality."""
        spec = mock().post('/assert').body('hello world')
        assert body_matcher(prepare('POST', data='hello world'), spec) is None

    def test_regex(self):
        """Test regex body matching."""
        spec = mock().post('/assert').body_regexp(r'^hello \w+$')
        assert body_matcher(prepare('POST', data='hello world'), spec) is None

    def test_json_key_order_independent(self):
        """Test JSON bodies compare structurally."""
        spec = mock().post('/assert').body('{"b":2,"a":1}')
        assert body_matcher(prepare('POST', data='{"a":1,"b":2}'), spec) is None

    def test_json_whitespace_independent(self):
        """Test insignificant whitespace is ignored."""
        spec = mock().post('/assert').body_json({'a': [1, 2], 'b': {'c': None}})
        request = prepare('POST', data='{\n  "b": {"c": null},\n  "a": [1, 2]\n}')

        assert body_matcher(request, spec) is None

    def test_json_value_mismatch(self):
        """Test different JSON values do not match."""
        spec = mock().post('/assert').body('{"a":1}')

        error = body_matcher(prepare('POST', data='{"a":2}'), spec)

        assert error.message == 'received body {"a":2} did not match expected mock body {"a":1}'

    def test_empty_declared_body_matches(self):
        """Test undeclared body always matches."""
        assert body_matcher(prepare('POST', data='anything'), mock().post('/assert')) is None

    def test_missing_body(self):
        """Test a declared body against no body."""
        spec = mock().post('/assert').body('{"a":1}')

        error = body_matcher(prepare('POST'), spec)

        assert error == MatchError('body', 'expected a body but received none')

    def test_stream_body_restored(self):
        """Test the body is replayable after matching."""
        spec = mock().post('/assert').body('{"a": 1}')
        request = prepare('POST', data=io.BytesIO(b'{"a": 1}'))

        assert body_matcher(request, spec) is None
        assert request.body == b'{"a": 1}'

    def test_json_equal_distinguishes_bool_and_number(self):
        """Test JSON booleans never equal numbers."""
        assert json_equal({'a': True}, {'a': True})
        assert not json_equal({'a': True}, {'a': 1})
        assert not json_equal([1, 2], [2, 1])
        assert json_equal(1, 1.0)


class TestCustomMatchers:
    """Test custom matcher support."""

    def test_default_matchers_copied(self):
        """Test each mock gets its own matcher list."""
        spec = mock().get('/a')
        spec.add_matcher(lambda request, spec: None)

        assert len(spec.matchers) == len(DEFAULT_MATCHERS) + 1
        assert len(mock().get('/b').matchers) == len(DEFAULT_MATCHERS)

    def test_string_outcome_wrapped(self):
        """Test custom matchers may return a plain reason."""
        def tenant_matcher(request, spec):
            if request.headers.get('X-Tenant') != 'acme':
                return 'tenant was not acme'
            return None

        spec = mock().get('/a').add_matcher(tenant_matcher)

        assert run_matcher(tenant_matcher, prepare(headers={'X-Tenant': 'acme'}), spec) is None
        assert run_matcher(tenant_matcher, prepare(), spec) == MatchError('tenant_matcher', 'tenant was not acme')
