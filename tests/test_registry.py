"""
Tests for MockTap Mock Registry

Tests mock selection including:
- First match wins in registration order
- Use counting and exhausted mock skipping
- Aggregated mismatch reporting
- Thread-safe find-and-consume
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from mocktap.exceptions import UnmatchedMockError
from mocktap.mock.matcher import MatchError
from mocktap.mock.mocks import mock
from mocktap.mock.registry import MockRegistry, match_errors


def prepare(method='GET', url='http://example.com/user', **kwargs):
    return requests.Request(method, url, **kwargs).prepare()


class TestUnmatchedMockError:
    """Test mismatch report rendering."""

    def test_renders_mismatches_in_mock_order(self):
        """Test the report lists every mock's reasons by position."""
        error = UnmatchedMockError()
        error.add_errors(2, MatchError('b', 'tom drank too much beer'))
        error.add_errors(1, MatchError('a', 'a boo boo has occurred'))

        assert str(error) == (
            "received request did not match any mocks\n\n"
            "Mock 1 mismatches:\n"
            "• a boo boo has occurred\n\n"
            "Mock 2 mismatches:\n"
            "• tom drank too much beer\n\n"
        )

    def test_renders_exhausted_mocks(self):
        """Test exhausted mocks are listed separately."""
        error = UnmatchedMockError().add_exhausted(1)

        assert str(error) == (
            "received request did not match any mocks\n\n"
            "Exhausted mocks (no remaining uses): 1\n\n"
        )

    def test_is_a_request_exception(self):
        """Test the error surfaces as a failed network call."""
        assert issubclass(UnmatchedMockError, requests.exceptions.RequestException)


class TestMockRegistry:
    """Test MockRegistry."""

    def test_match_consumes_one_use(self):
        """Test a matching mock is used once."""
        user_mock = mock().get('http://example.com/user').respond_with().body('{"id": 1}').end()
        registry = MockRegistry([user_mock])

        template = registry.find_and_consume(prepare())

        assert template.body_text == '{"id": 1}'
        assert user_mock.remaining_uses == 0
        assert user_mock.is_exhausted()

    def test_first_match_wins(self):
        """Test registration order decides between matching mocks."""
        first = mock().get('http://example.com/user').respond_with().body('first').end()
        second = mock().get('http://example.com/user').respond_with().body('second').end()
        registry = MockRegistry([first, second])

        assert registry.find_and_consume(prepare()).body_text == 'first'
        assert registry.find_and_consume(prepare()).body_text == 'second'
        assert first.is_exhausted() and second.is_exhausted()

    def test_header_selects_mock(self):
        """Test a differing header value skips to the next mock."""
        staging = (
            mock().get('http://example.com/user').header('X-Env', 'staging')
            .respond_with().body('staging').end()
        )
        qa = (
            mock().get('http://example.com/user').header('X-Env', 'qa')
            .respond_with().body('qa').end()
        )
        registry = MockRegistry([staging, qa])

        template = registry.find_and_consume(prepare(headers={'X-Env': 'qa'}))

        assert template.body_text == 'qa'
        assert staging.remaining_uses == 1
        assert qa.remaining_uses == 0

    def test_times_then_exhausted(self):
        """Test a mock matches exactly `times` times."""
        user_mock = mock().get('http://example.com/user').respond_with().times(2).end()
        registry = MockRegistry([user_mock])

        registry.find_and_consume(prepare())
        registry.find_and_consume(prepare())
        with pytest.raises(UnmatchedMockError) as exc_info:
            registry.find_and_consume(prepare())

        assert exc_info.value.exhausted == [1]
        assert exc_info.value.errors == {}

    def test_times_zero_never_matches(self):
        """Test a mock declared with zero uses is skipped."""
        registry = MockRegistry([mock().get('http://example.com/user').respond_with().times(0).end()])

        with pytest.raises(UnmatchedMockError):
            registry.find_and_consume(prepare())

    def test_mismatches_reported_per_mock(self):
        """Test every evaluated mock's reasons are aggregated."""
        def boo_boo(request, spec):
            return 'a boo boo has occurred'

        def beer(request, spec):
            return 'tom drank too much beer'

        registry = MockRegistry([
            mock().get('http://example.com/user').add_matcher(boo_boo).respond_with().end(),
            mock().get('http://example.com/user').add_matcher(beer).respond_with().end(),
        ])

        with pytest.raises(UnmatchedMockError) as exc_info:
            registry.find_and_consume(prepare())

        assert str(exc_info.value) == (
            "received request did not match any mocks\n\n"
            "Mock 1 mismatches:\n"
            "• a boo boo has occurred\n\n"
            "Mock 2 mismatches:\n"
            "• tom drank too much beer\n\n"
        )
        assert exc_info.value.request is not None

    def test_single_differing_attribute_single_error(self):
        """Test one differing attribute produces exactly one mismatch."""
        user_mock = (
            mock().get('http://example.com/user')
            .header('Accept', 'application/json')
            .query('id', '1')
            .respond_with().end()
        )
        request = prepare(url='http://example.com/user?id=2', headers={'Accept': 'application/json'})

        errors = match_errors(request, user_mock)

        assert errors == [
            MatchError('query', 'received query params {id: [2]} did not match expected mock query params {id: [1]}')
        ]

    def test_pending(self):
        """Test pending mocks exclude exhausted ones."""
        used = mock().get('http://example.com/user').respond_with().end()
        unused = mock().get('http://example.com/other').respond_with().end()
        registry = MockRegistry([used, unused])

        registry.find_and_consume(prepare())

        assert registry.pending() == [unused]
        assert len(registry) == 2

    def test_concurrent_single_use(self):
        """Test a single-use mock is consumed by exactly one concurrent caller."""
        registry = MockRegistry([mock().get('http://example.com/user').respond_with().end()])

        def attempt(_):
            try:
                registry.find_and_consume(prepare())
                return True
            except UnmatchedMockError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(attempt, range(16)))

        assert results.count(True) == 1
        assert results.count(False) == 15
