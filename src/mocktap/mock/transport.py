"""
MockTap Transport Interceptor

A requests transport adapter that answers outbound calls from declared mocks
instead of the network.

Installation either targets a single requests.Session (its adapters are
swapped for the interceptor) or, when no session is given, every session in
the process (Session.get_adapter is patched). Only one process-wide
interceptor can be installed at a time, so tests that mock the process-wide
default must not run in parallel; pass a dedicated session to avoid this.

Example:
    session = requests.Session()
    with install_interceptor([user_mock], client=session) as handle:
        response = session.get('https://api.example.com/user')
    assert len(handle.exchanges) == 1
"""

import logging
import sys
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, TextIO, Union
from urllib.parse import urlsplit

import requests
from requests.adapters import BaseAdapter
from requests.sessions import Session
from urllib3.util import Timeout

from ..config import InterceptorConfig
from ..exceptions import InterceptorInstallError, MockConfigurationError, UnmatchedMockError
from .generator import ResponseGenerator
from .mocks import Mock, MockResponse
from .registry import MockRegistry


REQUEST_DEBUG_PREFIX = '---------->'
RESPONSE_DEBUG_PREFIX = '<----------'

_global_lock = threading.Lock()
_global_transport: Optional['MockTransport'] = None


@dataclass
class InterceptedExchange:
    """An intercepted request with the response returned for it (None on a miss)."""

    request: requests.PreparedRequest
    response: Optional[requests.Response] = None

    @property
    def matched(self) -> bool:
        return self.response is not None


Observer = Callable[[requests.PreparedRequest, Optional[requests.Response]], Any]


def format_request(request: requests.PreparedRequest) -> str:
    """Render a prepared request as HTTP/1.1 wire text."""
    parts = urlsplit(request.url or '')
    target = parts.path or '/'
    if parts.query:
        target = f"{target}?{parts.query}"

    lines = [f"{request.method} {target} HTTP/1.1"]
    if 'Host' not in request.headers and parts.netloc:
        lines.append(f"Host: {parts.netloc}")
    lines.extend(f"{key}: {value}" for key, value in request.headers.items())

    body = request.body
    if isinstance(body, bytes):
        body = body.decode('utf-8', errors='replace')
    elif body is not None and not isinstance(body, str):
        body = '<streamed body>'
    return '\r\n'.join(lines) + '\r\n\r\n' + (body or '')


def format_response(response: requests.Response) -> str:
    """Render a response as HTTP/1.1 wire text. Reads the response body."""
    lines = [f"HTTP/1.1 {response.status_code} {response.reason or ''}".rstrip()]
    raw_headers = getattr(response.raw, 'headers', None)
    if raw_headers is not None and hasattr(raw_headers, 'iteritems'):
        lines.extend(f"{key}: {value}" for key, value in raw_headers.iteritems())
    else:
        lines.extend(f"{key}: {value}" for key, value in response.headers.items())
    return '\r\n'.join(lines) + '\r\n\r\n' + response.text


def _read_timeout(timeout: Any) -> Optional[float]:
    if timeout is None:
        return None
    if isinstance(timeout, Timeout):
        value = timeout.read_timeout
        return value if isinstance(value, (int, float)) else None
    if isinstance(timeout, tuple):
        return timeout[1] if len(timeout) > 1 else None
    return float(timeout)


class MockTransport(BaseAdapter):
    """
    Transport adapter serving responses from a mock registry.

    Every intercepted call is matched against the registry. A hit returns a
    synthesized response; a miss raises UnmatchedMockError, which requests
    propagates to the caller like any connection failure. The observer, if
    any, sees every exchange either way.
    """

    def __init__(
        self,
        mocks: Union[MockRegistry, Iterable[Mock]],
        client: Optional[requests.Session] = None,
        observer: Optional[Observer] = None,
        config: Optional[InterceptorConfig] = None,
    ):
        """
        Initialize mock transport.

        Args:
            mocks: Registry or mocks in match order
            client: Session to install onto (process-wide default if None)
            observer: Callback invoked with (request, response or None)
            config: InterceptorConfig (debug dumping, recording limits)
        """
        super().__init__()
        self.registry = mocks if isinstance(mocks, MockRegistry) else MockRegistry(mocks)
        self.client = client
        self.observer = observer
        self.config = config or InterceptorConfig()
        self.generator = ResponseGenerator(adapter=self)
        self.exchanges: List[InterceptedExchange] = []

        self.logger = logging.getLogger("mocktap.transport")

        self._installed = False
        self._original_adapters: Optional[OrderedDict] = None
        self._original_get_adapter: Optional[Callable] = None
        self._previous_log_level: Optional[int] = None
        self._released = threading.Event()
        self._exchanges_lock = threading.Lock()

    @property
    def installed(self) -> bool:
        return self._installed

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        """Match the request against the registry and answer it."""
        self.logger.debug(f"Intercepted: {request.method} {request.url}")
        answered: Optional[MockResponse] = None
        try:
            template = self.registry.find_and_consume(request)
            self._wait(template, request, timeout)
            response = self.generator.generate(request, template)
            answered = template
            return response
        except UnmatchedMockError as e:
            if self.config.debug:
                self._write_debug(f"failed to match mocks. Errors: {e}")
            raise
        finally:
            self._after_exchange(request, answered)

    def close(self):
        self.generator.close()

    def hijack(self) -> 'MockTransport':
        """
        Install the interceptor in place of the current transport.

        Raises:
            InterceptorInstallError: If already installed, or if another
                process-wide interceptor is active
            MockConfigurationError: If the configured log level is unknown
        """
        global _global_transport

        if self._installed:
            raise InterceptorInstallError("Interceptor is already installed")

        if self.client is not None:
            if any(isinstance(a, MockTransport) for a in self.client.adapters.values()):
                raise InterceptorInstallError("Session already has a mock interceptor installed")
            self._original_adapters = self.client.adapters
            self.client.adapters = OrderedDict()
            self.client.mount('https://', self)
            self.client.mount('http://', self)
            self.logger.debug(f"Installed interceptor on session {id(self.client):#x}")
        else:
            with _global_lock:
                if _global_transport is not None:
                    raise InterceptorInstallError(
                        "A process-wide interceptor is already installed; "
                        "pass a dedicated session to run mocked tests in parallel"
                    )
                original_get_adapter = self._original_get_adapter = Session.get_adapter
                transport = self

                # Sessions with their own interceptor keep it
                def get_adapter(session, url):
                    adapter = original_get_adapter(session, url)
                    if isinstance(adapter, MockTransport):
                        return adapter
                    return transport

                Session.get_adapter = get_adapter
                _global_transport = self
            self.logger.debug("Installed process-wide interceptor")

        self._released.clear()
        self._installed = True
        try:
            self._previous_log_level = self.config.apply_log_level()
        except MockConfigurationError:
            self.reset()
            raise
        return self

    def reset(self) -> None:
        """Restore the transport and logger level captured by hijack(). Safe to call twice."""
        global _global_transport

        if not self._installed:
            return

        if self.client is not None:
            self.client.adapters = self._original_adapters
            self._original_adapters = None
            self.logger.debug(f"Restored adapters on session {id(self.client):#x}")
        else:
            with _global_lock:
                Session.get_adapter = self._original_get_adapter
                self._original_get_adapter = None
                _global_transport = None
            self.logger.debug("Restored process-wide transport")

        if self._previous_log_level is not None:
            logging.getLogger("mocktap").setLevel(self._previous_log_level)
            self._previous_log_level = None

        self._installed = False
        self._released.set()

    def _wait(self, template: MockResponse, request: requests.PreparedRequest, timeout: Any) -> None:
        """Honor the template's delay, bounded by the caller's read timeout."""
        delay = template.delay_seconds
        if delay <= 0:
            return

        limit = _read_timeout(timeout)
        if limit is not None and delay > limit:
            self._released.wait(limit)
            raise requests.exceptions.ReadTimeout(
                f"Mock response delayed {delay}s exceeds read timeout {limit}s",
                request=request,
            )
        self._released.wait(delay)

    def _after_exchange(self, request: requests.PreparedRequest, template: Optional[MockResponse]) -> None:
        exchange = InterceptedExchange(
            request=request.copy(),
            response=self.generator.generate(request, template) if template is not None else None,
        )

        if self.config.record_exchanges:
            with self._exchanges_lock:
                limit = self.config.recording_limit
                if limit and len(self.exchanges) >= limit:
                    self.exchanges.pop(0)
                self.exchanges.append(exchange)

        if self.config.debug:
            self._dump(request, template)

        if self.observer is not None:
            try:
                self.observer(exchange.request, exchange.response)
            except Exception:
                self.logger.exception(f"Observer failed for {request.method} {request.url}")

    def _dump(self, request: requests.PreparedRequest, template: Optional[MockResponse]) -> None:
        self._write_debug(f"{REQUEST_DEBUG_PREFIX} request to mock\n{format_request(request)}")
        response_text = ''
        if template is not None:
            response_text = format_response(self.generator.generate(request, template))
        self._write_debug(f"{RESPONSE_DEBUG_PREFIX} response from mock\n{response_text}")

    def _write_debug(self, text: str) -> None:
        stream: TextIO = self.config.debug_stream or sys.stderr
        try:
            stream.write(text + '\n\n')
            stream.flush()
        except (OSError, ValueError) as e:
            self.logger.debug(f"Could not write debug output: {e}")


class InterceptorHandle:
    """
    Installation handle; release() restores the original transport.

    Works as a context manager so release happens even when a test fails.
    """

    def __init__(self, transport: MockTransport):
        self.transport = transport

    def __enter__(self) -> 'InterceptorHandle':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def active(self) -> bool:
        return self.transport.installed

    @property
    def registry(self) -> MockRegistry:
        return self.transport.registry

    @property
    def exchanges(self) -> List[InterceptedExchange]:
        return list(self.transport.exchanges)

    def pending_mocks(self) -> List[Mock]:
        """Mocks that were not used up during the test."""
        return self.transport.registry.pending()

    def release(self) -> None:
        self.transport.reset()


def install_interceptor(
    mocks: Iterable[Mock],
    client: Optional[requests.Session] = None,
    observer: Optional[Observer] = None,
    debug: bool = False,
    config: Optional[InterceptorConfig] = None,
) -> InterceptorHandle:
    """
    Install a mock interceptor and return its handle.

    Args:
        mocks: Mocks in match order
        client: Session to intercept (process-wide default if None)
        observer: Callback invoked once per exchange with (request, response or None)
        debug: Dump every exchange as wire text to the debug stream
        config: InterceptorConfig; debug=True overrides its debug flag

    Returns:
        InterceptorHandle whose release() must be called at test end

    Raises:
        InterceptorInstallError: If a process-wide interceptor is already active
    """
    config = config or InterceptorConfig()
    if debug and not config.debug:
        config = replace(config, debug=True)

    transport = MockTransport(mocks, client=client, observer=observer, config=config)
    transport.hijack()
    return InterceptorHandle(transport)


class StandaloneMocks:
    """
    Install mocks outside of any test harness.

    Example:
        release = StandaloneMocks(user_mock, orders_mock).http_client(session).end()
        try:
            run_job(session)
        finally:
            release()
    """

    def __init__(self, *mocks: Mock):
        self.mocks = list(mocks)
        self._http_client: Optional[requests.Session] = None
        self._debug = False

    def http_client(self, client: requests.Session) -> 'StandaloneMocks':
        self._http_client = client
        return self

    def debug(self) -> 'StandaloneMocks':
        self._debug = True
        return self

    def end(self) -> Callable[[], None]:
        """Install the mocks and return the callable that restores the transport."""
        handle = install_interceptor(self.mocks, client=self._http_client, debug=self._debug)
        return handle.release
