"""
MockTap Response Generator

Builds genuine requests.Response objects from mock response templates.

Features:
- Declared status code, canonical headers and body
- Content-Length computed from the body when undeclared
- Content-Type inference (application/json or text/plain) when undeclared
- Set-Cookie headers and cookie jar entries from declared cookies
- Responses built through HTTPAdapter.build_response, so they behave like
  responses received from the network
"""

from http.client import responses as http_reasons
from typing import Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from urllib3 import HTTPHeaderDict, HTTPResponse

from ..common import body_stream, is_json
from .mocks import MockResponse


class ResponseGenerator:
    """
    Synthesizes responses for matched mocks.

    Example:
        generator = ResponseGenerator()
        response = generator.generate(prepared_request, mock.response)
        assert response.headers['Content-Type'] == 'application/json'
    """

    def __init__(self, adapter: Optional[BaseAdapter] = None):
        """
        Initialize response generator.

        Args:
            adapter: Adapter recorded as the response's connection; a plain
                HTTPAdapter is used to build the response either way
        """
        self._builder = HTTPAdapter()
        self.adapter = adapter or self._builder

    @staticmethod
    def infer_content_type(template: MockResponse) -> Optional[str]:
        """
        Content type to add for a template, or None when none should be added.

        An explicit Content-Type header always wins; an empty body gets none.
        """
        if 'Content-Type' in template.header_values or not template.body_text:
            return None
        return 'application/json' if is_json(template.body_text) else 'text/plain'

    def build_headers(self, template: MockResponse) -> HTTPHeaderDict:
        headers = HTTPHeaderDict()
        for key, values in template.header_values.items():
            for value in values:
                headers.add(key, value)

        for cookie in template.cookie_values:
            headers.add('Set-Cookie', cookie.to_set_cookie_header())

        content_type = self.infer_content_type(template)
        if content_type:
            headers['Content-Type'] = content_type

        if 'Content-Length' not in template.header_values:
            headers['Content-Length'] = str(len(template.body_text.encode('utf-8')))
        return headers

    def generate(self, request: requests.PreparedRequest, template: MockResponse) -> requests.Response:
        """
        Generate a response for a request from a template.

        Each call returns a new response with its own unread body stream.

        Args:
            request: Request the response answers
            template: Matched mock's response template

        Returns:
            requests.Response
        """
        data = template.body_text.encode('utf-8')
        raw = HTTPResponse(
            body=body_stream(data),
            headers=self.build_headers(template),
            status=template.status_code,
            reason=http_reasons.get(template.status_code, ''),
            version=11,
            preload_content=False,
            decode_content=False,
            request_method=request.method,
            request_url=request.url,
        )

        response = self._builder.build_response(request, raw)
        response.connection = self.adapter

        # requests defaults undeclared text charsets to ISO-8859-1
        if self.infer_content_type(template) or response.encoding is None:
            response.encoding = 'utf-8'

        for cookie in template.cookie_values:
            response.cookies.set_cookie(cookie.to_jar_cookie())
        return response

    def close(self) -> None:
        self._builder.close()
