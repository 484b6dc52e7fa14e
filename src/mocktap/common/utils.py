"""
MockTap Common Utilities

Shared helpers for header normalization, pattern matching, JSON handling and
request body access.
"""

import io
import json
import re
from typing import Dict, Iterable, List

import requests


def is_json(text: str) -> bool:
    """Return True if text parses as any JSON value (object, array, scalar)."""
    if not text:
        return False
    try:
        json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return False
    return True


def canonical_header_key(key: str) -> str:
    """
    Normalize a header name to canonical MIME form.

    Example:
        canonical_header_key('x-request-id')  # 'X-Request-Id'
    """
    return '-'.join(part.capitalize() for part in key.strip().split('-'))


def matches_pattern(pattern: str, value: str) -> bool:
    """
    Match value against pattern: exact equality first, then as a regex.

    A pattern that is not a valid regular expression only matches exactly.

    Args:
        pattern: Declared value (literal or regular expression)
        value: Actual value received

    Returns:
        True if value equals pattern or pattern's regex is found in value
    """
    if pattern == value:
        return True
    try:
        return re.search(pattern, value) is not None
    except re.error:
        return False


def any_value_matches(expected: Iterable[str], actual: Iterable[str]) -> bool:
    """Return True if at least one actual value matches at least one expected value."""
    expected = list(expected)
    return any(matches_pattern(e, a) for a in actual for e in expected)


def format_multi_dict(values: Dict[str, List[str]]) -> str:
    """Render a key -> [values] mapping deterministically for diagnostics."""
    parts = [f"{key}: [{', '.join(vals)}]" for key, vals in sorted(values.items())]
    return '{' + '; '.join(parts) + '}'


def peek_body(request: requests.PreparedRequest) -> bytes:
    """
    Read the request body without losing it.

    Streamed bodies (file-like objects and chunk iterators) can only be read
    once, so after reading they are replaced on the request by the buffered
    bytes. String bodies are returned encoded but left untouched.

    Args:
        request: Prepared request about to be sent

    Returns:
        Body bytes, empty when the request has no body
    """
    body = request.body
    if body is None:
        return b''
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode('utf-8')

    if hasattr(body, 'read'):
        data = body.read()
        if isinstance(data, str):
            data = data.encode('utf-8')
        request.body = data
        return data

    chunks = []
    for chunk in body:
        chunks.append(chunk.encode('utf-8') if isinstance(chunk, str) else bytes(chunk))
    data = b''.join(chunks)
    request.body = data
    return data


def body_stream(data: bytes) -> io.BytesIO:
    """Wrap body bytes in a fresh readable stream."""
    return io.BytesIO(data)
