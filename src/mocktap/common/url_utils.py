"""
MockTap URL Utilities

URL, query string, form body and Cookie header parsing for matching.
"""

from typing import Dict, List
from urllib.parse import parse_qs, urlsplit


class URLParts:
    """Parsed view of a request URL."""

    def __init__(self, url: str):
        parsed = urlsplit(url or '')
        self.scheme = parsed.scheme
        self.host = parsed.netloc
        self.path = parsed.path
        self.query = parse_qs(parsed.query, keep_blank_values=True)

    def __repr__(self) -> str:
        return f"URLParts(scheme={self.scheme!r}, host={self.host!r}, path={self.path!r})"


def parse_form(body: bytes) -> Dict[str, List[str]]:
    """
    Parse an application/x-www-form-urlencoded body.

    Args:
        body: Raw request body

    Returns:
        Mapping of field name to list of values (empty if body is not decodable)
    """
    if not body:
        return {}
    try:
        text = body.decode('utf-8')
    except UnicodeDecodeError:
        return {}
    return parse_qs(text, keep_blank_values=True)


def parse_cookie_header(header: str) -> Dict[str, str]:
    """
    Parse a request Cookie header into name -> value.

    The first occurrence of a name wins, as browsers send the most specific
    cookie first.

    Example:
        parse_cookie_header('a=1; b=2')  # {'a': '1', 'b': '2'}
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies

    for part in header.split(';'):
        part = part.strip()
        if not part:
            continue
        name, sep, value = part.partition('=')
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) > 1 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        cookies.setdefault(name, value)
    return cookies
