"""
MockTap Cookies

Expected-side cookie declarations and the field-by-field comparator.

Only fields that were explicitly set on a Cookie are compared against a
received cookie or serialized into a Set-Cookie header.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from http.cookiejar import Cookie as JarCookie
from typing import Any, Dict, List, Optional, Tuple

from requests.cookies import create_cookie

from ..exceptions import MockConfigurationError


@dataclass
class Cookie:
    """
    A cookie with optional fields, built fluently.

    Example:
        Cookie('session').value('abc').path('/').http_only(True)
    """

    name: str
    cookie_value: Optional[str] = None
    cookie_path: Optional[str] = None
    cookie_domain: Optional[str] = None
    cookie_expires: Optional[datetime] = None
    cookie_max_age: Optional[int] = None
    cookie_secure: Optional[bool] = None
    cookie_http_only: Optional[bool] = None

    def value(self, value: str) -> 'Cookie':
        self.cookie_value = value
        return self

    def path(self, path: str) -> 'Cookie':
        self.cookie_path = path
        return self

    def domain(self, domain: str) -> 'Cookie':
        self.cookie_domain = domain
        return self

    def expires(self, expires: datetime) -> 'Cookie':
        self.cookie_expires = _as_utc(expires)
        return self

    def max_age(self, max_age: int) -> 'Cookie':
        self.cookie_max_age = max_age
        return self

    def secure(self, secure: bool) -> 'Cookie':
        self.cookie_secure = secure
        return self

    def http_only(self, http_only: bool) -> 'Cookie':
        self.cookie_http_only = http_only
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cookie':
        """
        Create a Cookie from a dictionary (as loaded from YAML).

        Args:
            data: Mapping with 'name' and any of value, path, domain,
                expires (ISO-8601 string or datetime), max_age, secure, http_only

        Returns:
            Cookie with only the given fields set
        """
        if not data.get('name'):
            raise MockConfigurationError(f"Cookie definition requires a name: {data}")

        cookie = cls(str(data['name']))
        if 'value' in data:
            cookie.value(str(data['value']))
        if 'path' in data:
            cookie.path(str(data['path']))
        if 'domain' in data:
            cookie.domain(str(data['domain']))
        if 'expires' in data:
            expires = data['expires']
            if isinstance(expires, str):
                try:
                    expires = datetime.fromisoformat(expires)
                except ValueError as e:
                    raise MockConfigurationError(f"Invalid cookie expiry {expires!r}: {e}") from e
            cookie.expires(expires)
        if 'max_age' in data:
            cookie.max_age(int(data['max_age']))
        if 'secure' in data:
            cookie.secure(bool(data['secure']))
        if 'http_only' in data:
            cookie.http_only(bool(data['http_only']))
        return cookie

    def to_set_cookie_header(self) -> str:
        """
        Serialize into a Set-Cookie header value using only the declared fields.

        Returns:
            Header value, e.g. 'session=abc; Path=/; HttpOnly'
        """
        parts = [f"{self.name}={self.cookie_value or ''}"]
        if self.cookie_path is not None:
            parts.append(f"Path={self.cookie_path}")
        if self.cookie_domain is not None:
            parts.append(f"Domain={self.cookie_domain}")
        if self.cookie_expires is not None:
            parts.append(f"Expires={format_datetime(self.cookie_expires, usegmt=True)}")
        if self.cookie_max_age is not None:
            parts.append(f"Max-Age={max(self.cookie_max_age, 0)}")
        if self.cookie_secure:
            parts.append("Secure")
        if self.cookie_http_only:
            parts.append("HttpOnly")
        return '; '.join(parts)

    def to_jar_cookie(self) -> JarCookie:
        """Convert to a cookiejar cookie for a response's cookie jar."""
        rest = {'HttpOnly': None} if self.cookie_http_only else {}
        if self.cookie_max_age is not None:
            rest['Max-Age'] = str(self.cookie_max_age)
        return create_cookie(
            self.name,
            self.cookie_value or '',
            domain=self.cookie_domain or '',
            path=self.cookie_path or '/',
            expires=int(self.cookie_expires.timestamp()) if self.cookie_expires else None,
            secure=bool(self.cookie_secure),
            rest=rest,
        )


def received_cookie(name: str, value: str) -> JarCookie:
    """Build the actual-side cookie for a name/value pair sent in a Cookie header."""
    return create_cookie(name, value, path='', rest={})


def compare_cookies(expected: Cookie, actual: JarCookie) -> Tuple[bool, List[str]]:
    """
    Compare an expected cookie with a received one, checking declared fields only.

    Supported fields are Value, Domain, Path, Expires, MaxAge, Secure and
    HttpOnly. All mismatching fields are reported together.

    Args:
        expected: Cookie declared by the test author
        actual: Cookie received or set

    Returns:
        Tuple of (found by name, list of field mismatch messages)
    """
    found = expected.name == actual.name
    mismatches: List[str] = []
    if not found:
        return found, mismatches

    def mismatch(field_name: str, expected_value: Any, actual_value: Any) -> str:
        return f"Mismatched field {field_name}. Expected {expected_value} but received {actual_value}"

    if expected.cookie_value is not None and expected.cookie_value != actual.value:
        mismatches.append(mismatch('Value', expected.cookie_value, actual.value))

    if expected.cookie_domain is not None and expected.cookie_domain != actual.domain:
        mismatches.append(mismatch('Domain', expected.cookie_domain, actual.domain))

    if expected.cookie_path is not None and expected.cookie_path != actual.path:
        mismatches.append(mismatch('Path', expected.cookie_path, actual.path))

    if expected.cookie_expires is not None:
        actual_expires = (
            datetime.fromtimestamp(actual.expires, tz=timezone.utc) if actual.expires is not None else None
        )
        if actual_expires is None or int(expected.cookie_expires.timestamp()) != actual.expires:
            mismatches.append(mismatch('Expires', expected.cookie_expires, actual_expires))

    if expected.cookie_max_age is not None:
        actual_max_age = _jar_max_age(actual)
        if expected.cookie_max_age != actual_max_age:
            mismatches.append(mismatch('MaxAge', expected.cookie_max_age, actual_max_age))

    if expected.cookie_secure is not None and expected.cookie_secure != bool(actual.secure):
        mismatches.append(mismatch('Secure', expected.cookie_secure, bool(actual.secure)))

    if expected.cookie_http_only is not None:
        actual_http_only = actual.has_nonstandard_attr('HttpOnly')
        if expected.cookie_http_only != actual_http_only:
            mismatches.append(mismatch('HttpOnly', expected.cookie_http_only, actual_http_only))

    return found, mismatches


def _jar_max_age(cookie: JarCookie) -> int:
    raw = cookie.get_nonstandard_attr('Max-Age')
    try:
        return int(raw) if raw is not None else 0
    except ValueError:
        return 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
