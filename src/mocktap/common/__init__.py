"""
MockTap Common Utilities

Shared utilities and helpers used across MockTap modules.
"""

from .utils import (
    is_json,
    canonical_header_key,
    matches_pattern,
    any_value_matches,
    format_multi_dict,
    peek_body,
    body_stream,
)
from .url_utils import URLParts, parse_form, parse_cookie_header

__all__ = [
    'is_json',
    'canonical_header_key',
    'matches_pattern',
    'any_value_matches',
    'format_multi_dict',
    'peek_body',
    'body_stream',
    'URLParts',
    'parse_form',
    'parse_cookie_header',
]
