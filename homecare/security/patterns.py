"""
Attack pattern matchers.

Stateless predicates that scan JSON-like request data for SQL injection and
cross-site scripting fragments.
"""

import re
from typing import Any, Iterable, Mapping, Pattern, Sequence

from .utils.walk import MAX_DEPTH, walk

SQL_INJECTION_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(p, flags)
    for p, flags in (
        (r"(\bUNION\b|\bSELECT\b|\bDROP\b|\bINSERT\b|\bUPDATE\b|\bDELETE\b).*\bFROM\b", re.IGNORECASE),
        (r"(\bOR\b|\bAND\b)\s+['\d]", re.IGNORECASE),
        (r"--", 0),
        (r";.*--", 0),
        (r"/\*.*\*/", 0),
        (r"xp_cmdshell", re.IGNORECASE),
        (r"exec\s*\(", re.IGNORECASE),
    )
)

XSS_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<script[^>]*>[\s\S]*?</script>",
        r"javascript:",
        r"on\w+\s*=\s*[\"'][^\"']*[\"']",
        r"<iframe[^>]*>",
        r"<embed[^>]*>",
        r"<object[^>]*>",
    )
)


def matches_any(text: str, patterns: Iterable[Pattern[str]]) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def is_suspicious(value: Any, patterns: Sequence[Pattern[str]], max_depth: int = MAX_DEPTH) -> bool:
    """
    True if any string inside ``value`` matches one of ``patterns``.

    Mappings and sequences are searched recursively (values only, keys are not
    tested); numbers, booleans and None never match. A non-empty container
    reached at ``max_depth`` counts as suspicious.
    """

    def visit(path, node):
        if isinstance(node, str):
            return matches_any(node, patterns)
        return len(path) >= max_depth and isinstance(node, (Mapping, list, tuple)) and len(node) > 0

    return walk(value, (), visit, max_depth=max_depth)


def is_sql_injection(value: Any) -> bool:
    return is_suspicious(value, SQL_INJECTION_PATTERNS)


def is_xss(value: Any) -> bool:
    return is_suspicious(value, XSS_PATTERNS)


def path_has_prefix(path: str, prefixes: Iterable[str]) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def path_under_segment(path: str, prefixes: Iterable[str]) -> bool:
    """Prefix match that only accepts the exact prefix or a following '/'."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False
