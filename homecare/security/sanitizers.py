"""
Rich Text Sanitization

Routes on SQLI_ALLOWLIST / XSS_ALLOWLIST skip the pattern scan so editors can
submit HTML. Those routes must pass every HTML field through
sanitize_rich_text() before it is stored or rendered.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

import bleach

ALLOWED_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "i",
        "img",
        "li",
        "ol",
        "p",
        "pre",
        "span",
        "strong",
        "table",
        "tbody",
        "td",
        "th",
        "thead",
        "tr",
        "u",
        "ul",
    }
)

ALLOWED_ATTRIBUTES: Dict[str, List[str]] = {
    "a": ["href", "title", "target", "rel"],
    "abbr": ["title"],
    "img": ["src", "alt", "title", "width", "height"],
    "span": ["class"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
}

ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto", "tel"})


def sanitize_rich_text(
    content: Optional[str],
    tags: Iterable[str] = ALLOWED_TAGS,
    attributes: Mapping[str, List[str]] = ALLOWED_ATTRIBUTES,
    strip: bool = True,
) -> str:
    """
    Clean editor HTML down to the allowed tags and attributes.

    Script/style elements, event handler attributes and javascript: URLs are
    removed; disallowed tags are stripped (or escaped when strip=False).
    """
    if not content:
        return ""

    return bleach.clean(
        content,
        tags=frozenset(tags),
        attributes=dict(attributes),
        protocols=ALLOWED_PROTOCOLS,
        strip=strip,
        strip_comments=True,
    )


def sanitize_fields(data: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``data`` with the named string fields sanitized."""
    cleaned = dict(data)
    for field in fields:
        if isinstance(cleaned.get(field), str):
            cleaned[field] = sanitize_rich_text(cleaned[field])
    return cleaned
