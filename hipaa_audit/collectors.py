"""
Collectors that derive audit fields from a request.
"""

import hashlib
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from django.http import HttpRequest

from homecare.security.utils.walk import dotted, walk

from .models import ROLE_ADMIN, ROLE_PUBLIC, Actor, AuditAction

logger = logging.getLogger(__name__)

# Route prefixes that carry personal/health information
PHI_ROUTES = (
    "/api/intake",
    "/api/inquiries",
    "/api/referrals",
    "/api/forms/",
    "/api/consultation",
    "/api/admin/clients",
    "/api/admin/caregivers",
    "/api/admin/intake",
    "/api/admin/client-intakes",
    "/api/admin/job-applications",
)

# Key-name fragments (case-insensitive) that mark a body field as PHI
PHI_FIELDS = (
    "ssn",
    "socialSecurityNumber",
    "dateOfBirth",
    "dob",
    "medicalRecordNumber",
    "diagnosis",
    "medications",
    "healthConditions",
    "insuranceNumber",
    "gateCode",
    "emergencyContact",
    "address",
    "phoneNumber",
    "phone",
    "email",
    "clientName",
    "clientEmail",
    "clientPhone",
    "fullName",
    "referrerName",
    "referrerEmail",
    "referredName",
    "referredPhone",
)
_PHI_FIELDS_LOWER = tuple(name.lower() for name in PHI_FIELDS)

SENSITIVE_PARAM_KEYS = ("password", "token", "key", "secret", "ssn", "captchatoken")
REDACTED = "[REDACTED]"

_RESOURCE_RE = re.compile(r"/api/(?:admin/)?([^/]+)(?:/([^/?]+))?")


def is_phi_route(path: str) -> bool:
    return any(path.startswith(route) for route in PHI_ROUTES)


def classify_action(method: str, path: str) -> AuditAction:
    """
    Map a request to an audit action.

    Path keywords win over the HTTP method:
        /login -> LOGIN, /logout -> LOGOUT, /export -> EXPORT, /print -> PRINT
    """
    if "/login" in path:
        return AuditAction.LOGIN
    if "/logout" in path:
        return AuditAction.LOGOUT
    if "/export" in path:
        return AuditAction.EXPORT
    if "/print" in path:
        return AuditAction.PRINT

    method = method.upper()
    if method == "POST":
        return AuditAction.CREATE
    if method in ("PUT", "PATCH"):
        return AuditAction.UPDATE
    if method == "DELETE":
        return AuditAction.DELETE
    return AuditAction.READ


def extract_resource(path: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract resource type and ID from an API path.

    Examples:
        /api/inquiries/42 -> ('inquiries', '42')
        /api/admin/caregivers -> ('caregivers', None)
        /about -> (None, None)
    """
    match = _RESOURCE_RE.search(path)
    if not match:
        return None, None
    return match.group(1), match.group(2) or None


def detect_phi_fields(body: Any) -> List[str]:
    """
    Dotted paths of body keys whose name contains a PHI field name.

    Nested objects are descended, lists are not. Any failure while walking
    degrades to "nothing detected".
    """
    if not isinstance(body, Mapping):
        return []

    detected: List[str] = []

    def visit(path, _node):
        if path:
            key = path[-1].lower()
            if any(field in key for field in _PHI_FIELDS_LOWER):
                detected.append(dotted(path))
        return False

    try:
        walk(body, (), visit, descend_sequences=False)
    except Exception as e:
        logger.warning("PHI field detection failed: %s", e)
        return []
    return detected


def sanitize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Redact query parameters whose name looks like a secret.
    """
    if not params:
        return {}

    sanitized = {}
    for key, value in params.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_PARAM_KEYS):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = value
    return sanitized


def session_fingerprint(session_key: Optional[str]) -> Optional[str]:
    """One-way identifier for a session; the key itself is a bearer credential."""
    if not session_key:
        return None
    return hashlib.sha256(session_key.encode("utf-8")).hexdigest()[:32]


def snapshot_actor(request: HttpRequest) -> Tuple[Actor, Optional[str]]:
    """
    Copy the actor and a session fingerprint out of the session.

    The session is read, never written; later changes in the same request do
    not alter the snapshot.
    """
    session = getattr(request, "session", None)
    if session is None:
        return Actor(user_id=None, role=ROLE_PUBLIC), None

    user_id = session.get("user_id")
    role = ROLE_ADMIN if session.get("is_authenticated") else ROLE_PUBLIC
    session_id = session_fingerprint(getattr(session, "session_key", None))
    return Actor(user_id=str(user_id) if user_id is not None else None, role=role), session_id
