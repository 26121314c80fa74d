"""
HIPAA audit trail.

Builds one AuditEntry per request (who, what, when, outcome) and writes the
ones that touch PHI, fail, or change state to the configured sink.
"""

__all__ = ["models", "collectors", "recorder", "middleware", "backends"]
