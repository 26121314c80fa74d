"""
HIPAA audit trail middleware.
"""

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse
from django.utils.deprecation import MiddlewareMixin

from homecare.security.registry import pipeline_state

from .recorder import PendingAudit

logger = logging.getLogger(__name__)

PENDING_AUDIT_ATTR = "_hipaa_pending_audit"


def get_pending_audit(request: HttpRequest) -> Optional[PendingAudit]:
    return getattr(request, PENDING_AUDIT_ATTR, None)


class HIPAAAuditMiddleware(MiddlewareMixin):
    """
    Record one audit entry per request.

    Must sit after SessionMiddleware (the actor comes from the session) and
    before the geo and rate-limit stages so their rejections are audited too.
    The entry is opened in process_request and emitted from process_response;
    process_exception only remembers the error message.
    """

    def process_request(self, request: HttpRequest) -> None:
        cfg = pipeline_state.get_config()
        if not cfg.get("AUDIT_LOG", {}).get("ENABLED", True):
            return None

        try:
            pending = PendingAudit(request, pipeline_state.get_audit_sink())
        except Exception as e:
            logger.warning("Failed to open audit entry for %s %s: %s", request.method, request.path, e)
            return None

        setattr(request, PENDING_AUDIT_ATTR, pending)
        return None

    def process_exception(self, request: HttpRequest, exception: Exception) -> None:
        pending = get_pending_audit(request)
        if pending is not None:
            pending.record_error(str(exception) or exception.__class__.__name__)
        return None

    def process_response(self, request: HttpRequest, response: HttpResponse) -> HttpResponse:
        pending = get_pending_audit(request)
        if pending is None:
            return response

        try:
            pending.finalize(response.status_code)
        except Exception as e:
            logger.error("Failed to finalize audit entry: %s", e, exc_info=True)

        return response
