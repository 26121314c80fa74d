"""
Audit entry construction and emission.

A PendingAudit is opened when the request arrives (actor, resource and
sensitivity are fixed at that point) and finalized when the response is known.
Finalize is guarded so only the first call builds and emits an entry.
"""

import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple, Union

from django.http import HttpRequest

from homecare.security.registry import pipeline_state
from homecare.security.utils.request import get_body_or_empty, get_query_params

from .backends.base import BaseAuditSink
from .collectors import (
    classify_action,
    detect_phi_fields,
    extract_resource,
    is_phi_route,
    sanitize_params,
    snapshot_actor,
)
from .models import (
    AuditAction,
    AuditEntry,
    NetworkInfo,
    Outcome,
    RequestInfo,
    Sensitivity,
)

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def request_ip(request: HttpRequest) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        if ip:
            return ip
    return request.META.get("REMOTE_ADDR") or "unknown"


def network_info(request: HttpRequest) -> NetworkInfo:
    return NetworkInfo(
        ip_address=request_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT") or "unknown",
    )


def _sensitive_fields(request: HttpRequest) -> Tuple[str, ...]:
    try:
        return tuple(detect_phi_fields(get_body_or_empty(request)))
    except Exception as e:
        logger.warning("Could not scan request body for PHI fields: %s", e)
        return ()


class PendingAudit:
    """The request-start half of an audit entry, waiting for its outcome."""

    def __init__(self, request: HttpRequest, sink: BaseAuditSink) -> None:
        self.sink = sink
        self.started = time.monotonic()
        self.audit_id = str(uuid.uuid4())
        self.actor, self.session_id = snapshot_actor(request)

        path = request.path
        resource_type, resource_id = extract_resource(path)
        self.request_info = RequestInfo(
            method=request.method,
            path=path,
            resource_type=resource_type,
            resource_id=resource_id,
        )
        self.network = network_info(request)
        self.action = classify_action(request.method, path)
        self.sensitivity = Sensitivity(
            touches_sensitive_resource=is_phi_route(path),
            sensitive_field_names=_sensitive_fields(request),
        )
        self.metadata = {"query_params": sanitize_params(get_query_params(request))}

        self.error_message: Optional[str] = None
        self.entry: Optional[AuditEntry] = None
        self._finalized = False
        self._lock = threading.Lock()

    @property
    def finalized(self) -> bool:
        return self._finalized

    def record_error(self, error_message: str) -> None:
        if self.error_message is None:
            self.error_message = error_message

    def finalize(self, status_code: int) -> Optional[AuditEntry]:
        """
        Build the entry and hand it to the sink if it passes the volume filter.

        Only the first call has any effect; later calls return None.
        """
        with self._lock:
            if self._finalized:
                return None
            self._finalized = True

        latency_ms = int((time.monotonic() - self.started) * 1000)
        self.entry = AuditEntry(
            audit_id=self.audit_id,
            timestamp=_utc_now_iso(),
            actor=self.actor,
            session_id=self.session_id,
            request=self.request_info,
            network=self.network,
            action=self.action,
            sensitivity=self.sensitivity,
            outcome=Outcome.from_status(status_code, self.error_message),
            latency_ms=latency_ms,
            metadata=self.metadata,
        )
        if self.entry.should_persist:
            emit(self.entry, self.sink)
        return self.entry


def emit(entry: AuditEntry, sink: BaseAuditSink) -> None:
    try:
        sink.write(entry)
    except Exception as e:
        logger.error("Failed to write audit entry %s: %s", entry.audit_id, e, exc_info=True)


def log_phi_access(
    request: HttpRequest,
    action: Union[AuditAction, str],
    resource_type: str,
    resource_id: Optional[str],
    phi_fields: Iterable[str],
    success: bool,
    error_message: Optional[str] = None,
    sink: Optional[BaseAuditSink] = None,
) -> AuditEntry:
    """
    Emit a PHI access record outside the per-request flow.

    For sub-operations a single HTTP verb does not describe, e.g. replying to
    an inquiry from inside a POST handler. Always written, regardless of the
    volume filter.

    Example:
        log_phi_access(request, AuditAction.UPDATE, "inquiries", "42", ["email"], True)
    """
    if sink is None:
        sink = pipeline_state.get_audit_sink()

    actor, session_id = snapshot_actor(request)
    entry = AuditEntry(
        audit_id=str(uuid.uuid4()),
        timestamp=_utc_now_iso(),
        actor=actor,
        session_id=session_id,
        request=RequestInfo(
            method=request.method,
            path=request.path,
            resource_type=resource_type,
            resource_id=resource_id,
        ),
        network=network_info(request),
        action=AuditAction(action),
        sensitivity=Sensitivity(
            touches_sensitive_resource=True,
            sensitive_field_names=tuple(phi_fields),
        ),
        outcome=Outcome(
            status_code=200 if success else 500,
            success=success,
            error_message=error_message,
        ),
        latency_ms=0,
        metadata={},
    )
    emit(entry, sink)
    return entry
