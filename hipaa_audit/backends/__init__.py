from typing import Any, Dict

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .base import BaseAuditSink, canonical_json

__all__ = ["BaseAuditSink", "canonical_json", "load_backend"]


def load_backend(cfg: Dict[str, Any]) -> BaseAuditSink:
    backend_path = cfg.get("AUDIT_LOG", {}).get("BACKEND")
    if not backend_path:
        raise ImproperlyConfigured("HOMECARE_SEC.AUDIT_LOG.BACKEND is not defined.")
    try:
        backend_cls = import_string(backend_path)
    except ImportError as exc:
        raise ImproperlyConfigured(f"Could not import audit backend {backend_path}") from exc
    return backend_cls(cfg)
