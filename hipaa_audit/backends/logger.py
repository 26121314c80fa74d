from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..models import AuditEntry
from .base import canonical_json

TRAIL_LOGGER = "hipaa_audit.trail"


class LoggingAuditSink:
    """
    Writes one ``[HIPAA_AUDIT] {json}`` line per entry to the audit trail logger.

    Where the line ends up (stdout, a file, a log shipper) is decided by the
    LOGGING setting, not here.
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None) -> None:
        self.logger = logging.getLogger(TRAIL_LOGGER)

    def write(self, entry: AuditEntry) -> None:
        self.logger.info("[HIPAA_AUDIT] %s", canonical_json(entry.to_dict()))
