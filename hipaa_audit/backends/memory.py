from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from ..models import AuditEntry


class MemoryAuditSink:
    """Keeps entries in process memory; used by the test preset."""

    def __init__(self, cfg: Optional[Dict[str, Any]] = None) -> None:
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()

    def write(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> List[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
