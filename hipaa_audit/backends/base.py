from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol

from ..models import AuditEntry


class BaseAuditSink(Protocol):
    def write(self, entry: AuditEntry) -> None: ...


class AuditJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def canonical_json(payload: Any) -> str:
    """Stable one-line JSON: sorted keys, no padding, UTF-8 kept as is."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, cls=AuditJSONEncoder)
