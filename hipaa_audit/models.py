"""
HIPAA audit entry model.

One immutable AuditEntry per request records WHO accessed WHAT and WHEN
(HIPAA Technical Safeguard: Audit Controls, 45 CFR 164.312(b)).
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class AuditAction(str, Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EXPORT = "EXPORT"
    PRINT = "PRINT"


ROLE_ADMIN = "admin"
ROLE_PUBLIC = "public"


@dataclass(frozen=True)
class Actor:
    user_id: Optional[str]
    role: str


@dataclass(frozen=True)
class RequestInfo:
    method: str
    path: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None


@dataclass(frozen=True)
class NetworkInfo:
    ip_address: str
    user_agent: str


@dataclass(frozen=True)
class Sensitivity:
    touches_sensitive_resource: bool
    sensitive_field_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Outcome:
    status_code: int
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def from_status(cls, status_code: int, error_message: Optional[str] = None) -> "Outcome":
        return cls(status_code=status_code, success=status_code < 400, error_message=error_message)


@dataclass(frozen=True)
class AuditEntry:
    audit_id: str
    timestamp: str
    actor: Actor
    session_id: Optional[str]
    request: RequestInfo
    network: NetworkInfo
    action: AuditAction
    sensitivity: Sensitivity
    outcome: Outcome
    latency_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def should_persist(self) -> bool:
        """
        Routine successful reads of non-sensitive resources are not persisted.
        """
        return (
            self.sensitivity.touches_sensitive_resource
            or not self.outcome.success
            or self.action != AuditAction.READ
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        data["sensitivity"]["sensitive_field_names"] = list(self.sensitivity.sensitive_field_names)
        return data

    def __str__(self) -> str:
        return f"{self.action.value} {self.request.method} {self.request.path} - {self.outcome.status_code}"
