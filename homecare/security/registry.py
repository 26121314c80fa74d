from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from hipaa_audit.backends.base import BaseAuditSink

    from .geo import GeoClassifier
    from .throttling import RateLimiterStore


@dataclass
class _PipelineState:
    config: Dict[str, Any]
    rate_store: "RateLimiterStore"
    geo_classifier: "GeoClassifier"
    audit_sink: "BaseAuditSink"


class _PipelineStateHolder:
    """
    Process-wide handle on the collaborators injected at startup.

    Middleware look their stores up here on every request instead of owning
    them, so a test (or a multi-instance deployment) can swap a store without
    touching call sites.
    """

    def __init__(self) -> None:
        self._state: Optional[_PipelineState] = None

    def set(
        self,
        config: Dict[str, Any],
        rate_store: "RateLimiterStore",
        geo_classifier: "GeoClassifier",
        audit_sink: "BaseAuditSink",
    ) -> None:
        self._state = _PipelineState(
            config=config,
            rate_store=rate_store,
            geo_classifier=geo_classifier,
            audit_sink=audit_sink,
        )

    def clear(self) -> None:
        self._state = None

    @property
    def configured(self) -> bool:
        return self._state is not None

    def _require(self) -> _PipelineState:
        if self._state is None:
            from .pipeline import configure_pipeline

            configure_pipeline()
        return self._state

    def get_config(self) -> Dict[str, Any]:
        return self._require().config

    def get_rate_store(self) -> "RateLimiterStore":
        return self._require().rate_store

    def get_geo_classifier(self) -> "GeoClassifier":
        return self._require().geo_classifier

    def get_audit_sink(self) -> "BaseAuditSink":
        return self._require().audit_sink


pipeline_state = _PipelineStateHolder()
