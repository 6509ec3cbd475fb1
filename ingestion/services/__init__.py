"""Ingestion pipeline: enrichment, readiness gating and sidecar publishing."""
from .counters import MessageCounters
from .enricher import enrich
from .processor import MessageProcessor
from .publisher import PublishOutcome, PublishResult, SidecarPublisher
from .readiness import ReadinessGate, ReadinessState
from .retry import BackoffSchedule
from .sidecar import SidecarClient

__all__ = [
    "BackoffSchedule",
    "MessageCounters",
    "MessageProcessor",
    "PublishOutcome",
    "PublishResult",
    "ReadinessGate",
    "ReadinessState",
    "SidecarClient",
    "SidecarPublisher",
    "enrich",
]
