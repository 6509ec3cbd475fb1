"""
Health check endpoints for liveness and readiness checks.

Both report healthy as soon as the process serves requests; they are not
tied to the sidecar readiness gate.
"""
from datetime import datetime, timezone
from typing import Dict, Any


class HealthChecker:
    """
    Health checker for the ingestion service.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can the service handle traffic?)
    """

    def __init__(self, service_name: str = "ingestion-service", version: str = "1.0.0"):
        self.service_name = service_name
        self.version = version

    def _status(self, status: str) -> Dict[str, Any]:
        return {
            "status": status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def liveness(self) -> Dict[str, Any]:
        return self._status("healthy")

    def readiness(self) -> Dict[str, Any]:
        return self._status("ready")
