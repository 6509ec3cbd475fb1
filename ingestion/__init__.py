"""Ingestion service: accepts simulated events and republishes them through a pub/sub sidecar."""

__version__ = "1.0.0"
