"""
Prometheus metrics for the ingestion service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector
import psutil
import os


class ProcessCollector(Collector):
    """CPU, memory and file descriptors of this process, sampled at collect time."""

    def __init__(self, service_name: str):
        self.service_name = service_name

    def collect(self):
        try:
            process = psutil.Process(os.getpid())
            cpu_times = process.cpu_times()
            rss = process.memory_info().rss
        except psutil.Error:
            return

        cpu = CounterMetricFamily(
            "process_cpu_seconds",
            "Total CPU time consumed by process",
            labels=["service"],
        )
        cpu.add_metric([self.service_name], cpu_times.user + cpu_times.system)
        yield cpu

        memory = GaugeMetricFamily(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            labels=["service"],
        )
        memory.add_metric([self.service_name], rss)
        yield memory

        try:
            num_fds = process.num_fds()
        except (AttributeError, psutil.Error):
            # num_fds() not available on all platforms
            return
        fds = GaugeMetricFamily(
            "process_open_fds",
            "Number of open file descriptors",
            labels=["service"],
        )
        fds.add_metric([self.service_name], num_fds)
        yield fds


class Metrics:
    """
    Centralized metrics for the ingestion service.
    """

    def __init__(self, service_name: str = "ingestion-service", version: str = "1.0.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            ["service"],
            registry=self.registry,
        )
        self.http_requests_active.labels(service=service_name).set(0)

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Ingestion pipeline
        self.events_enriched_total = Counter(
            "ingestion_events_enriched_total",
            "Total events enriched",
            ["event_type"],
            registry=self.registry,
        )

        self.publish_total = Counter(
            "ingestion_publish_total",
            "Sidecar publish calls by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.publish_attempts = Histogram(
            "ingestion_publish_attempts",
            "HTTP attempts made per published event",
            buckets=(1, 2, 3, 5, 10),
            registry=self.registry,
        )

        self.sidecar_readiness = Gauge(
            "ingestion_sidecar_readiness",
            "Sidecar readiness latch (1 for the current state)",
            ["state"],
            registry=self.registry,
        )

        # System Metrics
        self._setup_process_metrics()

    def _setup_process_metrics(self):
        """Register process-level metrics, read from psutil on every scrape."""
        self.process_collector = ProcessCollector(self.service_name)
        self.registry.register(self.process_collector)

    def record_event_enriched(self, event_type: str):
        self.events_enriched_total.labels(event_type=event_type).inc()

    def record_publish(self, outcome: str, attempts: int):
        """Record the outcome of one publish call."""
        self.publish_total.labels(outcome=outcome).inc()
        self.publish_attempts.observe(attempts)

    def set_readiness(self, state: str, all_states):
        for s in all_states:
            self.sidecar_readiness.labels(state=s).set(1 if s == state else 0)
