"""Tests for Prometheus metrics."""
from types import SimpleNamespace
from unittest.mock import patch
from ingestion.metrics import Metrics

LABELS = {"service": "ingestion-service"}


def configure_process(process_cls, rss: int, cpu_user: float, fds: int):
    process = process_cls.return_value
    process.cpu_times.return_value = SimpleNamespace(user=cpu_user, system=0.5)
    process.memory_info.return_value = SimpleNamespace(rss=rss)
    process.num_fds.return_value = fds
    return process


def test_process_metrics_refresh_on_every_collect():
    with patch("ingestion.metrics.psutil.Process") as process_cls:
        configure_process(process_cls, rss=1000, cpu_user=1.0, fds=7)
        metrics = Metrics()

        assert metrics.registry.get_sample_value("process_resident_memory_bytes", LABELS) == 1000
        assert metrics.registry.get_sample_value("process_cpu_seconds_total", LABELS) == 1.5
        assert metrics.registry.get_sample_value("process_open_fds", LABELS) == 7

        configure_process(process_cls, rss=4096, cpu_user=3.0, fds=9)

        assert metrics.registry.get_sample_value("process_resident_memory_bytes", LABELS) == 4096
        assert metrics.registry.get_sample_value("process_cpu_seconds_total", LABELS) == 3.5
        assert metrics.registry.get_sample_value("process_open_fds", LABELS) == 9


def test_process_metrics_without_fd_support():
    with patch("ingestion.metrics.psutil.Process") as process_cls:
        process = configure_process(process_cls, rss=1000, cpu_user=1.0, fds=0)
        process.num_fds.side_effect = AttributeError("num_fds")
        metrics = Metrics()

        assert metrics.registry.get_sample_value("process_resident_memory_bytes", LABELS) == 1000
        assert metrics.registry.get_sample_value("process_open_fds", LABELS) is None


def test_process_metrics_from_real_process():
    metrics = Metrics()
    rss = metrics.registry.get_sample_value("process_resident_memory_bytes", LABELS)
    assert rss is not None and rss > 0


def test_publish_outcomes():
    metrics = Metrics()
    metrics.record_publish("published", 1)
    metrics.record_publish("exhausted", 3)

    assert metrics.registry.get_sample_value("ingestion_publish_total", {"outcome": "published"}) == 1
    assert metrics.registry.get_sample_value("ingestion_publish_attempts_sum") == 4
