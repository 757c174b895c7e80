import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Optional

from prometheus_client.core import GaugeMetricFamily

STATUS_SUCCESS = 1
STATUS_FAILURE = 0


@dataclass(frozen=True)
class MetricSample:
    status: int
    size_bytes: Optional[int] = None
    last_backup_unix_time: Optional[float] = None


@dataclass(frozen=True)
class MetricsSnapshot:
    repository_up: bool
    samples: Dict[str, MetricSample]


class BackupMetrics:
    """Thread-safe backup gauges, exposed as a Prometheus collector.

    Written by the reconciliation loop, read by every /metrics request.
    Per-source series are created on first observation and never removed.
    """

    def __init__(self, registry=None):
        self._lock = threading.RLock()
        self._repository_up = False
        self._samples: Dict[str, MetricSample] = {}
        if registry is not None:
            registry.register(self)

    @contextmanager
    def transaction(self):
        """Hold the lock across several updates so readers never see half a pass."""
        with self._lock:
            yield self

    def set_success(self, source: str, size_bytes: int, last_backup_unix_time: float):
        with self._lock:
            self._samples[source] = MetricSample(
                status=STATUS_SUCCESS,
                size_bytes=size_bytes,
                last_backup_unix_time=last_backup_unix_time,
            )

    def set_failure(self, source: str):
        # size and timestamp keep their last known values
        with self._lock:
            previous = self._samples.get(source)
            if previous is None:
                self._samples[source] = MetricSample(status=STATUS_FAILURE)
            else:
                self._samples[source] = replace(previous, status=STATUS_FAILURE)

    def set_repository_status(self, up: bool):
        with self._lock:
            self._repository_up = bool(up)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(repository_up=self._repository_up, samples=dict(self._samples))

    def collect(self):
        snap = self.snapshot()

        status = GaugeMetricFamily(
            "kopia_backup_status",
            "Status of the last backup (0=error, 1=success)",
            labels=["source"],
        )
        size = GaugeMetricFamily(
            "kopia_backup_size_bytes",
            "Size of the last backup in bytes",
            labels=["source"],
        )
        last_backup = GaugeMetricFamily(
            "kopia_last_backup_timestamp",
            "Timestamp of the last backup",
            labels=["source"],
        )
        for source, sample in sorted(snap.samples.items()):
            status.add_metric([source], sample.status)
            if sample.size_bytes is not None:
                size.add_metric([source], sample.size_bytes)
            if sample.last_backup_unix_time is not None:
                last_backup.add_metric([source], sample.last_backup_unix_time)

        repository = GaugeMetricFamily(
            "kopia_repository_status",
            "Repository connection status (0=disconnected, 1=connected)",
            value=1 if snap.repository_up else 0,
        )
        return [status, size, last_backup, repository]
