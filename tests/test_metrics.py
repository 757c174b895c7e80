"""Unit tests for the backup metrics collector"""
import threading

from prometheus_client import generate_latest

from kopia_exporter.metrics import MetricSample


def value(registry, name, source=None):
    labels = {"source": source} if source is not None else None
    return registry.get_sample_value(name, labels)


class TestBackupMetrics:

    def test_starts_disconnected_with_no_sources(self, metrics, registry):
        snap = metrics.snapshot()
        assert snap.repository_up is False
        assert snap.samples == {}
        assert value(registry, "kopia_repository_status") == 0

    def test_set_success(self, metrics, registry):
        metrics.set_success("docs", 1000, 1704067200)

        assert value(registry, "kopia_backup_status", "docs") == 1
        assert value(registry, "kopia_backup_size_bytes", "docs") == 1000
        assert value(registry, "kopia_last_backup_timestamp", "docs") == 1704067200

    def test_set_failure_on_new_source_only_sets_status(self, metrics, registry):
        metrics.set_failure("default")

        assert value(registry, "kopia_backup_status", "default") == 0
        assert value(registry, "kopia_backup_size_bytes", "default") is None
        assert value(registry, "kopia_last_backup_timestamp", "default") is None

    def test_set_failure_keeps_last_known_values(self, metrics):
        metrics.set_success("docs", 1000, 1704067200)
        metrics.set_failure("docs")

        assert metrics.snapshot().samples["docs"] == MetricSample(
            status=0, size_bytes=1000, last_backup_unix_time=1704067200
        )

    def test_repository_status(self, metrics, registry):
        metrics.set_repository_status(True)
        assert value(registry, "kopia_repository_status") == 1
        metrics.set_repository_status(False)
        assert value(registry, "kopia_repository_status") == 0

    def test_snapshot_is_detached(self, metrics):
        metrics.set_success("docs", 1, 1)
        snap = metrics.snapshot()
        metrics.set_success("mail", 2, 2)

        assert list(snap.samples) == ["docs"]

    def test_exposition_format(self, metrics, registry):
        metrics.set_success("docs", 1000, 1704067200)
        metrics.set_repository_status(True)

        text = generate_latest(registry).decode()
        assert "# TYPE kopia_backup_status gauge" in text
        assert 'kopia_backup_status{source="docs"} 1.0' in text
        assert 'kopia_backup_size_bytes{source="docs"} 1000.0' in text
        assert "kopia_repository_status 1.0" in text

    def test_transaction_blocks_readers_until_done(self, metrics):
        started = threading.Event()
        seen = []

        def reader():
            started.set()
            seen.append(metrics.snapshot())

        with metrics.transaction():
            metrics.set_repository_status(True)
            metrics.set_success("docs", 1, 1)
            thread = threading.Thread(target=reader)
            thread.start()
            started.wait(timeout=5)
            assert seen == []
            metrics.set_success("mail", 2, 2)
        thread.join(timeout=5)

        assert len(seen) == 1
        assert seen[0].repository_up is True
        assert set(seen[0].samples) == {"docs", "mail"}
