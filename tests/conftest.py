"""Pytest configuration and shared fixtures"""
import pytest
from prometheus_client import CollectorRegistry

from kopia_exporter.metrics import BackupMetrics
from tests.helpers import FakeKopia


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return BackupMetrics(registry)


@pytest.fixture
def fake_kopia():
    return FakeKopia()
