"""Prometheus exporter for Kopia snapshot inventory."""

__version__ = "0.1.0"
