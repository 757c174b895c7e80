import logging
import sys

from flask import Flask, jsonify
from prometheus_client import (
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

from kopia_exporter.config import ensure_directories, load_config
from kopia_exporter.errors import StartupError
from kopia_exporter.exporter import Reconciler, probe_connection
from kopia_exporter.kopia import KopiaCLI
from kopia_exporter.logging_setup import configure_logging
from kopia_exporter.metrics import BackupMetrics

logger = logging.getLogger("kopia_exporter.app")


# -----------------------------
# Flask Application
# -----------------------------
def create_app(registry):
    app = Flask(__name__)

    @app.route("/health")
    def api_health():
        return jsonify({"status": "ok"})

    @app.route("/metrics")
    def api_metrics():
        return generate_latest(registry), 200, {"Content-Type": CONTENT_TYPE_LATEST}

    return app


# -----------------------------
# Startup
# -----------------------------
def build(config):
    """Wire the collaborators together; nothing is started yet."""
    registry = CollectorRegistry()
    metrics = BackupMetrics(registry)
    cli = KopiaCLI(binary=config.kopia_binary, timeout=config.command_timeout)
    reconciler = Reconciler(cli, metrics, interval=config.poll_interval)
    return create_app(registry), metrics, cli, reconciler


def main():
    configure_logging()
    try:
        config = load_config()
        ensure_directories(config)
    except StartupError as e:
        logger.error("Error setting up exporter: %s", e)
        sys.exit(1)

    configure_logging(config.log_level, config.log_directory)
    logger.info("Loaded %r", config)

    app, metrics, cli, reconciler = build(config)

    probe_connection(cli, metrics, config.server_url, config.password)
    reconciler.start()

    logger.info("Starting Kopia exporter on %s:%d", config.host, config.port)
    app.run(host=config.host, port=config.port)


# -----------------------------
# Run Application
# -----------------------------
if __name__ == "__main__":
    main()
