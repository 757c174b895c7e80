import enum
import logging
import threading
import time

from .errors import InventoryError, ParseError
from .inventory import parse_snapshots

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "default"
POLL_INTERVAL = 60


class PollOutcome(enum.Enum):
    SUCCESS = "success"
    FETCH_FAILED = "fetch_failed"
    PARSE_FAILED = "parse_failed"


def probe_connection(cli, metrics, server_url, password) -> bool:
    """Connect kopia to the repository server once at startup.

    A failed connect is logged and reported through the repository status
    gauge; it never stops the exporter.
    """
    try:
        cli.connect(server_url, password)
    except InventoryError as e:
        logger.error("Error connecting to Kopia server %s: %s\nOutput: %s", server_url, e, e.output_text())
        metrics.set_repository_status(False)
        return False

    logger.info("Successfully connected to Kopia server %s", server_url)
    metrics.set_repository_status(True)
    return True


class Reconciler:
    """Polls the snapshot listing and keeps the backup gauges in line with it."""

    def __init__(self, cli, metrics, interval=POLL_INTERVAL, sleep=time.sleep):
        self.cli = cli
        self.metrics = metrics
        self.interval = interval
        self._sleep = sleep

    def run_once(self) -> PollOutcome:
        try:
            raw = self.cli.list_snapshots()
        except InventoryError as e:
            logger.error("Error executing kopia: %s\nOutput: %s", e, e.output_text())
            with self.metrics.transaction():
                self.metrics.set_repository_status(False)
                self.metrics.set_failure(FALLBACK_SOURCE)
            return PollOutcome.FETCH_FAILED

        try:
            snapshots = parse_snapshots(raw)
        except ParseError as e:
            # leave the previous state visible, this is not a connectivity problem
            logger.error("Error parsing snapshot list: %s", e)
            return PollOutcome.PARSE_FAILED

        with self.metrics.transaction():
            self.metrics.set_repository_status(True)
            for snapshot in snapshots:
                self.metrics.set_success(snapshot.source, snapshot.size, snapshot.end_timestamp)

        logger.debug(
            "Reconciled %d snapshots across %d sources",
            len(snapshots), len({s.source for s in snapshots}),
        )
        return PollOutcome.SUCCESS

    def run_forever(self):
        logger.info("Polling kopia snapshots every %s seconds", self.interval)
        while True:
            try:
                self.run_once()
            except Exception:
                logger.exception("Unexpected error in reconciliation pass")
            self._sleep(self.interval)

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run_forever, name="kopia-reconciler", daemon=True)
        thread.start()
        return thread
