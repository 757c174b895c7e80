"""Fakes and payload builders shared by the tests"""
import json

from kopia_exporter.errors import InventoryError


class FakeKopia:
    """Stands in for KopiaCLI; replays queued listings or errors"""

    def __init__(self, responses=None, connect_error=None):
        self.responses = list(responses or [])
        self.connect_error = connect_error
        self.list_calls = 0
        self.connect_calls = []

    def queue(self, response):
        self.responses.append(response)

    def list_snapshots(self):
        self.list_calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def connect(self, server_url, password):
        self.connect_calls.append((server_url, password))
        if self.connect_error is not None:
            raise self.connect_error
        return b"Connected to repository API Server.\n"


def listing(*snapshots):
    return json.dumps(list(snapshots)).encode()


def snapshot(snapshot_id, source, end_time, size, **extra):
    entry = {"id": snapshot_id, "source": source, "endTime": end_time, "size": size}
    entry.update(extra)
    return entry


def fetch_error(output=b"ERROR unable to connect to repository"):
    return InventoryError("kopia snapshot list --json --no-progress exited with status 1",
                          output=output, returncode=1)


