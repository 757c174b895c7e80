"""Decoding of ``kopia snapshot list --json`` output.

The listing is a JSON array of snapshot manifests. Only the fields the
exporter needs are read; anything else in a manifest is ignored. A record
missing a required field fails the whole listing.
"""
import datetime
import json
import math
from dataclasses import dataclass
from typing import List, Optional

from dateutil import parser as dateparser

from .errors import ParseError

REQUIRED_FIELDS = ("id", "source", "endTime")
MAX_SIZE = 2**63 - 1


@dataclass(frozen=True)
class SnapshotRecord:
    id: str
    source: str
    end_time: datetime.datetime
    size: int
    start_time: Optional[datetime.datetime] = None

    @property
    def end_timestamp(self) -> int:
        return math.floor(self.end_time.timestamp())


def parse_iso(ts: str) -> datetime.datetime:
    dt = dateparser.isoparse(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def format_source(source) -> str:
    """Kopia reports sources as {host, userName, path}; render them as user@host:path."""
    if isinstance(source, str):
        if not source:
            raise ParseError("empty snapshot source")
        return source
    if isinstance(source, dict):
        host = source.get("host")
        path = source.get("path")
        if not isinstance(host, str) or not isinstance(path, str):
            raise ParseError(f"snapshot source needs host and path: {source!r}")
        user = source.get("userName")
        prefix = f"{user}@{host}" if user else host
        return f"{prefix}:{path}"
    raise ParseError(f"unsupported snapshot source: {source!r}")


def _timestamp(entry, key, snapshot_id):
    value = entry[key]
    if not isinstance(value, str):
        raise ParseError(f"snapshot {snapshot_id}: {key} is not a string")
    try:
        return parse_iso(value)
    except (ValueError, OverflowError) as e:
        raise ParseError(f"snapshot {snapshot_id}: bad {key} {value!r}: {e}") from e


def _size(entry, snapshot_id):
    if "size" in entry:
        size = entry["size"]
    else:
        # native kopia manifests keep the size in the root directory summary
        size = ((entry.get("rootEntry") or {}).get("summ") or {}).get("size")
        if size is None:
            raise ParseError(f"snapshot {snapshot_id}: missing size")
    if isinstance(size, bool) or not isinstance(size, int) or not 0 <= size <= MAX_SIZE:
        raise ParseError(f"snapshot {snapshot_id}: invalid size {size!r}")
    return size


def parse_record(entry) -> SnapshotRecord:
    if not isinstance(entry, dict):
        raise ParseError(f"snapshot entry is not an object: {entry!r}")

    missing = [f for f in REQUIRED_FIELDS if f not in entry]
    if missing:
        raise ParseError(f"snapshot entry missing {', '.join(missing)}")

    snapshot_id = entry["id"]
    if not isinstance(snapshot_id, str) or not snapshot_id:
        raise ParseError(f"invalid snapshot id {snapshot_id!r}")

    start_time = None
    if entry.get("startTime") is not None:
        start_time = _timestamp(entry, "startTime", snapshot_id)

    return SnapshotRecord(
        id=snapshot_id,
        source=format_source(entry["source"]),
        end_time=_timestamp(entry, "endTime", snapshot_id),
        size=_size(entry, snapshot_id),
        start_time=start_time,
    )


def parse_snapshots(raw) -> List[SnapshotRecord]:
    """Decode a snapshot listing, preserving the order Kopia reported."""
    try:
        data = json.loads(raw)
    except (ValueError, TypeError) as e:
        raise ParseError(f"invalid JSON from kopia: {e}") from e

    if not isinstance(data, list):
        raise ParseError(f"expected a JSON array of snapshots, got {type(data).__name__}")

    return [parse_record(entry) for entry in data]
