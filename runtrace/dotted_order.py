"""
Dotted order: the hierarchy key of a run.

Every run carries a key made of one segment per ancestor, joined by dots:

    20240919T171648521691Z0e01bf50-474d-4536-810f-67d3ee7ea3e7.20240919T171648523004Z9a1c...

A segment is the run's start time in a fixed-width, lexicographically
sortable form followed by its id. A parent's key is therefore a strict
prefix of all of its descendants' keys, and sorting the keys of one trace
as plain strings yields a depth-first, creation-ordered walk of the tree.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from uuid import UUID

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"
TIMESTAMP_WIDTH = 22
SEPARATOR = "."

_clock_lock = threading.Lock()
_last_timestamp: datetime | None = None


def utc_now() -> datetime:
    """
    Current UTC time, strictly increasing within this process.

    Runs created in the same microsecond, or across a backwards wall-clock
    step, would otherwise share or invert their timestamp segment.
    """
    global _last_timestamp
    now = datetime.now(timezone.utc)
    with _clock_lock:
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
    return now


def create_segment(start_time: datetime, run_id: UUID) -> str:
    """Build the key segment for one run."""
    if start_time.tzinfo is not None:
        start_time = start_time.astimezone(timezone.utc)
    return start_time.strftime(TIMESTAMP_FORMAT) + str(run_id)


def create_dotted_order(
    start_time: datetime,
    run_id: UUID,
    parent_dotted_order: str | None = None,
) -> str:
    """
    Build the full hierarchy key for a new run.

    Args:
        start_time: The run's start time
        run_id: The run's id
        parent_dotted_order: The parent's key, or None for a root run

    Returns:
        The segment alone for a root run, else ``parent + "." + segment``
    """
    segment = create_segment(start_time, run_id)
    if parent_dotted_order:
        return f"{parent_dotted_order}{SEPARATOR}{segment}"
    return segment


def parse_dotted_order(dotted_order: str) -> list[tuple[datetime, UUID]]:
    """
    Split a hierarchy key back into (start_time, run_id) pairs, root first.

    Raises:
        ValueError: If any segment is malformed
    """
    parsed = []
    for segment in dotted_order.split(SEPARATOR):
        if len(segment) <= TIMESTAMP_WIDTH:
            raise ValueError(f"Malformed dotted order segment: {segment!r}")
        timestamp = datetime.strptime(
            segment[:TIMESTAMP_WIDTH], TIMESTAMP_FORMAT
        ).replace(tzinfo=timezone.utc)
        parsed.append((timestamp, UUID(segment[TIMESTAMP_WIDTH:])))
    return parsed
