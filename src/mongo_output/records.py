"""Chunk entry encoding and record extraction.

Each buffered entry is one BSON document `{"time": <time>, "record": <record>}`.
BSON documents carry their own length prefix, so a chunk is simply the
concatenation of entries and can be decoded with `bson.decode_iter`.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, NamedTuple

import bson
from bson.codec_options import CodecOptions

from .chunk import Chunk
from .sanitizer import Record

EventTime = datetime | float | int

_CODEC_OPTIONS: CodecOptions = CodecOptions(tz_aware=True, tzinfo=timezone.utc)


class RecordFormatError(ValueError):
    """Raised when a chunk entry cannot be turned into a storable record."""


class ChunkEntry(NamedTuple):
    time: EventTime | None
    record: Record


def encode_entry(time: EventTime | None, record: Record) -> bytes:
    """Encode a `(time, record)` pair as one length-prefixed BSON document."""
    return bson.encode({"time": time, "record": record})


def iter_entries(data: bytes) -> Iterator[ChunkEntry]:
    """Decode concatenated entries in order."""
    for doc in bson.decode_iter(data, codec_options=_CODEC_OPTIONS):
        record = doc.get("record")
        if not isinstance(record, dict):
            raise RecordFormatError(f"chunk entry has no record document: {doc!r}")
        yield ChunkEntry(time=doc.get("time"), record=record)


def to_datetime(value: Any) -> datetime:
    """Convert epoch seconds (or an existing datetime) to an aware UTC datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    raise RecordFormatError(f"event time must be epoch seconds or a datetime. Got: {value!r}")


class RecordExtractor:
    """Turns a buffered chunk into the ordered list of records to insert."""

    def __init__(self, *, include_time_key: bool = True, time_key: str = "time") -> None:
        self._include_time_key = include_time_key
        self._time_key = time_key

    def extract(self, chunk: Chunk) -> list[Record]:
        records: list[Record] = []
        for time, record in iter_entries(chunk.read()):
            if self._include_time_key:
                # Prefer the carried event time; fall back to the record's own value.
                event_time = time if time is not None else record.get(self._time_key)
                if event_time is None:
                    raise RecordFormatError(f"no event time for record (time_key={self._time_key!r})")
                record[self._time_key] = to_datetime(event_time)
            records.append(record)
        return records
