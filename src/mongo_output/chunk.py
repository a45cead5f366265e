"""Buffered chunk interface.

The host buffer owns real chunks; the sink only needs a routing key and the
concatenated entry bytes produced by `MongoOutput.format`.
"""

from __future__ import annotations

import threading
from typing import Protocol


class Chunk(Protocol):
    """A buffered batch of formatted entries, delivered on flush."""

    @property
    def key(self) -> str | None:
        """Routing key the chunk was grouped by (the tag in tag-mapped mode)."""

    def read(self) -> bytes:
        """Return the concatenated formatted entries."""


class MemoryChunk:
    """In-memory chunk for tests, local debugging and the demo harness."""

    def __init__(self, key: str | None = None) -> None:
        """Create an empty chunk grouped under `key`."""
        self._key = key
        self._lock = threading.Lock()
        self._parts: list[bytes] = []
        self._size = 0

    @property
    def key(self) -> str | None:
        return self._key

    def append(self, data: bytes) -> None:
        """Append one formatted entry (thread-safe)."""
        with self._lock:
            self._parts.append(data)
            self._size += len(data)

    def read(self) -> bytes:
        with self._lock:
            return b"".join(self._parts)

    @property
    def bytesize(self) -> int:
        """Total size of the buffered entries in bytes."""
        return self._size

    def __len__(self) -> int:
        return len(self._parts)
