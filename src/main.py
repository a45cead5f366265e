"""Demo entrypoint wiring the MongoDB output sink to an in-memory buffer.

This module contains a small, end-to-end "smoke test" that:

- Loads sink options from the environment (`MONGO_*`, see `config.load_config`).
- Configures and starts the sink against a real MongoDB server.
- Formats a handful of sample events into per-key chunks.
- Flushes the chunks concurrently, the way a host buffer drains several queues.

It is **not** a buffering framework; it is a manual integration harness.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

from config import load_config
from mongo_output import MemoryChunk, MongoOutput

logger = logging.getLogger(__name__)

Event = tuple[str, float, dict[str, Any]]


def buffer_events(output: MongoOutput, events: Iterable[Event]) -> list[MemoryChunk]:
    """Format events and group them into chunks by the sink's chunk key."""
    chunks: dict[str | None, MemoryChunk] = {}
    for tag, event_time, record in events:
        key = output.chunk_key(tag)
        chunk = chunks.get(key)
        if chunk is None:
            chunk = chunks[key] = MemoryChunk(key)
        chunk.append(output.format(tag, event_time, record))
    return list(chunks.values())


async def flush_all(output: MongoOutput, chunks: Iterable[MemoryChunk]) -> list[list[dict[str, Any]]]:
    """Flush chunks concurrently; each `write` runs in a worker thread."""
    return await asyncio.gather(*(asyncio.to_thread(output.write, chunk) for chunk in chunks))


def _sample_events() -> list[Event]:
    now = time.time()
    return [
        ("app.web.access", now, {"path": "/", "status": 200, "headers": {"x.request.id": "r1"}}),
        ("app.web.access", now, {"path": "/login", "status": 302, "$meta": {"user.id": 7}}),
        ("app.worker.jobs", now, {"job": "reindex", "attempt": 1}),
        ("...", now, {"note": "lands in the default collection in tag-mapped mode"}),
    ]


async def run_demo() -> None:
    """Configure, start, flush the sample events and shut down."""
    conf: dict[str, Any] = load_config()
    conf.setdefault("replace_dot_in_key_with", "_")
    conf.setdefault("replace_dollar_in_key_with", "_")

    output = MongoOutput()
    output.configure(conf)
    output.start()
    try:
        chunks = buffer_events(output, _sample_events())
        results = await flush_all(output, chunks)
        for chunk, records in zip(chunks, results):
            logger.info("Flushed %d record(s) for chunk key %r", len(records), chunk.key)
    finally:
        output.shutdown()


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
