"""MongoDB output sink: lifecycle and host buffer hooks.

The host buffer calls, in order:

- `configure(conf)` once, with the raw options mapping.
- `start()` once, which opens and verifies the shared client.
- `chunk_key(tag)` + `format(tag, time, record)` per incoming event.
- `write(chunk)` per flush, possibly from several threads at once.
- `shutdown()` once, which closes the client.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pymongo import MongoClient

from config import ConfigError, MongoOutputConfig

from .chunk import Chunk
from .chunk_limit import apply_chunk_limit
from .naming import CollectionNameResolver
from .options import ClientOptions, build_client_options
from .records import EventTime, RecordExtractor, encode_entry
from .sanitizer import KeySanitizer, Record
from .writer import BulkWriter, CollectionOptions, CollectionTarget

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


def configure_driver_logger(level: str) -> None:
    """Set the level of the `pymongo` driver loggers."""
    logging.getLogger("pymongo").setLevel(level)


class MongoOutput:
    """Buffered output that writes each flushed chunk with one bulk insert."""

    def __init__(self, *, client_factory: ClientFactory = MongoClient, log: logging.Logger | None = None) -> None:
        """Create an unconfigured sink.

        Args:
            client_factory: Callable building the client from `MongoClient` keyword
                arguments (swapped for a fake in tests).
            log: Logger for sink warnings; defaults to this module's logger.
        """
        self._client_factory = client_factory
        self._log = log or logger

        self._config: MongoOutputConfig | None = None
        self._client_options: ClientOptions | None = None
        self._collection_options = CollectionOptions()
        self._resolver: CollectionNameResolver | None = None
        self._extractor: RecordExtractor | None = None
        self._sanitizer = KeySanitizer()

        self._client: Any | None = None
        self._writer: BulkWriter | None = None

    @property
    def config(self) -> MongoOutputConfig:
        if self._config is None:
            raise RuntimeError("MongoOutput is not configured")
        return self._config

    @property
    def client_options(self) -> ClientOptions:
        if self._client_options is None:
            raise RuntimeError("MongoOutput is not configured")
        return self._client_options

    @property
    def collection_options(self) -> CollectionOptions:
        return self._collection_options

    def configure(self, conf: Mapping[str, Any]) -> None:
        """Validate options and assemble everything that does not need the network.

        Raises:
            ConfigError: when an option is missing, malformed or inconsistent.
        """
        try:
            conf = apply_chunk_limit(conf, self._log)
            config = MongoOutputConfig.model_validate(conf)
            configure_driver_logger(config.mongo_log_level)
        except ValueError as exc:  # pydantic.ValidationError included
            raise ConfigError(str(exc)) from exc

        self._config = config
        self._client_options = build_client_options(config)
        self._collection_options = CollectionOptions(
            capped=config.capped,
            size=config.capped_size,
            max=config.capped_max,
        )
        self._resolver = CollectionNameResolver(default=config.collection, remove_tag_prefix=config.remove_tag_prefix)
        self._extractor = RecordExtractor(include_time_key=config.include_time_key, time_key=config.time_key)
        self._sanitizer = KeySanitizer(
            dot_replacement=config.replace_dot_in_key_with,
            dollar_replacement=config.replace_dollar_in_key_with,
        )

        self._log.debug("Setup mongo configuration: mode = %s", "tag mapped" if config.tag_mapped else "normal")

    def start(self) -> None:
        """Open the shared client and verify connectivity and credentials.

        Connection and authentication failures propagate; the sink does not start.
        """
        options = self.client_options
        client = self._client_factory(**options.to_client_kwargs())
        try:
            # The driver connects lazily; ping forces the handshake (and auth).
            client.admin.command("ping")
        except Exception:
            client.close()
            raise
        self._client = client
        self._writer = BulkWriter(client[options.database], sanitizer=self._sanitizer, log=self._log)
        self._log.info("Connected to mongodb %s:%d database=%s", options.host, options.port, options.database)

    def shutdown(self) -> None:
        """Close the shared client. Safe to call more than once."""
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._writer = None
        self._log.info("Closed mongodb client")

    def chunk_key(self, tag: str) -> str | None:
        """Key the host buffer groups events by: the tag in tag-mapped mode, else nothing."""
        return tag if self.config.tag_mapped else None

    def format(self, tag: str, time: EventTime | None, record: Record) -> bytes:
        """Encode one event as a chunk entry."""
        if self.config.include_tag_key:
            record = {**record, self.config.tag_key: tag}
        return encode_entry(time, record)

    def resolve_target(self, chunk: Chunk) -> CollectionTarget:
        """Pick the collection for a chunk (its key in tag-mapped mode, else the configured one)."""
        if self._resolver is None:
            raise RuntimeError("MongoOutput is not configured")
        name = chunk.key if self.config.tag_mapped else self.config.collection
        return CollectionTarget(name=self._resolver.resolve(name), options=self._collection_options)

    def write(self, chunk: Chunk) -> list[Record]:
        """Flush one chunk and return the records submitted for it."""
        if self._writer is None or self._extractor is None:
            raise RuntimeError("MongoOutput is not started")
        target = self.resolve_target(chunk)
        records = self._extractor.extract(chunk)
        return self._writer.write(target, records)
