"""Bulk insert of a chunk's records into a MongoDB collection.

Failure policy (lossy on partial failure): a `BulkWriteError` or a malformed
request is logged as a warning and the chunk is reported as written. Rejected
documents are not retried, so one poison document cannot wedge the buffer in a
retry loop. Any other error (network, server selection, auth) propagates and
the host buffer retries the whole chunk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from bson.errors import InvalidDocument
from pymongo.database import Database
from pymongo.errors import BulkWriteError, CollectionInvalid

from .sanitizer import KeySanitizer, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionOptions:
    capped: bool = False
    size: int | None = None
    max: int | None = None

    def __post_init__(self) -> None:
        if self.capped and self.size is None:
            raise ValueError("capped collections require a size")

    def create_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for `Database.create_collection`."""
        if not self.capped:
            return {}
        kwargs: dict[str, Any] = {"capped": True, "size": self.size}
        if self.max is not None:
            kwargs["max"] = self.max
        return kwargs


@dataclass(frozen=True)
class CollectionTarget:
    name: str
    options: CollectionOptions = field(default_factory=CollectionOptions)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("collection name must not be empty")


class BulkWriter:
    """Sanitizes records and inserts them with one `insert_many` per chunk."""

    def __init__(
        self,
        database: Database,
        *,
        sanitizer: KeySanitizer | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """Create a writer bound to a database handle of the shared client."""
        self._db = database
        self._sanitizer = sanitizer or KeySanitizer()
        self._log = log or logger
        # Capped collections already created or seen by this writer.
        self._ensured: set[str] = set()

    def write(self, target: CollectionTarget, records: list[Record]) -> list[Record]:
        """Insert `records` into `target` and return the submitted records.

        Returns normally on partial failure; see the module docstring.
        """
        records = self._sanitizer.sanitize_all(records)
        if not records:
            self._log.warning("Skipping insert into %s: no records in chunk", target.name)
            return records

        try:
            self._ensure_collection(target)
            self._db[target.name].insert_many(records)
        except BulkWriteError as exc:
            details = exc.details or {}
            self._log.warning(
                "Bulk insert into %s partially failed: inserted=%s write_errors=%d first_error=%s",
                target.name,
                details.get("nInserted"),
                len(details.get("writeErrors", [])),
                (details.get("writeErrors") or [{}])[0].get("errmsg"),
            )
        except (TypeError, InvalidDocument) as exc:
            self._log.warning("Malformed bulk insert into %s: %s", target.name, exc)
        return records

    def _ensure_collection(self, target: CollectionTarget) -> None:
        """Create a capped collection on first use; plain collections are created by the insert."""
        if not target.options.capped or target.name in self._ensured:
            return
        if target.name not in self._db.list_collection_names(filter={"name": target.name}):
            try:
                self._db.create_collection(target.name, **target.options.create_kwargs())
                self._log.debug("Created capped collection %s", target.name)
            except CollectionInvalid:
                # Another flush created it first.
                pass
        self._ensured.add(target.name)
