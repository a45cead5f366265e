"""MongoDB output sink for buffered log records.

This package implements the write path of the sink:
- Decoding a flushed chunk into ordered, time-stamped records.
- Routing each chunk to a collection (static or tag-mapped).
- Rewriting `.`/`$` keys the server cannot store.
- Inserting each chunk with a single bulk insert, containing partial failures.
"""

from .chunk import Chunk, MemoryChunk
from .chunk_limit import LIMIT_AFTER_V1_8, LIMIT_BEFORE_V1_8, apply_chunk_limit
from .naming import CollectionNameResolver
from .options import AuthCredentials, ClientOptions, TlsOptions, WriteConcernOptions, build_client_options
from .output import MongoOutput
from .records import ChunkEntry, RecordExtractor, RecordFormatError, encode_entry, iter_entries
from .sanitizer import KeySanitizer, replace_keys
from .writer import BulkWriter, CollectionOptions, CollectionTarget

__all__ = [
    "AuthCredentials",
    "BulkWriter",
    "Chunk",
    "ChunkEntry",
    "ClientOptions",
    "CollectionNameResolver",
    "CollectionOptions",
    "CollectionTarget",
    "KeySanitizer",
    "LIMIT_AFTER_V1_8",
    "LIMIT_BEFORE_V1_8",
    "MemoryChunk",
    "MongoOutput",
    "RecordExtractor",
    "RecordFormatError",
    "TlsOptions",
    "WriteConcernOptions",
    "apply_chunk_limit",
    "build_client_options",
    "encode_entry",
    "iter_entries",
    "replace_keys",
]
