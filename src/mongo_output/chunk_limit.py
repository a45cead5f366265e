"""Buffer chunk size clamp.

These limits are heuristic: a chunk is buffered as BSON entries but becomes a
batch of documents for `insert_many`, and the batch can grow past the buffered
size once time/tag keys are injected. Half of the server's document limit keeps
a full chunk comfortably insertable.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from config import parse_bool, parse_size

LIMIT_BEFORE_V1_8 = 2 * 1024 * 1024  # 2MB = 4MB / 2
LIMIT_AFTER_V1_8 = 8 * 1024 * 1024  # 8MB = 16MB / 2

logger = logging.getLogger(__name__)


def chunk_limit_for(smaller_bson_limit: bool) -> int:
    """Return the chunk size threshold for the server's document limit."""
    return LIMIT_BEFORE_V1_8 if smaller_bson_limit else LIMIT_AFTER_V1_8


def apply_chunk_limit(conf: Mapping[str, Any], log: logging.Logger | None = None) -> dict[str, Any]:
    """Return a copy of `conf` with `buffer_chunk_limit` clamped to the threshold.

    - no explicit limit: set to the threshold
    - explicit limit above the threshold: warn and reset to the threshold
    - explicit limit at or below the threshold: kept as given
    """
    log = log or logger
    result = dict(conf)
    smaller = parse_bool(result.get("mongodb_smaller_bson_limit", False))
    threshold = chunk_limit_for(smaller)

    configured = result.get("buffer_chunk_limit")
    if configured is None or configured == "":
        result["buffer_chunk_limit"] = threshold
        return result

    configured_size = parse_size(configured)
    if configured_size > threshold:
        log.warning(
            "buffer_chunk_limit(%s) is large. Reset buffer_chunk_limit with %dm",
            configured,
            threshold // (1024 * 1024),
        )
        result["buffer_chunk_limit"] = threshold
    else:
        result["buffer_chunk_limit"] = configured_size
    return result
