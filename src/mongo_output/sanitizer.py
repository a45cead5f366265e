"""Record key sanitization.

MongoDB rejects (or misinterprets) field names containing `.` or starting with
`$`. These helpers rewrite such keys at every nesting level before a record is
handed to the driver.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

Record = dict[str, Any]

DOT_PATTERN = re.compile(re.escape("."))
LEADING_DOLLAR_PATTERN = re.compile(r"^\$")


def replace_keys(value: Any, pattern: re.Pattern[str], replacement: str) -> Any:
    """Return a copy of `value` with every mapping key rewritten by `pattern`.

    Three shapes are handled:
    - mapping: keys are rewritten, values are walked
    - list/tuple: each element is walked (tuples, named tuples included, come back as plain tuples)
    - anything else: returned unchanged
    """
    if isinstance(value, Mapping):
        return {pattern.sub(replacement, key): replace_keys(v, pattern, replacement) for key, v in value.items()}
    if isinstance(value, tuple):
        return tuple(replace_keys(v, pattern, replacement) for v in value)
    if isinstance(value, list):
        return [replace_keys(v, pattern, replacement) for v in value]
    return value


class KeySanitizer:
    """Applies the configured dot/dollar key rewrites to records."""

    def __init__(self, *, dot_replacement: str | None = None, dollar_replacement: str | None = None) -> None:
        self._dot_replacement = dot_replacement
        self._dollar_replacement = dollar_replacement

    @property
    def enabled(self) -> bool:
        return self._dot_replacement is not None or self._dollar_replacement is not None

    def sanitize(self, record: Record) -> Record:
        """Return a sanitized copy of a single record."""
        if self._dot_replacement is not None:
            record = replace_keys(record, DOT_PATTERN, self._dot_replacement)
        if self._dollar_replacement is not None:
            record = replace_keys(record, LEADING_DOLLAR_PATTERN, self._dollar_replacement)
        return record

    def sanitize_all(self, records: list[Record]) -> list[Record]:
        """Sanitize records in order; returns the input list untouched when nothing is configured."""
        if not self.enabled:
            return records
        return [self.sanitize(r) for r in records]
