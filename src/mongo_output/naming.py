"""Collection name resolution for static and tag-mapped modes."""

from __future__ import annotations

import re

# MongoDB collection names may not start or end with a dot.
_EDGE_DOTS_RE = re.compile(r"(^\.+)|(\.+$)")


class CollectionNameResolver:
    """Turns a configured collection name or a chunk's tag into a collection name."""

    def __init__(self, *, default: str, remove_tag_prefix: str | None = None) -> None:
        """Create a resolver.

        Args:
            default: Collection used when the resolved name comes out empty.
            remove_tag_prefix: Literal prefix stripped from the start of names.
        """
        self._default = default
        self._prefix_re = re.compile("^" + re.escape(remove_tag_prefix)) if remove_tag_prefix else None

    @property
    def default(self) -> str:
        return self._default

    def resolve(self, name: str | None) -> str:
        formatted = name or ""
        if self._prefix_re is not None:
            formatted = self._prefix_re.sub("", formatted, count=1)
        formatted = _EDGE_DOTS_RE.sub("", formatted)
        if not formatted:
            # Empty or all-dot tags land in the default collection.
            return self._default
        return formatted
