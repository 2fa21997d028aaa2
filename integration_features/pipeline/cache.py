"""Optional extraction cache keyed on document content hash.

Extraction stays stateless; this cache sits beside it and is only consulted
when enabled. Entries are invalidated per document when its content changes
or when a caller reports an update.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Callable

from integration_features.pipeline.records import ExtractionResult

logger = logging.getLogger(__name__)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ExtractionCache:
    """Bounded map of content hash -> ExtractionResult."""

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, ExtractionResult] = OrderedDict()
        self._document_hashes: dict[int, str] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_extract(
        self,
        document_id: int,
        content: str,
        extract: Callable[[str], ExtractionResult],
    ) -> ExtractionResult:
        """Return the cached result for ``content`` or compute and store it."""
        digest = content_hash(content)
        with self._lock:
            previous = self._document_hashes.get(document_id)
            self._document_hashes[document_id] = digest
            if previous is not None and previous != digest:
                self._drop(previous)

            cached = self._entries.get(digest)
            if cached is not None:
                self.hits += 1
                return cached
            self.misses += 1

        result = extract(content)

        with self._lock:
            self._entries[digest] = result
            self._evict()
        return result

    def invalidate(self, document_id: int) -> bool:
        """Drop the entry of one document. Returns False if it had none."""
        with self._lock:
            digest = self._document_hashes.pop(document_id, None)
            if digest is None:
                return False
            self._drop(digest)
        logger.debug("Invalidated cached extraction", extra={"invalidated_document": document_id})
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._document_hashes.clear()

    def _drop(self, digest: str) -> None:
        # Another document may share identical content.
        if digest not in self._document_hashes.values():
            self._entries.pop(digest, None)

    def _evict(self) -> None:
        while len(self._entries) > self._max_entries:
            digest, _ = self._entries.popitem(last=False)
            stale = [doc_id for doc_id, value in self._document_hashes.items() if value == digest]
            for doc_id in stale:
                del self._document_hashes[doc_id]
