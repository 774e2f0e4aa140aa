from __future__ import annotations

import logging
from typing import List, Optional

from docqa.core.types import Chunk
from docqa.indexing.chunk_store import ChunkStore

logger = logging.getLogger(__name__)


class ChunkCache:
    """Whole-corpus read cache, valid while the store's generation is unchanged."""

    def __init__(self, store: ChunkStore):
        self.store = store
        self._chunks: Optional[List[Chunk]] = None
        self._generation: Optional[int] = None

    @property
    def generation(self) -> Optional[int]:
        return self._generation

    def get(self) -> List[Chunk]:
        current = self.store.generation
        if self._chunks is None or current != self._generation:
            self._chunks = self.store.get_all()
            self._generation = current
            logger.debug("Chunk cache reloaded: %d chunks at generation %d", len(self._chunks), current)
        return self._chunks

    def invalidate(self) -> None:
        self._chunks = None
        self._generation = None
