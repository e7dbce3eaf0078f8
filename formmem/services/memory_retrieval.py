"""
Retrieval of an owner's prior forms as generation context.
"""

from typing import List, Optional, Sequence

from ..models.core import MemorySnippet
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.similarity import cosine_similarity
from .form_store import FormStore

logger = get_logger(__name__)

HIGHLIGHT_LIMIT = 5


class MemoryRetrievalService:
    """Score an owner's embedded forms against a query vector."""

    def __init__(self, store: Optional[FormStore] = None):
        self.store = store or FormStore()

    def retrieve(self, owner_id: str, query_vector: Sequence[float], top_k: Optional[int] = None) -> List[MemorySnippet]:
        """Top-K memory snippets by descending cosine similarity.

        Forms without an embedding vector are never candidates. Equal scores
        keep the store's insertion order.

        Args:
            owner_id: Owner whose forms are searched
            query_vector: Query embedding (may be empty, every score is then 0)
            top_k: Maximum number of snippets (config default if None)

        Returns:
            List of MemorySnippet objects
        """
        if top_k is None:
            top_k = config.memory.top_k
        if top_k <= 0:
            return []

        scored = []
        for form in self.store.list_embedded_forms(owner_id):
            if not form.embedding_vector:
                continue

            scored.append(
                MemorySnippet(form_id=form.id,
                              purpose=form.purpose,
                              title=form.title,
                              summary=form.memory_summary or '',
                              highlights=form.highlights(HIGHLIGHT_LIMIT),
                              score=cosine_similarity(query_vector, form.embedding_vector)))

        # sort is stable, so ties keep insertion order
        scored.sort(key=lambda snippet: snippet.score, reverse=True)
        memories = scored[:top_k]

        logger.debug(f'Retrieved {len(memories)} of {len(scored)} memories for owner {owner_id}')
        return memories

    def list_memories(self, owner_id: str, limit: Optional[int] = None) -> List[MemorySnippet]:
        """Browse an owner's memories without a query."""
        return self.retrieve(owner_id, [], top_k=limit if limit is not None else config.memory.list_limit)
