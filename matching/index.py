"""In-memory vector index over the property catalog.

One embedding per PropertyRecord, built once at startup. ``search`` scores
every record against a query vector, drops records failing the hard filters
and returns the best survivors. Rebuilds construct a complete snapshot first
and install it with a single reference assignment, so a concurrent search
sees either the old index or the new one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from listings.schema import PropertyRecord, price_bucket
from matching.context import UserPreferenceContext
from matching.embeddings.base import EmbeddingProvider
from matching.errors import DimensionMismatch
from matching.similarity import cosine_similarity

log = logging.getLogger("matching.index")


@dataclass(frozen=True)
class IndexEntry:
    record: PropertyRecord
    vector: np.ndarray


@dataclass(frozen=True)
class SearchHit:
    """One ranked search result."""

    record: PropertyRecord
    relevance_score: float


def query_text(text: str, context: UserPreferenceContext) -> str:
    """Build query text with the listing recipe, context standing in for fields."""
    parts = [text, context.location or "", context.property_type or ""]
    parts.extend(context.lifestyle or [])
    if context.budget is not None:
        parts.append(price_bucket(context.budget.max))
    return " ".join(part for part in parts if part)


def passes_filters(
    record: PropertyRecord,
    context: UserPreferenceContext,
    exclude_ids: frozenset[str] = frozenset(),
) -> bool:
    """Hard filters: a record failing any active constraint is excluded."""
    if record.id in exclude_ids:
        return False
    if context.location and context.location not in record.location:
        return False
    # The ceiling applies only to prices in the budget's currency.
    budget = context.budget
    if budget is not None and budget.currency == record.currency and record.price > budget.max:
        return False
    if context.bedrooms is not None and record.bedrooms < context.bedrooms:
        return False
    if context.property_type and record.property_type != context.property_type:
        return False
    return True


class PropertyIndex:
    """Vector store keyed by property id, preserving catalog order."""

    def __init__(self, embedder: EmbeddingProvider) -> None:
        self._embedder = embedder
        self._entries: tuple[IndexEntry, ...] = ()
        self._rebuild_lock = threading.Lock()

    @property
    def embedder(self) -> EmbeddingProvider:
        return self._embedder

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> list[str]:
        return [entry.record.id for entry in self._entries]

    def vector(self, property_id: str) -> Optional[np.ndarray]:
        for entry in self._entries:
            if entry.record.id == property_id:
                return entry.vector
        return None

    # ── Building ──────────────────────────────────────────────

    def _embed_records(self, records: list[PropertyRecord]) -> list[IndexEntry]:
        vectors = self._embedder.embed_many([r.to_searchable_text() for r in records])
        entries = []
        for record, vector in zip(records, vectors):
            vector = np.asarray(vector, dtype=np.float64)
            vector.setflags(write=False)
            if vector.shape != (self._embedder.dimension,):
                raise DimensionMismatch(self._embedder.dimension, vector.size)
            entries.append(IndexEntry(record=record, vector=vector))
        return entries

    def build(self, records: Iterable[PropertyRecord]) -> None:
        """Replace the whole index with embeddings of ``records``."""
        records = list(records)
        with self._rebuild_lock:
            entries = tuple(self._embed_records(records))
            self._entries = entries
        log.info(
            "Property index built: %d records, dimension %d",
            len(entries), self._embedder.dimension,
        )

    def reindex(self, record: PropertyRecord) -> None:
        """Re-embed one record (full replacement), appending unknown ids."""
        with self._rebuild_lock:
            (entry,) = self._embed_records([record])
            entries = list(self._entries)
            for idx, existing in enumerate(entries):
                if existing.record.id == record.id:
                    entries[idx] = entry
                    break
            else:
                entries.append(entry)
            self._entries = tuple(entries)
        log.info("Property re-indexed: %s", record.id)

    # ── Search ────────────────────────────────────────────────

    def search(
        self,
        text: str,
        context: UserPreferenceContext | None = None,
        limit: int = 3,
        exclude_ids: Iterable[str] = (),
    ) -> list[SearchHit]:
        """Rank indexed records for ``text`` under the hard filters in ``context``.

        Returns at most ``limit`` hits, best first; ties keep catalog order.
        An empty list means nothing survived the filters.
        """
        if limit <= 0:
            raise ValueError("limit must be positive")

        context = context or UserPreferenceContext()
        excluded = frozenset(exclude_ids)
        entries = self._entries  # one snapshot for the whole search
        query_vector = self._embedder.embed(query_text(text, context))

        hits = [
            SearchHit(entry.record, cosine_similarity(query_vector, entry.vector))
            for entry in entries
            if passes_filters(entry.record, context, excluded)
        ]
        hits.sort(key=lambda hit: hit.relevance_score, reverse=True)
        return hits[:limit]
