"""Per-turn matching pipeline: extract → track → search → enrich.

Typical use from a conversational layer::

    pipeline = create_pipeline()
    result = pipeline.process_turn(session_id, user_text, history)
    if result.should_recommend:
        ...  # present result.matches
    else:
        ...  # ask about result.missing_fields

Nothing here raises for "no match" or "not enough information"; those are
ordinary results. Only DimensionMismatch (a broken index) propagates.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel

from listings.catalog import PropertyCatalog
from listings.schema import PropertyRecord
from matching.config import Settings, settings as default_settings
from matching.context import ContextExtractor, UserPreferenceContext, detect_confusion
from matching.embeddings import create_embedding_provider
from matching.index import PropertyIndex, SearchHit
from matching.providers import (
    CatalogVerificationProvider,
    InsightProvider,
    NeighborhoodInsightProvider,
    VerificationProvider,
)
from matching.tracker import (
    CONFIDENCE_WEIGHTS,
    MATCHING_THRESHOLD,
    ConversationState,
    ConversationStateTracker,
    Stage,
)

log = logging.getLogger("matching.pipeline")

DEFAULT_MATCH_LIMIT = 3


class MatchResult(BaseModel):
    property: PropertyRecord
    relevance_score: float
    is_verified: Optional[bool] = None
    trust_score: Optional[int] = None
    insight: str = ""


class TurnResult(BaseModel):
    """Outcome of one user turn; ``model_dump(mode="json")`` is JSON-safe."""

    session_id: str
    context: UserPreferenceContext
    confidence: int
    stage: Stage
    should_recommend: bool
    matches: list[MatchResult] = []
    turn_count: int = 0
    missing_fields: list[str] = []
    confused: bool = False
    recovery_attempts: int = 0


class MatchingPipeline:
    """Orchestrates ContextExtractor, ConversationStateTracker and PropertyIndex."""

    def __init__(
        self,
        catalog: PropertyCatalog,
        index: PropertyIndex,
        tracker: ConversationStateTracker | None = None,
        extractor: ContextExtractor | None = None,
        verification: VerificationProvider | None = None,
        insights: InsightProvider | None = None,
        match_limit: int = DEFAULT_MATCH_LIMIT,
        threshold: int = MATCHING_THRESHOLD,
    ) -> None:
        if match_limit <= 0:
            raise ValueError("match_limit must be positive")
        self._catalog = catalog
        self._index = index
        self._tracker = tracker or ConversationStateTracker()
        self._extractor = extractor or ContextExtractor()
        self._verification = verification
        self._insights = insights
        self._match_limit = match_limit
        self._threshold = threshold

    @property
    def tracker(self) -> ConversationStateTracker:
        return self._tracker

    @property
    def index(self) -> PropertyIndex:
        return self._index

    @property
    def catalog(self) -> PropertyCatalog:
        return self._catalog

    # ── Turn processing ───────────────────────────────────────

    def process_turn(
        self,
        session_id: str,
        user_text: str,
        conversation_history: Sequence[dict[str, str]] | None = None,
    ) -> TurnResult:
        """Process one user utterance for ``session_id``."""
        with self._tracker.lock(session_id):
            extracted = self._extractor.extract(user_text)

            existing = self._tracker.get_or_create(session_id)
            if existing.turn_count == 0 and conversation_history:
                extracted = self._context_from_history(conversation_history).merge(extracted)

            state = self._tracker.update(session_id, extracted)

            confused = detect_confusion(user_text)
            if confused:
                self._tracker.note_confusion(session_id)

            matches: list[MatchResult] = []
            if state.confidence > self._threshold and state.stage.rank >= Stage.MATCHING.rank:
                hits = self._index.search(
                    user_text,
                    state.context,
                    limit=self._match_limit,
                    exclude_ids=state.properties_shown,
                )
                matches = [self._enrich(hit) for hit in hits]
                if matches:
                    self._tracker.record_shown(session_id, matches[0].property.id)

            state = self._tracker.get_or_create(session_id)

        log.info(
            "Turn %d for %s: confidence=%d stage=%s matches=%d",
            state.turn_count, session_id, state.confidence, state.stage.value, len(matches),
        )
        return TurnResult(
            session_id=session_id,
            context=state.context,
            confidence=state.confidence,
            stage=state.stage,
            should_recommend=bool(matches),
            matches=matches,
            turn_count=state.turn_count,
            missing_fields=self._missing_fields(state.context),
            confused=confused,
            recovery_attempts=state.recovery_attempts,
        )

    def _context_from_history(
        self, history: Iterable[dict[str, str]],
    ) -> UserPreferenceContext:
        """Fold preferences from earlier user messages (e.g. after eviction)."""
        context = UserPreferenceContext()
        for message in history:
            if message.get("role") == "user" and message.get("content"):
                context = context.merge(self._extractor.extract(message["content"]))
        return context

    def _enrich(self, hit: SearchHit) -> MatchResult:
        result = MatchResult(property=hit.record, relevance_score=hit.relevance_score)
        if self._verification is not None:
            indicator = self._verification.trust_indicator(hit.record.id)
            if indicator is not None:
                result.is_verified = indicator.is_verified
                result.trust_score = indicator.trust_score
        if self._insights is not None:
            result.insight = self._insights.insight(hit.record.id)
        return result

    @staticmethod
    def _missing_fields(context: UserPreferenceContext) -> list[str]:
        known = context.known_fields()
        return [name for name in CONFIDENCE_WEIGHTS if name not in known]

    # ── Explicit actions ──────────────────────────────────────

    def request_connection(self, session_id: str, property_id: str) -> ConversationState:
        """Record a user's request to connect with a property's owner."""
        if property_id not in self._catalog:
            log.warning(
                "Connection request for unknown property %s (session %s) ignored",
                property_id, session_id,
            )
            return self._tracker.get_or_create(session_id)
        self._tracker.record_shown(session_id, property_id)
        return self._tracker.mark_connected(session_id, property_id)

    def update_listing(self, record: PropertyRecord) -> None:
        """Replace one catalog record and re-embed it."""
        self._catalog.replace(record)
        self._index.reindex(record)

    def rebuild_index(self, records: Iterable[PropertyRecord] | None = None) -> None:
        """Rebuild the whole index atomically, from the catalog by default."""
        self._index.build(self._catalog if records is None else records)


def create_pipeline(config: Settings | None = None) -> MatchingPipeline:
    """Wire a pipeline from configuration: catalog, embeddings, index, tracker."""
    config = config or default_settings
    for warning in config.validate_startup():
        log.warning(warning)

    catalog = PropertyCatalog.from_json(config.catalog_path or None)
    index = PropertyIndex(create_embedding_provider(config))
    index.build(catalog)

    return MatchingPipeline(
        catalog=catalog,
        index=index,
        tracker=ConversationStateTracker(ttl_seconds=config.session_ttl_seconds),
        verification=CatalogVerificationProvider(catalog),
        insights=NeighborhoodInsightProvider(catalog),
        match_limit=config.match_limit,
        threshold=config.matching_threshold,
    )
