"""Semantic property matching: context extraction, session state, vector search."""

from .context import ContextExtractor, UserPreferenceContext, extract_context
from .index import PropertyIndex, SearchHit
from .pipeline import MatchingPipeline, TurnResult, create_pipeline
from .tracker import ConversationState, ConversationStateTracker, Stage

__all__ = [
    "ContextExtractor",
    "ConversationState",
    "ConversationStateTracker",
    "MatchingPipeline",
    "PropertyIndex",
    "SearchHit",
    "Stage",
    "TurnResult",
    "UserPreferenceContext",
    "create_pipeline",
    "extract_context",
]
