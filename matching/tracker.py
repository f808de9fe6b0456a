"""Per-session conversation state: accumulated preferences, confidence, stage.

The tracker is an explicit store (no module globals) so each pipeline, and
each test, owns an isolated set of sessions. Sessions are created on first
use and removed by ``evict`` or, when a TTL is configured, ``evict_idle``.
Updates for one session serialise on that session's lock; different sessions
never block each other beyond the brief registry lookup.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional

from pydantic import BaseModel, Field

from matching.context import UserPreferenceContext

log = logging.getLogger("matching.tracker")


class Stage(str, Enum):
    DISCOVERY = "discovery"
    MATCHING = "matching"
    VERIFICATION = "verification"
    CONNECTION = "connection"

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = [Stage.DISCOVERY, Stage.MATCHING, Stage.VERIFICATION, Stage.CONNECTION]

# Field -> confidence points; sums to 100.
CONFIDENCE_WEIGHTS: dict[str, int] = {
    "location": 30,
    "budget": 25,
    "bedrooms": 20,
    "property_type": 15,
    "lifestyle": 10,
}

MATCHING_THRESHOLD = 50
VERIFICATION_THRESHOLD = 80


def compute_confidence(context: UserPreferenceContext) -> int:
    """Integer 0-100 from which preference fields are known."""
    known = context.known_fields()
    return sum(weight for name, weight in CONFIDENCE_WEIGHTS.items() if name in known)


def stage_for_confidence(confidence: int) -> Stage:
    if confidence > VERIFICATION_THRESHOLD:
        return Stage.VERIFICATION
    if confidence > MATCHING_THRESHOLD:
        return Stage.MATCHING
    return Stage.DISCOVERY


class ConversationState(BaseModel):
    """Snapshot of one session's conversation."""

    session_id: str
    context: UserPreferenceContext = Field(default_factory=UserPreferenceContext)
    confidence: int = 0
    stage: Stage = Stage.DISCOVERY
    properties_shown: list[str] = []
    turn_count: int = 0
    recovery_attempts: int = 0
    connected_property_id: Optional[str] = None
    last_interaction: float = 0.0


class _Session:
    __slots__ = ("state", "lock")

    def __init__(self, state: ConversationState) -> None:
        self.state = state
        self.lock = threading.RLock()


class ConversationStateTracker:
    """In-memory session store with an injected clock and optional idle TTL."""

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._clock = clock
        self._sessions: dict[str, _Session] = {}
        self._registry_lock = threading.Lock()

    # ── Registry ──────────────────────────────────────────────

    def _session(self, session_id: str) -> _Session:
        with self._registry_lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = _Session(ConversationState(
                    session_id=session_id, last_interaction=self._clock(),
                ))
                self._sessions[session_id] = session
                log.info("Session created: %s", session_id)
            return session

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def session_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._sessions)

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock across several tracker calls (one turn)."""
        while True:
            session = self._session(session_id)
            session.lock.acquire()
            # Evicted while we waited: retry against the live session.
            if self._sessions.get(session_id) is session:
                break
            session.lock.release()
        try:
            yield
        finally:
            session.lock.release()

    # ── Public API ────────────────────────────────────────────

    def get_or_create(self, session_id: str) -> ConversationState:
        session = self._session(session_id)
        with session.lock:
            return session.state.model_copy(deep=True)

    def update(self, session_id: str, extracted: UserPreferenceContext) -> ConversationState:
        """Merge extracted preferences and recompute confidence and stage."""
        session = self._session(session_id)
        with session.lock:
            state = session.state
            context = state.context.merge(extracted)
            confidence = compute_confidence(context)
            stage = stage_for_confidence(confidence)
            if stage.rank < state.stage.rank:
                stage = state.stage

            if stage != state.stage:
                log.info(
                    "Session %s stage: %s → %s (confidence %d)",
                    session_id, state.stage.value, stage.value, confidence,
                )

            session.state = state.model_copy(update={
                "context": context,
                "confidence": confidence,
                "stage": stage,
                "turn_count": state.turn_count + 1,
                "last_interaction": self._clock(),
            })
            return session.state.model_copy(deep=True)

    def record_shown(self, session_id: str, property_id: str) -> None:
        session = self._session(session_id)
        with session.lock:
            shown = session.state.properties_shown
            if property_id not in shown:
                session.state = session.state.model_copy(
                    update={"properties_shown": [*shown, property_id]}
                )

    def note_confusion(self, session_id: str) -> int:
        """Count one more clarification round; returns the new total."""
        session = self._session(session_id)
        with session.lock:
            attempts = session.state.recovery_attempts + 1
            session.state = session.state.model_copy(update={"recovery_attempts": attempts})
            return attempts

    def mark_connected(self, session_id: str, property_id: str) -> ConversationState:
        """Move the session to the connection stage after an explicit request."""
        session = self._session(session_id)
        with session.lock:
            session.state = session.state.model_copy(update={
                "stage": Stage.CONNECTION,
                "connected_property_id": property_id,
                "last_interaction": self._clock(),
            })
            log.info("Session %s connected to property %s", session_id, property_id)
            return session.state.model_copy(deep=True)

    def _remove(self, session_id: str, session: _Session) -> bool:
        """Unregister ``session`` once no turn holds it; False if already replaced."""
        with session.lock:
            with self._registry_lock:
                if self._sessions.get(session_id) is not session:
                    return False
                del self._sessions[session_id]
                return True

    def evict(self, session_id: str) -> None:
        """Drop a session, waiting for an in-progress turn. Unknown ids are ignored."""
        with self._registry_lock:
            session = self._sessions.get(session_id)
        if session is not None and self._remove(session_id, session):
            log.info("Session evicted: %s", session_id)

    def evict_idle(self) -> list[str]:
        """Evict sessions idle longer than the TTL. Returns evicted ids."""
        if self._ttl is None:
            return []
        cutoff = self._clock() - self._ttl
        with self._registry_lock:
            candidates = [
                (sid, session) for sid, session in self._sessions.items()
                if session.state.last_interaction < cutoff
            ]
        stale = []
        for sid, session in candidates:
            with session.lock:
                if session.state.last_interaction >= cutoff:
                    continue
                if self._remove(sid, session):
                    stale.append(sid)
        if stale:
            log.info("Evicted %d idle sessions", len(stale))
        return stale
