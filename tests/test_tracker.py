"""Tests for ConversationStateTracker: confidence, stage, session lifecycle."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from matching.context import Budget, UserPreferenceContext
from matching.tracker import (
    CONFIDENCE_WEIGHTS,
    ConversationStateTracker,
    Stage,
    compute_confidence,
    stage_for_confidence,
)


FULL_CONTEXT = UserPreferenceContext(
    location="lekki",
    bedrooms=3,
    budget=Budget(max=10_000_000),
    property_type="apartment",
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestConfidence:
    def test_weights_sum_to_100(self):
        assert sum(CONFIDENCE_WEIGHTS.values()) == 100

    def test_empty(self):
        assert compute_confidence(UserPreferenceContext()) == 0

    @pytest.mark.parametrize("ctx,expected", [
        (UserPreferenceContext(location="ikoyi"), 30),
        (UserPreferenceContext(budget=Budget(max=1_000_000)), 25),
        (UserPreferenceContext(bedrooms=2), 20),
        (UserPreferenceContext(property_type="house"), 15),
        (UserPreferenceContext(lifestyle=["quiet-area"]), 10),
    ])
    def test_single_fields(self, ctx, expected):
        assert compute_confidence(ctx) == expected

    def test_scenario_sum(self):
        assert compute_confidence(FULL_CONTEXT) == 90

    def test_all_fields(self):
        ctx = FULL_CONTEXT.merge(UserPreferenceContext(lifestyle=["modern"]))
        assert compute_confidence(ctx) == 100

    def test_zero_bedrooms_counts_as_known(self):
        assert compute_confidence(UserPreferenceContext(bedrooms=0)) == 20

    def test_urgency_not_weighted(self):
        assert compute_confidence(UserPreferenceContext(urgency="immediate")) == 0


class TestStageThresholds:
    @pytest.mark.parametrize("confidence,stage", [
        (0, Stage.DISCOVERY),
        (50, Stage.DISCOVERY),
        (51, Stage.MATCHING),
        (80, Stage.MATCHING),
        (81, Stage.VERIFICATION),
        (100, Stage.VERIFICATION),
    ])
    def test_boundaries(self, confidence, stage):
        assert stage_for_confidence(confidence) == stage

    def test_connection_never_automatic(self):
        assert all(stage_for_confidence(c) != Stage.CONNECTION for c in range(101))


class TestGetOrCreate:
    def test_fresh_state(self):
        state = ConversationStateTracker().get_or_create("s1")
        assert state.session_id == "s1"
        assert state.context.is_empty()
        assert state.confidence == 0
        assert state.stage == Stage.DISCOVERY
        assert state.turn_count == 0
        assert state.properties_shown == []

    def test_returns_existing(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", UserPreferenceContext(location="lekki"))
        assert tracker.get_or_create("s1").confidence == 30
        assert len(tracker) == 1

    def test_returns_snapshot(self):
        tracker = ConversationStateTracker()
        state = tracker.get_or_create("s1")
        state.properties_shown.append("p1")
        assert tracker.get_or_create("s1").properties_shown == []


class TestUpdate:
    def test_full_context(self):
        state = ConversationStateTracker().update("s1", FULL_CONTEXT)
        assert state.confidence == 90
        assert state.stage == Stage.VERIFICATION
        assert state.turn_count == 1

    def test_accumulates_across_turns(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", UserPreferenceContext(location="lekki"))
        state = tracker.update("s1", UserPreferenceContext(bedrooms=3))
        assert state.context.location == "lekki"
        assert state.context.bedrooms == 3
        assert state.confidence == 50
        assert state.stage == Stage.DISCOVERY
        assert state.turn_count == 2

    def test_crosses_into_matching(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", UserPreferenceContext(location="lekki"))
        state = tracker.update("s1", UserPreferenceContext(budget=Budget(max=5_000_000)))
        assert state.confidence == 55
        assert state.stage == Stage.MATCHING

    def test_later_value_overwrites(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", UserPreferenceContext(location="lekki"))
        state = tracker.update("s1", UserPreferenceContext(location="ikoyi"))
        assert state.context.location == "ikoyi"
        assert state.confidence == 30

    def test_empty_update_keeps_everything(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", FULL_CONTEXT)
        state = tracker.update("s1", UserPreferenceContext())
        assert state.context == FULL_CONTEXT
        assert state.confidence == 90

    def test_adding_field_never_decreases_confidence(self):
        tracker = ConversationStateTracker()
        previous = 0
        for update in [
            UserPreferenceContext(lifestyle=["quiet-area"]),
            UserPreferenceContext(property_type="duplex"),
            UserPreferenceContext(bedrooms=4),
            UserPreferenceContext(budget=Budget(max=9_000_000)),
            UserPreferenceContext(location="gwarinpa"),
        ]:
            confidence = tracker.update("s1", update).confidence
            assert confidence >= previous
            previous = confidence
        assert previous == 100

    def test_identical_update_is_idempotent(self):
        tracker = ConversationStateTracker()
        first = tracker.update("s1", FULL_CONTEXT)
        second = tracker.update("s1", FULL_CONTEXT)
        assert first.confidence == second.confidence
        assert first.stage == second.stage

    def test_sessions_are_independent(self):
        tracker = ConversationStateTracker()
        tracker.update("a", FULL_CONTEXT)
        state_b = tracker.update("b", UserPreferenceContext(location="kubwa"))
        assert state_b.confidence == 30
        assert tracker.get_or_create("a").context.location == "lekki"


class TestStageProgression:
    def test_connection_is_explicit_and_sticky(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", FULL_CONTEXT)
        state = tracker.mark_connected("s1", "p1")
        assert state.stage == Stage.CONNECTION
        assert state.connected_property_id == "p1"

        state = tracker.update("s1", UserPreferenceContext(location="ikoyi"))
        assert state.stage == Stage.CONNECTION

    def test_stage_rank_order(self):
        ranks = [s.rank for s in (Stage.DISCOVERY, Stage.MATCHING, Stage.VERIFICATION, Stage.CONNECTION)]
        assert ranks == [0, 1, 2, 3]


class TestRecordShown:
    def test_appends(self):
        tracker = ConversationStateTracker()
        tracker.record_shown("s1", "p1")
        tracker.record_shown("s1", "p2")
        assert tracker.get_or_create("s1").properties_shown == ["p1", "p2"]

    def test_idempotent(self):
        tracker = ConversationStateTracker()
        tracker.record_shown("s1", "p1")
        tracker.record_shown("s1", "p1")
        assert tracker.get_or_create("s1").properties_shown == ["p1"]


class TestEviction:
    def test_evict(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", FULL_CONTEXT)
        tracker.evict("s1")
        assert "s1" not in tracker
        assert tracker.get_or_create("s1").confidence == 0

    def test_evict_unknown_is_noop(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", FULL_CONTEXT)
        tracker.evict("never-seen")
        assert tracker.session_ids() == ["s1"]

    def test_evict_leaves_other_sessions(self):
        tracker = ConversationStateTracker()
        tracker.update("a", FULL_CONTEXT)
        tracker.update("b", FULL_CONTEXT)
        tracker.evict("a")
        assert tracker.get_or_create("b").confidence == 90

    def test_idle_eviction_with_ttl(self):
        clock = FakeClock()
        tracker = ConversationStateTracker(ttl_seconds=60, clock=clock)
        tracker.update("old", FULL_CONTEXT)
        clock.now += 45
        tracker.update("recent", FULL_CONTEXT)
        clock.now += 30

        assert tracker.evict_idle() == ["old"]
        assert tracker.session_ids() == ["recent"]

    def test_no_ttl_never_evicts(self):
        clock = FakeClock()
        tracker = ConversationStateTracker(clock=clock)
        tracker.update("s1", FULL_CONTEXT)
        clock.now += 10_000
        assert tracker.evict_idle() == []

    def test_evict_waits_for_turn_in_progress(self):
        tracker = ConversationStateTracker()
        entered, release = threading.Event(), threading.Event()

        def turn():
            with tracker.lock("s1"):
                entered.set()
                release.wait(5)
                tracker.update("s1", FULL_CONTEXT)

        worker = threading.Thread(target=turn)
        worker.start()
        assert entered.wait(5)
        evictor = threading.Thread(target=tracker.evict, args=("s1",))
        evictor.start()
        evictor.join(0.2)
        assert evictor.is_alive()

        release.set()
        worker.join(5)
        evictor.join(5)
        assert "s1" not in tracker
        assert tracker.get_or_create("s1").turn_count == 0

    def test_lock_after_eviction_uses_live_session(self):
        tracker = ConversationStateTracker()
        tracker.update("s1", FULL_CONTEXT)
        tracker.evict("s1")
        with tracker.lock("s1"):
            tracker.update("s1", UserPreferenceContext(location="ikoyi"))
        assert tracker.session_ids() == ["s1"]
        assert tracker.get_or_create("s1").turn_count == 1

    def test_idle_eviction_skips_session_touched_meanwhile(self):
        clock = FakeClock()
        tracker = ConversationStateTracker(ttl_seconds=60, clock=clock)
        tracker.update("s1", FULL_CONTEXT)
        clock.now += 120
        with tracker.lock("s1"):
            tracker.update("s1", FULL_CONTEXT)
            assert tracker.evict_idle() == []
        assert "s1" in tracker


class TestConfusion:
    def test_counts_attempts(self):
        tracker = ConversationStateTracker()
        assert tracker.note_confusion("s1") == 1
        assert tracker.note_confusion("s1") == 2
        assert tracker.get_or_create("s1").recovery_attempts == 2


class TestConcurrentUpdates:
    def test_same_session_updates_serialise(self):
        tracker = ConversationStateTracker()

        def turn(i):
            tracker.update("shared", UserPreferenceContext(bedrooms=i % 5))
            tracker.record_shown("shared", f"p{i % 7}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(turn, range(200)))

        state = tracker.get_or_create("shared")
        assert state.turn_count == 200
        assert sorted(state.properties_shown) == sorted(f"p{i}" for i in range(7))
