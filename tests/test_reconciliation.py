"""Tests for the reconciliation controller - feed and manual pick flow."""

import pytest

from src.draft_ledger.draft_rules import (
    BidBelowMinimumError,
    BidRules,
    BudgetExceededError,
    DuplicatePickError,
)
from src.draft_ledger.draft_state import DraftedPlayer
from src.draft_ledger.ledger import DraftLedger
from src.draft_ledger.state_persistence import PersistenceError, StatePersistence
from src.inflation_engine.inflation_engine import InflationEngine
from src.inflation_engine.models import ProjectionRecord
from src.sync.error_classifier import PERSISTENT, TRANSIENT
from src.sync.models import FeedError, ManualBid, PickEvent
from src.sync.reconciliation import ReconciliationController
from src.sync.retry_controller import SCHEDULED, BackgroundRetryController


# ── Helpers ──────────────────────────────────────────────────────────

ROSTER = {"hitters": 14, "pitchers": 9, "bench": 3}


def _make_controller(ledger, engine, **kwargs):
    ledger.initialize_draft("L1", 260, ROSTER)
    controller = ReconciliationController(ledger, engine, **kwargs)
    controller.set_user_team("L1", "me")
    return controller


class _FailingPersistence:
    """Stands in for StatePersistence; every save fails."""

    def __init__(self, error):
        self.error = error
        self.saves = 0

    def save_store(self, store):
        self.saves += 1
        raise self.error


# ── Manual bids ──────────────────────────────────────────────────────

class TestManualBid:
    def test_records_pick_and_recomputes(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        state = controller.submit_manual_bid("L1", ManualBid("p1", 55), projections)
        pick = ledger.get_draft("L1").drafted_players[0]
        assert pick.is_manual_entry
        assert pick.drafted_by == "other"
        assert pick.projected_value == 50
        assert pick.player_name == "Ace Hitter"
        assert state.overall_rate == pytest.approx(0.10)
        assert "p1" not in state.adjusted_values
        assert engine.get_state("L1") is state

    def test_my_team_deducts_budget_and_fills_roster(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_manual_bid("L1", ManualBid("p5", 12, is_my_team=True), projections)
        draft = ledger.get_draft("L1")
        assert draft.remaining_budget == 248
        assert draft.roster[0].player_id == "p5"
        assert draft.drafted_players[0].drafted_by == "user"

    def test_my_team_pick_with_full_roster(self, ledger, engine, projections, caplog):
        controller = ReconciliationController(ledger, engine)
        ledger.initialize_draft("L1", 260, {"hitters": 1, "pitchers": 0, "bench": 0})
        with caplog.at_level("WARNING", logger="src.sync.reconciliation"):
            controller.submit_manual_bid("L1", ManualBid("p1", 40, is_my_team=True), projections)

        draft = ledger.get_draft("L1")
        assert [p.player_id for p in draft.drafted_players] == ["p1"]
        assert draft.remaining_budget == 220
        assert draft.roster[0].is_empty
        assert "roster is full" in caplog.text

    def test_record_pick_reports_missing_slot(self, ledger, engine):
        controller = ReconciliationController(ledger, engine)
        ledger.initialize_draft("L1", 260, {"hitters": 1, "pitchers": 0, "bench": 0})
        catcher = DraftedPlayer.create("c1", "Catcher", "C", 5, 5, drafted_by="user")
        outfielder = DraftedPlayer.create("o1", "Outfielder", "OF", 5, 5, drafted_by="user")
        rival = DraftedPlayer.create("o2", "Rival Pick", "OF", 5, 5)
        assert controller._record_pick("L1", catcher) is True
        assert controller._record_pick("L1", outfielder) is False
        assert controller._record_pick("L1", rival) is True

    def test_other_team_leaves_budget(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_manual_bid("L1", ManualBid("p1", 100), projections)
        assert ledger.get_draft("L1").remaining_budget == 260

    def test_over_budget_rejected_before_mutation(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        ledger.update_budget("L1", 20)
        with pytest.raises(BudgetExceededError) as exc_info:
            controller.submit_manual_bid("L1", ManualBid("p1", 21, is_my_team=True), projections)
        assert exc_info.value.limit_name == "remaining budget"
        assert ledger.get_draft("L1").drafted_players == []
        assert engine.get_state("L1").last_updated is None

    def test_below_minimum_rejected(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine, bid_rules=BidRules(min_bid=2))
        with pytest.raises(BidBelowMinimumError):
            controller.submit_manual_bid("L1", ManualBid("p1", 1), projections)
        assert ledger.get_draft("L1").drafted_players == []

    def test_duplicate_rejected(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_manual_bid("L1", ManualBid("p1", 55), projections)
        with pytest.raises(DuplicatePickError):
            controller.submit_manual_bid("L1", ManualBid("p1", 40), projections)
        assert len(ledger.get_draft("L1").drafted_players) == 1

    def test_player_missing_from_pool(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        bid = ManualBid("rookie", 3, player_name="New Guy", position="SS", projected_value=2)
        controller.submit_manual_bid("L1", bid, projections)
        pick = ledger.get_draft("L1").drafted_players[0]
        assert pick.player_name == "New Guy"
        assert pick.projected_value == 2

    def test_unknown_league(self, ledger, engine, projections):
        controller = ReconciliationController(ledger, engine)
        state = controller.submit_manual_bid("nope", ManualBid("p1", 5), projections)
        assert state.overall_rate == 0.0
        assert ledger.get_draft("nope") is None


# ── Feed picks ───────────────────────────────────────────────────────

class TestFeedPicks:
    def test_appends_in_arrival_order(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        events = [PickEvent("p3", 30, "a"), PickEvent("p1", 55, "b"), PickEvent("p2", 30, "c")]
        controller.submit_feed_picks("L1", events, projections)
        ids = [p.player_id for p in ledger.get_draft("L1").drafted_players]
        assert ids == ["p3", "p1", "p2"]
        assert not any(p.is_manual_entry for p in ledger.get_draft("L1").drafted_players)

    def test_recomputes_once_per_pick(self, ledger, engine, projections, monkeypatch):
        controller = _make_controller(ledger, engine)
        calls = []
        original = engine.recompute

        def counting_recompute(*args, **kwargs):
            calls.append(len(args[1]))
            return original(*args, **kwargs)

        monkeypatch.setattr(engine, "recompute", counting_recompute)
        events = [PickEvent("p1", 55, "a"), PickEvent("p2", 30, "b")]
        controller.submit_feed_picks("L1", events, projections)
        assert calls == [1, 2]

    def test_full_list_resend_skips_known_picks(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        first = [PickEvent("p1", 55, "a")]
        controller.submit_feed_picks("L1", first, projections)
        controller.submit_feed_picks("L1", first + [PickEvent("p2", 30, "b")], projections)
        ids = [p.player_id for p in ledger.get_draft("L1").drafted_players]
        assert ids == ["p1", "p2"]

    def test_duplicate_within_batch(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        events = [PickEvent("p1", 55, "a"), PickEvent("p1", 55, "a")]
        controller.submit_feed_picks("L1", events, projections)
        assert len(ledger.get_draft("L1").drafted_players) == 1

    def test_user_team_picks(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_feed_picks("L1", [PickEvent("p4", 25, "me")], projections)
        draft = ledger.get_draft("L1")
        assert draft.drafted_players[0].drafted_by == "user"
        assert draft.remaining_budget == 235
        sp_slot = next(slot for slot in draft.roster if slot.position == "SP")
        assert sp_slot.player_id == "p4"

    def test_records_sync_success(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        ledger.record_sync_failure("L1", "transient", "timeout")
        controller.submit_feed_picks("L1", [], projections)
        status = ledger.get_sync_status("L1")
        assert status.is_connected
        assert status.failure_count == 0

    def test_no_new_picks_returns_current_state(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        state = controller.submit_feed_picks("L1", [PickEvent("p1", 55, "a")], projections)
        again = controller.submit_feed_picks("L1", [PickEvent("p1", 55, "a")], projections)
        assert again is state

    def test_unknown_league(self, ledger, engine, projections):
        controller = ReconciliationController(ledger, engine)
        controller.submit_feed_picks("nope", [PickEvent("p1", 5, "a")], projections)
        assert ledger.get_draft("nope") is None


# ── Manual / auto parity ─────────────────────────────────────────────

class TestParity:
    def test_same_picks_same_inflation(self, projections):
        picks = [("p1", 60, False), ("p3", 20, True), ("p4", 25, False), ("p7", 12, True)]

        manual_ledger, manual_engine = DraftLedger(), InflationEngine()
        manual = _make_controller(manual_ledger, manual_engine)
        for pid, price, mine in picks:
            manual.submit_manual_bid("L1", ManualBid(pid, price, is_my_team=mine), projections)

        feed_ledger, feed_engine = DraftLedger(), InflationEngine()
        feed = _make_controller(feed_ledger, feed_engine)
        for pid, price, mine in picks:
            team = "me" if mine else "rival"
            feed.submit_feed_picks("L1", [PickEvent(pid, price, team)], projections)

        a = manual_engine.get_state("L1")
        b = feed_engine.get_state("L1")
        assert a.overall_rate == b.overall_rate
        assert a.position_rates == b.position_rates
        assert a.tier_rates == b.tier_rates
        assert a.adjusted_values == b.adjusted_values
        assert a.budget_depletion == b.budget_depletion
        assert manual_ledger.get_draft("L1").remaining_budget == feed_ledger.get_draft(
            "L1"
        ).remaining_budget


# ── Feed failures ────────────────────────────────────────────────────

class TestFeedFailures:
    def test_transient_failure_schedules_retry(self, ledger, engine, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: True, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)

        result = controller.handle_feed_failure("L1", FeedError("slow", code="TIMEOUT"))
        assert result.failure_type == TRANSIENT
        assert retry.state.phase == SCHEDULED
        assert ledger.get_sync_status("L1").failure_count == 1

    def test_persistent_failure_not_retried(self, ledger, engine, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: True, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)

        result = controller.handle_feed_failure("L1", FeedError("no", status_code=401))
        assert result.failure_type == PERSISTENT
        assert scheduler.timers == []
        status = ledger.get_sync_status("L1")
        assert status.is_manual_mode
        assert retry.is_manual_mode

    def test_rate_limited_surfaced_not_retried(self, ledger, engine, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: True, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)

        result = controller.handle_feed_failure("L1", FeedError("slow down", status_code=429))
        assert result.error_code == "RATE_LIMITED"
        assert result.failure_type == PERSISTENT
        assert scheduler.timers == []
        assert ledger.get_sync_status("L1").is_manual_mode

    def test_three_transient_failures_enable_manual_mode(self, ledger, engine):
        controller = _make_controller(ledger, engine)
        for _ in range(2):
            controller.handle_feed_failure("L1", TimeoutError())
        assert not ledger.get_sync_status("L1").is_manual_mode
        controller.handle_feed_failure("L1", TimeoutError())
        assert ledger.get_sync_status("L1").is_manual_mode

    def test_retries_continue_in_manual_mode(self, ledger, engine, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: False, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)
        for _ in range(3):
            controller.handle_feed_failure("L1", "network error")
        assert ledger.get_sync_status("L1").is_manual_mode
        assert retry.state.phase == SCHEDULED
        scheduler.fire_next()
        assert retry.state.phase == SCHEDULED

    def test_failure_does_not_touch_picks(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_feed_picks("L1", [PickEvent("p1", 55, "a")], projections)
        controller.handle_feed_failure("L1", "timeout")
        assert len(ledger.get_draft("L1").drafted_players) == 1

    def test_retry_factory_used_lazily(self, ledger, engine, scheduler):
        created = []

        def factory(league_id):
            created.append(league_id)
            return BackgroundRetryController(lambda: True, scheduler=scheduler, name=league_id)

        controller = _make_controller(ledger, engine, retry_factory=factory)
        assert created == []
        controller.handle_feed_failure("L1", "timeout")
        controller.handle_feed_failure("L1", "timeout")
        assert created == ["L1"]

    def test_successful_poll_resets_retry(self, ledger, engine, projections, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: True, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)
        controller.handle_feed_failure("L1", "timeout")
        controller.submit_feed_picks("L1", [], projections)
        assert retry.state.retry_count == 0
        assert scheduler.pending == []

    def test_failure_inside_retry_attempt_not_double_counted(
        self, ledger, engine, projections, scheduler
    ):
        controller = _make_controller(ledger, engine)

        def poll():
            controller.handle_feed_failure("L1", "timeout")
            return False

        retry = BackgroundRetryController(poll, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)
        controller.handle_feed_failure("L1", "timeout")
        scheduler.fire_next()
        assert retry.state.retry_count == 2
        assert len(scheduler.pending) == 1

    def test_dispose_stops_retries(self, ledger, engine, scheduler):
        controller = _make_controller(ledger, engine)
        retry = BackgroundRetryController(lambda: True, scheduler=scheduler)
        controller.attach_retry_controller("L1", retry)
        controller.handle_feed_failure("L1", "timeout")
        controller.dispose()
        assert retry.is_disposed
        assert scheduler.pending == []


# ── Persistence and rollback ─────────────────────────────────────────

class TestPersistence:
    def test_saved_after_pick(self, ledger, engine, projections, tmp_path):
        persistence = StatePersistence(storage_dir=tmp_path)
        controller = _make_controller(ledger, engine, persistence=persistence)
        controller.submit_manual_bid("L1", ManualBid("p1", 55), projections)
        loaded = persistence.load_store()
        assert [p.player_id for p in loaded.drafts["L1"].drafted_players] == ["p1"]

    def test_failed_save_rolls_back(self, ledger, engine, projections):
        persistence = _FailingPersistence(PersistenceError("disk full"))
        controller = _make_controller(ledger, engine, persistence=persistence)
        with pytest.raises(PersistenceError):
            controller.submit_manual_bid("L1", ManualBid("p1", 55, is_my_team=True), projections)
        draft = ledger.get_draft("L1")
        assert draft.drafted_players == []
        assert draft.remaining_budget == 260
        assert all(slot.is_empty for slot in draft.roster)
        assert engine.get_state("L1").overall_rate == 0.0

    def test_os_error_wrapped(self, ledger, engine, projections):
        persistence = _FailingPersistence(OSError("read-only"))
        controller = _make_controller(ledger, engine, persistence=persistence)
        with pytest.raises(PersistenceError):
            controller.submit_feed_picks("L1", [PickEvent("p1", 55, "a")], projections)
        assert ledger.get_draft("L1").drafted_players == []

    def test_rollback_leaves_other_leagues(self, ledger, engine, projections):
        persistence = _FailingPersistence(PersistenceError("disk full"))
        controller = _make_controller(ledger, engine)
        ledger.initialize_draft("L2", 260, ROSTER)
        controller.submit_manual_bid("L2", ManualBid("p1", 55), projections)
        controller.persistence = persistence
        with pytest.raises(PersistenceError):
            controller.submit_manual_bid("L1", ManualBid("p2", 30), projections)
        assert len(ledger.get_draft("L2").drafted_players) == 1


# ── Projection refresh ───────────────────────────────────────────────

class TestRecompute:
    def test_recompute_with_new_projections(self, ledger, engine, projections):
        controller = _make_controller(ledger, engine)
        controller.submit_feed_picks("L1", [PickEvent("p1", 55, "a")], projections)
        cheaper = [p if p.player_id != "p1" else ProjectionRecord("p1", 55.0) for p in projections]
        state = controller.recompute("L1", cheaper)
        assert state.overall_rate == 0.0

    def test_unknown_league(self, ledger, engine, projections):
        controller = ReconciliationController(ledger, engine)
        assert controller.recompute("nope", projections).overall_rate == 0.0
