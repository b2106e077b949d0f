"""Sync reconciliation controller - single entry point for feed and manual picks."""

import logging
import threading
from typing import Callable, Dict, Iterable, Optional, Sequence

from src.draft_ledger.draft_rules import BidRules
from src.draft_ledger.draft_state import DraftedPlayer
from src.draft_ledger.ledger import DraftLedger
from src.draft_ledger.state_persistence import PersistenceError, StatePersistence
from src.inflation_engine.calculations import build_projection_map
from src.inflation_engine.inflation_engine import InflationEngine, budget_context_from_draft
from src.inflation_engine.models import InflationState, ProjectionRecord
from src.sync.config import CATCH_UP_NOTIFICATION_THRESHOLD
from src.sync.error_classifier import classify_error, should_enable_manual_mode
from src.sync.models import ErrorClassification, ManualBid, PickEvent
from src.sync.retry_controller import BackgroundRetryController

logger = logging.getLogger(__name__)


class ReconciliationController:
    """Applies picks from the draft-room feed and from manual entry.

    Both paths build the same :class:`DraftedPlayer` record (only the
    ``drafted_by`` / ``is_manual_entry`` tags differ), append it to the
    ledger, and trigger exactly one full inflation recompute per pick.
    Mutations for one league are serialized by a per-league lock and
    applied in arrival order.
    """

    def __init__(
        self,
        ledger: DraftLedger,
        engine: InflationEngine,
        bid_rules: Optional[BidRules] = None,
        persistence: Optional[StatePersistence] = None,
        retry_factory: Optional[Callable[[str], BackgroundRetryController]] = None,
    ):
        self.ledger = ledger
        self.engine = engine
        self.rules = bid_rules or BidRules()
        self.persistence = persistence
        self.retry_factory = retry_factory

        self._user_teams: Dict[str, str] = {}
        self._retry_controllers: Dict[str, BackgroundRetryController] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_user_team(self, league_id: str, team_ref: str):
        """Feed picks whose ``team_ref`` matches are recorded as the user's."""
        self._user_teams[league_id] = team_ref

    def attach_retry_controller(self, league_id: str, controller: BackgroundRetryController):
        with self._lock_for(league_id):
            previous = self._retry_controllers.get(league_id)
            if previous is not None and previous is not controller:
                previous.dispose()
            self._retry_controllers[league_id] = controller
            controller.set_manual_mode(self.ledger.get_sync_status(league_id).is_manual_mode)

    def get_retry_controller(self, league_id: str) -> Optional[BackgroundRetryController]:
        controller = self._retry_controllers.get(league_id)
        if controller is None and self.retry_factory is not None:
            controller = self.retry_factory(league_id)
            self.attach_retry_controller(league_id, controller)
        return controller

    def dispose(self):
        """Stop every league's background retries."""
        for controller in list(self._retry_controllers.values()):
            controller.dispose()
        self._retry_controllers.clear()

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def submit_manual_bid(
        self,
        league_id: str,
        bid: ManualBid,
        projections: Sequence[ProjectionRecord],
    ) -> InflationState:
        """Validate and record a hand-entered pick, then recompute.

        Raises:
            ValidationError: Bid below the minimum, above the effective
                maximum, or for a player already drafted. Nothing is
                changed when this is raised.
            PersistenceError: The ledger could not be saved; the league is
                rolled back to its state before the bid.
        """
        with self._lock_for(league_id):
            draft = self.ledger.get_draft(league_id)
            if draft is None:
                logger.warning("Manual bid ignored: no draft for league %s", league_id)
                return self.engine.get_state(league_id)

            self.rules.validate_not_drafted(draft, bid.player_id)
            self.rules.validate_bid(bid.bid, bid.is_my_team, draft.remaining_budget)

            player = self._build_player(
                player_id=bid.player_id,
                price=bid.bid,
                projection_map=build_projection_map(projections),
                drafted_by="user" if bid.is_my_team else "other",
                is_manual_entry=True,
                player_name=bid.player_name,
                position=bid.position,
                projected_value=bid.projected_value,
                tier=bid.tier,
            )
            self._apply(league_id, lambda: self._record_pick(league_id, player))

            logger.info(
                "League %s: manual entry %s for $%s (%s)",
                league_id,
                player.player_name,
                player.purchase_price,
                player.drafted_by,
            )
            return self._recompute(league_id, projections)

    def submit_feed_picks(
        self,
        league_id: str,
        events: Iterable[PickEvent],
        projections: Sequence[ProjectionRecord],
    ) -> InflationState:
        """Record new picks from a feed poll, in arrival order.

        The feed sends its full pick list on every poll, so events for
        players already in the ledger are skipped. A successful poll also
        marks the league connected and resets its background retries.

        Returns:
            The inflation state after the last recompute.
        """
        with self._lock_for(league_id):
            draft = self.ledger.get_draft(league_id)
            if draft is None:
                logger.warning("Feed picks ignored: no draft for league %s", league_id)
                return self.engine.get_state(league_id)

            seen = {p.player_id for p in draft.drafted_players}
            new_events = []
            for event in events:
                if event.player_id in seen:
                    continue
                seen.add(event.player_id)
                new_events.append(event)

            if len(new_events) >= CATCH_UP_NOTIFICATION_THRESHOLD:
                logger.info(
                    "League %s: catching up on %d picks from the feed",
                    league_id,
                    len(new_events),
                )

            projection_map = build_projection_map(projections)
            user_team = self._user_teams.get(league_id)
            state = self.engine.get_state(league_id)

            for event in new_events:
                is_mine = user_team is not None and event.team_ref == user_team
                player = self._build_player(
                    player_id=event.player_id,
                    price=event.price,
                    projection_map=projection_map,
                    drafted_by="user" if is_mine else "other",
                    is_manual_entry=False,
                    player_name=event.player_name,
                    position=event.position,
                )
                self._apply(league_id, lambda: self._record_pick(league_id, player))
                state = self._recompute(league_id, projections)

            self._apply(league_id, lambda: self.ledger.record_sync_success(league_id))

            controller = self._retry_controllers.get(league_id)
            if controller is not None:
                controller.reset()
            return state

    def handle_feed_failure(self, league_id: str, error) -> ErrorClassification:
        """Classify a failed feed poll and update sync status.

        Transient failures are forwarded to the league's retry controller,
        unless the failure came from that controller's own attempt (it
        reschedules itself). Picks are never touched.
        """
        with self._lock_for(league_id):
            current = self.ledger.get_sync_status(league_id)
            classification = classify_error(error, current.failure_count)
            manual = should_enable_manual_mode(classification, current.failure_count + 1)

            status = self.ledger.record_sync_failure(
                league_id,
                classification.failure_type,
                classification.display_message,
                enable_manual_mode=manual,
            )
            logger.warning(
                "League %s: %s feed failure #%d: %s",
                league_id,
                classification.failure_type,
                status.failure_count,
                classification.display_message,
            )

            controller = self.get_retry_controller(league_id)
            if controller is not None:
                controller.set_manual_mode(status.is_manual_mode)
                if classification.should_retry and not controller.is_retrying:
                    controller.on_failure()
            return classification

    def recompute(
        self, league_id: str, projections: Sequence[ProjectionRecord]
    ) -> InflationState:
        """Recompute without a new pick, e.g. after the projection pool changes."""
        with self._lock_for(league_id):
            if self.ledger.get_draft(league_id) is None:
                return self.engine.get_state(league_id)
            return self._recompute(league_id, projections)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, league_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(league_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[league_id] = lock
            return lock

    @staticmethod
    def _build_player(
        player_id: str,
        price: float,
        projection_map: Dict[str, ProjectionRecord],
        drafted_by: str,
        is_manual_entry: bool,
        player_name: str = "",
        position: str = "",
        projected_value: Optional[float] = None,
        tier: Optional[str] = None,
    ) -> DraftedPlayer:
        record = projection_map.get(player_id)
        if record is not None:
            projected = record.projected_value
            player_name = player_name or record.player_name
            position = position or record.position
            tier = tier or record.tier
        else:
            projected = projected_value if projected_value is not None else 0.0

        return DraftedPlayer.create(
            player_id=player_id,
            player_name=player_name or player_id,
            position=position,
            purchase_price=price,
            projected_value=projected,
            drafted_by=drafted_by,
            tier=tier,
            is_manual_entry=is_manual_entry,
        )

    def _record_pick(self, league_id: str, player: DraftedPlayer) -> bool:
        """Append the pick; the user's own picks also pay and take a roster slot.

        Returns:
            False when a user pick found no open roster slot. The pick and
            the budget deduction are still recorded.
        """
        self.ledger.add_drafted_player(league_id, player)
        if player.drafted_by != "user":
            return True

        draft = self.ledger.get_draft(league_id)
        self.ledger.update_budget(league_id, draft.remaining_budget - player.purchase_price)
        slotted = self.ledger.add_to_roster(
            league_id,
            player.player_id,
            player.player_name,
            player.position,
            player.purchase_price,
        )
        if not slotted:
            logger.warning(
                "League %s: %s recorded for $%s but the roster is full",
                league_id,
                player.player_name,
                player.purchase_price,
            )
        return slotted

    def _apply(self, league_id: str, mutation: Callable[[], object]):
        """Mutate in memory, then save; roll the league back if the save fails.

        Returns whatever ``mutation`` returned.
        """
        if self.persistence is None:
            return mutation()

        snapshot = self.ledger.snapshot_league(league_id)
        result = mutation()
        try:
            self.persistence.save_store(self.ledger.store)
        except (OSError, PersistenceError) as e:
            self.ledger.restore_league(league_id, snapshot)
            logger.error("League %s: save failed, change rolled back: %s", league_id, e)
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(str(e)) from e
        return result

    def _recompute(
        self, league_id: str, projections: Sequence[ProjectionRecord]
    ) -> InflationState:
        draft = self.ledger.get_draft(league_id)
        return self.engine.recompute(
            league_id,
            draft.drafted_players,
            projections,
            budget_context_from_draft(draft),
        )
