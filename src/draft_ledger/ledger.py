"""Draft ledger - keyed mutation and query API over a LedgerStore."""

import copy
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from src.draft_ledger.config import (
    DISCONNECTED_FAILURE_THRESHOLD,
    SORT_COLUMNS,
    SORT_DIRECTIONS,
    STATUS_FILTERS,
)
from src.draft_ledger.draft_state import (
    DraftedPlayer,
    FilterState,
    LeagueDraftState,
    LedgerStore,
    RosterConfig,
    RosterSlot,
    SortState,
    SyncStatus,
)
from src.draft_ledger.roster_validator import RosterValidator

logger = logging.getLogger(__name__)


class DraftLedger:
    """Authoritative per-league record of budget, roster and drafted players.

    Every read and write of a :class:`LedgerStore` goes through this class.
    Mutators called with an unknown league id log a warning and return
    without changing anything; they never raise for a missing key.
    """

    def __init__(self, store: Optional[LedgerStore] = None):
        self.store = store if store is not None else LedgerStore()
        self.validator = RosterValidator()

    # ------------------------------------------------------------------
    # Draft lifecycle
    # ------------------------------------------------------------------

    def initialize_draft(
        self,
        league_id: str,
        initial_budget: float,
        roster_config: RosterConfig,
    ) -> LeagueDraftState:
        """Create a fresh draft for ``league_id``, replacing any existing one."""
        if isinstance(roster_config, dict):
            roster_config = RosterConfig.from_dict(roster_config)

        if league_id in self.store.drafts:
            logger.info("Replacing existing draft for league %s", league_id)

        draft = LeagueDraftState.create_new(league_id, initial_budget, roster_config)
        self.store.drafts[league_id] = draft

        logger.info(
            "Initialized draft for league %s: budget=%s, %d roster slots",
            league_id,
            initial_budget,
            len(draft.roster),
        )
        return draft

    def get_draft(self, league_id: str) -> Optional[LeagueDraftState]:
        return self.store.drafts.get(league_id)

    def has_draft_in_progress(self, league_id: str) -> bool:
        draft = self.get_draft(league_id)
        return draft is not None and len(draft.drafted_players) > 0

    def clear_draft(self, league_id: str):
        """Remove a single league's draft; other leagues are untouched."""
        if self.store.drafts.pop(league_id, None) is not None:
            logger.info("Cleared draft for league %s", league_id)

    def _require_draft(self, league_id: str, operation: str) -> Optional[LeagueDraftState]:
        draft = self.store.drafts.get(league_id)
        if draft is None:
            logger.warning("%s ignored: no draft for league %s", operation, league_id)
        return draft

    # ------------------------------------------------------------------
    # Picks, budget, roster
    # ------------------------------------------------------------------

    def add_drafted_player(self, league_id: str, player: DraftedPlayer) -> bool:
        """Append a pick with a ledger-assigned timestamp.

        Does not deduplicate and does not trigger an inflation recompute.

        Returns:
            True if the pick was recorded, False for an unknown league.
        """
        draft = self._require_draft(league_id, "add_drafted_player")
        if draft is None:
            return False

        recorded = replace(player, drafted_at=datetime.now().isoformat())
        draft.drafted_players.append(recorded)
        draft.touch()

        logger.debug(
            "League %s: recorded %s (%s) for $%s [drafted_by=%s, manual=%s]",
            league_id,
            recorded.player_name,
            recorded.position,
            recorded.purchase_price,
            recorded.drafted_by,
            recorded.is_manual_entry,
        )
        return True

    def add_drafted_players(self, league_id: str, players: List[DraftedPlayer]) -> int:
        """Append several picks, skipping player ids already in the ledger.

        Returns:
            Number of picks actually added.
        """
        draft = self._require_draft(league_id, "add_drafted_players")
        if draft is None or not players:
            return 0

        seen = {p.player_id for p in draft.drafted_players}
        added = 0
        for player in players:
            if player.player_id in seen:
                continue
            seen.add(player.player_id)
            self.add_drafted_player(league_id, player)
            added += 1

        if added < len(players):
            logger.debug(
                "League %s: skipped %d duplicate picks", league_id, len(players) - added
            )
        return added

    def update_budget(self, league_id: str, remaining_budget: float):
        """Set the remaining budget directly. Negative values are allowed."""
        draft = self._require_draft(league_id, "update_budget")
        if draft is None:
            return
        draft.remaining_budget = remaining_budget
        draft.touch()

    def update_roster(self, league_id: str, roster: List[RosterSlot]):
        draft = self._require_draft(league_id, "update_roster")
        if draft is None:
            return
        draft.roster = list(roster)
        draft.touch()

    def add_to_roster(
        self,
        league_id: str,
        player_id: str,
        player_name: str,
        position: str,
        purchase_price: float,
    ) -> bool:
        """Place a purchased player into the first eligible empty slot.

        Returns:
            False if the league is unknown or no eligible slot is open.
        """
        draft = self._require_draft(league_id, "add_to_roster")
        if draft is None:
            return False

        index = self.validator.determine_roster_slot(draft.roster, position)
        if index is None:
            logger.warning(
                "League %s: no open roster slot for %s (%s)",
                league_id,
                player_name,
                position,
            )
            return False

        slot = draft.roster[index]
        draft.roster[index] = replace(
            slot,
            player_id=player_id,
            player_name=player_name,
            purchase_price=purchase_price,
        )
        draft.touch()
        logger.debug("League %s: %s -> %s slot", league_id, player_name, slot.position)
        return True

    # ------------------------------------------------------------------
    # Shared view state
    # ------------------------------------------------------------------

    def set_sort(self, sort: SortState):
        if sort.column not in SORT_COLUMNS or sort.direction not in SORT_DIRECTIONS:
            logger.warning("Ignoring invalid sort state %s", sort)
            return
        self.store.sort_state = sort

    def toggle_sort(self, column: str):
        """Flip direction for the active column; a new column starts ascending."""
        current = self.store.sort_state
        if current.column == column:
            direction = "desc" if current.direction == "asc" else "asc"
            self.set_sort(SortState(column=column, direction=direction))
        else:
            self.set_sort(SortState(column=column, direction="asc"))

    def reset_sort(self):
        self.store.sort_state = SortState()

    def set_status_filter(self, status: str):
        if status not in STATUS_FILTERS:
            logger.warning("Ignoring unknown status filter %r", status)
            return
        self.store.filter_state = replace(self.store.filter_state, status=status)

    def set_search_filter(self, search_term: str):
        self.store.filter_state = replace(self.store.filter_state, search_term=search_term)

    def clear_filters(self):
        self.store.filter_state = FilterState()

    # ------------------------------------------------------------------
    # Sync status
    # ------------------------------------------------------------------

    def get_sync_status(self, league_id: str) -> SyncStatus:
        """Status for a league; a default status if none has been recorded."""
        return self.store.sync_status.get(league_id) or SyncStatus()

    def update_sync_status(self, league_id: str, **changes) -> SyncStatus:
        status = replace(self.get_sync_status(league_id), **changes)
        self.store.sync_status[league_id] = status
        return status

    def record_sync_failure(
        self,
        league_id: str,
        failure_type: str,
        message: str,
        enable_manual_mode: Optional[bool] = None,
    ) -> SyncStatus:
        """Count a failed sync.

        Manual mode is switched on when ``enable_manual_mode`` is True; when
        it is None, persistent failures or reaching the disconnect threshold
        switch it on. A failure never switches manual mode off.
        """
        current = self.get_sync_status(league_id)
        failure_count = current.failure_count + 1
        if enable_manual_mode is None:
            enable_manual_mode = (
                failure_type == "persistent"
                or failure_count >= DISCONNECTED_FAILURE_THRESHOLD
            )
        manual_mode = current.is_manual_mode or enable_manual_mode
        if manual_mode and not current.is_manual_mode:
            logger.warning(
                "League %s: manual mode enabled after %d %s failure(s)",
                league_id,
                failure_count,
                failure_type,
            )
        return self.update_sync_status(
            league_id,
            failure_count=failure_count,
            failure_type=failure_type,
            last_error=message,
            last_failure_at=datetime.now().isoformat(),
            is_manual_mode=manual_mode,
            is_connected=False,
            is_syncing=False,
        )

    def record_sync_success(self, league_id: str) -> SyncStatus:
        """Clear failure tracking. Manual mode stays as the user left it."""
        return self.update_sync_status(
            league_id,
            failure_count=0,
            failure_type=None,
            last_error=None,
            last_failure_at=None,
            is_connected=True,
            is_syncing=False,
            last_success_at=datetime.now().isoformat(),
        )

    def enable_manual_mode(self, league_id: str):
        self.update_sync_status(league_id, is_manual_mode=True)

    def disable_manual_mode(self, league_id: str):
        self.update_sync_status(league_id, is_manual_mode=False)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerStore:
        """Deep copy of the whole store, for rollback."""
        return copy.deepcopy(self.store)

    def restore(self, snapshot: LedgerStore):
        """Put a previous snapshot's contents back into the injected store."""
        self.store.drafts = snapshot.drafts
        self.store.sort_state = snapshot.sort_state
        self.store.filter_state = snapshot.filter_state
        self.store.sync_status = snapshot.sync_status

    def snapshot_league(
        self, league_id: str
    ) -> Tuple[Optional[LeagueDraftState], Optional[SyncStatus]]:
        """Deep copy of one league's draft and sync status."""
        return copy.deepcopy(
            (self.store.drafts.get(league_id), self.store.sync_status.get(league_id))
        )

    def restore_league(
        self,
        league_id: str,
        snapshot: Tuple[Optional[LeagueDraftState], Optional[SyncStatus]],
    ):
        """Roll one league back to a snapshot; other leagues are untouched."""
        draft, status = snapshot
        if draft is None:
            self.store.drafts.pop(league_id, None)
        else:
            self.store.drafts[league_id] = draft
        if status is None:
            self.store.sync_status.pop(league_id, None)
        else:
            self.store.sync_status[league_id] = status
