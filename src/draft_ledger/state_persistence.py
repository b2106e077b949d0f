"""State persistence - save and load the ledger store to/from JSON files."""

import json
import logging
import math
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional

from src.draft_ledger.config import (
    LEDGER_DIR,
    LEDGER_FILENAME,
    SORT_COLUMNS,
    SORT_DIRECTIONS,
    STATUS_FILTERS,
)
from src.draft_ledger.draft_state import (
    DraftedPlayer,
    FilterState,
    LeagueDraftState,
    LedgerStore,
    RosterSlot,
    SortState,
    SyncStatus,
)

logger = logging.getLogger(__name__)


def _as_budget(value) -> Optional[float]:
    """Coerce a stored budget to float; None when it is not a finite number."""
    if isinstance(value, bool):
        return None
    try:
        budget = float(value)
    except (TypeError, ValueError):
        return None
    return budget if math.isfinite(budget) else None


class PersistenceError(Exception):
    """Raised when the ledger could not be written to disk."""


class StatePersistence:
    """Handles saving and loading the ledger store to/from a JSON file.

    Loading never fails on bad data: a missing, unreadable or partially
    corrupted file is replaced field by field with defaults (no drafts,
    default sort and filter, no sync status).
    """

    def __init__(self, storage_dir: Optional[Path] = None, filename: str = LEDGER_FILENAME):
        self.storage_dir = storage_dir or LEDGER_DIR
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.filepath = self.storage_dir / filename

    def save_store(self, store: LedgerStore) -> Path:
        """Save the whole ledger store.

        Returns:
            Path to the saved file.

        Raises:
            PersistenceError: If the file could not be written.
        """
        state_dict = self._store_to_dict(store)

        try:
            with open(self.filepath, "w", encoding="utf-8") as f:
                json.dump(state_dict, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Could not save ledger to {self.filepath}: {e}") from e

        logger.info("Saved %d draft(s) to %s", len(store.drafts), self.filepath)
        return self.filepath

    def load_store(self) -> LedgerStore:
        """Load the ledger store, substituting defaults for anything unusable."""
        if not self.filepath.exists():
            logger.info("No saved ledger at %s, starting empty", self.filepath)
            return LedgerStore()

        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Corrupt ledger file %s: %s", self.filepath, e)
            return LedgerStore()

        if not isinstance(data, dict):
            logger.warning("Ledger file %s has unexpected layout, ignoring", self.filepath)
            return LedgerStore()

        store = self._dict_to_store(data)
        logger.info("Loaded %d draft(s) from %s", len(store.drafts), self.filepath)
        return store

    def delete_store(self) -> bool:
        """Delete the saved ledger file.

        Returns:
            True if deleted, False if not found.
        """
        if not self.filepath.exists():
            return False
        self.filepath.unlink()
        logger.info("Deleted ledger file %s", self.filepath)
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _store_to_dict(self, store: LedgerStore) -> Dict:
        """Convert LedgerStore to JSON-serializable dict."""
        return {
            "drafts": {
                league_id: asdict(draft) for league_id, draft in store.drafts.items()
            },
            "sort_state": asdict(store.sort_state),
            "filter_state": asdict(store.filter_state),
            "sync_status": {
                league_id: asdict(status)
                for league_id, status in store.sync_status.items()
            },
        }

    def _dict_to_store(self, data: Dict) -> LedgerStore:
        """Reconstruct a LedgerStore, one field at a time."""
        drafts = {}
        raw_drafts = data.get("drafts")
        if isinstance(raw_drafts, dict):
            for league_id, raw in raw_drafts.items():
                draft = self._dict_to_draft(league_id, raw)
                if draft is not None:
                    drafts[league_id] = draft
        elif raw_drafts is not None:
            logger.warning("Ignoring malformed 'drafts' section")

        sync_status = {}
        raw_status = data.get("sync_status")
        if isinstance(raw_status, dict):
            for league_id, raw in raw_status.items():
                try:
                    sync_status[league_id] = SyncStatus(**raw)
                except TypeError as e:
                    logger.warning("Skipping corrupt sync status for %s: %s", league_id, e)
        elif raw_status is not None:
            logger.warning("Ignoring malformed 'sync_status' section")

        return LedgerStore(
            drafts=drafts,
            sort_state=self._dict_to_sort(data.get("sort_state")),
            filter_state=self._dict_to_filter(data.get("filter_state")),
            sync_status=sync_status,
        )

    def _dict_to_draft(self, league_id: str, raw) -> Optional[LeagueDraftState]:
        try:
            roster = [RosterSlot(**slot) for slot in raw.get("roster", [])]
            players = []
            for raw_pick in raw.get("drafted_players") or []:
                try:
                    players.append(DraftedPlayer(**raw_pick))
                except TypeError as e:
                    logger.warning(
                        "Skipping corrupt pick in league %s: %s", league_id, e
                    )
            initial_budget = _as_budget(raw["initial_budget"])
            if initial_budget is None:
                logger.warning(
                    "Skipping draft for league %s: invalid initial budget %r",
                    league_id,
                    raw["initial_budget"],
                )
                return None
            remaining_budget = _as_budget(raw.get("remaining_budget"))
            if remaining_budget is None:
                logger.warning(
                    "League %s: invalid remaining budget %r, resetting to %s",
                    league_id,
                    raw.get("remaining_budget"),
                    initial_budget,
                )
                remaining_budget = initial_budget
            return LeagueDraftState(
                league_id=raw.get("league_id", league_id),
                initial_budget=initial_budget,
                remaining_budget=remaining_budget,
                roster=roster,
                drafted_players=players,
                started_at=raw.get("started_at", ""),
                last_updated_at=raw.get("last_updated_at", ""),
            )
        except (AttributeError, KeyError, TypeError) as e:
            logger.warning("Skipping corrupt draft for league %s: %s", league_id, e)
            return None

    @staticmethod
    def _dict_to_sort(raw) -> SortState:
        if not isinstance(raw, dict):
            return SortState()
        column = raw.get("column")
        direction = raw.get("direction")
        if column not in SORT_COLUMNS or direction not in SORT_DIRECTIONS:
            logger.warning("Resetting invalid sort state %s", raw)
            return SortState()
        return SortState(column=column, direction=direction)

    @staticmethod
    def _dict_to_filter(raw) -> FilterState:
        if not isinstance(raw, dict):
            return FilterState()
        status = raw.get("status")
        if status not in STATUS_FILTERS:
            status = FilterState().status
        search_term = raw.get("search_term")
        position = raw.get("position")
        return FilterState(
            status=status,
            search_term=search_term if isinstance(search_term, str) else "",
            position=position if isinstance(position, str) else None,
        )
