"""Roster slot assignment for the user's team."""

from typing import Dict, List, Optional

from src.draft_ledger.config import BENCH_SLOT, PITCHER_POSITIONS, UTIL_SLOT
from src.draft_ledger.draft_state import RosterSlot


class RosterValidator:
    """Finds open roster slots and summarizes roster fill."""

    @staticmethod
    def primary_position(position: str) -> str:
        """First listed position of a multi-position string ("2B/SS" -> "2B")."""
        if not position:
            return ""
        return position.replace(",", "/").split("/")[0].strip().upper()

    def determine_roster_slot(
        self, roster: List[RosterSlot], player_position: str
    ) -> Optional[int]:
        """
        Determine which empty slot a player should fill.

        Priority: exact position -> UTIL (hitters only) -> BN.

        Returns:
            Index into ``roster``, or None when no eligible slot is free.
        """
        position = self.primary_position(player_position)

        index = self._find_empty(roster, position)
        if index is None and position and position not in PITCHER_POSITIONS:
            index = self._find_empty(roster, UTIL_SLOT)
        if index is None:
            index = self._find_empty(roster, BENCH_SLOT)
        return index

    @staticmethod
    def _find_empty(roster: List[RosterSlot], position: str) -> Optional[int]:
        for i, slot in enumerate(roster):
            if slot.is_empty and slot.position == position:
                return i
        return None

    def get_roster_summary(self, roster: List[RosterSlot]) -> Dict[str, Dict]:
        """Generate summary of the roster's filled and open slots by position."""
        summary: Dict[str, Dict] = {}

        for slot in roster:
            entry = summary.setdefault(
                slot.position, {"filled": 0, "required": 0, "remaining": 0}
            )
            entry["required"] += 1
            if slot.is_empty:
                entry["remaining"] += 1
            else:
                entry["filled"] += 1

        return summary
