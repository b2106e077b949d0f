"""Draft ledger data models - single source of truth for each league's draft."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from src.draft_ledger.config import (
    BENCH_SLOT,
    DEFAULT_SORT_COLUMN,
    DEFAULT_SORT_DIRECTION,
    DEFAULT_STATUS_FILTER,
    HITTER_SLOT_POSITIONS,
    PITCHER_SLOT_POSITIONS,
)


@dataclass
class RosterConfig:
    """Number of hitter, pitcher and bench slots for the user's team."""

    hitters: int
    pitchers: int
    bench: int

    @classmethod
    def from_dict(cls, data: Dict) -> "RosterConfig":
        return cls(
            hitters=int(data.get("hitters", 0)),
            pitchers=int(data.get("pitchers", 0)),
            bench=int(data.get("bench", 0)),
        )


@dataclass
class RosterSlot:
    """A single roster slot on the user's team."""

    position: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    purchase_price: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.player_id is None


@dataclass
class DraftedPlayer:
    """A purchased player. Appended to the ledger, never edited in place.

    ``drafted_by`` and ``is_manual_entry`` record provenance only; they are
    never read by the inflation calculations.
    """

    player_id: str
    player_name: str
    position: str
    purchase_price: float
    projected_value: float
    variance: float
    drafted_by: str  # "user" or "other"
    drafted_at: str
    tier: Optional[str] = None
    is_manual_entry: bool = False

    @classmethod
    def create(
        cls,
        player_id: str,
        player_name: str,
        position: str,
        purchase_price: float,
        projected_value: float,
        drafted_by: str = "other",
        tier: Optional[str] = None,
        is_manual_entry: bool = False,
    ) -> "DraftedPlayer":
        return cls(
            player_id=player_id,
            player_name=player_name,
            position=position,
            purchase_price=purchase_price,
            projected_value=projected_value,
            variance=purchase_price - projected_value,
            drafted_by=drafted_by,
            drafted_at=datetime.now().isoformat(),
            tier=tier,
            is_manual_entry=is_manual_entry,
        )


def build_roster_slots(config: RosterConfig) -> List[RosterSlot]:
    """Generate empty roster slots: capped hitters, capped pitchers, bench."""
    slots = [
        RosterSlot(position=pos)
        for pos in HITTER_SLOT_POSITIONS[: max(config.hitters, 0)]
    ]
    slots.extend(
        RosterSlot(position=pos)
        for pos in PITCHER_SLOT_POSITIONS[: max(config.pitchers, 0)]
    )
    slots.extend(RosterSlot(position=BENCH_SLOT) for _ in range(max(config.bench, 0)))
    return slots


@dataclass
class LeagueDraftState:
    """Complete draft record for one league."""

    league_id: str
    initial_budget: float
    remaining_budget: float
    roster: List[RosterSlot]
    drafted_players: List[DraftedPlayer]
    started_at: str
    last_updated_at: str

    @classmethod
    def create_new(
        cls,
        league_id: str,
        initial_budget: float,
        roster_config: RosterConfig,
    ) -> "LeagueDraftState":
        """Factory method to create an empty draft for a league."""
        now = datetime.now().isoformat()
        return cls(
            league_id=league_id,
            initial_budget=initial_budget,
            remaining_budget=initial_budget,
            roster=build_roster_slots(roster_config),
            drafted_players=[],
            started_at=now,
            last_updated_at=now,
        )

    def touch(self):
        self.last_updated_at = datetime.now().isoformat()

    def is_player_drafted(self, player_id: str) -> bool:
        return any(p.player_id == player_id for p in self.drafted_players)

    def get_user_picks(self) -> List[DraftedPlayer]:
        return [p for p in self.drafted_players if p.drafted_by == "user"]

    def total_spent(self) -> float:
        return self.initial_budget - self.remaining_budget

    def slots_remaining(self) -> int:
        return sum(1 for slot in self.roster if slot.is_empty)


@dataclass
class SortState:
    column: str = DEFAULT_SORT_COLUMN
    direction: str = DEFAULT_SORT_DIRECTION


@dataclass
class FilterState:
    status: str = DEFAULT_STATUS_FILTER
    search_term: str = ""
    position: Optional[str] = None


@dataclass
class SyncStatus:
    """Connection health for a league's external draft-room feed."""

    is_connected: bool = False
    is_syncing: bool = False
    is_manual_mode: bool = False
    failure_count: int = 0
    failure_type: Optional[str] = None  # "transient" or "persistent"
    last_error: Optional[str] = None
    last_success_at: Optional[str] = None
    last_failure_at: Optional[str] = None


@dataclass
class LedgerStore:
    """Keyed container for all per-league state plus shared view state.

    Created once and injected into the ledger and controllers; nothing in
    the package keeps a module-level instance.
    """

    drafts: Dict[str, LeagueDraftState] = field(default_factory=dict)
    sort_state: SortState = field(default_factory=SortState)
    filter_state: FilterState = field(default_factory=FilterState)
    sync_status: Dict[str, SyncStatus] = field(default_factory=dict)
