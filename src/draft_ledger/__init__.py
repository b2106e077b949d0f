from src.draft_ledger.draft_rules import (
    BidBelowMinimumError,
    BidRules,
    BudgetExceededError,
    DuplicatePickError,
    ValidationError,
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
from src.draft_ledger.ledger import DraftLedger
from src.draft_ledger.roster_validator import RosterValidator
from src.draft_ledger.state_persistence import PersistenceError, StatePersistence

__all__ = [
    "BidBelowMinimumError",
    "BidRules",
    "BudgetExceededError",
    "DraftLedger",
    "DraftedPlayer",
    "DuplicatePickError",
    "FilterState",
    "LeagueDraftState",
    "LedgerStore",
    "PersistenceError",
    "RosterConfig",
    "RosterSlot",
    "RosterValidator",
    "SortState",
    "StatePersistence",
    "SyncStatus",
    "ValidationError",
]
