from pathlib import Path

# Base project directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Data directories
LEDGER_DIR = PROJECT_ROOT / "data" / "ledger"
LEDGER_FILENAME = "draft_ledger.json"

# Roster slot templates (hitters and pitchers are capped to these lists)
HITTER_SLOT_POSITIONS = ["C", "1B", "2B", "3B", "SS", "OF", "OF", "OF", "UTIL"]
PITCHER_SLOT_POSITIONS = ["SP", "SP", "SP", "SP", "SP", "RP", "RP", "RP", "RP"]
BENCH_SLOT = "BN"
UTIL_SLOT = "UTIL"
PITCHER_POSITIONS = {"SP", "RP", "P"}

DEFAULT_ROSTER_CONFIG = {
    "hitters": 14,
    "pitchers": 9,
    "bench": 3,
}

# Default auction settings
DEFAULT_INITIAL_BUDGET = 260
DEFAULT_MIN_BID = 1
DEFAULT_MAX_BID = 260

# View state
SORT_COLUMNS = (
    "name",
    "positions",
    "team",
    "projected_value",
    "adjusted_value",
    "tier",
    "status",
)
SORT_DIRECTIONS = ("asc", "desc")
DEFAULT_SORT_COLUMN = "adjusted_value"
DEFAULT_SORT_DIRECTION = "desc"

STATUS_FILTERS = ("all", "available", "my-team")
DEFAULT_STATUS_FILTER = "available"

# Sync status
DISCONNECTED_FAILURE_THRESHOLD = 3
