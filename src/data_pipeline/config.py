# Accepted header spellings for each projection field (compared lower-cased)
COLUMN_ALIASES = {
    "player_id": ["player_id", "playerid", "id", "mlbam_id", "fg_id"],
    "player_name": ["player_name", "name", "player", "playername"],
    "position": ["position", "positions", "pos", "eligible positions"],
    "projected_value": [
        "projected_value",
        "projectedvalue",
        "value",
        "dollars",
        "$",
        "auction value",
        "auction_value",
    ],
    "tier": ["tier", "tiers"],
}

# Top-level keys that may wrap the player list in a JSON export
JSON_PLAYER_KEYS = ("players", "projections", "data")

SUPPORTED_EXTENSIONS = {".csv", ".json"}

# Replay defaults when the picks file does not name a league
DEFAULT_REPLAY_LEAGUE_ID = "replay"
REPLAY_TOP_AVAILABLE = 10
