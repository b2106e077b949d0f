# Positions tracked for position-specific inflation
POSITIONS = ("C", "1B", "2B", "SS", "3B", "OF", "SP", "RP", "UT")

# Aliases normalized before position lookup
POSITION_ALIASES = {
    "UTIL": "UT",
    "DH": "UT",
    "LF": "OF",
    "CF": "OF",
    "RF": "OF",
}

# Player tiers, best first
TIERS = ("ELITE", "MID", "LOWER")

# Percentile cut-offs for tier assignment (percent of pool ranked above)
TIER_PERCENTILE_THRESHOLDS = {
    "ELITE": 10,  # Top 10%
    "MID": 40,    # Next 30%
}

# Budget depletion multiplier bounds
BUDGET_DEPLETION_MIN_MULTIPLIER = 0.1
BUDGET_DEPLETION_MAX_MULTIPLIER = 2.0

# Value classification
CLASSIFICATION_THRESHOLD = 10  # percent
VALUE_THRESHOLD_PERCENTAGE = 0.1
VALUE_THRESHOLD_DOLLARS = 3

# Recompute time above which a warning is logged
SLOW_RECOMPUTE_WARNING_SECONDS = 1.0
