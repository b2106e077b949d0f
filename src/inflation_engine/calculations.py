"""Inflation calculations for auction drafts.

Every function here is pure and source-agnostic: a pick's ``drafted_by``
and ``is_manual_entry`` fields are never read, so a manually entered pick
and a feed-synced pick with the same price, position and tier contribute
exactly the same amount to every rate.

Zero or negative denominators resolve to a rate of 0; nothing here raises
for an empty draft or an empty projection pool.
"""

import bisect
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from src.inflation_engine.config import (
    BUDGET_DEPLETION_MAX_MULTIPLIER,
    BUDGET_DEPLETION_MIN_MULTIPLIER,
    POSITION_ALIASES,
    POSITIONS,
    TIER_PERCENTILE_THRESHOLDS,
    TIERS,
)
from src.inflation_engine.models import BudgetDepletion, ProjectionRecord

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Normalization helpers
# ----------------------------------------------------------------------


def normalize_positions(position: Optional[str]) -> List[str]:
    """Split a position string into known positions.

    Examples:
        "SS"     -> ["SS"]
        "2B/SS"  -> ["2B", "SS"]
        "LF,DH"  -> ["OF", "UT"]
        "XYZ"    -> []
    """
    if not position:
        return []

    result = []
    for part in str(position).replace(",", "/").split("/"):
        pos = part.strip().upper()
        pos = POSITION_ALIASES.get(pos, pos)
        if pos in POSITIONS and pos not in result:
            result.append(pos)
    return result


def normalize_tier(tier) -> Optional[str]:
    if tier is None:
        return None
    value = str(tier).strip().upper()
    return value if value in TIERS else None


def _projected(value: Optional[float]) -> float:
    return float(value) if value is not None else 0.0


def _rate(actual: float, projected: float) -> float:
    if projected <= 0:
        return 0.0
    return (actual - projected) / projected


def build_projection_map(projections: Iterable[ProjectionRecord]) -> Dict[str, ProjectionRecord]:
    return {p.player_id: p for p in projections}


def _pick_projected_value(pick, projection_map: Dict[str, ProjectionRecord]) -> float:
    """Projected value from the pool, falling back to the value stored on the pick."""
    projection = projection_map.get(pick.player_id)
    if projection is not None:
        return _projected(projection.projected_value)
    return _projected(getattr(pick, "projected_value", None))


# ----------------------------------------------------------------------
# Overall inflation
# ----------------------------------------------------------------------


def calculate_overall_inflation(
    picks: Sequence,
    projections: Sequence[ProjectionRecord],
    projection_map: Optional[Dict[str, ProjectionRecord]] = None,
) -> float:
    """Overall inflation rate across every drafted player.

    Formula::

        rate = (total_spent - total_projected) / total_projected

    Positive means players are selling above projection, negative means
    deflation. Returns 0 for no picks or a non-positive projected total.
    """
    if not picks:
        return 0.0

    if projection_map is None:
        projection_map = build_projection_map(projections)

    total_spent = 0.0
    total_projected = 0.0
    has_negative_price = False

    for pick in picks:
        if pick.purchase_price < 0:
            has_negative_price = True
        total_spent += pick.purchase_price
        total_projected += _pick_projected_value(pick, projection_map)

    if has_negative_price:
        logger.warning(
            "Negative purchase price detected; check the upstream pick data"
        )

    return _rate(total_spent, total_projected)


# ----------------------------------------------------------------------
# Position inflation
# ----------------------------------------------------------------------


def calculate_position_inflation(
    picks: Sequence,
    projections: Sequence[ProjectionRecord],
    projection_map: Optional[Dict[str, ProjectionRecord]] = None,
) -> Dict[str, float]:
    """Inflation rate per position.

    Multi-position players split their price and projection equally across
    each eligible position. Picks with no recognized position are ignored.
    Positions without drafted players report 0.
    """
    rates = {pos: 0.0 for pos in POSITIONS}
    if not picks:
        return rates

    if projection_map is None:
        projection_map = build_projection_map(projections)

    actuals = {pos: 0.0 for pos in POSITIONS}
    projected = {pos: 0.0 for pos in POSITIONS}

    for pick in picks:
        positions = normalize_positions(pick.position)
        if not positions:
            continue
        share = len(positions)
        value = _pick_projected_value(pick, projection_map)
        for pos in positions:
            actuals[pos] += pick.purchase_price / share
            projected[pos] += value / share

    for pos in POSITIONS:
        if projected[pos] <= 0 and actuals[pos] > 0:
            logger.warning(
                "Position %s has $%.2f spent but no projected value; "
                "projection data may be missing",
                pos,
                actuals[pos],
            )
        rates[pos] = _rate(actuals[pos], projected[pos])

    return rates


# ----------------------------------------------------------------------
# Tier inflation
# ----------------------------------------------------------------------


def get_percentile(value: float, sorted_values_asc: Sequence[float]) -> float:
    """Percent of the pool valued strictly above ``value`` (0 = best player).

    ``sorted_values_asc`` must be sorted ascending.
    """
    if not sorted_values_asc:
        return 0.0
    above = len(sorted_values_asc) - bisect.bisect_right(sorted_values_asc, value)
    return above / len(sorted_values_asc) * 100


def tier_from_percentile(percentile: float) -> str:
    if percentile < TIER_PERCENTILE_THRESHOLDS["ELITE"]:
        return "ELITE"
    if percentile < TIER_PERCENTILE_THRESHOLDS["MID"]:
        return "MID"
    return "LOWER"


def assign_player_tier(
    projected_value: Optional[float], projections: Sequence[ProjectionRecord]
) -> str:
    """Tier a player by where their projected value ranks in the pool.

    Top 10% are ELITE, the next 30% MID, the rest LOWER. Ties go to the
    higher tier. An empty pool puts everyone in LOWER.
    """
    if not projections:
        return "LOWER"
    sorted_values = sorted(_projected(p.projected_value) for p in projections)
    return tier_from_percentile(get_percentile(_projected(projected_value), sorted_values))


def calculate_tier_inflation(
    picks: Sequence,
    projections: Sequence[ProjectionRecord],
    projection_map: Optional[Dict[str, ProjectionRecord]] = None,
) -> Dict[str, float]:
    """Inflation rate per tier (ELITE, MID, LOWER).

    A pick's tier comes from the pick itself, then its projection record,
    and otherwise from its projected value's percentile in the pool.
    """
    rates = {tier: 0.0 for tier in TIERS}
    if not picks:
        return rates

    if projection_map is None:
        projection_map = build_projection_map(projections)

    sorted_values = sorted(_projected(p.projected_value) for p in projections)
    actuals = {tier: 0.0 for tier in TIERS}
    projected = {tier: 0.0 for tier in TIERS}

    for pick in picks:
        value = _pick_projected_value(pick, projection_map)
        projection = projection_map.get(pick.player_id)

        tier = normalize_tier(getattr(pick, "tier", None))
        if tier is None and projection is not None:
            tier = normalize_tier(projection.tier)
        if tier is None:
            tier = tier_from_percentile(get_percentile(value, sorted_values))

        actuals[tier] += pick.purchase_price
        projected[tier] += value

    for tier in TIERS:
        rates[tier] = _rate(actuals[tier], projected[tier])

    return rates


# ----------------------------------------------------------------------
# Budget depletion
# ----------------------------------------------------------------------


def calculate_budget_depletion_factor(
    total_budget: float,
    spent: float,
    slots_remaining: int,
    total_roster_spots: int,
) -> BudgetDepletion:
    """Compare money left per open slot with the league-wide average.

    Formula::

        multiplier = (remaining / slots_remaining) / (total_budget / total_spots)

    clamped to [0.1, 2.0]. Values under 1.0 mean teams have less money per
    slot than average; over 1.0 means they have more.
    """
    remaining = total_budget - spent

    if total_budget <= 0 or total_roster_spots <= 0:
        return BudgetDepletion(1.0, spent, remaining, slots_remaining)

    if slots_remaining <= 0:
        return BudgetDepletion(1.0, spent, remaining, 0)

    if remaining <= 0:
        return BudgetDepletion(BUDGET_DEPLETION_MIN_MULTIPLIER, spent, 0, slots_remaining)

    average_per_slot = total_budget / total_roster_spots
    current_per_slot = remaining / slots_remaining
    multiplier = current_per_slot / average_per_slot
    multiplier = max(BUDGET_DEPLETION_MIN_MULTIPLIER, multiplier)
    multiplier = min(BUDGET_DEPLETION_MAX_MULTIPLIER, multiplier)

    return BudgetDepletion(multiplier, spent, remaining, slots_remaining)


# ----------------------------------------------------------------------
# Adjusted values
# ----------------------------------------------------------------------


def calculate_adjusted_values(
    undrafted: Sequence[ProjectionRecord], overall_rate: float
) -> Dict[str, float]:
    """Inflation-adjusted value for each undrafted player.

    ``adjusted = projected * (1 + overall_rate)``. Position and tier rates
    are deliberately not applied here.
    """
    multiplier = 1.0 + overall_rate
    return {p.player_id: _projected(p.projected_value) * multiplier for p in undrafted}
