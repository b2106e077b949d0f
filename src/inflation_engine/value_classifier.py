"""Steal / fair / overpay classification of purchase prices."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.inflation_engine.config import (
    CLASSIFICATION_THRESHOLD,
    VALUE_THRESHOLD_DOLLARS,
    VALUE_THRESHOLD_PERCENTAGE,
)

STEAL = "steal"
FAIR = "fair"
OVERPAY = "overpay"
NONE = "none"

VALUE_LABELS = {
    STEAL: "Steal",
    FAIR: "Fair Value",
    OVERPAY: "Overpay",
    NONE: "",
}


def percent_diff(actual_price: float, adjusted_value: float) -> float:
    """Signed percent difference of price over adjusted value.

    A non-positive adjusted value yields 100 when anything was paid and 0
    otherwise.
    """
    if adjusted_value <= 0:
        return 100.0 if actual_price > 0 else 0.0
    # Multiply before dividing so whole-dollar boundaries land exactly on +/-10
    return (actual_price - adjusted_value) * 100 / adjusted_value


def classify(actual_price: Optional[float], adjusted_value: float) -> str:
    """Classify a price against an adjusted value with a +/-10% band.

    Exactly +/-10% counts as fair. Undrafted players (no price) are "none".
    """
    if actual_price is None:
        return NONE

    diff = percent_diff(actual_price, adjusted_value)
    if diff < -CLASSIFICATION_THRESHOLD:
        return STEAL
    if diff > CLASSIFICATION_THRESHOLD:
        return OVERPAY
    return FAIR


def get_value_label(classification: str) -> str:
    return VALUE_LABELS.get(classification, "")


# ----------------------------------------------------------------------
# Roster value analysis
# ----------------------------------------------------------------------


@dataclass
class ValueOutlier:
    """A drafted player bought well below (steal) or above (overpay) value."""

    player: object
    auction_price: float
    adjusted_value: int
    difference: int


def _is_significant(difference: float, adjusted_value: float) -> bool:
    return (
        difference / max(adjusted_value, 1) > VALUE_THRESHOLD_PERCENTAGE
        or difference > VALUE_THRESHOLD_DOLLARS
    )


def _find_outliers(roster: Sequence, overall_rate: float, sign: int) -> List[ValueOutlier]:
    outliers = []
    for player in roster:
        adjusted = player.projected_value * (1 + overall_rate)
        difference = sign * (adjusted - player.purchase_price)
        if difference > 0 and _is_significant(difference, adjusted):
            outliers.append(
                ValueOutlier(
                    player=player,
                    auction_price=player.purchase_price,
                    adjusted_value=round(adjusted),
                    difference=round(difference),
                )
            )
    outliers.sort(key=lambda o: o.difference, reverse=True)
    return outliers


def identify_steals(roster: Sequence, overall_rate: float):
    """Players bought for meaningfully less than their adjusted value.

    Returns:
        ``(steals, total_value_gained)``, biggest steal first.
    """
    steals = _find_outliers(roster, overall_rate, sign=1)
    return steals, sum(s.difference for s in steals)


def identify_overpays(roster: Sequence, overall_rate: float):
    """Players bought for meaningfully more than their adjusted value.

    Returns:
        ``(overpays, total_value_lost)``, biggest overpay first.
    """
    overpays = _find_outliers(roster, overall_rate, sign=-1)
    return overpays, sum(o.difference for o in overpays)
