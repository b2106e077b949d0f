"""Data models for the inflation engine."""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class ProjectionRecord:
    """Projected auction value for one player. Read-only input."""

    player_id: str
    projected_value: Optional[float]
    position: str = ""
    tier: Optional[str] = None
    player_name: str = ""


@dataclass(frozen=True)
class BudgetContext:
    """League budget snapshot used for depletion modeling."""

    total_budget: float
    spent: float
    total_roster_spots: int
    slots_remaining: int


@dataclass
class BudgetDepletion:
    """Advisory budget depletion multiplier and the inputs behind it."""

    multiplier: float
    spent: float
    remaining: float
    slots_remaining: int


@dataclass
class InflationState:
    """Result of one full inflation recompute for a league."""

    overall_rate: float = 0.0
    position_rates: Dict[str, float] = field(default_factory=dict)
    tier_rates: Dict[str, float] = field(default_factory=dict)
    adjusted_values: Dict[str, float] = field(default_factory=dict)
    players_remaining: int = 0
    budget_depleted: float = 0.0
    budget_depletion: Optional[BudgetDepletion] = None
    last_updated: Optional[str] = None
    error: Optional[str] = None

    def get_adjusted_value(self, player_id: str) -> float:
        return self.adjusted_values.get(player_id, 0.0)
