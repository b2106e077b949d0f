"""Inflation engine - full recompute of a league's inflation state."""

import logging
import time
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Sequence

from src.inflation_engine.calculations import (
    build_projection_map,
    calculate_adjusted_values,
    calculate_budget_depletion_factor,
    calculate_overall_inflation,
    calculate_position_inflation,
    calculate_tier_inflation,
)
from src.inflation_engine.config import POSITIONS, SLOW_RECOMPUTE_WARNING_SECONDS, TIERS
from src.inflation_engine.models import BudgetContext, InflationState, ProjectionRecord

logger = logging.getLogger(__name__)


def budget_context_from_draft(draft) -> BudgetContext:
    """Build a BudgetContext from a LeagueDraftState."""
    return BudgetContext(
        total_budget=draft.initial_budget,
        spent=draft.total_spent(),
        total_roster_spots=len(draft.roster),
        slots_remaining=draft.slots_remaining(),
    )


def empty_state() -> InflationState:
    return InflationState(
        position_rates={pos: 0.0 for pos in POSITIONS},
        tier_rates={tier: 0.0 for tier in TIERS},
    )


class InflationEngine:
    """Recomputes inflation rates and adjusted values from scratch.

    Nothing is updated incrementally: each call to :meth:`recompute` reads
    every pick and every projection it is given and replaces the league's
    state wholesale. Projections are never cached between calls.
    """

    def __init__(self):
        self._states: Dict[str, InflationState] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_state(self, league_id: str) -> InflationState:
        return self._states.get(league_id) or empty_state()

    def reset(self, league_id: str):
        self._states.pop(league_id, None)

    def compute(
        self,
        picks: Sequence,
        projections: Sequence[ProjectionRecord],
        budget_context: Optional[BudgetContext] = None,
    ) -> InflationState:
        """Compute an InflationState without storing it.

        Args:
            picks: Drafted players in draft order (anything with
                ``player_id``, ``purchase_price``, ``projected_value``,
                ``position`` and ``tier`` attributes).
            projections: The full projection pool.
            budget_context: Optional budget snapshot for the advisory
                depletion multiplier.
        """
        projection_map = build_projection_map(projections)

        overall_rate = calculate_overall_inflation(picks, projections, projection_map)
        position_rates = calculate_position_inflation(picks, projections, projection_map)
        tier_rates = calculate_tier_inflation(picks, projections, projection_map)

        drafted_ids = {pick.player_id for pick in picks}
        undrafted = [p for p in projections if p.player_id not in drafted_ids]
        adjusted_values = calculate_adjusted_values(undrafted, overall_rate)

        budget_depletion = None
        budget_depleted = 0.0
        if budget_context is not None:
            budget_depletion = calculate_budget_depletion_factor(
                budget_context.total_budget,
                budget_context.spent,
                budget_context.slots_remaining,
                budget_context.total_roster_spots,
            )
            if budget_context.total_budget > 0:
                budget_depleted = budget_context.spent / budget_context.total_budget

        return InflationState(
            overall_rate=overall_rate,
            position_rates=position_rates,
            tier_rates=tier_rates,
            adjusted_values=adjusted_values,
            players_remaining=len(undrafted),
            budget_depleted=budget_depleted,
            budget_depletion=budget_depletion,
            last_updated=datetime.now().isoformat(),
            error=None,
        )

    def recompute(
        self,
        league_id: str,
        picks: Sequence,
        projections: Sequence[ProjectionRecord],
        budget_context: Optional[BudgetContext] = None,
    ) -> InflationState:
        """Recompute and store the inflation state for a league.

        Malformed input (e.g. a non-numeric price) does not raise: the
        previous state is kept and the failure is reported in ``error``.
        """
        started = time.perf_counter()
        try:
            state = self.compute(picks, projections, budget_context)
        except (AttributeError, TypeError, ValueError) as e:
            logger.exception("Inflation recompute failed for league %s", league_id)
            state = replace(self.get_state(league_id), error=f"Inflation calculation failed: {e}")
            self._states[league_id] = state
            return state

        elapsed = time.perf_counter() - started
        if elapsed > SLOW_RECOMPUTE_WARNING_SECONDS:
            logger.warning(
                "Inflation recompute for league %s took %.2fs (%d picks, %d projections)",
                league_id,
                elapsed,
                len(picks),
                len(projections),
            )

        self._states[league_id] = state
        logger.debug(
            "League %s inflation: overall=%.4f, %d players remaining (%.1f ms)",
            league_id,
            state.overall_rate,
            state.players_remaining,
            elapsed * 1000,
        )
        return state
