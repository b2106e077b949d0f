from src.inflation_engine.inflation_engine import InflationEngine, budget_context_from_draft
from src.inflation_engine.models import (
    BudgetContext,
    BudgetDepletion,
    InflationState,
    ProjectionRecord,
)
from src.inflation_engine.value_classifier import classify, percent_diff

__all__ = [
    "BudgetContext",
    "BudgetDepletion",
    "InflationEngine",
    "InflationState",
    "ProjectionRecord",
    "budget_context_from_draft",
    "classify",
    "percent_diff",
]
