"""Bid rule enforcement for manually entered picks."""

from typing import Optional, Tuple

from src.draft_ledger.config import DEFAULT_MAX_BID, DEFAULT_MIN_BID
from src.draft_ledger.draft_state import LeagueDraftState


class ValidationError(Exception):
    """Raised when a submitted pick violates bid rules."""

    pass


class BidBelowMinimumError(ValidationError):
    """Bid is lower than the league's minimum bid."""


class BudgetExceededError(ValidationError):
    """Bid for the user's own team exceeds the effective maximum."""

    def __init__(self, message: str, limit: float, limit_name: str):
        super().__init__(message)
        self.limit = limit
        self.limit_name = limit_name


class DuplicatePickError(ValidationError):
    """Player has already been recorded as drafted in this league."""


class BidRules:
    """Validates manual bids before anything touches the ledger."""

    def __init__(self, min_bid: float = DEFAULT_MIN_BID, max_bid: float = DEFAULT_MAX_BID):
        if min_bid > max_bid:
            raise ValueError(
                f"min_bid ({min_bid}) cannot be greater than max_bid ({max_bid})"
            )
        self.min_bid = min_bid
        self.max_bid = max_bid

    def effective_max_bid(
        self, is_my_team: bool, remaining_budget: Optional[float]
    ) -> Tuple[float, str]:
        """
        Largest allowed bid and the name of the limit that binds.

        Returns:
            (limit, "remaining budget" | "maximum bid")
        """
        if is_my_team and remaining_budget is not None and remaining_budget < self.max_bid:
            return remaining_budget, "remaining budget"
        return self.max_bid, "maximum bid"

    def validate_bid(
        self,
        bid: float,
        is_my_team: bool,
        remaining_budget: Optional[float] = None,
    ):
        """Raise a ValidationError subclass if the bid is not allowed."""
        if bid < self.min_bid:
            raise BidBelowMinimumError(f"Bid must be at least ${self.min_bid:g}")

        # Other teams' bids are only capped by max_bid
        limit, limit_name = self.effective_max_bid(is_my_team, remaining_budget)
        if bid > limit:
            raise BudgetExceededError(
                f"Bid cannot exceed ${limit:g} ({limit_name})",
                limit=limit,
                limit_name=limit_name,
            )

    @staticmethod
    def validate_not_drafted(draft: LeagueDraftState, player_id: str):
        if draft.is_player_drafted(player_id):
            raise DuplicatePickError(
                f"Player {player_id} has already been drafted in league {draft.league_id}"
            )
