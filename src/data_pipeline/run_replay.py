"""Replay a recorded auction through the tracker and print inflation results.

Usage:
    python -m src.data_pipeline.run_replay <projections> <picks.json>

The picks file is either a list of picks or an object::

    {
      "league_id": "L1",
      "budget": 260,
      "roster": {"hitters": 14, "pitchers": 9, "bench": 3},
      "user_team": "team-3",
      "picks": [
        {"player_id": "p1", "price": 42, "team_ref": "team-3"},
        {"player_id": "p2", "price": 7, "team_ref": "team-1", "manual": true}
      ]
    }

Picks marked ``manual`` go through the manual-bid path; the rest are fed
to the controller as feed events.
"""

import json
import logging
import sys
from pathlib import Path

from src.data_pipeline.config import DEFAULT_REPLAY_LEAGUE_ID, REPLAY_TOP_AVAILABLE
from src.data_pipeline.projection_loader import load_projections
from src.draft_ledger.config import DEFAULT_INITIAL_BUDGET, DEFAULT_ROSTER_CONFIG
from src.draft_ledger.draft_rules import ValidationError
from src.draft_ledger.ledger import DraftLedger
from src.inflation_engine.inflation_engine import InflationEngine
from src.inflation_engine.value_classifier import classify, identify_overpays, identify_steals
from src.logging_config import setup_logging
from src.sync.models import ManualBid, PickEvent
from src.sync.reconciliation import ReconciliationController

logger = logging.getLogger(__name__)


def _load_replay(picks_path: Path) -> dict:
    with open(picks_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"picks": data}
    if not isinstance(data, dict) or not isinstance(data.get("picks", []), list):
        raise ValueError(f"Unrecognized replay file layout: {picks_path}")
    return data


def run_replay(projections_path: Path, picks_path: Path) -> dict:
    """Replay every pick and return a summary of the final draft state.

    Manual picks that fail bid validation are logged and skipped.

    Returns:
        dict with ``league_id``, ``picks_recorded``, ``rejected``,
        ``remaining_budget``, ``inflation``, ``top_available``, ``steals``
        and ``overpays``.
    """
    projections = load_projections(projections_path)
    replay = _load_replay(picks_path)

    league_id = str(replay.get("league_id", DEFAULT_REPLAY_LEAGUE_ID))
    user_team = replay.get("user_team")

    ledger = DraftLedger()
    engine = InflationEngine()
    controller = ReconciliationController(ledger, engine)

    ledger.initialize_draft(
        league_id,
        replay.get("budget", DEFAULT_INITIAL_BUDGET),
        replay.get("roster", DEFAULT_ROSTER_CONFIG),
    )
    if user_team is not None:
        controller.set_user_team(league_id, str(user_team))

    logger.info("Replaying %d picks for league %s", len(replay.get("picks", [])), league_id)

    rejected = []
    for entry in replay.get("picks", []):
        player_id = str(entry["player_id"])
        price = float(entry["price"])
        team_ref = str(entry.get("team_ref", ""))

        if entry.get("manual"):
            bid = ManualBid(
                player_id=player_id,
                bid=price,
                is_my_team=user_team is not None and team_ref == str(user_team),
                player_name=entry.get("player_name", ""),
                position=entry.get("position", ""),
            )
            try:
                controller.submit_manual_bid(league_id, bid, projections)
            except ValidationError as e:
                logger.warning("Rejected manual pick %s: %s", player_id, e)
                rejected.append({"player_id": player_id, "reason": str(e)})
        else:
            event = PickEvent(
                player_id=player_id,
                price=price,
                team_ref=team_ref,
                player_name=entry.get("player_name", ""),
                position=entry.get("position", ""),
            )
            controller.submit_feed_picks(league_id, [event], projections)

    draft = ledger.get_draft(league_id)
    state = engine.get_state(league_id)

    names = {p.player_id: p.player_name or p.player_id for p in projections}
    top_available = sorted(
        state.adjusted_values.items(), key=lambda item: item[1], reverse=True
    )[:REPLAY_TOP_AVAILABLE]

    user_picks = draft.get_user_picks()
    steals, value_gained = identify_steals(user_picks, state.overall_rate)
    overpays, value_lost = identify_overpays(user_picks, state.overall_rate)

    return {
        "league_id": league_id,
        "picks_recorded": len(draft.drafted_players),
        "rejected": rejected,
        "remaining_budget": draft.remaining_budget,
        "inflation": {
            "overall_rate": round(state.overall_rate, 4),
            "position_rates": {k: round(v, 4) for k, v in state.position_rates.items()},
            "tier_rates": {k: round(v, 4) for k, v in state.tier_rates.items()},
            "players_remaining": state.players_remaining,
            "error": state.error,
        },
        "top_available": [
            {"player_id": pid, "name": names.get(pid, pid), "adjusted_value": round(value, 2)}
            for pid, value in top_available
        ],
        "picks": [
            {
                "player_id": p.player_id,
                "price": p.purchase_price,
                "drafted_by": p.drafted_by,
                "value": classify(p.purchase_price, p.projected_value * (1 + state.overall_rate)),
            }
            for p in draft.drafted_players
        ],
        "steals": {"players": [s.player.player_id for s in steals], "total": value_gained},
        "overpays": {"players": [o.player.player_id for o in overpays], "total": value_lost},
    }


if __name__ == "__main__":
    setup_logging()

    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)

    try:
        summary = run_replay(Path(sys.argv[1]), Path(sys.argv[2]))
        print(json.dumps(summary, indent=2))
    except Exception:
        logger.exception("Replay failed")
        sys.exit(1)
