"""Build the persisted record of a finished match.

``finalize_match`` is the single place a result is produced: it latches
``matchSaved`` on the match state so a second call (a re-render, a retried
request) yields nothing instead of a duplicate record.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..exceptions import MatchNotFinished
from ..scoring import cricket, x01
from .rating import calculate_match_elo, calculate_multiplayer_elo

logger = logging.getLogger(__name__)

RatingFn = Callable[[float, float, bool], Dict[str, float]]


def _rating_changes(
    players: List[Dict], winner_index: int, ranked: bool, rating_fn: RatingFn
) -> List[Tuple[float, float]]:
    """Return ``(after, change)`` per player."""

    if not ranked:
        return [(p["rating"], 0.0) for p in players]
    if len(players) == 2:
        result = rating_fn(players[0]["rating"], players[1]["rating"], winner_index == 0)
        return [
            (result["newEloA"], result["changeA"]),
            (result["newEloB"], result["changeB"]),
        ]
    updates = calculate_multiplayer_elo(
        [{"id": p["id"], "elo": p["rating"]} for p in players],
        players[winner_index]["id"],
    )
    return [(u["newElo"], u["change"]) for u in updates]


def build_x01_record(
    state: Dict,
    *,
    tournament_id: Optional[str] = None,
    rating_fn: RatingFn = calculate_match_elo,
) -> Dict:
    """Shape the result of a completed x01 match for storage."""

    config = state["config"]
    players = state["players"]
    winner_index = state["matchWinnerIndex"]
    changes = _rating_changes(players, winner_index, config["ranked"], rating_fn)

    entries = []
    for player, (after, change) in zip(players, changes):
        entries.append(
            {
                "id": player["id"],
                "name": player["name"],
                "legsWon": player["legsWon"],
                "ratingBefore": player["rating"],
                "ratingAfter": after,
                "ratingChange": change,
                "average": round(x01.average(player), 2),
                "first9Average": round(x01.first9_average(player, include_current_leg=True), 2),
                "dartsThrown": x01.darts_thrown(player),
                "sixtyPlus": player["sixtyPlus"],
                "eightyPlus": player["eightyPlus"],
                "hundredPlus": player["hundredPlus"],
                "oneEighties": player["oneEighties"],
                "haminas": player["haminas"],
                "doubleAttempts": player["doubleAttempts"],
                "doubleHits": player["doubleHits"],
                "highestCheckout": player["highestCheckout"],
            }
        )

    winner = players[winner_index]
    return {
        "gameMode": config["mode"],
        "legsToWin": config["legsToWin"],
        "ranked": config["ranked"],
        "tournamentId": tournament_id,
        "winnerId": winner["id"],
        "winnerName": winner["name"],
        "playerCount": len(players),
        "highestCheckout": state["matchHighestCheckout"],
        "startedAt": config.get("startedAt"),
        "players": entries,
    }


def finalize_match(
    state: Dict,
    *,
    tournament_id: Optional[str] = None,
    rating_fn: RatingFn = calculate_match_elo,
) -> Tuple[Dict, Optional[Dict]]:
    """Produce the match record once.

    Returns ``(state, record)`` where ``state`` has ``matchSaved`` set. If the
    record was already produced the input state is returned with ``None``.
    """

    if state.get("matchSaved"):
        return state, None
    if state["phase"] != x01.MATCH_COMPLETE:
        raise MatchNotFinished()

    record = build_x01_record(state, tournament_id=tournament_id, rating_fn=rating_fn)
    state = copy.deepcopy(state)
    state["matchSaved"] = True
    logger.info(
        "Finalized %s match won by %s (ranked=%s, tournament=%s)",
        record["gameMode"],
        record["winnerId"],
        record["ranked"],
        tournament_id,
    )
    return state, record


def build_cricket_record(state: Dict, *, tournament_id: Optional[str] = None) -> Dict:
    """Cricket results are always unranked and count as a single leg."""

    winner_index = state["winnerIndex"]
    if winner_index is None:
        raise MatchNotFinished()
    closed = [p["closedAll"] for p in cricket.summary(state)["players"]]
    entries = []
    for index, player in enumerate(state["players"]):
        entries.append(
            {
                "id": player["id"],
                "name": player["name"],
                "legsWon": 1 if index == winner_index else 0,
                "ratingBefore": None,
                "ratingAfter": None,
                "ratingChange": 0.0,
                "points": player["points"],
                "closedAll": closed[index],
            }
        )
    winner = state["players"][winner_index]
    return {
        "gameMode": "cricket",
        "legsToWin": 1,
        "ranked": False,
        "tournamentId": tournament_id,
        "winnerId": winner["id"],
        "winnerName": winner["name"],
        "playerCount": len(state["players"]),
        "highestCheckout": 0,
        "startedAt": None,
        "players": entries,
    }


def finalize_cricket(state: Dict, *, tournament_id: Optional[str] = None) -> Tuple[Dict, Optional[Dict]]:
    """Cricket counterpart of :func:`finalize_match`, latched the same way."""

    if state.get("matchSaved"):
        return state, None
    record = build_cricket_record(state, tournament_id=tournament_id)
    state = copy.deepcopy(state)
    state["matchSaved"] = True
    logger.info("Finalized cricket match won by %s (tournament=%s)", record["winnerId"], tournament_id)
    return state, record
