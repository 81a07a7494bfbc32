"""Elo rating calculations.

Ratings are kept to two decimals. Head-to-head updates are zero-sum: the
winner gains exactly what the loser gives up.
"""

from typing import Dict, List, Sequence

from ..config import DEFAULT_ELO, ELO_K_FACTOR

K_FACTOR = ELO_K_FACTOR


def _round2(value: float) -> float:
    return round(value, 2)


def expected_score(rating: float, opponent_rating: float) -> float:
    """Probability that a player rated ``rating`` beats ``opponent_rating``."""
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def calculate_new_rating(
    rating: float, opponent_rating: float, won: bool, k: float = K_FACTOR
) -> float:
    actual = 1.0 if won else 0.0
    return _round2(rating + k * (actual - expected_score(rating, opponent_rating)))


def calculate_match_elo(
    rating_a: float, rating_b: float, winner_is_a: bool, k: float = K_FACTOR
) -> Dict[str, float]:
    """Return new ratings and changes for a two-player match.

    The result has ``newEloA``, ``newEloB``, ``changeA`` and ``changeB``.
    """

    expected_a = expected_score(rating_a, rating_b)
    expected_b = 1 - expected_a
    score_a = 1.0 if winner_is_a else 0.0
    score_b = 1.0 - score_a

    new_a = _round2(rating_a + k * (score_a - expected_a))
    new_b = _round2(rating_b + k * (score_b - expected_b))
    return {
        "newEloA": new_a,
        "newEloB": new_b,
        "changeA": _round2(new_a - rating_a),
        "changeB": _round2(new_b - rating_b),
    }


def calculate_multiplayer_elo(
    players: Sequence[Dict], winner_id: str, k: float = K_FACTOR
) -> List[Dict]:
    """Free-for-all update: each player is scored against every opponent and
    the change is averaged over the number of opponents.

    ``players`` holds ``{"id", "elo"}`` entries; returns ``{"id", "newElo",
    "change"}`` in the same order.
    """

    if len(players) < 2:
        raise ValueError("multiplayer Elo requires at least two players")
    results = []
    for player in players:
        total = 0.0
        won = player["id"] == winner_id
        for opponent in players:
            if opponent["id"] == player["id"]:
                continue
            actual = 1.0 if won else 0.0
            total += k * (actual - expected_score(player["elo"], opponent["elo"]))
        change = _round2(total / (len(players) - 1))
        results.append(
            {
                "id": player["id"],
                "newElo": _round2(player["elo"] + change),
                "change": change,
            }
        )
    return results


__all__ = [
    "DEFAULT_ELO",
    "K_FACTOR",
    "expected_score",
    "calculate_new_rating",
    "calculate_match_elo",
    "calculate_multiplayer_elo",
]
