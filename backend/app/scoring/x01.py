"""x01 (301/501) darts scoring engine.

Tracks visits -> legs -> match for two or more players, double-out. The state
is a plain dict and ``apply`` returns a new state without mutating its input.

A checkout does not end the leg on its own: the leg moves to
``pending_leg_win`` and waits for ``CONFIRM_LEG`` (or ``CANCEL_LEG`` when the
scorer entered the finish by mistake).
"""

import copy
import logging
from typing import Dict, List, Optional, Tuple

from ..config import DEFAULT_ELO
from . import checkout

logger = logging.getLogger(__name__)

IN_LEG = "in_leg"
PENDING_LEG_WIN = "pending_leg_win"
MATCH_COMPLETE = "match_complete"

STARTING_SCORES = {"301": 301, "501": 501}
INPUT_MODES = ("round", "dart")
FIRST9_VISITS = 3
HAMINA = 26

EVENT_TYPES = ("VISIT", "BUST", "CONFIRM_LEG", "CANCEL_LEG", "UNDO", "EDIT_VISIT")

# Counter name -> predicate on a visit score. Bands are cumulative, a 140
# counts towards 60+, 80+ and 100+.
_BANDS = (
    ("sixtyPlus", lambda s: s >= 60),
    ("eightyPlus", lambda s: s >= 80),
    ("hundredPlus", lambda s: s >= 100),
    ("oneEighties", lambda s: s == 180),
    ("haminas", lambda s: s == HAMINA),
)


def _player_rating(ref: Dict, mode: str) -> float:
    ratings = ref.get("ratings") or {}
    value = ratings.get(mode)
    if value is None:
        value = ref.get("rating", DEFAULT_ELO)
    return float(value)


def _new_player(ref: Dict, starting_score: int, mode: str) -> Dict:
    if not isinstance(ref, dict) or not ref.get("id"):
        raise ValueError("players must be objects with an id")
    return {
        "id": ref["id"],
        "name": ref.get("name") or ref["id"],
        "rating": _player_rating(ref, mode),
        "remaining": starting_score,
        "legsWon": 0,
        "visits": [],
        "matchVisits": [],
        "lastScore": None,
        "sixtyPlus": 0,
        "eightyPlus": 0,
        "hundredPlus": 0,
        "oneEighties": 0,
        "haminas": 0,
        "doubleAttempts": 0,
        "doubleHits": 0,
        "legFirst9Total": 0,
        "legFirst9Visits": 0,
        "allFirst9Totals": [],
        "highestCheckout": 0,
    }


def _new_leg(number: int, starter: int) -> Dict:
    return {"legNumber": number, "starterIndex": starter, "winnerIndex": None, "throws": []}


def init_state(config: Dict) -> Dict:
    """Initialise a match.

    ``config`` holds ``players`` (player snapshots with ``id``, ``name`` and
    optional ``ratings`` per mode), ``mode`` (``"301"`` or ``"501"``, default
    ``"501"``), ``legsToWin`` (default ``3``), ``ranked`` and ``inputMode``
    (``"round"`` for visit totals, ``"dart"`` for dart-by-dart entry).
    """

    mode = str(config.get("mode", "501"))
    if mode not in STARTING_SCORES:
        raise ValueError(f"unsupported x01 mode: {mode!r}")
    legs_to_win = config.get("legsToWin", 3)
    if isinstance(legs_to_win, bool) or not isinstance(legs_to_win, int) or legs_to_win < 1:
        raise ValueError("legsToWin must be a positive integer")
    input_mode = config.get("inputMode", "round")
    if input_mode not in INPUT_MODES:
        raise ValueError(f"unsupported input mode: {input_mode!r}")
    refs = config.get("players") or []
    if len(refs) < 2:
        raise ValueError("x01 matches require at least two players")

    starting_score = STARTING_SCORES[mode]
    return {
        "config": {
            "mode": mode,
            "startingScore": starting_score,
            "legsToWin": legs_to_win,
            "ranked": bool(config.get("ranked", False)),
            "inputMode": input_mode,
            "startedAt": config.get("startedAt"),
        },
        "players": [_new_player(ref, starting_score, mode) for ref in refs],
        "currentPlayerIndex": 0,
        "currentLeg": 1,
        "legStarterIndex": 0,
        "phase": IN_LEG,
        "pendingLegWin": None,
        "lastAction": None,
        "matchWinnerIndex": None,
        "matchHighestCheckout": 0,
        "matchSaved": False,
        "legs": [_new_leg(1, 0)],
    }


def _band_deltas(score: int) -> Dict[str, int]:
    return {name: 1 if test(score) else 0 for name, test in _BANDS}


def _int_field(event: Dict, name: str, *, low: int, high: int) -> Optional[int]:
    value = event.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValueError(f"{name} must be an integer between {low} and {high}")
    return value


def _record(state: Dict, index: int, scored: int, attempts: int, hits: int, *, bust: bool, finished: bool) -> None:
    players = state["players"]
    player = players[index]
    counts_first9 = player["legFirst9Visits"] < FIRST9_VISITS

    state["lastAction"] = {
        "playerIndex": index,
        "score": scored,
        "previousRemaining": player["remaining"],
        "previousLastScore": player["lastScore"],
        "doubleAttempts": attempts,
        "doubleHits": hits,
        "first9": counts_first9,
        "checkout": finished,
    }

    player["visits"].append(scored)
    player["matchVisits"].append(scored)
    player["remaining"] -= scored
    player["lastScore"] = scored
    for name, delta in _band_deltas(scored).items():
        player[name] += delta
    player["doubleAttempts"] += attempts
    player["doubleHits"] += hits
    if counts_first9:
        player["legFirst9Total"] += scored
        player["legFirst9Visits"] += 1

    state["legs"][-1]["throws"].append(
        {
            "thrower": index,
            "score": scored,
            "bust": bust,
            "remaining": [p["remaining"] for p in players],
        }
    )

    if finished:
        player["legsWon"] += 1
        state["phase"] = PENDING_LEG_WIN
        state["pendingLegWin"] = {"winnerIndex": index}
    else:
        state["currentPlayerIndex"] = (index + 1) % len(players)


def _visit_total(event: Dict) -> int:
    score = event.get("score")
    darts = event.get("darts")
    if darts is not None and not isinstance(darts, list):
        raise ValueError("darts must be a list")
    if score is None:
        if darts is None:
            raise ValueError("VISIT events require a score or darts")
        values = [checkout.dart_score(d) for d in darts]
        # An invalid dart makes the total invalid, which the evaluator rejects.
        score = -1 if any(v is None for v in values) else sum(values)
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError("score must be an integer")
    return score


def _submit_visit(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != IN_LEG:
        return state, None
    darts = event.get("darts")
    dart_entry = state["config"].get("inputMode") == "dart"
    if dart_entry and darts is None:
        raise ValueError("dart entry matches require the darts of each visit")
    score = _visit_total(event)
    declared_attempts = _int_field(event, "doubleAttempts", low=0, high=checkout.DARTS_PER_VISIT)

    index = state["currentPlayerIndex"]
    remaining = state["players"][index]["remaining"]
    # With dart entry the last dart decides the double, never the client's flag.
    outcome = checkout.evaluate(
        remaining,
        score,
        darts=darts,
        finished_on_double=None if dart_entry else event.get("finishedOnDouble"),
    )
    if outcome == checkout.REJECTED:
        logger.debug("Rejected visit of %r from %d for player %d", score, remaining, index)
        return state, outcome

    attempts, hits = checkout.count_double_attempts(remaining, outcome, darts)
    if declared_attempts is not None:
        attempts = max(declared_attempts, hits)

    if outcome == checkout.BUST:
        _record(state, index, 0, attempts, 0, bust=True, finished=False)
    else:
        _record(state, index, score, attempts, hits, bust=False, finished=outcome == checkout.CHECKOUT)
    return state, outcome


def _declare_bust(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != IN_LEG:
        return state, None
    index = state["currentPlayerIndex"]
    attempts = _int_field(event, "doubleAttempts", low=0, high=checkout.DARTS_PER_VISIT)
    if attempts is None:
        attempts, _ = checkout.count_double_attempts(
            state["players"][index]["remaining"], checkout.BUST
        )
    _record(state, index, 0, attempts, 0, bust=True, finished=False)
    return state, checkout.BUST


def _revert_last(state: Dict) -> None:
    action = state["lastAction"]
    index = action["playerIndex"]
    player = state["players"][index]
    scored = action["score"]

    player["visits"].pop()
    player["matchVisits"].pop()
    player["remaining"] = action["previousRemaining"]
    player["lastScore"] = action["previousLastScore"]
    for name, delta in _band_deltas(scored).items():
        player[name] -= delta
    player["doubleAttempts"] -= action["doubleAttempts"]
    player["doubleHits"] -= action["doubleHits"]
    if action["first9"]:
        player["legFirst9Total"] -= scored
        player["legFirst9Visits"] -= 1
    if action["checkout"]:
        player["legsWon"] -= 1

    state["legs"][-1]["throws"].pop()
    state["currentPlayerIndex"] = index
    state["lastAction"] = None


def _undo(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != IN_LEG or not state["lastAction"]:
        return state, None
    _revert_last(state)
    return state, "undone"


def _cancel_leg(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != PENDING_LEG_WIN:
        return state, None
    if state["lastAction"]:
        _revert_last(state)
    state["phase"] = IN_LEG
    state["pendingLegWin"] = None
    return state, "cancelled"


def _confirm_leg(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != PENDING_LEG_WIN:
        return state, None
    players = state["players"]
    winner_index = state["pendingLegWin"]["winnerIndex"]
    winner = players[winner_index]

    leg_checkout = winner["lastScore"] or 0
    winner["highestCheckout"] = max(winner["highestCheckout"], leg_checkout)
    state["matchHighestCheckout"] = max(state["matchHighestCheckout"], leg_checkout)
    for player in players:
        if player["legFirst9Visits"]:
            player["allFirst9Totals"].append(player["legFirst9Total"])
        player["legFirst9Total"] = 0
        player["legFirst9Visits"] = 0

    state["legs"][-1]["winnerIndex"] = winner_index
    state["pendingLegWin"] = None
    state["lastAction"] = None

    if winner["legsWon"] >= state["config"]["legsToWin"]:
        state["phase"] = MATCH_COMPLETE
        state["matchWinnerIndex"] = winner_index
        logger.debug("Match won by player %d after %d legs", winner_index, state["currentLeg"])
        return state, "match_won"

    starting_score = state["config"]["startingScore"]
    starter = state["currentLeg"] % len(players)
    for player in players:
        player["remaining"] = starting_score
        player["visits"] = []
        player["lastScore"] = None

    state["currentLeg"] += 1
    state["legStarterIndex"] = starter
    state["currentPlayerIndex"] = starter
    state["phase"] = IN_LEG
    state["legs"].append(_new_leg(state["currentLeg"], starter))
    logger.debug("Leg %d started by player %d", state["currentLeg"], starter)
    return state, "leg_won"


def _edit_visit(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    if state["phase"] != IN_LEG:
        return state, None
    players = state["players"]
    index = _int_field(event, "playerIndex", low=0, high=len(players) - 1)
    if index is None:
        raise ValueError("EDIT_VISIT requires playerIndex")
    player = players[index]
    visits = player["visits"]
    if not visits:
        return state, checkout.REJECTED
    visit_index = _int_field(event, "visitIndex", low=0, high=len(visits) - 1)
    if visit_index is None:
        raise ValueError("EDIT_VISIT requires visitIndex")
    score = event.get("score")
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError("score must be an integer")
    if score < 0 or score > checkout.MAX_VISIT or score in checkout.IMPOSSIBLE_VISITS:
        return state, checkout.REJECTED

    old = visits[visit_index]
    remaining = state["config"]["startingScore"] - (sum(visits) - old + score)
    # A correction may not finish or bust the leg; those go through undo.
    if remaining <= 1:
        return state, checkout.REJECTED

    visits[visit_index] = score
    offset = len(player["matchVisits"]) - len(visits)
    player["matchVisits"][offset + visit_index] = score
    player["remaining"] = remaining
    for name, delta in _band_deltas(old).items():
        player[name] -= delta
    for name, delta in _band_deltas(score).items():
        player[name] += delta
    if visit_index < player["legFirst9Visits"]:
        player["legFirst9Total"] += score - old
    if visit_index == len(visits) - 1:
        player["lastScore"] = score

    own_throws = [t for t in state["legs"][-1]["throws"] if t["thrower"] == index]
    own_throws[visit_index]["score"] = score
    own_throws[visit_index]["bust"] = False
    state["lastAction"] = None
    return state, "edited"


_HANDLERS = {
    "VISIT": _submit_visit,
    "BUST": _declare_bust,
    "CONFIRM_LEG": _confirm_leg,
    "CANCEL_LEG": _cancel_leg,
    "UNDO": _undo,
    "EDIT_VISIT": _edit_visit,
}


def apply_with_outcome(event: Dict, state: Dict) -> Tuple[Dict, Optional[str]]:
    """Apply ``event`` and report what happened.

    The outcome is ``"continue"``, ``"bust"``, ``"checkout"`` or
    ``"rejected"`` for visits, ``"leg_won"``/``"match_won"`` for
    confirmations, ``"cancelled"``, ``"undone"`` or ``"edited"``, and ``None``
    when the event does not apply in the current phase. Rejected and ignored
    events return the original state object.
    """

    etype = event.get("type") if isinstance(event, dict) else None
    if etype not in _HANDLERS:
        raise ValueError("invalid x01 event")
    if state["phase"] == MATCH_COMPLETE:
        return state, None
    new_state, outcome = _HANDLERS[etype](event, copy.deepcopy(state))
    if outcome is None or outcome == checkout.REJECTED:
        return state, outcome
    return new_state, outcome


def apply(event: Dict, state: Dict) -> Dict:
    return apply_with_outcome(event, state)[0]


def average(player: Dict) -> float:
    """Three-dart average over every visit of the match."""
    visits = player["matchVisits"]
    if not visits:
        return 0.0
    return sum(visits) / len(visits)


def first9_average(player: Dict, include_current_leg: bool = False) -> float:
    """Average of the first three visits of each leg."""
    totals = list(player["allFirst9Totals"])
    if include_current_leg and player["legFirst9Visits"]:
        totals.append(player["legFirst9Total"])
    if not totals:
        return 0.0
    return sum(totals) / len(totals) / FIRST9_VISITS


def darts_thrown(player: Dict) -> int:
    return len(player["matchVisits"]) * checkout.DARTS_PER_VISIT


def summary(state: Dict) -> Dict:
    players: List[Dict] = []
    for player in state["players"]:
        players.append(
            {
                "id": player["id"],
                "name": player["name"],
                "remaining": player["remaining"],
                "legsWon": player["legsWon"],
                "lastScore": player["lastScore"],
                "average": round(average(player), 2),
                "first9Average": round(first9_average(player, include_current_leg=True), 2),
                "dartsThrown": darts_thrown(player),
                "oneEighties": player["oneEighties"],
                "checkout": checkout.checkout_suggestion(player["remaining"]),
            }
        )
    return {
        "phase": state["phase"],
        "currentLeg": state["currentLeg"],
        "currentPlayerIndex": state["currentPlayerIndex"],
        "legsToWin": state["config"]["legsToWin"],
        "matchWinnerIndex": state["matchWinnerIndex"],
        "players": players,
        "config": state["config"],
    }
