"""Visit evaluation for x01 darts.

Decides whether a visit keeps the leg going, busts, finishes the leg on a
double, or cannot be accepted at all (the caller re-prompts in that case).
Also provides the double-attempt accounting and checkout suggestions used by
the scoreboard.
"""

from typing import Dict, List, Optional, Sequence, Tuple

CONTINUE = "continue"
BUST = "bust"
CHECKOUT = "checkout"
REJECTED = "rejected"

MAX_VISIT = 180
MAX_CHECKOUT = 170
DARTS_PER_VISIT = 3

# Totals that no combination of three darts can produce.
IMPOSSIBLE_VISITS = frozenset({163, 166, 169, 172, 173, 175, 176, 178, 179})
# Remaining scores at or below 170 that cannot be finished in one visit.
BOGEY_FINISHES = frozenset({159, 162, 163, 165, 166, 168, 169})

MULTIPLIERS = {"single": 1, "double": 2, "treble": 3}
FIXED_DARTS = {"bull": 50, "outer": 25}

# Preferred finishing doubles, most common first.
_PREFERRED_DOUBLES = (20, 16, 18, 12, 10, 8, 19, 17, 15, 14, 13, 11, 9, 7, 6, 5, 4, 3, 2, 1)


def dart_score(dart: Dict) -> Optional[int]:
    """Return the score of a single dart or ``None`` if it is not a valid dart.

    A dart is ``{"multiplier": "single" | "double" | "treble", "value": 1-20}``,
    ``{"multiplier": "bull"}`` (50), ``{"multiplier": "outer"}`` (25), or a miss
    (``{"multiplier": "miss"}`` or any multiplier with value ``0``).
    """

    if not isinstance(dart, dict):
        return None
    multiplier = dart.get("multiplier", "single")
    value = dart.get("value", 0)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if multiplier == "miss":
        return 0
    if multiplier in FIXED_DARTS:
        return FIXED_DARTS[multiplier]
    factor = MULTIPLIERS.get(multiplier)
    if factor is None:
        return None
    if value == 0:
        return 0
    if not 1 <= value <= 20:
        return None
    return value * factor


def is_finishing_dart(dart: Dict) -> bool:
    """Only doubles and the bullseye may end a leg."""
    multiplier = dart.get("multiplier")
    if multiplier == "bull":
        return True
    return multiplier == "double" and dart.get("value") in range(1, 21)


def is_on_double(remaining: int) -> bool:
    """True when ``remaining`` can be finished with a single dart."""
    if remaining == 50:
        return True
    return 2 <= remaining <= 40 and remaining % 2 == 0


def _valid_total(score) -> bool:
    if isinstance(score, bool) or not isinstance(score, int):
        return False
    return 0 <= score <= MAX_VISIT and score not in IMPOSSIBLE_VISITS


def _evaluate_darts(remaining: int, score: int, darts: Sequence[Dict]) -> str:
    if not darts or len(darts) > DARTS_PER_VISIT:
        return REJECTED
    scores = [dart_score(d) for d in darts]
    if any(s is None for s in scores) or sum(scores) != score:
        return REJECTED

    running = remaining
    last = len(scores) - 1
    for index, value in enumerate(scores):
        running -= value
        if running < 0 or running == 1:
            return BUST
        if running == 0:
            if index != last:
                # No darts are thrown after the leg has been won.
                return REJECTED
            return CHECKOUT if is_finishing_dart(darts[index]) else REJECTED
    return CONTINUE


def evaluate(
    remaining: int,
    score: int,
    *,
    darts: Optional[Sequence[Dict]] = None,
    finished_on_double: Optional[bool] = None,
) -> str:
    """Classify a visit of ``score`` thrown from ``remaining``.

    With dart-by-dart entry (``darts`` given) the finishing dart decides a
    checkout and a non-double finish is refused. With round-total entry the
    caller states whether the last dart was a double: ``True`` finishes the
    leg, ``False`` busts, and ``None`` leaves the visit unaccepted until the
    scorer confirms.
    """

    if not _valid_total(score):
        return REJECTED
    if darts is not None:
        return _evaluate_darts(remaining, score, darts)

    left = remaining - score
    if left < 0 or left == 1:
        return BUST
    if left == 0:
        if score > MAX_CHECKOUT or score in BOGEY_FINISHES:
            return REJECTED
        if finished_on_double is None:
            return REJECTED
        return CHECKOUT if finished_on_double else BUST
    return CONTINUE


def count_double_attempts(
    remaining: int,
    outcome: str,
    darts: Optional[Sequence[Dict]] = None,
) -> Tuple[int, int]:
    """Return ``(attempts, hits)`` for a visit thrown from ``remaining``.

    When darts are known every dart thrown while on a double is an attempt.
    Otherwise the whole visit counts as one attempt if it started on a double.
    Busts still count their attempts.
    """

    hits = 1 if outcome == CHECKOUT else 0
    if darts:
        attempts = 0
        before = remaining
        for dart in darts:
            value = dart_score(dart) or 0
            if is_on_double(before):
                attempts += 1
            before -= value
        return max(attempts, hits), hits
    attempts = 1 if is_on_double(remaining) else 0
    return max(attempts, hits), hits


def _dart_options() -> List[Tuple[str, int]]:
    trebles = [(f"T{v}", v * 3) for v in range(20, 0, -1)]
    singles = [(str(v), v) for v in range(20, 0, -1)]
    doubles = [(f"D{v}", v * 2) for v in range(20, 0, -1)]
    return trebles + [("BULL", 50), ("25", 25)] + singles + doubles


def _finishers() -> List[Tuple[str, int]]:
    return [(f"D{v}", v * 2) for v in _PREFERRED_DOUBLES] + [("BULL", 50)]


_SETUP_DARTS = _dart_options()
_FINISHING_DARTS = _finishers()


def checkout_suggestion(remaining: int, darts_left: int = DARTS_PER_VISIT) -> Optional[List[str]]:
    """Suggest a finish for ``remaining`` using at most ``darts_left`` darts.

    Returns dart labels such as ``["T20", "T20", "BULL"]`` or ``None`` when
    the score cannot be finished in the darts available.
    """

    if darts_left < 1 or remaining < 2 or remaining > MAX_CHECKOUT:
        return None
    if remaining in BOGEY_FINISHES:
        return None

    for label, value in _FINISHING_DARTS:
        if value == remaining:
            return [label]
    if darts_left >= 2:
        for finish_label, finish in _FINISHING_DARTS:
            for label, value in _SETUP_DARTS:
                if value + finish == remaining:
                    return [label, finish_label]
    if darts_left >= 3:
        for finish_label, finish in _FINISHING_DARTS:
            for first_label, first in _SETUP_DARTS:
                needed = remaining - finish - first
                if needed <= 0:
                    continue
                for label, value in _SETUP_DARTS:
                    if value == needed:
                        return [first_label, label, finish_label]
    return None
