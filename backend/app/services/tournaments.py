"""Tournament generation and progression for cup and round-robin formats.

A tournament is a plain dict shaped like the stored record (see
``schemas.TournamentOut``). Public functions return a new tournament and
leave their input untouched.
"""

from __future__ import annotations

import copy
import logging
import uuid
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

from ..config import DEFAULT_ELO
from ..exceptions import (
    InvalidMatchResult,
    TournamentGroupNotFound,
    TournamentMatchNotFound,
)
from ..time_utils import utc_now_iso
from .validation import validate_leg_score, validate_tournament_setup

logger = logging.getLogger(__name__)

# Round-one pairings by seed; top seeds cannot meet before the late rounds.
SEEDING_PATTERNS: dict[int, list[tuple[int, int]]] = {
    4: [(1, 4), (2, 3)],
    8: [(1, 8), (4, 5), (3, 6), (2, 7)],
    16: [
        (1, 16),
        (8, 9),
        (5, 12),
        (4, 13),
        (3, 14),
        (6, 11),
        (7, 10),
        (2, 15),
    ],
}

WIN_POINTS = 2
LOSS_POINTS = 0


def _new_id() -> str:
    return uuid.uuid4().hex


def mode_rating(player: Dict[str, Any], mode: str) -> float:
    ratings = player.get("ratings") or {}
    value = ratings.get(mode)
    return float(DEFAULT_ELO if value is None else value)


def sort_by_rating(players: Sequence[Dict[str, Any]], mode: str) -> list[Dict[str, Any]]:
    """Highest mode rating first; equal ratings keep their input order."""
    return sorted(players, key=lambda p: -mode_rating(p, mode))


def _slot(player: Dict[str, Any], seed: int | None = None) -> Dict[str, Any]:
    slot: Dict[str, Any] = {"id": player["id"], "name": player.get("name") or player["id"]}
    if seed is not None:
        slot["seed"] = seed
    return slot


def _bracket_match(
    round_: int,
    position: int,
    legs_to_win: int,
    *,
    match_type: str = "regular",
) -> Dict[str, Any]:
    return {
        "id": _new_id(),
        "round": round_,
        "position": position,
        "matchType": match_type,
        "player1": None,
        "player2": None,
        "winnerId": None,
        "matchId": None,
        "score": None,
        "legsToWin": legs_to_win,
        "status": "pending",
    }


def total_rounds(bracket: Sequence[Dict[str, Any]]) -> int:
    return max((m["round"] for m in bracket), default=0)


def round_name(round_: int, rounds: int) -> str:
    if round_ == rounds:
        return "Final"
    if round_ == rounds - 1:
        return "Semifinal"
    if round_ == rounds - 2:
        return "Quarterfinal"
    return f"Round {round_}"


def _round_legs(round_: int, rounds: int, legs_config: Dict[str, int]) -> int:
    if round_ == rounds:
        return legs_config["final"]
    if round_ == rounds - 1:
        return legs_config["semifinal"]
    return legs_config["quarterfinal"]


def _find_match(
    bracket: Sequence[Dict[str, Any]],
    round_: int,
    position: int,
    match_type: str = "regular",
) -> Optional[Dict[str, Any]]:
    for match in bracket:
        if (
            match["round"] == round_
            and match["position"] == position
            and match["matchType"] == match_type
        ):
            return match
    return None


def _bronze_match(bracket: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return next((m for m in bracket if m["matchType"] == "bronze"), None)


def _place(match: Dict[str, Any], slot: Dict[str, Any], as_player1: bool) -> bool:
    """Put ``slot`` into an empty side of ``match``; returns whether it moved."""

    key = "player1" if as_player1 else "player2"
    placed = False
    if match[key] is None:
        match[key] = slot
        placed = True
    if match["player1"] and match["player2"] and match["status"] == "pending":
        match["status"] = "ready"
    return placed


def _winner_slot(match: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for key in ("player1", "player2"):
        slot = match[key]
        if slot and slot["id"] == match["winnerId"]:
            return slot
    return None


def process_walkovers(bracket: Sequence[Dict[str, Any]]) -> list[Dict[str, Any]]:
    """Advance walkover winners until nothing moves.

    Each pass can only promote a walkover one round, so the loop is bounded by
    the number of rounds.
    """

    updated = copy.deepcopy(list(bracket))
    rounds = total_rounds(updated)
    for _ in range(rounds):
        changed = False
        for match in updated:
            if match["status"] != "walkover" or not match["winnerId"]:
                continue
            if match["matchType"] != "regular" or match["round"] >= rounds:
                continue
            target = _find_match(updated, match["round"] + 1, match["position"] // 2)
            winner = _winner_slot(match)
            if target is None or winner is None:
                continue
            if _place(target, winner, match["position"] % 2 == 0):
                changed = True
        if not changed:
            break
    return updated


def generate_cup_bracket(
    players: Sequence[Dict[str, Any]],
    bracket_size: int,
    legs_config: Dict[str, int],
    bronze_match_enabled: bool = False,
    mode: str = "501",
) -> list[Dict[str, Any]]:
    """Create a seeded single-elimination bracket.

    Players are seeded by their rating for ``mode``; empty seeds are byes and
    their opponents advance by walkover straight away. Player count is the
    caller's responsibility (see ``validate_tournament_setup``).
    """

    pattern = SEEDING_PATTERNS[bracket_size]
    ranked = sort_by_rating(players, mode)
    seeds: list[Optional[Dict[str, Any]]] = list(ranked[:bracket_size])
    seeds.extend([None] * (bracket_size - len(seeds)))
    rounds = bracket_size.bit_length() - 1

    matches: list[Dict[str, Any]] = []
    first_round_legs = legs_config["semifinal"] if rounds == 2 else legs_config["quarterfinal"]
    for position, (seed1, seed2) in enumerate(pattern):
        match = _bracket_match(1, position, first_round_legs)
        p1, p2 = seeds[seed1 - 1], seeds[seed2 - 1]
        match["player1"] = _slot(p1, seed1) if p1 else None
        match["player2"] = _slot(p2, seed2) if p2 else None
        if p1 and p2:
            match["status"] = "ready"
        elif p1 or p2:
            match["status"] = "walkover"
            match["winnerId"] = (p1 or p2)["id"]
            match["score"] = {"player1Legs": 0, "player2Legs": 0}
        matches.append(match)

    for round_ in range(2, rounds + 1):
        legs = _round_legs(round_, rounds, legs_config)
        for position in range(bracket_size >> round_):
            matches.append(_bracket_match(round_, position, legs))

    if bronze_match_enabled:
        matches.append(_bracket_match(rounds, 1, legs_config["bronze"], match_type="bronze"))

    return process_walkovers(matches)


def _standing(player: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": player["id"],
        "name": player.get("name") or player["id"],
        "played": 0,
        "won": 0,
        "lost": 0,
        "legsFor": 0,
        "legsAgainst": 0,
        "points": 0,
    }


def generate_round_robin_groups(
    players: Sequence[Dict[str, Any]],
    group_count: int,
    mode: str = "501",
) -> list[Dict[str, Any]]:
    """Snake-draft players into groups and schedule every pairing once."""

    groups = [
        {"id": _new_id(), "name": f"Group {chr(65 + i)}", "players": [], "matches": []}
        for i in range(group_count)
    ]
    for index, player in enumerate(sort_by_rating(players, mode)):
        draft_round = index // group_count
        offset = index % group_count
        group_index = offset if draft_round % 2 == 0 else group_count - 1 - offset
        groups[group_index]["players"].append(_standing(player))

    for group in groups:
        group["matches"] = [
            {
                "id": _new_id(),
                "player1Id": a["id"],
                "player2Id": b["id"],
                "player1Name": a["name"],
                "player2Name": b["name"],
                "winnerId": None,
                "score": None,
                "matchId": None,
                "status": "ready",
            }
            for a, b in combinations(group["players"], 2)
        ]
    return groups


def generate_round_robin_knockout(
    legs_config: Dict[str, int], bronze_match_enabled: bool = False
) -> list[Dict[str, Any]]:
    """Empty semifinals and final, filled once the group stage is over."""

    matches = [
        _bracket_match(1, 0, legs_config["semifinal"]),
        _bracket_match(1, 1, legs_config["semifinal"]),
        _bracket_match(2, 0, legs_config["final"]),
    ]
    if bronze_match_enabled:
        matches.append(_bracket_match(2, 1, legs_config["bronze"], match_type="bronze"))
    return matches


def rank_group(standings: Sequence[Dict[str, Any]]) -> list[Dict[str, Any]]:
    """Order by points, then leg difference. Remaining ties keep draft order."""

    return sorted(
        standings,
        key=lambda s: (-s["points"], -(s["legsFor"] - s["legsAgainst"])),
    )


def create_tournament(setup: Dict[str, Any]) -> Dict[str, Any]:
    """Validate setup options and build the initial tournament record."""

    cfg = validate_tournament_setup(setup)
    bracket: list[Dict[str, Any]]
    groups: Optional[list[Dict[str, Any]]] = None
    if cfg["format"] == "cup":
        bracket = generate_cup_bracket(
            cfg["players"],
            cfg["bracketSize"],
            cfg["legsConfig"],
            cfg["bronzeMatchEnabled"],
            cfg["gameMode"],
        )
        status = "knockout"
    else:
        groups = generate_round_robin_groups(
            cfg["players"], cfg["groupCount"], cfg["gameMode"]
        )
        bracket = generate_round_robin_knockout(
            cfg["legsConfig"], cfg["bronzeMatchEnabled"]
        )
        status = "group_stage"

    tournament = {
        "id": _new_id(),
        "name": cfg["name"],
        "format": cfg["format"],
        "gameMode": cfg["gameMode"],
        "playerCount": len(cfg["players"]),
        "bracketSize": cfg["bracketSize"],
        "groupCount": cfg["groupCount"],
        "status": status,
        "winnerId": None,
        "secondPlaceId": None,
        "thirdPlaceId": None,
        "bronzeMatchEnabled": cfg["bronzeMatchEnabled"],
        "legsConfig": cfg["legsConfig"],
        "groups": groups,
        "bracket": bracket,
        "createdAt": utc_now_iso(),
        "completedAt": None,
    }
    logger.info(
        "Created %s tournament %r with %d players",
        tournament["format"],
        tournament["name"],
        tournament["playerCount"],
    )
    return tournament


def _checked_score(
    score: Any,
    legs_to_win: int,
    winner_is_player1: bool,
) -> Dict[str, int]:
    checked = validate_leg_score(score, legs_to_win)
    winner_legs = checked["player1Legs"] if winner_is_player1 else checked["player2Legs"]
    loser_legs = checked["player2Legs"] if winner_is_player1 else checked["player1Legs"]
    if winner_legs < loser_legs:
        raise InvalidMatchResult("score does not match the reported winner")
    return checked


def _bronze_walkover(
    bracket: Sequence[Dict[str, Any]], bronze: Dict[str, Any], loser: Dict[str, Any]
) -> None:
    """A semifinal decided by walkover has no loser, so the bronze goes uncontested."""

    semifinal_round = total_rounds(bracket) - 1
    if any(
        m["round"] == semifinal_round and m["matchType"] == "regular" and m["status"] == "walkover"
        for m in bracket
    ):
        bronze["status"] = "walkover"
        bronze["winnerId"] = loser["id"]
        bronze["score"] = {"player1Legs": 0, "player2Legs": 0}


def _finish_if_complete(tournament: Dict[str, Any]) -> None:
    bracket = tournament["bracket"]
    final = _find_match(bracket, total_rounds(bracket), 0)
    if final is None or final["status"] != "completed":
        return
    bronze = _bronze_match(bracket) if tournament["bronzeMatchEnabled"] else None
    if bronze is not None and bronze["status"] not in ("completed", "walkover"):
        return

    tournament["status"] = "completed"
    tournament["completedAt"] = utc_now_iso()
    tournament["winnerId"] = final["winnerId"]
    runner_up = final["player2"] if final["player1"]["id"] == final["winnerId"] else final["player1"]
    tournament["secondPlaceId"] = runner_up["id"] if runner_up else None
    if bronze is not None:
        tournament["thirdPlaceId"] = bronze["winnerId"]
    logger.info(
        "Tournament %s completed, winner %s", tournament["id"], tournament["winnerId"]
    )


def record_bracket_result(
    tournament: Dict[str, Any],
    bracket_match_id: str,
    winner_id: str,
    score: Dict[str, int],
    match_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Complete a knockout match and move players on.

    The winner fills the next round (player1 from even positions, player2 from
    odd ones); with a bronze match the semifinal loser fills the bronze slot.
    """

    tournament = copy.deepcopy(tournament)
    bracket = tournament.get("bracket") or []
    match = next((m for m in bracket if m["id"] == bracket_match_id), None)
    if match is None:
        raise TournamentMatchNotFound(bracket_match_id)
    if match["status"] != "ready":
        raise InvalidMatchResult(f"match is {match['status']}, not ready")

    player1, player2 = match["player1"], match["player2"]
    if winner_id not in (player1["id"], player2["id"]):
        raise InvalidMatchResult("winner is not a player in this match")
    winner_is_player1 = winner_id == player1["id"]

    match["score"] = _checked_score(score, match["legsToWin"], winner_is_player1)
    match["winnerId"] = winner_id
    match["matchId"] = match_id
    match["status"] = "completed"

    winner = player1 if winner_is_player1 else player2
    loser = player2 if winner_is_player1 else player1
    rounds = total_rounds(bracket)
    if match["matchType"] == "regular" and match["round"] < rounds:
        target = _find_match(bracket, match["round"] + 1, match["position"] // 2)
        if target is not None:
            _place(target, winner, match["position"] % 2 == 0)
        if tournament["bronzeMatchEnabled"] and match["round"] == rounds - 1:
            bronze = _bronze_match(bracket)
            if bronze is not None:
                _place(bronze, loser, match["position"] == 0)
                _bronze_walkover(bracket, bronze, loser)

    _finish_if_complete(tournament)
    return tournament


def _seed_knockout(tournament: Dict[str, Any]) -> None:
    ranked = [rank_group(g["players"]) for g in tournament["groups"]]
    if len(ranked) == 2:
        a, b = ranked
        pairings = [(a[0], b[1]), (b[0], a[1])]
    else:
        pairings = [(ranked[0][0], ranked[1][0]), (ranked[2][0], ranked[3][0])]

    for position, (first, second) in enumerate(pairings):
        semifinal = _find_match(tournament["bracket"], 1, position)
        semifinal["player1"] = _slot(first)
        semifinal["player2"] = _slot(second)
        semifinal["status"] = "ready"


def _update_standing(standing: Dict[str, Any], won: bool, legs_for: int, legs_against: int) -> None:
    standing["played"] += 1
    standing["won"] += 1 if won else 0
    standing["lost"] += 0 if won else 1
    standing["legsFor"] += legs_for
    standing["legsAgainst"] += legs_against
    standing["points"] += WIN_POINTS if won else LOSS_POINTS


def record_group_result(
    tournament: Dict[str, Any],
    group_id: str,
    group_match_id: str,
    winner_id: str,
    score: Dict[str, int],
    match_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Complete a group fixture; when the last one is in, seed the knockout."""

    tournament = copy.deepcopy(tournament)
    if tournament["status"] != "group_stage":
        raise InvalidMatchResult("group stage is already finished")
    group = next((g for g in tournament.get("groups") or [] if g["id"] == group_id), None)
    if group is None:
        raise TournamentGroupNotFound(group_id)
    match = next((m for m in group["matches"] if m["id"] == group_match_id), None)
    if match is None:
        raise TournamentMatchNotFound(group_match_id)
    if match["status"] != "ready":
        raise InvalidMatchResult(f"match is {match['status']}, not ready")
    if winner_id not in (match["player1Id"], match["player2Id"]):
        raise InvalidMatchResult("winner is not a player in this match")

    winner_is_player1 = winner_id == match["player1Id"]
    checked = _checked_score(score, tournament["legsConfig"]["groupStage"], winner_is_player1)
    match.update(winnerId=winner_id, score=checked, matchId=match_id, status="completed")

    for standing in group["players"]:
        if standing["id"] == match["player1Id"]:
            _update_standing(
                standing, winner_is_player1, checked["player1Legs"], checked["player2Legs"]
            )
        elif standing["id"] == match["player2Id"]:
            _update_standing(
                standing, not winner_is_player1, checked["player2Legs"], checked["player1Legs"]
            )

    if all(m["status"] == "completed" for g in tournament["groups"] for m in g["matches"]):
        _seed_knockout(tournament)
        tournament["status"] = "knockout"
        logger.info("Group stage of tournament %s complete", tournament["id"])
    return tournament


def playable_matches(tournament: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Matches of the current stage that can be started now."""

    playable: List[Dict[str, Any]] = []
    if tournament["status"] == "group_stage":
        for group in tournament.get("groups") or []:
            for match in group["matches"]:
                if match["status"] == "ready":
                    playable.append({"stage": "group", "groupId": group["id"], "match": match})
        return playable
    bracket = tournament.get("bracket") or []
    rounds = total_rounds(bracket)
    order = sorted(bracket, key=lambda m: (m["round"], m["matchType"] != "bronze", m["position"]))
    for match in order:
        if match["status"] == "ready":
            if match["matchType"] == "bronze":
                name = "Bronze"
            else:
                name = round_name(match["round"], rounds)
            playable.append(
                {
                    "stage": "knockout",
                    "roundName": name,
                    "match": match,
                }
            )
    return playable
