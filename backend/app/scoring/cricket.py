"""Cricket darts scoring engine.

Players close 20-15 and the bull with three marks each. Extra marks on a
number the player has closed score its value while any opponent still has it
open. The first player to close everything while not trailing on points wins.
"""

import copy
from typing import Dict, List, Optional

NUMBERS = (20, 19, 18, 17, 16, 15, 25)
MARKS_TO_CLOSE = 3


def init_state(config: Dict) -> Dict:
    refs = config.get("players") or []
    if len(refs) < 2:
        raise ValueError("cricket requires at least two players")
    players = []
    for ref in refs:
        if not isinstance(ref, dict) or not ref.get("id"):
            raise ValueError("players must be objects with an id")
        players.append(
            {
                "id": ref["id"],
                "name": ref.get("name") or ref["id"],
                "marks": {str(n): 0 for n in NUMBERS},
                "points": 0,
            }
        )
    return {"players": players, "history": [], "winnerIndex": None, "matchSaved": False}


def _closed_by_all(state: Dict, number: str) -> bool:
    return all(p["marks"][number] >= MARKS_TO_CLOSE for p in state["players"])


def _has_closed_all(player: Dict) -> bool:
    return all(player["marks"][str(n)] >= MARKS_TO_CLOSE for n in NUMBERS)


def _winner(state: Dict, index: int) -> Optional[int]:
    player = state["players"][index]
    if not _has_closed_all(player):
        return None
    others = [p for i, p in enumerate(state["players"]) if i != index]
    if all(player["points"] >= p["points"] for p in others):
        return index
    return None


def apply(event: Dict, state: Dict) -> Dict:
    etype = event.get("type")
    if etype == "UNDO":
        if not state["history"]:
            return state
        state = copy.deepcopy(state)
        last = state["history"].pop()
        player = state["players"][last["playerIndex"]]
        player["marks"][last["number"]] = last["previousMarks"]
        player["points"] = last["previousPoints"]
        state["winnerIndex"] = None
        return state

    if etype != "MARK":
        raise ValueError("invalid cricket event")
    index = event.get("player")
    number = event.get("number")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(state["players"]):
        raise ValueError("invalid cricket player")
    if number not in NUMBERS:
        raise ValueError("invalid cricket number")

    if state["winnerIndex"] is not None:
        return state
    key = str(number)
    if _closed_by_all(state, key):
        return state

    state = copy.deepcopy(state)
    player = state["players"][index]
    current = player["marks"][key]
    state["history"].append(
        {
            "playerIndex": index,
            "number": key,
            "previousMarks": current,
            "previousPoints": player["points"],
        }
    )
    player["marks"][key] = current + 1
    if current >= MARKS_TO_CLOSE:
        player["points"] += number
    state["winnerIndex"] = _winner(state, index)
    return state


def summary(state: Dict) -> Dict:
    players: List[Dict] = []
    for player in state["players"]:
        players.append(
            {
                "id": player["id"],
                "name": player["name"],
                "marks": dict(player["marks"]),
                "points": player["points"],
                "closedAll": _has_closed_all(player),
            }
        )
    return {
        "players": players,
        "closed": [n for n in NUMBERS if _closed_by_all(state, str(n))],
        "winnerIndex": state["winnerIndex"],
    }
