from typing import Any, Dict, List, Optional, Sequence


class ValidationError(Exception):
    """Raised when match or tournament setup input is invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


GAME_MODES = ("301", "501")
TOURNAMENT_FORMATS = ("cup", "round_robin")
BRACKET_SIZES = (4, 8, 16)
GROUP_COUNTS = (2, 4)
MIN_CUP_PLAYERS = 3
MIN_PLAYERS_PER_GROUP = 2
MAX_LEGS_TO_WIN = 11
MAX_TOURNAMENT_LEGS = 5

LEGS_CONFIG_KEYS = ("groupStage", "quarterfinal", "semifinal", "final", "bronze")
DEFAULT_LEGS_CONFIG = {
    "groupStage": 1,
    "quarterfinal": 1,
    "semifinal": 2,
    "final": 3,
    "bronze": 1,
}


def _positive_int(value: Any, label: str, *, maximum: Optional[int] = None) -> int:
    # Reject booleans explicitly (bool is a subclass of int in Python)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer.")
    if value < 1:
        raise ValidationError(f"{label} must be >= 1.")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{label} must be <= {maximum}.")
    return value


def validate_players(
    players: Sequence[Any], *, min_players: int = 2
) -> List[Dict[str, Any]]:
    """Validate player snapshots and return them as plain dicts.

    Every player needs a non-empty ``id``; ids must be unique. Ratings, when
    present, must be numeric.
    """

    if not isinstance(players, Sequence) or isinstance(players, (str, bytes)):
        raise ValidationError("Players must be provided as a list.")

    normalized: List[Dict[str, Any]] = []
    seen: set[str] = set()
    for index, raw in enumerate(players, start=1):
        if hasattr(raw, "model_dump"):
            raw = raw.model_dump()
        if not isinstance(raw, dict):
            raise ValidationError(f"Player #{index} must be an object.")
        pid = raw.get("id")
        if not isinstance(pid, str) or not pid.strip():
            raise ValidationError(f"Player #{index} is missing an id.")
        if pid in seen:
            raise ValidationError("Duplicate player ids provided.")
        seen.add(pid)
        ratings = raw.get("ratings") or {}
        for mode, value in ratings.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(
                    f"Player #{index} rating for {mode} must be a number."
                )
        normalized.append(
            {"id": pid, "name": raw.get("name") or pid, "ratings": dict(ratings)}
        )

    if len(normalized) < min_players:
        raise ValidationError(f"At least {min_players} players are required.")
    return normalized


def validate_game_mode(mode: Any) -> str:
    value = str(mode or "").strip()
    if value not in GAME_MODES:
        raise ValidationError(f"Unsupported game mode: {mode!r}.")
    return value


def validate_match_setup(setup: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an x01 match setup and return the engine config."""

    players = validate_players(setup.get("players") or [])
    input_mode = setup.get("inputMode", "round")
    if input_mode not in ("round", "dart"):
        raise ValidationError(f"Unsupported input mode: {input_mode!r}.")
    ranked = bool(setup.get("ranked", False))
    return {
        "players": players,
        "mode": validate_game_mode(setup.get("mode", "501")),
        "legsToWin": _positive_int(
            setup.get("legsToWin", 3), "legsToWin", maximum=MAX_LEGS_TO_WIN
        ),
        "ranked": ranked,
        "inputMode": input_mode,
        "startedAt": setup.get("startedAt"),
    }


def validate_legs_config(legs_config: Optional[Dict[str, Any]]) -> Dict[str, int]:
    merged = dict(DEFAULT_LEGS_CONFIG)
    for key, value in (legs_config or {}).items():
        if key not in LEGS_CONFIG_KEYS:
            raise ValidationError(f"Unknown legs setting: {key!r}.")
        merged[key] = _positive_int(
            value, f"legsConfig.{key}", maximum=MAX_TOURNAMENT_LEGS
        )
    return merged


def bracket_size_for(player_count: int) -> int:
    """Smallest supported bracket that fits ``player_count`` players."""
    for size in BRACKET_SIZES:
        if player_count <= size:
            return size
    raise ValidationError(
        f"Cup tournaments support at most {BRACKET_SIZES[-1]} players."
    )


def validate_tournament_setup(setup: Dict[str, Any]) -> Dict[str, Any]:
    """Validate tournament setup options.

    Rules:
    - ``format`` is ``cup`` or ``round_robin``
    - cup needs at least three players and a bracket of 4, 8 or 16 that fits
      them with no empty first-round match (chosen from the player count when
      omitted)
    - round robin uses 2 or 4 groups with at least two players per group
    - every legs setting is between 1 and 5
    """

    fmt = str(setup.get("format") or "").strip().lower()
    if fmt not in TOURNAMENT_FORMATS:
        raise ValidationError(f"Unsupported tournament format: {setup.get('format')!r}.")

    name = str(setup.get("name") or "").strip()
    if not name:
        raise ValidationError("Tournament name must not be empty.")

    mode = validate_game_mode(setup.get("gameMode", "501"))
    legs_config = validate_legs_config(setup.get("legsConfig"))
    bronze = bool(setup.get("bronzeMatchEnabled", False))

    bracket_size: Optional[int] = None
    group_count: Optional[int] = None
    if fmt == "cup":
        players = validate_players(setup.get("players") or [], min_players=MIN_CUP_PLAYERS)
        bracket_size = setup.get("bracketSize") or bracket_size_for(len(players))
        if bracket_size not in BRACKET_SIZES:
            raise ValidationError(f"Unsupported bracket size: {bracket_size!r}.")
        if len(players) > bracket_size:
            raise ValidationError(
                f"{len(players)} players do not fit a bracket of {bracket_size}."
            )
        if len(players) <= bracket_size // 2:
            raise ValidationError(
                f"{len(players)} players are too few for a bracket of {bracket_size}."
            )
    else:
        group_count = setup.get("groupCount") or 2
        if group_count not in GROUP_COUNTS:
            raise ValidationError(f"Unsupported group count: {group_count!r}.")
        players = validate_players(
            setup.get("players") or [],
            min_players=group_count * MIN_PLAYERS_PER_GROUP,
        )

    return {
        "name": name,
        "format": fmt,
        "gameMode": mode,
        "players": players,
        "bracketSize": bracket_size,
        "groupCount": group_count,
        "legsConfig": legs_config,
        "bronzeMatchEnabled": bronze,
    }


def validate_leg_score(score: Any, legs_to_win: int) -> Dict[str, int]:
    """Validate a ``{player1Legs, player2Legs}`` result for a best-of match."""

    if not isinstance(score, dict):
        raise ValidationError("Score must be an object with player1Legs and player2Legs.")
    values = []
    for key in ("player1Legs", "player2Legs"):
        raw = score.get(key)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError(f"{key} must be an integer.")
        if raw < 0 or raw > legs_to_win:
            raise ValidationError(f"{key} must be between 0 and {legs_to_win}.")
        values.append(raw)
    if values[0] == values[1]:
        raise ValidationError("Score cannot be a tie.")
    if max(values) != legs_to_win:
        raise ValidationError(f"The winner must reach {legs_to_win} legs.")
    return {"player1Legs": values[0], "player2Legs": values[1]}
