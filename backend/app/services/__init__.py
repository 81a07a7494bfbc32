"""Internal application services (pure helpers, no I/O)."""

from .validation import ValidationError, validate_leg_score, validate_tournament_setup
from .rating import calculate_match_elo, calculate_multiplayer_elo
from .match_results import build_cricket_record, build_x01_record, finalize_match
from .tournaments import (
    create_tournament,
    playable_matches,
    record_bracket_result,
    record_group_result,
)

__all__ = [
    "ValidationError",
    "validate_leg_score",
    "validate_tournament_setup",
    "calculate_match_elo",
    "calculate_multiplayer_elo",
    "build_x01_record",
    "build_cricket_record",
    "finalize_match",
    "create_tournament",
    "playable_matches",
    "record_bracket_result",
    "record_group_result",
]
