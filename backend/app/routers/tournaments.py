# backend/app/routers/tournaments.py
from fastapi import APIRouter

from ..schemas import (
    BracketResultIn,
    GroupResultIn,
    TournamentCreate,
    TournamentStateOut,
)
from ..services.tournaments import (
    create_tournament,
    playable_matches,
    record_bracket_result,
    record_group_result,
)
from ..services.validation import ValidationError
from ..exceptions import ProblemDetail, http_problem

router = APIRouter(
    prefix="/tournaments",
    tags=["tournaments"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
    },
)


def _state(tournament: dict) -> TournamentStateOut:
    return TournamentStateOut(tournament=tournament, playable=playable_matches(tournament))


def _invalid(exc: ValidationError):
    return http_problem(
        status_code=422,
        detail=str(exc),
        code="tournament_validation_error",
    )


def _malformed():
    return http_problem(
        status_code=400,
        detail="tournament record is malformed",
        code="tournament_state_invalid",
    )


@router.post("", response_model=TournamentStateOut)
async def create_tournament_endpoint(body: TournamentCreate) -> TournamentStateOut:
    try:
        tournament = create_tournament(body.model_dump())
    except ValidationError as exc:
        raise _invalid(exc)
    return _state(tournament)


@router.post("/bracket-results", response_model=TournamentStateOut)
async def record_bracket_result_endpoint(body: BracketResultIn) -> TournamentStateOut:
    try:
        tournament = record_bracket_result(
            body.tournament,
            body.bracketMatchId,
            body.winnerId,
            body.score.model_dump(),
            match_id=body.matchId,
        )
    except ValidationError as exc:
        raise _invalid(exc)
    except (KeyError, IndexError, TypeError):
        raise _malformed()
    return _state(tournament)


@router.post("/group-results", response_model=TournamentStateOut)
async def record_group_result_endpoint(body: GroupResultIn) -> TournamentStateOut:
    try:
        tournament = record_group_result(
            body.tournament,
            body.groupId,
            body.groupMatchId,
            body.winnerId,
            body.score.model_dump(),
            match_id=body.matchId,
        )
    except ValidationError as exc:
        raise _invalid(exc)
    except (KeyError, IndexError, TypeError):
        raise _malformed()
    return _state(tournament)
