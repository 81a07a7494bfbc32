# backend/app/routers/matches.py
import logging

from fastapi import APIRouter

from ..schemas import (
    CricketEventRequest,
    CricketMatchCreate,
    CricketStateOut,
    FinalizeOut,
    FinalizeRequest,
    X01EventRequest,
    X01MatchCreate,
    X01StateOut,
)
from ..scoring import cricket as cricket_engine, x01 as x01_engine
from ..services.match_results import finalize_cricket, finalize_match
from ..services.validation import ValidationError, validate_match_setup, validate_players
from ..exceptions import ProblemDetail, http_problem

logger = logging.getLogger(__name__)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={400: {"model": ProblemDetail}, 409: {"model": ProblemDetail}},
)


def _invalid_event(exc: ValueError):
    return http_problem(
        status_code=400,
        detail=str(exc),
        code="match_event_invalid",
    )


def _invalid_state():
    return http_problem(
        status_code=400,
        detail="match state is malformed",
        code="match_state_invalid",
    )


@router.post("/x01", response_model=X01StateOut)
async def create_x01_match(body: X01MatchCreate) -> X01StateOut:
    try:
        config = validate_match_setup(body.model_dump(mode="json"))
    except ValidationError as exc:
        raise http_problem(
            status_code=422,
            detail=str(exc),
            code="match_validation_error",
        )
    state = x01_engine.init_state(config)
    logger.info(
        "Started %s match for %d players (legsToWin=%d)",
        config["mode"],
        len(config["players"]),
        config["legsToWin"],
    )
    return X01StateOut(state=state, summary=x01_engine.summary(state))


@router.post("/x01/events", response_model=X01StateOut)
async def apply_x01_event(body: X01EventRequest) -> X01StateOut:
    event = body.event.model_dump(exclude_none=True)
    try:
        state, outcome = x01_engine.apply_with_outcome(event, body.state)
        summary = x01_engine.summary(state)
    except ValueError as exc:
        raise _invalid_event(exc)
    except (KeyError, IndexError, TypeError):
        raise _invalid_state()
    return X01StateOut(state=state, summary=summary, outcome=outcome)


@router.post("/x01/finalize", response_model=FinalizeOut)
async def finalize_x01_match(body: FinalizeRequest) -> FinalizeOut:
    try:
        state, record = finalize_match(body.state, tournament_id=body.tournamentId)
    except (KeyError, IndexError, TypeError):
        raise _invalid_state()
    return FinalizeOut(state=state, record=record)


@router.post("/cricket", response_model=CricketStateOut)
async def create_cricket_match(body: CricketMatchCreate) -> CricketStateOut:
    try:
        players = validate_players(body.model_dump()["players"])
    except ValidationError as exc:
        raise http_problem(
            status_code=422,
            detail=str(exc),
            code="match_validation_error",
        )
    state = cricket_engine.init_state({"players": players})
    return CricketStateOut(state=state, summary=cricket_engine.summary(state))


@router.post("/cricket/events", response_model=CricketStateOut)
async def apply_cricket_event(body: CricketEventRequest) -> CricketStateOut:
    event = body.event.model_dump(exclude_none=True)
    try:
        state = cricket_engine.apply(event, body.state)
        summary = cricket_engine.summary(state)
        record = None
        if state["winnerIndex"] is not None:
            state, record = finalize_cricket(state)
    except ValueError as exc:
        raise _invalid_event(exc)
    except (KeyError, IndexError, TypeError):
        raise _invalid_state()
    return CricketStateOut(state=state, summary=summary, record=record)
