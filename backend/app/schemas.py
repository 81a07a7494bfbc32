from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator, field_validator, ConfigDict

from .time_utils import require_utc


class PlayerRef(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, max_length=100)
    ratings: Dict[str, float] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("id must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("id must not be empty")
        return trimmed


class X01MatchCreate(BaseModel):
    players: List[PlayerRef] = Field(..., min_length=2)
    mode: Literal["301", "501"] = "501"
    legsToWin: int = Field(default=3, ge=1, le=11)
    ranked: bool = False
    inputMode: Literal["round", "dart"] = "round"
    startedAt: Optional[datetime] = None

    @field_validator("startedAt")
    def _normalize_started_at(cls, v: datetime | None) -> datetime | None:
        return require_utc(v, field_name="startedAt")

    @model_validator(mode="after")
    def _unique_players(cls, values):
        ids = [p.id for p in values.players]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate player ids")
        return values


class Dart(BaseModel):
    multiplier: Literal["single", "double", "treble", "bull", "outer", "miss"] = "single"
    value: int = Field(default=0, ge=0, le=20)


class X01EventIn(BaseModel):
    type: Literal["VISIT", "BUST", "CONFIRM_LEG", "CANCEL_LEG", "UNDO", "EDIT_VISIT"]
    score: Optional[int] = None
    darts: Optional[List[Dart]] = Field(default=None, max_length=3)
    finishedOnDouble: Optional[bool] = None
    doubleAttempts: Optional[int] = Field(default=None, ge=0, le=3)
    playerIndex: Optional[int] = Field(default=None, ge=0)
    visitIndex: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _validate_fields(cls, values):
        if values.type == "VISIT" and values.score is None and values.darts is None:
            raise ValueError("score or darts is required for VISIT events")
        if values.type == "EDIT_VISIT":
            missing = [
                field
                for field in ("playerIndex", "visitIndex", "score")
                if getattr(values, field) is None
            ]
            if missing:
                raise ValueError(
                    "playerIndex, visitIndex, and score are required for EDIT_VISIT events"
                )
        return values


class X01EventRequest(BaseModel):
    state: Dict[str, Any]
    event: X01EventIn


class X01StateOut(BaseModel):
    state: Dict[str, Any]
    summary: Dict[str, Any]
    outcome: Optional[str] = None


class FinalizeRequest(BaseModel):
    state: Dict[str, Any]
    tournamentId: Optional[str] = None


class MatchPlayerResultOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    legsWon: int
    ratingBefore: Optional[float] = None
    ratingAfter: Optional[float] = None
    ratingChange: float = 0.0


class MatchResultOut(BaseModel):
    gameMode: str
    legsToWin: int
    ranked: bool
    tournamentId: Optional[str] = None
    winnerId: str
    winnerName: str
    playerCount: int
    highestCheckout: int
    startedAt: Optional[str] = None
    players: List[MatchPlayerResultOut]


class FinalizeOut(BaseModel):
    state: Dict[str, Any]
    record: Optional[MatchResultOut] = None


class CricketMatchCreate(BaseModel):
    players: List[PlayerRef] = Field(..., min_length=2)


class CricketEventIn(BaseModel):
    type: Literal["MARK", "UNDO"]
    player: Optional[int] = Field(default=None, ge=0)
    number: Optional[Literal[20, 19, 18, 17, 16, 15, 25]] = None

    @model_validator(mode="after")
    def _validate_mark(cls, values):
        if values.type == "MARK" and (values.player is None or values.number is None):
            raise ValueError("player and number are required for MARK events")
        return values


class CricketEventRequest(BaseModel):
    state: Dict[str, Any]
    event: CricketEventIn


class CricketStateOut(BaseModel):
    state: Dict[str, Any]
    summary: Dict[str, Any]
    record: Optional[MatchResultOut] = None


class CheckoutEvaluateIn(BaseModel):
    remaining: int = Field(..., ge=0, le=501)
    score: int
    darts: Optional[List[Dart]] = Field(default=None, max_length=3)
    finishedOnDouble: Optional[bool] = None


class CheckoutEvaluateOut(BaseModel):
    outcome: Literal["continue", "bust", "checkout", "rejected"]
    remaining: int
    doubleAttempts: int
    doubleHits: int


class CheckoutSuggestionOut(BaseModel):
    remaining: int
    darts: Optional[List[str]] = None


class LegsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    groupStage: int = Field(default=1, ge=1, le=5)
    quarterfinal: int = Field(default=1, ge=1, le=5)
    semifinal: int = Field(default=2, ge=1, le=5)
    final: int = Field(default=3, ge=1, le=5)
    bronze: int = Field(default=1, ge=1, le=5)


class TournamentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    format: Literal["cup", "round_robin"]
    gameMode: Literal["301", "501"] = "501"
    players: List[PlayerRef]
    bracketSize: Optional[Literal[4, 8, 16]] = None
    groupCount: Optional[Literal[2, 4]] = None
    legsConfig: LegsConfig = Field(default_factory=LegsConfig)
    bronzeMatchEnabled: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be empty")
        return trimmed


class LegScore(BaseModel):
    player1Legs: int = Field(..., ge=0)
    player2Legs: int = Field(..., ge=0)


class BracketResultIn(BaseModel):
    tournament: Dict[str, Any]
    bracketMatchId: str
    winnerId: str
    score: LegScore
    matchId: Optional[str] = None


class GroupResultIn(BaseModel):
    tournament: Dict[str, Any]
    groupId: str
    groupMatchId: str
    winnerId: str
    score: LegScore
    matchId: Optional[str] = None


class TournamentOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    format: str
    gameMode: str
    playerCount: int
    bracketSize: Optional[int] = None
    groupCount: Optional[int] = None
    status: Literal["group_stage", "knockout", "completed"]
    winnerId: Optional[str] = None
    secondPlaceId: Optional[str] = None
    thirdPlaceId: Optional[str] = None
    bronzeMatchEnabled: bool
    legsConfig: Dict[str, int]
    groups: Optional[List[Dict[str, Any]]] = None
    bracket: Optional[List[Dict[str, Any]]] = None
    createdAt: str
    completedAt: Optional[str] = None


class TournamentStateOut(BaseModel):
    tournament: TournamentOut
    playable: List[Dict[str, Any]]

