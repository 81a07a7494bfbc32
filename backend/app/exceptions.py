from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class TournamentMatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Tournament match not found",
            detail=f"tournament match '{match_id}' not found",
            code="tournament_match_not_found",
        )


class TournamentGroupNotFound(DomainException):
    def __init__(self, group_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Tournament group not found",
            detail=f"group '{group_id}' not found",
            code="tournament_group_not_found",
        )


class InvalidMatchResult(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=409,
            title="Invalid match result",
            detail=detail,
            code="tournament_invalid_result",
        )


class MatchNotFinished(DomainException):
    def __init__(self) -> None:
        super().__init__(
            status_code=409,
            title="Match not finished",
            detail="match has no winner yet",
            code="match_not_finished",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
