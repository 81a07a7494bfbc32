from fastapi import APIRouter, Path

from ..schemas import CheckoutEvaluateIn, CheckoutEvaluateOut, CheckoutSuggestionOut
from ..scoring import checkout

router = APIRouter(prefix="/checkouts", tags=["checkouts"])


@router.post("/evaluate", response_model=CheckoutEvaluateOut)
async def evaluate_visit(body: CheckoutEvaluateIn) -> CheckoutEvaluateOut:
    """Classify a visit without touching any match state."""
    darts = [d.model_dump() for d in body.darts] if body.darts is not None else None
    outcome = checkout.evaluate(
        body.remaining,
        body.score,
        darts=darts,
        finished_on_double=body.finishedOnDouble,
    )
    if outcome in (checkout.CONTINUE, checkout.CHECKOUT):
        remaining = body.remaining - body.score
    else:
        remaining = body.remaining
    if outcome == checkout.REJECTED:
        attempts, hits = 0, 0
    else:
        attempts, hits = checkout.count_double_attempts(body.remaining, outcome, darts)
    return CheckoutEvaluateOut(
        outcome=outcome,
        remaining=remaining,
        doubleAttempts=attempts,
        doubleHits=hits,
    )


@router.get("/{remaining}", response_model=CheckoutSuggestionOut)
async def suggest_checkout(remaining: int = Path(..., ge=0, le=501)) -> CheckoutSuggestionOut:
    return CheckoutSuggestionOut(
        remaining=remaining, darts=checkout.checkout_suggestion(remaining)
    )
