"""Match simulation API endpoints."""

import time
from typing import Dict
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Query

from cricsim.schemas.match import (
    AdvanceRequest,
    AdvanceResponse,
    CreateMatchRequest,
    CreateMatchResponse,
    InningsSummary,
    MatchResultResponse,
    MatchSnapshot,
    TransitionResponse,
)
from cricsim.engine.match_engine import MatchEngine
from cricsim.errors import MatchDataError, PreconditionError
from cricsim.logging_config import api_logger, generate_request_id, summarize_snapshot

router = APIRouter()

# Live matches, keyed by match id
_matches: Dict[str, MatchEngine] = {}


def get_match(match_id: str) -> MatchEngine:
    """Look up a live match or fail with 404."""
    engine = _matches.get(match_id)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")
    return engine


def _simulation_error(exc: Exception, event_type: str, request_id: str, match_id: str) -> HTTPException:
    """Log a simulation failure and translate it for the client."""
    api_logger.log_analytics_event(
        event_type=event_type,
        data={"error": str(exc), "error_type": type(exc).__name__},
        request_id=request_id,
        match_id=match_id,
    )
    status = 400 if isinstance(exc, PreconditionError) else 500
    return HTTPException(status_code=status, detail=str(exc))


def _rejected(action: str, engine: MatchEngine) -> HTTPException:
    snapshot = engine.state.snapshot()
    return HTTPException(
        status_code=409,
        detail=f"{action} not allowed in innings {snapshot.innings_number} at {snapshot.score}/{snapshot.wickets}",
    )


@router.post("", response_model=CreateMatchResponse)
async def create_match(request: CreateMatchRequest):
    """
    Start a new match.

    Conditions are drawn at random from the match seed when not supplied.
    """
    request_id = generate_request_id()
    match_id = str(uuid4())

    try:
        engine = MatchEngine.create(
            home=request.home,
            away=request.away,
            batting_first_id=request.batting_first_id,
            config=request.config,
            conditions=request.conditions.model_copy() if request.conditions else None,
            seed=request.seed,
        )
    except (PreconditionError, MatchDataError) as e:
        raise _simulation_error(e, "match_create_error", request_id, match_id)

    _matches[match_id] = engine
    api_logger.log_analytics_event(
        event_type="match_created",
        data={
            "format": request.config.format,
            "home": request.home.id,
            "away": request.away.id,
            "batting_first": request.batting_first_id,
            "seed": request.seed,
        },
        request_id=request_id,
        match_id=match_id,
    )

    return CreateMatchResponse(
        match_id=match_id,
        conditions=engine.state.conditions,
        snapshot=engine.state.snapshot(),
    )


@router.get("/{match_id}", response_model=MatchSnapshot)
async def get_snapshot(match_id: str):
    """Current state of a match."""
    return get_match(match_id).state.snapshot()


@router.post("/{match_id}/advance", response_model=AdvanceResponse)
async def advance_match(match_id: str, request: AdvanceRequest):
    """
    Bowl deliveries up to the requested boundary.

    Each call bowls at most the configured fast-forward limit; call again to
    continue.
    """
    engine = get_match(match_id)
    request_id = generate_request_id()
    start_time = time.time()

    try:
        snapshot = engine.state.snapshot()
        for snapshot in engine.advance(max_balls=request.max_balls, until=request.until):
            pass
    except (PreconditionError, MatchDataError) as e:
        raise _simulation_error(e, "advance_error", request_id, match_id)

    deliveries = list(engine.deliveries)
    duration_ms = (time.time() - start_time) * 1000
    api_logger.log_analytics_event(
        event_type="match_advanced",
        data={
            **summarize_snapshot(snapshot.model_dump(mode="json")),
            "until": request.until.value,
            "deliveries": len(deliveries),
            "match_complete": snapshot.match_complete,
            "duration_ms": round(duration_ms, 2),
        },
        request_id=request_id,
        match_id=match_id,
    )

    return AdvanceResponse(deliveries=deliveries, snapshot=snapshot)


@router.post("/{match_id}/innings/next", response_model=TransitionResponse)
async def next_innings(match_id: str):
    """Start the next innings once the current one is complete."""
    engine = get_match(match_id)
    request_id = generate_request_id()

    try:
        accepted = engine.next_innings()
    except (PreconditionError, MatchDataError) as e:
        raise _simulation_error(e, "next_innings_error", request_id, match_id)

    if not accepted:
        raise _rejected("Next innings", engine)
    return TransitionResponse(accepted=True, snapshot=engine.state.snapshot())


@router.post("/{match_id}/declare", response_model=TransitionResponse)
async def declare(match_id: str):
    """Declare the batting side's innings closed (Test matches only)."""
    engine = get_match(match_id)
    if not engine.state.declare_innings():
        raise _rejected("Declaration", engine)

    api_logger.log_analytics_event(
        event_type="innings_declared",
        data={"innings": engine.state.innings_number, "score": engine.state.ledger.score},
        match_id=match_id,
    )
    return TransitionResponse(accepted=True, snapshot=engine.state.snapshot())


@router.post("/{match_id}/follow-on", response_model=TransitionResponse)
async def follow_on(match_id: str):
    """Enforce the follow-on and send the trailing side back in."""
    engine = get_match(match_id)
    request_id = generate_request_id()

    if not engine.state.enforce_follow_on():
        raise _rejected("Follow-on", engine)
    try:
        engine.next_innings()
    except (PreconditionError, MatchDataError) as e:
        raise _simulation_error(e, "follow_on_error", request_id, match_id)
    return TransitionResponse(accepted=True, snapshot=engine.state.snapshot())


@router.get("/{match_id}/summary", response_model=InningsSummary)
async def innings_summary(match_id: str, top: int = Query(3, ge=1, le=11)):
    """Scorecard summary of the current innings with top performers."""
    return get_match(match_id).state.innings_summary(top_n=top)


@router.get("/{match_id}/result", response_model=MatchResultResponse)
async def match_result(match_id: str):
    """Result of the match, once it is complete."""
    state = get_match(match_id).state
    result = state.determine_match_result()
    return MatchResultResponse(complete=result is not None, result=result)
