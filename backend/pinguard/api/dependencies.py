"""FastAPI dependencies resolving the objects mounted by the app lifespan."""

from fastapi import HTTPException, Request

from ..lock import ActivityHub, GuardNotInitializedError, SessionGuard, StepUpVerifier, use_guard
from ..navigation import Navigator


def get_guard(request: Request) -> SessionGuard:
    try:
        return use_guard(getattr(request.app.state, "guard_provider", None))
    except GuardNotInitializedError as e:
        raise HTTPException(status_code=503, detail=str(e))


def get_navigator(request: Request) -> Navigator:
    return request.app.state.navigator


def get_activity(request: Request) -> ActivityHub:
    return request.app.state.activity


def get_verifier(request: Request) -> StepUpVerifier:
    return request.app.state.verifier
