"""API endpoints for the auth signal, activity events and route checks."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..lock import ACTIVITY_EVENTS, LOGIN_PATH, ActivityHub, SessionGuard, resolve_route
from ..logging import get_logger
from ..navigation import Navigator
from .dependencies import get_activity, get_guard, get_navigator

logger = get_logger("api.session")

router = APIRouter(prefix="/session", tags=["session"])


class ActivityRequest(BaseModel):
    event: str


@router.post("/start")
async def start_session(guard: SessionGuard = Depends(get_guard)):
    """Called by the auth layer once the user has signed in."""
    guard.set_authenticated(True)
    logger.info("Authenticated session started")
    return {"is_authenticated": True, "state": guard.state.value}


@router.post("/end")
async def end_session(
    guard: SessionGuard = Depends(get_guard),
    navigator: Navigator = Depends(get_navigator),
):
    """Called on sign-out. Stops activity tracking and returns to the login page."""
    guard.set_authenticated(False)
    navigator.navigate(LOGIN_PATH)
    logger.info("Authenticated session ended")
    return {"is_authenticated": False, "redirect": LOGIN_PATH}


@router.post("/activity")
async def record_activity(
    request: ActivityRequest,
    activity: ActivityHub = Depends(get_activity),
):
    """Relay a user interaction from the client."""
    if request.event not in ACTIVITY_EVENTS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown activity event '{request.event}'",
        )
    delivered = activity.emit(request.event)
    return {"recorded": delivered > 0}


@router.get("/route")
async def check_route(
    path: str,
    guard: SessionGuard = Depends(get_guard),
):
    """Where the client may go: the requested path or a redirect."""
    decision = resolve_route(
        path,
        is_authenticated=guard.is_authenticated,
        is_pin_set=guard.is_pin_set,
        is_locked=guard.is_locked,
    )
    return {
        "path": decision.path,
        "allowed": decision.allowed,
        "redirect": decision.redirect,
        "origin": decision.origin,
    }
