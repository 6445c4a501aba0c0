"""API endpoints for PIN setup, lock/unlock and step-up verification."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..lock import (
    PinValidationError,
    SessionGuard,
    StepUpVerifier,
    StorageError,
)
from ..logging import get_logger
from ..navigation import Navigator
from .dependencies import get_guard, get_navigator, get_verifier

logger = get_logger("api.pin")

router = APIRouter(prefix="/pin", tags=["pin"])


# --- Request/Response Models ---

class PinSetupRequest(BaseModel):
    """Request to configure a PIN."""
    pin: str = Field(..., description="New PIN (min 4 digits)")
    confirm_pin: str = Field(..., description="Same PIN again")


class PinRequest(BaseModel):
    """Request carrying a PIN entry."""
    pin: str


class PinStatusResponse(BaseModel):
    """Current guard state."""
    state: str
    is_pin_set: bool
    is_locked: bool
    is_authenticated: bool
    inactivity_timeout: int


class UnlockResponse(BaseModel):
    success: bool
    redirect: str


class TimeoutSettingsRequest(BaseModel):
    timeout_ms: int = Field(..., gt=0, description="Inactivity timeout in milliseconds")


class TimeoutSettingsResponse(BaseModel):
    timeout_ms: int
    timeout_minutes: int
    options_minutes: list[int]


class StepUpSessionRequest(BaseModel):
    bypass_session: bool = False


class StepUpResponse(BaseModel):
    verified: bool
    error: Optional[str] = None
    failed_attempts: int = 0
    lockout_until: Optional[int] = None


def _status(guard: SessionGuard) -> PinStatusResponse:
    return PinStatusResponse(
        state=guard.state.value,
        is_pin_set=guard.is_pin_set,
        is_locked=guard.is_locked,
        is_authenticated=guard.is_authenticated,
        inactivity_timeout=guard.inactivity_timeout,
    )


def _settings(guard: SessionGuard, request: Request) -> TimeoutSettingsResponse:
    return TimeoutSettingsResponse(
        timeout_ms=guard.inactivity_timeout,
        timeout_minutes=guard.inactivity_timeout // (60 * 1000),
        options_minutes=list(request.app.state.config.timeout_options_minutes),
    )


# --- PIN lifecycle ---

@router.get("/status", response_model=PinStatusResponse)
async def get_pin_status(guard: SessionGuard = Depends(get_guard)):
    """Whether a PIN is configured and whether the session is locked."""
    return _status(guard)


@router.post("/setup", response_model=PinStatusResponse)
async def setup_pin(request: PinSetupRequest, guard: SessionGuard = Depends(get_guard)):
    """
    Configure (or change) the PIN.

    Rejected while the session is locked, so setup can't be used to bypass
    the lock screen.
    """
    if guard.is_locked:
        raise HTTPException(status_code=423, detail="Session is locked")
    if request.pin != request.confirm_pin:
        raise HTTPException(status_code=400, detail="PINs do not match")

    try:
        await guard.setup_pin(request.pin)
    except PinValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        logger.error(f"PIN setup failed: {e}")
        raise HTTPException(status_code=503, detail="PIN not saved")

    return _status(guard)


@router.post("/verify")
async def verify_pin(request: PinRequest, guard: SessionGuard = Depends(get_guard)):
    """Check a PIN without changing the lock state."""
    return {"valid": guard.verify_pin(request.pin)}


@router.post("/lock", response_model=PinStatusResponse)
async def lock_app(guard: SessionGuard = Depends(get_guard)):
    """Lock the session now. Does nothing when no PIN is configured."""
    guard.lock_app()
    return _status(guard)


@router.post("/unlock", response_model=UnlockResponse)
async def unlock_app(
    request: PinRequest,
    guard: SessionGuard = Depends(get_guard),
    navigator: Navigator = Depends(get_navigator),
):
    """Unlock with the PIN and send the client back where it was."""
    was_locked = guard.is_locked
    if not guard.unlock_app(request.pin):
        raise HTTPException(status_code=401, detail="Incorrect PIN. Please try again.")

    redirect = navigator.return_from_lock() if was_locked else navigator.current
    return UnlockResponse(success=True, redirect=redirect)


@router.delete("", response_model=PinStatusResponse)
async def clear_pin(
    guard: SessionGuard = Depends(get_guard),
    verifier: StepUpVerifier = Depends(get_verifier),
):
    """Remove the PIN and any step-up verification state."""
    try:
        await guard.clear_pin()
        await verifier.reset()
    except StorageError as e:
        logger.error(f"Clearing PIN failed: {e}")
        raise HTTPException(status_code=503, detail="PIN not cleared")
    return _status(guard)


# --- Settings ---

@router.get("/settings", response_model=TimeoutSettingsResponse)
async def get_settings(request: Request, guard: SessionGuard = Depends(get_guard)):
    return _settings(guard, request)


@router.put("/settings", response_model=TimeoutSettingsResponse)
async def update_settings(
    body: TimeoutSettingsRequest,
    request: Request,
    guard: SessionGuard = Depends(get_guard),
):
    """Change the inactivity timeout."""
    try:
        await guard.set_inactivity_timeout(body.timeout_ms)
    except StorageError as e:
        logger.error(f"Saving timeout failed: {e}")
        raise HTTPException(status_code=503, detail="Settings not saved")
    return _settings(guard, request)


# --- Step-up verification ---

@router.post("/step-up/session")
async def step_up_session(
    request: StepUpSessionRequest,
    verifier: StepUpVerifier = Depends(get_verifier),
):
    """Whether a recent confirmation lets the client skip the PIN prompt."""
    return {"active": await verifier.has_active_session(request.bypass_session)}


@router.post("/step-up", response_model=StepUpResponse)
async def step_up(
    request: PinRequest,
    guard: SessionGuard = Depends(get_guard),
    verifier: StepUpVerifier = Depends(get_verifier),
):
    """Confirm the PIN before a sensitive operation."""
    if not guard.is_pin_set:
        raise HTTPException(status_code=409, detail="No PIN configured")

    result = await verifier.submit(request.pin)
    return StepUpResponse(
        verified=result.verified,
        error=result.error,
        failed_attempts=result.failed_attempts,
        lockout_until=result.lockout_until,
    )
