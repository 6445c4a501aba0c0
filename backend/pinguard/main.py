"""
FastAPI host for the PIN lock.

Provides REST and WebSocket endpoints for the front end: PIN management,
the auth signal, activity relays, and server-driven navigation to the lock
screen.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .api.pin import router as pin_router
from .api.session import router as session_router
from .config import GuardConfig
from .lock import (
    ACTIVITY_EVENTS,
    ActivityHub,
    Clock,
    GuardProvider,
    JsonFileStorage,
    KeyValueStorage,
    LayeredStorage,
    PinHasher,
    SessionGuard,
    StepUpVerifier,
    SystemClock,
)
from .logging import get_logger
from .navigation import Navigator

logger = get_logger("main")


def build_storage(config: GuardConfig) -> KeyValueStorage:
    """
    Primary JSON file, optionally mirrored into a second file.

    Strict unless memory_fallback is set: a write no file accepted raises
    StorageError instead of pretending the value was saved.
    """
    fallback = None
    if config.fallback_storage_path:
        fallback = JsonFileStorage(config.fallback_storage_path)
    return LayeredStorage(
        JsonFileStorage(config.storage_path),
        fallback,
        strict=not config.memory_fallback,
    )


def create_app(
    config: Optional[GuardConfig] = None,
    *,
    clock: Optional[Clock] = None,
    hasher: Optional[PinHasher] = None,
    storage: Optional[KeyValueStorage] = None,
) -> FastAPI:
    """Build the app. Collaborators can be injected for tests."""
    config = config or GuardConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Mount the guard for the lifetime of the app."""
        app_clock = clock or SystemClock()
        app_storage = storage or build_storage(config)
        navigator = Navigator(lock_screen_path=config.lock_screen_path)
        activity = ActivityHub()
        guard = SessionGuard(
            storage=app_storage,
            navigate=navigator.navigate,
            clock=app_clock,
            activity=activity,
            hasher=hasher,
            default_timeout_ms=config.inactivity_timeout_ms,
            check_interval_ms=config.check_interval_ms,
            lock_screen_path=config.lock_screen_path,
        )

        app.state.config = config
        app.state.navigator = navigator
        app.state.activity = activity
        app.state.verifier = StepUpVerifier(guard, app_storage, app_clock)

        logger.info(f"Starting pinguard (storage: {config.storage_path})")
        async with GuardProvider(guard) as provider:
            app.state.guard_provider = provider
            yield
        app.state.guard_provider = None
        logger.info("Shutting down...")

    app = FastAPI(
        title="pinguard",
        description="PIN lock and inactivity guard for the savings app",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS for the front end (allow all 3000-range ports for local dev)
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=config.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(pin_router)
    app.include_router(session_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    @app.websocket("/ws/navigation")
    async def navigation_stream(websocket: WebSocket):
        """
        Push navigations to the client and take activity events from it.

        Clients receive a snapshot on connect, then {"type": "navigate"}
        messages. They send {"type": "activity", "event": "mousemove"} to
        keep the session alive.
        """
        await websocket.accept()
        navigator: Navigator = websocket.app.state.navigator
        activity: ActivityHub = websocket.app.state.activity
        guard = websocket.app.state.guard_provider.guard
        navigator.attach(websocket)

        try:
            await websocket.send_json({
                "type": "snapshot",
                "path": navigator.current,
                "state": guard.state.value,
                "is_locked": guard.is_locked,
            })

            while True:
                data = await websocket.receive_json()
                if data.get("type") == "activity" and data.get("event") in ACTIVITY_EVENTS:
                    activity.emit(data["event"])

        except WebSocketDisconnect:
            navigator.detach(websocket)
        except Exception:
            navigator.detach(websocket)

    return app


app = create_app()
