"""
Client navigation driven from the server.

The guard only knows a navigate(path) capability. Navigator keeps the route
history and pushes every navigation to the connected WebSocket clients so
the front end can follow.
"""

import asyncio
from typing import Optional

from fastapi import WebSocket

from .lock.routes import LOCK_SCREEN_PATH
from .logging import get_logger

logger = get_logger("navigation")


class Navigator:
    """Route history plus a broadcast channel to attached clients."""

    def __init__(self, initial: str = "/", lock_screen_path: str = LOCK_SCREEN_PATH):
        self._history: list[str] = [initial]
        self._lock_screen_path = lock_screen_path
        self._lock_origin: Optional[str] = None
        self._clients: list[WebSocket] = []
        self._pending: set[asyncio.Task] = set()

    @property
    def current(self) -> str:
        return self._history[-1]

    @property
    def history(self) -> list[str]:
        return list(self._history)

    @property
    def lock_origin(self) -> Optional[str]:
        """Route that was showing when the lock screen opened."""
        return self._lock_origin

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def navigate(self, path: str) -> None:
        if path == self._lock_screen_path and self.current != path:
            self._lock_origin = self.current
        self._history.append(path)
        logger.info(f"Navigate -> {path}", extra={"route": path})
        self._notify({"type": "navigate", "path": path})

    def return_from_lock(self) -> str:
        """
        Leave the lock screen for the route it interrupted.

        Routes visited while locked (sign-out, sign-in) do not count. Without
        a recorded origin the first route of the history is used.
        """
        path = self._lock_origin or self._history[0]
        self._lock_origin = None
        self.navigate(path)
        return path

    def attach(self, websocket: WebSocket) -> None:
        self._clients.append(websocket)

    def detach(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)

    def _notify(self, message: dict) -> None:
        if not self._clients:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # No loop, nobody to push to
        task = loop.create_task(self.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def broadcast(self, message: dict) -> None:
        """Send a message to every attached client, dropping the ones that went away."""
        disconnected = []
        for ws in list(self._clients):
            try:
                await ws.send_json(message)
            except Exception:
                disconnected.append(ws)
        for ws in disconnected:
            self.detach(ws)
