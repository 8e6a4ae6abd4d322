"""
ScriptMenu WebSocket Routes.

Pushes the command tree to menu clients. Every client gets the full tree
when it connects and again after each pass that changed it, tagged with a
revision number so a client can tell whether it missed an update.
Requires Python 3.11+.
"""

import asyncio
import json
import time
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.dependencies import get_synchronizer
from commands.synchronizer import SyncStats
from utils.logger import get_logger

router = APIRouter()
logger = get_logger("api.websocket")

HEARTBEAT_SECONDS = 30.0


class CommandFeed:
    """
    Menu clients subscribed to command tree changes.

    Only touched from the event loop; synchronization passes on other
    threads hand their updates over with ``asyncio.run_coroutine_threadsafe``.
    """

    def __init__(self) -> None:
        self._clients: list[WebSocket] = []
        self._revision = 0

    @property
    def revision(self) -> int:
        """Number of tree changes published so far."""
        return self._revision

    @property
    def subscribers(self) -> int:
        return len(self._clients)

    async def subscribe(self, websocket: WebSocket, tree: dict[str, Any] | None) -> None:
        """Accept a client and send it the tree it should start from."""
        await websocket.accept()
        self._clients.append(websocket)
        logger.info("menu_client_connected", subscribers=len(self._clients))
        await _send(websocket, {
            "type": "connected",
            "revision": self._revision,
            "tree": tree,
        })

    def unsubscribe(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)
            logger.info("menu_client_disconnected", subscribers=len(self._clients))

    async def publish(self, stats: SyncStats, tree: dict[str, Any]) -> int:
        """
        Send a changed tree to every client.

        Args:
            stats: Changes made by the pass
            tree: Tree snapshot taken after the pass

        Returns:
            Number of clients that received the update
        """
        self._revision += 1
        message = {
            "type": "commands_updated",
            "revision": self._revision,
            "added": stats.added,
            "removed": stats.removed,
            "tree": tree,
        }

        delivered = 0
        for client in list(self._clients):
            if await _send(client, message):
                delivered += 1
            else:
                self.unsubscribe(client)

        logger.debug("commands_update_published", revision=self._revision, delivered=delivered)
        return delivered


async def _send(websocket: WebSocket, message: dict[str, Any]) -> bool:
    try:
        await websocket.send_text(json.dumps(message))
    except Exception as e:
        logger.warning("menu_client_send_failed", error=str(e))
        return False
    return True


feed = CommandFeed()


@router.websocket("")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for menu clients.

    Clients receive:
    - connected, with the current tree
    - commands_updated after every pass that changed the tree
    - Heartbeat messages (every 30s)
    """
    synchronizer = get_synchronizer()
    tree = await asyncio.to_thread(synchronizer.snapshot) if synchronizer else None
    await feed.subscribe(websocket, tree)

    try:
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                await _send(websocket, {"type": "heartbeat", "timestamp": time.time()})
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await _send(websocket, {"type": "error", "message": "Invalid JSON"})
                continue

            msg_type = message.get("type", "") if isinstance(message, dict) else ""
            if msg_type == "ping":
                await _send(websocket, {"type": "pong", "revision": feed.revision})
            else:
                await _send(websocket, {
                    "type": "error",
                    "message": f"Unknown message type: {msg_type}",
                })

    except WebSocketDisconnect:
        feed.unsubscribe(websocket)
    except Exception as e:
        logger.error("websocket_error", error=str(e))
        feed.unsubscribe(websocket)
