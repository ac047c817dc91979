# Overview: Live-update hub; one thread owns every open connection and fans out domain events.

"""
Broadcast Hub

WHY: Request threads and WebSocket threads all want to touch the set of
live connections. Instead of sharing a dict behind a lock, a single
worker thread owns the registry and everybody else talks to it through a
command queue. No other thread ever reads or mutates the registry.

DELIVERY:
- Events are scoped to the owning tenant (user_id). user_id=None reaches
  every connection (system-wide announcements).
- Best-effort, at-most-once, no retry. A connection whose send fails is
  dropped (and closed); the rest still receive the event.

A connection is anything with send(str) and close() (flask-sock's
simple_websocket.Server in production, fakes in tests).
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any

from flask import current_app

logger = logging.getLogger(__name__)


@dataclass
class _Command:
    op: str
    conn: Any = None
    user_id: int | None = None
    message: str | None = None
    reply: queue.Queue | None = field(default=None, repr=False)


class BroadcastHub:
    def __init__(self):
        self._commands: queue.Queue[_Command] = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="broadcast-hub", daemon=True)
        self._thread.start()

    # ------------------------------------------------------------------
    # Public API (safe from any thread)
    # ------------------------------------------------------------------

    def register(self, conn, user_id: int | None) -> None:
        self._commands.put(_Command("register", conn=conn, user_id=user_id))

    def unregister(self, conn) -> None:
        self._commands.put(_Command("unregister", conn=conn))

    def broadcast(self, message: str, user_id: int | None = None) -> None:
        """Queue a raw text frame. Returns immediately."""
        self._commands.put(_Command("broadcast", message=message, user_id=user_id))

    def publish(self, event_type: str, category: str, payload: Any, user_id: int | None = None) -> None:
        """Serialize a domain event and queue it for delivery."""
        message = json.dumps(
            {"type": event_type, "data": {"category": category, "payload": payload}},
            default=str,
        )
        self.broadcast(message, user_id=user_id)

    def connection_count(self, user_id: int | None = None, timeout: float = 5.0) -> int:
        """
        Number of registered connections (for one tenant, or all).

        Blocks until the hub has processed every command queued before it,
        which also makes it a convenient barrier in tests.
        """
        reply: queue.Queue = queue.Queue(maxsize=1)
        self._commands.put(_Command("count", user_id=user_id, reply=reply))
        return reply.get(timeout=timeout)

    def stop(self, timeout: float = 5.0) -> None:
        self._commands.put(_Command("stop"))
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    # ------------------------------------------------------------------
    # Worker (owns the registry)
    # ------------------------------------------------------------------

    def _run(self) -> None:
        registry: dict[Any, int | None] = {}

        while True:
            cmd = self._commands.get()

            if cmd.op == "register":
                registry[cmd.conn] = cmd.user_id

            elif cmd.op == "unregister":
                registry.pop(cmd.conn, None)

            elif cmd.op == "broadcast":
                self._deliver(registry, cmd.message, cmd.user_id)

            elif cmd.op == "count":
                if cmd.user_id is None:
                    cmd.reply.put(len(registry))
                else:
                    cmd.reply.put(sum(1 for uid in registry.values() if uid == cmd.user_id))

            elif cmd.op == "stop":
                for conn in list(registry):
                    _close_quietly(conn)
                registry.clear()
                return

    def _deliver(self, registry: dict, message: str, user_id: int | None) -> None:
        targets = [
            conn for conn, owner in registry.items()
            if user_id is None or owner == user_id
        ]
        for conn in targets:
            try:
                conn.send(message)
            except Exception as exc:
                # Drop only this connection; keep delivering to the rest
                logger.warning("Dropping live connection after send failure: %s", exc)
                registry.pop(conn, None)
                _close_quietly(conn)


def _close_quietly(conn) -> None:
    try:
        conn.close()
    except Exception as exc:
        logger.debug("Error closing live connection: %s", exc)


def get_hub() -> BroadcastHub:
    """The hub attached to the current app by create_app."""
    return current_app.extensions["broadcast_hub"]


def publish_event(event_type: str, category: str, payload: Any, user_id: int | None = None) -> None:
    """Fire-and-forget helper for services running inside an app context."""
    get_hub().publish(event_type, category, payload, user_id=user_id)
