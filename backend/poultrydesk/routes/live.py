# Overview: WebSocket endpoint for live updates; one connection per open client.

from flask import Blueprint, request, current_app
from simple_websocket import ConnectionClosed

from ..broadcast import get_hub
from ..extensions import sock
from ..services import session_service


live_bp = Blueprint("live", __name__)


@sock.route("/ws", bp=live_bp)
def live_updates(ws):
    """
    Lifecycle: connecting -> open -> closed.

    Auth is ?token=<session token>. Once registered, the hub is the only
    writer; this handler just reads until the client goes away, then
    unregisters. Inbound frames are ignored.
    """
    context = session_service.validate_session(request.args.get("token", ""))
    if context is None:
        ws.close(reason=1008, message="Invalid or expired token")
        return

    hub = get_hub()
    hub.register(ws, context.user_id)
    current_app.logger.info("Live connection opened user_id=%s", context.user_id)
    try:
        while True:
            ws.receive()
    except ConnectionClosed:
        pass
    finally:
        hub.unregister(ws)
        current_app.logger.info("Live connection closed user_id=%s", context.user_id)
