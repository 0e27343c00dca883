import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from codecoach.api.v1.endpoints.sessions import SESSIONS
from codecoach.models.session import SessionState
from codecoach.utils.proctoring import EnvironmentEvent, EnvironmentSignal


router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/sessions/{session_id}/signals")
async def signals_ws(websocket: WebSocket, session_id: str) -> None:
    """
    Forward browser environment signals onto the session's signal bus.

    The socket lives as long as the quiz page does. When it drops while an
    attempt is running the learner has navigated away, so the attempt is
    abandoned and its timer and observers are released.
    """
    session = SESSIONS.get(session_id)
    if session is None:
        await websocket.close(code=1008)
        return
    await websocket.accept()
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            data = frame.get("text")
            if data is None:
                await websocket.send_json({"error": "invalid_message"})
                continue
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"error": "invalid_json"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"error": "invalid_message"})
                continue
            try:
                signal = EnvironmentSignal(message.get("signal"))
            except ValueError:
                await websocket.send_json({"error": "unsupported_signal"})
                continue
            session.touch()
            before = session.collector.warnings
            event = session.environment.emit(
                EnvironmentEvent(signal=signal, visibility=message.get("visibility"))
            )
            await websocket.send_json(
                {
                    "captured": session.collector.warnings > before,
                    "suppress": event.suppressed,
                    "warnings": session.collector.warnings,
                }
            )
    except WebSocketDisconnect:
        logger.debug("Signal socket closed", extra={"session_id": session_id})
        if session.state is SessionState.TAKING:
            session.return_to_authoring()
