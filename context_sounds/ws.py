from fastapi import WebSocket, WebSocketDisconnect

from .sessions import SessionManager
from .ws_messages import make_message, parse_message
from .ws_handlers import handle_chat_message, handle_settings, handle_test
from .config import WS_CLOSE_CODES
from .logger import get_logger

logger = get_logger("ws")

_HANDLERS = {
    "message": handle_chat_message,
    "settings": handle_settings,
    "test": handle_test,
}


async def websocket_endpoint(ws: WebSocket, session_manager: SessionManager):
    """Endpoint WebSocket - gerencia conexões de clientes"""
    await ws.accept()
    logger.debug("WebSocket accepted")

    session = None
    public_id = None

    try:
        # Aguarda mensagem inicial com publicId
        message = parse_message(await ws.receive_text())
        if not message or message["type"] != "init":
            logger.error("Expected valid 'init' message")
            await ws.send_json(make_message("error", {"message": "Primeiro envie mensagem 'init'"}))
            await ws.close(code=WS_CLOSE_CODES["session_invalid"], reason="init_required")
            return

        public_id = message["payload"].get("publicId")
        if not public_id:
            logger.error("No publicId provided in init message")
            await ws.send_json(make_message("error", {"message": "publicId obrigatório"}))
            await ws.close(code=WS_CLOSE_CODES["session_invalid"], reason="public_id_required")
            return

        session, status, is_valid = session_manager.get_or_create_session(public_id, message["payload"].get("owner"))
        if not is_valid:
            logger.error(f"Session validation failed: {status}")
            await ws.send_json(make_message("session_invalid", {"reason": status}))
            close_code = WS_CLOSE_CODES["max_sessions"] if status == "max_sessions" else WS_CLOSE_CODES["session_invalid"]
            await ws.close(code=close_code, reason=status)
            return

        session.add_websocket(ws)
        await session.ensure_initialized()

        await ws.send_json(make_message("init_ok", {
            "publicId": public_id,
            "owner": session.owner_token,
            "status": status,
            "settings": session.settings.snapshot().to_dict(),
        }))

        # Loop de mensagens
        while True:
            raw = await ws.receive_text()
            message = parse_message(raw)
            if not message or message["type"] not in _HANDLERS:
                logger.warning(f"Session {public_id}: Invalid message ignored")
                await ws.send_json(make_message("error", {"message": "Mensagem inválida"}))
                continue

            logger.debug(f"Session {public_id}: Received '{message['type']}' message")
            await _HANDLERS[message["type"]](session, ws, message["payload"])

    except WebSocketDisconnect as e:
        logger.info(f"Session {public_id}: WebSocket disconnected (code: {e.code})")
    finally:
        # Remove cliente da sessão
        if session:
            session.remove_websocket(ws)
            logger.info(f"Session {public_id}: WebSocket removed, {len(session.websocket_clients)} clients remaining")
