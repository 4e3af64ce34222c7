"""
ws_handlers.py - Handlers de mensagens WebSocket
"""
from fastapi import WebSocket
from pydantic import ValidationError

from .sessions.session import SoundSession
from .ws_messages import make_message
from .config import MAX_MESSAGE_CHARS, SAMPLE_TEST_TEXT
from .logger import get_logger

logger = get_logger("ws_handlers")


async def handle_chat_message(session: SoundSession, ws: WebSocket, payload: dict) -> None:
    """Processa uma mensagem de chat recebida pelo cliente"""
    content = payload.get("content", "")
    if not isinstance(content, str) or not content.strip():
        await ws.send_json(make_message("error", {"message": "Campo 'content' obrigatório"}))
        return

    if len(content) > MAX_MESSAGE_CHARS:
        logger.warning(f"Session {session.public_id}: Message too long ({len(content)} chars), truncated")
        content = content[:MAX_MESSAGE_CHARS]

    triggered = await session.process_message(content)
    await ws.send_json(make_message("triggered", {"sounds": sorted(triggered)}))


async def handle_test(session: SoundSession, ws: WebSocket, payload: dict) -> None:
    """Processa o pedido de som de teste (frase padrão se vazio)"""
    content = payload.get("content") or SAMPLE_TEST_TEXT
    await handle_chat_message(session, ws, {"content": content})


async def handle_settings(session: SoundSession, ws: WebSocket, payload: dict) -> None:
    """Aplica mudanças de settings enviadas pelo cliente"""
    try:
        settings = session.update_settings(payload)
    except ValidationError as e:
        logger.warning(f"Session {session.public_id}: Invalid settings: {e.error_count()} errors")
        await ws.send_json(make_message("error", {
            "message": "Settings inválidas",
            "details": [err.get("msg") for err in e.errors()],
        }))
        return

    # Reativar o engine inicializa o áudio se necessário
    await session.ensure_initialized()
    await ws.send_json(make_message("settings", settings.to_dict()))
