import json
from typing import Any, Dict, Optional

from .config import MAX_MESSAGE_CHARS


def make_message(message_type: str, payload: Optional[Dict[str, Any]] = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "type": message_type,
        "payload": payload or {}
    }
    if meta:
        message["meta"] = meta
    return message


# Tipos de mensagem válidos que o servidor aceita
VALID_CLIENT_MESSAGE_TYPES = frozenset({"init", "message", "settings", "test"})
# Margem para o envelope JSON em volta do conteúdo
_MAX_RAW_MESSAGE_SIZE = MAX_MESSAGE_CHARS + 1024


def parse_message(raw: str) -> Optional[Dict[str, Any]]:
    # Proteção contra mensagens excessivamente grandes
    if len(raw) > _MAX_RAW_MESSAGE_SIZE:
        return None

    try:
        data = json.loads(raw)
    except ValueError:
        return None

    # Validação de schema básica
    if not isinstance(data, dict):
        return None

    message_type = data.get("type")
    if not isinstance(message_type, str) or message_type not in VALID_CLIENT_MESSAGE_TYPES:
        return None

    payload = data.get("payload")
    if payload is not None and not isinstance(payload, dict):
        return None

    meta = data.get("meta")
    if meta is not None and not isinstance(meta, dict):
        meta = {}

    if payload is None:
        payload = {}
        # Formato antigo: campos no nível raiz
        for key in ("publicId", "owner", "content"):
            if key in data and isinstance(data[key], str):
                payload[key] = data[key]

    return {
        "type": message_type,
        "payload": payload,
        "meta": meta or {}
    }
