import os
from pathlib import Path
from typing import Dict, Final

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

# Settings padrão
DEFAULT_ENABLED: Final[bool] = True
DEFAULT_VOLUME: Final[float] = 0.7
DEFAULT_MAX_CONCURRENT_SOUNDS: Final[int] = 3
DEFAULT_PREVENT_REPEAT_MS: Final[int] = 2000
DEFAULT_CONTEXT_SENSITIVITY: Final[float] = 0.8
DEFAULT_AI_ANALYSIS_TIMEOUT_MS: Final[int] = 5000
DEFAULT_ENABLED_CATEGORIES: Final[Dict[str, bool]] = {
    "emotions": True,
    "actions": True,
    "ambient": True,
    "dialogue": True,
}

# Análise de contexto
SURROUNDING_WORDS_WINDOW: Final[int] = 10
ORACLE_CACHE_KEY_CHARS: Final[int] = 100
ORACLE_CACHE_MAX_ENTRIES: Final[int] = 500
ORACLE_PROMPT_MAX_CHARS: Final[int] = 1000

# Oráculo externo (vazio = desativado)
ORACLE_URL: Final[str] = os.environ.get("CONTEXT_SOUNDS_ORACLE_URL", "")
ORACLE_MODEL: Final[str] = os.environ.get("CONTEXT_SOUNDS_ORACLE_MODEL", "")

# Assets de áudio
SOUNDS_ASSETS_PATH: Final[Path] = Path(
    os.environ.get("CONTEXT_SOUNDS_ASSETS_PATH", str(BASE_DIR / "sounds" / "assets"))
)
SOUNDS_EXTRA_PATH: Final[str] = os.environ.get("CONTEXT_SOUNDS_EXTRA_PATH", "")
SOUNDS_URL_PREFIX: Final[str] = "/sounds"

# Frase usada pelo botão de teste
SAMPLE_TEST_TEXT: Final[str] = "She laughed at the joke and walked to the door."

# Sessões
SESSION_TIMEOUT_MINUTES: Final[int] = 10
SESSION_CLEANUP_INTERVAL_SECONDS: Final[int] = 60
MAX_SESSIONS: Final[int] = int(os.environ.get("MAX_SESSIONS", 50))

# Mensagens WebSocket
MAX_MESSAGE_CHARS: Final[int] = 16384

# Debug endpoints (secret header para proteger /api/sessions/status)
# Vazio = sem proteção (dev mode).
DEBUG_API_SECRET: Final[str] = os.environ.get("DEBUG_API_SECRET", "")

WS_CLOSE_CODES: Final[Dict[str, int]] = {
    "session_invalid": 4003,
    "max_sessions": 4008,
    "internal_error": 1011,
}
