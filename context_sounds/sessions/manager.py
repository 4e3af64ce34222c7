"""
SessionManager - Gerencia múltiplas sessões de sons
Responsável por criar, recuperar e limpar sessões
"""
import asyncio
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from .session import SoundSession
from ..sounds import AssetSource, FileAssetSource, SoundCatalog, TextScoringOracle, build_oracle, load_catalog
from ..config import MAX_SESSIONS, SESSION_CLEANUP_INTERVAL_SECONDS, SESSION_TIMEOUT_MINUTES
from ..logger import get_logger

logger = get_logger("session_manager")


class SessionManager:
    """Gerenciador de sessões de sons"""

    def __init__(
        self,
        catalog: Optional[SoundCatalog] = None,
        assets: Optional[AssetSource] = None,
        oracle: Optional[TextScoringOracle] = None,
        session_timeout_minutes: int = SESSION_TIMEOUT_MINUTES,
        max_sessions: int = MAX_SESSIONS,
    ):
        self.catalog = catalog or load_catalog()
        self.assets = assets or FileAssetSource()
        self.oracle = oracle if oracle is not None else build_oracle()
        self.sessions: Dict[str, SoundSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self.max_sessions = max_sessions
        self.cleanup_task: Optional[asyncio.Task] = None

        logger.info(
            f"SessionManager initialized (timeout: {session_timeout_minutes} min, "
            f"oracle: {'on' if self.oracle else 'off'})"
        )

    def get_or_create_session(self, public_id: str, owner_token: Optional[str] = None) -> Tuple[Optional[SoundSession], str, bool]:
        """Obtém uma sessão existente (validando owner) ou cria uma nova

        Returns:
            tuple[SoundSession, str, bool]: (session, status, is_valid)
            - status: "created" | "recovered" | "invalid_owner" | "max_sessions"
        """
        if public_id in self.sessions:
            session = self.sessions[public_id]

            if owner_token != session.owner_token:
                logger.warning(f"SECURITY: Invalid owner token for session {public_id}")
                return (None, "invalid_owner", False)

            logger.info(f"Session RECOVERED: {public_id}")
            session.touch()
            return (session, "recovered", True)

        if len(self.sessions) >= self.max_sessions:
            logger.warning(f"Session limit reached ({self.max_sessions}), rejecting {public_id}")
            return (None, "max_sessions", False)

        logger.info(f"Creating NEW session: {public_id}")
        session = SoundSession(public_id, self.catalog, self.assets, oracle=self.oracle)
        self.sessions[public_id] = session
        return (session, "created", True)

    def remove_session(self, public_id: str):
        """Remove uma sessão"""
        if self.sessions.pop(public_id, None) is not None:
            logger.info(f"Removing session: {public_id}")

    def cleanup_inactive_sessions(self, now: Optional[datetime] = None) -> int:
        """Remove sessões inativas (sem clientes e com timeout expirado)"""
        now = now or datetime.now()
        sessions_to_remove = [
            public_id
            for public_id, session in self.sessions.items()
            if not session.has_clients() and now - session.last_activity > self.session_timeout
        ]

        for public_id in sessions_to_remove:
            self.remove_session(public_id)

        if sessions_to_remove:
            logger.info(f"Cleaned up {len(sessions_to_remove)} inactive sessions")
        return len(sessions_to_remove)

    async def start_cleanup_task(self):
        """Inicia task de limpeza periódica"""
        if self.cleanup_task is None or self.cleanup_task.done():
            self.cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Cleanup task started")

    async def stop_cleanup_task(self):
        """Para a task de limpeza"""
        if self.cleanup_task and not self.cleanup_task.done():
            self.cleanup_task.cancel()
            try:
                await self.cleanup_task
            except asyncio.CancelledError:
                logger.info("Cleanup task stopped")

    async def _cleanup_loop(self):
        """Loop de limpeza periódica"""
        while True:
            try:
                await asyncio.sleep(SESSION_CLEANUP_INTERVAL_SECONDS)
                self.cleanup_inactive_sessions()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in cleanup loop: {e}")

    def get_session_count(self) -> int:
        """Retorna número de sessões ativas"""
        return len(self.sessions)

    def get_active_client_count(self) -> int:
        """Retorna número total de clientes WebSocket conectados"""
        return sum(len(session.websocket_clients) for session in self.sessions.values())
