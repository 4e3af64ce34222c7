"""
SoundSession - Representa a sessão de sons de um cliente
Encapsula settings, estado do engine e clientes WebSocket
"""
import secrets
from datetime import datetime
from typing import Optional, Set

from fastapi import WebSocket

from ..sounds import (
    AssetSource,
    EventAudioBackend,
    Settings,
    SettingsStore,
    SoundCatalog,
    TextScoringOracle,
    build_scheduler,
)
from ..logger import get_logger

logger = get_logger("session")


class SoundSession:
    """Sessão de sons de um cliente (um scheduler e um estado por sessão)"""

    def __init__(
        self,
        public_id: str,
        catalog: SoundCatalog,
        assets: AssetSource,
        oracle: Optional[TextScoringOracle] = None,
        settings: Optional[Settings] = None,
    ):
        self.public_id = public_id
        self.owner_token = secrets.token_urlsafe(32)  # Prova de propriedade (secreto)
        self.websocket_clients: Set[WebSocket] = set()
        self.last_activity = datetime.now()
        self.settings = SettingsStore(settings)
        self.backend = EventAudioBackend(emit=self.broadcast_message)
        self.scheduler = build_scheduler(
            catalog=catalog,
            backend=self.backend,
            assets=assets,
            settings=self.settings,
            oracle=oracle,
        )

        logger.info(f"Session created: {public_id} (owner: {self.owner_token[:8]}...)")

    def touch(self):
        """Atualiza timestamp da última atividade"""
        self.last_activity = datetime.now()

    def add_websocket(self, ws: WebSocket):
        """Adiciona um cliente WebSocket a esta sessão"""
        self.websocket_clients.add(ws)
        self.touch()
        logger.debug(f"Session {self.public_id}: WebSocket added (total: {len(self.websocket_clients)})")

    def remove_websocket(self, ws: WebSocket):
        """Remove um cliente WebSocket desta sessão"""
        if ws in self.websocket_clients:
            self.websocket_clients.remove(ws)
            logger.debug(f"Session {self.public_id}: WebSocket removed (remaining: {len(self.websocket_clients)})")

    def has_clients(self) -> bool:
        """Verifica se a sessão tem clientes conectados"""
        return len(self.websocket_clients) > 0

    async def broadcast_message(self, message: dict):
        """Envia mensagem para todos os clientes desta sessão"""
        disconnected_clients = []

        for ws in list(self.websocket_clients):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning(f"Session {self.public_id}: Failed to send message to client, marking for removal: {e}")
                disconnected_clients.append(ws)

        # Remove clientes desconectados
        for ws in disconnected_clients:
            self.remove_websocket(ws)

    async def ensure_initialized(self):
        """Inicializa o áudio se o engine estiver ativo e ainda não inicializado"""
        if self.settings.snapshot().enabled and not self.scheduler.initialized:
            logger.info(f"Session {self.public_id}: Initializing audio")
            await self.scheduler.initialize()

    async def process_message(self, text: str) -> Set[str]:
        """Roda o engine para uma mensagem de chat"""
        self.touch()
        triggered = await self.scheduler.handle_message(text)
        if triggered:
            logger.info(f"Session {self.public_id}: Triggered {sorted(triggered)}")
        return triggered

    def update_settings(self, changes: dict) -> Settings:
        """Aplica mudanças parciais de settings (levanta ValidationError)"""
        self.touch()
        settings = self.settings.update(changes)
        logger.info(f"Session {self.public_id}: Settings updated ({', '.join(sorted(changes))})")
        return settings
