"""
Colaboradores de áudio: leitura de assets, decodificação e playback.

O servidor não toca áudio localmente: EventAudioBackend emite eventos "sound"
para os clientes conectados, que tocam o asset no mixer do navegador.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import aiofiles

from .models import SoundEvent
from ..config import SOUNDS_ASSETS_PATH, SOUNDS_URL_PREFIX
from ..ws_messages import make_message
from ..logger import get_logger

logger = get_logger(__name__)


class AssetLoadError(Exception):
    """Falha de leitura ou decodificação de um asset."""


class PlaybackError(Exception):
    """Backend recusou o play."""


@dataclass(frozen=True)
class DecodedBuffer:
    sound_key: str
    asset: str
    format: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PlaybackHandle:
    playback_id: str
    asset: str
    volume: float
    started_at: datetime


def sniff_format(data: bytes) -> Optional[str]:
    """Identifica o container pelo cabeçalho."""
    if data.startswith(b"ID3"):
        return "mp3"
    if len(data) >= 2 and data[0] == 0xFF and (data[1] & 0xE0) == 0xE0:
        return "mp3"
    if data.startswith(b"OggS"):
        return "ogg"
    if data.startswith(b"RIFF") and data[8:12] == b"WAVE":
        return "wav"
    if data.startswith(b"fLaC"):
        return "flac"
    return None


class AssetSource(ABC):
    """Fonte de bytes brutos dos assets"""

    @abstractmethod
    async def read(self, asset: str) -> bytes:
        """Lê o asset (levanta AssetLoadError em caso de falha)"""
        pass


class FileAssetSource(AssetSource):
    """Lê assets de um diretório local"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or SOUNDS_ASSETS_PATH).resolve()

    async def read(self, asset: str) -> bytes:
        path = (self.root / asset).resolve()
        if self.root not in path.parents:
            raise AssetLoadError(f"Asset outside of assets directory: {asset}")
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise AssetLoadError(f"Could not read {path}: {e}") from e


class AudioBackend(ABC):
    """Decodifica buffers e toca no mixer"""

    @abstractmethod
    async def decode(self, sound_key: str, asset: str, raw: bytes) -> DecodedBuffer:
        pass

    @abstractmethod
    async def play(self, buffer: DecodedBuffer, volume: float, meta: Optional[Dict[str, Any]] = None) -> PlaybackHandle:
        pass


class EventAudioBackend(AudioBackend):
    """Backend que transforma cada play em uma mensagem 'sound' para os clientes."""

    def __init__(self, emit: Callable[[dict], Awaitable[None]], url_prefix: str = SOUNDS_URL_PREFIX):
        self._emit = emit
        self._url_prefix = url_prefix.rstrip("/")

    async def decode(self, sound_key: str, asset: str, raw: bytes) -> DecodedBuffer:
        audio_format = sniff_format(raw)
        if audio_format is None:
            raise AssetLoadError(f"Unrecognized audio data for {asset} ({len(raw)} bytes)")
        return DecodedBuffer(sound_key=sound_key, asset=asset, format=audio_format, data=raw)

    async def play(self, buffer: DecodedBuffer, volume: float, meta: Optional[Dict[str, Any]] = None) -> PlaybackHandle:
        if not 0.0 <= volume <= 1.0:
            raise PlaybackError(f"Invalid volume: {volume}")

        meta = meta or {}
        handle = PlaybackHandle(
            playback_id=uuid.uuid4().hex,
            asset=buffer.asset,
            volume=volume,
            started_at=datetime.now(),
        )
        event = SoundEvent(
            action="play",
            sound=buffer.sound_key,
            category=meta.get("category", ""),
            asset=buffer.asset,
            path=f"{self._url_prefix}/{buffer.asset}",
            volume=volume,
            playback_id=handle.playback_id,
            score=meta.get("score"),
            matched=meta.get("matched"),
        )
        try:
            await self._emit(make_message("sound", event.to_dict()))
        except Exception as e:
            raise PlaybackError(f"Could not emit sound event: {e}") from e
        return handle
