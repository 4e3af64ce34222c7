import asyncio
import os
import tempfile

# Logs de teste fora do diretório do projeto
os.environ.setdefault("CONTEXT_SOUNDS_LOG_DIR", tempfile.mkdtemp(prefix="context_sounds_logs_"))

import pytest

from context_sounds.sounds import (
    AssetLoadError,
    AssetSource,
    EventAudioBackend,
    PlaybackError,
    Settings,
    SettingsStore,
    build_scheduler,
    load_catalog,
)

MP3_BYTES = b"ID3" + b"\x00" * 32


class FakeAssetSource(AssetSource):
    """Fonte de assets em memória, com falhas e atraso configuráveis."""

    def __init__(self, failing=(), delay=0.0):
        self.failing = set(failing)
        self.delay = delay
        self.reads = []

    async def read(self, asset: str) -> bytes:
        self.reads.append(asset)
        if self.delay:
            await asyncio.sleep(self.delay)
        if asset in self.failing:
            raise AssetLoadError(f"missing {asset}")
        return MP3_BYTES


class Recorder:
    """Emissor que guarda as mensagens em vez de enviar para WebSockets."""

    def __init__(self):
        self.messages = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def sounds(self):
        return [m["payload"]["sound"] for m in self.messages if m["type"] == "sound"]


class RejectingBackend(EventAudioBackend):
    """Backend que recusa o play de alguns sons (ex.: política de autoplay)."""

    def __init__(self, emit, rejected=()):
        super().__init__(emit)
        self.rejected = set(rejected)

    async def play(self, buffer, volume, meta=None):
        if buffer.sound_key in self.rejected:
            raise PlaybackError("autoplay blocked")
        return await super().play(buffer, volume, meta)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def catalog():
    return load_catalog(extra_variations=[])


@pytest.fixture
def assets():
    return FakeAssetSource()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_scheduler(catalog, assets, recorder, clock):
    def factory(settings=None, backend=None, source=None, initialize=True, seed=7):
        scheduler = build_scheduler(
            catalog=catalog,
            backend=backend or EventAudioBackend(emit=recorder),
            assets=source or assets,
            settings=SettingsStore(settings or Settings()),
            clock=clock,
            seed=seed,
        )
        if initialize:
            asyncio.run(scheduler.initialize())
        return scheduler

    return factory
