"""
Engine de sons contextuais para mensagens de chat.

Exemplo:
    from context_sounds.sounds import load_catalog, build_scheduler

    scheduler = build_scheduler(load_catalog(), backend, assets)
    await scheduler.initialize()
    triggered = await scheduler.handle_message("She laughed and walked to the door.")
    # Retorna: {"laugh", "footsteps"}
"""

import time
from typing import Callable, Optional

from .backend import (
    AssetLoadError,
    AssetSource,
    AudioBackend,
    DecodedBuffer,
    EventAudioBackend,
    FileAssetSource,
    PlaybackError,
    PlaybackHandle,
)
from .catalog import SOUND_LIBRARY, SoundCatalog, UnknownSoundError, load_catalog
from .context import build_context, extract_sentence, surrounding_words
from .models import (
    AnalysisReason,
    AnalysisResult,
    MatchContext,
    PatternKind,
    Polarity,
    SoundCategory,
    SoundDefinition,
    SoundEvent,
    TriggerPattern,
)
from .oracle import HttpScoringOracle, OracleCache, OracleUnavailable, TextScoringOracle
from .scheduler import PlaybackScheduler
from .scorer import ContextScorer
from .settings import Settings, SettingsStore
from .state import EngineState
from ..config import ORACLE_URL, ORACLE_MODEL


def build_oracle() -> Optional[TextScoringOracle]:
    """Oráculo configurado por ambiente (None se CONTEXT_SOUNDS_ORACLE_URL vazio)."""
    if not ORACLE_URL:
        return None
    return HttpScoringOracle(ORACLE_URL, ORACLE_MODEL)


def build_scheduler(
    catalog: SoundCatalog,
    backend: AudioBackend,
    assets: AssetSource,
    settings: Optional[SettingsStore] = None,
    oracle: Optional[TextScoringOracle] = None,
    clock: Callable[[], float] = time.monotonic,
    seed: Optional[int] = None,
) -> PlaybackScheduler:
    """
    Factory para montar um PlaybackScheduler com estado novo.

    Args:
        catalog: Catálogo compartilhado (imutável)
        backend: Backend de áudio
        assets: Fonte dos bytes dos assets
        settings: Store de settings (padrão se None)
        oracle: Oráculo opcional
        clock: Relógio em segundos (monotônico por padrão)
        seed: Seed para RNG (para testes)
    """
    return PlaybackScheduler(
        catalog=catalog,
        scorer=ContextScorer(catalog, oracle=oracle),
        backend=backend,
        assets=assets,
        settings=settings or SettingsStore(),
        state=EngineState(),
        clock=clock,
        seed=seed,
    )


__all__ = [
    "AnalysisReason",
    "AnalysisResult",
    "AssetLoadError",
    "AssetSource",
    "AudioBackend",
    "ContextScorer",
    "DecodedBuffer",
    "EngineState",
    "EventAudioBackend",
    "FileAssetSource",
    "HttpScoringOracle",
    "MatchContext",
    "OracleCache",
    "OracleUnavailable",
    "PatternKind",
    "PlaybackError",
    "PlaybackHandle",
    "PlaybackScheduler",
    "Polarity",
    "SOUND_LIBRARY",
    "Settings",
    "SettingsStore",
    "SoundCatalog",
    "SoundCategory",
    "SoundDefinition",
    "SoundEvent",
    "TextScoringOracle",
    "TriggerPattern",
    "UnknownSoundError",
    "build_context",
    "build_oracle",
    "build_scheduler",
    "extract_sentence",
    "load_catalog",
    "surrounding_words",
]
