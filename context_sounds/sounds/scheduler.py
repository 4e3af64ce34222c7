"""
Playback scheduler - orquestrador principal.

Para cada mensagem: pontua todos os sons das categorias ativas, filtra por
threshold e cooldown, ordena por score, aplica o limite de sons simultâneos e
toca uma variação (sem repetir a anterior) de cada som escolhido.
"""

import asyncio
import logging
import random
import time
from typing import Callable, List, Optional, Set, Tuple

from .backend import AssetLoadError, AssetSource, AudioBackend, DecodedBuffer, PlaybackError
from .catalog import SoundCatalog
from .models import AnalysisReason, AnalysisResult, SoundDefinition
from .scorer import ContextScorer
from .settings import Settings, SettingsStore
from .state import EngineState
from .matcher import normalize_text
from ..logger import get_logger

logger = get_logger(__name__)

Candidate = Tuple[SoundDefinition, AnalysisResult]


def buffer_key(sound_key: str, asset: str) -> str:
    return f"{sound_key}_{asset}"


class PlaybackScheduler:
    """Transforma mensagens em eventos de áudio com rate limit."""

    def __init__(
        self,
        catalog: SoundCatalog,
        scorer: ContextScorer,
        backend: AudioBackend,
        assets: AssetSource,
        settings: SettingsStore,
        state: Optional[EngineState] = None,
        clock: Callable[[], float] = time.monotonic,
        seed: Optional[int] = None,
    ):
        self.catalog = catalog
        self.scorer = scorer
        self.backend = backend
        self.assets = assets
        self.settings = settings
        self.state = state if state is not None else EngineState()
        self._clock = clock
        self._rng = random.Random(seed)

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    async def initialize(self) -> None:
        """Pré-carrega as variações das categorias ativas (falhas são toleradas)."""
        settings = self.settings.snapshot()
        loads = [
            self.load_buffer(sound, asset)
            for sound in self.catalog
            if settings.category_enabled(sound.category)
            for asset in sound.variations
        ]
        results = await asyncio.gather(*loads, return_exceptions=True)
        failures = sum(1 for r in results if isinstance(r, BaseException))

        self.state.initialized = True
        logger.info(f"Sistema de áudio inicializado: {len(results) - failures} buffers carregados, {failures} falhas")

    async def handle_message(self, text: str) -> Set[str]:
        """Processa uma mensagem e retorna os sons cujo play foi emitido."""
        settings = self.settings.snapshot()
        if not settings.enabled or not self.state.initialized or not text or not text.strip():
            return set()

        now = self._clock()
        normalized = normalize_text(text)
        sounds = [s for s in self.catalog if settings.category_enabled(s.category)]

        analyses = await asyncio.gather(*(self.best_analysis(normalized, sound, settings) for sound in sounds))
        candidates = self.select_candidates(list(zip(sounds, analyses)), settings, now)
        # Reserva antes de qualquer await: outra mensagem não pode despachar o mesmo som
        for sound, _ in candidates:
            self.state.dispatching.add(sound.key)

        started: Set[str] = set()
        try:
            outcomes = await asyncio.gather(
                *(self._dispatch(sound, result, settings, started) for sound, result in candidates),
                return_exceptions=True,
            )
        finally:
            # Despachos cancelados antes de começar não liberam a própria reserva
            for sound, _ in candidates:
                if sound.key not in started:
                    self.state.dispatching.discard(sound.key)

        triggered: Set[str] = set()
        for (sound, _), outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Falha inesperada ao despachar {sound.key}: {outcome!r}")
            elif outcome:
                triggered.add(sound.key)

        logger.info(
            f"Mensagem processada: {len(sounds)} sons analisados, "
            f"{len(candidates)} despachados, {len(triggered)} tocados"
        )
        return triggered

    async def best_analysis(self, text: str, sound: SoundDefinition, settings: Settings) -> AnalysisResult:
        """Roda todos os padrões do som e mantém o de maior score."""
        results = await asyncio.gather(*(
            self.scorer.score(
                text,
                sound.key,
                pattern,
                use_oracle=settings.use_ai_analysis,
                oracle_timeout=settings.ai_analysis_timeout_seconds,
            )
            for pattern in sound.trigger_patterns
        ))

        best = AnalysisResult(score=0.0, reason=AnalysisReason.NO_MATCH)
        for result in results:
            if result.score > best.score or (best.reason == AnalysisReason.NO_MATCH and result.reason != best.reason):
                best = result
        return best

    def select_candidates(self, analyses: List[Candidate], settings: Settings, now: float) -> List[Candidate]:
        """
        Aplica threshold, cooldown e o limite de sons simultâneos.

        Sons em cooldown não ocupam vaga. Os restantes são ordenados por score
        decrescente (empates mantêm a ordem do catálogo) antes do corte.
        """
        level = logging.INFO if settings.debug_mode else logging.DEBUG
        candidates: List[Candidate] = []

        for sound, result in analyses:
            if not result.is_match or result.score < settings.context_sensitivity:
                if result.reason != AnalysisReason.NO_MATCH:
                    logger.log(level, f"Contexto insuficiente para {sound.key}: {result.reason.value}, score={result.score:.2f}")
                continue
            if self.state.is_cooling_down(sound.key, now, settings.cooldown_seconds):
                logger.log(level, f"Repetição de {sound.key} evitada (cooldown)")
                continue
            candidates.append((sound, result))

        candidates.sort(key=lambda c: c[1].score, reverse=True)
        if len(candidates) > settings.max_concurrent_sounds:
            dropped = [sound.key for sound, _ in candidates[settings.max_concurrent_sounds:]]
            logger.log(level, f"Limite de {settings.max_concurrent_sounds} sons atingido, descartando {dropped}")
            candidates = candidates[:settings.max_concurrent_sounds]
        return candidates

    def pick_variation(self, sound: SoundDefinition) -> int:
        """Sorteia uma variação diferente da anterior (quando há mais de uma)."""
        count = len(sound.variations)
        previous = self.state.last_variation_index.get(sound.key)

        if count == 1:
            index = 0
        elif previous is None or previous >= count:
            index = self._rng.randrange(count)
        else:
            index = self._rng.randrange(count - 1)
            if index >= previous:
                index += 1

        self.state.last_variation_index[sound.key] = index
        return index

    async def load_buffer(self, sound: SoundDefinition, asset: str) -> DecodedBuffer:
        """Carrega e decodifica um asset; requisições simultâneas compartilham a mesma task."""
        key = buffer_key(sound.key, asset)
        cached = self.state.loaded_buffers.get(key)
        if cached is not None:
            return cached

        task = self.state.in_flight_loads.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_decode(sound, asset, key))
            self.state.in_flight_loads[key] = task
            task.add_done_callback(lambda _: self.state.in_flight_loads.pop(key, None))

        return await asyncio.shield(task)

    async def _fetch_and_decode(self, sound: SoundDefinition, asset: str, key: str) -> DecodedBuffer:
        try:
            raw = await self.assets.read(asset)
            buffer = await self.backend.decode(sound.key, asset, raw)
        except AssetLoadError as e:
            logger.warning(f"Não foi possível carregar o som {key}: {e}")
            raise

        self.state.loaded_buffers[key] = buffer
        return buffer

    async def _dispatch(self, sound: SoundDefinition, result: AnalysisResult, settings: Settings, started: Set[str]) -> bool:
        """
        Carrega e toca uma variação.

        O cooldown é marcado quando o play é pedido ao backend (mesmo que ele
        recuse); falha de carregamento não marca. O som já chega reservado em
        state.dispatching e é liberado ao final.
        """
        started.add(sound.key)
        try:
            asset = sound.variations[self.pick_variation(sound)]
            try:
                buffer = await self.load_buffer(sound, asset)
            except AssetLoadError:
                return False

            self.state.mark_played(sound.key, self._clock())
            try:
                await self.backend.play(buffer, settings.volume, meta={
                    "category": sound.category.value,
                    "score": result.score,
                    "matched": result.matched_text,
                })
            except PlaybackError as e:
                logger.error(f"Erro ao tocar {buffer_key(sound.key, asset)}: {e}")
                return False

            level = logging.INFO if settings.debug_mode else logging.DEBUG
            logger.log(
                level,
                f"Tocou {buffer_key(sound.key, asset)} (score: {result.score:.2f}, match: \"{result.matched_text}\")",
            )
            return True
        finally:
            self.state.dispatching.discard(sound.key)
