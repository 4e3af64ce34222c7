"""
Scorer: confiança em [0,1] de que um som deve tocar para um texto.

Ordem de avaliação:
    1. regex do gatilho (sem match -> no_match)
    2. contexto do match (frase + janela de palavras)
    3. padrões de exclusão na frase (match -> score 0)
    4. oráculo externo, se configurado (falha -> segue para 5)
    5. heurística por tipo de padrão + alinhamento de sentimento
"""

import asyncio
import re
from typing import Dict, Optional

from .catalog import SoundCatalog
from .context import build_context
from .matcher import any_match, first_match
from .models import (
    AnalysisReason,
    AnalysisResult,
    MatchContext,
    PatternKind,
    Polarity,
    SoundDefinition,
    TriggerPattern,
)
from .oracle import OracleCache, OracleUnavailable, TextScoringOracle, build_prompt, parse_score
from ..config import DEFAULT_AI_ANALYSIS_TIMEOUT_MS, SURROUNDING_WORDS_WINDOW
from ..logger import get_logger

logger = get_logger(__name__)

BASE_SCORE = 0.5
PAST_TENSE_BONUS = 0.2
PARTICIPLE_BONUS = 0.1
ATTRIBUTION_BONUS = 0.15
QUOTE_BONUS = 0.2
SPEECH_VERB_BONUS = 0.15
ENVIRONMENT_BONUS = 0.2
DIRECT_BONUS = 0.3
SENTIMENT_BONUS = 0.1

_PAST_TENSE_RE = re.compile(r"\b\w+ed\b", re.IGNORECASE)
_PARTICIPLE_RE = re.compile(r"\b\w+ing\b", re.IGNORECASE)
_ATTRIBUTION_RE = re.compile(r"\b(?:she|he|they|we|i)\s+\w+ed\b", re.IGNORECASE)
_SPEECH_VERB_RE = re.compile(r"\b(?:said|whispered|shouted|asked|replied)\b", re.IGNORECASE)
_ENVIRONMENT_RE = re.compile(r"\b(?:outside|air|atmosphere|environment|weather)\b", re.IGNORECASE)

SENTIMENT_WORDS = {
    Polarity.POSITIVE: ("happy", "joy", "cheerful", "delighted", "pleased", "content"),
    Polarity.NEGATIVE: ("sad", "angry", "frustrated", "disappointed", "upset", "annoyed"),
}
_SENTIMENT_RES = {
    polarity: re.compile(r"\b(?:%s)\b" % "|".join(words), re.IGNORECASE)
    for polarity, words in SENTIMENT_WORDS.items()
}


def clamp_score(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 4)


def action_bonus(context: MatchContext) -> float:
    sentence = context.sentence
    bonus = 0.0
    # Passado é mais definitivo que gerúndio
    if _PAST_TENSE_RE.search(sentence):
        bonus += PAST_TENSE_BONUS
    if _PARTICIPLE_RE.search(sentence):
        bonus += PARTICIPLE_BONUS
    if _ATTRIBUTION_RE.search(sentence):
        bonus += ATTRIBUTION_BONUS
    return bonus


def dialogue_bonus(context: MatchContext) -> float:
    bonus = 0.0
    if '"' in context.sentence:
        bonus += QUOTE_BONUS
    if _SPEECH_VERB_RE.search(context.sentence):
        bonus += SPEECH_VERB_BONUS
    return bonus


def ambient_bonus(context: MatchContext) -> float:
    if _ENVIRONMENT_RE.search(context.surrounding_words):
        return ENVIRONMENT_BONUS
    return 0.0


def sentiment_bonus(context: MatchContext, sound: SoundDefinition) -> float:
    sentiment_re = _SENTIMENT_RES.get(sound.polarity)
    if sentiment_re and sentiment_re.search(context.sentence):
        return SENTIMENT_BONUS
    return 0.0


def heuristic_score(context: MatchContext, sound: SoundDefinition, pattern: TriggerPattern) -> float:
    """Score heurístico (sem I/O)."""
    score = BASE_SCORE

    if pattern.kind == PatternKind.ACTION:
        score += action_bonus(context)
    elif pattern.kind == PatternKind.DIALOGUE:
        score += dialogue_bonus(context)
    elif pattern.kind == PatternKind.AMBIENT:
        score += ambient_bonus(context)
    elif pattern.kind == PatternKind.DIRECT:
        score += DIRECT_BONUS

    score += sentiment_bonus(context, sound)
    return clamp_score(score)


class ContextScorer:
    """Pontua (texto, som, padrão); o oráculo é uma dependência injetada."""

    def __init__(
        self,
        catalog: SoundCatalog,
        oracle: Optional[TextScoringOracle] = None,
        cache: Optional[OracleCache] = None,
        window_size: int = SURROUNDING_WORDS_WINDOW,
    ):
        self.catalog = catalog
        self.oracle = oracle
        self.cache = cache if cache is not None else OracleCache()
        self._in_flight: Dict[str, "asyncio.Future[Optional[float]]"] = {}
        self.window_size = window_size

    async def score(
        self,
        text: str,
        sound_key: str,
        pattern: TriggerPattern,
        use_oracle: bool = True,
        oracle_timeout: float = DEFAULT_AI_ANALYSIS_TIMEOUT_MS / 1000.0,
    ) -> AnalysisResult:
        sound = self.catalog.get(sound_key)
        result = self.analyze_match(text, sound, pattern)
        if result.reason != AnalysisReason.PATTERN_ANALYZED:
            return result

        if use_oracle and self.oracle is not None:
            oracle_score = await self._consult_oracle(result.context, sound, oracle_timeout)
            if oracle_score is not None:
                return AnalysisResult(
                    score=oracle_score,
                    reason=AnalysisReason.AI_ANALYZED,
                    context=result.context,
                    matched_text=result.matched_text,
                )

        return result

    def analyze_match(self, text: str, sound: SoundDefinition, pattern: TriggerPattern) -> AnalysisResult:
        """Passos síncronos: match, contexto, exclusões e heurística."""
        match = first_match(pattern.compiled, text)
        if not match:
            return AnalysisResult(score=0.0, reason=AnalysisReason.NO_MATCH)

        context = build_context(text, match, self.window_size)

        # Exclusão sempre vence (negação, uso como substantivo...)
        excluded_by = any_match(sound.exclusion_patterns, context.sentence)
        if excluded_by is not None:
            logger.debug(f"Som {sound.key} excluído por '{excluded_by.pattern[:40]}'")
            return AnalysisResult(
                score=0.0,
                reason=AnalysisReason.EXCLUDED_BY_PATTERN,
                context=context,
                matched_text=context.matched_text,
            )

        return AnalysisResult(
            score=heuristic_score(context, sound, pattern),
            reason=AnalysisReason.PATTERN_ANALYZED,
            context=context,
            matched_text=context.matched_text,
        )

    async def _consult_oracle(self, context: MatchContext, sound: SoundDefinition, timeout: float) -> Optional[float]:
        cache_key = self.cache.make_key(sound.key, context.sentence)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        # Consultas simultâneas com a mesma chave compartilham a mesma task
        task = self._in_flight.get(cache_key)
        if task is None:
            task = asyncio.ensure_future(self._ask_oracle(context, sound, timeout, cache_key))
            self._in_flight[cache_key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(cache_key, None))
        return await asyncio.shield(task)

    async def _ask_oracle(self, context: MatchContext, sound: SoundDefinition, timeout: float, cache_key: str) -> Optional[float]:
        prompt = build_prompt(context, sound)
        try:
            raw = await asyncio.wait_for(self.oracle.score(prompt, timeout), timeout=timeout)
            value = parse_score(raw)
        except asyncio.TimeoutError:
            logger.warning(f"Oráculo excedeu {timeout}s para {sound.key}, usando heurística")
            return None
        except OracleUnavailable as e:
            logger.warning(f"Oráculo indisponível para {sound.key}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Erro inesperado no oráculo para {sound.key}: {e}", exc_info=True)
            return None

        self.cache.put(cache_key, value)
        return value
