"""
Modelos de dados do engine de sons contextuais.
"""

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SoundCategory(str, Enum):
    EMOTIONS = "emotions"
    ACTIONS = "actions"
    AMBIENT = "ambient"
    DIALOGUE = "dialogue"


class PatternKind(str, Enum):
    """Tipo de gatilho: decide qual heurística pontua o match."""
    ACTION = "action"
    DIALOGUE = "dialogue"
    AMBIENT = "ambient"
    DIRECT = "direct"


class AnalysisReason(str, Enum):
    NO_MATCH = "no_match"
    EXCLUDED_BY_PATTERN = "excluded_by_pattern"
    AI_ANALYZED = "ai_analyzed"
    PATTERN_ANALYZED = "pattern_analyzed"


class Polarity(str, Enum):
    """Sentimento associado ao som (risada = positivo, choro = negativo)."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class TriggerPattern:
    """Regra léxica que torna um som candidato."""
    source: str
    kind: PatternKind
    compiled: re.Pattern = field(compare=False, repr=False)


@dataclass(frozen=True)
class SoundDefinition:
    """Definição imutável de um som do catálogo."""
    key: str
    category: SoundCategory
    variations: Tuple[str, ...]
    trigger_patterns: Tuple[TriggerPattern, ...]
    exclusion_patterns: Tuple[re.Pattern, ...] = ()
    description: str = ""
    polarity: Polarity = Polarity.NEUTRAL

    def __post_init__(self):
        if not self.variations:
            raise ValueError(f"Sound '{self.key}' must have at least one variation")


@dataclass(frozen=True)
class MatchContext:
    """Contexto ao redor de um match (criado a cada análise)."""
    sentence: str
    surrounding_words: str
    relative_position: float
    matched_text: str


@dataclass(frozen=True)
class AnalysisResult:
    """Resultado do Scorer para um par (som, padrão)."""
    score: float
    reason: AnalysisReason
    context: Optional[MatchContext] = None
    matched_text: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Score out of range: {self.score}")

    @property
    def is_match(self) -> bool:
        return self.reason in (AnalysisReason.PATTERN_ANALYZED, AnalysisReason.AI_ANALYZED)


@dataclass
class SoundEvent:
    """Evento de som a ser emitido para o cliente."""
    action: str
    sound: str
    category: str
    asset: str
    path: str
    volume: float
    playback_id: str
    score: Optional[float] = None
    matched: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
