"""
Catálogo de sons: tabela declarativa de padrões e registro somente leitura.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .models import Polarity, PatternKind, SoundCategory, SoundDefinition, TriggerPattern
from .matcher import compile_pattern
from ..config import SOUNDS_EXTRA_PATH
from ..logger import get_logger

logger = get_logger(__name__)

_NEGATION = r"\b(?:don't|do not|stop|quit|without|no|never)\s+(?:\w+\s+){0,2}"

# Padrões são dados: editar esta tabela não exige mexer no scorer.
SOUND_LIBRARY: Dict[str, Dict[str, Dict[str, Any]]] = {
    "emotions": {
        "laugh": {
            "description": "a person laughing, giggling or chuckling",
            "polarity": "positive",
            "variations": ["laugh1.mp3", "giggle.mp3", "chuckle.mp3"],
            "patterns": [
                (r"\b(laughed|laughing|giggles?|giggling|chuckles?|chuckling)\b", "action"),
                (r"\blaugh(?:s|ed|ing)?\s+(?:at|about|with|out|aloud|softly|loudly|quietly)\b", "action"),
                (r"\b(haha|hehe|lol)\b", "direct"),
                (r'"[^"]*(?:ha|he){2,}[^"]*"', "dialogue"),
            ],
            "exclude": [
                _NEGATION + r"(?:laugh|giggl|chuckl)",
                r"\blaugh\w*\s+(?:track|lines?)\b",
            ],
        },
        "cry": {
            "description": "a person crying or sobbing",
            "polarity": "negative",
            "variations": ["cry1.mp3", "sob.mp3", "weep.mp3"],
            "patterns": [
                (r"\b(cried|crying|sobbed|sobbing|wept|weeping|tears?\s+(?:fell|stream|flow))", "action"),
                (r'"[^"]*(?:\*sniff\*|\*sob\*).*"', "dialogue"),
            ],
            "exclude": [
                r"\b(?:don't|do not|stop|quit|without|no)\s+(?:\w+\s+){0,2}(?:cry|sob|weep)",
            ],
        },
        "sigh": {
            "description": "a tired or relieved sigh",
            "variations": ["sigh1.mp3", "exhale.mp3"],
            "patterns": [
                (r"\b(sighed|sighing)\b", "action"),
                (r'"[^"]*\*sigh\*[^"]*"', "dialogue"),
            ],
        },
    },
    "actions": {
        "footsteps": {
            "description": "footsteps of someone walking",
            "variations": ["step1.mp3", "step2.mp3", "footsteps.mp3"],
            "patterns": [
                (r"\b(walked|walking|stepped|stepping|strolled|strolling|paced|pacing)\b", "action"),
                (r"\bfootsteps?\b", "direct"),
            ],
            "exclude": [
                r"\b(?:stopped|quit|ceased)\s+(?:\w+\s+){0,2}(?:walk|step|stroll|pac)",
            ],
        },
        "door": {
            "description": "a door opening, closing or slamming",
            "variations": ["door_open.mp3", "door_close.mp3", "door_creak.mp3"],
            "patterns": [
                (r"\b(?:opened|closed|shut|slammed)\s+(?:the\s+)?door\b", "action"),
                (r"\bdoor\s+(?:opened|closed|creaked|slammed)\b", "action"),
            ],
        },
    },
    "ambient": {
        "wind": {
            "description": "wind blowing outdoors",
            "variations": ["wind1.mp3", "breeze.mp3"],
            "patterns": [
                (r"\bwind\s+(?:blew|howled|whistled|rustled)", "ambient"),
                (r"\b(?:gentle|strong|cold)\s+(?:breeze|wind)\b", "ambient"),
            ],
        },
        "rain": {
            "description": "rain falling",
            "variations": ["rain_light.mp3", "rain_heavy.mp3"],
            "patterns": [
                (r"\brain\s+(?:fell|pattered|drummed|began)", "ambient"),
                (r"\b(?:raindrops?|downpour|drizzl\w+)\b", "ambient"),
            ],
        },
    },
    "dialogue": {
        "whisper": {
            "description": "someone whispering",
            "variations": ["whisper1.mp3", "whisper_soft.mp3"],
            "patterns": [
                (r"\b(whispered|whispering)\b", "dialogue"),
                (r'"[^"]*"\s*(?:she|he|they)\s+whispered', "dialogue"),
            ],
        },
        "shout": {
            "description": "someone shouting or yelling",
            "variations": ["shout1.mp3", "yell.mp3"],
            "patterns": [
                (r"\b(shouted|yelled|screamed|called out)\b", "dialogue"),
                (r'"[^"]*[!]{2,}[^"]*"', "dialogue"),
            ],
        },
    },
}


class UnknownSoundError(KeyError):
    pass


class SoundCatalog:
    """Registro somente leitura de SoundDefinitions, agrupadas por categoria."""

    def __init__(self, definitions: Sequence[SoundDefinition]):
        self._definitions: Dict[str, SoundDefinition] = {}
        for definition in definitions:
            if definition.key in self._definitions:
                raise ValueError(f"Duplicate sound key: {definition.key}")
            self._definitions[definition.key] = definition

    def __iter__(self) -> Iterator[SoundDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, sound_key: str) -> bool:
        return sound_key in self._definitions

    def get(self, sound_key: str) -> SoundDefinition:
        try:
            return self._definitions[sound_key]
        except KeyError:
            raise UnknownSoundError(sound_key) from None

    def category_of(self, sound_key: str) -> Optional[SoundCategory]:
        definition = self._definitions.get(sound_key)
        return definition.category if definition else None

    def by_category(self) -> Dict[SoundCategory, List[SoundDefinition]]:
        grouped: Dict[SoundCategory, List[SoundDefinition]] = {}
        for definition in self._definitions.values():
            grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Listagem serializável (usada pela API)."""
        return {
            category.value: [
                {
                    "key": d.key,
                    "description": d.description,
                    "variations": list(d.variations),
                }
                for d in definitions
            ]
            for category, definitions in self.by_category().items()
        }


def build_definitions(
    library: Mapping[str, Mapping[str, Mapping[str, Any]]],
    extra_variations: Optional[Sequence[Mapping[str, str]]] = None,
) -> List[SoundDefinition]:
    """Compila a tabela declarativa em SoundDefinitions (padrões compilados uma vez)."""
    extras = _group_extra_variations(library, extra_variations or [])
    definitions: List[SoundDefinition] = []

    for category_name, sounds in library.items():
        category = SoundCategory(category_name)
        for sound_key, data in sounds.items():
            variations = list(data.get("variations", []))
            for variation in extras.get(sound_key, []):
                if variation not in variations:
                    variations.append(variation)

            definitions.append(SoundDefinition(
                key=sound_key,
                category=category,
                variations=tuple(variations),
                trigger_patterns=tuple(
                    TriggerPattern(source=source, kind=PatternKind(kind), compiled=compile_pattern(source))
                    for source, kind in data.get("patterns", [])
                ),
                exclusion_patterns=tuple(compile_pattern(source) for source in data.get("exclude", [])),
                description=data.get("description", ""),
                polarity=Polarity(data.get("polarity", "neutral")),
            ))

    return definitions


def _group_extra_variations(
    library: Mapping[str, Mapping[str, Any]],
    extra_variations: Sequence[Mapping[str, str]],
) -> Dict[str, List[str]]:
    """Agrupa variações do usuário por som (chaves desconhecidas são ignoradas)."""
    known = {key for sounds in library.values() for key in sounds}
    grouped: Dict[str, List[str]] = {}

    for item in extra_variations:
        sound_key = item.get("soundKey")
        variation = item.get("variation")
        if not sound_key or not variation:
            logger.warning(f"Variação de usuário inválida ignorada: {item!r}")
            continue
        if sound_key not in known:
            logger.warning(f"Variação para som desconhecido ignorada: {sound_key}")
            continue
        grouped.setdefault(sound_key, []).append(variation)

    return grouped


def load_extra_variations(path: Optional[str] = None) -> List[Dict[str, str]]:
    """Lê a lista JSON de variações adicionadas pelo usuário."""
    raw_path = path if path is not None else SOUNDS_EXTRA_PATH
    if not raw_path:
        return []

    extra_path = Path(raw_path)
    try:
        data = json.loads(extra_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Erro ao ler variações de usuário {extra_path}: {e}", exc_info=True)
        return []

    if not isinstance(data, list):
        logger.warning(f"Arquivo de variações {extra_path} não contém uma lista")
        return []
    return [item for item in data if isinstance(item, dict)]


def load_catalog(
    library: Optional[Mapping[str, Mapping[str, Mapping[str, Any]]]] = None,
    extra_variations: Optional[Sequence[Mapping[str, str]]] = None,
) -> SoundCatalog:
    """Constrói o catálogo padrão (mais as variações do usuário, se houver)."""
    if extra_variations is None:
        extra_variations = load_extra_variations()
    definitions = build_definitions(SOUND_LIBRARY if library is None else library, extra_variations)
    catalog = SoundCatalog(definitions)

    pattern_count = sum(len(d.trigger_patterns) for d in definitions)
    logger.info(f"Catálogo carregado: {len(catalog)} sons, {pattern_count} padrões")
    return catalog
