"""
Oráculo externo de pontuação de texto (opcional).

O engine só conhece a interface TextScoringOracle; qualquer falha vira
OracleUnavailable e o scorer volta para a heurística.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Optional

import aiohttp

from .models import MatchContext, SoundDefinition
from ..config import ORACLE_CACHE_KEY_CHARS, ORACLE_CACHE_MAX_ENTRIES, ORACLE_PROMPT_MAX_CHARS
from ..logger import get_logger

logger = get_logger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_PROMPT_TEMPLATE = (
    "Rate from 0 to 1 how likely the sound effect '{sound}' ({description}) "
    "is actually happening in this roleplay text. Use values near 0.1 when the "
    "word is a reference or a noun rather than an action taking place.\n"
    "Sentence: {sentence}\n"
    "Context: {surrounding}\n"
    "Answer with a single number."
)


class OracleUnavailable(Exception):
    """Oráculo indisponível (erro, timeout ou resposta inválida)."""


class TextScoringOracle(ABC):
    @abstractmethod
    async def score(self, prompt: str, timeout: float) -> float:
        """Retorna um score em [0,1] ou levanta OracleUnavailable"""
        pass


def parse_score(raw: Any) -> float:
    """Converte a resposta do oráculo em um float dentro de [0,1]."""
    if isinstance(raw, bool):
        raise OracleUnavailable(f"Malformed oracle response: {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        found = _NUMBER_RE.search(raw)
        if not found:
            raise OracleUnavailable(f"No number in oracle response: {raw[:50]!r}")
        value = float(found.group(0))
    else:
        raise OracleUnavailable(f"Malformed oracle response: {raw!r}")

    if not 0.0 <= value <= 1.0:
        raise OracleUnavailable(f"Oracle score out of range: {value}")
    return value


def build_prompt(context: MatchContext, sound: SoundDefinition, max_chars: int = ORACLE_PROMPT_MAX_CHARS) -> str:
    """Monta o prompt com tamanho limitado (a frase é truncada primeiro)."""
    base = _PROMPT_TEMPLATE.format(
        sound=sound.key,
        description=sound.description or sound.key,
        sentence="",
        surrounding="",
    )
    budget = max(0, max_chars - len(base))
    sentence = context.sentence[: budget // 2]
    surrounding = context.surrounding_words[: budget - len(sentence)]

    prompt = _PROMPT_TEMPLATE.format(
        sound=sound.key,
        description=sound.description or sound.key,
        sentence=sentence,
        surrounding=surrounding,
    )
    return prompt[:max_chars]


class OracleCache:
    """Cache LRU de respostas do oráculo por (som, início da frase)."""

    def __init__(self, max_entries: int = ORACLE_CACHE_MAX_ENTRIES, key_chars: int = ORACLE_CACHE_KEY_CHARS):
        self.max_entries = max_entries
        self.key_chars = key_chars
        self._entries: "OrderedDict[str, float]" = OrderedDict()

    def make_key(self, sound_key: str, sentence: str) -> str:
        return f"{sound_key}:{sentence[: self.key_chars].lower()}"

    def get(self, key: str) -> Optional[float]:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: str, value: float) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache do oráculo cheio, removendo entrada: {evicted[:40]}")

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class HttpScoringOracle(TextScoringOracle):
    """
    Oráculo via HTTP (endpoint estilo 'generate' de um LLM local).

    Envia {"model", "prompt", "stream": false} e aceita respostas JSON com
    "score" numérico ou texto em "response"/"text".
    """

    def __init__(self, url: str, model: str = ""):
        self.url = url
        self.model = model

    async def score(self, prompt: str, timeout: float) -> float:
        payload = {"prompt": prompt, "stream": False}
        if self.model:
            payload["model"] = self.model

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url, json=payload, timeout=aiohttp.ClientTimeout(total=timeout)
                ) as resp:
                    if resp.status != 200:
                        raise OracleUnavailable(f"Oracle returned HTTP {resp.status}")
                    data = await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise OracleUnavailable(f"Oracle request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise OracleUnavailable(f"Oracle timed out after {timeout}s") from e
        except ValueError as e:
            raise OracleUnavailable(f"Oracle returned invalid JSON: {e}") from e

        if isinstance(data, dict):
            for key in ("score", "response", "text"):
                if key in data:
                    return parse_score(data[key])
            raise OracleUnavailable(f"Oracle response without score: {list(data)[:5]}")
        return parse_score(data)
