"""
Extração do contexto (frase e janela de palavras) em volta de um match.

Funções puras e determinísticas.
"""

import re

from .models import MatchContext
from ..config import SURROUNDING_WORDS_WINDOW

_TERMINATORS_RE = re.compile(r"[.!?]+")
_TOKEN_RE = re.compile(r"\S+")


def extract_sentence(text: str, offset: int) -> str:
    """
    Retorna a frase cujo trecho contém o offset.

    Frases terminam em '.', '!' ou '?' (um ou mais). Offset fora do texto
    retorna string vazia.
    """
    if offset < 0 or offset >= len(text):
        return ""

    start = 0
    for terminator in _TERMINATORS_RE.finditer(text):
        if offset < terminator.end():
            return text[start:terminator.start()].strip()
        start = terminator.end()
    return text[start:].strip()


def surrounding_words(text: str, offset: int, window_size: int = SURROUNDING_WORDS_WINDOW) -> str:
    """
    Retorna até window_size palavras antes e depois do token que contém o offset.

    O índice escolhido é o primeiro token cujo fim ultrapassa o offset; a fatia
    [índice - janela, índice + janela) é limitada aos tokens existentes.
    """
    tokens = [m for m in _TOKEN_RE.finditer(text)]
    window_size = max(0, window_size)

    index = len(tokens)
    for i, token in enumerate(tokens):
        if token.end() > offset:
            index = i
            break

    start = max(0, index - window_size)
    end = min(len(tokens), index + window_size)
    return " ".join(token.group(0) for token in tokens[start:end])


def build_context(text: str, match: re.Match, window_size: int = SURROUNDING_WORDS_WINDOW) -> MatchContext:
    offset = match.start()
    return MatchContext(
        sentence=extract_sentence(text, offset),
        surrounding_words=surrounding_words(text, offset, window_size),
        relative_position=offset / len(text) if text else 0.0,
        matched_text=match.group(0),
    )
