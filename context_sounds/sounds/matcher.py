"""
Compilação de padrões e normalização de texto.
"""

import re
from typing import Iterable, Optional

from ..logger import get_logger

logger = get_logger(__name__)

_NEVER_MATCH = re.compile(r"(?!)")

_HTML_TAG_RE = re.compile(r"<[^>]+>")
_TYPOGRAPHIC = str.maketrans({
    "“": '"',
    "”": '"',
    "«": '"',
    "»": '"',
    "‘": "'",
    "’": "'",
})


def compile_pattern(source: str, ignore_case: bool = True) -> re.Pattern:
    """Compila um padrão do catálogo (regex inválido nunca casa)."""
    flags = re.IGNORECASE if ignore_case else 0
    try:
        return re.compile(source, flags)
    except re.error as e:
        logger.warning(f"Erro ao compilar regex '{source[:30]}...': {e}")
        return _NEVER_MATCH


def normalize_text(text: str) -> str:
    """Remove tags HTML e \\r, e troca aspas tipográficas por ASCII."""
    result = str(text or "")
    result = result.replace("\r", "")
    result = _HTML_TAG_RE.sub("", result)
    return result.translate(_TYPOGRAPHIC)


def first_match(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    return pattern.search(text)


def any_match(patterns: Iterable[re.Pattern], text: str) -> Optional[re.Pattern]:
    """Retorna o primeiro padrão que casa com o texto (ou None)."""
    for pattern in patterns:
        if pattern.search(text):
            return pattern
    return None
