import asyncio

import pytest

from context_sounds.sounds.models import MatchContext
from context_sounds.sounds.oracle import (
    HttpScoringOracle,
    OracleCache,
    OracleUnavailable,
    build_prompt,
    parse_score,
)


def test_parse_score_accepts_numbers_and_text():
    assert parse_score(0.4) == 0.4
    assert parse_score(1) == 1.0
    assert parse_score("0.7") == 0.7
    assert parse_score("Score: 0.25 (reference use)") == 0.25


@pytest.mark.parametrize("raw", ["no idea", 1.5, -0.2, "2", True, None, {"score": 1}])
def test_parse_score_rejects_malformed_or_out_of_range(raw):
    with pytest.raises(OracleUnavailable):
        parse_score(raw)


def test_cache_evicts_oldest_entry():
    cache = OracleCache(max_entries=2)
    cache.put("a", 0.1)
    cache.put("b", 0.2)
    assert cache.get("a") == 0.1  # "a" passa a ser o mais recente
    cache.put("c", 0.3)

    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == 0.1
    assert cache.get("c") == 0.3


def test_cache_key_uses_sentence_prefix():
    cache = OracleCache(key_chars=10)
    assert cache.make_key("laugh", "She LAUGHED at the joke") == cache.make_key("laugh", "she laughed loudly")
    assert cache.make_key("laugh", "x") != cache.make_key("cry", "x")


def test_prompt_is_bounded(catalog):
    context = MatchContext(
        sentence="She laughed " * 500,
        surrounding_words="word " * 500,
        relative_position=0.0,
        matched_text="laughed",
    )
    prompt = build_prompt(context, catalog.get("laugh"), max_chars=600)
    assert len(prompt) <= 600
    assert "laugh" in prompt
    assert "She laughed" in prompt


def test_http_oracle_unreachable_is_unavailable():
    oracle = HttpScoringOracle("http://127.0.0.1:9/score")
    with pytest.raises(OracleUnavailable):
        asyncio.run(oracle.score("prompt", 2.0))
