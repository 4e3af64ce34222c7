import asyncio

import pytest

from context_sounds.sounds.catalog import UnknownSoundError
from context_sounds.sounds.models import AnalysisReason
from context_sounds.sounds.oracle import OracleUnavailable, TextScoringOracle
from context_sounds.sounds.scorer import ContextScorer, clamp_score


class FakeOracle(TextScoringOracle):
    def __init__(self, value=0.1, delay=0.0, error=None):
        self.value = value
        self.delay = delay
        self.error = error
        self.prompts = []

    async def score(self, prompt, timeout):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.value


def analyze(scorer, text, sound_key, pattern_index=0, **kwargs):
    pattern = scorer.catalog.get(sound_key).trigger_patterns[pattern_index]
    return asyncio.run(scorer.score(text, sound_key, pattern, **kwargs))


@pytest.fixture
def scorer(catalog):
    return ContextScorer(catalog)


@pytest.mark.parametrize("text", ["", "Nothing happens here.", "The laughter faded.", "A door."])
def test_no_match_scores_zero(scorer, text):
    for index in range(len(scorer.catalog.get("laugh").trigger_patterns)):
        result = analyze(scorer, text, "laugh", index)
        assert result.reason == AnalysisReason.NO_MATCH
        assert result.score == 0.0
        assert result.context is None


def test_action_scenario_laugh_and_footsteps(scorer):
    text = "She laughed at the joke and walked to the door."

    laugh = analyze(scorer, text, "laugh")
    assert laugh.reason == AnalysisReason.PATTERN_ANALYZED
    assert laugh.score == pytest.approx(0.85)
    assert laugh.matched_text == "laughed"
    assert laugh.context.sentence == "She laughed at the joke and walked to the door"

    footsteps = analyze(scorer, text, "footsteps")
    assert footsteps.score == pytest.approx(0.85)
    assert footsteps.matched_text == "walked"

    door = [analyze(scorer, text, "door", i) for i in range(2)]
    assert all(r.reason == AnalysisReason.NO_MATCH for r in door)


def test_negation_excludes_match(scorer):
    result = analyze(scorer, "Don't laugh at me.", "laugh", 1)
    assert result.reason == AnalysisReason.EXCLUDED_BY_PATTERN
    assert result.score == 0.0
    assert result.context.sentence == "Don't laugh at me"


def test_exclusion_only_looks_at_match_sentence(scorer):
    text = "Don't cry. Then she laughed at him."
    result = analyze(scorer, text, "laugh")
    assert result.reason == AnalysisReason.PATTERN_ANALYZED


def test_noun_use_of_laugh_does_not_match(scorer):
    for index in range(4):
        assert analyze(scorer, "You have a nice laugh.", "laugh", index).reason == AnalysisReason.NO_MATCH


def test_direct_mention_bonus(scorer):
    result = analyze(scorer, "That was funny, haha", "laugh", 2)
    assert result.score == 0.8


def test_dialogue_bonuses(scorer):
    result = analyze(scorer, '"Hahaha, you got me," she said.', "laugh", 3)
    assert result.score == pytest.approx(0.85)


def test_ambient_bonus_uses_surrounding_window(scorer):
    assert analyze(scorer, "The cold wind blew outside.", "wind").score == pytest.approx(0.7)
    assert analyze(scorer, "The wind blew.", "wind").score == pytest.approx(0.5)


def test_sentiment_alignment(scorer):
    assert analyze(scorer, "She was happy and laughed.", "laugh").score == pytest.approx(0.8)
    assert analyze(scorer, "He was sad and cried.", "cry").score == pytest.approx(0.8)
    # Sentimento oposto não soma
    assert analyze(scorer, "He was happy and cried.", "cry").score == pytest.approx(0.7)


def test_score_is_clamped(scorer):
    assert analyze(scorer, "She laughed and kept laughing, so happy.", "laugh").score == 1.0
    assert clamp_score(-0.3) == 0.0
    assert clamp_score(0.5 + 0.3) == 0.8


def test_unknown_sound_raises(scorer, catalog):
    pattern = catalog.get("laugh").trigger_patterns[0]
    with pytest.raises(UnknownSoundError):
        asyncio.run(scorer.score("She laughed.", "kazoo", pattern))


def test_oracle_score_is_used(catalog):
    oracle = FakeOracle(value=0.1)
    result = analyze(ContextScorer(catalog, oracle=oracle), "She laughed at the joke.", "laugh")

    assert result.reason == AnalysisReason.AI_ANALYZED
    assert result.score == 0.1
    assert result.context.sentence == "She laughed at the joke"
    assert len(oracle.prompts) == 1
    assert "She laughed at the joke" in oracle.prompts[0]


def test_oracle_skipped_when_disabled(catalog):
    oracle = FakeOracle(value=0.1)
    result = analyze(ContextScorer(catalog, oracle=oracle), "She laughed.", "laugh", use_oracle=False)
    assert result.reason == AnalysisReason.PATTERN_ANALYZED
    assert oracle.prompts == []


@pytest.mark.parametrize("oracle", [
    FakeOracle(delay=1.0),
    FakeOracle(error=OracleUnavailable("down")),
    FakeOracle(error=RuntimeError("boom")),
    FakeOracle(value=1.5),
    FakeOracle(value="not a number"),
])
def test_oracle_failures_fall_back_to_heuristic(catalog, oracle):
    scorer = ContextScorer(catalog, oracle=oracle)
    result = analyze(scorer, "She laughed at the joke.", "laugh", oracle_timeout=0.05)

    assert result.reason == AnalysisReason.PATTERN_ANALYZED
    assert result.score == pytest.approx(0.85)
    assert len(scorer.cache) == 0


def test_oracle_results_are_cached(catalog):
    oracle = FakeOracle(value=0.9)
    scorer = ContextScorer(catalog, oracle=oracle)

    first = analyze(scorer, "She laughed at the joke.", "laugh")
    second = analyze(scorer, "She laughed at the joke.", "laugh")

    assert first.score == second.score == 0.9
    assert second.reason == AnalysisReason.AI_ANALYZED
    assert len(oracle.prompts) == 1


def test_exclusion_precedes_oracle(catalog):
    oracle = FakeOracle(value=0.9)
    result = analyze(ContextScorer(catalog, oracle=oracle), "Don't laugh at me.", "laugh", 1)
    assert result.reason == AnalysisReason.EXCLUDED_BY_PATTERN
    assert oracle.prompts == []


def test_concurrent_oracle_calls_share_one_request(catalog):
    oracle = FakeOracle(value=0.9, delay=0.05)
    scorer = ContextScorer(catalog, oracle=oracle)
    patterns = catalog.get("laugh").trigger_patterns[:2]
    text = "She laughed at the joke."

    async def score_both():
        return await asyncio.gather(*(scorer.score(text, "laugh", p) for p in patterns))

    results = asyncio.run(score_both())

    assert [r.reason for r in results] == [AnalysisReason.AI_ANALYZED] * 2
    assert [r.score for r in results] == [0.9, 0.9]
    assert len(oracle.prompts) == 1
    assert len(scorer.cache) == 1
