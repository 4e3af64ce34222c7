import json

import pytest

from context_sounds.sounds.catalog import (
    SOUND_LIBRARY,
    SoundCatalog,
    UnknownSoundError,
    build_definitions,
    load_catalog,
    load_extra_variations,
)
from context_sounds.sounds.matcher import any_match, compile_pattern, normalize_text
from context_sounds.sounds.models import PatternKind, Polarity, SoundCategory


def test_default_catalog_contents(catalog):
    assert len(catalog) == 9
    grouped = catalog.by_category()
    assert [d.key for d in grouped[SoundCategory.EMOTIONS]] == ["laugh", "cry", "sigh"]
    assert [d.key for d in grouped[SoundCategory.ACTIONS]] == ["footsteps", "door"]
    assert [d.key for d in grouped[SoundCategory.AMBIENT]] == ["wind", "rain"]
    assert [d.key for d in grouped[SoundCategory.DIALOGUE]] == ["whisper", "shout"]


def test_category_lookup(catalog):
    assert catalog.category_of("laugh") == SoundCategory.EMOTIONS
    assert catalog.category_of("rain") == SoundCategory.AMBIENT
    assert catalog.category_of("kazoo") is None


def test_get_unknown_sound_raises(catalog):
    with pytest.raises(UnknownSoundError):
        catalog.get("kazoo")
    with pytest.raises(KeyError):
        catalog.get("kazoo")


def test_definitions_are_compiled_once(catalog):
    laugh = catalog.get("laugh")
    assert laugh.polarity == Polarity.POSITIVE
    assert laugh.trigger_patterns[0].kind == PatternKind.ACTION
    assert laugh.trigger_patterns[0].compiled.search("She LAUGHED")
    assert laugh.exclusion_patterns[0].search("don't laugh")
    assert catalog.get("cry").polarity == Polarity.NEGATIVE
    assert catalog.get("door").polarity == Polarity.NEUTRAL


def test_empty_variations_rejected():
    library = {"emotions": {"hum": {"variations": [], "patterns": [(r"\bhummed\b", "action")]}}}
    with pytest.raises(ValueError):
        build_definitions(library)


def test_duplicate_keys_rejected(catalog):
    laugh = catalog.get("laugh")
    with pytest.raises(ValueError):
        SoundCatalog([laugh, laugh])


def test_extra_variations_are_merged_without_touching_patterns(catalog):
    extended = load_catalog(extra_variations=[
        {"soundKey": "laugh", "variation": "snort.mp3"},
        {"soundKey": "laugh", "variation": "giggle.mp3"},
        {"soundKey": "kazoo", "variation": "kazoo.mp3"},
        {"soundKey": "door"},
    ])
    laugh = extended.get("laugh")
    assert laugh.variations == ("laugh1.mp3", "giggle.mp3", "chuckle.mp3", "snort.mp3")
    assert [p.source for p in laugh.trigger_patterns] == [p.source for p in catalog.get("laugh").trigger_patterns]
    assert extended.get("door").variations == catalog.get("door").variations
    assert "kazoo" not in extended


def test_load_extra_variations_from_file(tmp_path):
    path = tmp_path / "extra.json"
    path.write_text(json.dumps([{"soundKey": "rain", "variation": "storm.mp3"}, "junk"]), encoding="utf-8")
    assert load_extra_variations(str(path)) == [{"soundKey": "rain", "variation": "storm.mp3"}]


def test_load_extra_variations_tolerates_bad_files(tmp_path):
    assert load_extra_variations(str(tmp_path / "missing.json")) == []
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_extra_variations(str(bad)) == []
    not_list = tmp_path / "dict.json"
    not_list.write_text("{}", encoding="utf-8")
    assert load_extra_variations(str(not_list)) == []


def test_invalid_regex_never_matches():
    pattern = compile_pattern(r"(unclosed")
    assert pattern.search("(unclosed") is None
    assert pattern.search("") is None
    assert any_match([pattern], "") is None
    assert any_match([pattern], "  ") is None


def test_normalize_text():
    assert normalize_text("Don’t <b>laugh</b>\r\n“now”") == "Don't laugh\n\"now\""
    assert normalize_text(None) == ""


def test_catalog_listing(catalog):
    listing = catalog.to_dict()
    assert set(listing) == {"emotions", "actions", "ambient", "dialogue"}
    laugh = listing["emotions"][0]
    assert laugh["key"] == "laugh"
    assert laugh["variations"] == list(SOUND_LIBRARY["emotions"]["laugh"]["variations"])
